#!/usr/bin/env python3
from typing import Dict, Tuple, Union

# --- ANSI Color Codes ---
C_GREEN = '\033[92m'
C_RED = '\033[91m'
C_YELLOW = '\033[93m'
C_BLUE = '\033[94m'
C_RESET = '\033[0m'

# --- API Configuration ---
ODOS_QUOTE_URL = 'https://api.odos.xyz/sor/quote/v2'
ODOS_APP_URL = 'https://app.odos.xyz/'
SUSHI_SWAP_URL = 'https://www.sushi.com/swap'
# Odos requires a user address for quotes; any non-zero address works.
ODOS_QUOTE_USER_ADDRESS = '0x0000000000000000000000000000000000000001'
ODOS_SLIPPAGE_LIMIT_PCT = 0.3

# --- Environment Variable Names ---
# Several names are accepted for the Telegram credentials, first match wins.
TELEGRAM_BOT_TOKEN_ENV_VARS: Tuple[str, ...] = ('BOT_TOKEN', 'TG_TOKEN', 'TELEGRAM_BOT_TOKEN', 'tg_token')
TELEGRAM_CHAT_ID_ENV_VARS: Tuple[str, ...] = ('CHAT_ID', 'TG_CHAT_ID', 'TELEGRAM_CHAT_ID', 'tg_chat_id')
RPC_URL_ENV_VAR = 'RPC_URL'
CHAIN_ID_ENV_VAR = 'CHAIN_ID'
PAIR_ADDRESS_ENV_VAR = 'SUSHI_PAIR_ADDRESS'
BASE_ADDRESS_ENV_VAR = 'LINK'
QUOTE_ADDRESS_ENV_VAR = 'USDC'
STATE_PATH_ENV_VAR = 'STATE_PATH'
MIN_PROFIT_PCT_ENV_VAR = 'MIN_PROFIT_PCT'
PROFIT_STEP_PCT_ENV_VAR = 'PROFIT_STEP_PCT'
COOLDOWN_ENV_VAR = 'COOLDOWN_SEC'
BIG_JUMP_PCT_ENV_VAR = 'BIG_JUMP_BYPASS'
FEE_BPS_ENV_VAR = 'FEE_BPS'
SLIPPAGE_BPS_ENV_VAR = 'SLIPPAGE_BPS'
GITHUB_EVENT_NAME_ENV_VAR = 'GITHUB_EVENT_NAME'
MANUAL_RUN_EVENT = 'workflow_dispatch'

# --- Chain Configuration ---
CHAIN_CONFIG: Dict[str, Dict[str, Union[str, int]]] = {
    'ethereum': {'chainId': 1, 'explorer': 'https://etherscan.io'},
    'polygon': {'chainId': 137, 'explorer': 'https://polygonscan.com'},
    'base': {'chainId': 8453, 'explorer': 'https://basescan.org'},
    'bsc': {'chainId': 56, 'explorer': 'https://bscscan.com'},
    'arbitrum': {'chainId': 42161, 'explorer': 'https://arbiscan.io'},
}

# --- Default Monitored Pair (SushiSwap LINK/USDC V2 pair on Polygon) ---
DEFAULT_CHAIN_ID = 137
DEFAULT_PAIR_ADDRESS = '0x8bC8e9F621EE8bAbda8DC0E6Fc991aAf9BF8510b'
DEFAULT_BASE_ADDRESS = '0x53E0bca35eC356BD5ddDFebbD1Fc0fD03FaBad39'  # LINK
DEFAULT_QUOTE_ADDRESS = '0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174'  # USDC.e
DEFAULT_BASE_SYMBOL = 'LINK'
DEFAULT_QUOTE_SYMBOL = 'USDC'
DEFAULT_BASE_DECIMALS = 18
DEFAULT_QUOTE_DECIMALS = 6

# --- Alert Policy Defaults ---
DEFAULT_MIN_PROFIT_PCT = 1.0
DEFAULT_PROFIT_STEP_PCT = 0.25
DEFAULT_COOLDOWN_SECONDS = 10 * 60
DEFAULT_BIG_JUMP_PCT = 1.0

# --- Alert State Defaults ---
DEFAULT_STATE_PATH = 'state.json'
# Below any sensible threshold so the first qualifying reading always sends.
NEVER_SENT_PROFIT_PCT = -999.0

# --- Network Defaults ---
DEFAULT_RPC_TIMEOUT = 15.0
DEFAULT_QUOTE_TIMEOUT = 20.0
DEFAULT_TELEGRAM_TIMEOUT = 15.0
DEFAULT_RETRIES = 3
DEFAULT_RETRY_BACKOFF = 2.0
DEFAULT_INTERVAL = 60
