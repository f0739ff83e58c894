#!/usr/bin/env python3
import os
import argparse
import math
from typing import NamedTuple, Optional, Sequence

from web3 import Web3

import constants
from analysis.decision import validate_policy
from analysis.models import MonitoredPair, PolicyConfig
from analysis.profit import buffer_from_bps
from errors import ConfigError


class AppConfig(NamedTuple):
    """Typed configuration object."""
    chain_id: int
    chain_name: str
    pair_address: str
    base_address: str
    quote_address: str
    base_symbol: str
    quote_symbol: str
    base_decimals: int
    quote_decimals: int
    rpc_url: Optional[str]
    telegram_bot_token: Optional[str]
    telegram_chat_id: Optional[str]
    min_profit_pct: float
    profit_step_pct: float
    cooldown_seconds: float
    big_jump_pct: float
    fee_bps: float
    slippage_bps: float
    state_path: str
    interval: int
    retries: int
    retry_backoff: float
    rpc_timeout: float
    quote_timeout: float
    once: bool
    notify_start: bool
    dry_run: bool
    show_state: bool
    verbose: bool

    @property
    def policy(self) -> PolicyConfig:
        return PolicyConfig(
            min_profit_pct=self.min_profit_pct,
            profit_step_pct=self.profit_step_pct,
            cooldown_seconds=self.cooldown_seconds,
            big_jump_pct=self.big_jump_pct,
        )

    @property
    def buffer_pct(self) -> float:
        return buffer_from_bps(self.fee_bps, self.slippage_bps)

    @property
    def monitored_pair(self) -> MonitoredPair:
        return MonitoredPair(
            key=MonitoredPair.make_key(self.chain_name, self.pair_address, self.base_symbol, self.quote_symbol),
            chain_name=self.chain_name,
            chain_id=self.chain_id,
            pair_address=self.pair_address,
            base_symbol=self.base_symbol,
            quote_symbol=self.quote_symbol,
            base_address=self.base_address,
            quote_address=self.quote_address,
            base_decimals=self.base_decimals,
            quote_decimals=self.quote_decimals,
        )


def chain_name_for(chain_id: int) -> str:
    for name, info in constants.CHAIN_CONFIG.items():
        if info['chainId'] == chain_id:
            return name
    return f"chain{chain_id}"


def _first_env(names: Sequence[str]) -> Optional[str]:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


def _resolve(cli_value, env_var: Optional[str], default):
    """Command-line flag beats environment variable beats built-in default."""
    if cli_value is not None:
        return cli_value
    if env_var:
        env_value = os.environ.get(env_var)
        if env_value not in (None, ""):
            return env_value
    return default


def _to_float(name: str, value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ConfigError(f"{name} must be finite, got {value!r}")
    return number


def _to_int(name: str, value, minimum: int = 0) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if number < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {number}")
    return number


def _to_address(name: str, value: str) -> str:
    address = (value or "").strip().lower()
    if not Web3.is_address(address):
        raise ConfigError(f"{name} is not a valid address: {value!r}")
    return address


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Alert on cross-venue arbitrage between an AMM pair (reserves) and the Odos aggregator (quote).",
        epilog="Example: ./main.py --once --min-profit-pct 1.0 --cooldown 600",
    )
    # --- Pair ---
    parser.add_argument('--chain-id', type=str, help=f'EVM chain id (env {constants.CHAIN_ID_ENV_VAR}, default: {constants.DEFAULT_CHAIN_ID}).')
    parser.add_argument('--pair-address', type=str, help=f'V2 pair contract to read reserves from (env {constants.PAIR_ADDRESS_ENV_VAR}).')
    parser.add_argument('--base-address', type=str, help=f'Base token address (env {constants.BASE_ADDRESS_ENV_VAR}).')
    parser.add_argument('--quote-address', type=str, help=f'Quote token address (env {constants.QUOTE_ADDRESS_ENV_VAR}).')
    parser.add_argument('--base-symbol', type=str, default=constants.DEFAULT_BASE_SYMBOL, help=f'Base token symbol (default: {constants.DEFAULT_BASE_SYMBOL}).')
    parser.add_argument('--quote-symbol', type=str, default=constants.DEFAULT_QUOTE_SYMBOL, help=f'Quote token symbol (default: {constants.DEFAULT_QUOTE_SYMBOL}).')
    parser.add_argument('--base-decimals', type=str, default=str(constants.DEFAULT_BASE_DECIMALS), help=f'Base token decimals (default: {constants.DEFAULT_BASE_DECIMALS}).')
    parser.add_argument('--quote-decimals', type=str, default=str(constants.DEFAULT_QUOTE_DECIMALS), help=f'Quote token decimals (default: {constants.DEFAULT_QUOTE_DECIMALS}).')
    parser.add_argument('--rpc-url', type=str, help=f'JSON-RPC endpoint for reserve reads (env {constants.RPC_URL_ENV_VAR}).')

    # --- Alert Policy ---
    parser.add_argument('--min-profit-pct', type=str, help=f'Alert only at or above this profit %% (env {constants.MIN_PROFIT_PCT_ENV_VAR}, default: {constants.DEFAULT_MIN_PROFIT_PCT}).')
    parser.add_argument('--profit-step-pct', type=str, help=f'Re-alert after cooldown only if profit grew by this much (env {constants.PROFIT_STEP_PCT_ENV_VAR}, default: {constants.DEFAULT_PROFIT_STEP_PCT}).')
    parser.add_argument('--cooldown', type=str, help=f'Seconds between alerts (env {constants.COOLDOWN_ENV_VAR}, default: {constants.DEFAULT_COOLDOWN_SECONDS}).')
    parser.add_argument('--big-jump-pct', type=str, help=f'Profit growth that bypasses the cooldown (env {constants.BIG_JUMP_PCT_ENV_VAR}, default: {constants.DEFAULT_BIG_JUMP_PCT}).')
    parser.add_argument('--fee-bps', type=str, help=f'Flat fee buffer in basis points subtracted from profit (env {constants.FEE_BPS_ENV_VAR}, default: 0).')
    parser.add_argument('--slippage-bps', type=str, help=f'Flat slippage buffer in basis points (env {constants.SLIPPAGE_BPS_ENV_VAR}, default: 0).')

    # --- Runtime ---
    parser.add_argument('--state-path', type=str, help=f'Alert state file (env {constants.STATE_PATH_ENV_VAR}, default: {constants.DEFAULT_STATE_PATH}).')
    parser.add_argument('--interval', type=str, default=str(constants.DEFAULT_INTERVAL), help=f'Seconds between ticks in loop mode (default: {constants.DEFAULT_INTERVAL}).')
    parser.add_argument('--retries', type=str, default=str(constants.DEFAULT_RETRIES), help=f'Attempts per venue fetch (default: {constants.DEFAULT_RETRIES}).')
    parser.add_argument('--retry-backoff', type=str, default=str(constants.DEFAULT_RETRY_BACKOFF), help=f'Seconds between fetch attempts (default: {constants.DEFAULT_RETRY_BACKOFF}).')
    parser.add_argument('--rpc-timeout', type=str, default=str(constants.DEFAULT_RPC_TIMEOUT), help=f'RPC timeout in seconds (default: {constants.DEFAULT_RPC_TIMEOUT}).')
    parser.add_argument('--quote-timeout', type=str, default=str(constants.DEFAULT_QUOTE_TIMEOUT), help=f'Quote API timeout in seconds (default: {constants.DEFAULT_QUOTE_TIMEOUT}).')
    parser.add_argument('--once', action='store_true', help='Run a single tick and exit (for cron / CI schedules).')
    parser.add_argument('--notify-start', action='store_true', help='Send a one-time "bot started" message.')
    parser.add_argument('--dry-run', action='store_true', help='Print alerts instead of sending them to Telegram.')
    parser.add_argument('--show-state', action='store_true', help='Display the stored alert state and exit.')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging.')
    return parser


def load_config(argv: Optional[Sequence[str]] = None) -> AppConfig:
    """
    Parses command-line arguments and environment variables into a validated configuration object.
    Raises ConfigError when a required value is missing or malformed.
    """
    args = build_parser().parse_args(argv)

    chain_id = _to_int('chain id', _resolve(args.chain_id, constants.CHAIN_ID_ENV_VAR, constants.DEFAULT_CHAIN_ID), minimum=1)
    pair_address = _to_address('pair address', _resolve(args.pair_address, constants.PAIR_ADDRESS_ENV_VAR, constants.DEFAULT_PAIR_ADDRESS))
    base_address = _to_address('base token address', _resolve(args.base_address, constants.BASE_ADDRESS_ENV_VAR, constants.DEFAULT_BASE_ADDRESS))
    quote_address = _to_address('quote token address', _resolve(args.quote_address, constants.QUOTE_ADDRESS_ENV_VAR, constants.DEFAULT_QUOTE_ADDRESS))
    if base_address == quote_address:
        raise ConfigError("Base and quote token addresses must differ.")

    policy = PolicyConfig(
        min_profit_pct=_to_float('min profit %', _resolve(args.min_profit_pct, constants.MIN_PROFIT_PCT_ENV_VAR, constants.DEFAULT_MIN_PROFIT_PCT)),
        profit_step_pct=_to_float('profit step %', _resolve(args.profit_step_pct, constants.PROFIT_STEP_PCT_ENV_VAR, constants.DEFAULT_PROFIT_STEP_PCT)),
        cooldown_seconds=_to_float('cooldown', _resolve(args.cooldown, constants.COOLDOWN_ENV_VAR, constants.DEFAULT_COOLDOWN_SECONDS)),
        big_jump_pct=_to_float('big jump %', _resolve(args.big_jump_pct, constants.BIG_JUMP_PCT_ENV_VAR, constants.DEFAULT_BIG_JUMP_PCT)),
    )
    validate_policy(policy)

    fee_bps = _to_float('fee bps', _resolve(args.fee_bps, constants.FEE_BPS_ENV_VAR, 0.0))
    slippage_bps = _to_float('slippage bps', _resolve(args.slippage_bps, constants.SLIPPAGE_BPS_ENV_VAR, 0.0))
    if fee_bps < 0 or slippage_bps < 0:
        raise ConfigError("Fee and slippage buffers must be >= 0 basis points.")

    rpc_url = _resolve(args.rpc_url, constants.RPC_URL_ENV_VAR, None)
    telegram_bot_token = _first_env(constants.TELEGRAM_BOT_TOKEN_ENV_VARS)
    telegram_chat_id = _first_env(constants.TELEGRAM_CHAT_ID_ENV_VARS)

    if not args.show_state:
        if not rpc_url:
            raise ConfigError(f"{constants.RPC_URL_ENV_VAR} missing. Provide it via environment or --rpc-url.")
        if not args.dry_run and not (telegram_bot_token and telegram_chat_id):
            raise ConfigError(
                f"Telegram credentials missing: set {constants.TELEGRAM_BOT_TOKEN_ENV_VARS[0]} and "
                f"{constants.TELEGRAM_CHAT_ID_ENV_VARS[0]}, or use --dry-run."
            )

    notify_start = args.notify_start or os.environ.get(constants.GITHUB_EVENT_NAME_ENV_VAR, "") == constants.MANUAL_RUN_EVENT

    retry_backoff = _to_float('retry backoff', args.retry_backoff)
    rpc_timeout = _to_float('rpc timeout', args.rpc_timeout)
    quote_timeout = _to_float('quote timeout', args.quote_timeout)
    if retry_backoff < 0 or rpc_timeout <= 0 or quote_timeout <= 0:
        raise ConfigError("Timeouts must be > 0 and retry backoff >= 0.")

    return AppConfig(
        chain_id=chain_id,
        chain_name=chain_name_for(chain_id),
        pair_address=pair_address,
        base_address=base_address,
        quote_address=quote_address,
        base_symbol=args.base_symbol.upper(),
        quote_symbol=args.quote_symbol.upper(),
        base_decimals=_to_int('base decimals', args.base_decimals),
        quote_decimals=_to_int('quote decimals', args.quote_decimals),
        rpc_url=rpc_url,
        telegram_bot_token=telegram_bot_token,
        telegram_chat_id=telegram_chat_id,
        min_profit_pct=policy.min_profit_pct,
        profit_step_pct=policy.profit_step_pct,
        cooldown_seconds=policy.cooldown_seconds,
        big_jump_pct=policy.big_jump_pct,
        fee_bps=fee_bps,
        slippage_bps=slippage_bps,
        state_path=_resolve(args.state_path, constants.STATE_PATH_ENV_VAR, constants.DEFAULT_STATE_PATH),
        interval=_to_int('interval', args.interval, minimum=1),
        retries=_to_int('retries', args.retries, minimum=1),
        retry_backoff=retry_backoff,
        rpc_timeout=rpc_timeout,
        quote_timeout=quote_timeout,
        once=args.once,
        notify_start=notify_start,
        dry_run=args.dry_run,
        show_state=args.show_state,
        verbose=args.verbose,
    )
