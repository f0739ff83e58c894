import pytest

import constants
from config import load_config
from errors import ConfigError

ALL_ENV_VARS = (
    *constants.TELEGRAM_BOT_TOKEN_ENV_VARS,
    *constants.TELEGRAM_CHAT_ID_ENV_VARS,
    constants.RPC_URL_ENV_VAR,
    constants.CHAIN_ID_ENV_VAR,
    constants.PAIR_ADDRESS_ENV_VAR,
    constants.BASE_ADDRESS_ENV_VAR,
    constants.QUOTE_ADDRESS_ENV_VAR,
    constants.STATE_PATH_ENV_VAR,
    constants.MIN_PROFIT_PCT_ENV_VAR,
    constants.PROFIT_STEP_PCT_ENV_VAR,
    constants.COOLDOWN_ENV_VAR,
    constants.BIG_JUMP_PCT_ENV_VAR,
    constants.FEE_BPS_ENV_VAR,
    constants.SLIPPAGE_BPS_ENV_VAR,
    constants.GITHUB_EVENT_NAME_ENV_VAR,
)


@pytest.fixture(autouse=True)
def setup_env(monkeypatch):
    for name in ALL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('BOT_TOKEN', 'mock_token')
    monkeypatch.setenv('CHAT_ID', 'mock_chat_id')
    monkeypatch.setenv('RPC_URL', 'http://mock-rpc')


def test_defaults_match_original_bot():
    config = load_config([])
    assert config.min_profit_pct == 1.0
    assert config.profit_step_pct == 0.25
    assert config.cooldown_seconds == 600
    assert config.big_jump_pct == 1.0
    assert config.chain_id == 137
    assert config.chain_name == 'polygon'
    assert config.base_address == constants.DEFAULT_BASE_ADDRESS.lower()
    assert config.quote_address == constants.DEFAULT_QUOTE_ADDRESS.lower()
    assert config.buffer_pct == 0.0
    assert config.notify_start is False
    assert config.monitored_pair.key == f"polygon:{constants.DEFAULT_PAIR_ADDRESS.lower()}:LINK/USDC"


def test_env_values_are_used(monkeypatch):
    monkeypatch.setenv('MIN_PROFIT_PCT', '1.5')
    monkeypatch.setenv('PROFIT_STEP_PCT', '0.5')
    monkeypatch.setenv('COOLDOWN_SEC', '120')
    monkeypatch.setenv('BIG_JUMP_BYPASS', '2')
    monkeypatch.setenv('FEE_BPS', '30')
    config = load_config([])
    assert config.policy.min_profit_pct == 1.5
    assert config.policy.profit_step_pct == 0.5
    assert config.policy.cooldown_seconds == 120
    assert config.policy.big_jump_pct == 2.0
    assert config.buffer_pct == pytest.approx(0.3)


def test_flags_override_env(monkeypatch):
    monkeypatch.setenv('MIN_PROFIT_PCT', '1.5')
    config = load_config(['--min-profit-pct', '0.8', '--once'])
    assert config.min_profit_pct == 0.8
    assert config.once is True


def test_alternate_telegram_env_names(monkeypatch):
    monkeypatch.delenv('BOT_TOKEN')
    monkeypatch.delenv('CHAT_ID')
    monkeypatch.setenv('TG_TOKEN', 'other_token')
    monkeypatch.setenv('TG_CHAT_ID', '-100')
    config = load_config([])
    assert config.telegram_bot_token == 'other_token'
    assert config.telegram_chat_id == '-100'


@pytest.mark.parametrize("value", ['abc', 'nan', 'inf', ''])
def test_unparseable_policy_value_is_config_error(value):
    with pytest.raises(ConfigError):
        load_config(['--cooldown', value])


def test_unparseable_env_value_is_config_error(monkeypatch):
    monkeypatch.setenv('BIG_JUMP_BYPASS', 'one')
    with pytest.raises(ConfigError, match='big jump'):
        load_config([])


def test_big_jump_below_step_is_config_error():
    with pytest.raises(ConfigError, match='big_jump_pct'):
        load_config(['--profit-step-pct', '0.5', '--big-jump-pct', '0.2'])


def test_missing_rpc_url_is_config_error(monkeypatch):
    monkeypatch.delenv('RPC_URL')
    with pytest.raises(ConfigError, match='RPC_URL'):
        load_config([])


def test_missing_telegram_credentials_is_config_error(monkeypatch):
    monkeypatch.delenv('BOT_TOKEN')
    with pytest.raises(ConfigError, match='Telegram'):
        load_config([])


def test_dry_run_does_not_need_telegram(monkeypatch):
    monkeypatch.delenv('BOT_TOKEN')
    monkeypatch.delenv('CHAT_ID')
    config = load_config(['--dry-run'])
    assert config.dry_run is True
    assert config.telegram_bot_token is None


def test_show_state_needs_no_credentials(monkeypatch):
    for name in ('BOT_TOKEN', 'CHAT_ID', 'RPC_URL'):
        monkeypatch.delenv(name)
    assert load_config(['--show-state']).show_state is True


def test_invalid_address_is_config_error():
    with pytest.raises(ConfigError, match='pair address'):
        load_config(['--pair-address', '0x1234'])


def test_same_base_and_quote_is_config_error():
    with pytest.raises(ConfigError):
        load_config(['--quote-address', constants.DEFAULT_BASE_ADDRESS])


def test_manual_workflow_run_enables_start_notification(monkeypatch):
    monkeypatch.setenv('GITHUB_EVENT_NAME', 'workflow_dispatch')
    assert load_config([]).notify_start is True
    monkeypatch.setenv('GITHUB_EVENT_NAME', 'schedule')
    assert load_config([]).notify_start is False


def test_unknown_chain_id_gets_generic_name():
    config = load_config(['--chain-id', '999'])
    assert config.chain_name == 'chain999'
