import sys

import pytest

import constants
import main
from analysis.models import AlertState
from storage import AlertStateStore

CURRENT_KEY = f"polygon:{constants.DEFAULT_PAIR_ADDRESS.lower()}:LINK/USDC"


@pytest.fixture
def reset_sys_argv():
    original = sys.argv.copy()
    yield
    sys.argv = original


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (constants.PAIR_ADDRESS_ENV_VAR, constants.CHAIN_ID_ENV_VAR,
                 constants.BASE_ADDRESS_ENV_VAR, constants.QUOTE_ADDRESS_ENV_VAR,
                 constants.STATE_PATH_ENV_VAR, constants.MIN_PROFIT_PCT_ENV_VAR,
                 constants.PROFIT_STEP_PCT_ENV_VAR, constants.COOLDOWN_ENV_VAR,
                 constants.BIG_JUMP_PCT_ENV_VAR):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.usefixtures("reset_sys_argv")
def test_show_state_cli_outputs_table(tmp_path, capsys):
    state_path = tmp_path / "state.json"
    store = AlertStateStore(state_path)
    store.save(CURRENT_KEY, AlertState(last_sent_at=1_704_110_400, last_sent_profit_pct=1.57,
                                       last_buy_price=14.1, last_sell_price=14.32))
    store.save("base:0xabc:WETH/USDC", AlertState())

    sys.argv = ["prog", "--show-state", "--state-path", str(state_path)]
    main.main()

    output = capsys.readouterr().out
    assert "Policy: min 1.00% | step 0.25% | cooldown 600s | big jump 1.00%" in output
    assert "Last Sent (UTC)" in output
    assert f"{CURRENT_KEY} *" in output
    assert "2024-01-01 12:00:00" in output
    assert "1.57" in output
    assert "14.3200" in output
    assert "Never" in output


def test_show_state_with_empty_file(tmp_path, capsys):
    main.main(["--show-state", "--state-path", str(tmp_path / "missing.json")])

    assert "No alerts recorded yet." in capsys.readouterr().out


def test_config_error_exits_non_zero(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main.main(["--show-state", "--cooldown", "soon"])

    assert excinfo.value.code == 1
    assert "Configuration error" in capsys.readouterr().out
