#!/usr/bin/env python3
import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, Sequence

import aiohttp

import constants
from analysis.models import AlertState
from config import AppConfig, load_config
from errors import ConfigError
from monitor import ArbitrageMonitor
from services.quote_provider import OdosQuoteProvider
from services.reserve_provider import UniswapV2ReserveProvider
from services.retry import RetryPolicy
from services.telegram_notifier import TelegramNotifier
from storage import AlertStateStore


def setup_logging(verbose: bool = False) -> None:
    """Configures the root logger once; later calls are no-ops."""
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # aiohttp and telegram are noisy at DEBUG.
    for name in ("aiohttp", "httpx", "telegram"):
        logging.getLogger(name).setLevel(logging.WARNING)


async def run(config: AppConfig) -> None:
    """Builds the shared HTTP session and collaborators, then runs one tick or the loop."""
    session = aiohttp.ClientSession(headers={'User-Agent': 'ArbAlertBot/1.0'})
    notifier = TelegramNotifier(
        config.telegram_bot_token,
        config.telegram_chat_id,
        dry_run=config.dry_run,
    )
    try:
        monitor = ArbitrageMonitor(
            config,
            UniswapV2ReserveProvider(session, rpc_url=config.rpc_url, timeout=config.rpc_timeout),
            OdosQuoteProvider(session, chain_id=config.chain_id, timeout=config.quote_timeout),
            notifier,
            AlertStateStore(config.state_path),
            retry_policy=RetryPolicy(max_attempts=config.retries, backoff_seconds=config.retry_backoff),
        )

        if config.dry_run:
            print(f"{constants.C_YELLOW}Dry-run mode: alerts are printed, not sent to Telegram.{constants.C_RESET}")

        # Only on explicit request, never on every scheduled tick.
        if config.notify_start:
            await monitor.notify_started()

        if config.once:
            await monitor.run_once()
        else:
            await monitor.start()
    finally:
        await notifier.close()
        await session.close()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """The main synchronous entry point for the application."""
    try:
        config = load_config(argv)
    except ConfigError as exc:
        print(f"{constants.C_RED}Configuration error: {exc}{constants.C_RESET}")
        sys.exit(1)

    setup_logging(config.verbose)

    if config.show_state:
        store = AlertStateStore(config.state_path)
        _print_alert_states(store.load_all(), config.monitored_pair.key, config)
        return

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        print("Stopped.")


def _print_alert_states(states: dict[str, AlertState], current_key: str, config: AppConfig) -> None:
    heading = f"Alert state ({config.state_path})"
    print(heading)
    print("=" * len(heading))
    print(
        f"Policy: min {config.min_profit_pct:.2f}% | step {config.profit_step_pct:.2f}% | "
        f"cooldown {config.cooldown_seconds:.0f}s | big jump {config.big_jump_pct:.2f}%"
    )

    if not states:
        print("No alerts recorded yet.")
        return

    headers = ["Pair", "Last Sent (UTC)", "Profit %", "Buy", "Sell"]

    def _format_price(value: float | None) -> str:
        return f"{value:.4f}" if value is not None else "-"

    def _format_row(key: str, state: AlertState) -> list[str]:
        if state.is_initial:
            sent = "Never"
            profit = "-"
        else:
            sent = datetime.fromtimestamp(state.last_sent_at, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
            profit = f"{state.last_sent_profit_pct:.2f}"
        marker = " *" if key == current_key else ""
        return [key + marker, sent, profit, _format_price(state.last_buy_price), _format_price(state.last_sell_price)]

    rows = [_format_row(key, state) for key, state in sorted(states.items())]
    widths = [len(h) for h in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))

    def _format_line(row: list[str]) -> str:
        return "  ".join(cell.ljust(widths[idx]) for idx, cell in enumerate(row))

    print(_format_line(headers))
    print("  ".join('-' * w for w in widths))
    for row in rows:
        print(_format_line(row))


if __name__ == "__main__":
    main()
