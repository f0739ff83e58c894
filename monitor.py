# monitor.py
import asyncio
import html
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urlencode

from analysis.decision import advance_state, decide
from analysis.models import (
    AlertDecision,
    DecisionReason,
    MonitoredPair,
    PriceSample,
    ProfitReading,
    Venue,
)
from analysis.pricing import one_token, price_from_pair_reserves, price_from_quote, round_price
from analysis.profit import calculate_profit
from config import AppConfig
from constants import C_BLUE, C_GREEN, C_RED, C_RESET, C_YELLOW, ODOS_APP_URL, SUSHI_SWAP_URL
from errors import NotifyFailure, PriceError, ProviderError
from services.quote_provider import OdosQuoteProvider
from services.reserve_provider import PairReserves, UniswapV2ReserveProvider
from services.retry import RetryPolicy, with_retry
from services.telegram_notifier import TelegramNotifier
from storage import AlertStateStore

logger = logging.getLogger(__name__)

VENUE_LABELS = {
    Venue.AMM_RESERVES: "Sushi",
    Venue.AGGREGATOR_QUOTE: "Odos",
}

REASON_LABELS = {
    DecisionReason.FIRST_QUALIFYING_SIGNAL: "first signal",
    DecisionReason.BIG_JUMP: "big jump",
    DecisionReason.COOLDOWN_ELAPSED_WITH_GROWTH: "profit grew",
}


class TickStatus(str, Enum):
    SENT = "sent"
    SUPPRESSED = "suppressed"
    NOTIFY_FAILED = "notify_failed"
    ERROR = "error"


@dataclass
class TickOutcome:
    """What a single tick did, for logging and tests."""
    status: TickStatus
    decision: Optional[AlertDecision] = None
    reading: Optional[ProfitReading] = None
    error: Optional[str] = None


class ArbitrageMonitor:
    def __init__(
        self,
        config: AppConfig,
        reserve_provider: UniswapV2ReserveProvider,
        quote_provider: OdosQuoteProvider,
        notifier: TelegramNotifier,
        store: AlertStateStore,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.pair: MonitoredPair = config.monitored_pair
        self.policy = config.policy
        self.reserve_provider = reserve_provider
        self.quote_provider = quote_provider
        self.notifier = notifier
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=config.retries,
            backoff_seconds=config.retry_backoff,
        )
        self.clock = clock
        self.last_outcome: Optional[TickOutcome] = None

    async def start(self):
        """Runs ticks forever, one every ``config.interval`` seconds."""
        while True:
            print("\n" + "=" * 50)
            print(f"Checking {C_YELLOW}{self.pair.label}{C_RESET} on {C_BLUE}{self.pair.chain_name.capitalize()}{C_RESET}...")
            await self.run_once()
            print(f"Tick finished. Waiting {self.config.interval} seconds...")
            print("=" * 50)
            await asyncio.sleep(self.config.interval)

    async def run_once(self) -> TickOutcome:
        """One tick; never raises, so a scheduled run always exits cleanly."""
        try:
            outcome = await self.run_tick()
        except Exception as e:
            logger.exception("Unexpected error during tick for %s", self.pair.key)
            print(f"{C_RED}Error during tick: {e}{C_RESET}")
            outcome = TickOutcome(status=TickStatus.ERROR, error=str(e))
        self.last_outcome = outcome
        return outcome

    async def run_tick(self) -> TickOutcome:
        """Fetch, price, decide, notify, and persist state only when delivery succeeded."""
        now = self.clock()
        try:
            amm_sample, quote_sample = await asyncio.gather(
                self._fetch_amm_sample(now),
                self._fetch_quote_sample(now),
            )
            reading = calculate_profit(amm_sample, quote_sample, buffer_pct=self.config.buffer_pct)
            state = await self.store.aload(self.pair.key)
            decision = decide(reading.net_profit_pct, now, state, self.policy)
        except (ProviderError, PriceError) as e:
            # Errors are logged only; they must never turn into user-visible alerts.
            logger.error("Skipping tick for %s: %s: %s", self.pair.key, type(e).__name__, e)
            return TickOutcome(status=TickStatus.ERROR, error=str(e))

        if decision.suppressed:
            logger.info(
                "No send: %s. profit=%.4f%% (gross %.4f%%) amm=%.6f aggregator=%.6f",
                decision.reason.value,
                reading.net_profit_pct,
                reading.profit_pct,
                amm_sample.price,
                quote_sample.price,
            )
            return TickOutcome(status=TickStatus.SUPPRESSED, decision=decision, reading=reading)

        message = self.format_signal_message(reading, decision)
        delivered = await self.notifier.send(message)
        if not delivered:
            failure = NotifyFailure(f"Notification for {self.pair.key} not delivered")
            logger.error("%s; state left unchanged for retry", failure)
            return TickOutcome(status=TickStatus.NOTIFY_FAILED, decision=decision, reading=reading, error=str(failure))

        new_state = advance_state(
            state,
            reading.net_profit_pct,
            now,
            buy_price=reading.cheap_price,
            sell_price=reading.expensive_price,
        )
        try:
            await self.store.asave(self.pair.key, new_state)
        except OSError as e:
            logger.error("Alert sent but state could not be saved to %s: %s", self.store.path, e)
        print(f"{C_GREEN}Sent. Reason: {decision.reason.value}{C_RESET}")
        logger.info("Sent alert for %s (%s), profit=%.4f%%", self.pair.key, decision.reason.value, reading.net_profit_pct)
        return TickOutcome(status=TickStatus.SENT, decision=decision, reading=reading)

    async def notify_started(self) -> bool:
        """One-time start message for manual runs; failures are only logged."""
        text = f"✅ BOT STARTED\nWatching {html.escape(self.pair.label)} on {html.escape(self.pair.chain_name.capitalize())}"
        delivered = await self.notifier.send(text)
        if delivered:
            try:
                await asyncio.get_running_loop().run_in_executor(
                    None, self.store.save_meta, "startedAt", int(self.clock())
                )
            except OSError as e:
                logger.warning("Could not record start time: %s", e)
        else:
            logger.warning("Start notification was not delivered")
        return delivered

    async def _fetch_amm_sample(self, now: float) -> PriceSample:
        reserves: PairReserves = await with_retry(
            lambda: self.reserve_provider.get_reserves(self.pair.pair_address),
            self.retry_policy,
            description=f"{VENUE_LABELS[Venue.AMM_RESERVES]} reserves",
        )
        base_decimals = self._onchain_decimals(reserves, self.pair.base_address, self.pair.base_decimals)
        quote_decimals = self._onchain_decimals(reserves, self.pair.quote_address, self.pair.quote_decimals)
        price = price_from_pair_reserves(
            reserves.token0,
            reserves.token1,
            reserves.reserve0,
            reserves.reserve1,
            base_address=self.pair.base_address,
            quote_address=self.pair.quote_address,
            base_decimals=base_decimals,
            quote_decimals=quote_decimals,
        )
        return PriceSample(venue=Venue.AMM_RESERVES, price=price, observed_at=now)

    async def _fetch_quote_sample(self, now: float) -> PriceSample:
        amount_in = one_token(self.pair.base_decimals)
        amount_out = await with_retry(
            lambda: self.quote_provider.get_quote(self.pair.base_address, self.pair.quote_address, amount_in),
            self.retry_policy,
            description=f"{VENUE_LABELS[Venue.AGGREGATOR_QUOTE]} quote",
        )
        price = price_from_quote(amount_in, amount_out, self.pair.base_decimals, self.pair.quote_decimals)
        return PriceSample(venue=Venue.AGGREGATOR_QUOTE, price=price, observed_at=now)

    @staticmethod
    def _onchain_decimals(reserves: PairReserves, address: str, configured: int) -> int:
        address = address.lower()
        if reserves.token0.lower() == address:
            onchain = reserves.decimals0
        elif reserves.token1.lower() == address:
            onchain = reserves.decimals1
        else:
            # Token order is checked (and rejected) by the price normaliser.
            return configured
        if onchain != configured:
            logger.warning("Configured decimals %d for %s differ from on-chain %d; using on-chain value",
                           configured, address, onchain)
        return onchain

    def swap_link(self, venue: Venue, token_in: str, token_out: str) -> str:
        if venue is Venue.AMM_RESERVES:
            query = {"chainId": self.pair.chain_id, "token0": token_in, "token1": token_out}
            return f"{SUSHI_SWAP_URL}?{urlencode(query)}"
        query = {"chain": self.pair.chain_id, "tokenIn": token_in, "tokenOut": token_out}
        return f"{ODOS_APP_URL}?{urlencode(query)}"

    def format_signal_message(self, reading: ProfitReading, decision: AlertDecision) -> str:
        """Formats the Telegram alert (HTML parse mode)."""
        pair = self.pair
        buy_label = VENUE_LABELS[reading.buy_venue]
        sell_label = VENUE_LABELS[reading.sell_venue]
        # Buy the base token with quote on the cheap venue, sell it back on the other.
        buy_link = self.swap_link(reading.buy_venue, pair.quote_address, pair.base_address)
        sell_link = self.swap_link(reading.sell_venue, pair.base_address, pair.quote_address)

        prices = {reading.buy_venue: reading.cheap_price, reading.sell_venue: reading.expensive_price}
        lines = [
            f"🔥 <b>ARBITRAGE SIGNAL ({html.escape(pair.label)})</b>",
            "",
            f"{VENUE_LABELS[Venue.AMM_RESERVES]}: ${round_price(prices[Venue.AMM_RESERVES]):.4f}",
            f"{VENUE_LABELS[Venue.AGGREGATOR_QUOTE]}:  ${round_price(prices[Venue.AGGREGATOR_QUOTE]):.4f}",
            f"<b>Route:</b> Buy {buy_label} -> Sell {sell_label}",
            f"<b>Profit:</b> +{reading.net_profit_pct:.2f}%",
        ]
        if reading.buffer_pct:
            lines.append(f"<i>Gross {reading.profit_pct:.2f}% minus {reading.buffer_pct:.2f}% fee/slippage buffer (estimate)</i>")
        lines.append(f"<b>Reason:</b> {REASON_LABELS.get(decision.reason, decision.reason.value)}")
        lines.extend([
            "",
            f"<a href=\"{html.escape(buy_link)}\">Buy on {buy_label}</a>",
            f"<a href=\"{html.escape(sell_link)}\">Sell on {sell_label}</a>",
        ])
        return "\n".join(lines)
