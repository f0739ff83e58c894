#!/usr/bin/env python3
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from constants import NEVER_SENT_PROFIT_PCT


class Venue(str, Enum):
    """Where a price observation came from."""
    AMM_RESERVES = 'AMM_RESERVES'
    AGGREGATOR_QUOTE = 'AGGREGATOR_QUOTE'


class Direction(str, Enum):
    """Which venue is the cheap (buy) side. Venue A is the AMM, venue B the aggregator."""
    BUY_VENUE_A_SELL_VENUE_B = 'BUY_VENUE_A_SELL_VENUE_B'
    BUY_VENUE_B_SELL_VENUE_A = 'BUY_VENUE_B_SELL_VENUE_A'


class DecisionReason(str, Enum):
    BELOW_MINIMUM = 'below_min'
    COOLDOWN = 'cooldown'
    INSUFFICIENT_GROWTH = 'no_growth'
    FIRST_QUALIFYING_SIGNAL = 'first_signal'
    BIG_JUMP = 'big_jump'
    COOLDOWN_ELAPSED_WITH_GROWTH = 'growth'


@dataclass(frozen=True)
class MonitoredPair:
    """One (base, quote, venue pair) tuple being watched for the process lifetime."""
    key: str
    chain_name: str
    chain_id: int
    pair_address: str
    base_symbol: str
    quote_symbol: str
    base_address: str
    quote_address: str
    base_decimals: int
    quote_decimals: int

    @property
    def label(self) -> str:
        return f"{self.base_symbol}/{self.quote_symbol}"

    @staticmethod
    def make_key(chain_name: str, pair_address: str, base_symbol: str, quote_symbol: str) -> str:
        return f"{chain_name}:{pair_address.lower()}:{base_symbol.upper()}/{quote_symbol.upper()}"


@dataclass(frozen=True)
class PriceSample:
    """A normalised price (quote units per 1 base unit) seen on one venue."""
    venue: Venue
    price: float
    observed_at: float


@dataclass(frozen=True)
class ProfitReading:
    """Cross-venue gap derived from two price samples of the same pair."""
    profit_pct: float
    direction: Direction
    cheap_price: float
    expensive_price: float
    buy_venue: Venue
    sell_venue: Venue
    buffer_pct: float = 0.0

    @property
    def net_profit_pct(self) -> float:
        return self.profit_pct - self.buffer_pct


@dataclass(frozen=True)
class AlertState:
    """Last notification sent for a monitored pair."""
    last_sent_at: float = 0
    last_sent_profit_pct: float = NEVER_SENT_PROFIT_PCT
    last_buy_price: Optional[float] = None
    last_sell_price: Optional[float] = None

    @property
    def is_initial(self) -> bool:
        return self.last_sent_at <= 0 and self.last_sent_profit_pct <= NEVER_SENT_PROFIT_PCT

    def advanced(
        self,
        profit_pct: float,
        now: float,
        buy_price: Optional[float] = None,
        sell_price: Optional[float] = None,
    ) -> "AlertState":
        return replace(
            self,
            last_sent_at=now,
            last_sent_profit_pct=profit_pct,
            last_buy_price=buy_price,
            last_sell_price=sell_price,
        )


@dataclass(frozen=True)
class PolicyConfig:
    """Static per-run alert policy parameters."""
    min_profit_pct: float
    profit_step_pct: float
    cooldown_seconds: float
    big_jump_pct: float


@dataclass(frozen=True)
class AlertDecision:
    """Send/suppress verdict plus the numbers that produced it."""
    send: bool
    reason: DecisionReason
    profit_pct: float
    growth: Optional[float] = None
    elapsed: Optional[float] = None

    @property
    def suppressed(self) -> bool:
        return not self.send
