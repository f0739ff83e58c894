#!/usr/bin/env python3
import math

from analysis.models import Direction, PriceSample, ProfitReading
from errors import InvalidPrice


def _check_price(sample: PriceSample) -> None:
    price = sample.price
    if not isinstance(price, (int, float)) or not math.isfinite(price) or price <= 0:
        raise InvalidPrice(f"{sample.venue.value} price must be finite and positive, got {price!r}")


def buffer_from_bps(fee_bps: float, slippage_bps: float, gas_pct: float = 0.0) -> float:
    """Converts fee and slippage basis points (plus a flat gas percentage) into a percentage buffer.

    The result is a conservative approximation subtracted from the gross
    profit before alerting; it is not an execution guarantee.
    """
    return (fee_bps + slippage_bps) / 100.0 + gas_pct


def calculate_profit(sample_a: PriceSample, sample_b: PriceSample, *, buffer_pct: float = 0.0) -> ProfitReading:
    """Builds a ProfitReading for buying on the cheaper venue and selling on the dearer one.

    ``sample_a`` is venue A (the AMM pool), ``sample_b`` venue B (the
    aggregator). Equal prices count as buying on venue A.
    """
    _check_price(sample_a)
    _check_price(sample_b)
    if not math.isfinite(buffer_pct):
        raise InvalidPrice(f"Buffer must be finite, got {buffer_pct!r}")

    if sample_a.price <= sample_b.price:
        cheap, expensive = sample_a, sample_b
        direction = Direction.BUY_VENUE_A_SELL_VENUE_B
    else:
        cheap, expensive = sample_b, sample_a
        direction = Direction.BUY_VENUE_B_SELL_VENUE_A

    profit_pct = (expensive.price - cheap.price) / cheap.price * 100
    if not math.isfinite(profit_pct):
        raise InvalidPrice(f"Profit is not finite for prices {cheap.price!r} and {expensive.price!r}")

    return ProfitReading(
        profit_pct=profit_pct,
        direction=direction,
        cheap_price=cheap.price,
        expensive_price=expensive.price,
        buy_venue=cheap.venue,
        sell_venue=expensive.venue,
        buffer_pct=buffer_pct,
    )
