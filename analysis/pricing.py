#!/usr/bin/env python3
"""Turns raw token-unit amounts from venues into comparable quote-per-base prices.

All arithmetic happens on ``Decimal`` values so large uint112 reserves keep
full precision; the conversion to ``float`` is applied to the final ratio only.
"""
from decimal import Decimal, localcontext

from errors import TokenMismatch, ZeroReserve

# uint112 reserves scaled by 10**18 stay well inside this precision.
_PRECISION = 78


def _check_amount(value: int, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer amount, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def _check_decimals(value: int, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")


def normalize_amount(raw: int, decimals: int) -> Decimal:
    """Scales a raw on-chain integer amount down to whole-token units."""
    _check_amount(raw, "raw amount")
    _check_decimals(decimals, "decimals")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(raw).scaleb(-decimals)


def _ratio(quote_amount: Decimal, base_amount: Decimal) -> float:
    if base_amount == 0 or quote_amount == 0:
        raise ZeroReserve(f"Cannot price with zero amount (base={base_amount}, quote={quote_amount})")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return float(quote_amount / base_amount)


def price_from_reserves(reserve_base: int, reserve_quote: int, base_decimals: int, quote_decimals: int) -> float:
    """Spot price of one base token in quote tokens, from AMM pool reserves."""
    base_amount = normalize_amount(reserve_base, base_decimals)
    quote_amount = normalize_amount(reserve_quote, quote_decimals)
    return _ratio(quote_amount, base_amount)


def price_from_pair_reserves(
    token0: str,
    token1: str,
    reserve0: int,
    reserve1: int,
    *,
    base_address: str,
    quote_address: str,
    base_decimals: int,
    quote_decimals: int,
) -> float:
    """Prices a pair whose token order is only known from the contract's token0/token1."""
    t0, t1 = token0.lower(), token1.lower()
    base, quote = base_address.lower(), quote_address.lower()

    if t0 == base and t1 == quote:
        return price_from_reserves(reserve0, reserve1, base_decimals, quote_decimals)
    if t0 == quote and t1 == base:
        return price_from_reserves(reserve1, reserve0, base_decimals, quote_decimals)

    raise TokenMismatch(t0, t1)


def price_from_quote(amount_in: int, amount_out: int, base_decimals: int, quote_decimals: int) -> float:
    """Price implied by an aggregator quote of ``amount_in`` base units for ``amount_out`` quote units."""
    base_amount = normalize_amount(amount_in, base_decimals)
    quote_amount = normalize_amount(amount_out, quote_decimals)
    return _ratio(quote_amount, base_amount)


def one_token(decimals: int) -> int:
    """Raw amount representing exactly one whole token."""
    _check_decimals(decimals, "decimals")
    return 10 ** decimals


def round_price(price: float, places: int = 4) -> float:
    return round(price, places)
