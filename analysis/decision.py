#!/usr/bin/env python3
"""Alert decision engine: decides whether a profit reading is worth a notification.

The engine is a pure function over the current reading, the clock and the
stored ``AlertState``. Callers persist ``advance_state(...)`` only after the
notifier confirms delivery, so a failed send is retried on the next tick.
"""
import math
from typing import Optional

from analysis.models import AlertDecision, AlertState, DecisionReason, PolicyConfig
from errors import ConfigError, InvalidPrice


def validate_policy(policy: PolicyConfig) -> PolicyConfig:
    """Rejects policies the engine cannot evaluate sensibly."""
    for name in ('min_profit_pct', 'profit_step_pct', 'cooldown_seconds', 'big_jump_pct'):
        value = getattr(policy, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ConfigError(f"{name} must be a finite number, got {value!r}")
    if policy.cooldown_seconds < 0:
        raise ConfigError(f"cooldown_seconds must be >= 0, got {policy.cooldown_seconds}")
    if policy.profit_step_pct < 0:
        raise ConfigError(f"profit_step_pct must be >= 0, got {policy.profit_step_pct}")
    if policy.big_jump_pct < policy.profit_step_pct:
        # A bypass smaller than the step would fire before the normal gate does.
        raise ConfigError(
            f"big_jump_pct ({policy.big_jump_pct}) must be >= profit_step_pct ({policy.profit_step_pct})"
        )
    return policy


def decide(profit_pct: float, now: float, state: AlertState, policy: PolicyConfig) -> AlertDecision:
    """Returns the send/suppress decision for ``profit_pct`` observed at ``now``.

    Checks run in a fixed order: minimum threshold, first signal, big jump,
    cooldown, profit step. The order decides ties and must not change.

    The first-signal check only renames an outcome the never-sent sentinel
    already produces: with ``last_sent_profit_pct == -999`` the growth clears
    any realistic ``big_jump_pct``, so the reading would send through the
    big-jump branch anyway. It differs only when ``big_jump_pct`` exceeds
    ``profit_pct + 999``.
    """
    if not math.isfinite(profit_pct):
        raise InvalidPrice(f"Profit must be finite, got {profit_pct!r}")

    if profit_pct < policy.min_profit_pct:
        return AlertDecision(send=False, reason=DecisionReason.BELOW_MINIMUM, profit_pct=profit_pct)

    growth = profit_pct - state.last_sent_profit_pct
    elapsed = now - state.last_sent_at

    def verdict(send: bool, reason: DecisionReason) -> AlertDecision:
        return AlertDecision(send=send, reason=reason, profit_pct=profit_pct, growth=growth, elapsed=elapsed)

    if state.is_initial:
        return verdict(True, DecisionReason.FIRST_QUALIFYING_SIGNAL)

    if growth >= policy.big_jump_pct:
        return verdict(True, DecisionReason.BIG_JUMP)

    if elapsed < policy.cooldown_seconds:
        return verdict(False, DecisionReason.COOLDOWN)

    if growth < policy.profit_step_pct:
        return verdict(False, DecisionReason.INSUFFICIENT_GROWTH)

    return verdict(True, DecisionReason.COOLDOWN_ELAPSED_WITH_GROWTH)


def advance_state(
    state: AlertState,
    profit_pct: float,
    now: float,
    *,
    buy_price: Optional[float] = None,
    sell_price: Optional[float] = None,
) -> AlertState:
    """State to persist once a notification for ``profit_pct`` has been delivered."""
    return state.advanced(profit_pct, now, buy_price=buy_price, sell_price=sell_price)
