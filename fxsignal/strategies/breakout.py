"""Breakout: follow a close outside the Bollinger envelope."""

from fxsignal.config import SignalConfig
from fxsignal.models import Action, IndicatorSnapshot, Trend


def breakout_action(
    snapshot: IndicatorSnapshot, trend: Trend, config: SignalConfig
) -> Action:
    """Ignores the EMA trend; only band position matters."""
    if snapshot.current_price > snapshot.bollinger_upper:
        return Action.BUY
    if snapshot.current_price < snapshot.bollinger_lower:
        return Action.SELL
    return Action.HOLD
