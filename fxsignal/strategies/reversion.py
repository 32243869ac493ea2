"""Mean reversion: enter only on an RSI extreme inside the EMA trend."""

from fxsignal.config import SignalConfig
from fxsignal.models import Action, IndicatorSnapshot, Trend


def reversion_action(
    snapshot: IndicatorSnapshot, trend: Trend, config: SignalConfig
) -> Action:
    # Oversold dip in an uptrend, overbought rally in a downtrend.
    if trend is Trend.BULLISH and snapshot.rsi < config.rsi_oversold:
        return Action.BUY
    if trend is Trend.BEARISH and snapshot.rsi > config.rsi_overbought:
        return Action.SELL
    return Action.HOLD
