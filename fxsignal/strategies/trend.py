"""Trend following: trade with the EMA trend unless RSI is stretched."""

from fxsignal.config import SignalConfig
from fxsignal.models import Action, IndicatorSnapshot, Trend


def trend_action(
    snapshot: IndicatorSnapshot, trend: Trend, config: SignalConfig
) -> Action:
    if trend is Trend.BULLISH and snapshot.rsi < config.rsi_overbought:
        return Action.BUY
    if trend is Trend.BEARISH and snapshot.rsi > config.rsi_oversold:
        return Action.SELL
    return Action.HOLD
