"""Entry rule sets keyed by strategy choice.

Each rule maps an indicator snapshot and its classified trend to an action.
Rules only decide direction; price levels and sizing are computed by the
signal engine.
"""

from typing import Callable

from fxsignal.config import SignalConfig
from fxsignal.models import Action, IndicatorSnapshot, StrategyChoice, Trend
from fxsignal.strategies.breakout import breakout_action
from fxsignal.strategies.reversion import reversion_action
from fxsignal.strategies.trend import trend_action

ActionRule = Callable[[IndicatorSnapshot, Trend, SignalConfig], Action]

STRATEGY_RULES: dict[StrategyChoice, ActionRule] = {
    StrategyChoice.TREND: trend_action,
    StrategyChoice.REVERSION: reversion_action,
    StrategyChoice.BREAKOUT: breakout_action,
}


def get_rule(strategy: StrategyChoice | str) -> ActionRule:
    """Return the action rule for a strategy."""
    return STRATEGY_RULES[StrategyChoice.parse(strategy)]


__all__ = ["ActionRule", "STRATEGY_RULES", "get_rule"]
