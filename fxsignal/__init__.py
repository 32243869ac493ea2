"""Forex signal engine and single-position backtester."""

from fxsignal.engine import BacktestRunner, InsufficientDataError, run_backtest
from fxsignal.metrics import BacktestResults
from fxsignal.models import (
    Action,
    IndicatorSnapshot,
    RiskParameters,
    StrategyChoice,
    TradeSignal,
    Trend,
)
from fxsignal.signal_engine import generate_signal

__version__ = "0.1.0"

__all__ = [
    "Action",
    "BacktestResults",
    "BacktestRunner",
    "IndicatorSnapshot",
    "InsufficientDataError",
    "RiskParameters",
    "StrategyChoice",
    "TradeSignal",
    "Trend",
    "generate_signal",
    "run_backtest",
]
