"""Bar-by-bar replay of the signal engine over historical data."""

import logging

import pandas as pd

from fxsignal.config import BacktestConfig, SignalConfig
from fxsignal.indicators import SNAPSHOT_COLUMNS
from fxsignal.metrics import BacktestResults, calculate_results
from fxsignal.models import (
    Action,
    ActiveTrade,
    BacktestState,
    ClosedTrade,
    IndicatorSnapshot,
    RiskParameters,
    StrategyChoice,
)
from fxsignal.signal_engine import generate_signal

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["high", "low", *SNAPSHOT_COLUMNS.values()]


class InsufficientDataError(ValueError):
    """Raised when a series is too short to backtest."""

    def __init__(self, bars: int, required: int):
        self.bars = bars
        self.required = required
        super().__init__(
            f"Not enough historical data to run a backtest: "
            f"got {bars} bars, need at least {required}."
        )


class BacktestRunner:
    """Simulates one position at a time against historical bars.

    Key behaviors:
    - The signal is built from bar[i-1] (its close is the entry price) and
      the open position is tested against bar[i]'s high/low range
    - Exit is checked before entry on every bar
    - Stop loss is checked before take profit, so a bar touching both is a loss
    - A position still open on the last bar is dropped, not counted
    """

    def __init__(
        self,
        config: BacktestConfig | None = None,
        signal_config: SignalConfig | None = None,
    ):
        self.config = config or BacktestConfig()
        self.signal_config = signal_config or SignalConfig()

    def run(
        self,
        series: pd.DataFrame,
        strategy: StrategyChoice | str,
        risk: RiskParameters,
        symbol: str,
        timeframe: str = "1H",
    ) -> BacktestResults:
        """Run the replay on a frame produced by add_indicator_columns."""
        strategy = StrategyChoice.parse(strategy)
        self._validate(series)

        highs = series["high"].to_numpy(dtype=float)
        lows = series["low"].to_numpy(dtype=float)
        snapshot_values = {
            name: series[column].to_numpy(dtype=float)
            for name, column in SNAPSHOT_COLUMNS.items()
        }
        times = series.index

        state = BacktestState()

        for i in range(1, len(series)):
            if state.active_trade is not None:
                self._check_exit(state, highs[i], lows[i], times[i])

            if state.active_trade is None:
                snapshot = IndicatorSnapshot(**{
                    name: float(values[i - 1])
                    for name, values in snapshot_values.items()
                })
                signal = generate_signal(
                    snapshot, strategy, risk, symbol, self.signal_config
                )
                if signal.is_actionable:
                    state.open(ActiveTrade(
                        signal=signal,
                        direction=signal.action,
                        opened_at=times[i - 1],
                    ))

        if state.active_trade is not None:
            logger.debug(
                "Dropping %s position opened at %s: still open at series end",
                state.active_trade.direction.value,
                state.active_trade.opened_at,
            )

        results = calculate_results(state, symbol, timeframe, len(series))
        logger.info(
            "Backtest %s %s %s: %d trades, net %.2f",
            symbol, timeframe, strategy.value, results.total_trades,
            results.net_profit,
        )
        return results

    def _validate(self, series: pd.DataFrame) -> None:
        if len(series) < self.config.min_bars:
            raise InsufficientDataError(len(series), self.config.min_bars)

        missing = [c for c in REQUIRED_COLUMNS if c not in series.columns]
        if missing:
            raise ValueError(f"Series is missing columns: {missing}")

    def _check_exit(self, state: BacktestState, high: float, low: float, time) -> None:
        trade = state.active_trade
        signal = trade.signal

        if trade.direction is Action.BUY:
            if low <= signal.stop_loss:
                self._close(state, signal.stop_loss, time, won=False)
            elif high >= signal.take_profit:
                self._close(state, signal.take_profit, time, won=True)
        else:
            if high >= signal.stop_loss:
                self._close(state, signal.stop_loss, time, won=False)
            elif low <= signal.take_profit:
                self._close(state, signal.take_profit, time, won=True)

    def _close(self, state: BacktestState, exit_price: float, time, won: bool) -> None:
        trade = state.active_trade
        signal = trade.signal
        amount = (
            abs(exit_price - signal.entry)
            * self.config.contract_multiplier
            * signal.lot_size
        )
        closed = ClosedTrade(
            direction=trade.direction,
            entry_time=trade.opened_at,
            entry_price=signal.entry,
            exit_time=time,
            exit_price=exit_price,
            lot_size=signal.lot_size,
            pnl=amount if won else -amount,
            won=won,
        )
        if won:
            state.record_win(closed)
        else:
            state.record_loss(closed)


def run_backtest(
    series: pd.DataFrame,
    strategy: StrategyChoice | str,
    risk: RiskParameters,
    symbol: str,
    timeframe: str = "1H",
    config: BacktestConfig | None = None,
) -> BacktestResults:
    """Replay a strategy over a historical indicator series.

    Raises:
        InsufficientDataError: If the series has fewer than config.min_bars rows.
    """
    return BacktestRunner(config).run(series, strategy, risk, symbol, timeframe)
