"""Backtest statistics and the printable report."""

from dataclasses import dataclass

from fxsignal.models import BacktestState, ClosedTrade


@dataclass(frozen=True)
class BacktestResults:
    """Aggregated outcome of one backtest run."""
    currency_pair: str
    timeframe: str
    total_trades: int
    wins: int
    losses: int
    win_rate: float  # percent
    net_profit: float
    avg_win: float
    avg_loss: float
    bars_analyzed: int
    trades: tuple[ClosedTrade, ...] = ()
    # A position still open on the last bar is dropped, not counted.
    unclosed_trades: int = 0

    @property
    def is_profitable(self) -> bool:
        return self.net_profit > 0

    def format_report(self) -> str:
        """Human-readable performance report."""
        verdict = "Profitable" if self.is_profitable else "Not Profitable"
        lines = [
            "=" * 50,
            f"  BACKTEST: {self.currency_pair} ({self.timeframe})",
            "=" * 50,
            f"  Result:              {verdict}",
            f"  Net Profit:          ${self.net_profit:>12,.2f}",
            f"  Total Trades:        {self.total_trades:>8d}",
            f"  Trades Won:          {self.wins:>8d}",
            f"  Trades Lost:         {self.losses:>8d}",
            f"  Win Rate:            {self.win_rate:>8.1f}%",
            f"  Average Win:         ${self.avg_win:>12,.2f}",
            f"  Average Loss:        ${self.avg_loss:>12,.2f}",
            f"  Bars Analyzed:       {self.bars_analyzed:>8d}",
        ]
        if self.unclosed_trades:
            lines.append(f"  Open at End (excl.): {self.unclosed_trades:>8d}")
        lines.append("=" * 50)
        return "\n".join(lines)


def calculate_results(
    state: BacktestState,
    currency_pair: str,
    timeframe: str,
    bars_analyzed: int,
) -> BacktestResults:
    """Aggregate the counters of a finished run."""
    total_trades = state.wins + state.losses
    win_rate = (state.wins / total_trades) * 100.0 if total_trades > 0 else 0.0
    avg_win = state.total_win_amount / state.wins if state.wins > 0 else 0.0
    avg_loss = state.total_loss_amount / state.losses if state.losses > 0 else 0.0

    return BacktestResults(
        currency_pair=currency_pair,
        timeframe=timeframe,
        total_trades=total_trades,
        wins=state.wins,
        losses=state.losses,
        win_rate=win_rate,
        net_profit=state.total_win_amount - state.total_loss_amount,
        avg_win=avg_win,
        avg_loss=avg_loss,
        bars_analyzed=bars_analyzed,
        trades=tuple(state.trades),
        unclosed_trades=1 if state.active_trade is not None else 0,
    )
