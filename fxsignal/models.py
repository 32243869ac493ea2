"""Value types shared by the signal engine and the backtest runner."""

from dataclasses import asdict, dataclass, field
from enum import Enum


class StrategyChoice(str, Enum):
    """Entry rule set applied by the signal engine."""
    TREND = "trend"
    REVERSION = "reversion"
    BREAKOUT = "breakout"

    @classmethod
    def parse(cls, value: "str | StrategyChoice") -> "StrategyChoice":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ValueError(
                f"Unknown strategy: {value!r}. Expected one of: {choices}"
            ) from None

    @property
    def label(self) -> str:
        return {
            StrategyChoice.TREND: "Trend Following",
            StrategyChoice.REVERSION: "Mean Reversion",
            StrategyChoice.BREAKOUT: "Breakout",
        }[self]


class Trend(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class Action(str, Enum):
    BUY = "Buy"
    SELL = "Sell"
    HOLD = "Hold"


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Technical indicator values for a single instant."""
    current_price: float
    ema20: float
    ema50: float
    rsi: float
    atr: float
    macd_histogram: float
    bollinger_upper: float
    bollinger_lower: float


@dataclass(frozen=True)
class RiskParameters:
    """Account risk settings, used only for position sizing."""
    account_balance: float
    risk_percentage: float

    def __post_init__(self):
        if not self.account_balance > 0:
            raise ValueError(
                f"account_balance must be positive, got {self.account_balance}"
            )
        if not 0 < self.risk_percentage <= 100:
            raise ValueError(
                f"risk_percentage must be in (0, 100], got {self.risk_percentage}"
            )

    @property
    def risk_amount(self) -> float:
        return self.account_balance * (self.risk_percentage / 100.0)


@dataclass(frozen=True)
class TradeSignal:
    """Recommendation produced by the signal engine."""
    trend: Trend
    action: Action
    strategy: StrategyChoice
    entry: float
    stop_loss: float
    take_profit: float
    lot_size: float
    macd_confirmation: bool
    bollinger_confirmation: bool

    @property
    def is_actionable(self) -> bool:
        return self.action is not Action.HOLD

    @property
    def risk_reward_ratio(self) -> float | None:
        """Reward-to-risk multiple, or None when the stop sits on the entry."""
        risk = self.entry - self.stop_loss
        if risk == 0:
            return None
        return abs((self.take_profit - self.entry) / risk)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["trend"] = self.trend.value
        data["action"] = self.action.value
        data["strategy"] = self.strategy.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "TradeSignal":
        return cls(
            trend=Trend(data["trend"]),
            action=Action(data["action"]),
            strategy=StrategyChoice.parse(data["strategy"]),
            entry=float(data["entry"]),
            stop_loss=float(data["stop_loss"]),
            take_profit=float(data["take_profit"]),
            lot_size=float(data["lot_size"]),
            macd_confirmation=bool(data["macd_confirmation"]),
            bollinger_confirmation=bool(data["bollinger_confirmation"]),
        )


@dataclass(frozen=True)
class ClosedTrade:
    """Record of a simulated trade closed at its stop or target."""
    direction: Action
    entry_time: object
    entry_price: float
    exit_time: object
    exit_price: float
    lot_size: float
    pnl: float  # signed, in account currency
    won: bool


@dataclass(frozen=True)
class ActiveTrade:
    signal: TradeSignal
    direction: Action
    opened_at: object = None


@dataclass
class BacktestState:
    """Mutable bookkeeping for one backtest run."""
    active_trade: ActiveTrade | None = None
    wins: int = 0
    losses: int = 0
    total_win_amount: float = 0.0
    total_loss_amount: float = 0.0
    trades: list[ClosedTrade] = field(default_factory=list)

    def open(self, trade: ActiveTrade) -> None:
        if self.active_trade is not None:
            raise RuntimeError("A position is already open")
        self.active_trade = trade

    def record_win(self, trade: ClosedTrade) -> None:
        self.wins += 1
        self.total_win_amount += abs(trade.pnl)
        self.trades.append(trade)
        self.active_trade = None

    def record_loss(self, trade: ClosedTrade) -> None:
        self.losses += 1
        self.total_loss_amount += abs(trade.pnl)
        self.trades.append(trade)
        self.active_trade = None
