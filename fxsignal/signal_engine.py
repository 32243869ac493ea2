"""Deterministic trade signal generation from a single indicator snapshot.

The engine is a pure function of its arguments: it reads no ambient state and
produces a fresh TradeSignal on every call. NaN inputs are not guarded; NaN
comparisons are false, so a malformed snapshot resolves to Hold.
"""

from fxsignal.config import SignalConfig
from fxsignal.models import (
    Action,
    IndicatorSnapshot,
    RiskParameters,
    StrategyChoice,
    TradeSignal,
    Trend,
)
from fxsignal.strategies import get_rule

DEFAULT_CONFIG = SignalConfig()


def classify_trend(snapshot: IndicatorSnapshot) -> Trend:
    """EMA20 above EMA50 is bullish, below is bearish, equal is neutral."""
    if snapshot.ema20 > snapshot.ema50:
        return Trend.BULLISH
    if snapshot.ema20 < snapshot.ema50:
        return Trend.BEARISH
    return Trend.NEUTRAL


def price_levels(
    entry: float, atr: float, action: Action, config: SignalConfig = DEFAULT_CONFIG
) -> tuple[float, float]:
    """Return (stop_loss, take_profit) for an entry price.

    The stop sits atr_multiplier ATRs away from the entry and the target
    risk_reward_ratio times the stop distance on the other side.
    """
    if action is Action.BUY:
        stop_loss = entry - atr * config.atr_multiplier
        take_profit = entry + (entry - stop_loss) * config.risk_reward_ratio
    elif action is Action.SELL:
        stop_loss = entry + atr * config.atr_multiplier
        take_profit = entry - (stop_loss - entry) * config.risk_reward_ratio
    else:
        stop_loss = take_profit = entry
    return stop_loss, take_profit


def pip_multiplier(symbol: str, config: SignalConfig = DEFAULT_CONFIG) -> float:
    """Price-to-pip factor: JPY quotes have two decimals, the rest four."""
    if "JPY" in symbol.upper():
        return config.jpy_pip_multiplier
    return config.pip_multiplier


def calculate_lot_size(
    entry: float,
    stop_loss: float,
    risk: RiskParameters,
    symbol: str = "",
    action: Action = Action.BUY,
    config: SignalConfig = DEFAULT_CONFIG,
) -> float:
    """Size the position so that hitting the stop loses risk_amount."""
    if action is Action.HOLD:
        return 0.0

    stop_loss_pips = abs(entry - stop_loss) * pip_multiplier(symbol, config)
    if stop_loss_pips > 0:
        lot_size = risk.risk_amount / (stop_loss_pips * config.pip_value_per_lot)
    else:
        lot_size = 0.0

    return max(config.min_lot_size, min(lot_size, config.max_lot_size))


def confirmations(snapshot: IndicatorSnapshot, action: Action) -> tuple[bool, bool]:
    """Return (macd_confirmation, bollinger_confirmation).

    Informational only; neither flag changes the signal.
    """
    price = snapshot.current_price
    macd = (
        (action is Action.BUY and snapshot.macd_histogram > 0)
        or (action is Action.SELL and snapshot.macd_histogram < 0)
    )
    bollinger = (
        (action is Action.BUY and price < snapshot.ema20)
        or (action is Action.SELL and price > snapshot.ema20)
    )
    return macd, bollinger


def generate_signal(
    snapshot: IndicatorSnapshot,
    strategy: StrategyChoice | str,
    risk: RiskParameters,
    symbol: str = "",
    config: SignalConfig | None = None,
) -> TradeSignal:
    """Derive a trade signal from one indicator snapshot.

    Args:
        snapshot: Latest indicator values.
        strategy: Which entry rule set to apply.
        risk: Account balance and risk percentage for sizing.
        symbol: Instrument name, only used to detect JPY quotes.
        config: Threshold overrides; defaults to the fixed constants.
    """
    config = config or DEFAULT_CONFIG
    strategy = StrategyChoice.parse(strategy)

    trend = classify_trend(snapshot)
    action = get_rule(strategy)(snapshot, trend, config)

    entry = snapshot.current_price
    stop_loss, take_profit = price_levels(entry, snapshot.atr, action, config)
    lot_size = calculate_lot_size(entry, stop_loss, risk, symbol, action, config)
    macd_ok, bollinger_ok = confirmations(snapshot, action)

    return TradeSignal(
        trend=trend,
        action=action,
        strategy=strategy,
        entry=entry,
        stop_loss=stop_loss,
        take_profit=take_profit,
        lot_size=lot_size,
        macd_confirmation=macd_ok,
        bollinger_confirmation=bollinger_ok,
    )
