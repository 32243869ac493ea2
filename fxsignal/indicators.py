"""Technical indicators computed the way charting platforms do.

Moving averages are seeded with the SMA of the first `length` values and then
updated recursively, so the first `length - 1` outputs are NaN. Every
function takes and returns pandas Series aligned to the input index.
"""

import numpy as np
import pandas as pd

from fxsignal.config import IndicatorParams
from fxsignal.models import IndicatorSnapshot

# Snapshot field -> series column
SNAPSHOT_COLUMNS = {
    "current_price": "close",
    "ema20": "ema20",
    "ema50": "ema50",
    "rsi": "rsi",
    "atr": "atr",
    "macd_histogram": "macd_hist",
    "bollinger_upper": "bb_upper",
    "bollinger_lower": "bb_lower",
}

INDICATOR_COLUMNS = ["ema20", "ema50", "rsi", "atr", "macd_hist", "bb_upper", "bb_lower"]


def _seeded_smoothing(series: pd.Series, length: int, alpha: float) -> pd.Series:
    values = series.to_numpy(dtype=float)
    result = np.full_like(values, np.nan)

    if length < 1 or len(values) < length:
        return pd.Series(result, index=series.index)

    result[length - 1] = np.mean(values[:length])
    for i in range(length, len(values)):
        result[i] = alpha * values[i] + (1.0 - alpha) * result[i - 1]

    return pd.Series(result, index=series.index)


def rma(series: pd.Series, length: int) -> pd.Series:
    """Wilder's moving average, alpha = 1 / length."""
    return _seeded_smoothing(series, length, 1.0 / length)


def ema(series: pd.Series, length: int) -> pd.Series:
    """Exponential moving average, alpha = 2 / (length + 1)."""
    return _seeded_smoothing(series, length, 2.0 / (length + 1))


def rsi(close: pd.Series, length: int = 14) -> pd.Series:
    """Relative strength index with Wilder smoothing of gains and losses.

    A window with no losses reads 100.
    """
    delta = close.diff()
    gain = delta.where(delta > 0, 0.0)
    loss = (-delta).where(delta < 0, 0.0)

    avg_gain = rma(gain, length)
    avg_loss = rma(loss, length)

    value = 100.0 - (100.0 / (1.0 + avg_gain / avg_loss))
    return value.where(avg_loss != 0, 100.0)


def true_range(high: pd.Series, low: pd.Series, close: pd.Series) -> pd.Series:
    prev_close = close.shift(1)
    ranges = pd.concat(
        [high - low, (high - prev_close).abs(), (low - prev_close).abs()], axis=1
    )
    return ranges.max(axis=1)


def atr(high: pd.Series, low: pd.Series, close: pd.Series, length: int = 14) -> pd.Series:
    """Average true range: RMA of the true range."""
    return rma(true_range(high, low, close), length)


def macd(
    close: pd.Series, fast: int = 12, slow: int = 26, signal_len: int = 9
) -> tuple[pd.Series, pd.Series, pd.Series]:
    """Return (macd_line, signal_line, histogram).

    The signal EMA starts where the MACD line first becomes valid.
    """
    macd_line = ema(close, fast) - ema(close, slow)
    signal_line = pd.Series(np.nan, index=close.index)

    first_valid = macd_line.first_valid_index()
    if first_valid is not None:
        tail = macd_line.loc[first_valid:]
        signal_line.loc[tail.index] = ema(tail, signal_len)

    return macd_line, signal_line, macd_line - signal_line


def bollinger_bands(
    close: pd.Series, length: int = 20, mult: float = 2.0
) -> tuple[pd.Series, pd.Series, pd.Series]:
    """Return (upper, middle, lower) using SMA and population stdev."""
    middle = close.rolling(window=length).mean()
    width = mult * close.rolling(window=length).std(ddof=0)
    return middle + width, middle, middle - width


def add_indicator_columns(
    df: pd.DataFrame, params: IndicatorParams | None = None
) -> pd.DataFrame:
    """Return a copy of an OHLC frame with every column the engine reads.

    Warm-up rows keep NaN values; the signal engine resolves them to Hold.
    """
    params = params or IndicatorParams()
    out = df.copy()
    close = out["close"].astype(float)

    out["ema20"] = ema(close, params.ema_fast)
    out["ema50"] = ema(close, params.ema_slow)
    out["rsi"] = rsi(close, params.rsi_length)
    out["atr"] = atr(out["high"].astype(float), out["low"].astype(float), close,
                     params.atr_length)
    _, _, out["macd_hist"] = macd(
        close, params.macd_fast, params.macd_slow, params.macd_signal
    )
    out["bb_upper"], out["bb_middle"], out["bb_lower"] = bollinger_bands(
        close, params.bb_length, params.bb_mult
    )
    return out


def snapshot_at(series: pd.DataFrame, position: int) -> IndicatorSnapshot:
    """Build an IndicatorSnapshot from the row at an integer position."""
    row = series.iloc[position]
    return IndicatorSnapshot(**{
        field: float(row[column]) for field, column in SNAPSHOT_COLUMNS.items()
    })


def latest_snapshot(series: pd.DataFrame) -> IndicatorSnapshot:
    """Snapshot of the most recent bar."""
    if series.empty:
        raise ValueError("Cannot build a snapshot from an empty series")
    return snapshot_at(series, -1)
