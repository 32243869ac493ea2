"""Read OHLC bars from CSV exports (broker, charting or Twelve Data)."""

from pathlib import Path

import pandas as pd

from fxsignal.config import IndicatorParams
from fxsignal.indicators import add_indicator_columns

TIME_COLUMNS = ("time", "datetime", "date", "timestamp")
COLUMN_ALIASES = {
    "o": "open", "h": "high", "l": "low", "c": "close",
    "v": "volume", "vol": "volume", "tick_volume": "volume",
}
OHLC_COLUMNS = ["open", "high", "low", "close"]


def load_csv(filepath: str | Path) -> pd.DataFrame:
    """Load a CSV of bars into a frame indexed by time, oldest first.

    Column names are matched case-insensitively.
    """
    filepath = Path(filepath)
    df = pd.read_csv(filepath)
    df.columns = df.columns.str.strip().str.lower()

    time_col = next((c for c in TIME_COLUMNS if c in df.columns), None)
    if time_col is None:
        raise ValueError(
            f"No date/time column found in {filepath}. "
            f"Expected one of: {', '.join(TIME_COLUMNS)}. "
            f"Got: {list(df.columns)}"
        )

    df[time_col] = pd.to_datetime(df[time_col])
    df = df.set_index(time_col).sort_index()
    df.index.name = "time"

    return df.rename(columns=COLUMN_ALIASES)


def load_all_csvs(data_dir: str | Path) -> dict[str, pd.DataFrame]:
    """Load every CSV in a directory, keyed by file stem."""
    return {
        path.stem: load_csv(path)
        for path in sorted(Path(data_dir).glob("*.csv"))
    }


def load_series(
    filepath: str | Path, params: IndicatorParams | None = None
) -> pd.DataFrame:
    """Load a CSV and add the indicator columns the backtest reads."""
    return add_indicator_columns(load_csv(filepath), params)


def validate_ohlcv(df: pd.DataFrame) -> list[str]:
    """Validate OHLC data, returning a list of issues found."""
    issues = []

    missing = [c for c in OHLC_COLUMNS if c not in df.columns]
    if missing:
        return [f"Missing columns: {missing}"]

    for col in OHLC_COLUMNS:
        nan_count = int(df[col].isna().sum())
        if nan_count:
            issues.append(f"Column '{col}' has {nan_count} NaN values")

    bad_hl = int((df["high"] < df["low"]).sum())
    if bad_hl:
        issues.append(f"{bad_hl} bars where high < low")

    non_positive = int((df[OHLC_COLUMNS] <= 0).any(axis=1).sum())
    if non_positive:
        issues.append(f"{non_positive} bars with non-positive prices")

    if not df.index.is_monotonic_increasing:
        issues.append("Date index is not monotonically increasing")
    if df.index.has_duplicates:
        issues.append("Date index has duplicate timestamps")

    return issues
