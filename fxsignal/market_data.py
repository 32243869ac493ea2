"""Historical bars from the Twelve Data REST API, with a mock fallback.

Indicators are computed locally from the fetched OHLC bars, so one request
per symbol is enough for both backtesting and the live snapshot.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import numpy as np
import pandas as pd
import requests
from requests.adapters import HTTPAdapter

from fxsignal.config import IndicatorParams, ProviderConfig
from fxsignal.indicators import add_indicator_columns, latest_snapshot
from fxsignal.models import IndicatorSnapshot

logger = logging.getLogger(__name__)

INTERVALS = {
    "1M": "1min", "5M": "5min", "15M": "15min", "30M": "30min",
    "1H": "1h", "4H": "4h", "1D": "1day", "1W": "1week",
}
TIMEFRAME_FREQ = {
    "1M": "1min", "5M": "5min", "15M": "15min", "30M": "30min",
    "1H": "1h", "4H": "4h", "1D": "1D", "1W": "7D",
}
BASE_PRICES = {
    "EUR/USD": 1.08,
    "GBP/USD": 1.27,
    "USD/JPY": 157.0,
    "USD/CAD": 1.36,
}
DEFAULT_BASE_PRICE = 1.2

MarketDataSource = Literal["live", "mock", "csv"]


class MarketDataError(RuntimeError):
    """Raised when the data provider rejects or fails a request."""


@dataclass
class MarketData:
    series: pd.DataFrame
    source: MarketDataSource

    @property
    def latest(self) -> IndicatorSnapshot:
        return latest_snapshot(self.series)


def to_interval(timeframe: str) -> str:
    """Map a UI timeframe like '4H' to a Twelve Data interval."""
    return INTERVALS.get(timeframe.upper(), "1h")


def make_session(retries: int = 3) -> requests.Session:
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class TwelveDataClient:
    """Minimal client for the time_series endpoint."""

    def __init__(
        self,
        api_key: str,
        config: ProviderConfig | None = None,
        session: requests.Session | None = None,
    ):
        if not api_key:
            raise MarketDataError("Twelve Data API key is not configured.")
        self.api_key = api_key
        self.config = config or ProviderConfig()
        self.session = session or make_session()

    def _get(self, endpoint: str, params: dict) -> dict:
        url = f"{self.config.base_url}/{endpoint}"
        query = {**params, "apikey": self.api_key}
        try:
            response = self.session.get(url, params=query, timeout=self.config.timeout)
        except requests.RequestException as exc:
            raise MarketDataError(f"Request to {endpoint} failed: {exc}") from exc

        if not response.ok:
            raise MarketDataError(
                f"Failed to fetch data from Twelve Data. Status: {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise MarketDataError(f"Twelve Data returned a non-JSON response: {exc}") from exc

        code = data.get("code")
        if data.get("status") == "error" or (code is not None and not 200 <= code < 300):
            raise MarketDataError(data.get("message") or "Twelve Data returned an error")
        return data

    def time_series(self, symbol: str, timeframe: str, bars: int) -> pd.DataFrame:
        """Fetch OHLC bars, oldest first."""
        data = self._get("time_series", {
            "symbol": symbol,
            "interval": to_interval(timeframe),
            "outputsize": str(bars),
            "dp": str(self.config.decimal_places),
            "timezone": "UTC",
        })
        values = data.get("values") or []
        if not values:
            raise MarketDataError(f"Time series data is empty for {symbol}.")
        try:
            return values_to_dataframe(values)
        except (KeyError, ValueError, TypeError) as exc:
            raise MarketDataError(f"Malformed time series for {symbol}: {exc!r}") from exc


def values_to_dataframe(values: list[dict]) -> pd.DataFrame:
    """Convert Twelve Data 'values' rows (newest first, strings) to a frame.

    Raises KeyError when a row lacks the time or an OHLC field.
    """
    df = pd.DataFrame(values)
    df["datetime"] = pd.to_datetime(df["datetime"])
    df = df.set_index("datetime").sort_index()
    df.index.name = "time"

    columns = ["open", "high", "low", "close"] + (["volume"] if "volume" in df.columns else [])
    df = df[columns].astype(float)
    return df[~df.index.duplicated(keep="first")]


def generate_mock_bars(
    symbol: str,
    bars: int,
    timeframe: str = "1H",
    seed: int | None = None,
    end: pd.Timestamp | None = None,
) -> pd.DataFrame:
    """Random-walk OHLC bars around a plausible price for the pair."""
    rng = np.random.default_rng(seed)
    base = BASE_PRICES.get(symbol, DEFAULT_BASE_PRICE)
    volatility = 0.005

    start_price = base * (1 + (rng.random() - 0.5) * 0.05)
    moves = (rng.random(bars) - 0.49) * volatility
    close = start_price * np.cumprod(1 + moves)
    open_ = np.concatenate([[start_price], close[:-1]])
    wick = np.abs(rng.normal(0.0, volatility / 4, size=(2, bars))) * close
    high = np.maximum(open_, close) + wick[0]
    low = np.minimum(open_, close) - wick[1]

    freq = TIMEFRAME_FREQ.get(timeframe.upper(), "1h")
    end = end if end is not None else pd.Timestamp.now(tz="UTC").floor(freq)
    index = pd.date_range(end=end, periods=bars, freq=freq, name="time")

    return pd.DataFrame(
        {"open": open_, "high": high, "low": low, "close": close}, index=index
    )


def get_historical_series(
    symbol: str,
    timeframe: str,
    bars: int,
    api_key: str | None = None,
    allow_mock: bool = True,
    client: TwelveDataClient | None = None,
    params: IndicatorParams | None = None,
) -> MarketData:
    """Fetch bars and add indicator columns, falling back to mock data.

    Raises:
        MarketDataError: If the provider fails and allow_mock is False.
    """
    try:
        client = client or TwelveDataClient(api_key or "")
        bars_df = client.time_series(symbol, timeframe, bars)
        source: MarketDataSource = "live"
    except MarketDataError as exc:
        if not allow_mock:
            raise
        logger.warning("Market data unavailable for %s (%s); using mock data", symbol, exc)
        bars_df = generate_mock_bars(symbol, bars, timeframe)
        source = "mock"

    return MarketData(series=add_indicator_columns(bars_df, params), source=source)


def get_latest_indicators(series: pd.DataFrame) -> IndicatorSnapshot:
    """Indicator snapshot of the newest bar in a series."""
    return latest_snapshot(series)


def sanitize_symbol(symbol: str) -> str:
    """'EUR/USD' -> 'EUR_USD'"""
    return symbol.replace("/", "_").replace(":", "_")


def save_to_csv(df: pd.DataFrame, symbol: str, data_dir: str | Path = "data") -> Path:
    """Save OHLC bars in the layout load_csv reads."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)

    filepath = data_dir / f"{sanitize_symbol(symbol)}.csv"
    df[[c for c in ("open", "high", "low", "close", "volume") if c in df.columns]].to_csv(
        filepath, index=True
    )
    return filepath
