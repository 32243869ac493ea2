import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class SignalConfig:
    """Fixed thresholds used by the signal engine."""
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    atr_multiplier: float = 1.5
    risk_reward_ratio: float = 1.5
    pip_value_per_lot: float = 10.0  # USD per pip per standard lot
    min_lot_size: float = 0.01
    max_lot_size: float = 100.0
    pip_multiplier: float = 10_000.0
    jpy_pip_multiplier: float = 100.0


@dataclass(frozen=True)
class BacktestConfig:
    """Configuration for the historical replay."""
    min_bars: int = 50
    # Price move to account currency per lot; treats every pair as a
    # 5-decimal quote, JPY included.
    contract_multiplier: float = 100_000.0
    default_bar_count: int = 500


@dataclass(frozen=True)
class IndicatorParams:
    """Parameters for indicator calculations."""
    ema_fast: int = 20
    ema_slow: int = 50
    rsi_length: int = 14
    atr_length: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    bb_length: int = 20
    bb_mult: float = 2.0


@dataclass(frozen=True)
class ProviderConfig:
    """Twelve Data REST settings."""
    base_url: str = "https://api.twelvedata.com"
    timeout: float = 15.0
    decimal_places: int = 5


HOURLY_TIMEFRAMES = ("1H", "4H", "1D", "1W")
TIMEFRAMES = ("1M", "5M", "15M", "30M", "1H", "4H", "1D", "1W")
CURRENCY_PAIRS = (
    "EUR/USD", "GBP/USD", "USD/JPY", "USD/CAD", "USD/CHF", "AUD/USD", "NZD/USD",
)


@dataclass
class Settings:
    """Credentials and paths read from the environment."""
    twelve_data_api_key: str | None = None
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    history_path: Path = field(default_factory=lambda: Path("trade_history.json"))


def load_settings(env_file: str | Path | None = None) -> Settings:
    """Load settings from the process environment and an optional .env file."""
    load_dotenv(env_file)

    api_key = os.environ.get("TWELVE_DATA_API_KEY") or None
    if api_key == "YOUR_TWELVE_DATA_API_KEY":
        api_key = None

    return Settings(
        twelve_data_api_key=api_key,
        telegram_bot_token=os.environ.get("TELEGRAM_BOT_TOKEN") or None,
        telegram_chat_id=os.environ.get("TELEGRAM_CHAT_ID") or None,
        history_path=Path(
            os.environ.get("FXSIGNAL_HISTORY_PATH", "trade_history.json")
        ),
    )
