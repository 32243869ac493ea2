"""Signal formatting and Telegram delivery."""

import logging
from datetime import datetime, timezone

import requests

from fxsignal.config import HOURLY_TIMEFRAMES
from fxsignal.models import Action, TradeSignal

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"
SOURCE_LABELS = {"live": "✅ Live", "mock": "⚠️ Mock", "csv": "📄 CSV"}


class NotificationError(RuntimeError):
    """Raised when a message could not be delivered."""


def format_signal_message(
    signal: TradeSignal,
    currency_pair: str,
    timeframe: str,
    source: str = "live",
    now: datetime | None = None,
) -> str:
    """Render a signal as a Telegram Markdown message."""
    rrr = signal.risk_reward_ratio
    rrr_text = f"{rrr:.2f}" if rrr is not None else "N/A"
    source_text = SOURCE_LABELS.get(source, source.title())
    direction_emoji = "📈" if signal.action is Action.BUY else "📉"
    now = now or datetime.now(timezone.utc)

    def mark(flag: bool) -> str:
        return "Confirmed ✅" if flag else "Divergent ❌"

    rule = "-" * 40
    return "\n".join([
        f"*New Signal: {currency_pair} ({timeframe})*",
        f"*Strategy:* {signal.strategy.label}",
        f"*Direction:* {signal.action.value} {direction_emoji}",
        rule,
        f"- *Entry:* `{signal.entry:.5f}`",
        f"- *Stop Loss:* `{signal.stop_loss:.5f}`",
        f"- *Take Profit:* `{signal.take_profit:.5f}`",
        rule,
        f"*Risk/Reward Ratio:* {rrr_text}",
        f"*Lot Size:* {signal.lot_size:.2f}",
        rule,
        "*Analysis:*",
        f"- *Trend:* {signal.trend.value}",
        f"- *MACD:* {mark(signal.macd_confirmation)}",
        f"- *Bollinger:* {mark(signal.bollinger_confirmation)}",
        f"- *Data:* {source_text}",
        "",
        f"*Generated: {now:%m/%d %H:%M}*",
    ])


def should_notify(signal: TradeSignal, timeframe: str, source: str) -> bool:
    """Only actionable signals on live data and hourly-or-longer timeframes."""
    return (
        signal.is_actionable
        and source == "live"
        and timeframe.upper() in HOURLY_TIMEFRAMES
    )


def send_telegram_message(
    text: str,
    bot_token: str,
    chat_id: str,
    session: requests.Session | None = None,
    timeout: float = 10.0,
) -> None:
    """Post a Markdown message through the Telegram Bot API."""
    if not bot_token or not chat_id:
        raise NotificationError("Telegram bot token and chat id are required")

    http = session or requests
    url = f"{TELEGRAM_API_URL}/bot{bot_token}/sendMessage"
    try:
        response = http.post(
            url,
            json={"chat_id": chat_id, "text": text, "parse_mode": "Markdown"},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise NotificationError(f"Telegram request failed: {exc}") from exc

    if not response.ok:
        raise NotificationError(
            f"Telegram API error ({response.status_code}): {response.text}"
        )
    payload = response.json()
    if not payload.get("ok", False):
        raise NotificationError(
            f"Telegram API error: {payload.get('description', payload)}"
        )


def notify_signal(
    signal: TradeSignal,
    currency_pair: str,
    timeframe: str,
    source: str,
    bot_token: str | None,
    chat_id: str | None,
    session: requests.Session | None = None,
) -> bool:
    """Send a signal if it qualifies; delivery failures are logged, not raised.

    Returns True when a message was delivered.
    """
    if not bot_token or not chat_id or not should_notify(signal, timeframe, source):
        return False

    message = format_signal_message(signal, currency_pair, timeframe, source)
    try:
        send_telegram_message(message, bot_token, chat_id, session=session)
    except NotificationError as exc:
        logger.error("Failed to send Telegram message: %s", exc)
        return False
    return True
