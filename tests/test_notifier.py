"""Tests for signal message formatting and Telegram delivery."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from fxsignal.models import Action, StrategyChoice, TradeSignal, Trend
from fxsignal.notifier import (
    NotificationError,
    format_signal_message,
    notify_signal,
    send_telegram_message,
    should_notify,
)


@pytest.fixture
def buy_signal():
    return TradeSignal(
        trend=Trend.BULLISH,
        action=Action.BUY,
        strategy=StrategyChoice.TREND,
        entry=1.1,
        stop_loss=1.0985,
        take_profit=1.10225,
        lot_size=0.67,
        macd_confirmation=True,
        bollinger_confirmation=False,
    )


@pytest.fixture
def hold_signal():
    return TradeSignal(Trend.NEUTRAL, Action.HOLD, StrategyChoice.REVERSION,
                       1.1, 1.1, 1.1, 0.0, False, False)


def telegram_session(ok=True, payload=None, status_code=200):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.text = "Bad Request"
    response.json.return_value = payload if payload is not None else {"ok": True}
    session = MagicMock()
    session.post.return_value = response
    return session


class TestFormatMessage:
    def test_contains_levels_and_analysis(self, buy_signal):
        now = datetime(2024, 3, 4, 9, 30, tzinfo=timezone.utc)
        text = format_signal_message(buy_signal, "EUR/USD", "1H", "live", now=now)

        assert "*New Signal: EUR/USD (1H)*" in text
        assert "Trend Following" in text
        assert "Buy 📈" in text
        assert "`1.10000`" in text
        assert "`1.09850`" in text
        assert "`1.10225`" in text
        assert "*Risk/Reward Ratio:* 1.50" in text
        assert "*Lot Size:* 0.67" in text
        assert "*MACD:* Confirmed ✅" in text
        assert "*Bollinger:* Divergent ❌" in text
        assert "✅ Live" in text
        assert "03/04 09:30" in text

    def test_zero_risk_shows_na(self, hold_signal):
        text = format_signal_message(hold_signal, "EUR/USD", "4H", "mock")
        assert "N/A" in text
        assert "⚠️ Mock" in text


class TestShouldNotify:
    def test_actionable_live_hourly(self, buy_signal):
        assert should_notify(buy_signal, "4H", "live")
        assert should_notify(buy_signal, "1d", "live")

    def test_skips_minute_timeframes(self, buy_signal):
        assert not should_notify(buy_signal, "15M", "live")

    def test_skips_mock_data(self, buy_signal):
        assert not should_notify(buy_signal, "1H", "mock")

    def test_skips_hold(self, hold_signal):
        assert not should_notify(hold_signal, "1H", "live")


class TestSendTelegramMessage:
    def test_posts_markdown(self):
        session = telegram_session()
        send_telegram_message("hello", "TOKEN", "42", session=session)

        url = session.post.call_args.args[0]
        body = session.post.call_args.kwargs["json"]
        assert url == "https://api.telegram.org/botTOKEN/sendMessage"
        assert body == {"chat_id": "42", "text": "hello", "parse_mode": "Markdown"}

    def test_requires_credentials(self):
        with pytest.raises(NotificationError):
            send_telegram_message("hello", "", "42", session=telegram_session())

    def test_http_error(self):
        session = telegram_session(ok=False, status_code=400)
        with pytest.raises(NotificationError, match="400"):
            send_telegram_message("hello", "TOKEN", "42", session=session)

    def test_api_rejection(self):
        session = telegram_session(payload={"ok": False, "description": "chat not found"})
        with pytest.raises(NotificationError, match="chat not found"):
            send_telegram_message("hello", "TOKEN", "42", session=session)

    def test_network_error(self):
        session = MagicMock()
        session.post.side_effect = requests.Timeout("slow")
        with pytest.raises(NotificationError, match="slow"):
            send_telegram_message("hello", "TOKEN", "42", session=session)


class TestNotifySignal:
    def test_sends_qualifying_signal(self, buy_signal):
        session = telegram_session()
        assert notify_signal(buy_signal, "EUR/USD", "1H", "live", "TOKEN", "42", session)
        session.post.assert_called_once()

    def test_skips_without_credentials(self, buy_signal):
        session = telegram_session()
        assert not notify_signal(buy_signal, "EUR/USD", "1H", "live", None, "42", session)
        session.post.assert_not_called()

    def test_skips_non_qualifying(self, buy_signal):
        session = telegram_session()
        assert not notify_signal(buy_signal, "EUR/USD", "5M", "live", "TOKEN", "42", session)
        session.post.assert_not_called()

    def test_failure_is_logged(self, buy_signal, caplog):
        session = telegram_session(ok=False, status_code=500)
        assert not notify_signal(buy_signal, "EUR/USD", "1H", "live", "TOKEN", "42", session)
        assert "Failed to send Telegram message" in caplog.text
