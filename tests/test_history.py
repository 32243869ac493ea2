"""Tests for the JSON trade history."""

import json
from datetime import datetime, timezone

import pandas as pd
import pytest

from fxsignal.history import HistoryError, TradeHistory
from fxsignal.models import Action, StrategyChoice, TradeSignal, Trend


def make_signal(strategy=StrategyChoice.TREND, action=Action.BUY):
    return TradeSignal(Trend.BULLISH, action, strategy, 1.1, 1.0985, 1.10225,
                       0.67, True, True)


@pytest.fixture
def history(tmp_path):
    return TradeHistory(tmp_path / "history.json")


class TestAdd:
    def test_newest_first_and_persisted(self, history):
        first = history.add(make_signal(), "EUR/USD", "1H")
        second = history.add(make_signal(), "GBP/USD", "4H")

        assert [e.id for e in history.entries()] == [second.id, first.id]
        assert first.status == "open"

        reloaded = TradeHistory(history.path)
        assert len(reloaded) == 2
        assert reloaded.get(first.id).signal == first.signal

    def test_timestamp_is_iso(self, history):
        ts = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)
        entry = history.add(make_signal(), "EUR/USD", "1H", timestamp=ts)
        assert entry.timestamp == "2024-03-04T09:00:00+00:00"

    def test_file_layout(self, history):
        history.add(make_signal(), "EUR/USD", "1H")
        raw = json.loads(history.path.read_text())
        assert raw[0]["signal"]["action"] == "Buy"
        assert raw[0]["signal"]["strategy"] == "trend"
        assert raw[0]["status"] == "open"


class TestUpdates:
    def test_update_status(self, history):
        entry = history.add(make_signal(), "EUR/USD", "1H")
        history.update_status(entry.id, "won")
        assert TradeHistory(history.path).get(entry.id).status == "won"

    def test_invalid_status(self, history):
        entry = history.add(make_signal(), "EUR/USD", "1H")
        with pytest.raises(ValueError, match="Unknown status"):
            history.update_status(entry.id, "cancelled")

    def test_unknown_id(self, history):
        with pytest.raises(KeyError):
            history.update_status("missing", "won")

    def test_delete_and_clear(self, history):
        a = history.add(make_signal(), "EUR/USD", "1H")
        history.add(make_signal(), "EUR/USD", "1H")
        history.delete(a.id)
        assert len(history) == 1
        history.clear()
        assert len(TradeHistory(history.path)) == 0


class TestQueries:
    def test_filter(self, history):
        history.add(make_signal(StrategyChoice.TREND), "EUR/USD", "1H")
        b = history.add(make_signal(StrategyChoice.BREAKOUT), "EUR/USD", "1H")
        history.add(make_signal(StrategyChoice.BREAKOUT), "USD/JPY", "1H")
        history.update_status(b.id, "lost")

        assert len(history.filter(currency_pair="EUR/USD")) == 2
        assert len(history.filter(strategy="breakout")) == 2
        assert [e.id for e in history.filter("EUR/USD", "breakout", "lost")] == [b.id]
        assert len(history.filter()) == 3

    def test_performance(self, history):
        ids = [history.add(make_signal(), "EUR/USD", "1H").id for _ in range(4)]
        history.update_status(ids[0], "won")
        history.update_status(ids[1], "won")
        history.update_status(ids[2], "lost")

        perf = history.performance()
        assert perf.total == 4
        assert perf.wins == 2
        assert perf.losses == 1
        assert perf.open == 1
        assert perf.win_rate == pytest.approx(200 / 3)

    def test_empty_performance(self, history):
        assert history.performance().win_rate == 0.0

    def test_export_csv(self, history, tmp_path):
        history.add(make_signal(action=Action.SELL), "EUR/USD", "1H")
        path = history.export_csv(tmp_path / "out" / "history.csv")
        df = pd.read_csv(path)
        assert list(df["signal"]) == ["Sell"]
        assert df["lot_size"].iloc[0] == pytest.approx(0.67)


class TestCorruptFile:
    def test_invalid_json(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("{not json")
        with pytest.raises(HistoryError, match="Failed to read"):
            TradeHistory(path)

    def test_empty_file_is_empty_history(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("")
        assert len(TradeHistory(path)) == 0
