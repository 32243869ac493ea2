"""Tests for indicator calculations."""

import numpy as np
import pandas as pd
import pytest

from fxsignal.config import IndicatorParams
from fxsignal.indicators import (
    INDICATOR_COLUMNS,
    add_indicator_columns,
    atr,
    bollinger_bands,
    ema,
    latest_snapshot,
    macd,
    rma,
    rsi,
    snapshot_at,
    true_range,
)
from fxsignal.models import IndicatorSnapshot


@pytest.fixture
def close_series():
    """Sample close prices around 1.10."""
    prices = [
        1.1000, 1.1030, 1.1050, 1.1010, 1.0990, 1.0960, 1.0940, 1.0970, 1.1010, 1.1030,
        1.1050, 1.1080, 1.1110, 1.1100, 1.1070, 1.1040, 1.1010, 1.0980, 1.0950, 1.0990,
        1.1030, 1.1060, 1.1090, 1.1120, 1.1140, 1.1110, 1.1080, 1.1050, 1.1020, 1.1060,
    ]
    index = pd.date_range("2024-01-01", periods=len(prices), freq="h")
    return pd.Series(prices, index=index, dtype=float)


@pytest.fixture
def ohlc(close_series):
    return pd.DataFrame({
        "open": close_series.shift(1).fillna(close_series.iloc[0]),
        "high": close_series + 0.0015,
        "low": close_series - 0.0012,
        "close": close_series,
    })


class TestRMA:
    def test_seeded_with_sma(self, close_series):
        result = rma(close_series, 5)
        assert result.iloc[:4].isna().all()
        assert result.iloc[4] == pytest.approx(close_series.iloc[:5].mean())

    def test_recursive_update(self, close_series):
        result = rma(close_series, 5)
        seed = close_series.iloc[:5].mean()
        expected = 0.2 * close_series.iloc[5] + 0.8 * seed
        assert result.iloc[5] == pytest.approx(expected)

    def test_short_series(self):
        s = pd.Series([1.0, 2.0], index=pd.date_range("2024-01-01", periods=2))
        assert rma(s, 5).isna().all()


class TestEMA:
    def test_seeded_with_sma(self, close_series):
        result = ema(close_series, 5)
        assert result.iloc[:4].isna().all()
        assert result.iloc[4] == pytest.approx(close_series.iloc[:5].mean())

    def test_alpha_differs_from_rma(self, close_series):
        # EMA alpha=2/6, RMA alpha=1/5
        assert ema(close_series, 5).iloc[5] != pytest.approx(rma(close_series, 5).iloc[5])

    def test_keeps_index(self, close_series):
        assert ema(close_series, 3).index.equals(close_series.index)


class TestRSI:
    def test_output_range(self, close_series):
        valid = rsi(close_series, 14).dropna()
        assert not valid.empty
        assert ((valid >= 0) & (valid <= 100)).all()

    def test_valid_after_warmup(self, close_series):
        result = rsi(close_series, 5)
        assert result.iloc[5:].notna().all()

    def test_all_gains_reads_100(self):
        prices = pd.Series(
            np.linspace(1.0, 1.2, 21), index=pd.date_range("2024-01-01", periods=21)
        )
        valid = rsi(prices, 5).dropna()
        assert (valid == 100.0).all()

    def test_all_losses_reads_0(self):
        prices = pd.Series(
            np.linspace(1.2, 1.0, 21), index=pd.date_range("2024-01-01", periods=21)
        )
        valid = rsi(prices, 5).iloc[5:]
        assert valid.to_numpy() == pytest.approx(0.0)


class TestATR:
    def test_true_range_uses_previous_close(self):
        idx = pd.date_range("2024-01-01", periods=2, freq="h")
        high = pd.Series([1.10, 1.12], index=idx)
        low = pd.Series([1.09, 1.115], index=idx)
        close = pd.Series([1.095, 1.118], index=idx)
        tr = true_range(high, low, close)
        assert tr.iloc[0] == pytest.approx(0.01)
        # gap up: high - prev close beats high - low
        assert tr.iloc[1] == pytest.approx(1.12 - 1.095)

    def test_is_rma_of_true_range(self, ohlc):
        result = atr(ohlc["high"], ohlc["low"], ohlc["close"], 5)
        expected = rma(true_range(ohlc["high"], ohlc["low"], ohlc["close"]), 5)
        pd.testing.assert_series_equal(result, expected)
        assert (result.dropna() > 0).all()


class TestMACD:
    def test_returns_three_aligned_series(self, close_series):
        parts = macd(close_series, 5, 10, 3)
        assert len(parts) == 3
        for part in parts:
            assert part.index.equals(close_series.index)

    def test_histogram_is_difference(self, close_series):
        line, signal, hist = macd(close_series, 5, 10, 3)
        mask = line.notna() & signal.notna()
        assert mask.any()
        np.testing.assert_allclose(hist[mask], (line - signal)[mask], atol=1e-12)

    def test_line_is_fast_minus_slow(self, close_series):
        line, _, _ = macd(close_series, 5, 10, 3)
        expected = ema(close_series, 5) - ema(close_series, 10)
        pd.testing.assert_series_equal(line, expected)

    def test_signal_starts_after_line(self, close_series):
        line, signal, _ = macd(close_series, 5, 10, 3)
        first = close_series.index.get_loc(line.first_valid_index())
        assert signal.iloc[: first + 2].isna().all()
        assert signal.iloc[first + 2] == pytest.approx(line.iloc[first:first + 3].mean())


class TestBollingerBands:
    def test_middle_is_sma(self, close_series):
        _, middle, _ = bollinger_bands(close_series, 5, 2.0)
        pd.testing.assert_series_equal(
            middle, close_series.rolling(5).mean(), check_names=False
        )

    def test_bands_symmetric(self, close_series):
        upper, middle, lower = bollinger_bands(close_series, 5, 2.0)
        valid = middle.dropna().index
        np.testing.assert_allclose(
            (upper - middle).loc[valid], (middle - lower).loc[valid]
        )

    def test_uses_population_stdev(self, close_series):
        upper, middle, _ = bollinger_bands(close_series, 5, 2.0)
        expected = middle + 2.0 * close_series.rolling(5).std(ddof=0)
        pd.testing.assert_series_equal(upper, expected, check_names=False)


class TestAddIndicatorColumns:
    def test_adds_every_engine_column(self, ohlc):
        params = IndicatorParams(ema_fast=3, ema_slow=5, rsi_length=3, atr_length=3,
                                 macd_fast=3, macd_slow=6, macd_signal=2, bb_length=5)
        out = add_indicator_columns(ohlc, params)

        for column in INDICATOR_COLUMNS:
            assert column in out.columns
        assert "bb_middle" in out.columns
        assert out[INDICATOR_COLUMNS].iloc[-1].notna().all()

    def test_does_not_mutate_input(self, ohlc):
        before = list(ohlc.columns)
        add_indicator_columns(ohlc)
        assert list(ohlc.columns) == before

    def test_warmup_rows_are_nan(self, ohlc):
        out = add_indicator_columns(ohlc)
        # 30 bars is shorter than the 50-bar EMA
        assert out["ema50"].isna().all()
        assert out["ema20"].iloc[19] == pytest.approx(ohlc["close"].iloc[:20].mean())


class TestSnapshots:
    def test_snapshot_at_maps_columns(self, ohlc):
        out = add_indicator_columns(ohlc, IndicatorParams(ema_slow=10))
        snap = snapshot_at(out, 25)

        assert isinstance(snap, IndicatorSnapshot)
        row = out.iloc[25]
        assert snap.current_price == row["close"]
        assert snap.ema50 == row["ema50"]
        assert snap.bollinger_upper == row["bb_upper"]
        assert snap.bollinger_lower == row["bb_lower"]
        # default MACD signal line is still warming up at bar 25
        assert np.isnan(snap.macd_histogram)

    def test_latest_snapshot_is_last_row(self, ohlc):
        out = add_indicator_columns(ohlc)
        assert latest_snapshot(out).current_price == ohlc["close"].iloc[-1]

    def test_latest_snapshot_empty(self, ohlc):
        with pytest.raises(ValueError, match="empty"):
            latest_snapshot(add_indicator_columns(ohlc).iloc[0:0])
