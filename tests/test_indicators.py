import numpy as np
import pandas as pd
import pytest

from indicators import (
    align_to_length,
    build_synthetic_ohlc,
    compute_adx,
    compute_rsi,
    derivative01,
    directional_indicators,
    signed_adx,
)
from models import OHLCSeries


def _first_finite(values: np.ndarray) -> int:
    return int(np.flatnonzero(np.isfinite(values))[0])


# ── Synthetic OHLC ──────────────────────────────────────────────────────────

def test_synthetic_ohlc_wiggle_rule():
    ohlc = build_synthetic_ohlc([100.0, 104.0, 103.0])
    np.testing.assert_allclose(ohlc.open, [100.0, 100.0, 104.0])
    np.testing.assert_allclose(ohlc.high, [100.2, 105.0, 104.25])
    np.testing.assert_allclose(ohlc.low, [99.8, 99.0, 102.75])
    np.testing.assert_allclose(ohlc.close, [100.0, 104.0, 103.0])


def test_synthetic_ohlc_brackets_open_and_close(daily_close):
    ohlc = build_synthetic_ohlc(daily_close)
    assert len(ohlc) == len(daily_close)
    assert (ohlc.high >= np.maximum(ohlc.open, ohlc.close)).all()
    assert (ohlc.low <= np.minimum(ohlc.open, ohlc.close)).all()


def test_synthetic_ohlc_empty_and_read_only():
    assert len(build_synthetic_ohlc([])) == 0
    source = np.array([10.0, 11.0])
    ohlc = build_synthetic_ohlc(source)
    with pytest.raises(ValueError):
        ohlc.high[0] = 1.0
    source[0] = 99.0  # caller's array is still writable and not shared
    assert ohlc.close[0] == 10.0


def test_ohlc_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        OHLCSeries(open=[1, 2], high=[1, 2], low=[1], close=[1, 2])


def test_ohlc_from_frame():
    frame = pd.DataFrame({"Open": [1.0, 2.0], "High": [3.0, 4.0], "Low": [0.5, 1.5], "Close": [2.0, 3.0]})
    ohlc = OHLCSeries.from_frame(frame)
    np.testing.assert_array_equal(ohlc.high, [3.0, 4.0])


# ── RSI ─────────────────────────────────────────────────────────────────────

def test_rsi_wilder_recursion_by_hand():
    rsi = compute_rsi([10, 11, 10, 12, 12], period=2)
    assert np.isnan(rsi[:2]).all()
    assert rsi[2] == pytest.approx(50.0)
    # avg gain 1.25 / avg loss 0.25, then 0.625 / 0.125
    assert rsi[3] == pytest.approx(100 * 1.25 / 1.5)
    assert rsi[4] == pytest.approx(100 * 0.625 / 0.75)


@pytest.mark.parametrize("period", [2, 5, 14, 30])
def test_rsi_length_and_warmup(daily_close, period):
    rsi = compute_rsi(daily_close, period)
    assert len(rsi) == len(daily_close)
    assert np.isnan(rsi[:period]).all()
    assert np.isfinite(rsi[period:]).all()


def test_rsi_bounded(daily_close):
    rsi = compute_rsi(daily_close)
    finite = rsi[np.isfinite(rsi)]
    assert (finite >= 0).all() and (finite <= 100 + 1e-9).all()


def test_rsi_flat_market_reads_fifty(flat_prices):
    rsi = compute_rsi(flat_prices, 14)
    assert rsi[14] == 50.0
    assert (rsi[14:] == 50.0).all()


def test_rsi_all_gains_reads_hundred(rising_prices):
    rsi = compute_rsi(rising_prices, 14)
    np.testing.assert_allclose(rsi[14:], 100.0)


def test_rsi_short_series_is_all_nan():
    rsi = compute_rsi([1.0, 2.0, 3.0, 2.0, 1.0], 14)
    assert len(rsi) == 5
    assert np.isnan(rsi).all()


def test_rsi_gap_propagates(daily_close):
    close = daily_close.to_numpy().copy()
    close[20] = np.nan
    rsi = compute_rsi(close, 14)
    assert np.isfinite(rsi[14:20]).all()
    assert np.isnan(rsi[20:]).all()


def test_negative_price_is_a_gap():
    close = 100.0 + np.arange(40, dtype=float)
    close[20] = -5.0
    rsi = compute_rsi(close, 14)
    assert np.isfinite(rsi[14:20]).all()
    assert np.isnan(rsi[20:]).all()

    ohlc = build_synthetic_ohlc(close)
    assert np.isnan(ohlc.close[20]) and np.isnan(ohlc.high[20]) and np.isnan(ohlc.open[21])
    assert close[20] == -5.0


def test_rsi_rejects_bad_period():
    with pytest.raises(ValueError):
        compute_rsi([1.0, 2.0, 3.0], 0)


# ── ADX ─────────────────────────────────────────────────────────────────────

def test_adx_bounds_and_sign_domain(daily_close):
    magnitude, sign = compute_adx(build_synthetic_ohlc(daily_close), 14)
    finite = magnitude[np.isfinite(magnitude)]
    assert (finite >= 0).all() and (finite <= 100 + 1e-9).all()
    signs = sign[np.isfinite(sign)]
    assert set(np.unique(signs)) <= {-1.0, 1.0}


@pytest.mark.parametrize("period", [5, 10, 14])
def test_adx_warmup_indices(daily_close, period):
    magnitude, sign = compute_adx(build_synthetic_ohlc(daily_close), period)
    assert len(magnitude) == len(sign) == len(daily_close)
    assert _first_finite(magnitude) == 2 * period - 1
    assert _first_finite(sign) == period


def test_adx_flat_market_has_no_trend(flat_prices):
    magnitude, sign = compute_adx(build_synthetic_ohlc(flat_prices), 14)
    assert (magnitude[27:] == 0.0).all()
    assert (sign[14:] == 1.0).all()


def test_adx_steady_uptrend(rising_prices):
    ohlc = build_synthetic_ohlc(rising_prices)
    magnitude, sign = compute_adx(ohlc, 14)
    np.testing.assert_allclose(magnitude[27:], 100.0)
    assert (sign[14:] == 1.0).all()
    plus_di, minus_di = directional_indicators(ohlc, 14)
    assert (minus_di[14:] == 0.0).all()
    assert (plus_di[14:] > 0).all()


def test_adx_short_series_is_all_nan():
    magnitude, sign = compute_adx(build_synthetic_ohlc([1.0, 2.0, 3.0, 2.0, 1.0]), 14)
    assert len(magnitude) == 5
    assert np.isnan(magnitude).all() and np.isnan(sign).all()


def test_adx_sign_available_before_magnitude(daily_close):
    magnitude, sign = compute_adx(build_synthetic_ohlc(daily_close[:20]), 14)
    assert np.isnan(magnitude).all()
    assert np.isfinite(sign[14:]).all()


def test_adx_zero_true_range_reads_zero():
    flat = np.full(40, 50.0)
    magnitude, sign = compute_adx(OHLCSeries(open=flat, high=flat, low=flat, close=flat), 5)
    assert (magnitude[9:] == 0.0).all()
    assert (sign[5:] == 1.0).all()


def test_adx_gap_propagates(daily_close):
    close = daily_close.to_numpy().copy()
    close[40] = np.nan
    ohlc = build_synthetic_ohlc(close)
    magnitude, sign = compute_adx(ohlc, 14)
    plus_di, minus_di = directional_indicators(ohlc, 14)
    assert np.isfinite(magnitude[27:40]).all()
    assert np.isfinite(sign[14:40]).all()
    for values in (magnitude, sign, plus_di, minus_di):
        assert np.isnan(values[40:]).all()


def test_signed_adx_keeps_magnitude_where_direction_unknown():
    out = signed_adx([np.nan, 30.0, 40.0, 20.0], [np.nan, np.nan, -1.0, 1.0])
    assert np.isnan(out[0])
    np.testing.assert_array_equal(out[1:], [30.0, -40.0, 20.0])


# ── Alignment ───────────────────────────────────────────────────────────────

def test_align_same_length_is_identity():
    values = np.array([1.0, 2.0, 3.0])
    np.testing.assert_array_equal(align_to_length(values, 3), values)
    np.testing.assert_array_equal(align_to_length(align_to_length(values, 3), 3), values)


def test_align_pads_front_with_nan():
    out = align_to_length([1.0, 2.0], 5)
    assert len(out) == 5
    assert np.isnan(out[:3]).all()
    np.testing.assert_array_equal(out[3:], [1.0, 2.0])


def test_align_keeps_tail():
    np.testing.assert_array_equal(align_to_length([1.0, 2.0, 3.0, 4.0], 2), [3.0, 4.0])


def test_align_edge_lengths():
    assert len(align_to_length([1.0, 2.0], 0)) == 0
    assert np.isnan(align_to_length(None, 3)).all()
    with pytest.raises(ValueError):
        align_to_length([1.0], -1)


# ── Derivatives ─────────────────────────────────────────────────────────────

def test_derivative_of_constant_is_midpoint():
    np.testing.assert_allclose(derivative01(np.full(10, 7.0), 1), 0.5)
    np.testing.assert_allclose(derivative01(np.full(10, 7.0), 2), 0.5)


def test_derivative_direction():
    d1 = derivative01([0.0, 1.0, 3.0, 2.0], 1)
    assert d1[0] == 0.5
    assert d1[1] > 0.5 and d1[2] > d1[1] and d1[3] < 0.5
    assert ((d1 > 0) & (d1 < 1)).all()


def test_derivative_rejects_bad_order():
    with pytest.raises(ValueError):
        derivative01([1.0, 2.0], 3)
