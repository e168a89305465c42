"""
Indicator Kernels: Wilder filters over plain price arrays

1. Synthetic OHLC from close-only feeds (plausible intrabar range)
2. Wilder-smoothed RSI (SMA seed, then recursive smoothing; not a plain SMA)
3. Wilder ADX with DI+/DI- direction (second-order smoothing of DX)
4. Tail alignment of indicator arrays onto a display window
5. Squashed first/second differences for derivative overlays

Every kernel returns an array aligned 1:1 with its input, NaN where the
warm-up period is not yet satisfied. Insufficient data is never an error.
"""

import logging
from typing import Tuple

import numpy as np

from config import INDICATORS, OHLC_WIGGLE
from models import OHLCSeries

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════

def as_array(values) -> np.ndarray:
    """Float view of any array-like (list, ndarray, Series). None -> empty."""
    if values is None:
        return np.empty(0)
    return np.asarray(values, dtype=float).ravel()


def as_prices(values) -> np.ndarray:
    """Close prices as floats; negative quotes are gaps (NaN) like missing ones."""
    prices = as_array(values)
    with np.errstate(invalid="ignore"):
        return np.where(prices < 0, np.nan, prices)


def round_half_up(values) -> np.ndarray:
    """Round .5 away from -inf like the dashboard does (Python's round() is banker's)."""
    return np.floor(np.asarray(values, dtype=float) + 0.5)


def _check_period(period: int) -> int:
    if int(period) != period or period < 1:
        raise ValueError(f"period must be a positive integer, got {period!r}")
    return int(period)


def _wilder_average(values: np.ndarray, period: int, first: int) -> np.ndarray:
    """
    Wilder's recursive average.

    Seed: SMA of values[first:first + period], stored at first + period - 1.
    Then avg = (avg * (period - 1) + new) / period for every later bar.
    Plain Python floats in the loop so NaN/inf propagate without warnings.
    """
    n = len(values)
    out = np.full(n, np.nan)
    seed_end = first + period
    if n < seed_end:
        return out

    vals = values.tolist()
    avg = sum(vals[first:seed_end]) / period
    out[seed_end - 1] = avg
    for i in range(seed_end, n):
        avg = (avg * (period - 1) + vals[i]) / period
        out[i] = avg
    return out


# ═══════════════════════════════════════════════════════════════════════════
# Synthetic OHLC
# ═══════════════════════════════════════════════════════════════════════════

def build_synthetic_ohlc(close) -> OHLCSeries:
    """Open = previous close; high/low = bar range plus a wiggle of max(25% of move, 0.2% of price)."""
    close = as_prices(close)
    if close.size == 0:
        return OHLCSeries(open=close, high=close, low=close, close=close)

    prev = np.concatenate((close[:1], close[:-1]))
    with np.errstate(invalid="ignore"):
        delta = np.abs(close - prev)
        wiggle = np.maximum(delta * OHLC_WIGGLE["move_fraction"], close * OHLC_WIGGLE["price_fraction"])
        high = np.maximum(prev, close) + wiggle
        low = np.minimum(prev, close) - wiggle
    return OHLCSeries(open=prev, high=high, low=low, close=close)


# ═══════════════════════════════════════════════════════════════════════════
# RSI
# ═══════════════════════════════════════════════════════════════════════════

def compute_rsi(close, period: int = INDICATORS["rsi_period"]) -> np.ndarray:
    """
    Wilder-smoothed RSI, NaN for the first `period` bars.

    A flat window (no gains, no losses) reads 50 rather than dividing by zero.
    """
    period = _check_period(period)
    close = as_prices(close)
    n = close.size
    if n <= period:
        return np.full(n, np.nan)

    # index 0 has no previous bar; np.maximum keeps NaN gaps as NaN
    diff = np.zeros(n)
    with np.errstate(invalid="ignore"):
        diff[1:] = np.diff(close)
    gains = np.maximum(diff, 0.0)
    losses = np.maximum(-diff, 0.0)

    avg_gain = _wilder_average(gains, period, first=1)
    avg_loss = _wilder_average(losses, period, first=1)

    denom = avg_gain + avg_loss
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(denom == 0, 50.0, 100.0 * avg_gain / denom)


# ═══════════════════════════════════════════════════════════════════════════
# ADX / Directional Movement
# ═══════════════════════════════════════════════════════════════════════════

def _directional_movement(ohlc: OHLCSeries) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Per-bar true range, +DM and -DM. Index 0 is 0 (no previous bar)."""
    high, low, close = ohlc.high, ohlc.low, ohlc.close
    n = len(close)
    tr = np.zeros(n)
    plus_dm = np.zeros(n)
    minus_dm = np.zeros(n)
    if n < 2:
        return tr, plus_dm, minus_dm

    with np.errstate(invalid="ignore"):
        up_move = high[1:] - high[:-1]
        down_move = low[:-1] - low[1:]

        # A move counts only when positive and larger than the opposite move
        plus_dm[1:] = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
        minus_dm[1:] = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)
        gaps = np.isnan(up_move) | np.isnan(down_move)
        plus_dm[1:][gaps] = np.nan
        minus_dm[1:][gaps] = np.nan

        tr[1:] = np.maximum.reduce([
            high[1:] - low[1:],
            np.abs(high[1:] - close[:-1]),
            np.abs(low[1:] - close[:-1]),
        ])
    return tr, plus_dm, minus_dm


def directional_indicators(ohlc: OHLCSeries,
                           period: int = INDICATORS["adx_period"]) -> Tuple[np.ndarray, np.ndarray]:
    """DI+ and DI- (0..100), defined from index `period`. Zero ATR reads as 0."""
    period = _check_period(period)
    tr, plus_dm, minus_dm = _directional_movement(ohlc)
    atr = _wilder_average(tr, period, first=1)
    sm_plus = _wilder_average(plus_dm, period, first=1)
    sm_minus = _wilder_average(minus_dm, period, first=1)

    with np.errstate(invalid="ignore", divide="ignore"):
        plus_di = np.where(atr == 0, 0.0, 100.0 * sm_plus / atr)
        minus_di = np.where(atr == 0, 0.0, 100.0 * sm_minus / atr)
    return plus_di, minus_di


def compute_adx(ohlc: OHLCSeries,
                period: int = INDICATORS["adx_period"]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Average Directional Index plus trend direction.

    Returns (magnitude, sign):
      magnitude: 0..100, first defined at 2*period - 1 (SMA of DX over
                 [period, 2*period), then Wilder-smoothed)
      sign:      +1 where DI+ >= DI-, else -1; defined from `period`,
                 earlier than the magnitude itself
    """
    period = _check_period(period)
    plus_di, minus_di = directional_indicators(ohlc, period)

    di_sum = plus_di + minus_di
    with np.errstate(invalid="ignore", divide="ignore"):
        dx = np.where(di_sum == 0, 0.0, 100.0 * np.abs(plus_di - minus_di) / di_sum)

    magnitude = _wilder_average(dx, period, first=period)

    sign = np.where(plus_di >= minus_di, 1.0, -1.0)
    sign[np.isnan(plus_di) | np.isnan(minus_di)] = np.nan
    return magnitude, sign


def signed_adx(magnitude, sign) -> np.ndarray:
    """ADX magnitude carrying the DI direction; unsigned where direction is unknown."""
    magnitude = as_array(magnitude)
    sign = as_array(sign)
    direction = np.where(sign >= 0, 1.0, -1.0)
    return np.where(np.isnan(sign), magnitude, magnitude * direction)


# ═══════════════════════════════════════════════════════════════════════════
# Alignment & derivatives
# ═══════════════════════════════════════════════════════════════════════════

def align_to_length(series, target_length: int) -> np.ndarray:
    """
    Fit an indicator array onto a window of `target_length` bars.

    Longer: keep the tail (most recent values). Shorter: left-pad with NaN.
    """
    if target_length < 0:
        raise ValueError(f"target_length must be >= 0, got {target_length}")
    values = as_array(series)
    n = values.size
    if n == target_length:
        return values
    if n > target_length:
        return values[n - target_length:]
    return np.concatenate((np.full(target_length - n, np.nan), values))


def derivative01(series, order: int = 1) -> np.ndarray:
    """First or second difference squashed into (0, 1); 0.5 = no change."""
    if order not in (1, 2):
        raise ValueError(f"order must be 1 or 2, got {order!r}")
    values = as_array(series)
    n = values.size
    if n == 0:
        return np.empty(0)

    base = np.zeros(n)
    with np.errstate(invalid="ignore"):
        base[1:] = np.diff(values)
        if order == 2:
            d2 = np.zeros(n)
            d2[1:] = np.diff(base)
            base = d2

    peak = float(np.max(np.abs(base)))
    scale = 0.35 * max(1e-6, peak) if np.isfinite(peak) else 1.0
    return 0.5 + 0.5 * np.tanh(base / scale)
