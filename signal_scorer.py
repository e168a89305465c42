"""
Signal Scorer: normalizer + regime-weighted composite

Turns raw indicator arrays into four bounded sub-scores and blends them:

  band  -> position inside the Bollinger envelope (lower half = bullish)
  rsi   -> distance from 50 on a 20-point span (low RSI = bullish)
  macd  -> histogram over its own trailing-year volatility
  adx   -> trend strength above 15, signed by DI+ vs DI-

Conventions: band and RSI are mean-reversion readings, MACD and ADX are
trend readings. The regime (ADX >= 25 = trending) decides which family
dominates the blend.

Simple interface:
    compute_composite_signals(close, bands, macd_hist) -> IndicatorSignals
"""

import logging
from typing import Mapping, Optional, Sequence

import numpy as np

from config import EPS, INDICATORS, NORMALIZER, REGIME, REGIME_WEIGHTS, DOT_THRESHOLDS
from indicators import (
    align_to_length, as_array, as_prices, build_synthetic_ohlc,
    compute_adx, compute_rsi, round_half_up,
)
from models import IndicatorSignals, RegimeWeights

logger = logging.getLogger(__name__)

TRENDING_WEIGHTS = RegimeWeights(**REGIME_WEIGHTS["trending"])
RANGING_WEIGHTS = RegimeWeights(**REGIME_WEIGHTS["ranging"])


# ═══════════════════════════════════════════════════════════════════════════
# Normalizer
# ═══════════════════════════════════════════════════════════════════════════

def band_score(price, upper, lower) -> np.ndarray:
    """(0.5 - %B) / 0.5 in [-1, 1]; %B = 0.5 when the envelope is missing or collapsed."""
    price, upper, lower = as_array(price), as_array(upper), as_array(lower)
    with np.errstate(invalid="ignore"):
        usable = np.isfinite(upper) & np.isfinite(lower) & (np.abs(upper - lower) > EPS)
        width = np.maximum(EPS, np.where(usable, upper - lower, 1.0))
        percent_b = np.where(usable, np.clip((price - lower) / width, 0, 1), 0.5)
    return np.clip((0.5 - percent_b) / 0.5, -1, 1)


def rsi_score(rsi) -> np.ndarray:
    rsi = as_array(rsi)
    finite = np.isfinite(rsi)
    safe = np.where(finite, rsi, NORMALIZER["rsi_midpoint"])
    raw = (NORMALIZER["rsi_midpoint"] - safe) / NORMALIZER["rsi_span"]
    return np.where(finite, np.clip(raw, -1, 1), 0.0)


def macd_denominator(hist) -> float:
    """Population std-dev of the last year of finite histogram values; 1 when degenerate."""
    hist = as_array(hist)
    finite = hist[np.isfinite(hist)]
    window = finite[-INDICATORS["macd_std_window"]:]
    std = float(np.std(window)) if window.size else 0.0
    return std if std > EPS else 1.0


def macd_score(hist, denom: Optional[float] = None) -> np.ndarray:
    hist = as_array(hist)
    if denom is None:
        denom = macd_denominator(hist)
    finite = np.isfinite(hist)
    safe = np.where(finite, hist, 0.0)
    return np.where(finite, np.clip(safe / denom / NORMALIZER["macd_scale"], -1, 1), 0.0)


def adx_score(magnitude, sign) -> np.ndarray:
    """Trend strength (0 below ADX 15, full at 35) times DI direction."""
    magnitude, sign = as_array(magnitude), as_array(sign)
    mag_ok = np.isfinite(magnitude)
    sign_ok = np.isfinite(sign)
    strength = np.where(
        mag_ok,
        np.clip((np.abs(np.where(mag_ok, magnitude, 0.0)) - NORMALIZER["adx_floor"]) / NORMALIZER["adx_span"], 0, 1),
        0.0,
    )
    direction = np.where(sign_ok, np.clip(np.where(sign_ok, sign, 0.0), -1, 1), 0.0)
    return strength * direction


# ═══════════════════════════════════════════════════════════════════════════
# Composite
# ═══════════════════════════════════════════════════════════════════════════

def classify_regime(magnitude) -> np.ndarray:
    """True (trending) where ADX is finite and >= the trending threshold, inclusive."""
    magnitude = as_array(magnitude)
    finite = np.isfinite(magnitude)
    return finite & (np.abs(np.where(finite, magnitude, 0.0)) >= REGIME["trending_adx"])


def _weight_column(trending: np.ndarray, name: str) -> np.ndarray:
    return np.where(trending, getattr(TRENDING_WEIGHTS, name), getattr(RANGING_WEIGHTS, name))


def composite_blend(band, rsi, macd, adx, trending) -> np.ndarray:
    """Regime-weighted sum of [-1, 1] sub-scores, clamped to [-1, 1]."""
    trending = np.asarray(trending, dtype=bool)
    total = (
        _weight_column(trending, "band") * as_array(band)
        + _weight_column(trending, "rsi") * as_array(rsi)
        + _weight_column(trending, "macd") * as_array(macd)
        + _weight_column(trending, "adx") * as_array(adx)
    )
    return np.clip(total, -1, 1)


def to_score100(values) -> np.ndarray:
    """[-1, 1] -> integer-valued [-100, 100]; NaN stays NaN."""
    return round_half_up(as_array(values) * 100)


def compute_composite_signals(
    close,
    external_bands: Mapping[str, Sequence[float]],
    external_macd_histogram,
    *,
    rsi_period: int = INDICATORS["rsi_period"],
    adx_period: int = INDICATORS["adx_period"],
    indicator_close=None,
) -> IndicatorSignals:
    """
    Per-bar sub-scores and composite for `close`.

    Bands and histogram may be shorter or longer than `close` (leading NaN
    during warm-up is fine); they are tail-aligned onto it. RSI and ADX run
    over `indicator_close` (extended warm-up history, default `close`) and
    are aligned back the same way.
    """
    price = as_prices(close)
    n = price.size
    if n == 0:
        return IndicatorSignals.empty()

    history = price if indicator_close is None else as_prices(indicator_close)
    rsi = compute_rsi(history, rsi_period)
    magnitude, sign = compute_adx(build_synthetic_ohlc(history), adx_period)

    return score_indicators(
        price, external_bands.get("upper"), external_bands.get("lower"),
        external_macd_histogram, rsi, magnitude, sign,
    )


def score_indicators(close, upper, lower, macd_hist, rsi, adx_magnitude, adx_sign) -> IndicatorSignals:
    """
    Sub-scores and composite from indicator arrays that are already computed.

    Every indicator array is tail-aligned onto `close`, so arrays computed
    over a longer warm-up series can be passed as they are.
    """
    price = as_prices(close)
    n = price.size
    if n == 0:
        return IndicatorSignals.empty()

    upper = align_to_length(upper, n)
    lower = align_to_length(lower, n)
    hist = align_to_length(macd_hist, n)
    rsi = align_to_length(rsi, n)
    magnitude = align_to_length(adx_magnitude, n)
    sign = align_to_length(adx_sign, n)

    s_band = band_score(price, upper, lower)
    s_rsi = rsi_score(rsi)
    s_macd = macd_score(hist)
    s_adx = adx_score(magnitude, sign)
    trending = classify_regime(magnitude)
    raw = composite_blend(s_band, s_rsi, s_macd, s_adx, trending)

    return IndicatorSignals(
        band=to_score100(s_band),
        rsi=to_score100(s_rsi),
        macd=to_score100(s_macd),
        adx=to_score100(s_adx),
        composite=to_score100(raw),
        composite_raw=raw,
        trending=trending,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Dot scale (0..100) helpers for callers
# ═══════════════════════════════════════════════════════════════════════════

def to_dot_score(composite100) -> np.ndarray:
    """[-100, 100] composite -> [0, 100] dot score."""
    return round_half_up((as_array(composite100) + 100) / 2)


def clamp_score(value) -> Optional[int]:
    if value is None or not np.isfinite(value):
        return None
    return int(min(100, max(0, round_half_up(value))))


def dot_class(score: float) -> str:
    if score >= DOT_THRESHOLDS["good"]:
        return "good"
    if score >= DOT_THRESHOLDS["mid"]:
        return "mid"
    return "bad"
