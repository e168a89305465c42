"""
Momentum Engine: multi-horizon orchestration over extended history

Runs the indicator -> normalizer -> composite pipeline once per named
horizon. Indicators are computed over an extended series (warm-up history
followed by the visible base series) and aligned back onto the base, so
short display windows (e.g. one intraday session) still get warmed-up
RSI/ADX/MACD values.

Simple interface:
    compute_multi_horizon(close, horizons) -> {name: composite}
    MomentumEngine().analyze(prices, range_key, horizon) -> MomentumView
Complexity hidden -> warm-up alignment, per-horizon periods, display ranges,
derivative overlays, dot score.

Pure and stateless: nothing is cached or shared between calls.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from config import DEFAULT_HORIZON, DEFAULT_RANGE, HORIZONS, RANGES
from indicators import (
    align_to_length, as_array, as_prices, build_synthetic_ohlc,
    compute_adx, compute_rsi, derivative01, signed_adx,
)
from models import Horizon, IndicatorSignals, MomentumView, VisibleRange
from overlays import OverlayProvider, align_overlays, compute_overlays
from signal_scorer import compute_composite_signals, score_indicators, to_dot_score

logger = logging.getLogger(__name__)

HorizonLike = Union[Horizon, Mapping[str, object]]


# ═══════════════════════════════════════════════════════════════════════════
# Horizons
# ═══════════════════════════════════════════════════════════════════════════

def default_horizons() -> List[Horizon]:
    return [Horizon(name=name, **params) for name, params in HORIZONS.items()]


def _coerce_horizon(h: HorizonLike) -> Horizon:
    if isinstance(h, Horizon):
        return h
    return Horizon(
        name=str(h["name"]),
        window=h["window"],
        rsi_period=h["rsi_period"],
        adx_period=h["adx_period"],
    )


def _coerce_horizons(horizons: Optional[Iterable[HorizonLike]]) -> List[Horizon]:
    if horizons is None:
        return default_horizons()
    result = [_coerce_horizon(h) for h in horizons]
    names = [h.name for h in result]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate horizon names: {', '.join(duplicates)}")
    return result


def _extended(close: np.ndarray, history) -> np.ndarray:
    history = as_prices(history)
    if not history.size:
        return close
    if not close.size:
        return history
    return np.concatenate((history, close))


# ═══════════════════════════════════════════════════════════════════════════
# Pipeline runs
# ═══════════════════════════════════════════════════════════════════════════

def compute_horizon_signals(
    close,
    horizon: HorizonLike,
    *,
    history=None,
    provider: Optional[OverlayProvider] = None,
) -> IndicatorSignals:
    """One full pipeline run for one horizon, aligned onto `close`."""
    horizon = _coerce_horizon(horizon)
    provider = provider or compute_overlays
    base = as_prices(close)
    if not base.size:
        return IndicatorSignals.empty()

    extended = _extended(base, history)
    overlays = provider(extended, horizon.window)
    logger.debug(
        f"Horizon {horizon.name}: H={horizon.window} rsi={horizon.rsi_period} "
        f"adx={horizon.adx_period} over {extended.size} bars ({base.size} visible)"
    )
    return compute_composite_signals(
        base,
        {"upper": overlays.bb_upper, "lower": overlays.bb_lower},
        overlays.macd_hist,
        rsi_period=horizon.rsi_period,
        adx_period=horizon.adx_period,
        indicator_close=extended,
    )


def compute_multi_horizon(
    close,
    horizons: Optional[Iterable[HorizonLike]] = None,
    *,
    history=None,
    visible: Optional[VisibleRange] = None,
    provider: Optional[OverlayProvider] = None,
) -> Dict[str, np.ndarray]:
    """
    Composite score series per horizon name.

    Each horizon is an independent run; scores are never mixed across
    horizons within a bar. `visible` slices every result to the display
    window (inclusive bounds).
    """
    result: Dict[str, np.ndarray] = {}
    for horizon in _coerce_horizons(horizons):
        signals = compute_horizon_signals(close, horizon, history=history, provider=provider)
        composite = signals.composite
        result[horizon.name] = composite[visible.slice] if visible is not None else composite
    return result


# ═══════════════════════════════════════════════════════════════════════════
# Display ranges
# ═══════════════════════════════════════════════════════════════════════════

def visible_index_range(dates: Sequence, range_key: str = DEFAULT_RANGE) -> VisibleRange:
    """
    First bar within the range's lookback from the last bar, through the last bar.

    Unparsable timestamps are skipped; an unparsable last bar shows everything.
    """
    if range_key not in RANGES:
        logger.warning(f"Unknown range {range_key!r}, using {DEFAULT_RANGE}")
        range_key = DEFAULT_RANGE

    stamps = pd.to_datetime(pd.Index(dates), errors="coerce")
    end = len(stamps) - 1
    if end < 0:
        return VisibleRange(0, 0)

    now = stamps[end]
    if pd.isna(now):
        return VisibleRange(0, end)

    lookback = RANGES[range_key]
    if lookback is None:
        start_time = now.normalize().replace(month=1, day=1)
    else:
        start_time = now - pd.DateOffset(**lookback)

    inside = np.flatnonzero(np.asarray(stamps >= start_time))
    start = int(inside[0]) if inside.size else 0
    return VisibleRange(start, end)


# ═══════════════════════════════════════════════════════════════════════════
# Dot score
# ═══════════════════════════════════════════════════════════════════════════

def _fallback_dot(fallback_scores) -> Optional[int]:
    scores = as_array(fallback_scores)
    if not scores.size or not np.isfinite(scores[-1]):
        return None
    return int(to_dot_score(scores[-1])[0])


def momentum_dot_score(
    prices,
    *,
    fallback_scores=None,
    provider: Optional[OverlayProvider] = None,
) -> Optional[int]:
    """
    Latest medium-horizon composite on the 0..100 dot scale.

    Falls back to the last baseline momentum score (-100..100) when there
    are fewer than two prices or the latest composite is a gap.
    """
    prices = as_prices(prices)
    if prices.size < 2:
        return _fallback_dot(fallback_scores)

    horizon = Horizon(name=DEFAULT_HORIZON, **HORIZONS[DEFAULT_HORIZON])
    signals = compute_horizon_signals(prices, horizon, provider=provider)
    last = signals.composite[-1]
    if not np.isfinite(last):
        return _fallback_dot(fallback_scores)
    return int(to_dot_score(last)[0])


# ═══════════════════════════════════════════════════════════════════════════
# Engine
# ═══════════════════════════════════════════════════════════════════════════

class MomentumEngine:
    """
    Builds the complete momentum panel for a price history.

    Simple interface:
        analyze(prices, range_key, horizon) -> MomentumView

    Holds configuration only (horizon table, overlay provider); every call
    recomputes from the prices it is given.
    """

    def __init__(self, horizons: Optional[Iterable[HorizonLike]] = None,
                 provider: Optional[OverlayProvider] = None):
        self.horizons: Dict[str, Horizon] = {h.name: h for h in _coerce_horizons(horizons)}
        self.provider: OverlayProvider = provider or compute_overlays

    # ── Public Interface ────────────────────────────────────────────────

    def analyze(
        self,
        prices: Union[pd.Series, pd.DataFrame],
        range_key: str = DEFAULT_RANGE,
        horizon: str = DEFAULT_HORIZON,
        *,
        intraday: Optional[pd.Series] = None,
    ) -> MomentumView:
        """
        Momentum view for one (range, horizon) selection.

        With an intraday series of more than one bar, the intraday bars are
        the base series and the daily `prices` become warm-up history.
        """
        if horizon not in self.horizons:
            raise ValueError(f"Unknown horizon {horizon!r}; expected one of {', '.join(self.horizons)}")
        active = self.horizons[horizon]

        daily = self._close_series(prices)
        if intraday is not None and len(intraday) > 1:
            base = self._close_series(intraday)
            history = daily.to_numpy(dtype=float)
        else:
            base = daily
            history = None

        base_prices = as_prices(base)
        n = base_prices.size
        extended = _extended(base_prices, history)
        visible = visible_index_range(base.index, range_key)
        logger.info(
            f"Momentum view: {n} bars, range={range_key}, horizon={horizon}, "
            f"warm-up={extended.size - n} bars"
        )

        overlays = align_overlays(self.provider(extended, active.window), n)
        rsi = align_to_length(compute_rsi(extended, active.rsi_period), n)
        magnitude, sign = compute_adx(build_synthetic_ohlc(extended), active.adx_period)
        magnitude, sign = align_to_length(magnitude, n), align_to_length(sign, n)
        adx = signed_adx(magnitude, sign)

        signals = score_indicators(
            base_prices, overlays.bb_upper, overlays.bb_lower, overlays.macd_hist, rsi, magnitude, sign,
        )
        deriv1 = self._derivatives(signals, adx, order=1)
        deriv2 = self._derivatives(signals, adx, order=2)

        # the active horizon is already scored; only the others need a run
        others = compute_multi_horizon(
            base_prices, [h for h in self.horizons.values() if h.name != active.name],
            history=history, visible=visible, provider=self.provider,
        )
        composite_by_horizon = {
            name: signals.composite[visible.slice] if name == active.name else others[name]
            for name in self.horizons
        }

        return MomentumView(
            horizon=active,
            range_key=range_key,
            visible=visible,
            dates=base.index,
            prices=base_prices,
            ohlc=build_synthetic_ohlc(base_prices),
            overlays=overlays,
            rsi=rsi,
            adx=adx,
            signals=signals,
            deriv1=deriv1,
            deriv2=deriv2,
            composite_by_horizon=composite_by_horizon,
        )

    # ── Internal ────────────────────────────────────────────────────────

    @staticmethod
    def _close_series(prices: Union[pd.Series, pd.DataFrame]) -> pd.Series:
        series = prices["Close"] if isinstance(prices, pd.DataFrame) else prices
        if not series.index.is_monotonic_increasing or series.index.has_duplicates:
            logger.warning("Price index is not strictly ascending; results follow the given order")
        return series

    @staticmethod
    def _derivatives(signals: IndicatorSignals, adx: np.ndarray, order: int) -> Dict[str, np.ndarray]:
        return {
            "band": derivative01(signals.band, order),
            "rsi": derivative01(signals.rsi, order),
            "macd": derivative01(signals.macd, order),
            "adx": derivative01(adx, order),
        }
