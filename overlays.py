"""
Overlay Provider: Bollinger envelope + MACD for one horizon

The scorer only consumes band bounds and the MACD histogram; any callable
with the `OverlayProvider` signature can stand in (e.g. a feed that
already ships its own overlays). This default mirrors the dashboard's
single-horizon overlays:

  envelope:  EMA(H) +/- 2 * EMA-std(H)
  MACD:      EMA(H) - EMA(4H), signal = EMA(MACD, H), hist = MACD - signal

All EMAs are recursive (adjust=False) and seeded on the first bar, so the
overlays are defined from index 0. Non-finite outputs are allowed; the
scorer treats them as "unavailable".
"""

import logging
from typing import Callable

import numpy as np
import pandas as pd

from config import OVERLAYS
from indicators import align_to_length, as_prices, round_half_up
from models import Overlays

logger = logging.getLogger(__name__)

OverlayProvider = Callable[[np.ndarray, int], Overlays]


def _ema(series: pd.Series, span: int) -> pd.Series:
    return series.ewm(span=span, adjust=False).mean()


def compute_overlays(close, horizon: int) -> Overlays:
    """Default provider: EMA Bollinger envelope and MACD(H, ratio*H, H)."""
    if horizon < 1:
        raise ValueError(f"horizon must be >= 1, got {horizon}")
    prices = pd.Series(as_prices(close))
    if prices.empty:
        return Overlays.empty()

    # ── Bollinger envelope (EMA mean / EMA std-dev) ──
    mid = _ema(prices, horizon)
    second_moment = _ema(prices * prices, horizon)
    std = np.sqrt((second_moment - mid * mid).clip(lower=0))
    width = OVERLAYS["band_std"] * std

    # ── MACD ──
    slow_span = max(2, int(round_half_up(horizon * OVERLAYS["macd_ratio"])))
    ema_fast = _ema(prices, horizon)
    ema_slow = _ema(prices, slow_span)
    macd_line = ema_fast - ema_slow
    signal = _ema(macd_line, horizon)
    logger.debug(f"Overlays H={horizon} (slow span {slow_span}) over {len(prices)} bars")

    return Overlays(
        bb_upper=(mid + width).to_numpy(),
        bb_mid=mid.to_numpy(),
        bb_lower=(mid - width).to_numpy(),
        macd=macd_line.to_numpy(),
        macd_signal=signal.to_numpy(),
        macd_hist=(macd_line - signal).to_numpy(),
        ema_fast=ema_fast.to_numpy(),
        ema_slow=ema_slow.to_numpy(),
    )


def align_overlays(overlays: Overlays, target_length: int) -> Overlays:
    """Every overlay array fitted onto a window of `target_length` bars."""
    if len(overlays) == target_length:
        return overlays
    return Overlays(
        bb_upper=align_to_length(overlays.bb_upper, target_length),
        bb_mid=align_to_length(overlays.bb_mid, target_length),
        bb_lower=align_to_length(overlays.bb_lower, target_length),
        macd=align_to_length(overlays.macd, target_length),
        macd_signal=align_to_length(overlays.macd_signal, target_length),
        macd_hist=align_to_length(overlays.macd_hist, target_length),
        ema_fast=align_to_length(overlays.ema_fast, target_length),
        ema_slow=align_to_length(overlays.ema_slow, target_length),
    )
