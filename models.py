"""Core data models: single source of truth for the scoring pipeline.

Every series is an immutable value produced by one pipeline run. Derived
fields (visible slices, range change, dot score) are computed here so
callers never rebuild them from the raw arrays.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, Optional

import numpy as np
import pandas as pd


def _frozen_array(values) -> np.ndarray:
    arr = np.array(values, dtype=float).ravel()
    arr.setflags(write=False)
    return arr


class Regime(Enum):
    TRENDING = "trending"
    RANGING = "ranging"


@dataclass(frozen=True)
class RegimeWeights:
    """Blend weights for one regime. Must sum to 1 so the blend stays in [-1, 1]."""
    macd: float
    rsi: float
    band: float
    adx: float

    def __post_init__(self):
        if abs(self.total - 1.0) > 1e-9:
            raise ValueError(f"Regime weights must sum to 1.0, got {self.total:.6f}")

    @property
    def total(self) -> float:
        return self.macd + self.rsi + self.band + self.adx


@dataclass(frozen=True)
class Horizon:
    """A named lookback: overlay window H plus its own RSI/ADX periods."""
    name: str
    window: int
    rsi_period: int
    adx_period: int

    def __post_init__(self):
        for attr in ("window", "rsi_period", "adx_period"):
            value = getattr(self, attr)
            if int(value) != value or value < 1:
                raise ValueError(f"Horizon {self.name!r}: {attr} must be a positive integer, got {value!r}")


@dataclass(frozen=True)
class OHLCSeries:
    """Parallel open/high/low/close arrays. Copied and locked on construction."""
    open: np.ndarray
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray

    def __post_init__(self):
        for f in fields(self):
            object.__setattr__(self, f.name, _frozen_array(getattr(self, f.name)))
        lengths = {len(self.open), len(self.high), len(self.low), len(self.close)}
        if len(lengths) != 1:
            raise ValueError(f"OHLC arrays must share one length, got {sorted(lengths)}")

    def __len__(self) -> int:
        return len(self.close)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "OHLCSeries":
        """Real OHLC from a price-history frame (Open/High/Low/Close columns)."""
        return cls(
            open=frame["Open"].to_numpy(dtype=float),
            high=frame["High"].to_numpy(dtype=float),
            low=frame["Low"].to_numpy(dtype=float),
            close=frame["Close"].to_numpy(dtype=float),
        )


@dataclass
class Overlays:
    """Bollinger envelope + MACD arrays from an overlay provider, aligned to its input."""
    bb_upper: np.ndarray
    bb_mid: np.ndarray
    bb_lower: np.ndarray
    macd: np.ndarray
    macd_signal: np.ndarray
    macd_hist: np.ndarray
    ema_fast: np.ndarray
    ema_slow: np.ndarray

    @classmethod
    def empty(cls) -> "Overlays":
        return cls(**{f.name: np.empty(0) for f in fields(cls)})

    def __len__(self) -> int:
        return len(self.bb_mid)


@dataclass
class IndicatorSignals:
    """Per-bar sub-scores and composite, integer-valued in [-100, 100].

    Arrays are float so that a gap in the input price (NaN) can surface
    as NaN instead of a fabricated score.
    """
    band: np.ndarray
    rsi: np.ndarray
    macd: np.ndarray
    adx: np.ndarray
    composite: np.ndarray
    composite_raw: np.ndarray          # unscaled blend in [-1, 1]
    trending: np.ndarray               # bool per bar

    @classmethod
    def empty(cls) -> "IndicatorSignals":
        arrays = {f.name: np.empty(0) for f in fields(cls)}
        arrays["trending"] = np.empty(0, dtype=bool)
        return cls(**arrays)

    def __len__(self) -> int:
        return len(self.composite)

    def slice(self, visible: "VisibleRange") -> "IndicatorSignals":
        return IndicatorSignals(**{
            f.name: getattr(self, f.name)[visible.slice] for f in fields(self)
        })

    def regime_at(self, index: int) -> Regime:
        return Regime.TRENDING if self.trending[index] else Regime.RANGING

    @property
    def latest(self) -> Dict[str, float]:
        if not len(self):
            return {}
        return {
            "band": float(self.band[-1]),
            "rsi": float(self.rsi[-1]),
            "macd": float(self.macd[-1]),
            "adx": float(self.adx[-1]),
            "composite": float(self.composite[-1]),
        }


@dataclass(frozen=True)
class VisibleRange:
    """Inclusive [start, end] window of bars shown for a display range."""
    start: int
    end: int

    @property
    def slice(self) -> slice:
        return slice(self.start, self.end + 1)


@dataclass
class RangeChange:
    absolute: float
    percent: float
    since: object                      # timestamp of the first visible bar


@dataclass
class MomentumView:
    """Everything one momentum panel needs for a (range, horizon) selection."""
    horizon: Horizon
    range_key: str
    visible: VisibleRange
    dates: pd.Index
    prices: np.ndarray
    ohlc: OHLCSeries
    overlays: Overlays
    rsi: np.ndarray
    adx: np.ndarray                    # magnitude carrying the DI direction
    signals: IndicatorSignals
    deriv1: Dict[str, np.ndarray] = field(default_factory=dict)
    deriv2: Dict[str, np.ndarray] = field(default_factory=dict)
    composite_by_horizon: Dict[str, np.ndarray] = field(default_factory=dict)

    # ── Visible slices ─────────────────────────────────────────────────

    @property
    def visible_prices(self) -> np.ndarray:
        return self.prices[self.visible.slice]

    @property
    def visible_rsi(self) -> np.ndarray:
        return self.rsi[self.visible.slice]

    @property
    def visible_adx(self) -> np.ndarray:
        """ADX magnitude for the chart, direction dropped."""
        return np.abs(self.adx[self.visible.slice])

    @property
    def visible_composite(self) -> np.ndarray:
        return self.signals.composite[self.visible.slice]

    # ── Derived figures ────────────────────────────────────────────────

    @property
    def range_change(self) -> Optional[RangeChange]:
        if not len(self.visible_prices):
            return None
        start_val = float(self.prices[self.visible.start])
        end_val = float(self.prices[self.visible.end])
        absolute = end_val - start_val
        percent = 0.0 if start_val == 0 else absolute / start_val * 100
        return RangeChange(absolute=absolute, percent=percent, since=self.dates[self.visible.start])

    def _global_index(self, hover_index: Optional[int]) -> int:
        local = (self.visible.end - self.visible.start) if hover_index is None else hover_index
        return self.visible.start + local

    def dot_score(self, hover_index: Optional[int] = None) -> int:
        """Composite at the hovered (default: last visible) bar on the 0..100 dot scale."""
        composite = self.signals.composite
        if not len(composite) or self.visible.end < self.visible.start:
            return 50
        gi = self._global_index(hover_index)
        raw = composite[gi] if 0 <= gi < len(composite) else composite[-1]
        if not np.isfinite(raw):
            raw = 0.0
        return int(np.floor((raw + 100) / 2 + 0.5))

    def ohlc_at(self, hover_index: Optional[int] = None) -> Dict[str, object]:
        gi = self._global_index(hover_index)
        if not 0 <= gi < len(self.ohlc):
            return {"o": 0.0, "h": 0.0, "l": 0.0, "c": 0.0, "date": ""}
        return {
            "o": float(self.ohlc.open[gi]),
            "h": float(self.ohlc.high[gi]),
            "l": float(self.ohlc.low[gi]),
            "c": float(self.ohlc.close[gi]),
            "date": self.dates[gi],
        }
