"""
Configuration for the Momentum Scoring Engine
Centralized configuration, easy to modify.

Everything the scoring pipeline treats as a constant lives here:
- Numerical guards and synthetic-OHLC shaping
- Indicator periods and normalizer thresholds
- Regime classification and per-regime blend weights
- Named horizons and display ranges used by the dashboard view
"""
import logging
import os

# ── Numerical guards ────────────────────────────────────────────────────────
EPS = 1e-6

# Synthetic OHLC: intrabar range manufactured around close-only feeds
OHLC_WIGGLE = {
    "move_fraction": 0.25,     # share of the bar-to-bar move added as wick
    "price_fraction": 0.002,   # minimum wick as a share of price (0.2%)
}

# ── Technical Indicators ────────────────────────────────────────────────────
INDICATORS = {
    "rsi_period": 14,
    "adx_period": 14,
    "macd_std_window": 252,    # one trading year of histogram values
}

# Overlays supplied to the scorer (Bollinger envelope + MACD)
OVERLAYS = {
    "band_std": 2,             # envelope half-width in EMA std-devs
    "macd_ratio": 4,           # slow span = ratio * fast span
}

# ── Normalizer ──────────────────────────────────────────────────────────────
# Each sub-score is mapped into [-1, 1] before blending.
NORMALIZER = {
    "rsi_midpoint": 50.0,
    "rsi_span": 20.0,          # RSI 30 -> +1, RSI 70 -> -1
    "macd_scale": 2.0,         # histogram / std-dev / scale
    "adx_floor": 15.0,         # ADX below this carries no trend
    "adx_span": 20.0,          # ADX 35+ = full strength
}

# ── Regime ──────────────────────────────────────────────────────────────────
REGIME = {
    "trending_adx": 25.0,      # ADX at or above this = trending (inclusive)
}

REGIME_WEIGHTS = {
    "trending": {"macd": 0.45, "rsi": 0.25, "band": 0.20, "adx": 0.10},
    "ranging":  {"macd": 0.25, "rsi": 0.35, "band": 0.30, "adx": 0.10},
}

# ── Horizons ────────────────────────────────────────────────────────────────
# window = Bollinger/MACD horizon H handed to the overlay provider
HORIZONS = {
    "short":  {"window": 10,  "rsi_period": 10, "adx_period": 10},
    "medium": {"window": 40,  "rsi_period": 14, "adx_period": 14},
    "long":   {"window": 160, "rsi_period": 50, "adx_period": 50},
}
DEFAULT_HORIZON = "medium"

# ── Display ranges ──────────────────────────────────────────────────────────
# Lookback from the last bar; None = year to date
RANGES = {
    "1D":  {"days": 1},
    "1W":  {"days": 7},
    "1M":  {"months": 1},
    "3M":  {"months": 3},
    "6M":  {"months": 6},
    "YTD": None,
    "1Y":  {"months": 12},
    "2Y":  {"months": 24},
    "5Y":  {"months": 60},
}
DEFAULT_RANGE = "6M"

# Dot colour buckets on the 0..100 dot scale
DOT_THRESHOLDS = {
    "good": 67,
    "mid":  34,
}

# ── Logging ─────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("MOMENTUM_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Install the standard log format for applications embedding the engine."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
