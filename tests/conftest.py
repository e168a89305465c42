import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def flat_prices() -> np.ndarray:
    return np.full(50, 100.0)


@pytest.fixture
def rising_prices() -> np.ndarray:
    return 100.0 + np.arange(60, dtype=float)


@pytest.fixture
def daily_close() -> pd.Series:
    dates = pd.bdate_range("2023-01-02", periods=400)
    rng = np.random.default_rng(7)
    close = 100 * np.cumprod(1 + rng.normal(0.0005, 0.015, len(dates)))
    return pd.Series(close, index=dates, name="Close")
