"""
Seasonal indices by the ratio-to-moving-average method.

1) 12-month centered moving average (CMA)
2) ratio = actual / CMA
3) average the ratios of each calendar position -> raw index
4) normalize so the 12 indices sum to 12

When some position has no ratio (short series) the simple ratio-to-mean
method is used instead.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

SEASON_LENGTH = 12
SIGNIFICANCE_CV = 0.15


def _normalize(raw: np.ndarray) -> Optional[np.ndarray]:
    total = float(raw.sum())
    if total <= 0:
        return None
    return raw / total * SEASON_LENGTH


def _simple_ratio_indices(y: np.ndarray) -> Optional[np.ndarray]:
    avg = float(y.mean())
    if avg == 0:
        return None
    positions = np.arange(y.size) % SEASON_LENGTH
    raw = np.array([
        y[positions == m].mean() / avg if np.any(positions == m) else 1.0
        for m in range(SEASON_LENGTH)
    ])
    return _normalize(raw)


def detect_seasonality(history: Sequence[float]) -> Optional[np.ndarray]:
    """
    Seasonal indices for each of the 12 positions of the series, or None with
    fewer than 12 points or a flat-zero series.

    Position 0 is the position of the first observation.
    """
    y = np.asarray(history, dtype=float)
    if y.size < SEASON_LENGTH:
        return None

    # 2x12 centered moving average: half weight on both ends
    weights = np.r_[0.5, np.ones(SEASON_LENGTH - 1), 0.5] / SEASON_LENGTH
    cma = pd.Series(y).rolling(window=SEASON_LENGTH + 1, center=True).apply(
        lambda w: float(np.dot(w, weights)), raw=True
    ).to_numpy()

    valid = np.isfinite(cma) & (cma != 0)
    positions = np.arange(y.size) % SEASON_LENGTH
    if len(set(positions[valid])) < SEASON_LENGTH:
        return _simple_ratio_indices(y)

    ratios = y[valid] / cma[valid]
    raw = np.array([ratios[positions[valid] == m].mean() for m in range(SEASON_LENGTH)])
    return _normalize(raw)


def is_significant(indices: Optional[np.ndarray]) -> bool:
    """Seasonality is meaningful when the CV of the indices exceeds 0.15."""
    if indices is None or len(indices) != SEASON_LENGTH:
        return False
    mean = float(np.mean(indices))
    if mean == 0:
        return False
    return float(np.std(indices)) / mean > SIGNIFICANCE_CV


def deseasonalize(history: Sequence[float], indices: np.ndarray) -> np.ndarray:
    y = np.asarray(history, dtype=float)
    factors = indices[np.arange(y.size) % SEASON_LENGTH]
    safe = np.where(factors > 0, factors, 1.0)
    return y / safe


def reseasonalize(forecast: Sequence[float], indices: np.ndarray, start_position: int) -> np.ndarray:
    """Multiply each forecast step by the index of its position, starting at ``start_position``."""
    f = np.asarray(forecast, dtype=float)
    pos = (start_position + np.arange(f.size)) % SEASON_LENGTH
    return np.maximum(f * indices[pos], 0.0)
