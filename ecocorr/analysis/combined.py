# analysis/combined.py
"""
Combined metric: fixed-weight blend of price, volume and optional sentiment.

    ecosystem: 0.6 * price + 0.4 * volume
    asset:     0.7 * price + 0.3 * volume
    then, with sentiment: 0.7 * combined + 0.3 * sentiment

Series are aligned by position only. Price and volume are truncated to the
shorter of the two; a sentiment series shorter than the blend contributes 0
past its end.
"""

from typing import Optional, Sequence

import numpy as np

from .metrics_base import freeze

ECOSYSTEM_PRICE_WEIGHT = 0.6
ECOSYSTEM_VOLUME_WEIGHT = 0.4
ASSET_PRICE_WEIGHT = 0.7
ASSET_VOLUME_WEIGHT = 0.3
BASE_WEIGHT = 0.7
SENTIMENT_WEIGHT = 0.3


def blend_price_volume(
    price: Sequence[float], volume: Sequence[float], price_weight: float, volume_weight: float
) -> np.ndarray:
    n = min(len(price), len(volume))
    p = np.asarray(price, dtype=float)[:n]
    v = np.asarray(volume, dtype=float)[:n]
    return price_weight * p + volume_weight * v


def blend_sentiment(combined: Sequence[float], sentiment: Sequence[float]) -> np.ndarray:
    base = np.asarray(combined, dtype=float)
    aligned = np.zeros(base.size, dtype=float)
    s = np.asarray(sentiment, dtype=float)[:base.size]
    aligned[:s.size] = s
    return BASE_WEIGHT * base + SENTIMENT_WEIGHT * aligned


def combine_ecosystem_metrics(
    price: Sequence[float], volume: Sequence[float], sentiment: Optional[Sequence[float]] = None
) -> np.ndarray:
    combined = blend_price_volume(price, volume, ECOSYSTEM_PRICE_WEIGHT, ECOSYSTEM_VOLUME_WEIGHT)
    if sentiment is not None:
        combined = blend_sentiment(combined, sentiment)
    return freeze(combined)


def combine_asset_metrics(
    price: Sequence[float], volume: Sequence[float], sentiment: Optional[Sequence[float]] = None
) -> np.ndarray:
    combined = blend_price_volume(price, volume, ASSET_PRICE_WEIGHT, ASSET_VOLUME_WEIGHT)
    if sentiment is not None:
        combined = blend_sentiment(combined, sentiment)
    return freeze(combined)
