# analysis/leadlag.py
"""
Lead-Lag Analysis
=================
Cross-correlation based timing relationships between named series.

For every ordered pair (i, j), i != j, lags from -max_lag to +max_lag are
scanned in increasing order and the lag with the strictly greatest
correlation of (series_i[k], series_j[k + lag]) is kept, so ties (within float
rounding) resolve to the most negative lag. A positive lag means i leads j by
that many samples.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import numpy as np

from .correlation_matrix import MIN_SAMPLES, pearson_correlation

logger = logging.getLogger(__name__)

TOP_RELATIONSHIPS = 10
# correlations closer than this count as a tie
LAG_TIE_TOLERANCE = 1e-12


@dataclass(frozen=True)
class LeadLagRelationship:
    leader: str
    lagger: str
    lag: int

    def to_dict(self) -> Dict[str, Any]:
        return {"leader": self.leader, "lagger": self.lagger, "lag": self.lag}


@dataclass(frozen=True)
class LeadLagAnalysis:
    """Lead-lag analysis result"""
    lag_matrix: np.ndarray
    labels: List[str]
    leaders: List[Dict[str, Any]]   # {"ecosystem", "lead_count"}
    laggers: List[Dict[str, Any]]   # {"ecosystem", "lag_count"}
    relationships: List[LeadLagRelationship]
    metric: str
    timeframe: str
    interval: str

    def lag(self, a: str, b: str) -> int:
        return int(self.lag_matrix[self.labels.index(a), self.labels.index(b)])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lag_matrix": self.lag_matrix.tolist(),
            "labels": list(self.labels),
            "leaders": [dict(item) for item in self.leaders],
            "laggers": [dict(item) for item in self.laggers],
            "relationships": [r.to_dict() for r in self.relationships],
            "metric": self.metric,
            "timeframe": self.timeframe,
            "interval": self.interval,
        }


def lagged_correlation(series1: Sequence[float], series2: Sequence[float], lag: int) -> float:
    """Correlation of (series1[k], series2[k + lag]) over every valid k."""
    a = np.asarray(series1, dtype=float)
    b = np.asarray(series2, dtype=float)
    start = max(0, -lag)
    stop = min(a.size, b.size - lag)
    if stop - start < MIN_SAMPLES:
        return 0.0
    return pearson_correlation(a[start:stop], b[start + lag:stop + lag])


def find_optimal_lag(series1: Sequence[float], series2: Sequence[float], max_lag: int) -> int:
    best_corr = -1.0
    best_lag = 0
    for lag in range(-max_lag, max_lag + 1):
        corr = lagged_correlation(series1, series2, lag)
        if corr > best_corr + LAG_TIE_TOLERANCE:
            best_corr = corr
            best_lag = lag
    return best_lag


def calculate_lag_matrix(data: Mapping[str, Sequence[float]], max_lag: int) -> np.ndarray:
    """N x N optimal-lag matrix in the insertion order of ``data``; the diagonal is 0."""
    labels = list(data.keys())
    series = [np.asarray(data[label], dtype=float) for label in labels]
    size = len(labels)

    matrix = np.zeros((size, size), dtype=int)
    for i in range(size):
        for j in range(size):
            if i != j:
                matrix[i, j] = find_optimal_lag(series[i], series[j], max_lag)
    return matrix


def classify_leaders(
    labels: Sequence[str], lag_matrix: np.ndarray, top_n: int = TOP_RELATIONSHIPS
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]], List[LeadLagRelationship]]:
    """Split entities into leaders and laggers and list the strongest lead relationships."""
    leaders = []
    laggers = []
    relationships = []

    for i, entity in enumerate(labels):
        lead_count = 0
        lag_count = 0
        for j, other in enumerate(labels):
            if i == j:
                continue
            lag = int(lag_matrix[i, j])
            if lag > 0:
                lead_count += 1
                relationships.append(LeadLagRelationship(entity, other, lag))
            elif lag < 0:
                lag_count += 1

        if lead_count > lag_count:
            leaders.append({"ecosystem": entity, "lead_count": lead_count})
        elif lag_count > lead_count:
            laggers.append({"ecosystem": entity, "lag_count": lag_count})

    leaders.sort(key=lambda item: item["lead_count"], reverse=True)
    laggers.sort(key=lambda item: item["lag_count"], reverse=True)
    relationships.sort(key=lambda r: r.lag, reverse=True)

    logger.debug("Lead-lag: %s leaders, %s laggers, %s relationships", len(leaders), len(laggers), len(relationships))
    return leaders, laggers, relationships[:top_n]
