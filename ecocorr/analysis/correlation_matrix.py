# analysis/correlation_matrix.py
"""
Correlation Matrix Builder
==========================
Pairwise Pearson correlation over named series, the pairs above a threshold
and a network graph view of the matrix.

- Labels keep the insertion order of the input mapping.
- Every entry, diagonal included, goes through the same formula over the
  overlapping prefix n = min(len_i, len_j).
- Fewer than 3 samples or a zero-variance series gives exactly 0.0.
- The threshold compares the signed correlation, not its absolute value.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

MIN_SAMPLES = 3


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation of the common prefix of ``x`` and ``y``."""
    n = min(len(x), len(y))
    if n < MIN_SAMPLES:
        return 0.0

    a = np.asarray(x, dtype=float)[:n]
    b = np.asarray(y, dtype=float)[:n]
    if not (np.all(np.isfinite(a)) and np.all(np.isfinite(b))):
        return 0.0
    if np.ptp(a) == 0 or np.ptp(b) == 0:
        return 0.0

    r = float(np.corrcoef(a, b)[0, 1])
    return r if np.isfinite(r) else 0.0


@dataclass(frozen=True)
class CorrelationPair:
    entity_a: str
    entity_b: str
    correlation: float

    def to_dict(self) -> Dict[str, Any]:
        return {"entity_a": self.entity_a, "entity_b": self.entity_b, "correlation": self.correlation}


@dataclass(frozen=True)
class NetworkGraph:
    """Labels as nodes, correlations at or above a weight as edges"""
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {"nodes": [dict(n) for n in self.nodes], "edges": [dict(e) for e in self.edges]}


@dataclass(frozen=True)
class CorrelationMatrix:
    matrix: np.ndarray
    labels: List[str]
    pairs: List[CorrelationPair] = field(default_factory=list)

    def get(self, a: str, b: str) -> float:
        return float(self.matrix[self.labels.index(a), self.labels.index(b)])

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.matrix, index=self.labels, columns=self.labels)

    def to_mapping(self) -> Dict[str, Dict[str, float]]:
        return {
            a: {b: float(self.matrix[i, j]) for j, b in enumerate(self.labels)}
            for i, a in enumerate(self.labels)
        }


@dataclass(frozen=True)
class CorrelationAnalysis:
    """Correlation analysis result"""
    matrix: np.ndarray
    labels: List[str]
    pairs: List[CorrelationPair]
    strongest_pair: Optional[CorrelationPair]
    top_pairs: List[CorrelationPair]
    network: NetworkGraph
    metric: str
    timeframe: str

    def correlation(self, a: str, b: str) -> float:
        return float(self.matrix[self.labels.index(a), self.labels.index(b)])

    def to_mapping(self) -> Dict[str, Dict[str, float]]:
        return CorrelationMatrix(self.matrix, self.labels).to_mapping()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matrix": self.matrix.tolist(),
            "labels": list(self.labels),
            "pairs": [p.to_dict() for p in self.pairs],
            "strongest_pair": self.strongest_pair.to_dict() if self.strongest_pair else None,
            "top_pairs": [p.to_dict() for p in self.top_pairs],
            "network": self.network.to_dict(),
            "metric": self.metric,
            "timeframe": self.timeframe,
        }


def generate_correlation_matrix(
    data: Mapping[str, Sequence[float]], min_correlation: float = 0.5
) -> CorrelationMatrix:
    """Symmetric correlation matrix of ``data`` plus the pairs at or above ``min_correlation``.

    Args:
        data: entity name -> series, insertion order defines label order
        min_correlation: signed threshold for the pair list

    Returns:
        CorrelationMatrix with pairs sorted by descending correlation
    """
    labels = list(data.keys())
    series = [np.asarray(data[label], dtype=float) for label in labels]
    size = len(labels)

    matrix = np.zeros((size, size), dtype=float)
    for i in range(size):
        for j in range(i, size):
            r = pearson_correlation(series[i], series[j])
            matrix[i, j] = r
            matrix[j, i] = r

    pairs = [
        CorrelationPair(labels[i], labels[j], float(matrix[i, j]))
        for i in range(size)
        for j in range(i + 1, size)
        if matrix[i, j] >= min_correlation
    ]
    pairs.sort(key=lambda p: p.correlation, reverse=True)

    matrix.flags.writeable = False
    logger.debug("Correlation matrix over %s series, %s pairs >= %s", size, len(pairs), min_correlation)
    return CorrelationMatrix(matrix=matrix, labels=labels, pairs=pairs)


def generate_network_graph(matrix: Any, labels: Sequence[str], min_weight: float = 0.5) -> NetworkGraph:
    values = np.asarray(matrix, dtype=float)
    nodes = [{"id": label, "label": label} for label in labels]
    edges = []
    for i in range(len(labels)):
        for j in range(i + 1, len(labels)):
            weight = float(values[i, j])
            if weight >= min_weight:
                edges.append({"source": labels[i], "target": labels[j], "weight": weight})
    return NetworkGraph(nodes=nodes, edges=edges)
