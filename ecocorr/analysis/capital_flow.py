# analysis/capital_flow.py
"""
Capital Flow Estimation
=======================
Estimates how trading volume moved between ecosystems over a timeframe.

Ecosystems whose volume fell are sources, ecosystems whose volume rose are
sinks. Each source's loss is split across the sinks in proportion to
correlation(source, sink) * gain(sink); when that weight total is not
positive the loss is split evenly.

The correlation lookup is injected. It is the one place where analysis
errors are absorbed: a failing lookup is treated as zero correlation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

CorrelationMap = Dict[str, Dict[str, float]]
CorrelationLookup = Callable[[List[str]], Awaitable[CorrelationMap]]


@dataclass(frozen=True)
class VolumeChange:
    """Volume at the start and end of a timeframe"""
    ecosystem: str
    start_volume: float
    end_volume: float
    change: float
    percent_change: float
    timeframe: str

    @classmethod
    def from_series(cls, ecosystem: str, series: Sequence[float], timeframe: str) -> "VolumeChange":
        """Build from a newest-first series: start is the oldest sample, end the newest."""
        if len(series) == 0:
            start = end = 0.0
        else:
            start, end = float(series[-1]), float(series[0])
        change = end - start
        percent = change / start * 100.0 if start != 0 else 0.0
        return cls(ecosystem, start, end, change, percent, timeframe)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ecosystem": self.ecosystem,
            "start_volume": self.start_volume,
            "end_volume": self.end_volume,
            "change": self.change,
            "percent_change": self.percent_change,
            "timeframe": self.timeframe,
        }


@dataclass(frozen=True)
class CapitalFlow:
    source: str
    target: str
    value: float
    percentage: float  # share of the source's total outflow

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "target": self.target, "value": self.value, "percentage": self.percentage}


@dataclass(frozen=True)
class CapitalFlowResult:
    """Capital flow analysis result"""
    flow_matrix: np.ndarray
    ecosystems: List[str]
    start_volumes: Dict[str, float]
    end_volumes: Dict[str, float]
    volume_changes: Dict[str, float]
    net_inflows: Dict[str, float]
    significant_flows: List[CapitalFlow] = field(default_factory=list)
    timeframe: str = ""

    def flow(self, source: str, target: str) -> float:
        return float(self.flow_matrix[self.ecosystems.index(source), self.ecosystems.index(target)])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flow_matrix": self.flow_matrix.tolist(),
            "ecosystems": list(self.ecosystems),
            "start_volumes": dict(self.start_volumes),
            "end_volumes": dict(self.end_volumes),
            "volume_changes": dict(self.volume_changes),
            "net_inflows": dict(self.net_inflows),
            "significant_flows": [f.to_dict() for f in self.significant_flows],
            "timeframe": self.timeframe,
        }


def distribute_loss(
    loss: float,
    sinks: Sequence[str],
    gains: Mapping[str, float],
    correlations: Mapping[str, float],
) -> Dict[str, float]:
    """Split ``loss`` across ``sinks`` by correlation-weighted gain."""
    if not sinks:
        return {}

    scores = {sink: correlations.get(sink, 0.0) * gains[sink] for sink in sinks}
    total = sum(scores.values())
    if total > 0:
        return {sink: loss * score / total for sink, score in scores.items()}

    even = loss / len(sinks)
    return {sink: even for sink in sinks}


def summarize_flows(
    ecosystems: Sequence[str],
    flow_matrix: np.ndarray,
    total_outflows: Mapping[str, float],
    min_flow_percentage: float,
) -> Tuple[Dict[str, float], List[CapitalFlow]]:
    """Net inflow per ecosystem and flows worth at least ``min_flow_percentage`` of their source's outflow."""
    net_inflows = {
        name: float(flow_matrix[:, i].sum() - flow_matrix[i, :].sum()) for i, name in enumerate(ecosystems)
    }

    significant: List[CapitalFlow] = []
    for i, source in enumerate(ecosystems):
        outflow = total_outflows.get(source, 0.0)
        if outflow <= 0:
            continue
        for j, target in enumerate(ecosystems):
            value = float(flow_matrix[i, j])
            if i == j or value <= 0:
                continue
            percentage = value / outflow * 100.0
            # inclusive threshold, within float rounding
            at_threshold = np.isclose(percentage, min_flow_percentage, rtol=1e-9, atol=1e-9)
            if percentage >= min_flow_percentage or at_threshold:
                significant.append(CapitalFlow(source, target, value, percentage))

    significant.sort(key=lambda f: abs(f.value), reverse=True)
    return net_inflows, significant


class CapitalFlowEstimator:
    """Redistributes volume losses of source ecosystems to sink ecosystems."""

    def __init__(self, correlation_lookup: CorrelationLookup):
        self.correlation_lookup = correlation_lookup

    async def _correlations(self, source: str, sinks: List[str]) -> Dict[str, float]:
        group = [source] + sinks
        try:
            matrix = await self.correlation_lookup(group)
        except Exception as e:
            logger.warning("Correlation lookup failed for %s, assuming zero correlation: %s", ",".join(group), e)
            return {sink: 0.0 for sink in sinks}
        row = matrix.get(source, {})
        return {sink: float(row.get(sink, 0.0)) for sink in sinks}

    async def estimate(
        self,
        ecosystems: Sequence[str],
        changes: Mapping[str, VolumeChange],
        timeframe: str,
        min_flow_percentage: float = 5.0,
    ) -> CapitalFlowResult:
        names = list(ecosystems)
        position: Dict[str, int] = {}
        for i, name in enumerate(names):
            position.setdefault(name, i)

        deltas = {name: changes[name].change for name in names}
        sources = [name for name in names if deltas[name] < 0]
        sinks = [name for name in names if deltas[name] > 0]
        gains = {sink: deltas[sink] for sink in sinks}

        flow_matrix = np.zeros((len(names), len(names)), dtype=float)
        total_outflows: Dict[str, float] = {}

        for source in sources:
            loss = abs(deltas[source])
            total_outflows[source] = loss
            if not sinks:
                continue

            correlations = await self._correlations(source, sinks)
            for sink, value in distribute_loss(loss, sinks, gains, correlations).items():
                flow_matrix[position[source], position[sink]] = value

        net_inflows, significant = summarize_flows(names, flow_matrix, total_outflows, min_flow_percentage)
        logger.debug(
            "Capital flows %s: %s sources, %s sinks, %s significant",
            timeframe, len(sources), len(sinks), len(significant),
        )

        flow_matrix.flags.writeable = False
        return CapitalFlowResult(
            flow_matrix=flow_matrix,
            ecosystems=names,
            start_volumes={name: changes[name].start_volume for name in names},
            end_volumes={name: changes[name].end_volume for name in names},
            volume_changes=deltas,
            net_inflows=net_inflows,
            significant_flows=significant,
            timeframe=timeframe,
        )
