"""
ecocorr/utils/timeframes.py
Timeframe strings ("30d", "12h", "2w") and daily-series resampling.
"""

import math
import re
from typing import List, Sequence

DEFAULT_DAYS = 7

_PERIOD_RE = re.compile(r"^(\d+)([hdwmy])$")

_UNIT_DAYS = {
    "d": 1,
    "w": 7,
    "m": 30,   # approx
    "y": 365,  # approx
}


def period_to_days(period: str) -> float:
    """Convert a time period string to days. Unparsable input gives 7."""
    match = _PERIOD_RE.match(period or "")
    if not match:
        return DEFAULT_DAYS
    value, unit = match.groups()
    if unit == "h":
        # fractional days
        return int(value) / 24
    return int(value) * _UNIT_DAYS[unit]


def days_to_samples(days: float) -> int:
    """Number of daily samples covering ``days`` (at least one)."""
    return max(1, math.ceil(days))


def resample_series(data: Sequence[float], interval: str) -> List[float]:
    """Downsample a daily series to ``interval`` by bucket averaging.

    Bucket k spans samples [floor(k*p), floor((k+1)*p)) for a period of p
    days, giving ceil(len/p) points; fractional periods such as "36h" keep
    their width on average. Sub-daily intervals cannot be produced from daily
    data, so the input is returned unchanged in that case.
    """
    if len(data) == 0:
        return []

    period_days = period_to_days(interval)
    if period_days < 1:
        return list(data)

    result = []
    for k in range(math.ceil(len(data) / period_days)):
        start = math.floor(k * period_days)
        stop = min(len(data), math.floor((k + 1) * period_days))
        bucket = data[start:stop]
        result.append(sum(bucket) / len(bucket))
    return result
