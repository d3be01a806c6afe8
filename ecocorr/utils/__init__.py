from .ttl_cache import TTLCache, CacheEntry
from .timeframes import period_to_days, days_to_samples, resample_series

__all__ = [
    'TTLCache',
    'CacheEntry',
    'period_to_days',
    'days_to_samples',
    'resample_series',
]
