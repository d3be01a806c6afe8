"""Ecosystem correlation engine for crypto-asset ecosystems."""

from .analysis.correlator import EcosystemCorrelator, create_correlator
from .exceptions import (
    CorrelationError,
    MissingCapabilityError,
    NoDataError,
    ProviderError,
    UnsupportedMetricError,
)

__version__ = "0.1.0"

__all__ = [
    'EcosystemCorrelator',
    'create_correlator',
    'CorrelationError',
    'MissingCapabilityError',
    'NoDataError',
    'ProviderError',
    'UnsupportedMetricError',
]
