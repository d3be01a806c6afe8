"""
ecocorr/exceptions.py
Correlation engine custom exceptions.
"""

from typing import Optional


class CorrelationError(Exception):
    """Base exception for all correlation engine errors."""
    pass


class NoDataError(CorrelationError):
    """Raised when no constituents or no time-series samples exist for an entity."""

    def __init__(self, entity: str, detail: Optional[str] = None):
        self.entity = entity
        self.detail = detail
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.detail:
            return f"No data for {self.entity}: {self.detail}"
        return f"No data for {self.entity}"


class UnsupportedMetricError(CorrelationError):
    """Raised for an unrecognized metric name."""

    def __init__(self, metric: str):
        self.metric = metric
        super().__init__(f"Unknown metric: {metric}")


class MissingCapabilityError(CorrelationError):
    """Raised when an operation needs a collaborator that was not configured."""

    def __init__(self, capability: str, message: Optional[str] = None):
        self.capability = capability
        super().__init__(message or f"{capability} is required but not configured")


class ProviderError(CorrelationError):
    """Exception raised for failures of an external data provider."""

    def __init__(self, message: str, status: Optional[int] = None, entity: Optional[str] = None):
        self.message = message
        self.status = status
        self.entity = entity
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = []
        if self.status is not None:
            parts.append(f"HTTP {self.status}")
        if self.entity:
            parts.append(self.entity)
        prefix = " ".join(parts)
        return f"Provider Error ({prefix}): {self.message}" if prefix else f"Provider Error: {self.message}"

    def __str__(self) -> str:
        return self._format_message()
