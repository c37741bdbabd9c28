# ABOUTME: Error taxonomy shared by the fetch clients, reconciliation and alerting
# ABOUTME: Separates bad payloads, upstream HTTP failures and reconciliation failures

from enum import Enum
from typing import Optional


class SurfwatchError(Exception):
    """Base exception for surfwatch errors."""

    pass


class InvalidData(SurfwatchError):
    """Malformed or empty payload from a source (buoy text or model JSON)."""

    pass


class ParseError(InvalidData):
    """Buoy text report could not be parsed."""

    def __init__(self, reason: str = "malformed"):
        super().__init__(reason)
        self.reason = reason


class ProviderErrorCategory(Enum):
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    CERTIFICATE_VALIDATION_FAILED = "certificate_validation_failed"


RETRYABLE_CATEGORIES = {
    ProviderErrorCategory.TIMEOUT,
    ProviderErrorCategory.SERVER_ERROR,
    ProviderErrorCategory.RATE_LIMITED,
}


class ProviderError(SurfwatchError):
    """Network or HTTP failure from an upstream fetch."""

    def __init__(self, category: ProviderErrorCategory, message: str = "", status: Optional[int] = None):
        self.category = category
        self.status = status
        detail = message or category.value
        if status is not None:
            detail = f"{detail} (HTTP {status})"
        super().__init__(detail)

    @property
    def retryable(self) -> bool:
        return self.category in RETRYABLE_CATEGORIES


class CalculationError(SurfwatchError):
    """Reconciliation could not proceed, e.g. a forecast source failed."""

    pass


class BuoyUnavailable(SurfwatchError):
    """Buoy fetch failed. Callers should fall back to the wave model."""

    def __init__(self, message: str, station_id: Optional[str] = None):
        super().__init__(message)
        self.station_id = station_id
