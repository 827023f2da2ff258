"""
Exception types raised by the OSM ingestion pipeline
"""

from typing import Optional


class OSMDuckError(Exception):
    """Base class for all osmduck errors"""


class QueryBuildError(OSMDuckError, ValueError):
    """A query could not be built from the given filters"""


class OverpassError(OSMDuckError, RuntimeError):
    """An Overpass API request failed"""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class TransientServiceError(OverpassError):
    """Retryable failure: timeout, rate limit, server or gateway error"""


class PermanentServiceError(OverpassError):
    """Non-retryable failure: the request itself was rejected"""


class GeocodingError(OSMDuckError, RuntimeError):
    """A Nominatim request failed"""


class StorageError(OSMDuckError, RuntimeError):
    """The spatial cache is unusable"""


class SqlValidationError(OSMDuckError, ValueError):
    """A statement was rejected by the read-only SQL guard"""
