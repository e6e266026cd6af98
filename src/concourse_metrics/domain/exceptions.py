"""
Domain exceptions for the metrics collector.

Per-build errors (plan decoding, event payloads, API and sink failures) abort
only the build being collected; the caller decides whether the run goes on.
"""


class CollectorError(Exception):
    """Base class for every error raised by the collector."""


class PlanDecodeError(CollectorError):
    """Raised when a build plan cannot be decoded into a plan tree."""


class EventPayloadError(CollectorError):
    """
    Raised when a lifecycle event lacks its origin id or timestamp.

    Events whose kind matches a timing phase are expected to carry both;
    a missing field means the upstream event format changed.
    """

    def __init__(self, message: str, event_kind: str = ""):
        """
        Args:
            message: Human-readable error message
            event_kind: Kind name of the offending event
        """
        super().__init__(message)
        self.event_kind = event_kind


class ConcourseAPIError(CollectorError):
    """Raised when the CI server answers with an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None, url: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class SinkError(CollectorError):
    """Raised when an output sink rejects a build metric."""


class CacheError(CollectorError):
    """Raised when the processed-build cache cannot be read or written."""


class ConfigurationError(CollectorError):
    """Raised when configuration files are invalid or missing."""
