# src/jobradar/errors.py
"""
Error taxonomy for the import pipeline.

- ClientValidationError: bad input caught locally, nothing went over the wire.
- ExtractionError and subclasses: the extraction service call failed
  (HTTP status, no connection, deadline exceeded, or an error envelope).
- RecordValidationError: the structured record could not become a Job/Session.
  Carries *every* problem found, not just the first one.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional


class JobRadarError(Exception):
    """Base class for everything the pipeline raises on purpose."""


class ConfigError(JobRadarError):
    pass


class ClientValidationError(JobRadarError):
    """Rejected before any network call (the local equivalent of HTTP 400)."""

    status = 400


class ExtractionError(JobRadarError):
    """The extraction service could not produce a result."""


class HttpError(ExtractionError):
    def __init__(self, status: int, message: str, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body


class NetworkError(ExtractionError):
    """No response reached us (DNS, refused connection, connect timeout)."""


class ExtractionTimeout(ExtractionError):
    """Request was sent but no response arrived before the deadline."""


class ServiceError(ExtractionError):
    """The service answered 2xx but reported `status: error` or no data."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class RecordValidationError(JobRadarError):
    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        super().__init__(
            "Missing or invalid required fields:\n" + "\n".join(f"- {p}" for p in self.problems)
        )


class DiscoveryError(JobRadarError):
    """A listing page yielded no importable links."""


class PersistenceError(JobRadarError):
    """The sink rejected a submission."""
