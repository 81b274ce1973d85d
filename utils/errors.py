"""
Exception hierarchy for the ingestion pipeline.

Each exception carries a structured context dictionary so callers can
report failures as key/value events.

    PipelineError
    ├── FetchError        (remote page could not be fetched; has a FailureKind)
    ├── PageStoreError    (raw page could not be persisted)
    └── CheckpointError   (checkpoint could not be persisted)
"""
import errno
from enum import Enum
from typing import Any, Dict, Optional


class FailureKind(Enum):
    """Classes of remote failure, each handled differently by the scraper."""

    CONNECTIVITY = "connectivity"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    UNCLASSIFIED = "unclassified"


class PipelineError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional structured context (project, page, ...)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class FetchError(PipelineError):
    """A page fetch failed after low-level retries were exhausted."""

    def __init__(
        self,
        message: str,
        kind: FailureKind,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = dict(context or {})
        context["kind"] = kind.value
        if status_code is not None:
            context["status"] = status_code
        super().__init__(message, context)
        self.kind = kind
        self.status_code = status_code


# OS errors that mean nothing more can be written at all
_EXHAUSTION_ERRNOS = {errno.ENOSPC, errno.EROFS, getattr(errno, "EDQUOT", errno.ENOSPC)}


class PageStoreError(PipelineError):
    """A raw page could not be written durably."""

    @property
    def is_resource_exhaustion(self) -> bool:
        cause = self.__cause__
        return isinstance(cause, OSError) and cause.errno in _EXHAUSTION_ERRNOS


class CheckpointError(PipelineError):
    """A checkpoint could not be written durably."""
