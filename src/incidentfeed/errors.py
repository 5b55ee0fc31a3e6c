"""Error taxonomy for incidentfeed.

Sources raise SourceUnavailable or InvariantViolation. Nothing below the
PipelineCoordinator catches them; the coordinator is the single place where
they are classified into a PipelineError and published as a Failed state.

DataQualityWarning is not an exception. Unparseable datetimes do not stop a
run, they are reported alongside the result.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Classification carried by a failed pipeline run."""

    SOURCE_UNAVAILABLE = "source_unavailable"
    INVARIANT_VIOLATION = "invariant_violation"
    TIMEOUT = "timeout"
    UNEXPECTED = "unexpected"

    def get_description(self) -> str:
        """Get a generic, user-facing description of the failure."""
        descriptions = {
            ErrorKind.SOURCE_UNAVAILABLE: "Incident data could not be retrieved",
            ErrorKind.INVARIANT_VIOLATION: "Incident data was inconsistent",
            ErrorKind.TIMEOUT: "Incident retrieval timed out",
            ErrorKind.UNEXPECTED: "Incident retrieval failed",
        }
        return descriptions[self]


class IncidentFeedError(Exception):
    """Base exception for incidentfeed."""


class SourceUnavailable(IncidentFeedError):
    """A Location Source or Incident Source call failed.

    Args:
        message: What went wrong
        location_id: Location being queried, None for the location listing
        status_code: HTTP status when the source is an HTTP API
    """

    def __init__(
        self,
        message: str,
        location_id: Any = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.location_id = location_id
        self.status_code = status_code


class InvariantViolation(IncidentFeedError):
    """An incident cannot take part in ranking (no id, or no integer priority)."""


class PipelineBusyError(IncidentFeedError):
    """run() was called while a previous run is still loading."""


class PipelineError(IncidentFeedError):
    """Classified failure of one pipeline run.

    Args:
        kind: Failure classification
        cause: Underlying exception, if any
    """

    def __init__(self, kind: ErrorKind, cause: BaseException | None = None) -> None:
        message = kind.get_description()
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.kind = kind
        self.cause = cause

    @classmethod
    def classify(cls, exc: BaseException) -> "PipelineError":
        """Wrap an exception raised during a run into a PipelineError."""
        if isinstance(exc, PipelineError):
            return exc
        if isinstance(exc, SourceUnavailable):
            return cls(ErrorKind.SOURCE_UNAVAILABLE, exc)
        if isinstance(exc, InvariantViolation):
            return cls(ErrorKind.INVARIANT_VIOLATION, exc)
        if isinstance(exc, TimeoutError):
            return cls(ErrorKind.TIMEOUT, exc)
        return cls(ErrorKind.UNEXPECTED, exc)


@dataclass(frozen=True)
class DataQualityWarning:
    """An incident whose datetime could not be parsed.

    The incident is still ranked, as the oldest possible instant.
    """

    incident_id: Any
    value: Any
    reason: str

    def __str__(self) -> str:
        return f"incident {self.incident_id!r}: unparseable datetime {self.value!r} ({self.reason})"
