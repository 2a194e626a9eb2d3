"""Structured error taxonomy.

Every failure the core can produce maps to exactly one ErrorKind. Batch
runners capture failures as TaskError values on the result objects, so
callers branch on ``error.kind`` rather than on message text.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    SNAPSHOT_UNAVAILABLE = "snapshot_unavailable"
    UNSUPPORTED_VERSION = "unsupported_version"
    EXTERNAL_CALL_FAILURE = "external_call_failure"
    AGGREGATION_SKIPPED = "aggregation_skipped"
    CANCELLED = "cancelled"


class TerminatorError(Exception):
    """Base class for all errors raised by fil_terminator."""

    kind: ErrorKind = ErrorKind.EXTERNAL_CALL_FAILURE


class InvalidInputError(TerminatorError, ValueError):
    """Malformed identifier, range, epoch or flag."""

    kind = ErrorKind.INVALID_INPUT


class SnapshotUnavailableError(TerminatorError):
    """The finalized chain state at the requested epoch cannot be resolved."""

    kind = ErrorKind.SNAPSHOT_UNAVAILABLE


class UnsupportedVersionError(TerminatorError):
    """Actor or network version is older than the supported minimum."""

    kind = ErrorKind.UNSUPPORTED_VERSION


class ExternalCallError(TerminatorError):
    """A chain-state or penalty collaborator call failed."""

    kind = ErrorKind.EXTERNAL_CALL_FAILURE


class AggregationSkippedError(TerminatorError):
    """A sector could not be priced and was left out of the totals."""

    kind = ErrorKind.AGGREGATION_SKIPPED


class TaskCancelledError(TerminatorError):
    """The task was not started because the batch was cancelled."""

    kind = ErrorKind.CANCELLED


class TaskError(BaseModel):
    kind: ErrorKind
    message: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_exception(cls, exc: BaseException) -> TaskError:
        """Map an exception to a structured error.

        Model validation failures count as invalid input. Anything else
        outside the TerminatorError hierarchy originates in collaborator code
        and is reported as an external call failure.
        """
        if isinstance(exc, TerminatorError):
            kind = exc.kind
        elif isinstance(exc, ValidationError):
            kind = ErrorKind.INVALID_INPUT
        else:
            kind = ErrorKind.EXTERNAL_CALL_FAILURE
        message = str(exc) or type(exc).__name__
        return cls(kind=kind, message=message)

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"
