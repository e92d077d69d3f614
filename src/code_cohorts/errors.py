"""Error types raised while collecting cohort samples."""

from __future__ import annotations

from datetime import datetime
from typing import Any


class CohortError(Exception):
    """Base exception for all code-cohorts errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigurationError(CohortError):
    """Raised when analysis options are invalid."""


class RepositoryError(CohortError):
    """Raised when a path does not point at a usable git repository."""


class GitCommandError(CohortError):
    """Raised when a git subprocess exits with a non-zero status."""

    def __init__(self, args: list[str], stderr: str):
        super().__init__(
            f"git command failed: {' '.join(args)}",
            details={"stderr": stderr},
        )
        self.args_list = args
        self.stderr = stderr


class DataConsistencyError(CohortError):
    """Raised when a change cannot be applied to the current line state."""

    def __init__(self, reason: str, path: str, timestamp: datetime, change: Any):
        super().__init__(
            f"Inconsistent change for {path}: {reason}",
            details={"timestamp": timestamp.isoformat(), "change": repr(change)},
        )
        self.reason = reason
        self.path = path
        self.timestamp = timestamp
        self.change = change


class OrderingError(CohortError):
    """Raised when changesets do not line up with the expected timestamps."""

    def __init__(self, reason: str, timestamp: datetime | None = None):
        details = {"timestamp": timestamp.isoformat()} if timestamp else None
        super().__init__(f"Changeset ordering violated: {reason}", details=details)
        self.reason = reason
        self.timestamp = timestamp


class ProducerError(CohortError):
    """Raised when a changeset could not be produced for a snapshot pair."""

    def __init__(self, timestamp: datetime, cause: BaseException):
        super().__init__(
            f"Failed to produce changeset: {cause}",
            details={"timestamp": timestamp.isoformat()},
        )
        self.timestamp = timestamp
        self.cause = cause


class PipelineHaltedError(CohortError):
    """Raised when accumulation is attempted after an earlier failure."""


class PipelineCancelledError(CohortError):
    """Raised to a waiting consumer when the run has been cancelled."""
