"""Per-file cohort line state and the accumulator that folds changesets into it.

A ``Sample`` maps each tracked path to a tuple of cohort labels, one per line.
Tuples are never mutated, so consecutive samples share the tuple of every file
a changeset did not touch. A touched file is copied into a private list the
first time it is written during a changeset and frozen again afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

import structlog

from code_cohorts.errors import DataConsistencyError, OrderingError, PipelineHaltedError
from code_cohorts.models import AddFile, AddLines, Change, Changeset, DeleteFile, DeleteLines

log = structlog.get_logger(__name__)

Lines = tuple[str, ...]

_EMPTY_FILES: Mapping[str, Lines] = MappingProxyType({})


def cohort_label(timestamp: datetime, cohort_format: str) -> str:
    """Bucket a timestamp into its cohort label, e.g. ``"2020"`` for ``%Y``."""
    return timestamp.strftime(cohort_format)


@dataclass(frozen=True)
class Sample:
    """Cumulative line provenance at one snapshot timestamp."""

    timestamp: datetime
    files: Mapping[str, Lines] = field(default_factory=lambda: _EMPTY_FILES)

    @classmethod
    def empty(cls, timestamp: datetime) -> Sample:
        return cls(timestamp=timestamp)

    def lines(self, path: str) -> Lines:
        return self.files.get(path, ())

    def total_lines(self) -> int:
        return sum(len(lines) for lines in self.files.values())


class _Workspace:
    """Copy-on-write view over a previous sample's files for one changeset."""

    def __init__(self, files: Mapping[str, Lines], timestamp: datetime, label: str):
        self.files = dict(files)
        self.owned: dict[str, list[str]] = {}
        self.timestamp = timestamp
        self.label = label

    def _writable(self, path: str) -> list[str]:
        lines = self.owned.get(path)
        if lines is None:
            lines = list(self.files.get(path, ()))
            self.owned[path] = lines
        return lines

    def _current_length(self, path: str) -> int:
        if path in self.owned:
            return len(self.owned[path])
        return len(self.files.get(path, ()))

    def _check_bounds(self, change: AddLines | DeleteLines) -> None:
        if change.start < 0 or change.length < 0:
            raise DataConsistencyError("negative start or length", change.path, self.timestamp, change)
        if change.start > self._current_length(change.path):
            raise DataConsistencyError(
                f"start {change.start} beyond {self._current_length(change.path)} lines",
                change.path,
                self.timestamp,
                change,
            )

    def apply(self, change: Change) -> None:
        if isinstance(change, AddFile):
            if change.length < 0:
                raise DataConsistencyError("negative length", change.path, self.timestamp, change)
            self.owned[change.path] = [self.label] * change.length
        elif isinstance(change, DeleteFile):
            self.owned.pop(change.path, None)
            self.files.pop(change.path, None)
        elif isinstance(change, AddLines):
            self._check_bounds(change)
            lines = self._writable(change.path)
            lines[change.start : change.start] = [self.label] * change.length
        elif isinstance(change, DeleteLines):
            self._check_bounds(change)
            available = self._current_length(change.path)
            end = change.start + change.length
            if end > available:
                log.warning(
                    "delete_clamped",
                    path=change.path,
                    start=change.start,
                    length=change.length,
                    available=available,
                    timestamp=self.timestamp.isoformat(),
                )
                end = available
            if change.path not in self.files and change.path not in self.owned:
                return
            del self._writable(change.path)[change.start : end]
        else:
            raise TypeError(f"Unknown change type: {type(change).__name__}")

    def freeze(self) -> Mapping[str, Lines]:
        for path, lines in self.owned.items():
            self.files[path] = tuple(lines)
        return MappingProxyType(self.files)


def apply_changeset(previous: Sample | None, changeset: Changeset, cohort_format: str) -> Sample:
    """Fold ``changeset`` onto ``previous`` and return the next sample.

    ``previous`` is never modified; on ``DataConsistencyError`` it stays valid
    and reusable.
    """
    base = previous.files if previous is not None else _EMPTY_FILES
    workspace = _Workspace(base, changeset.timestamp, cohort_label(changeset.timestamp, cohort_format))
    for change in changeset.changes:
        workspace.apply(change)
    return Sample(timestamp=changeset.timestamp, files=workspace.freeze())


class SampleAccumulator:
    """Single-writer, append-only sequence of samples."""

    def __init__(self, cohort_format: str):
        self.cohort_format = cohort_format
        self.samples: list[Sample] = []
        self._failed = False

    @property
    def last(self) -> Sample | None:
        return self.samples[-1] if self.samples else None

    def push(self, changeset: Changeset) -> Sample:
        if self._failed:
            raise PipelineHaltedError("Accumulator stopped after an earlier failure")
        last = self.last
        if last is not None and changeset.timestamp <= last.timestamp:
            self._failed = True
            raise OrderingError("changeset is not newer than the last sample", changeset.timestamp)
        try:
            sample = apply_changeset(last, changeset, self.cohort_format)
        except DataConsistencyError:
            self._failed = True
            raise
        self.samples.append(sample)
        log.debug(
            "sample_accumulated",
            timestamp=sample.timestamp.isoformat(),
            changes=len(changeset.changes),
            files=len(sample.files),
        )
        return sample
