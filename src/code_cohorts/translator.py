"""Translate diff hunks into positional line changes."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

import structlog

from code_cohorts.config import PathFilter
from code_cohorts.models import (
    AddFile,
    AddLines,
    Change,
    Changeset,
    DeleteFile,
    DeleteLines,
    DiffHunk,
    FileDiff,
    FileStatus,
)

log = structlog.get_logger(__name__)

SUPPORTED_STATUSES = frozenset({FileStatus.ADDED, FileStatus.DELETED, FileStatus.MODIFIED})


def translate(status: FileStatus, path: str, hunk: DiffHunk) -> tuple[Change, ...]:
    """Return the line changes one hunk implies for ``path``.

    Statuses other than added, deleted and modified yield no changes; callers
    are expected to report them.
    """
    if status is FileStatus.ADDED:
        return (AddFile(path=path, length=hunk.new_line_count),)

    if status is FileStatus.DELETED:
        return (DeleteFile(path=path),)

    if status is FileStatus.MODIFIED:
        # A new_start of 0 means "before the first line".
        start = max(hunk.new_start - 1, 0)
        changes: list[Change] = []
        if hunk.old_line_count > 0:
            changes.append(DeleteLines(path=path, start=start, length=hunk.old_line_count))
        if hunk.new_line_count > 0:
            changes.append(AddLines(path=path, start=start, length=hunk.new_line_count))
        return tuple(changes)

    return ()


def _change_path(file_diff: FileDiff) -> str:
    if file_diff.status is FileStatus.DELETED:
        return file_diff.old_path or file_diff.tracked_path
    return file_diff.new_path or file_diff.tracked_path


def build_changeset(
    timestamp: datetime,
    file_diffs: Iterable[FileDiff],
    path_filter: PathFilter | None = None,
) -> Changeset:
    """Build the changeset for one snapshot transition.

    Filtered-out files never generate changes. Files whose status cannot be
    tracked (renames, copies) are logged and listed in
    ``Changeset.skipped``.
    """
    changes: list[Change] = []
    skipped: list[str] = []

    for file_diff in file_diffs:
        if path_filter and path_filter.should_skip(file_diff.tracked_path):
            continue

        if file_diff.status not in SUPPORTED_STATUSES:
            log.warning(
                "unsupported_file_status",
                status=file_diff.status.value,
                old_path=file_diff.old_path,
                new_path=file_diff.new_path,
                timestamp=timestamp.isoformat(),
            )
            skipped.append(file_diff.tracked_path)
            continue

        path = _change_path(file_diff)
        for hunk in file_diff.hunks:
            changes.extend(translate(file_diff.status, path, hunk))

    return Changeset(timestamp=timestamp, changes=tuple(changes), skipped=tuple(skipped))
