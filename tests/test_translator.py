from __future__ import annotations

from code_cohorts.config import PathFilter
from code_cohorts.models import (
    AddFile,
    AddLines,
    DeleteFile,
    DeleteLines,
    DiffHunk,
    FileDiff,
    FileStatus,
)
from code_cohorts.translator import build_changeset, translate


def test_translate_given_added_file_when_translated_then_single_add_file_with_new_line_count() -> None:
    # Given
    hunk = DiffHunk(old_start=0, old_line_count=0, new_start=1, new_line_count=12)

    # When
    changes = translate(FileStatus.ADDED, "src/new.py", hunk)

    # Then
    assert changes == (AddFile(path="src/new.py", length=12),)


def test_translate_given_deleted_file_when_translated_then_single_delete_file() -> None:
    # Given
    hunk = DiffHunk(old_start=1, old_line_count=5, new_start=0, new_line_count=0)

    # When
    changes = translate(FileStatus.DELETED, "src/gone.py", hunk)

    # Then
    assert changes == (DeleteFile(path="src/gone.py"),)


def test_translate_given_modified_hunk_when_translated_then_delete_precedes_add_at_same_start() -> None:
    # Given
    hunk = DiffHunk(old_start=4, old_line_count=2, new_start=4, new_line_count=3)

    # When
    changes = translate(FileStatus.MODIFIED, "a.txt", hunk)

    # Then
    assert changes == (
        DeleteLines(path="a.txt", start=3, length=2),
        AddLines(path="a.txt", start=3, length=3),
    )


def test_translate_given_zero_new_start_when_translated_then_start_clamps_to_zero() -> None:
    # Given
    hunk = DiffHunk(old_start=1, old_line_count=2, new_start=0, new_line_count=0)

    # When
    changes = translate(FileStatus.MODIFIED, "a.txt", hunk)

    # Then
    assert changes == (DeleteLines(path="a.txt", start=0, length=2),)


def test_translate_given_pure_insertion_when_translated_then_only_add_is_emitted() -> None:
    # Given
    hunk = DiffHunk(old_start=4, old_line_count=0, new_start=5, new_line_count=2)

    # When
    changes = translate(FileStatus.MODIFIED, "a.txt", hunk)

    # Then
    assert changes == (AddLines(path="a.txt", start=4, length=2),)


def test_translate_given_rename_status_when_translated_then_no_changes() -> None:
    # Given
    hunk = DiffHunk(old_start=1, old_line_count=1, new_start=1, new_line_count=1)

    # When
    renamed = translate(FileStatus.RENAMED, "b.txt", hunk)
    copied = translate(FileStatus.COPIED, "c.txt", hunk)

    # Then
    assert renamed == ()
    assert copied == ()


def test_translate_given_identical_inputs_when_called_twice_then_results_are_equal() -> None:
    # Given
    hunk = DiffHunk(old_start=7, old_line_count=3, new_start=7, new_line_count=1)

    # When
    first = translate(FileStatus.MODIFIED, "a.txt", hunk)
    second = translate(FileStatus.MODIFIED, "a.txt", hunk)

    # Then
    assert first == second


def test_build_changeset_given_multiple_hunks_when_built_then_changes_follow_file_order(at, modified_diff) -> None:
    # Given
    timestamp = at(2021)

    # When
    changeset = build_changeset(timestamp, [modified_diff])

    # Then
    assert changeset.timestamp == timestamp
    assert changeset.changes == (
        DeleteLines(path="src/app.py", start=1, length=1),
        AddLines(path="src/app.py", start=1, length=2),
        AddLines(path="src/app.py", start=10, length=1),
    )
    assert changeset.skipped == ()


def test_build_changeset_given_path_filter_when_built_then_filtered_files_generate_no_changes(at) -> None:
    # Given
    hunk = DiffHunk(old_start=0, old_line_count=0, new_start=1, new_line_count=2)
    diffs = [
        FileDiff(status=FileStatus.ADDED, new_path="vendor/lib.js", hunks=(hunk,)),
        FileDiff(status=FileStatus.ADDED, new_path="src/app.py", hunks=(hunk,)),
        FileDiff(status=FileStatus.ADDED, new_path="README.md", hunks=(hunk,)),
    ]
    path_filter = PathFilter(ignore=["^vendor/"], only=[r"\.py$", r"\.js$"])

    # When
    changeset = build_changeset(at(2021), diffs, path_filter)

    # Then
    assert changeset.changes == (AddFile(path="src/app.py", length=2),)


def test_build_changeset_given_renamed_file_when_built_then_path_is_reported_as_skipped(at) -> None:
    # Given
    hunk = DiffHunk(old_start=3, old_line_count=1, new_start=3, new_line_count=1)
    diffs = [FileDiff(status=FileStatus.RENAMED, old_path="old/name.py", new_path="new/name.py", hunks=(hunk,))]

    # When
    changeset = build_changeset(at(2021), diffs)

    # Then
    assert changeset.changes == ()
    assert changeset.skipped == ("old/name.py",)


def test_build_changeset_given_deleted_file_when_built_then_old_path_is_used(at) -> None:
    # Given
    hunk = DiffHunk(old_start=1, old_line_count=4, new_start=0, new_line_count=0)
    diffs = [FileDiff(status=FileStatus.DELETED, old_path="gone.txt", hunks=(hunk,))]

    # When
    changeset = build_changeset(at(2021), diffs)

    # Then
    assert changeset.changes == (DeleteFile(path="gone.txt"),)
