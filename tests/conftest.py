from __future__ import annotations

import sys
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from code_cohorts.models import AddFile, Changeset, DiffHunk, FileDiff, FileStatus


@pytest.fixture
def at() -> Callable[..., datetime]:
    def _at(year: int, month: int = 1, day: int = 1) -> datetime:
        return datetime(year, month, day, tzinfo=timezone.utc)

    return _at


@pytest.fixture
def two_file_changeset(at) -> Changeset:
    return Changeset(
        timestamp=at(2020),
        changes=(
            AddFile(path="a.txt", length=3),
            AddFile(path="b.txt", length=2),
        ),
    )


@pytest.fixture
def modified_diff() -> FileDiff:
    return FileDiff(
        status=FileStatus.MODIFIED,
        old_path="src/app.py",
        new_path="src/app.py",
        hunks=(
            DiffHunk(old_start=2, old_line_count=1, new_start=2, new_line_count=2),
            DiffHunk(old_start=10, old_line_count=0, new_start=11, new_line_count=1),
        ),
    )


@pytest.fixture
def diff_output() -> str:
    return "\n".join(
        [
            "diff --git a/src/app.py b/src/app.py",
            "index 1111111..2222222 100644",
            "--- a/src/app.py",
            "+++ b/src/app.py",
            "@@ -2 +2,2 @@ def main():",
            "-    return 1",
            "+    value = 2",
            "+    return value",
            "@@ -10,0 +11 @@",
            "+# trailing note",
            "diff --git a/docs/new.md b/docs/new.md",
            "new file mode 100644",
            "index 0000000..3333333",
            "--- /dev/null",
            "+++ b/docs/new.md",
            "@@ -0,0 +1,3 @@",
            "+# Title",
            "+",
            "++++ not a header",
            "diff --git a/old.txt b/old.txt",
            "deleted file mode 100644",
            "index 4444444..0000000",
            "--- a/old.txt",
            "+++ /dev/null",
            "@@ -1,2 +0,0 @@",
            "--- not a header either",
            "-bye",
            "\\ No newline at end of file",
        ]
    )
