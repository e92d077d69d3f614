"""Git history access: commit listing, snapshot selection, and zero-context diffs.

Everything here shells out to the ``git`` CLI and parses its plain-text output.
"""

from __future__ import annotations

import re
import subprocess
from datetime import datetime, timedelta, timezone
from pathlib import Path

import structlog

from code_cohorts.errors import GitCommandError, RepositoryError
from code_cohorts.models import DiffHunk, FileDiff, FileStatus, Snapshot

log = structlog.get_logger(__name__)

HUNK_RE = re.compile(r"@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

DIFF_OPTIONS = [
    "--unified=0",
    "--no-color",
    "--no-ext-diff",
    "--src-prefix=a/",
    "--dst-prefix=b/",
]


def _run_git(repo_path: Path, args: list[str], input_text: str | None = None) -> str:
    cmd = ["git", "-C", str(repo_path), "-c", "core.quotePath=false", *args]
    proc = subprocess.run(
        cmd,
        check=False,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        input=input_text,
    )
    if proc.returncode != 0:
        raise GitCommandError(cmd, proc.stderr.strip())
    return proc.stdout


def open_repo(path: Path) -> Path:
    """Resolve ``path`` to the top level of its git work tree."""
    candidate = Path(path).expanduser()
    if not candidate.is_dir():
        raise RepositoryError("Repository path is not a directory", details={"path": str(candidate)})
    try:
        toplevel = _run_git(candidate, ["rev-parse", "--show-toplevel"]).strip()
    except GitCommandError as exc:
        raise RepositoryError("Couldn't open repository", details={"path": str(candidate)}) from exc
    return Path(toplevel).resolve()


def list_commits(repo_path: Path, revision: str = "HEAD") -> list[Snapshot]:
    """Commits reachable from ``revision``, oldest first, by committer time."""
    output = _run_git(repo_path, ["log", "--date-order", "--reverse", "--pretty=format:%H%x1f%ct", revision, "--"])
    commits: list[Snapshot] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        commit_hash, seconds = line.split("\x1f", maxsplit=1)
        commits.append(
            Snapshot(commit=commit_hash, timestamp=datetime.fromtimestamp(int(seconds), tz=timezone.utc))
        )
    return commits


def select_snapshots(commits: list[Snapshot], interval_seconds: int) -> list[Snapshot]:
    """Keep the first commit, then each one at least ``interval_seconds`` after the last kept."""
    interval = timedelta(seconds=interval_seconds)
    selected: list[Snapshot] = []
    for commit in commits:
        if selected and commit.timestamp < selected[-1].timestamp + interval:
            continue
        selected.append(commit)
    return selected


def empty_tree(repo_path: Path) -> str:
    """Object id of the empty tree, the left side of the very first diff."""
    return _run_git(repo_path, ["hash-object", "-t", "tree", "--stdin"], input_text="").strip()


def diff_trees(repo_path: Path, old: str, new: str, detect_renames: bool = False) -> list[FileDiff]:
    args = ["diff", *DIFF_OPTIONS, "--find-renames" if detect_renames else "--no-renames", old, new, "--"]
    return parse_diff(_run_git(repo_path, args))


def _unquote(path: str) -> str:
    """Undo git's C-style quoting of unusual paths."""
    if not (len(path) >= 2 and path.startswith('"') and path.endswith('"')):
        return path
    raw = path[1:-1].encode("utf-8").decode("unicode_escape")
    return raw.encode("latin-1").decode("utf-8", errors="replace")


def _strip_prefix(path: str, prefix: str) -> str | None:
    path = _unquote(path)
    if path == "/dev/null":
        return None
    return path[len(prefix) :] if path.startswith(prefix) else path


class _FileDiffBuilder:
    def __init__(self, header: str):
        self.header = header
        self.status = FileStatus.MODIFIED
        self.old_path: str | None = None
        self.new_path: str | None = None
        self.hunks: list[DiffHunk] = []

    def _paths_from_header(self) -> tuple[str | None, str | None]:
        # "diff --git a/<path> b/<path>" is only unambiguous when both sides match.
        body = self.header[len("diff --git ") :]
        half = (len(body) - 1) // 2
        left, right = body[:half], body[half + 1 :]
        if left.startswith("a/") and right.startswith("b/") and left[2:] == right[2:]:
            return left[2:], right[2:]
        return None, None

    def build(self) -> FileDiff:
        old_path, new_path = self.old_path, self.new_path
        if old_path is None and new_path is None:
            old_path, new_path = self._paths_from_header()
        if self.status is FileStatus.ADDED:
            old_path = None
        elif self.status is FileStatus.DELETED:
            new_path = None
        return FileDiff(status=self.status, old_path=old_path, new_path=new_path, hunks=tuple(self.hunks))


def parse_diff(diff_text: str) -> list[FileDiff]:
    """Parse ``git diff --unified=0`` output into per-file hunk lists."""
    files: list[FileDiff] = []
    current: _FileDiffBuilder | None = None
    remaining_old = 0
    remaining_new = 0

    # Only "\n" ends a diff line; form feeds and other separators belong to content.
    for raw in diff_text.split("\n"):
        raw = raw.removesuffix("\r")
        if remaining_old or remaining_new:
            if raw.startswith("-") and remaining_old:
                remaining_old -= 1
                continue
            if raw.startswith("+") and remaining_new:
                remaining_new -= 1
                continue
            if raw.startswith("\\"):
                continue
            log.warning("diff_hunk_truncated", old=remaining_old, new=remaining_new, line=raw[:80])
            remaining_old = remaining_new = 0

        if raw.startswith("\\"):
            continue

        if raw.startswith("diff --git "):
            if current is not None:
                files.append(current.build())
            current = _FileDiffBuilder(raw)
            continue

        if current is None:
            continue

        if raw.startswith("new file mode"):
            current.status = FileStatus.ADDED
        elif raw.startswith("deleted file mode"):
            current.status = FileStatus.DELETED
        elif raw.startswith("rename from "):
            current.status = FileStatus.RENAMED
            current.old_path = _unquote(raw[len("rename from ") :])
        elif raw.startswith("rename to "):
            current.new_path = _unquote(raw[len("rename to ") :])
        elif raw.startswith("copy from "):
            current.status = FileStatus.COPIED
            current.old_path = _unquote(raw[len("copy from ") :])
        elif raw.startswith("copy to "):
            current.new_path = _unquote(raw[len("copy to ") :])
        elif raw.startswith("--- "):
            current.old_path = _strip_prefix(raw[4:], "a/")
        elif raw.startswith("+++ "):
            current.new_path = _strip_prefix(raw[4:], "b/")
        elif raw.startswith("@@ "):
            match = HUNK_RE.match(raw)
            if not match:
                log.warning("diff_hunk_header_unparsed", line=raw)
                continue
            old_start, old_count, new_start, new_count = match.groups()
            hunk = DiffHunk(
                old_start=int(old_start),
                old_line_count=int(old_count) if old_count is not None else 1,
                new_start=int(new_start),
                new_line_count=int(new_count) if new_count is not None else 1,
            )
            current.hunks.append(hunk)
            remaining_old = hunk.old_line_count
            remaining_new = hunk.new_line_count

    if current is not None:
        files.append(current.build())
    return files
