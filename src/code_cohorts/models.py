"""Pydantic models shared across history, translation, and accumulation layers."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class FileStatus(str, Enum):
    """Per-file status reported by a tree-to-tree diff."""

    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    RENAMED = "renamed"
    COPIED = "copied"


class DiffHunk(BaseModel):
    """A zero-context hunk header, positions 1-based as git reports them."""

    model_config = ConfigDict(frozen=True)

    old_start: int = Field(ge=0)
    old_line_count: int = Field(ge=0)
    new_start: int = Field(ge=0)
    new_line_count: int = Field(ge=0)


class FileDiff(BaseModel):
    """All hunks for one file between two snapshots."""

    model_config = ConfigDict(frozen=True)

    status: FileStatus
    old_path: str | None = None
    new_path: str | None = None
    hunks: tuple[DiffHunk, ...] = ()

    @property
    def tracked_path(self) -> str:
        """Path used for filtering: the old path when there is one."""
        return self.old_path or self.new_path or ""


class Snapshot(BaseModel):
    """A commit selected for sampling."""

    model_config = ConfigDict(frozen=True)

    commit: str
    timestamp: datetime


class AddLines(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["add_lines"] = "add_lines"
    path: str
    start: int
    length: int


class DeleteLines(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["delete_lines"] = "delete_lines"
    path: str
    start: int
    length: int


class AddFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["add_file"] = "add_file"
    path: str
    length: int


class DeleteFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["delete_file"] = "delete_file"
    path: str


Change = Annotated[
    Union[AddLines, DeleteLines, AddFile, DeleteFile],
    Field(discriminator="kind"),
]


class Changeset(BaseModel):
    """Every line operation needed to move from one snapshot to the next.

    ``changes`` is ordered: within a modified hunk the deletion precedes the
    insertion at the same start, because the insertion position is expressed
    after the deletion has been applied.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    changes: tuple[Change, ...] = ()
    skipped: tuple[str, ...] = ()
