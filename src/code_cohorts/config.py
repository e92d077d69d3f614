"""Analysis options and the path filter derived from them."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from code_cohorts.errors import ConfigurationError

DEFAULT_INTERVAL_SECONDS = 604800
DEFAULT_COHORT_FORMAT = "%Y"
DEFAULT_WORKERS = 4
ENV_PREFIX = "CODE_COHORTS_"


def _join_patterns(patterns: list[str]) -> re.Pattern[str] | None:
    if not patterns:
        return None
    return re.compile("|".join(patterns))


class PathFilter:
    """Decides which file paths take part in the analysis."""

    def __init__(self, ignore: list[str] | None = None, only: list[str] | None = None):
        self.ignore = _join_patterns(list(ignore or []))
        self.only = _join_patterns(list(only or []))

    def should_ignore(self, path: str) -> bool:
        return bool(self.ignore and self.ignore.search(path))

    def should_keep(self, path: str) -> bool:
        if self.only is None:
            return True
        return bool(self.only.search(path))

    def should_skip(self, path: str) -> bool:
        return self.should_ignore(path) or not self.should_keep(path)


class AnalysisOptions(BaseModel):
    """Options for one cohort collection run."""

    model_config = ConfigDict(frozen=True)

    repo_path: Path
    revision: str = "HEAD"
    interval_seconds: int = Field(DEFAULT_INTERVAL_SECONDS, ge=1)
    cohort_format: str = DEFAULT_COHORT_FORMAT
    ignore: list[str] = Field(default_factory=list)
    only: list[str] = Field(default_factory=list)
    workers: int = Field(DEFAULT_WORKERS, ge=1)
    detect_renames: bool = False

    @field_validator("cohort_format")
    @classmethod
    def _check_cohort_format(cls, value: str) -> str:
        reference = datetime(2000, 1, 1, tzinfo=timezone.utc)
        if not reference.strftime(value):
            raise ValueError("cohort format renders an empty label")
        return value

    @field_validator("ignore", "only")
    @classmethod
    def _check_patterns(cls, value: list[str]) -> list[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"invalid pattern {pattern!r}: {exc}") from exc
        return value

    @classmethod
    def build(cls, **values: object) -> AnalysisOptions:
        """Validate options, raising ``ConfigurationError`` instead of pydantic errors."""
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError("Invalid analysis options", details={"errors": exc.error_count()}) from exc

    def path_filter(self) -> PathFilter:
        return PathFilter(ignore=self.ignore, only=self.only)

    def cohort_label(self, timestamp: datetime) -> str:
        return timestamp.strftime(self.cohort_format)
