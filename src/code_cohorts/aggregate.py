"""Reduce samples into cohort line counts for reporting."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime

from pydantic import BaseModel

from code_cohorts.sample import Lines, Sample


class CohortRow(BaseModel):
    timestamp: datetime
    counts: dict[str, int]


class CohortTable(BaseModel):
    """Surviving line counts per snapshot, one column per cohort label."""

    columns: list[str]
    rows: list[CohortRow]


def count_cohort_lines(sample: Sample, cohort: str) -> int:
    """Number of lines across all files whose label equals ``cohort``."""
    return sum(lines.count(cohort) for lines in sample.files.values())


class _HistogramCache:
    """Per-file histograms keyed by tuple identity.

    Samples share the tuples of untouched files, so each distinct tuple is
    counted once no matter how many samples reference it. The cache holds the
    tuples themselves, which keeps their ids stable while it is alive.
    """

    def __init__(self) -> None:
        self._entries: dict[int, tuple[Lines, Counter[str]]] = {}

    def histogram(self, lines: Lines) -> Counter[str]:
        entry = self._entries.get(id(lines))
        if entry is None:
            entry = (lines, Counter(lines))
            self._entries[id(lines)] = entry
        return entry[1]

    def sample_histogram(self, sample: Sample) -> Counter[str]:
        total: Counter[str] = Counter()
        for lines in sample.files.values():
            total.update(self.histogram(lines))
        return total


def cohort_histogram(sample: Sample) -> Counter[str]:
    return _HistogramCache().sample_histogram(sample)


def all_cohorts(samples: Iterable[Sample]) -> list[str]:
    """Sorted distinct labels observed in any sample."""
    cache = _HistogramCache()
    labels: set[str] = set()
    for sample in samples:
        for lines in sample.files.values():
            labels.update(cache.histogram(lines))
    return sorted(labels)


def build_cohort_table(samples: Sequence[Sample]) -> CohortTable:
    cache = _HistogramCache()
    histograms = [cache.sample_histogram(sample) for sample in samples]
    columns = sorted({label for histogram in histograms for label in histogram})
    rows = [
        CohortRow(
            timestamp=sample.timestamp,
            counts={label: histogram.get(label, 0) for label in columns},
        )
        for sample, histogram in zip(samples, histograms)
    ]
    rows.sort(key=lambda row: row.timestamp)
    return CohortTable(columns=columns, rows=rows)
