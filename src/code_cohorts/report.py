"""Write cohort tables to CSV or JSON files."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Literal

from code_cohorts.aggregate import CohortTable

ReportFormat = Literal["csv", "json"]

DEFAULT_REPORT_NAME = "axoutput"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def write_csv(table: CohortTable, path: Path) -> Path:
    """Write ``DateTime`` plus one column per cohort, one row per sample."""
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(["DateTime", *table.columns])
        for row in table.rows:
            writer.writerow(
                [row.timestamp.strftime(TIMESTAMP_FORMAT), *(row.counts[label] for label in table.columns)]
            )
    return path


def write_json(table: CohortTable, path: Path) -> Path:
    payload = {
        "columns": table.columns,
        "rows": [
            {"timestamp": row.timestamp.isoformat(), "counts": row.counts}
            for row in table.rows
        ],
    }
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def write_report(
    table: CohortTable,
    outdir: Path,
    fmt: ReportFormat = "csv",
    name: str = DEFAULT_REPORT_NAME,
) -> Path:
    """Write ``table`` into ``outdir`` and return the file path.

    Args:
        table: Aggregated cohort counts.
        outdir: Directory to write into; created when missing.
        fmt: ``csv`` or ``json``.
        name: File stem; the extension follows ``fmt``.

    Returns:
        Path of the written report.
    """
    outdir.mkdir(parents=True, exist_ok=True)
    target = outdir / f"{name}.{fmt}"
    if fmt == "json":
        return write_json(table, target)
    return write_csv(table, target)
