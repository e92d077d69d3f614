"""Typer-based CLI for collecting line cohorts from a git repository."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from code_cohorts import history
from code_cohorts.config import (
    DEFAULT_COHORT_FORMAT,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_WORKERS,
    ENV_PREFIX,
    AnalysisOptions,
)
from code_cohorts.errors import CohortError
from code_cohorts.logging import configure_logging
from code_cohorts.pipeline import STAGE_COLLECTING, ProvenancePipeline
from code_cohorts.report import DEFAULT_REPORT_NAME, write_report

app = typer.Typer(add_completion=False, help="code-cohorts: how much of a codebase dates from each period")

DEFAULT_OUTDIR = Path(".")


def _echo_step(step: int, total: int, message: str) -> None:
    """Print a normalized progress step line."""
    typer.echo(f"[{step}/{total}] {message}")


def _echo_progress(stage: str, done: int, total: int) -> None:
    """Print incremental pipeline progress from the pipeline callback."""
    percent = int((done / total) * 100) if total else 100
    label = "collecting changesets" if stage == STAGE_COLLECTING else "processing changesets"
    typer.echo(f"    {label}... {done}/{total} ({percent}%)")


def _fail(exc: CohortError) -> NoReturn:
    """Report a pipeline error the way the original tool does and exit non-zero."""
    typer.echo(f"Error: {exc}", err=True)
    cause = exc.__cause__ or getattr(exc, "cause", None)
    while cause is not None:
        typer.echo(f"Caused by: {cause}", err=True)
        cause = cause.__cause__
    raise typer.Exit(code=1)


@app.command("collect")
def collect(
    repo: Path = typer.Argument(..., help="Path to a local git repository"),
    cohort_format: str = typer.Option(
        DEFAULT_COHORT_FORMAT,
        "--cohort-format",
        "-f",
        envvar=f"{ENV_PREFIX}COHORT_FORMAT",
        help='A datetime format string such as "%Y" for creating cohorts',
    ),
    interval: int = typer.Option(
        DEFAULT_INTERVAL_SECONDS,
        "--interval",
        "-i",
        envvar=f"{ENV_PREFIX}INTERVAL",
        help="Min difference between commits to analyze (in seconds)",
    ),
    ignore: list[str] = typer.Option(
        [], "--ignore", "-I", help="File patterns that should be ignored (can provide multiple)"
    ),
    only: list[str] = typer.Option([], "--only", "-O", help="File patterns that have to match (can provide multiple)"),
    outdir: Path = typer.Option(DEFAULT_OUTDIR, "--outdir", "-o", help="Output directory to store results"),
    branch: str = typer.Option("HEAD", "--branch", "-b", envvar=f"{ENV_PREFIX}BRANCH", help="Branch to track"),
    workers: int = typer.Option(
        DEFAULT_WORKERS, "--workers", "-w", envvar=f"{ENV_PREFIX}WORKERS", help="Parallel diff workers"
    ),
    detect_renames: bool = typer.Option(
        False, "--detect-renames", help="Ask git for renames; renamed files are reported and skipped"
    ),
    report_format: str = typer.Option("csv", "--format", help="Report format: csv or json"),
    output_name: str = typer.Option(DEFAULT_REPORT_NAME, "--output-name", help="Report file name without extension"),
    log_level: str = typer.Option("WARNING", "--log-level", envvar=f"{ENV_PREFIX}LOG_LEVEL", help="Log level"),
    log_json: bool = typer.Option(False, "--log-json", help="Emit JSON log lines"),
) -> None:
    """Collect cohort samples over the history of REPO and write a report."""
    configure_logging(level=log_level, json_format=log_json)
    if report_format not in ("csv", "json"):
        raise typer.BadParameter(f"Unsupported report format: {report_format}")

    try:
        _echo_step(1, 3, "Validating options")
        options = AnalysisOptions.build(
            repo_path=repo,
            revision=branch,
            interval_seconds=interval,
            cohort_format=cohort_format,
            ignore=ignore,
            only=only,
            workers=workers,
            detect_renames=detect_renames,
        )

        _echo_step(2, 3, "Collecting samples from git history")
        pipeline = ProvenancePipeline(options, progress_callback=_echo_progress)
        table = pipeline.collect_table()

        _echo_step(3, 3, "Writing report")
        target = write_report(table, outdir, fmt=report_format, name=output_name)  # type: ignore[arg-type]
    except CohortError as exc:
        _fail(exc)

    typer.echo(f"Collect complete. samples={len(table.rows)} cohorts={len(table.columns)} path={target}")


@app.command("snapshots")
def snapshots(
    repo: Path = typer.Argument(..., help="Path to a local git repository"),
    interval: int = typer.Option(
        DEFAULT_INTERVAL_SECONDS,
        "--interval",
        "-i",
        envvar=f"{ENV_PREFIX}INTERVAL",
        help="Min difference between commits to analyze (in seconds)",
    ),
    branch: str = typer.Option("HEAD", "--branch", "-b", envvar=f"{ENV_PREFIX}BRANCH", help="Branch to track"),
) -> None:
    """List the commits that would be sampled."""
    try:
        repo_path = history.open_repo(repo)
        commits = history.list_commits(repo_path, revision=branch)
    except CohortError as exc:
        _fail(exc)
    selected = history.select_snapshots(commits, max(interval, 1))
    for snapshot in selected:
        typer.echo(f"{snapshot.timestamp.strftime('%Y-%m-%d %H:%M:%S')} {snapshot.commit}")
    typer.echo(f"Selected {len(selected)} of {len(commits)} commits")


if __name__ == "__main__":
    app()
