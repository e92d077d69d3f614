"""One cohort collection run: snapshot selection, parallel diffing, ordered accumulation."""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog

from code_cohorts import history
from code_cohorts.aggregate import CohortTable, build_cohort_table
from code_cohorts.config import AnalysisOptions
from code_cohorts.errors import ProducerError, RepositoryError
from code_cohorts.models import Changeset, Snapshot
from code_cohorts.sample import Sample, SampleAccumulator
from code_cohorts.sequencer import ChangesetSequencer
from code_cohorts.translator import build_changeset

log = structlog.get_logger(__name__)

ProgressCallback = Callable[[str, int, int], None]

STAGE_COLLECTING = "collecting"
STAGE_PROCESSING = "processing"


class ProvenancePipeline:
    """Explicit, per-run pipeline state. Nothing is shared between runs."""

    def __init__(self, options: AnalysisOptions, progress_callback: ProgressCallback | None = None):
        self.options = options
        self.progress_callback = progress_callback
        self.path_filter = options.path_filter()
        self._repo_path: Path | None = None
        self._lock = threading.Lock()
        self._produced = 0

    @property
    def repo_path(self) -> Path:
        if self._repo_path is None:
            self._repo_path = history.open_repo(self.options.repo_path)
        return self._repo_path

    def _progress(self, stage: str, done: int, total: int) -> None:
        if self.progress_callback:
            self.progress_callback(stage, done, total)

    def snapshots(self) -> list[Snapshot]:
        commits = history.list_commits(self.repo_path, revision=self.options.revision)
        if not commits:
            raise RepositoryError("No commits to analyze", details={"revision": self.options.revision})
        selected = history.select_snapshots(commits, self.options.interval_seconds)
        log.info("snapshots_selected", commits=len(commits), selected=len(selected))
        return selected

    def produce_changeset(self, old: str, new: Snapshot) -> Changeset:
        file_diffs = history.diff_trees(self.repo_path, old, new.commit, detect_renames=self.options.detect_renames)
        return build_changeset(new.timestamp, file_diffs, self.path_filter)

    def _produce(
        self,
        old: str,
        new: Snapshot,
        sequencer: ChangesetSequencer,
        cancelled: threading.Event,
        total: int,
    ) -> None:
        if cancelled.is_set():
            return
        try:
            changeset = self.produce_changeset(old, new)
        except Exception as exc:
            sequencer.fail(ProducerError(new.timestamp, exc))
            return
        # An ordering violation is recorded by the sequencer before it raises.
        sequencer.deposit(changeset)
        with self._lock:
            self._produced += 1
            done = self._produced
        self._progress(STAGE_COLLECTING, done, total)

    def collect_samples(self) -> list[Sample]:
        """Run the whole pipeline and return samples in ascending timestamp order.

        Any producer or accumulation error cancels outstanding work and is
        raised; no partial sample list is returned.
        """
        snapshots = self.snapshots()
        lefts = [history.empty_tree(self.repo_path), *(s.commit for s in snapshots[:-1])]
        total = len(snapshots)

        sequencer = ChangesetSequencer([s.timestamp for s in snapshots])
        accumulator = SampleAccumulator(self.options.cohort_format)
        cancelled = threading.Event()
        self._produced = 0

        pool = ThreadPoolExecutor(max_workers=self.options.workers, thread_name_prefix="changeset")
        try:
            futures = {
                new.timestamp: pool.submit(self._produce, old, new, sequencer, cancelled, total)
                for old, new in zip(lefts, snapshots)
            }

            for done, changeset in enumerate(sequencer, start=1):
                accumulator.push(changeset)
                if changeset.skipped:
                    log.info(
                        "changeset_paths_skipped",
                        timestamp=changeset.timestamp.isoformat(),
                        paths=len(changeset.skipped),
                    )
                self._progress(STAGE_PROCESSING, done, total)
        except BaseException:
            cancelled.set()
            sequencer.cancel()
            pool.shutdown(wait=True, cancel_futures=True)
            log.error("pipeline_aborted", samples=len(accumulator.samples), expected=total)
            raise
        pool.shutdown(wait=True)
        # Errors raised after a deposit never reach the sequencer.
        for timestamp, future in futures.items():
            exc = future.exception()
            if exc is not None:
                log.error("producer_failed_after_deposit", timestamp=timestamp.isoformat(), error=str(exc))
                raise ProducerError(timestamp, exc) from exc
        log.info("samples_collected", samples=len(accumulator.samples))
        return accumulator.samples

    def collect_table(self) -> CohortTable:
        return build_cohort_table(self.collect_samples())
