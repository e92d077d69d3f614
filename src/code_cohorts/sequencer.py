"""Reorder buffer between parallel changeset producers and the accumulator.

Producers finish in any order and ``deposit`` their changesets; the consumer
iterates the sequencer and receives them strictly in the expected timestamp
order, blocking on a condition variable while the next one is missing.

The pending map is not bounded: if producers run far ahead of the consumer it
grows with their lead. The producer pool size is what caps it in practice.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Sequence
from datetime import datetime

import structlog

from code_cohorts.errors import OrderingError, PipelineCancelledError
from code_cohorts.models import Changeset

log = structlog.get_logger(__name__)


class ChangesetSequencer:
    def __init__(self, expected: Sequence[datetime]):
        for earlier, later in zip(expected, expected[1:]):
            if later <= earlier:
                raise OrderingError("expected timestamps are not strictly ascending", later)
        self._expected = list(expected)
        self._expected_set = set(self._expected)
        self._consumed: set[datetime] = set()
        self._pending: dict[datetime, Changeset] = {}
        self._condition = threading.Condition()
        self._failure: BaseException | None = None
        self._cancelled = False

    @property
    def expected(self) -> list[datetime]:
        return list(self._expected)

    @property
    def pending_count(self) -> int:
        with self._condition:
            return len(self._pending)

    def deposit(self, changeset: Changeset) -> None:
        """Hand over a finished changeset; safe to call from any thread."""
        timestamp = changeset.timestamp
        with self._condition:
            if timestamp not in self._expected_set:
                error = OrderingError("unexpected changeset timestamp", timestamp)
            elif timestamp in self._pending or timestamp in self._consumed:
                error = OrderingError("duplicate changeset timestamp", timestamp)
            else:
                self._pending[timestamp] = changeset
                log.debug("changeset_deposited", timestamp=timestamp.isoformat(), pending=len(self._pending))
                self._condition.notify_all()
                return
            self._record_failure(error)
        raise error

    def fail(self, exc: BaseException) -> None:
        """Record a producer failure; the consumer raises it on its next wait."""
        with self._condition:
            self._record_failure(exc)

    def cancel(self) -> None:
        with self._condition:
            self._cancelled = True
            self._condition.notify_all()

    def _record_failure(self, exc: BaseException) -> None:
        if self._failure is None:
            self._failure = exc
        self._condition.notify_all()

    def _take(self, timestamp: datetime) -> Changeset:
        with self._condition:
            while True:
                if self._failure is not None:
                    raise self._failure
                if self._cancelled:
                    raise PipelineCancelledError("Sequencer cancelled", details={"waiting_for": timestamp.isoformat()})
                if timestamp in self._pending:
                    self._consumed.add(timestamp)
                    return self._pending.pop(timestamp)
                self._condition.wait()

    def __iter__(self) -> Iterator[Changeset]:
        for timestamp in self._expected:
            yield self._take(timestamp)
