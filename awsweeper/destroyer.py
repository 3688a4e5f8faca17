"""Executes a deletion plan.

Every candidate moves through a small state machine::

    PENDING -> ATTEMPTING -> DELETED | SKIPPED | FAILED | RETRY_QUEUED
    RETRY_QUEUED -> ATTEMPTING | FAILED

Batches run one after another; inside a batch deletes run on a bounded
thread pool. Candidates that failed because something still depends on them
are queued and retried together after the whole plan has been attempted once,
for at most ``max_passes`` extra passes. Worker threads only call the
provider; all state changes happen on the calling thread.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Dict, List, Optional

from awsweeper.core.errors import DeleteError, DependencyViolationError, NotFoundError
from awsweeper.core.logging import resource_fields, timed
from awsweeper.core.models import Candidate, Outcome, OutcomeStatus, Plan, Report

DRY_RUN_REASON = 'dry-run'
CANCELLED_REASON = 'cancelled'


class State(Enum):
    PENDING = 'pending'
    ATTEMPTING = 'attempting'
    RETRY_QUEUED = 'retry_queued'
    DELETED = 'deleted'
    SKIPPED = 'skipped'
    FAILED = 'failed'


TERMINAL_STATES = frozenset([State.DELETED, State.SKIPPED, State.FAILED])

TRANSITIONS = {
    State.PENDING: {State.ATTEMPTING, State.SKIPPED},
    State.ATTEMPTING: {State.DELETED, State.SKIPPED, State.FAILED, State.RETRY_QUEUED},
    State.RETRY_QUEUED: {State.ATTEMPTING, State.FAILED},
    State.DELETED: set(),
    State.SKIPPED: set(),
    State.FAILED: set(),
}


class InvalidTransition(RuntimeError):
    pass


class _NotStarted(Exception):
    """A worker saw the cancel signal before calling the provider."""


class Tracker:
    """State of one candidate during a run."""

    def __init__(self, candidate: Candidate):
        self.candidate = candidate
        self.state = State.PENDING
        self.attempts = 0
        self.reason = ''
        self.error: Optional[DeleteError] = None
        self.already_absent = False
        self.retryable = False

    def move(self, new_state: State):
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.candidate.type} {self.candidate.id}: {self.state.name} -> {new_state.name}")
        self.state = new_state

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def outcome(self) -> Outcome:
        status = {
            State.DELETED: OutcomeStatus.DELETED,
            State.SKIPPED: OutcomeStatus.SKIPPED,
            State.FAILED: OutcomeStatus.FAILED,
        }[self.state]
        return Outcome(
            candidate=self.candidate,
            status=status,
            reason=self.reason,
            error=self.error.message if self.error is not None and status is OutcomeStatus.FAILED else None,
            retryable=self.retryable,
            already_absent=self.already_absent,
            attempts=self.attempts,
        )


class Destroyer:
    def __init__(self, provider, workers: int = 10, max_passes: int = 5, pass_delay: float = 5.0):
        self.provider = provider
        self.workers = workers
        self.max_passes = max_passes
        self.pass_delay = pass_delay

    @timed
    def execute(self, plan: Plan, dry_run: bool, cancel_event: Optional[threading.Event] = None) -> Report:
        cancel_event = cancel_event or threading.Event()
        trackers: Dict[tuple, Tracker] = {c.sort_key: Tracker(c) for c in plan.candidates}

        if dry_run:
            for t in trackers.values():
                logging.info(f"[Dry-Run] Would delete {t.candidate.type} {t.candidate.id}",
                             extra=resource_fields(t.candidate.type, t.candidate.id, 'skip'))
                self._skip(t, DRY_RUN_REASON)
            return self._report(trackers, dry_run=True, cancelled=False)

        for i, batch in enumerate(plan.batches):
            if cancel_event.is_set():
                logging.warning(f"Cancelled before batch {i}")
                break
            logging.info(f"Deleting batch {i} ({len(batch)} resources, rank {batch.rank})")
            self._attempt([trackers[c.sort_key] for c in batch.candidates], 0, cancel_event)

        queue = self._retry_queue(trackers)
        passes = 0
        while queue and passes < self.max_passes and not cancel_event.is_set():
            if self.pass_delay and cancel_event.wait(self.pass_delay):
                break
            passes += 1
            logging.info(f"Retry pass {passes}/{self.max_passes}: {len(queue)} resources")
            self._attempt(queue, passes, cancel_event)
            queue = self._retry_queue(trackers)

        cancelled = cancel_event.is_set()
        for t in trackers.values():
            if t.state is State.PENDING:
                self._skip(t, CANCELLED_REASON)
            elif t.state is State.RETRY_QUEUED:
                self._give_up(t, cancelled, passes)

        return self._report(trackers, dry_run=False, cancelled=cancelled)

    def _attempt(self, trackers: List[Tracker], pass_number: int, cancel_event: threading.Event):
        if not trackers:
            return
        for t in trackers:
            t.move(State.ATTEMPTING)

        with ThreadPoolExecutor(max_workers=min(self.workers, len(trackers))) as executor:
            future_map = {executor.submit(self._delete, t.candidate, cancel_event): t for t in trackers}
            for fut in as_completed(future_map):
                self._record(future_map[fut], fut, pass_number)

    def _delete(self, candidate: Candidate, cancel_event: threading.Event):
        if cancel_event.is_set():
            raise _NotStarted()
        self.provider.delete(candidate.type, candidate.id)

    def _record(self, tracker: Tracker, fut, pass_number: int):
        c = tracker.candidate
        deleted = resource_fields(c.type, c.id, 'delete', pass_number)
        try:
            fut.result()
        except _NotStarted:
            if tracker.error is not None:
                # came from the retry queue; keep its dependency error
                self._fail(tracker, tracker.error, reason=CANCELLED_REASON, retryable=True)
            else:
                self._skip(tracker, CANCELLED_REASON)
            return
        except NotFoundError:
            tracker.attempts += 1
            tracker.already_absent = True
            tracker.reason = 'already absent'
            tracker.move(State.DELETED)
            logging.info(f"{c.type} {c.id} already gone", extra=deleted)
            return
        except DependencyViolationError as e:
            tracker.attempts += 1
            tracker.error = e
            tracker.move(State.RETRY_QUEUED)
            logging.info(f"{c.type} {c.id} still has dependents; queued for retry ({e.message})",
                         extra=resource_fields(c.type, c.id, 'retry', pass_number))
            return
        except DeleteError as e:
            tracker.attempts += 1
            self._fail(tracker, e, reason=e.code or 'error')
            return
        except Exception as e:
            tracker.attempts += 1
            logging.exception(f"Unexpected error deleting {c.type} {c.id}", extra=deleted)
            self._fail(tracker, DeleteError(c.type, c.id, str(e)), reason='unexpected error')
            return
        tracker.attempts += 1
        tracker.move(State.DELETED)
        logging.info(f"Deleted {c.type} {c.id}", extra=deleted)

    @staticmethod
    def _retry_queue(trackers: Dict[tuple, Tracker]) -> List[Tracker]:
        return sorted(
            (t for t in trackers.values() if t.state is State.RETRY_QUEUED),
            key=lambda t: t.candidate.sort_key,
        )

    @staticmethod
    def _skip(tracker: Tracker, reason: str):
        tracker.reason = reason
        tracker.move(State.SKIPPED)

    @staticmethod
    def _fail(tracker: Tracker, error: DeleteError, reason: str, retryable: bool = False):
        c = tracker.candidate
        tracker.error = error
        tracker.reason = reason
        tracker.retryable = retryable
        tracker.move(State.FAILED)
        logging.error(f"Failed to delete {c.type} {c.id}: {error.message}",
                      extra=resource_fields(c.type, c.id, 'delete'))

    def _give_up(self, tracker: Tracker, cancelled: bool, passes: int):
        if cancelled:
            self._fail(tracker, tracker.error, reason=CANCELLED_REASON, retryable=True)
        else:
            self._fail(tracker, tracker.error, reason=f'dependency still present after {passes} retry passes')

    @staticmethod
    def _report(trackers: Dict[tuple, Tracker], dry_run: bool, cancelled: bool) -> Report:
        return Report(
            dry_run=dry_run,
            outcomes=tuple(t.outcome() for t in trackers.values()),
            cancelled=cancelled,
        )
