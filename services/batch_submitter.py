"""
Batch submission with progress reporting and retry.

A batch is a list of SubmissionUnits. Each unit is one all-or-nothing sink
call (a whole record batch or a whole movement). Transient failures retry
the whole unit with exponential backoff; a unit is never split and records
are never retried one by one, because the sink cannot replay part of a
call idempotently.

Progress is the share of records committed, reported in submission order.
"""

from dataclasses import dataclass
from threading import Event
from typing import Any, Callable, Iterator, Optional
import structlog

from config import settings
from exceptions import (
    ExternalServiceError,
    SubmissionCancelledError,
    SubmissionError,
    TransientSinkError,
)
from models.submission import ProgressEvent, ProgressPhase

logger = structlog.get_logger(__name__)


class CancellationToken:
    """
    Caller-side cancellation for a running submission.

    Cancelling never interrupts a sink call that is already in flight;
    the submitter stops at the next wait or before the next call.
    """

    def __init__(self):
        self._event = Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`. Returns True if cancelled meanwhile."""
        return self._event.wait(seconds)


@dataclass(frozen=True)
class SubmissionUnit:
    """One sink call and the number of records it commits."""
    payload: Any
    record_count: int
    label: Optional[str] = None


def is_transient(error: BaseException) -> bool:
    """Network and service-unavailable failures are worth retrying."""
    if isinstance(error, TransientSinkError):
        return True
    if isinstance(error, ExternalServiceError) and error.status_code == 503:
        return True
    return isinstance(error, (ConnectionError, TimeoutError))


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Delay before retry number `attempt` (0-based): base * 2^attempt, capped."""
    return min(base * (2 ** attempt), cap)


class Submission:
    """
    A single run of the submitter.

    Iterate it to drive the submission and receive ProgressEvents.
    After iteration finishes, results holds the sink's return values
    in unit order.
    """

    def __init__(
        self,
        units: list[SubmissionUnit],
        sink_call: Callable[[Any], Any],
        submitter: "BatchSubmitter",
    ):
        self.units = units
        self.sink_call = sink_call
        self.submitter = submitter
        self.results: list[Any] = []
        self.committed_records = 0
        self.total_records = sum(unit.record_count for unit in units)
        self.sink_calls = 0
        self.percent = 0

    def __iter__(self) -> Iterator[ProgressEvent]:
        return self._run()

    def run(self, on_progress: Optional[Callable[[int], None]] = None) -> list[Any]:
        """Drive the submission to the end, reporting percentages to a callback."""
        for event in self:
            if on_progress:
                on_progress(event.percent)
        return self.results

    def _event(self, phase: ProgressPhase, unit: Optional[int] = None, attempt: Optional[int] = None) -> ProgressEvent:
        return ProgressEvent(
            percent=self.percent,
            phase=phase,
            committed_records=self.committed_records,
            total_records=self.total_records,
            unit=unit,
            attempt=attempt,
        )

    def _run(self) -> Iterator[ProgressEvent]:
        submitter = self.submitter
        token = submitter.token

        logger.info(
            "submission_started",
            units=len(self.units),
            records=self.total_records,
            max_attempts=submitter.max_attempts
        )
        yield self._event(ProgressPhase.STARTED)

        for position, unit in enumerate(self.units):
            last_error: Optional[BaseException] = None

            for attempt in range(submitter.max_attempts):
                if token.cancelled:
                    self._cancelled()

                self.sink_calls += 1
                try:
                    result = self.sink_call(unit.payload)
                except Exception as e:
                    if not is_transient(e):
                        logger.error(
                            "submission_rejected",
                            unit=position,
                            label=unit.label,
                            attempt=attempt + 1,
                            error=str(e),
                            error_type=type(e).__name__
                        )
                        raise SubmissionError(
                            message=f"Sink rejected unit {position + 1} of {len(self.units)}",
                            attempts=attempt + 1,
                            last_error=e,
                            committed_records=self.committed_records,
                        ) from e

                    last_error = e
                    logger.warning(
                        "submission_transient_failure",
                        unit=position,
                        label=unit.label,
                        attempt=attempt + 1,
                        error=str(e)
                    )
                    if attempt + 1 >= submitter.max_attempts:
                        break

                    yield self._event(ProgressPhase.RETRYING, unit=position, attempt=attempt + 1)
                    if token.wait(submitter.delay_for(attempt)):
                        self._cancelled()
                    continue

                self.results.append(result)
                self.committed_records += unit.record_count
                if self.total_records:
                    self.percent = max(self.percent, self.committed_records * 100 // self.total_records)
                yield self._event(ProgressPhase.COMMITTED, unit=position, attempt=attempt + 1)
                last_error = None
                break

            if last_error is not None:
                logger.error(
                    "submission_failed",
                    unit=position,
                    label=unit.label,
                    attempts=submitter.max_attempts,
                    committed_records=self.committed_records,
                    error=str(last_error)
                )
                raise SubmissionError(
                    message=(
                        f"Unit {position + 1} of {len(self.units)} failed after "
                        f"{submitter.max_attempts} attempts"
                    ),
                    attempts=submitter.max_attempts,
                    last_error=last_error,
                    committed_records=self.committed_records,
                ) from last_error

        self.percent = 100
        logger.info(
            "submission_completed",
            units=len(self.units),
            records=self.committed_records,
            sink_calls=self.sink_calls
        )
        yield self._event(ProgressPhase.COMPLETED)

    def _cancelled(self):
        logger.info(
            "submission_cancelled",
            committed_records=self.committed_records,
            total_records=self.total_records
        )
        raise SubmissionCancelledError(self.committed_records, self.total_records)


class BatchSubmitter:
    """
    Hands validated units to the sink.

    Retry budget and backoff come from settings unless given explicitly.
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ):
        self.max_attempts = max_attempts if max_attempts is not None else settings.submit_max_attempts
        self.base_delay = base_delay if base_delay is not None else settings.submit_backoff_base_seconds
        self.max_delay = max_delay if max_delay is not None else settings.submit_backoff_cap_seconds
        self.token = token or CancellationToken()

    def delay_for(self, attempt: int) -> float:
        return backoff_delay(attempt, self.base_delay, self.max_delay)

    def submit(self, units: list[SubmissionUnit], sink_call: Callable[[Any], Any]) -> Submission:
        """
        Start a submission.

        Args:
            units: All-or-nothing payloads with their record counts
            sink_call: Persists one payload; raises on failure

        Returns:
            Submission to iterate for ProgressEvents
        """
        return Submission(list(units), sink_call, self)
