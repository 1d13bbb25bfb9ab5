"""
Retry envelope around submit, evaluate and report.
"""
import logging
import time
from typing import Callable, Optional, Sequence, TypeVar

from mockprep.core.config import settings
from mockprep.core.errors import PoolExhausted
from mockprep.schemas.exam import PoolMetrics, SubmissionOutcome
from mockprep.services.evaluator import Evaluator
from mockprep.services.feedback_reporter import FeedbackReporter
from mockprep.services.interfaces import ExamRepository
from mockprep.services.session_coordinator import SessionCoordinator

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONNECTION_ERROR_MARKERS = ("connection", "timeout", "pool", "econnrefused", "etimedout")


def is_connection_error(exc: BaseException) -> bool:
    """Whether an error looks like transient datastore trouble."""
    text = f"{type(exc).__name__} {exc}".lower()
    return any(marker in text for marker in CONNECTION_ERROR_MARKERS)


class SubmissionCoordinator:
    """
    Runs submit -> evaluate -> report as one retryable unit of work.

    Each attempt first checks the connection pool and refuses to start
    when it is saturated. Connection-class failures are rolled back and
    retried after each backoff delay; anything else propagates at once.
    """

    def __init__(
        self,
        repository: ExamRepository,
        sessions: SessionCoordinator,
        evaluator: Evaluator,
        reporter: FeedbackReporter,
        pool_probe: Callable[[], PoolMetrics],
        backoff_ms: Optional[Sequence[int]] = None,
        slow_attempt_ms: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repository = repository
        self.sessions = sessions
        self.evaluator = evaluator
        self.reporter = reporter
        self.pool_probe = pool_probe
        self.backoff_ms = list(backoff_ms if backoff_ms is not None else settings.SUBMIT_BACKOFF_MS)
        self.slow_attempt_ms = slow_attempt_ms if slow_attempt_ms is not None else settings.SLOW_ATTEMPT_MS
        self.sleep = sleep
        self.clock = clock

    def submit_and_evaluate(self, session_id: str) -> SubmissionOutcome:
        """
        Submit a session, evaluate it and store its report.

        Args:
            session_id: Session to submit

        Returns:
            Submission snapshot, evaluation and report

        Raises:
            SubmitFailed: Unknown or already submitted session (not retried)
            PoolExhausted: Pool still saturated after the last retry
        """
        def attempt() -> SubmissionOutcome:
            submission = self.sessions.submit(session_id)
            evaluation = self.evaluator.evaluate(submission)
            report = self.reporter.build_report(evaluation)
            self.repository.commit()
            return SubmissionOutcome(submission=submission, evaluation=evaluation, report=report)

        return self.run_with_retry(attempt, f"submit session {session_id}")

    def run_with_retry(self, operation: Callable[[], T], name: str = "operation") -> T:
        """
        Run operation with pool admission control and backoff retries.

        Args:
            operation: Unit of work; must commit its own changes on success
            name: Label used in log messages

        Returns:
            Whatever operation returns
        """
        attempt = 0
        while True:
            attempt += 1
            started = self.clock()
            try:
                self._check_pool()
                result = operation()
            except Exception as e:
                self._log_latency(name, attempt, started)
                self.repository.rollback()

                if not is_connection_error(e):
                    raise
                if attempt > len(self.backoff_ms):
                    logger.error(f"{name} failed after {attempt} attempts: {e}")
                    raise

                delay_ms = self.backoff_ms[attempt - 1]
                logger.warning(
                    f"{name} attempt {attempt} failed with a connection error, "
                    f"retrying in {delay_ms}ms: {e}"
                )
                self.sleep(delay_ms / 1000)
                continue

            self._log_latency(name, attempt, started)
            return result

    def _check_pool(self) -> None:
        metrics = self.pool_probe()
        if metrics.capacity and metrics.utilization_percent >= 100:
            raise PoolExhausted(metrics.utilization_percent)

    def _log_latency(self, name: str, attempt: int, started: float) -> None:
        elapsed_ms = (self.clock() - started) * 1000
        if elapsed_ms > self.slow_attempt_ms:
            logger.warning(f"Slow attempt: {name} attempt {attempt} took {elapsed_ms:.0f}ms")
