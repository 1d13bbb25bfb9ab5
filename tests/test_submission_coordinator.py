"""
Tests for the submit -> evaluate -> report retry envelope.
"""
import logging

import pytest

from conftest import idle_pool
from mockprep.core.errors import PoolExhausted, SubmitFailed
from mockprep.models import Evaluation, PerformanceReportRecord
from mockprep.schemas.exam import PoolMetrics, SessionStatus, TestStatus
from mockprep.services.evaluator import Evaluator
from mockprep.services.feedback_reporter import FeedbackReporter
from mockprep.services.session_coordinator import SessionCoordinator
from mockprep.services.submission_coordinator import SubmissionCoordinator, is_connection_error


class RecordingRepository:
    def __init__(self):
        self.rollbacks = 0

    def rollback(self):
        self.rollbacks += 1


class FlakyOperation:
    """Raises the queued errors in turn, then returns "done"."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "done"


def _exhausted_pool():
    return PoolMetrics(active=10, idle=0, total=10, capacity=10, utilization_percent=100.0)


def _envelope(repository=None, pool_probe=idle_pool, clock=lambda: 0.0, sleeps=None):
    sleeps = sleeps if sleeps is not None else []
    return SubmissionCoordinator(
        repository or RecordingRepository(),
        sessions=None,
        evaluator=None,
        reporter=None,
        pool_probe=pool_probe,
        backoff_ms=[100, 200, 400],
        slow_attempt_ms=100,
        sleep=sleeps.append,
        clock=clock,
    )


@pytest.fixture
def coordinator_factory(repository):
    def _build(sleeps, pool_probe=idle_pool, evaluator=None):
        return SubmissionCoordinator(
            repository,
            SessionCoordinator(repository),
            evaluator or Evaluator(repository),
            FeedbackReporter(repository),
            pool_probe,
            backoff_ms=[100, 200, 400],
            sleep=sleeps.append,
            clock=lambda: 0.0,
        )
    return _build


@pytest.mark.parametrize("error,expected", [
    (ConnectionError("reset by peer"), True),
    (TimeoutError("read"), True),
    (RuntimeError("ECONNREFUSED 127.0.0.1:5432"), True),
    (RuntimeError("QueuePool limit of size 10 overflow 0 reached"), True),
    (OSError("connect ETIMEDOUT"), True),
    (PoolExhausted(100.0), True),
    (ValueError("bad answer format"), False),
    (SubmitFailed("Test already submitted"), False),
])
def test_connection_error_classification(error, expected):
    assert is_connection_error(error) is expected


def test_transient_errors_are_retried_with_backoff():
    sleeps = []
    repository = RecordingRepository()
    operation = FlakyOperation(ConnectionError("reset"), TimeoutError("slow"))

    result = _envelope(repository, sleeps=sleeps).run_with_retry(operation)

    assert result == "done"
    assert operation.calls == 3
    assert sleeps == [0.1, 0.2]
    assert repository.rollbacks == 2


def test_retries_stop_after_four_attempts():
    sleeps = []
    operation = FlakyOperation(*[ConnectionError("down")] * 10)

    with pytest.raises(ConnectionError):
        _envelope(sleeps=sleeps).run_with_retry(operation)

    assert operation.calls == 4
    assert sleeps == [0.1, 0.2, 0.4]


def test_other_errors_are_not_retried():
    sleeps = []
    repository = RecordingRepository()
    operation = FlakyOperation(ValueError("bad"))

    with pytest.raises(ValueError):
        _envelope(repository, sleeps=sleeps).run_with_retry(operation)

    assert operation.calls == 1
    assert sleeps == []
    assert repository.rollbacks == 1


def test_saturated_pool_refuses_every_attempt():
    sleeps = []
    probes = []

    def probe():
        probes.append(1)
        return _exhausted_pool()

    operation = FlakyOperation()
    with pytest.raises(PoolExhausted) as exc_info:
        _envelope(pool_probe=probe, sleeps=sleeps).run_with_retry(operation)

    assert operation.calls == 0
    assert len(probes) == 4
    assert sleeps == [0.1, 0.2, 0.4]
    assert "100% utilized" in exc_info.value.message


def test_pool_recovers_between_attempts():
    sleeps = []
    pools = [_exhausted_pool(), idle_pool()]

    result = _envelope(pool_probe=lambda: pools.pop(0), sleeps=sleeps).run_with_retry(FlakyOperation())

    assert result == "done"
    assert sleeps == [0.1]


def test_unsized_pool_is_never_exhausted():
    unsized = PoolMetrics(active=0, idle=0, total=0, capacity=0, utilization_percent=0.0)
    assert _envelope(pool_probe=lambda: unsized).run_with_retry(FlakyOperation()) == "done"


def test_slow_attempt_is_logged(caplog):
    ticks = iter([0.0, 0.25])

    with caplog.at_level(logging.WARNING, logger="mockprep.services.submission_coordinator"):
        _envelope(clock=lambda: next(ticks)).run_with_retry(FlakyOperation(), "submit session s-1")

    assert "Slow attempt: submit session s-1 attempt 1 took 250ms" in caplog.text


def test_fast_attempt_is_not_logged(caplog):
    ticks = iter([0.0, 0.05])

    with caplog.at_level(logging.WARNING, logger="mockprep.services.submission_coordinator"):
        _envelope(clock=lambda: next(ticks)).run_with_retry(FlakyOperation())

    assert "Slow attempt" not in caplog.text


def test_submit_and_evaluate(repository, exam, coordinator_factory):
    session = SessionCoordinator(repository).start(exam.test_id, "user-1")
    SessionCoordinator(repository).submit_answer(session.session_id, "q-alg-1", "B")

    outcome = coordinator_factory([]).submit_and_evaluate(session.session_id)

    assert outcome.submission.session_id == session.session_id
    assert outcome.evaluation.overall_score == pytest.approx(20.0)
    assert outcome.report.evaluation_id == outcome.evaluation.evaluation_id
    assert outcome.report.grade == "F"
    assert repository.get_session(session.session_id).status == SessionStatus.SUBMITTED
    assert repository.get_test(exam.test_id).status == TestStatus.SUBMITTED
    assert repository.db.query(PerformanceReportRecord).count() == 1


def test_double_submit_keeps_one_evaluation(repository, exam, coordinator_factory):
    sleeps = []
    coordinator = coordinator_factory(sleeps)
    session = SessionCoordinator(repository).start(exam.test_id, "user-1")
    coordinator.submit_and_evaluate(session.session_id)

    with pytest.raises(SubmitFailed, match="already submitted"):
        coordinator.submit_and_evaluate(session.session_id)

    assert sleeps == []
    assert repository.db.query(Evaluation).count() == 1


def test_connection_failure_mid_evaluation_is_rolled_back_and_retried(repository, exam, coordinator_factory):
    class FlakyEvaluator(Evaluator):
        failures = 1

        def evaluate(self, submission):
            if self.failures:
                self.failures -= 1
                raise ConnectionError("server closed the connection unexpectedly")
            return super().evaluate(submission)

    sleeps = []
    session = SessionCoordinator(repository).start(exam.test_id, "user-1")

    outcome = coordinator_factory(sleeps, evaluator=FlakyEvaluator(repository)).submit_and_evaluate(
        session.session_id
    )

    assert sleeps == [0.1]
    assert outcome.submission.session_id == session.session_id
    assert repository.db.query(Evaluation).count() == 1
