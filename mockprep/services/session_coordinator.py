"""
Test-taking session lifecycle: start, answer, submit, review.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from mockprep.core.errors import NotFound, StartFailed, SubmitFailed
from mockprep.schemas.exam import (
    Answer,
    AnswerComparisonItem,
    MockTest,
    SessionStatus,
    TestMode,
    TestSession,
    TestStatus,
    TestSubmission,
)
from mockprep.schemas.requests import AnswerKeyEntry, SessionQuestion, SessionView, TestView
from mockprep.services.answer_comparator import AnswerComparator
from mockprep.services.interfaces import ExamRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def session_questions(test: MockTest) -> List[SessionQuestion]:
    return [
        SessionQuestion(
            question_id=q.question_id,
            topic_id=q.topic_id,
            question_text=q.question_text,
            question_type=q.question_type,
            options=q.options,
        )
        for q in test.questions
    ]


class SessionCoordinator:
    """
    Drives a session from InProgress to Submitted.

    Answers can only be written while the session is InProgress, and the
    answer key only becomes readable once the user has submitted.
    """

    def __init__(
        self,
        repository: ExamRepository,
        comparator: Optional[AnswerComparator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.comparator = comparator or AnswerComparator()
        self.clock = clock

    def start(self, test_id: str, user_id: str) -> TestSession:
        """
        Start or resume a session.

        An InProgress session for the same test and user is returned as is,
        so reloading the exam page never loses answers.

        Raises:
            StartFailed: Unknown test, or a test generated for PDF download
        """
        test = self.repository.get_test(test_id)
        if test is None:
            raise StartFailed(f"Test with ID {test_id} not found")
        if test.configuration.test_mode != TestMode.IN_APP_EXAM:
            raise StartFailed(
                f"Test mode is {test.configuration.test_mode.value}, expected {TestMode.IN_APP_EXAM.value}"
            )

        existing = self.repository.find_in_progress_session(test_id, user_id)
        if existing is not None:
            logger.info(f"Resuming session {existing.session_id} for test {test_id}")
            return existing

        session = self.repository.create_session(test_id, user_id)
        if test.status == TestStatus.GENERATED:
            self.repository.set_test_status(test_id, TestStatus.IN_PROGRESS)
        self.repository.commit()

        logger.info(f"Started session {session.session_id} for test {test_id}, user {user_id}")
        return session

    def get_session_view(self, session_id: str) -> SessionView:
        """Session with its questions, without answers or solutions."""
        session = self.repository.get_session(session_id)
        if session is None:
            raise NotFound("Session", session_id)
        test = self._require_test(session.test_id)

        return SessionView(
            session_id=session.session_id,
            test_id=session.test_id,
            status=session.status,
            questions=session_questions(test),
            answered=sorted(session.responses),
        )

    def get_test_view(self, test_id: str) -> TestView:
        """Stored test with its questions, without answers or solutions."""
        test = self._require_test(test_id)
        return TestView(
            test_id=test.test_id,
            subject=test.configuration.subject,
            test_mode=test.configuration.test_mode,
            status=test.status,
            created_at=test.created_at,
            questions=session_questions(test),
        )

    def submit_answer(self, session_id: str, question_id: str, answer: Answer) -> None:
        """
        Record an answer, replacing any earlier answer to the same question.

        Raises:
            SubmitFailed: Unknown session, session not InProgress, or a
                question outside the session's test
        """
        session = self.repository.get_session(session_id)
        if session is None:
            raise SubmitFailed(f"Session with ID {session_id} not found")
        if session.status != SessionStatus.IN_PROGRESS:
            raise SubmitFailed("Cannot submit answer to a completed test session")
        if not self.repository.test_has_question(session.test_id, question_id):
            raise SubmitFailed(f"Question {question_id} does not belong to test {session.test_id}")

        self.repository.upsert_response(session_id, question_id, answer)
        self.repository.commit()

    def submit(self, session_id: str) -> TestSubmission:
        """
        Close a session and snapshot its responses.

        The caller owns the transaction; nothing is committed here so the
        submission can be evaluated in the same unit of work.

        Raises:
            SubmitFailed: Unknown session, or already submitted
        """
        session = self.repository.get_session(session_id)
        if session is None:
            raise SubmitFailed(f"Session with ID {session_id} not found")
        if session.status == SessionStatus.SUBMITTED:
            raise SubmitFailed("Test already submitted")

        submitted_at = self.clock()
        if not self.repository.mark_session_submitted(session_id, submitted_at):
            # Lost the race against a concurrent submit of the same session
            raise SubmitFailed("Test already submitted")
        self.repository.set_test_status(session.test_id, TestStatus.SUBMITTED)

        logger.info(f"Session {session_id} submitted with {len(session.responses)} answers")
        return TestSubmission(
            session_id=session_id,
            test_id=session.test_id,
            user_id=session.user_id,
            responses=session.responses,
            submitted_at=submitted_at,
        )

    def get_answer_key(self, test_id: str, user_id: str) -> List[AnswerKeyEntry]:
        """
        Answers and worked solutions of a submitted test.

        Raises:
            SubmitFailed: The user has not submitted this test
        """
        self._require_submitted(test_id, user_id, "Answer key is only accessible after test submission")
        test = self._require_test(test_id)
        return [
            AnswerKeyEntry(
                question_id=q.question_id,
                correct_answer=q.correct_answer,
                solution_steps=q.solution_steps,
            )
            for q in test.questions
        ]

    def get_answer_comparison(self, test_id: str, user_id: str) -> List[AnswerComparisonItem]:
        """
        Side-by-side view of the user's answers and the answer key.

        Raises:
            SubmitFailed: The user has not submitted this test
        """
        session = self._require_submitted(
            test_id, user_id, "Answer comparison is only available after test submission"
        )
        test = self._require_test(test_id)

        items = []
        for q in test.questions:
            response = session.responses.get(q.question_id)
            user_answer = response.answer if response is not None else None

            if user_answer is None:
                is_correct = False
            elif isinstance(q.correct_answer, list):
                user_answers = user_answer if isinstance(user_answer, list) else [user_answer]
                is_correct = self.comparator.compare_array(user_answers, q.correct_answer)
            else:
                is_correct = self.comparator.compare(user_answer, q.correct_answer, q.question_type)

            items.append(AnswerComparisonItem(
                question_id=q.question_id,
                question_text=q.question_text,
                topic_id=q.topic_id,
                question_type=q.question_type,
                options=q.options,
                user_answer=user_answer,
                correct_answer=q.correct_answer,
                is_correct=is_correct,
                solution_steps=q.solution_steps,
            ))
        return items

    def _require_test(self, test_id: str) -> MockTest:
        test = self.repository.get_test(test_id)
        if test is None:
            raise NotFound("Test", test_id)
        return test

    def _require_submitted(self, test_id: str, user_id: str, message: str) -> TestSession:
        if self.repository.find_in_progress_session(test_id, user_id) is not None:
            raise SubmitFailed(message)
        session = self.repository.find_submitted_session(test_id, user_id)
        if session is None:
            raise SubmitFailed(message)
        return session
