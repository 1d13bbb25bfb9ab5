"""
Ports the exam services depend on.

Concrete implementations live in mockprep.core.helpers (vector retriever,
SQLAlchemy repository) and mockprep.core.agents.generation (LLM generator).
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set

from mockprep.schemas.exam import (
    Answer,
    EvaluationResult,
    MockTest,
    PerformanceReport,
    Question,
    SyllabusContext,
    SyllabusTopicInfo,
    TestMode,
    TestSession,
    TestStatus,
    TopicRef,
)


class QuestionRetriever(ABC):
    """Lookup over the indexed question bank."""

    @abstractmethod
    def retrieve_questions(
        self, topic_ids: Sequence[str], count: int, exclude_ids: Iterable[str]
    ) -> List[Question]:
        """
        Return exactly count questions from topic_ids, none in exclude_ids.

        Raises:
            RetrievalError: If fewer than count questions match
        """

    @abstractmethod
    def get_syllabus_context(self, topic_id: str) -> SyllabusContext:
        """Grounding text for a topic."""

    @abstractmethod
    def index_question(self, question: Question) -> None:
        """
        Make a question retrievable.

        Raises:
            IndexingError: If the question could not be indexed
        """


class QuestionGenerator(ABC):
    """External content generation, grounded in syllabus context."""

    @abstractmethod
    def generate_questions(
        self,
        context: SyllabusContext,
        count: int,
        existing_questions: Sequence[Question],
        subject: Optional[str] = None,
        mode: Optional[TestMode] = None,
    ) -> List[Question]:
        """
        Produce count new questions for context.topic_id.

        Raises:
            SourcingFailed: On provider error, malformed output or under-delivery
        """


class ExamRepository(ABC):
    """Persistence for topics, the question bank, tests, sessions and results."""

    # Transactions
    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...

    # Topics and bank
    @abstractmethod
    def find_existing_topic_ids(self, topic_ids: Sequence[str]) -> Set[str]: ...

    @abstractmethod
    def resolve_topics(self, topic_ids: Sequence[str]) -> List[TopicRef]: ...

    @abstractmethod
    def count_questions(self, topic_ids: Sequence[str]) -> int: ...

    @abstractmethod
    def upsert_question(self, question: Question) -> None: ...

    # Tests
    @abstractmethod
    def create_test(self, test: MockTest, user_id: str) -> None: ...

    @abstractmethod
    def get_test(self, test_id: str) -> Optional[MockTest]: ...

    @abstractmethod
    def set_test_status(self, test_id: str, status: TestStatus) -> None: ...

    @abstractmethod
    def test_has_question(self, test_id: str, question_id: str) -> bool: ...

    # Sessions
    @abstractmethod
    def find_in_progress_session(self, test_id: str, user_id: str) -> Optional[TestSession]: ...

    @abstractmethod
    def find_submitted_session(self, test_id: str, user_id: str) -> Optional[TestSession]: ...

    @abstractmethod
    def create_session(self, test_id: str, user_id: str) -> TestSession: ...

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[TestSession]: ...

    @abstractmethod
    def upsert_response(self, session_id: str, question_id: str, answer: Answer) -> None: ...

    @abstractmethod
    def mark_session_submitted(self, session_id: str, submitted_at: datetime) -> bool:
        """Flip InProgress to Submitted. False when the session was not InProgress."""

    # Evaluations and reports
    @abstractmethod
    def find_evaluation_for_session(self, session_id: str) -> Optional[EvaluationResult]: ...

    @abstractmethod
    def find_evaluation_for_test(self, test_id: str, user_id: str) -> Optional[EvaluationResult]: ...

    @abstractmethod
    def create_evaluation(self, result: EvaluationResult) -> None: ...

    @abstractmethod
    def get_syllabus_topic(self, topic_id: str) -> Optional[SyllabusTopicInfo]: ...

    @abstractmethod
    def find_report(self, evaluation_id: str) -> Optional[PerformanceReport]: ...

    @abstractmethod
    def create_report(self, report: PerformanceReport) -> None: ...

    @abstractmethod
    def list_submitted_sessions(self, user_id: str) -> List[TestSession]: ...
