import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mockprep.core.errors import RetrievalError
from mockprep.core.helpers.repository import SqlAlchemyExamRepository
from mockprep.models import Base, SyllabusTopic
from mockprep.schemas.exam import (
    MockTest,
    PoolMetrics,
    Question,
    QuestionType,
    SyllabusContext,
    TestConfiguration,
    TestMode,
    TestStatus,
)
from mockprep.services.interfaces import QuestionGenerator, QuestionRetriever

# ============================================================================
# IN-MEMORY DATABASE FOR TESTING
# ============================================================================

# StaticPool keeps every connection on the same in-memory database
test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(autouse=True)
def setup_test_db():
    """Fresh tables for every test."""
    Base.metadata.create_all(test_engine)
    yield
    Base.metadata.drop_all(test_engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repository(db):
    return SqlAlchemyExamRepository(db)


# ============================================================================
# FAKE PORTS
# ============================================================================

class FakeRetriever(QuestionRetriever):
    """Serves questions from an in-memory bank in insertion order."""

    def __init__(self, bank: Optional[List[Question]] = None, fail_with: Optional[Exception] = None):
        self.bank = list(bank or [])
        self.fail_with = fail_with
        self.indexed: List[Question] = []
        self.calls = []

    def retrieve_questions(self, topic_ids: Sequence[str], count: int, exclude_ids: Iterable[str]) -> List[Question]:
        excluded = set(exclude_ids)
        self.calls.append((list(topic_ids), count, excluded))
        if self.fail_with is not None:
            raise self.fail_with

        matches = [
            q for q in self.bank
            if q.topic_id in topic_ids and q.question_id not in excluded
        ][:count]
        if len(matches) < count:
            raise RetrievalError(
                "InsufficientMatches",
                f"Found {len(matches)} matching questions, {count} requested",
                found=len(matches),
                requested=count,
            )
        return matches

    def get_syllabus_context(self, topic_id: str) -> SyllabusContext:
        return SyllabusContext(topic_id=topic_id, content=f"{topic_id}: syllabus content")

    def index_question(self, question: Question) -> None:
        self.indexed.append(question)


class FakeGenerator(QuestionGenerator):
    """
    Mints numbered questions for the requested topic.

    shortfall removes questions from every batch; topic_override stamps a
    different topic on them; fail_with raises instead of generating.
    """

    def __init__(
        self,
        shortfall: int = 0,
        topic_override: Optional[str] = None,
        fail_with: Optional[Exception] = None,
        fail_on_call: Optional[int] = None,
    ):
        self.shortfall = shortfall
        self.topic_override = topic_override
        self.fail_with = fail_with
        self.fail_on_call = fail_on_call
        self.calls = []
        self.minted = 0

    def generate_questions(self, context, count, existing_questions, subject=None, mode=None) -> List[Question]:
        self.calls.append({
            "topic_id": context.topic_id,
            "count": count,
            "existing": [q.question_id for q in existing_questions],
            "subject": subject,
            "mode": mode,
        })
        if self.fail_with is not None and (self.fail_on_call is None or self.fail_on_call == len(self.calls)):
            raise self.fail_with

        questions = []
        for _ in range(max(count - self.shortfall, 0)):
            self.minted += 1
            questions.append(make_question(
                f"gen-{self.minted}",
                self.topic_override or context.topic_id,
                text=f"Generated question {self.minted} on {context.topic_id}",
            ))
        return questions


def make_question(
    question_id: str,
    topic_id: str,
    text: Optional[str] = None,
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE,
    correct_answer="A",
    options: Optional[List[str]] = None,
) -> Question:
    if options is None and question_type == QuestionType.MULTIPLE_CHOICE:
        options = ["A", "B", "C", "D"]
    return Question(
        question_id=question_id,
        topic_id=topic_id,
        question_text=text or f"Question {question_id}",
        question_type=question_type,
        options=options,
        correct_answer=correct_answer,
        solution_steps=[f"Work out {question_id}"],
        syllabus_reference=f"{topic_id} reference",
    )


def idle_pool() -> PoolMetrics:
    return PoolMetrics(active=0, idle=10, total=10, capacity=10, utilization_percent=0.0)


# ============================================================================
# ENTITY FIXTURES
# ============================================================================

TOPIC_IDS = ["alg", "geo", "trig"]


@pytest.fixture
def topics(db):
    """Three stored syllabus topics."""
    rows = [
        SyllabusTopic(
            id="alg",
            subject="Mathematics",
            name="Algebra",
            section="Numbers",
            official_content="Linear equations and polynomials",
            learning_objectives=["Solve linear equations", "Factorise quadratics"],
        ),
        SyllabusTopic(
            id="geo",
            subject="Mathematics",
            name="Geometry",
            section="Shapes",
            official_content="Triangles and circles",
            learning_objectives=[],
        ),
        SyllabusTopic(
            id="trig",
            subject="Mathematics",
            name="Trigonometry",
            official_content="Ratios and identities",
        ),
    ]
    db.add_all(rows)
    db.commit()
    return TOPIC_IDS


@pytest.fixture
def bank(repository, topics):
    """Ten multiple choice questions per topic, stored in the bank."""
    questions = [
        make_question(f"{topic_id}-{n}", topic_id)
        for topic_id in topics
        for n in range(1, 11)
    ]
    for question in questions:
        repository.upsert_question(question)
    repository.commit()
    return questions


@pytest.fixture
def fake_retriever(bank):
    return FakeRetriever(bank)


@pytest.fixture
def create_test(repository):
    """Store a test over the given questions, adding them to the bank first."""
    def _create(questions, mode=TestMode.IN_APP_EXAM, user_id="user-1", test_id=None):
        for question in questions:
            repository.upsert_question(question)
        topic_ids = list(dict.fromkeys(q.topic_id for q in questions))
        test = MockTest(
            test_id=test_id or f"test-{uuid.uuid4().hex[:8]}",
            configuration=TestConfiguration(
                subject="Mathematics",
                topics=topic_ids,
                question_count=len(questions),
                test_count=1,
                test_mode=mode,
            ),
            questions=questions,
            answer_key={q.question_id: q.correct_answer for q in questions},
            status=TestStatus.GENERATED,
            created_at=datetime.now(timezone.utc),
        )
        repository.create_test(test, user_id)
        repository.commit()
        return test
    return _create


@pytest.fixture
def exam(topics, create_test):
    """
    Five question in-app test over two topics.

    alg: two single-answer multiple choice questions.
    geo: one multiple choice, one numerical, one multi-select.
    """
    return create_test([
        make_question("q-alg-1", "alg", correct_answer="B"),
        make_question("q-alg-2", "alg", correct_answer="C"),
        make_question("q-geo-1", "geo", correct_answer="A"),
        make_question("q-geo-2", "geo", question_type=QuestionType.NUMERICAL, correct_answer="9.81"),
        make_question("q-geo-3", "geo", correct_answer=["A", "C"]),
    ], test_id="exam-1")
