"""
SQLAlchemy persistence for the exam engine.

Answers (correct answers and user responses) are stored as JSON text:
either a JSON string or a JSON array of strings. Encoding and decoding
happen here so the services only ever see typed values.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from mockprep.core.helpers.topics import is_synthetic_topic, synthetic_topic_name
from mockprep.models.evaluation import Evaluation, PerformanceReportRecord, TopicScoreRecord
from mockprep.models.mock_test import GeneratedTest, GeneratedTestQuestion
from mockprep.models.question import BankQuestion
from mockprep.models.session import ExamSession, UserResponse
from mockprep.models.syllabus import SyllabusTopic
from mockprep.schemas.exam import (
    Answer,
    EvaluationResult,
    ImprovementSuggestion,
    MockTest,
    PerformanceReport,
    Question,
    SessionStatus,
    SyllabusTopicInfo,
    TestConfiguration,
    TestSession,
    TestStatus,
    TopicRef,
    TopicScore,
    UserAnswer,
    WeakTopic,
)
from mockprep.services.interfaces import ExamRepository

logger = logging.getLogger(__name__)


def encode_answer(answer: Answer) -> str:
    return json.dumps(answer)


def decode_answer(raw: Optional[str]) -> Answer:
    """
    Decode a stored answer.

    Anything that is not a JSON string or array (legacy plain text,
    bare numbers) is returned as the raw text.
    """
    if raw is None:
        return ""
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return raw
    if isinstance(value, list):
        return [str(v) for v in value]
    if isinstance(value, str):
        return value
    return raw


def _now() -> datetime:
    return datetime.now(timezone.utc)


def question_from_row(row: BankQuestion) -> Question:
    return Question(
        question_id=row.id,
        topic_id=row.topic_id,
        question_text=row.question_text,
        question_type=row.question_type,
        options=row.options,
        correct_answer=decode_answer(row.correct_answer),
        solution_steps=list(row.solution_steps or []),
        syllabus_reference=row.syllabus_reference or "",
        difficulty=row.difficulty,
        created_at=row.created_at,
    )


class SqlAlchemyExamRepository(ExamRepository):
    """Repository over a request-scoped SQLAlchemy session.

    Writes are flushed, never committed: the calling service owns the
    transaction and decides when to commit or roll back.
    """

    def __init__(self, db: Session):
        """
        Initialize the repository.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    # ------------------------------------------------------------------
    # Topics and question bank
    # ------------------------------------------------------------------

    def find_existing_topic_ids(self, topic_ids: Sequence[str]) -> Set[str]:
        if not topic_ids:
            return set()
        rows = self.db.query(SyllabusTopic.id).filter(SyllabusTopic.id.in_(list(topic_ids))).all()
        return {row.id for row in rows}

    def resolve_topics(self, topic_ids: Sequence[str]) -> List[TopicRef]:
        """Topic ids with display names, in the given order."""
        stored = {}
        stored_ids = [t for t in topic_ids if not is_synthetic_topic(t)]
        if stored_ids:
            rows = self.db.query(SyllabusTopic).filter(SyllabusTopic.id.in_(stored_ids)).all()
            stored = {row.id: row.name for row in rows}

        refs = []
        for topic_id in topic_ids:
            if is_synthetic_topic(topic_id):
                name = synthetic_topic_name(topic_id)
            else:
                name = stored.get(topic_id, topic_id)
            refs.append(TopicRef(id=topic_id, name=name))
        return refs

    def get_syllabus_topic(self, topic_id: str) -> Optional[SyllabusTopicInfo]:
        row = self.db.get(SyllabusTopic, topic_id)
        if row is None:
            return None
        return SyllabusTopicInfo(
            id=row.id,
            subject=row.subject,
            name=row.name,
            section=row.section,
            official_content=row.official_content,
            learning_objectives=list(row.learning_objectives or []),
        )

    def count_questions(self, topic_ids: Sequence[str]) -> int:
        """Bank questions in the topics, indexed or not; the retriever can serve every one."""
        if not topic_ids:
            return 0
        return (
            self.db.query(func.count(BankQuestion.id))
            .filter(BankQuestion.topic_id.in_(list(topic_ids)))
            .scalar()
            or 0
        )

    def get_question(self, question_id: str) -> Optional[Question]:
        row = self.db.get(BankQuestion, question_id)
        return question_from_row(row) if row is not None else None

    def upsert_question(self, question: Question) -> None:
        """Insert or replace a bank question keyed by its id."""
        row = self.db.get(BankQuestion, question.question_id)
        if row is None:
            row = BankQuestion(id=question.question_id, created_at=question.created_at or _now())
            self.db.add(row)

        row.topic_id = question.topic_id
        row.question_text = question.question_text
        row.question_type = question.question_type.value
        row.options = question.options
        row.correct_answer = encode_answer(question.correct_answer)
        row.solution_steps = list(question.solution_steps)
        row.syllabus_reference = question.syllabus_reference
        row.difficulty = question.difficulty.value
        self.db.flush()

    # ------------------------------------------------------------------
    # Tests
    # ------------------------------------------------------------------

    def create_test(self, test: MockTest, user_id: str) -> None:
        """Store a test and its ordered question links. Questions must already be in the bank."""
        config = test.configuration
        row = GeneratedTest(
            id=test.test_id,
            user_id=user_id,
            subject=config.subject,
            topics=list(config.topics),
            question_count=config.question_count,
            test_count=config.test_count,
            test_mode=config.test_mode.value,
            status=test.status.value,
            created_at=test.created_at or _now(),
        )
        for position, question in enumerate(test.questions):
            row.test_questions.append(GeneratedTestQuestion(
                question_id=question.question_id,
                position=position,
            ))
        self.db.add(row)
        self.db.flush()

    def get_test(self, test_id: str) -> Optional[MockTest]:
        row = self.db.get(GeneratedTest, test_id)
        if row is None:
            return None

        questions = [question_from_row(link.question) for link in row.test_questions]
        return MockTest(
            test_id=row.id,
            configuration=TestConfiguration(
                subject=row.subject,
                topics=list(row.topics or []),
                question_count=row.question_count,
                test_count=row.test_count,
                test_mode=row.test_mode,
            ),
            questions=questions,
            answer_key={q.question_id: q.correct_answer for q in questions},
            status=row.status,
            created_at=row.created_at,
        )

    def set_test_status(self, test_id: str, status: TestStatus) -> None:
        row = self.db.get(GeneratedTest, test_id)
        if row is not None:
            row.status = status.value
            self.db.flush()

    def test_has_question(self, test_id: str, question_id: str) -> bool:
        return (
            self.db.query(GeneratedTestQuestion.id)
            .filter(
                GeneratedTestQuestion.test_id == test_id,
                GeneratedTestQuestion.question_id == question_id,
            )
            .first()
            is not None
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @staticmethod
    def _to_session(row: ExamSession) -> TestSession:
        responses = {
            r.question_id: UserAnswer(
                question_id=r.question_id,
                answer=decode_answer(r.answer),
                answered_at=r.answered_at,
            )
            for r in row.responses
        }
        return TestSession(
            session_id=row.id,
            test_id=row.test_id,
            user_id=row.user_id,
            started_at=row.started_at,
            submitted_at=row.submitted_at,
            status=row.status,
            responses=responses,
        )

    def _find_session(self, test_id: str, user_id: str, status: SessionStatus) -> Optional[TestSession]:
        row = (
            self.db.query(ExamSession)
            .filter(
                ExamSession.test_id == test_id,
                ExamSession.user_id == user_id,
                ExamSession.status == status.value,
            )
            .order_by(ExamSession.started_at.desc())
            .first()
        )
        return self._to_session(row) if row is not None else None

    def find_in_progress_session(self, test_id: str, user_id: str) -> Optional[TestSession]:
        return self._find_session(test_id, user_id, SessionStatus.IN_PROGRESS)

    def find_submitted_session(self, test_id: str, user_id: str) -> Optional[TestSession]:
        return self._find_session(test_id, user_id, SessionStatus.SUBMITTED)

    def create_session(self, test_id: str, user_id: str) -> TestSession:
        row = ExamSession(
            id=str(uuid.uuid4()),
            test_id=test_id,
            user_id=user_id,
            status=SessionStatus.IN_PROGRESS.value,
            started_at=_now(),
        )
        self.db.add(row)
        self.db.flush()
        return self._to_session(row)

    def get_session(self, session_id: str) -> Optional[TestSession]:
        row = self.db.get(ExamSession, session_id)
        return self._to_session(row) if row is not None else None

    def upsert_response(self, session_id: str, question_id: str, answer: Answer) -> None:
        """Last write wins per (session, question)."""
        session = self.db.get(ExamSession, session_id)
        row = next((r for r in session.responses if r.question_id == question_id), None)
        if row is None:
            row = UserResponse(question_id=question_id)
            session.responses.append(row)
        row.answer = encode_answer(answer)
        row.answered_at = _now()
        self.db.flush()

    def mark_session_submitted(self, session_id: str, submitted_at: datetime) -> bool:
        """
        Conditionally flip a session from InProgress to Submitted.

        The status filter makes the write a compare-and-swap: of two
        concurrent submits only one updates a row.

        Returns:
            True if this call performed the transition
        """
        updated = (
            self.db.query(ExamSession)
            .filter(
                ExamSession.id == session_id,
                ExamSession.status == SessionStatus.IN_PROGRESS.value,
            )
            .update(
                {"status": SessionStatus.SUBMITTED.value, "submitted_at": submitted_at},
                synchronize_session="fetch",
            )
        )
        self.db.flush()
        return updated == 1

    def list_submitted_sessions(self, user_id: str) -> List[TestSession]:
        """Submitted sessions of a user, newest first."""
        rows = (
            self.db.query(ExamSession)
            .filter(
                ExamSession.user_id == user_id,
                ExamSession.status == SessionStatus.SUBMITTED.value,
            )
            .order_by(ExamSession.submitted_at.desc())
            .all()
        )
        return [self._to_session(row) for row in rows]

    # ------------------------------------------------------------------
    # Evaluations and reports
    # ------------------------------------------------------------------

    @staticmethod
    def _to_evaluation(row: Evaluation) -> EvaluationResult:
        return EvaluationResult(
            evaluation_id=row.id,
            session_id=row.session_id,
            test_id=row.test_id,
            user_id=row.user_id,
            overall_score=row.overall_score,
            correct_count=row.correct_count,
            total_count=row.total_count,
            topic_scores=[
                TopicScore(
                    topic_id=ts.topic_id,
                    topic_name=ts.topic_name,
                    correct=ts.correct,
                    total=ts.total,
                    percentage=ts.percentage,
                )
                for ts in row.topic_scores
            ],
            evaluated_at=row.evaluated_at,
        )

    def find_evaluation_for_session(self, session_id: str) -> Optional[EvaluationResult]:
        row = self.db.query(Evaluation).filter(Evaluation.session_id == session_id).first()
        return self._to_evaluation(row) if row is not None else None

    def find_evaluation_for_test(self, test_id: str, user_id: str) -> Optional[EvaluationResult]:
        row = (
            self.db.query(Evaluation)
            .filter(Evaluation.test_id == test_id, Evaluation.user_id == user_id)
            .order_by(Evaluation.evaluated_at.desc())
            .first()
        )
        return self._to_evaluation(row) if row is not None else None

    def create_evaluation(self, result: EvaluationResult) -> None:
        row = Evaluation(
            id=result.evaluation_id,
            session_id=result.session_id,
            test_id=result.test_id,
            user_id=result.user_id,
            overall_score=result.overall_score,
            correct_count=result.correct_count,
            total_count=result.total_count,
            evaluated_at=result.evaluated_at or _now(),
        )
        for position, score in enumerate(result.topic_scores):
            row.topic_scores.append(TopicScoreRecord(
                topic_id=score.topic_id,
                topic_name=score.topic_name,
                correct=score.correct,
                total=score.total,
                percentage=score.percentage,
                position=position,
            ))
        self.db.add(row)
        self.db.flush()

    def find_report(self, evaluation_id: str) -> Optional[PerformanceReport]:
        row = (
            self.db.query(PerformanceReportRecord)
            .filter(PerformanceReportRecord.evaluation_id == evaluation_id)
            .first()
        )
        if row is None:
            return None
        return PerformanceReport(
            report_id=row.id,
            evaluation_id=row.evaluation_id,
            test_id=row.test_id,
            user_id=row.user_id,
            overall_score=row.overall_score,
            grade=row.grade,
            weak_topics=[WeakTopic(**w) for w in row.weak_topics or []],
            suggestions=[ImprovementSuggestion(**s) for s in row.suggestions or []],
            ranked_topics=[TopicScore(**t) for t in row.ranked_topics or []],
            created_at=row.created_at,
        )

    def create_report(self, report: PerformanceReport) -> None:
        self.db.add(PerformanceReportRecord(
            id=report.report_id,
            evaluation_id=report.evaluation_id,
            test_id=report.test_id,
            user_id=report.user_id,
            overall_score=report.overall_score,
            grade=report.grade,
            weak_topics=[w.model_dump() for w in report.weak_topics],
            suggestions=[s.model_dump() for s in report.suggestions],
            ranked_topics=[t.model_dump() for t in report.ranked_topics],
            created_at=report.created_at or _now(),
        ))
        self.db.flush()
