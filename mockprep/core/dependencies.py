"""
Dependency injection for FastAPI endpoints.

Services are built per request around the request's database session.
"""
import logging
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from mockprep.core.agents.generation import LLMQuestionGenerator
from mockprep.core.config import settings
from mockprep.core.helpers.repository import SqlAlchemyExamRepository
from mockprep.core.helpers.retriever import VectorQuestionRetriever
from mockprep.db.base import engine, get_db, get_pool_metrics
from mockprep.schemas.exam import PoolMetrics
from mockprep.services.config_validator import ConfigValidator
from mockprep.services.evaluator import Evaluator
from mockprep.services.feedback_reporter import FeedbackReporter
from mockprep.services.interfaces import ExamRepository, QuestionGenerator, QuestionRetriever
from mockprep.services.performance_history import PerformanceHistory
from mockprep.services.question_sourcer import QuestionSourcer
from mockprep.services.session_coordinator import SessionCoordinator
from mockprep.services.submission_coordinator import SubmissionCoordinator
from mockprep.services.test_assembler import TestAssembler

logger = logging.getLogger(__name__)


def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """
    Identify the caller.

    Authentication happens upstream; the gateway forwards the user id.

    Raises:
        HTTPException: If the header is missing
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id


def get_repository(db: Session = Depends(get_db)) -> ExamRepository:
    return SqlAlchemyExamRepository(db)


def get_retriever(db: Session = Depends(get_db)) -> QuestionRetriever:
    return VectorQuestionRetriever(db)


def get_generator() -> Optional[QuestionGenerator]:
    """LLM generator when an OpenAI key is configured, otherwise None."""
    if not settings.generation_enabled:
        return None
    return LLMQuestionGenerator()


def get_pool_probe() -> Callable[[], PoolMetrics]:
    return lambda: get_pool_metrics(engine)


def get_config_validator(
    repository: ExamRepository = Depends(get_repository),
    generator: Optional[QuestionGenerator] = Depends(get_generator),
) -> ConfigValidator:
    return ConfigValidator(repository, generator)


def get_test_assembler(
    repository: ExamRepository = Depends(get_repository),
    retriever: QuestionRetriever = Depends(get_retriever),
    generator: Optional[QuestionGenerator] = Depends(get_generator),
    validator: ConfigValidator = Depends(get_config_validator),
) -> TestAssembler:
    return TestAssembler(repository, validator, QuestionSourcer(retriever, repository, generator))


def get_session_coordinator(repository: ExamRepository = Depends(get_repository)) -> SessionCoordinator:
    return SessionCoordinator(repository)


def get_evaluator(repository: ExamRepository = Depends(get_repository)) -> Evaluator:
    return Evaluator(repository)


def get_feedback_reporter(repository: ExamRepository = Depends(get_repository)) -> FeedbackReporter:
    return FeedbackReporter(repository)


def get_submission_coordinator(
    repository: ExamRepository = Depends(get_repository),
    sessions: SessionCoordinator = Depends(get_session_coordinator),
    evaluator: Evaluator = Depends(get_evaluator),
    reporter: FeedbackReporter = Depends(get_feedback_reporter),
    pool_probe: Callable[[], PoolMetrics] = Depends(get_pool_probe),
) -> SubmissionCoordinator:
    return SubmissionCoordinator(repository, sessions, evaluator, reporter, pool_probe)


def get_performance_history(repository: ExamRepository = Depends(get_repository)) -> PerformanceHistory:
    return PerformanceHistory(repository)
