"""
Mock test generation and post-submission review endpoints.
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from mockprep.core.dependencies import (
    get_config_validator,
    get_current_user_id,
    get_evaluator,
    get_feedback_reporter,
    get_performance_history,
    get_session_coordinator,
    get_test_assembler,
)
from mockprep.core.errors import MockPrepError
from mockprep.schemas.exam import (
    AnswerComparisonItem,
    EvaluationResult,
    PerformanceReport,
    TestConfiguration,
    TestHistoryEntry,
)
from mockprep.schemas.requests import (
    AnswerKeyEntry,
    GenerateTestsRequest,
    GenerateTestsResponse,
    TestView,
    ValidationResponse,
)
from mockprep.services.config_validator import ConfigValidator
from mockprep.services.evaluator import Evaluator
from mockprep.services.feedback_reporter import FeedbackReporter
from mockprep.services.performance_history import PerformanceHistory
from mockprep.services.session_coordinator import SessionCoordinator
from mockprep.services.test_assembler import TestAssembler

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_configuration(request: GenerateTestsRequest) -> TestConfiguration:
    return TestConfiguration(
        subject=request.subject,
        topics=request.topics,
        question_count=request.question_count,
        test_count=request.test_count,
        test_mode=request.test_mode,
    )


@router.post("/validate", response_model=ValidationResponse)
def validate_configuration(
    request: GenerateTestsRequest,
    validator: ConfigValidator = Depends(get_config_validator),
) -> Any:
    """
    Check a configuration without generating anything.

    Configuration problems come back as 400 with the error kind and an
    actionable message.
    """
    config = _to_configuration(request)
    available = validator.validate(config)
    return ValidationResponse(
        valid=True,
        available=available,
        requested=config.question_count * config.test_count,
    )


@router.post("/generate", response_model=GenerateTestsResponse, status_code=status.HTTP_201_CREATED)
def generate_tests(
    request: GenerateTestsRequest,
    user_id: str = Depends(get_current_user_id),
    assembler: TestAssembler = Depends(get_test_assembler),
) -> Any:
    """
    Generate test_count tests that share no question.
    """
    try:
        tests = assembler.assemble(_to_configuration(request), user_id)
        return GenerateTestsResponse(tests=tests)
    except MockPrepError:
        raise
    except Exception as e:
        logger.error(f"Error generating tests: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate tests: {str(e)}"
        )


@router.get("/history", response_model=List[TestHistoryEntry])
def get_test_history(
    user_id: str = Depends(get_current_user_id),
    history: PerformanceHistory = Depends(get_performance_history),
) -> Any:
    """Submitted tests of the caller, newest first."""
    return history.get_test_history(user_id)


@router.get("/history/trend", response_model=Dict[str, List[float]])
def get_score_trend(
    user_id: str = Depends(get_current_user_id),
    history: PerformanceHistory = Depends(get_performance_history),
) -> Any:
    """Overall scores of the caller per subject, oldest first."""
    return history.get_score_trend(user_id)


@router.get("/{test_id}", response_model=TestView)
def get_test(
    test_id: str,
    sessions: SessionCoordinator = Depends(get_session_coordinator),
) -> Any:
    """A generated test with its questions, without answers."""
    return sessions.get_test_view(test_id)


@router.post("/{test_id}/retry", response_model=GenerateTestsResponse, status_code=status.HTTP_201_CREATED)
def retry_test(
    test_id: str,
    user_id: str = Depends(get_current_user_id),
    assembler: TestAssembler = Depends(get_test_assembler),
) -> Any:
    """
    Generate one new test with the configuration of an existing test.
    """
    try:
        test = assembler.retry_test(test_id, user_id)
        return GenerateTestsResponse(tests=[test])
    except MockPrepError:
        raise
    except Exception as e:
        logger.error(f"Error retrying test {test_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retry test: {str(e)}"
        )


@router.get("/{test_id}/evaluation", response_model=EvaluationResult)
def get_evaluation(
    test_id: str,
    user_id: str = Depends(get_current_user_id),
    evaluator: Evaluator = Depends(get_evaluator),
) -> Any:
    return evaluator.get_evaluation(test_id, user_id)


@router.get("/{test_id}/report", response_model=PerformanceReport)
def get_report(
    test_id: str,
    user_id: str = Depends(get_current_user_id),
    reporter: FeedbackReporter = Depends(get_feedback_reporter),
) -> Any:
    return reporter.get_report(test_id, user_id)


@router.get("/{test_id}/answer-key", response_model=List[AnswerKeyEntry])
def get_answer_key(
    test_id: str,
    user_id: str = Depends(get_current_user_id),
    sessions: SessionCoordinator = Depends(get_session_coordinator),
) -> Any:
    """Answer key with solutions. Only available once the caller has submitted."""
    return sessions.get_answer_key(test_id, user_id)


@router.get("/{test_id}/comparison", response_model=List[AnswerComparisonItem])
def get_answer_comparison(
    test_id: str,
    user_id: str = Depends(get_current_user_id),
    sessions: SessionCoordinator = Depends(get_session_coordinator),
) -> Any:
    """The caller's answers next to the correct ones, after submission."""
    return sessions.get_answer_comparison(test_id, user_id)
