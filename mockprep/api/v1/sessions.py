"""
Test-taking session endpoints.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from mockprep.core.dependencies import (
    get_current_user_id,
    get_session_coordinator,
    get_submission_coordinator,
)
from mockprep.core.errors import UNAVAILABLE_DETAIL, MockPrepError
from mockprep.schemas.common import Message
from mockprep.schemas.exam import SubmissionOutcome, TestSession
from mockprep.schemas.requests import SessionView, StartSessionRequest, SubmitAnswerRequest
from mockprep.services.session_coordinator import SessionCoordinator
from mockprep.services.submission_coordinator import SubmissionCoordinator, is_connection_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=TestSession, status_code=status.HTTP_201_CREATED)
def start_session(
    request: StartSessionRequest,
    user_id: str = Depends(get_current_user_id),
    sessions: SessionCoordinator = Depends(get_session_coordinator),
) -> Any:
    """
    Start an in-app exam, or resume the caller's unfinished one.
    """
    return sessions.start(request.test_id, user_id)


@router.get("/{session_id}", response_model=SessionView)
def get_session(
    session_id: str,
    sessions: SessionCoordinator = Depends(get_session_coordinator),
) -> Any:
    return sessions.get_session_view(session_id)


@router.put("/{session_id}/answers/{question_id}", response_model=Message)
def submit_answer(
    session_id: str,
    question_id: str,
    request: SubmitAnswerRequest,
    sessions: SessionCoordinator = Depends(get_session_coordinator),
) -> Any:
    sessions.submit_answer(session_id, question_id, request.answer)
    return Message(message="Answer saved")


@router.post("/{session_id}/submit", response_model=SubmissionOutcome)
def submit_session(
    session_id: str,
    coordinator: SubmissionCoordinator = Depends(get_submission_coordinator),
) -> Any:
    """
    Submit the session, then evaluate it and build its report.

    Transient datastore trouble that survives the retries becomes a 503
    so the client knows to try again.
    """
    try:
        return coordinator.submit_and_evaluate(session_id)
    except MockPrepError:
        raise
    except Exception as e:
        logger.error(f"Error submitting session {session_id}: {e}")
        if is_connection_error(e):
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=UNAVAILABLE_DETAIL
            )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to submit test: {str(e)}"
        )
