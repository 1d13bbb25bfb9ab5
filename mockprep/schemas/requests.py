"""
Request and response bodies for the HTTP layer.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from mockprep.schemas.exam import (
    Answer,
    MockTest,
    QuestionType,
    SessionStatus,
    TestMode,
    TestStatus,
)


class GenerateTestsRequest(BaseModel):
    """Schema for a test generation request."""

    subject: str
    topics: List[str]
    question_count: int = Field(..., description="Questions per test")
    test_count: int = Field(1, description="Number of distinct tests")
    test_mode: TestMode = TestMode.IN_APP_EXAM


class ValidationResponse(BaseModel):
    valid: bool
    available: Optional[int] = None
    requested: Optional[int] = None


class GenerateTestsResponse(BaseModel):
    tests: List[MockTest]


class StartSessionRequest(BaseModel):
    test_id: str


class SubmitAnswerRequest(BaseModel):
    answer: Answer


class SessionQuestion(BaseModel):
    """A question as shown during a session, without its answer."""

    question_id: str
    topic_id: str
    question_text: str
    question_type: QuestionType
    options: Optional[List[str]] = None


class SessionView(BaseModel):
    session_id: str
    test_id: str
    status: SessionStatus
    questions: List[SessionQuestion]
    answered: List[str]


class TestView(BaseModel):
    """A stored test without its answer key."""

    __test__ = False

    test_id: str
    subject: str
    test_mode: TestMode
    status: TestStatus
    created_at: Optional[datetime] = None
    questions: List[SessionQuestion]


class AnswerKeyEntry(BaseModel):
    question_id: str
    correct_answer: Answer
    solution_steps: List[str] = Field(default_factory=list)
