"""
Pydantic schemas for the exam engine domain.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Answer = Union[str, List[str]]


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "MultipleChoice"
    SHORT_ANSWER = "ShortAnswer"
    NUMERICAL = "Numerical"


class TestMode(str, Enum):
    """How a generated test will be taken."""

    __test__ = False

    IN_APP_EXAM = "InAppExam"
    PDF_DOWNLOAD = "PDFDownload"


class Difficulty(str, Enum):
    EXAM_REALISTIC = "ExamRealistic"


class SessionStatus(str, Enum):
    IN_PROGRESS = "InProgress"
    SUBMITTED = "Submitted"


class TestStatus(str, Enum):
    __test__ = False

    GENERATED = "Generated"
    IN_PROGRESS = "InProgress"
    SUBMITTED = "Submitted"


class TopicRef(BaseModel):
    """A topic id with its display name."""

    id: str
    name: str


class TestConfiguration(BaseModel):
    """Parameters of one generation run. Frozen once the run starts."""

    __test__ = False
    model_config = ConfigDict(frozen=True)

    subject: str
    topics: List[str]
    question_count: int
    test_count: int
    test_mode: TestMode = TestMode.IN_APP_EXAM


class Question(BaseModel):
    """A question from the bank or freshly generated."""

    question_id: str
    topic_id: str
    question_text: str
    question_type: QuestionType
    options: Optional[List[str]] = None
    correct_answer: Answer
    solution_steps: List[str] = Field(default_factory=list)
    syllabus_reference: str = ""
    difficulty: Difficulty = Difficulty.EXAM_REALISTIC
    created_at: Optional[datetime] = None


class TopicDistribution(BaseModel):
    topic_id: str
    topic_name: str
    question_count: int


class MockTest(BaseModel):
    """One assembled test with its answer key."""

    test_id: str
    configuration: TestConfiguration
    questions: List[Question]
    answer_key: Dict[str, Answer]
    status: TestStatus = TestStatus.GENERATED
    created_at: Optional[datetime] = None


class UserAnswer(BaseModel):
    question_id: str
    answer: Answer
    answered_at: Optional[datetime] = None


class TestSession(BaseModel):
    """A user's attempt at one test."""

    __test__ = False

    session_id: str
    test_id: str
    user_id: str
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    status: SessionStatus
    responses: Dict[str, UserAnswer] = Field(default_factory=dict)


class TestSubmission(BaseModel):
    __test__ = False

    session_id: str
    test_id: str
    user_id: str
    responses: Dict[str, UserAnswer]
    submitted_at: datetime


class TopicScore(BaseModel):
    topic_id: str
    topic_name: str
    correct: int
    total: int
    percentage: float


class EvaluationResult(BaseModel):
    """Graded outcome of a submitted session."""

    evaluation_id: str
    session_id: str
    test_id: str
    user_id: str
    overall_score: float
    correct_count: int
    total_count: int
    topic_scores: List[TopicScore]
    evaluated_at: Optional[datetime] = None


class SyllabusTopicInfo(BaseModel):
    """A stored syllabus topic."""

    id: str
    subject: str
    name: str
    section: Optional[str] = None
    official_content: Optional[str] = None
    learning_objectives: List[str] = Field(default_factory=list)

    class Config:
        """Pydantic config."""

        from_attributes = True


class SyllabusContext(BaseModel):
    topic_id: str
    content: str
    related_concepts: List[str] = Field(default_factory=list)


class PoolMetrics(BaseModel):
    active: int
    idle: int
    total: int
    capacity: int
    utilization_percent: float


class WeakTopic(BaseModel):
    topic_id: str
    topic_name: str
    percentage: float


class ImprovementSuggestion(BaseModel):
    topic_id: str
    topic_name: str
    suggestions: List[str]
    retry_test_option: bool = True


class PerformanceReport(BaseModel):
    """Feedback derived from one evaluation."""

    report_id: str
    evaluation_id: str
    test_id: str
    user_id: str
    overall_score: float
    grade: str
    weak_topics: List[WeakTopic]
    suggestions: List[ImprovementSuggestion]
    ranked_topics: List[TopicScore]
    created_at: Optional[datetime] = None


class SubmissionOutcome(BaseModel):
    submission: TestSubmission
    evaluation: EvaluationResult
    report: PerformanceReport


class AnswerComparisonItem(BaseModel):
    question_id: str
    question_text: str
    topic_id: str
    question_type: QuestionType
    options: Optional[List[str]] = None
    user_answer: Optional[Answer] = None
    correct_answer: Answer
    is_correct: bool
    solution_steps: List[str] = Field(default_factory=list)


class TestHistoryEntry(BaseModel):
    __test__ = False

    test_id: str
    subject: str
    session_id: str
    submitted_at: Optional[datetime] = None
    overall_score: Optional[float] = None
    question_count: int
