"""Schemas module - Import all schemas."""
from mockprep.schemas.exam import (
    Answer,
    AnswerComparisonItem,
    Difficulty,
    EvaluationResult,
    ImprovementSuggestion,
    MockTest,
    PerformanceReport,
    PoolMetrics,
    Question,
    QuestionType,
    SessionStatus,
    SubmissionOutcome,
    SyllabusContext,
    SyllabusTopicInfo,
    TestConfiguration,
    TestHistoryEntry,
    TestMode,
    TestSession,
    TestStatus,
    TestSubmission,
    TopicDistribution,
    TopicRef,
    TopicScore,
    UserAnswer,
    WeakTopic,
)
from mockprep.schemas.requests import (
    AnswerKeyEntry,
    GenerateTestsRequest,
    GenerateTestsResponse,
    SessionQuestion,
    SessionView,
    StartSessionRequest,
    SubmitAnswerRequest,
    TestView,
    ValidationResponse,
)
from mockprep.schemas.common import ErrorResponse, Message

__all__ = [
    "Answer",
    "AnswerComparisonItem",
    "Difficulty",
    "EvaluationResult",
    "ImprovementSuggestion",
    "MockTest",
    "PerformanceReport",
    "PoolMetrics",
    "Question",
    "QuestionType",
    "SessionStatus",
    "SubmissionOutcome",
    "SyllabusContext",
    "SyllabusTopicInfo",
    "TestConfiguration",
    "TestHistoryEntry",
    "TestMode",
    "TestSession",
    "TestStatus",
    "TestSubmission",
    "TopicDistribution",
    "TopicRef",
    "TopicScore",
    "UserAnswer",
    "WeakTopic",
    "AnswerKeyEntry",
    "GenerateTestsRequest",
    "GenerateTestsResponse",
    "SessionQuestion",
    "SessionView",
    "StartSessionRequest",
    "SubmitAnswerRequest",
    "TestView",
    "ValidationResponse",
    "ErrorResponse",
    "Message",
]
