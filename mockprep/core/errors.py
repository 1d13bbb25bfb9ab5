"""
Exception hierarchy for the exam engine.

Each pipeline stage raises from its own family so callers can tell
configuration mistakes (never retried) from sourcing failures and from
transient datastore trouble (retried by the submission coordinator).
"""
from typing import Any, Dict, List, Optional

UNAVAILABLE_DETAIL = "Database connection pool is currently unavailable. Please try again in a moment."


class MockPrepError(Exception):
    """Base class for all exam engine errors."""

    kind: str = "MockPrepError"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(MockPrepError):
    """A test configuration failed validation."""

    kind = "ConfigurationError"


class InvalidQuestionCount(ConfigurationError):
    kind = "InvalidQuestionCount"

    def __init__(self, value: Any):
        super().__init__(f"Question count must be a positive integer, got {value!r}")
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "value": self.value}


class InvalidTestCount(ConfigurationError):
    kind = "InvalidTestCount"

    def __init__(self, value: Any):
        super().__init__(f"Test count must be a positive integer, got {value!r}")
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "value": self.value}


class NoTopicsSelected(ConfigurationError):
    kind = "NoTopicsSelected"

    def __init__(self):
        super().__init__("At least one topic must be selected")


class InvalidTopics(ConfigurationError):
    kind = "InvalidTopics"

    def __init__(self, missing: List[str]):
        super().__init__(f"Unknown topic ids: {', '.join(missing)}")
        self.missing = list(missing)

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "missing": self.missing}


class InsufficientQuestions(ConfigurationError):
    """The question bank cannot cover question_count x test_count unique questions."""

    kind = "InsufficientQuestions"

    def __init__(
        self,
        available: int,
        requested: int,
        message: str,
        suggested_question_count: Optional[int] = None,
        suggested_test_count: Optional[int] = None,
    ):
        super().__init__(message)
        self.available = available
        self.requested = requested
        self.suggested_question_count = suggested_question_count
        self.suggested_test_count = suggested_test_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "available": self.available,
            "requested": self.requested,
            "suggested_question_count": self.suggested_question_count,
            "suggested_test_count": self.suggested_test_count,
        }


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class GenerationError(MockPrepError):
    """Test generation could not complete."""

    kind = "GenerationError"


class ConfigurationRejected(GenerationError):
    kind = "ConfigurationRejected"

    def __init__(self, details: ConfigurationError):
        super().__init__(f"Configuration rejected: {details.message}")
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "details": self.details.to_dict()}


class SourcingFailed(GenerationError):
    """Questions for a test could not be produced or failed a post-check."""

    kind = "GenerationFailed"


class TopicMismatch(SourcingFailed):
    kind = "TopicMismatch"

    def __init__(self, question_id: str, topic_id: str):
        super().__init__(
            f"Question {question_id} belongs to topic {topic_id}, which is not part of the configuration"
        )
        self.question_id = question_id
        self.topic_id = topic_id


class RetrievalError(MockPrepError):
    """The retriever could not satisfy a request."""

    def __init__(self, kind: str, message: str, found: int = 0, requested: int = 0):
        super().__init__(message)
        self.kind = kind
        self.found = found
        self.requested = requested


class IndexingError(MockPrepError):
    kind = "IndexingError"


# ---------------------------------------------------------------------------
# Sessions and submission
# ---------------------------------------------------------------------------

class NotFound(MockPrepError):
    kind = "NotFound"

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class StartFailed(MockPrepError):
    kind = "StartFailed"


class SubmitFailed(MockPrepError):
    kind = "SubmitFailed"


class EvaluationFailed(MockPrepError):
    kind = "EvaluationFailed"


class PoolExhausted(MockPrepError):
    """Raised before an attempt when every pooled connection is checked out."""

    kind = "PoolExhausted"

    def __init__(self, utilization_percent: float):
        super().__init__(f"Connection pool exhausted ({utilization_percent:.0f}% utilized)")
        self.utilization_percent = utilization_percent
