"""
Validation of test configurations before generation.
"""
import logging
from typing import Optional

from mockprep.core.config import settings
from mockprep.core.errors import (
    InsufficientQuestions,
    InvalidQuestionCount,
    InvalidTestCount,
    InvalidTopics,
    NoTopicsSelected,
)
from mockprep.core.helpers.topics import is_synthetic_topic
from mockprep.schemas.exam import TestConfiguration
from mockprep.services.interfaces import ExamRepository, QuestionGenerator

logger = logging.getLogger(__name__)


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def insufficient_questions_message(available: int, question_count: int, test_count: int) -> str:
    """Actionable explanation of a question bank shortfall."""
    if available == 0:
        return "No questions available for the selected topics. Please select different topics or contact support."

    requested = question_count * test_count
    parts = [
        f"Available: {available} questions, Requested: {requested} questions ({requested - available} short).",
        "Suggested actions:",
    ]

    max_per_test = available // test_count
    if test_count > 1 and 0 < max_per_test < question_count:
        parts.append(f"• Reduce the number of questions per test to {max_per_test} or fewer")

    max_tests = available // question_count
    if 0 < max_tests < test_count:
        parts.append(f"• Reduce the number of tests to {max_tests} or fewer")

    parts.append("• Select additional topics to expand the question pool")
    return "Insufficient unique questions available. " + " ".join(parts)


class ConfigValidator:
    """Checks a configuration against topic existence and bank capacity."""

    def __init__(
        self,
        repository: ExamRepository,
        generator: Optional[QuestionGenerator] = None,
        synthetic_prefix: Optional[str] = None,
    ):
        self.repository = repository
        self.generator = generator
        self.synthetic_prefix = (
            synthetic_prefix if synthetic_prefix is not None else settings.SYNTHETIC_TOPIC_PREFIX
        )

    def validate(self, config: TestConfiguration) -> Optional[int]:
        """
        Validate a configuration.

        Args:
            config: Requested test configuration

        Returns:
            Questions available in the bank, or None when a generator is configured

        Raises:
            InvalidQuestionCount: question_count is not a positive integer
            InvalidTestCount: test_count is not a positive integer
            NoTopicsSelected: topics is empty
            InvalidTopics: stored topics that do not exist
            InsufficientQuestions: bank too small and no generator configured
        """
        if not _is_positive_int(config.question_count):
            raise InvalidQuestionCount(config.question_count)
        if not _is_positive_int(config.test_count):
            raise InvalidTestCount(config.test_count)
        if not config.topics:
            raise NoTopicsSelected()

        stored_topics = [t for t in config.topics if not is_synthetic_topic(t, self.synthetic_prefix)]
        if stored_topics:
            existing = self.repository.find_existing_topic_ids(stored_topics)
            missing = [t for t in stored_topics if t not in existing]
            if missing:
                raise InvalidTopics(missing)

        # A generator can always produce more questions
        if self.generator is not None:
            return None

        requested = config.question_count * config.test_count
        available = self.repository.count_questions(config.topics)
        if available < requested:
            max_per_test = available // config.test_count
            max_tests = available // config.question_count
            logger.warning(f"Configuration needs {requested} questions, bank has {available}")
            raise InsufficientQuestions(
                available=available,
                requested=requested,
                message=insufficient_questions_message(available, config.question_count, config.test_count),
                suggested_question_count=(
                    max_per_test if config.test_count > 1 and 0 < max_per_test < config.question_count else None
                ),
                suggested_test_count=max_tests if 0 < max_tests < config.test_count else None,
            )
        return available
