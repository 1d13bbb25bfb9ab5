"""
Tests for configuration validation and shortfall suggestions.
"""
import pytest

from conftest import FakeGenerator
from mockprep.core.errors import (
    InsufficientQuestions,
    InvalidQuestionCount,
    InvalidTestCount,
    InvalidTopics,
    NoTopicsSelected,
)
from mockprep.schemas.exam import TestConfiguration
from mockprep.services.config_validator import ConfigValidator, insufficient_questions_message


def _config(topics, question_count=5, test_count=1):
    return TestConfiguration(
        subject="Mathematics",
        topics=topics,
        question_count=question_count,
        test_count=test_count,
    )


def test_valid_configuration_passes(repository, bank):
    available = ConfigValidator(repository).validate(_config(["alg", "geo"], question_count=10, test_count=2))
    assert available == 20


@pytest.mark.parametrize("count", [0, -3])
def test_non_positive_question_count(repository, bank, count):
    with pytest.raises(InvalidQuestionCount) as exc_info:
        ConfigValidator(repository).validate(_config(["alg"], question_count=count))
    assert exc_info.value.value == count


def test_non_positive_test_count(repository, bank):
    with pytest.raises(InvalidTestCount):
        ConfigValidator(repository).validate(_config(["alg"], test_count=0))


def test_no_topics(repository, bank):
    with pytest.raises(NoTopicsSelected):
        ConfigValidator(repository).validate(_config([]))


def test_unknown_topics_are_listed(repository, bank):
    with pytest.raises(InvalidTopics) as exc_info:
        ConfigValidator(repository).validate(_config(["alg", "nope", "missing"]))
    assert exc_info.value.missing == ["nope", "missing"]
    assert exc_info.value.to_dict()["kind"] == "InvalidTopics"


def test_shortfall_suggests_fewer_tests(repository, bank):
    """20 questions cannot fill 3 tests of 10."""
    with pytest.raises(InsufficientQuestions) as exc_info:
        ConfigValidator(repository).validate(_config(["alg", "geo"], question_count=10, test_count=3))

    error = exc_info.value
    assert error.available == 20
    assert error.requested == 30
    assert error.suggested_test_count == 2
    assert error.suggested_question_count == 6
    assert "Reduce the number of tests to 2 or fewer" in error.message
    assert "Reduce the number of questions per test to 6 or fewer" in error.message
    assert "(10 short)" in error.message


def test_single_test_shortfall_has_no_per_test_suggestion(repository, bank):
    with pytest.raises(InsufficientQuestions) as exc_info:
        ConfigValidator(repository).validate(_config(["alg"], question_count=15, test_count=1))

    assert exc_info.value.suggested_question_count is None
    assert exc_info.value.suggested_test_count is None
    assert "Select additional topics" in exc_info.value.message


def test_empty_bank_message(repository, topics):
    with pytest.raises(InsufficientQuestions) as exc_info:
        ConfigValidator(repository).validate(_config(["trig"], question_count=1))

    assert exc_info.value.available == 0
    assert exc_info.value.message.startswith("No questions available for the selected topics")


def test_synthetic_topics_skip_existence_check(repository, topics):
    config = _config(["llm-cbse-10-mathematics-0"], question_count=5, test_count=2)
    ConfigValidator(repository, generator=FakeGenerator()).validate(config)


def test_synthetic_topics_without_generator_hit_empty_bank(repository, topics):
    with pytest.raises(InsufficientQuestions):
        ConfigValidator(repository).validate(_config(["llm-cbse-10-mathematics-0"]))


def test_generator_skips_capacity_check(repository, topics):
    available = ConfigValidator(repository, generator=FakeGenerator()).validate(
        _config(["alg", "geo", "trig"], question_count=50, test_count=5)
    )
    assert available is None


def test_message_prefix():
    message = insufficient_questions_message(20, 10, 3)
    assert message.startswith("Insufficient unique questions available. Available: 20 questions, Requested: 30 questions")
