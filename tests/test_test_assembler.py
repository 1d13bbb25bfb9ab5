"""
Tests for assembling a batch of distinct tests.
"""
import pytest

from conftest import FakeGenerator, FakeRetriever
from mockprep.core.config import settings
from mockprep.core.errors import ConfigurationRejected, InsufficientQuestions, NotFound, SourcingFailed
from mockprep.core.helpers.retriever import VectorQuestionRetriever
from mockprep.models import GeneratedTest
from mockprep.schemas.exam import Difficulty, TestConfiguration, TestMode, TestStatus
from mockprep.services.config_validator import ConfigValidator
from mockprep.services.question_sourcer import QuestionSourcer
from mockprep.services.test_assembler import TestAssembler


def _assembler(repository, retriever, generator=None):
    return TestAssembler(
        repository,
        ConfigValidator(repository, generator),
        QuestionSourcer(retriever, repository, generator),
    )


def _config(topics, question_count, test_count, mode=TestMode.IN_APP_EXAM):
    return TestConfiguration(
        subject="Mathematics",
        topics=topics,
        question_count=question_count,
        test_count=test_count,
        test_mode=mode,
    )


def test_tests_share_no_question(repository, bank, fake_retriever):
    tests = _assembler(repository, fake_retriever).assemble(_config(["alg", "geo"], 6, 3), "user-1")

    assert len(tests) == 3
    ids = [q.question_id for t in tests for q in t.questions]
    assert len(ids) == 18
    assert len(set(ids)) == 18


def test_tests_respect_configuration(repository, bank, fake_retriever):
    config = _config(["alg", "trig"], 5, 2)
    tests = _assembler(repository, fake_retriever).assemble(config, "user-1")

    for test in tests:
        assert test.configuration == config
        assert test.status == TestStatus.GENERATED
        assert len(test.questions) == 5
        assert all(q.topic_id in {"alg", "trig"} for q in test.questions)
        assert all(q.difficulty == Difficulty.EXAM_REALISTIC for q in test.questions)
        assert test.answer_key == {q.question_id: q.correct_answer for q in test.questions}
    assert len({t.test_id for t in tests}) == 2


def test_tests_are_stored_in_order(repository, bank, fake_retriever):
    tests = _assembler(repository, fake_retriever).assemble(_config(["geo"], 4, 2), "user-1")

    stored = repository.get_test(tests[1].test_id)
    assert stored is not None
    assert [q.question_id for q in stored.questions] == [q.question_id for q in tests[1].questions]
    assert stored.configuration.test_mode == TestMode.IN_APP_EXAM


def test_generator_batch_is_unique_and_covers_topics(repository, topics):
    generator = FakeGenerator()
    tests = _assembler(repository, FakeRetriever(), generator).assemble(
        _config(["alg", "geo", "trig"], 10, 2), "user-1"
    )

    ids = [q.question_id for t in tests for q in t.questions]
    assert len(set(ids)) == 20
    for test in tests:
        counts = {}
        for q in test.questions:
            counts[q.topic_id] = counts.get(q.topic_id, 0) + 1
        assert counts == {"alg": 4, "geo": 3, "trig": 3}
    # The second test's generator calls see the first test's questions
    assert len(generator.calls[3]["existing"]) == 10


def test_invalid_configuration_is_rejected(repository, bank, fake_retriever):
    with pytest.raises(ConfigurationRejected) as exc_info:
        _assembler(repository, fake_retriever).assemble(_config(["alg", "geo"], 10, 3), "user-1")

    assert isinstance(exc_info.value.details, InsufficientQuestions)
    assert exc_info.value.to_dict()["details"]["suggested_test_count"] == 2
    assert repository.db.query(GeneratedTest).count() == 0


def test_failure_rolls_back_whole_batch(repository, topics):
    # Third generator call belongs to the second test
    generator = FakeGenerator(fail_with=SourcingFailed("model unavailable"), fail_on_call=3)

    with pytest.raises(SourcingFailed):
        _assembler(repository, FakeRetriever(), generator).assemble(_config(["alg", "geo"], 4, 2), "user-1")

    assert repository.db.query(GeneratedTest).count() == 0


def test_unexpected_error_becomes_sourcing_failure(repository, topics):
    generator = FakeGenerator(fail_with=RuntimeError("boom"))

    with pytest.raises(SourcingFailed, match="boom"):
        _assembler(repository, FakeRetriever(), generator).assemble(_config(["alg"], 2, 1), "user-1")


def test_bank_only_generation_without_embedding_key(db, repository, bank, monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")

    tests = _assembler(repository, VectorQuestionRetriever(db)).assemble(_config(["alg", "geo"], 5, 4), "user-1")

    ids = [q.question_id for t in tests for q in t.questions]
    assert len(ids) == 20
    assert len(set(ids)) == 20
    assert repository.db.query(GeneratedTest).count() == 4


def test_retry_reuses_configuration_for_one_test(repository, bank, fake_retriever):
    assembler = _assembler(repository, fake_retriever)
    original = assembler.assemble(_config(["alg", "geo"], 6, 3, mode=TestMode.PDF_DOWNLOAD), "user-1")[0]

    retry = assembler.retry_test(original.test_id, "user-2")

    assert retry.test_id != original.test_id
    assert len(retry.questions) == 6
    assert retry.configuration.topics == ["alg", "geo"]
    assert retry.configuration.test_mode == TestMode.PDF_DOWNLOAD
    assert retry.configuration.test_count == 1
    assert repository.db.query(GeneratedTest).filter(GeneratedTest.user_id == "user-2").count() == 1


def test_retry_of_unknown_test(repository, bank, fake_retriever):
    with pytest.raises(NotFound):
        _assembler(repository, fake_retriever).retry_test("missing", "user-1")
