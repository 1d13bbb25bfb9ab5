"""
Tests for splitting a question total across topics.
"""
import pytest

from mockprep.schemas.exam import TopicRef
from mockprep.services import distribution_planner


def _topics(n):
    return [TopicRef(id=f"t{i}", name=f"Topic {i}") for i in range(n)]


def test_three_topics_ten_questions_front_loads_remainder():
    plan = distribution_planner.plan(_topics(3), 10)

    assert [d.question_count for d in plan] == [4, 3, 3]
    assert [d.topic_id for d in plan] == ["t0", "t1", "t2"]
    assert [d.topic_name for d in plan] == ["Topic 0", "Topic 1", "Topic 2"]


@pytest.mark.parametrize("n_topics,total", [(1, 7), (2, 5), (4, 4), (5, 13), (7, 100)])
def test_counts_sum_to_total_and_differ_by_at_most_one(n_topics, total):
    counts = [d.question_count for d in distribution_planner.plan(_topics(n_topics), total)]

    assert sum(counts) == total
    assert max(counts) - min(counts) <= 1
    # Larger shares come first
    assert counts == sorted(counts, reverse=True)


def test_every_topic_covered_when_enough_questions():
    plan = distribution_planner.plan(_topics(4), 9)
    assert all(d.question_count >= 1 for d in plan)


def test_fewer_questions_than_topics_leaves_trailing_topics_empty():
    plan = distribution_planner.plan(_topics(5), 2)
    assert [d.question_count for d in plan] == [1, 1, 0, 0, 0]


def test_zero_questions():
    plan = distribution_planner.plan(_topics(3), 0)
    assert [d.question_count for d in plan] == [0, 0, 0]


def test_no_topics_returns_empty_plan():
    assert distribution_planner.plan([], 10) == []


def test_negative_total_is_rejected():
    with pytest.raises(ValueError):
        distribution_planner.plan(_topics(2), -1)
