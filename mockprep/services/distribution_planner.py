"""
Split a question total across topics.
"""
from typing import List, Sequence

from mockprep.schemas.exam import TopicDistribution, TopicRef


def plan(topics: Sequence[TopicRef], total_questions: int) -> List[TopicDistribution]:
    """
    Allocate total_questions across topics as evenly as possible.

    Every topic gets total // n questions and the first total % n topics,
    in input order, get one more. With fewer questions than topics the
    trailing topics receive 0.

    Args:
        topics: Ordered topics to cover
        total_questions: Total number of questions, at least 0

    Returns:
        One TopicDistribution per topic, summing to total_questions

    Raises:
        ValueError: If total_questions is negative
    """
    if total_questions < 0:
        raise ValueError(f"total_questions must be >= 0, got {total_questions}")
    if not topics:
        return []

    base, remainder = divmod(total_questions, len(topics))
    return [
        TopicDistribution(
            topic_id=topic.id,
            topic_name=topic.name,
            question_count=base + (1 if index < remainder else 0),
        )
        for index, topic in enumerate(topics)
    ]
