"""
Helpers for synthetic topic ids.

Topics minted by the curriculum browser are not stored in the syllabus
table. Their ids carry a prefix and encode everything needed to describe
them: {prefix}{curriculum}-{grade}-{subject...}-{index}, for example
llm-cbse-10-social-studies-2.
"""
from dataclasses import dataclass

from mockprep.core.config import settings


@dataclass(frozen=True)
class SyntheticTopic:
    curriculum: str
    grade: int
    subject: str
    index: int

    @property
    def name(self) -> str:
        return f"{self.subject[:1].upper()}{self.subject[1:]} Topic {self.index + 1}"


def is_synthetic_topic(topic_id: str, prefix: str = None) -> bool:
    prefix = prefix if prefix is not None else settings.SYNTHETIC_TOPIC_PREFIX
    return bool(prefix) and topic_id.startswith(prefix)


def parse_synthetic_topic(topic_id: str, prefix: str = None) -> SyntheticTopic:
    """
    Decode a synthetic topic id.

    Raises:
        ValueError: If the id does not follow the synthetic format
    """
    prefix = prefix if prefix is not None else settings.SYNTHETIC_TOPIC_PREFIX
    if not is_synthetic_topic(topic_id, prefix):
        raise ValueError(f"Not a synthetic topic id: {topic_id}")

    parts = topic_id[len(prefix):].split("-")
    if len(parts) < 4:
        raise ValueError(f"Invalid synthetic topic id format: {topic_id}")

    try:
        grade = int(parts[1])
        index = int(parts[-1])
    except ValueError:
        raise ValueError(f"Invalid synthetic topic id format: {topic_id}")

    return SyntheticTopic(
        curriculum=parts[0].upper(),
        grade=grade,
        subject=" ".join(parts[2:-1]),
        index=index,
    )


def synthetic_topic_name(topic_id: str, prefix: str = None) -> str:
    """Readable name for a synthetic topic, or the raw id when it cannot be parsed."""
    try:
        return parse_synthetic_topic(topic_id, prefix).name
    except ValueError:
        return topic_id
