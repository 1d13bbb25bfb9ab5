"""
Performance reports derived from evaluations.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from mockprep.core.config import settings
from mockprep.core.errors import NotFound
from mockprep.core.helpers.topics import is_synthetic_topic
from mockprep.schemas.exam import (
    EvaluationResult,
    ImprovementSuggestion,
    PerformanceReport,
    TopicScore,
    WeakTopic,
)
from mockprep.services.interfaces import ExamRepository

logger = logging.getLogger(__name__)


def letter_grade(score: float) -> str:
    if score >= 90:
        return "A"
    elif score >= 80:
        return "B"
    elif score >= 70:
        return "C"
    elif score >= 60:
        return "D"
    return "F"


class FeedbackReporter:
    """Weak topics, study suggestions and a weakest-first ranking for an evaluation."""

    def __init__(self, repository: ExamRepository, weak_threshold: Optional[float] = None):
        self.repository = repository
        self.weak_threshold = weak_threshold if weak_threshold is not None else settings.WEAK_TOPIC_THRESHOLD

    def identify_weak_topics(self, topic_scores: List[TopicScore]) -> List[WeakTopic]:
        return [
            WeakTopic(topic_id=ts.topic_id, topic_name=ts.topic_name, percentage=ts.percentage)
            for ts in topic_scores
            if ts.percentage < self.weak_threshold
        ]

    def suggest(self, weak_topics: List[WeakTopic]) -> List[ImprovementSuggestion]:
        """
        Study suggestions for weak topics.

        Stored topics point at their learning objectives; synthetic topics
        and topics without objectives get a generic review suggestion.
        """
        suggestions = []
        for weak in weak_topics:
            topic = None if is_synthetic_topic(weak.topic_id) else self.repository.get_syllabus_topic(weak.topic_id)

            if topic is not None and topic.learning_objectives:
                items = list(topic.learning_objectives)
            elif topic is not None and topic.section:
                items = [f"Review {topic.name} concepts from {topic.section}"]
            else:
                items = [f"Review {weak.topic_name} concepts"]

            suggestions.append(ImprovementSuggestion(
                topic_id=weak.topic_id,
                topic_name=weak.topic_name,
                suggestions=items,
                retry_test_option=True,
            ))
        return suggestions

    def build_report(self, evaluation: EvaluationResult) -> PerformanceReport:
        """
        Create and store the report for an evaluation, once.

        A second call for the same evaluation returns the stored report.
        """
        existing = self.repository.find_report(evaluation.evaluation_id)
        if existing is not None:
            return existing

        weak_topics = self.identify_weak_topics(evaluation.topic_scores)
        report = PerformanceReport(
            report_id=str(uuid.uuid4()),
            evaluation_id=evaluation.evaluation_id,
            test_id=evaluation.test_id,
            user_id=evaluation.user_id,
            overall_score=evaluation.overall_score,
            grade=letter_grade(evaluation.overall_score),
            weak_topics=weak_topics,
            suggestions=self.suggest(weak_topics),
            ranked_topics=sorted(evaluation.topic_scores, key=lambda ts: ts.percentage),
            created_at=datetime.now(timezone.utc),
        )
        self.repository.create_report(report)

        logger.info(
            f"Report for evaluation {evaluation.evaluation_id}: grade {report.grade}, "
            f"{len(weak_topics)} weak topics"
        )
        return report

    def get_report(self, test_id: str, user_id: str) -> PerformanceReport:
        """
        Stored report of a user's evaluated test.

        Raises:
            NotFound: No report exists for the test and user
        """
        evaluation = self.repository.find_evaluation_for_test(test_id, user_id)
        report = self.repository.find_report(evaluation.evaluation_id) if evaluation is not None else None
        if report is None:
            raise NotFound("PerformanceReport", test_id)
        return report
