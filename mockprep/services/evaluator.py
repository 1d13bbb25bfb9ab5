"""
Grading of submitted sessions.
"""
import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Optional

from mockprep.core.config import settings
from mockprep.core.errors import EvaluationFailed, NotFound
from mockprep.schemas.exam import EvaluationResult, TestSubmission, TopicScore
from mockprep.services.answer_comparator import AnswerComparator
from mockprep.services.interfaces import ExamRepository

logger = logging.getLogger(__name__)


class Evaluator:
    """
    Scores a submission against the test's answer key.

    Scores are points-weighted: a multi-select question can earn a
    fraction of its points, and overall and per-topic percentages are
    earned points over possible points.
    """

    def __init__(
        self,
        repository: ExamRepository,
        comparator: Optional[AnswerComparator] = None,
        question_points: Optional[float] = None,
    ):
        self.repository = repository
        self.comparator = comparator or AnswerComparator()
        self.question_points = question_points if question_points is not None else settings.QUESTION_POINTS

    def evaluate(self, submission: TestSubmission) -> EvaluationResult:
        """
        Evaluate a submission, or return the stored result if it was already evaluated.

        Args:
            submission: Snapshot returned by SessionCoordinator.submit

        Returns:
            The evaluation, with topic scores in question order

        Raises:
            EvaluationFailed: The submitted test does not exist
        """
        existing = self.repository.find_evaluation_for_session(submission.session_id)
        if existing is not None:
            return existing

        test = self.repository.get_test(submission.test_id)
        if test is None:
            raise EvaluationFailed(f"Test with ID {submission.test_id} not found")

        topic_names = {t.id: t.name for t in self.repository.resolve_topics(test.configuration.topics)}
        topics = OrderedDict()
        correct_count = 0
        earned_points = 0.0
        total_points = 0.0

        for question in test.questions:
            response = submission.responses.get(question.question_id)
            user_answer = response.answer if response is not None else ""
            points = self.question_points

            if isinstance(question.correct_answer, list):
                user_answers = user_answer if isinstance(user_answer, list) else [user_answer]
                earned = self.comparator.calculate_partial_credit(user_answers, question.correct_answer, points)
                is_correct = earned == points
            else:
                is_correct = self.comparator.compare(user_answer, question.correct_answer, question.question_type)
                earned = points if is_correct else 0.0

            total_points += points
            earned_points += earned
            if is_correct:
                correct_count += 1

            topic = topics.setdefault(
                question.topic_id,
                {"correct": 0, "total": 0, "points": 0.0, "earned": 0.0},
            )
            topic["total"] += 1
            topic["points"] += points
            topic["earned"] += earned
            if is_correct:
                topic["correct"] += 1

        topic_scores = [
            TopicScore(
                topic_id=topic_id,
                topic_name=topic_names.get(topic_id, topic_id),
                correct=data["correct"],
                total=data["total"],
                percentage=(data["earned"] / data["points"]) * 100 if data["points"] > 0 else 0.0,
            )
            for topic_id, data in topics.items()
        ]

        result = EvaluationResult(
            evaluation_id=str(uuid.uuid4()),
            session_id=submission.session_id,
            test_id=submission.test_id,
            user_id=submission.user_id,
            overall_score=(earned_points / total_points) * 100 if total_points > 0 else 0.0,
            correct_count=correct_count,
            total_count=len(test.questions),
            topic_scores=topic_scores,
            evaluated_at=datetime.now(timezone.utc),
        )
        self.repository.create_evaluation(result)

        logger.info(
            f"Evaluated session {submission.session_id}: {result.overall_score:.1f}% "
            f"({correct_count}/{result.total_count} correct)"
        )
        return result

    def get_evaluation(self, test_id: str, user_id: str) -> EvaluationResult:
        """
        Stored evaluation of a user's submitted test.

        Raises:
            NotFound: The test has not been evaluated for this user
        """
        result = self.repository.find_evaluation_for_test(test_id, user_id)
        if result is None:
            raise NotFound("Evaluation", test_id)
        return result
