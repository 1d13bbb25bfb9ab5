"""
A user's history of submitted tests.
"""
import logging
from collections import defaultdict
from typing import Dict, List

from mockprep.schemas.exam import TestHistoryEntry
from mockprep.services.interfaces import ExamRepository

logger = logging.getLogger(__name__)


class PerformanceHistory:
    def __init__(self, repository: ExamRepository):
        self.repository = repository

    def get_test_history(self, user_id: str) -> List[TestHistoryEntry]:
        """Submitted tests of a user, newest first, with their overall scores."""
        history = []
        for session in self.repository.list_submitted_sessions(user_id):
            test = self.repository.get_test(session.test_id)
            if test is None:
                logger.warning(f"Submitted session {session.session_id} points at missing test {session.test_id}")
                continue
            evaluation = self.repository.find_evaluation_for_session(session.session_id)
            history.append(TestHistoryEntry(
                test_id=test.test_id,
                subject=test.configuration.subject,
                session_id=session.session_id,
                submitted_at=session.submitted_at,
                overall_score=evaluation.overall_score if evaluation is not None else None,
                question_count=len(test.questions),
            ))
        return history

    def get_score_trend(self, user_id: str) -> Dict[str, List[float]]:
        """Overall scores per subject, oldest first."""
        trend: Dict[str, List[float]] = defaultdict(list)
        for entry in reversed(self.get_test_history(user_id)):
            if entry.overall_score is not None:
                trend[entry.subject].append(entry.overall_score)
        return dict(trend)
