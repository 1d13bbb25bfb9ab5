"""
Answer comparison and partial-credit scoring.
"""
import re
from typing import List, Set, Union

from mockprep.schemas.exam import Answer, QuestionType

NUMERIC_TOLERANCE = 1e-4

_WHITESPACE = re.compile(r"\s+")


def normalize_answer(answer: Union[str, List[str], None]) -> str:
    """Trim, lowercase and collapse internal whitespace.

    A list contributes its first element, matching how a single-answer
    question treats a stray multi-select submission.
    """
    if isinstance(answer, list):
        answer = answer[0] if answer else ""
    if answer is None:
        answer = ""
    return _WHITESPACE.sub(" ", str(answer).strip().lower())


def _selection(answers: List[str]) -> Set[str]:
    """Normalized options of a multi-select answer, blanks dropped."""
    return {normalize_answer(a) for a in answers} - {""}


class AnswerComparator:
    """Scoring primitives used by the evaluator."""

    def compare(self, user_answer: Answer, correct_answer: Answer, question_type: QuestionType) -> bool:
        """
        Decide whether a single answer is correct.

        Args:
            user_answer: Submitted answer
            correct_answer: Answer key entry
            question_type: Type of the question being graded

        Returns:
            True when the answers match for the question type
        """
        if isinstance(correct_answer, list):
            user_answers = user_answer if isinstance(user_answer, list) else [user_answer]
            return self.compare_array(user_answers, correct_answer)

        normalized_user = normalize_answer(user_answer)
        normalized_correct = normalize_answer(correct_answer)

        if question_type == QuestionType.NUMERICAL:
            try:
                user_value = float(normalized_user)
                correct_value = float(normalized_correct)
            except ValueError:
                return normalized_user == normalized_correct
            return abs(user_value - correct_value) < NUMERIC_TOLERANCE

        return normalized_user == normalized_correct

    def compare_array(self, user_answers: List[str], correct_answers: List[str]) -> bool:
        """All correct options selected and nothing else."""
        return _selection(user_answers) == _selection(correct_answers)

    def calculate_partial_credit(
        self,
        user_answers: List[str],
        correct_answers: List[str],
        points: float = 1.0,
    ) -> float:
        """
        Score a multi-select answer.

        credit = max(0, (right - wrong) / len(correct_answers)) * points

        Selections are a set: repeating an option counts it once.

        Args:
            user_answers: Options the user selected
            correct_answers: Options in the answer key
            points: Points available for the question

        Returns:
            Points earned, between 0 and points
        """
        normalized_correct = _selection(correct_answers)
        if not normalized_correct:
            return 0.0

        selected = _selection(user_answers)
        right = len(selected & normalized_correct)
        wrong = len(selected - normalized_correct)

        ratio = min(1.0, max(0.0, (right - wrong) / len(normalized_correct)))
        return ratio * points
