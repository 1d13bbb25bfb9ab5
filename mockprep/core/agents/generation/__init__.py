"""
Question generation agent.
"""
from .question_generator import LLMQuestionGenerator, is_math_subject

__all__ = [
    "LLMQuestionGenerator",
    "is_math_subject",
]
