"""
Structured output schemas for question generation.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class GeneratedQuestion(BaseModel):
    """One question as returned by the model."""
    question_text: str
    question_type: str = Field(description="MultipleChoice, ShortAnswer or Numerical")
    options: Optional[List[str]] = None
    correct_answer: str
    syllabus_reference: str = ""
    solution_steps: List[str] = Field(default_factory=list)


class GeneratedQuestionBatch(BaseModel):
    """Schema for LLM question generation output."""
    questions: List[GeneratedQuestion]
