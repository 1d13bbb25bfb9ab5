"""
LLM question generator grounded in syllabus context.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from langchain_core.messages import HumanMessage, SystemMessage

from mockprep.core.errors import SourcingFailed
from mockprep.core.llm_config import LLMFactory
from mockprep.core.agents.generation.prompts import (
    GENERATION_SYSTEM_PROMPT,
    GENERATION_USER_PROMPT_TEMPLATE,
    IN_APP_MODE_SECTION,
    MATH_SUBJECT_SECTION,
    MATH_SUBJECTS,
    MAX_EXISTING_EXAMPLES,
    QUESTION_TYPES_IN_APP,
    QUESTION_TYPES_MIXED,
)
from mockprep.core.agents.generation.schemas import GeneratedQuestion, GeneratedQuestionBatch
from mockprep.schemas.exam import (
    Difficulty,
    Question,
    QuestionType,
    SyllabusContext,
    TestMode,
)
from mockprep.services.interfaces import QuestionGenerator

logger = logging.getLogger(__name__)


def is_math_subject(subject: Optional[str]) -> bool:
    """Whether a subject calls for calculation-based questions."""
    if not subject:
        return False
    lowered = subject.lower()
    return any(math.lower() in lowered for math in MATH_SUBJECTS)


class LLMQuestionGenerator(QuestionGenerator):
    """
    Generates exam-realistic questions with an LLM.

    The model returns structured output; questions get fresh ids, the
    requested topic and ExamRealistic difficulty here rather than from
    the model.
    """

    def __init__(self, llm=None):
        self.llm = llm if llm is not None else LLMFactory.create_llm(
            tracing_project="mockprep-question-generation"
        )
        self.structured_llm = self.llm.with_structured_output(GeneratedQuestionBatch)

    def generate_questions(
        self,
        context: SyllabusContext,
        count: int,
        existing_questions: Sequence[Question],
        subject: Optional[str] = None,
        mode: Optional[TestMode] = None,
    ) -> List[Question]:
        """
        Generate questions for one topic.

        Args:
            context: Syllabus grounding for the topic
            count: Number of questions wanted
            existing_questions: Questions already used in this run
            subject: Subject name, used to pick the math rules
            mode: Test mode, InAppExam asks for MultipleChoice only

        Returns:
            Exactly count questions

        Raises:
            SourcingFailed: On provider error, malformed output or under-delivery
        """
        messages = [
            SystemMessage(content=self.build_system_prompt(mode)),
            HumanMessage(content=self.build_user_prompt(context, count, existing_questions, subject, mode)),
        ]

        logger.info(f"Generating {count} questions for topic {context.topic_id}...")
        try:
            result = self.structured_llm.invoke(messages)
        except Exception as e:
            logger.error(f"Question generation failed for topic {context.topic_id}: {e}")
            raise SourcingFailed(f"Question generator error for topic {context.topic_id}: {e}")

        if result is None or not isinstance(result, GeneratedQuestionBatch):
            raise SourcingFailed(f"Invalid response format from question generator for topic {context.topic_id}")

        questions = []
        for generated in result.questions:
            question = self._to_question(generated, context)
            if question is not None:
                questions.append(question)

        if len(questions) < count:
            raise SourcingFailed(
                f"Question generator produced {len(questions)} questions, but {count} were requested"
            )

        logger.info(f"Generated {count} questions for topic {context.topic_id}")
        return questions[:count]

    def _to_question(self, generated: GeneratedQuestion, context: SyllabusContext) -> Optional[Question]:
        try:
            question_type = QuestionType(generated.question_type)
        except ValueError:
            logger.warning(f"Dropping generated question with unknown type {generated.question_type!r}")
            return None

        options = generated.options if question_type == QuestionType.MULTIPLE_CHOICE else None
        if question_type == QuestionType.MULTIPLE_CHOICE and not options:
            logger.warning("Dropping generated multiple choice question without options")
            return None

        return Question(
            question_id=f"gen-{uuid.uuid4()}",
            topic_id=context.topic_id,
            question_text=generated.question_text,
            question_type=question_type,
            options=options,
            correct_answer=generated.correct_answer,
            solution_steps=list(generated.solution_steps),
            syllabus_reference=generated.syllabus_reference or context.content[:50],
            difficulty=Difficulty.EXAM_REALISTIC,
            created_at=datetime.now(timezone.utc),
        )

    @staticmethod
    def build_system_prompt(mode: Optional[TestMode] = None) -> str:
        in_app = mode == TestMode.IN_APP_EXAM
        return GENERATION_SYSTEM_PROMPT.format(
            question_types=QUESTION_TYPES_IN_APP if in_app else QUESTION_TYPES_MIXED,
            options_rule="required for every question" if in_app else "only for MultipleChoice",
        )

    @staticmethod
    def build_user_prompt(
        context: SyllabusContext,
        count: int,
        existing_questions: Sequence[Question],
        subject: Optional[str] = None,
        mode: Optional[TestMode] = None,
    ) -> str:
        in_app = mode == TestMode.IN_APP_EXAM

        concepts_section = ""
        if context.related_concepts:
            concepts_section = "Key Concepts:\n" + "\n".join(
                f"- {concept}" for concept in context.related_concepts
            ) + "\n\n"

        existing_section = ""
        if existing_questions:
            examples = existing_questions[:MAX_EXISTING_EXAMPLES]
            existing_section = "Do NOT create questions similar to these existing questions:\n" + "\n".join(
                f"{i}. {q.question_text}" for i, q in enumerate(examples, 1)
            ) + "\n\n"

        return GENERATION_USER_PROMPT_TEMPLATE.format(
            count=count,
            topic_name=context.content.split(":")[0].strip(),
            content=context.content,
            concepts_section=concepts_section,
            mode_section=IN_APP_MODE_SECTION if in_app else "",
            math_section=MATH_SUBJECT_SECTION if is_math_subject(subject) else "",
            existing_section=existing_section,
            type_requirement=(
                "- Generate ONLY MultipleChoice questions (mandatory for online exams)"
                if in_app
                else "- Mix question types (MultipleChoice, ShortAnswer, Numerical) to suit the topic"
            ),
        )
