"""
Tests for the LLM question generator with a stubbed chat model.
"""
import pytest

from conftest import make_question
from mockprep.core.agents.generation import LLMQuestionGenerator, is_math_subject
from mockprep.core.agents.generation.schemas import GeneratedQuestion, GeneratedQuestionBatch
from mockprep.core.errors import SourcingFailed
from mockprep.schemas.exam import Difficulty, QuestionType, SyllabusContext, TestMode


class StubStructuredModel:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.messages = None

    def invoke(self, messages):
        self.messages = messages
        if self.error is not None:
            raise self.error
        return self.result


class StubChatModel:
    def __init__(self, structured):
        self.structured = structured
        self.schema = None

    def with_structured_output(self, schema):
        self.schema = schema
        return self.structured


CONTEXT = SyllabusContext(
    topic_id="alg",
    content="Algebra: Linear equations and polynomials",
    related_concepts=["Solve linear equations"],
)


def _mc(text="What is x if 2x = 4?", options=("1", "2", "3", "4"), answer="2", reference=""):
    return GeneratedQuestion(
        question_text=text,
        question_type="MultipleChoice",
        options=list(options) if options is not None else None,
        correct_answer=answer,
        syllabus_reference=reference,
        solution_steps=["Divide both sides by 2", "x = 2"],
    )


def _generator(result=None, error=None):
    structured = StubStructuredModel(result=result, error=error)
    model = StubChatModel(structured)
    return LLMQuestionGenerator(llm=model), model, structured


def test_structured_output_schema_is_requested():
    _, model, _ = _generator()
    assert model.schema is GeneratedQuestionBatch


def test_questions_are_stamped_with_topic_and_difficulty():
    generator, _, _ = _generator(GeneratedQuestionBatch(questions=[_mc(), _mc(text="What is y if y - 1 = 2?", answer="3")]))

    questions = generator.generate_questions(CONTEXT, 2, [], subject="Mathematics", mode=TestMode.IN_APP_EXAM)

    assert len(questions) == 2
    assert all(q.topic_id == "alg" for q in questions)
    assert all(q.difficulty == Difficulty.EXAM_REALISTIC for q in questions)
    assert all(q.question_id.startswith("gen-") for q in questions)
    assert len({q.question_id for q in questions}) == 2
    assert questions[0].solution_steps == ["Divide both sides by 2", "x = 2"]
    # Missing reference falls back to the syllabus content
    assert questions[0].syllabus_reference == CONTEXT.content[:50]


def test_extra_questions_are_trimmed():
    generator, _, _ = _generator(GeneratedQuestionBatch(questions=[_mc(), _mc(), _mc()]))
    assert len(generator.generate_questions(CONTEXT, 2, [])) == 2


def test_unusable_questions_are_dropped_and_shortfall_fails():
    batch = GeneratedQuestionBatch(questions=[
        _mc(),
        _mc(options=None),
        GeneratedQuestion(question_text="Essay?", question_type="Essay", correct_answer="x"),
    ])
    generator, _, _ = _generator(batch)

    with pytest.raises(SourcingFailed, match="produced 1 questions, but 3 were requested"):
        generator.generate_questions(CONTEXT, 3, [])


def test_non_multiple_choice_drops_options():
    batch = GeneratedQuestionBatch(questions=[
        GeneratedQuestion(
            question_text="Solve 3x = 12",
            question_type="Numerical",
            options=["ignored"],
            correct_answer="4",
        ),
    ])
    generator, _, _ = _generator(batch)

    question = generator.generate_questions(CONTEXT, 1, [])[0]
    assert question.question_type == QuestionType.NUMERICAL
    assert question.options is None


def test_model_error_becomes_sourcing_failure():
    generator, _, _ = _generator(error=RuntimeError("rate limited"))

    with pytest.raises(SourcingFailed, match="rate limited"):
        generator.generate_questions(CONTEXT, 1, [])


def test_malformed_response_fails():
    generator, _, _ = _generator(result={"questions": []})

    with pytest.raises(SourcingFailed, match="Invalid response format"):
        generator.generate_questions(CONTEXT, 1, [])


def test_prompts_for_in_app_math_exam():
    generator, _, structured = _generator(GeneratedQuestionBatch(questions=[_mc()]))
    existing = [make_question(f"old-{n}", "alg", text=f"Old question {n}") for n in range(1, 8)]

    generator.generate_questions(CONTEXT, 1, existing, subject="Physics", mode=TestMode.IN_APP_EXAM)

    system, user = structured.messages
    assert "ONLY MultipleChoice allowed" in system.content
    assert "ONLINE EXAM MODE" in user.content
    assert "MATH SUBJECT REQUIREMENTS" in user.content
    assert "Topic: Algebra" in user.content
    assert "- Solve linear equations" in user.content
    assert "5. Old question 5" in user.content
    assert "Old question 6" not in user.content


def test_prompts_for_pdf_humanities():
    prompt = LLMQuestionGenerator.build_user_prompt(CONTEXT, 4, [], subject="History", mode=TestMode.PDF_DOWNLOAD)

    assert "ONLINE EXAM MODE" not in prompt
    assert "MATH SUBJECT REQUIREMENTS" not in prompt
    assert "Do NOT create questions similar" not in prompt
    assert "Mix question types" in prompt
    assert "Generate exactly 4 questions" in prompt
    assert "ShortAnswer" in LLMQuestionGenerator.build_system_prompt(TestMode.PDF_DOWNLOAD)


@pytest.mark.parametrize("subject,expected", [
    ("Mathematics", True), ("physics", True), ("Applied Statistics", True),
    ("History", False), ("", False), (None, False),
])
def test_is_math_subject(subject, expected):
    assert is_math_subject(subject) is expected
