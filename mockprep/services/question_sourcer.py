"""
Question sourcing across the retriever and the generator.
"""
import logging
from typing import Iterable, List, Optional, Sequence

from mockprep.core.errors import MockPrepError, SourcingFailed, TopicMismatch
from mockprep.schemas.exam import Difficulty, Question, QuestionType, TestMode, TopicRef
from mockprep.services import distribution_planner
from mockprep.services.interfaces import ExamRepository, QuestionGenerator, QuestionRetriever

logger = logging.getLogger(__name__)


class QuestionSourcer:
    """
    Obtains the questions for one test.

    With a generator, each topic gets its planned share of freshly
    generated questions, written through to the bank and the retriever
    index. Without one, the whole test comes from a single retriever call.
    """

    def __init__(
        self,
        retriever: QuestionRetriever,
        repository: ExamRepository,
        generator: Optional[QuestionGenerator] = None,
    ):
        self.retriever = retriever
        self.repository = repository
        self.generator = generator

    def source(
        self,
        topics: Sequence[TopicRef],
        total_questions: int,
        already_used: Iterable[str],
        subject: str,
        mode: TestMode,
        seen_questions: Sequence[Question] = (),
    ) -> List[Question]:
        """
        Source total_questions questions for the topics.

        Args:
            topics: Ordered topics of the configuration
            total_questions: Questions this test needs
            already_used: Question ids placed in earlier tests of the run
            subject: Subject of the configuration
            mode: Test mode
            seen_questions: Questions from earlier tests, quoted to the generator

        Returns:
            Questions ready to be placed into a test

        Raises:
            SourcingFailed: Generator or retriever failure, short result,
                or a question failing a post-check (TopicMismatch for topics)
        """
        used = set(already_used)

        if self.generator is not None:
            questions = self._generate(topics, total_questions, subject, mode, list(seen_questions))
        else:
            questions = self._retrieve(topics, total_questions, used)

        self._check(questions, topics, total_questions, used, mode)
        return questions

    def _generate(
        self,
        topics: Sequence[TopicRef],
        total_questions: int,
        subject: str,
        mode: TestMode,
        seen: List[Question],
    ) -> List[Question]:
        questions: List[Question] = []

        for allocation in distribution_planner.plan(topics, total_questions):
            if allocation.question_count == 0:
                continue
            try:
                context = self.retriever.get_syllabus_context(allocation.topic_id)
                generated = self.generator.generate_questions(
                    context,
                    allocation.question_count,
                    seen + questions,
                    subject=subject,
                    mode=mode,
                )
            except SourcingFailed:
                raise
            except MockPrepError as e:
                raise SourcingFailed(f"Could not source topic {allocation.topic_id}: {e.message}")

            if len(generated) != allocation.question_count:
                raise SourcingFailed(
                    f"Generator returned {len(generated)} questions for topic "
                    f"{allocation.topic_id}, {allocation.question_count} were requested"
                )

            for question in generated:
                self.repository.upsert_question(question)
                self.retriever.index_question(question)
            questions.extend(generated)

            logger.info(
                f"Sourced {len(generated)} generated questions for topic {allocation.topic_name}"
            )

        return questions

    def _retrieve(self, topics: Sequence[TopicRef], total_questions: int, used: set) -> List[Question]:
        try:
            questions = self.retriever.retrieve_questions(
                [topic.id for topic in topics], total_questions, used
            )
        except MockPrepError as e:
            raise SourcingFailed(
                f"No question generator is configured and the bank could not supply "
                f"{total_questions} questions: {e.message}"
            )

        if len(questions) < total_questions:
            raise SourcingFailed(
                f"No question generator is configured and only {len(questions)} of "
                f"{total_questions} questions are left in the bank"
            )
        return list(questions[:total_questions])

    @staticmethod
    def _check(
        questions: List[Question],
        topics: Sequence[TopicRef],
        total_questions: int,
        used: set,
        mode: TestMode,
    ) -> None:
        if len(questions) != total_questions:
            raise SourcingFailed(f"Sourced {len(questions)} questions, {total_questions} were requested")

        topic_ids = {topic.id for topic in topics}
        seen_ids = set()
        for question in questions:
            if question.topic_id not in topic_ids:
                raise TopicMismatch(question.question_id, question.topic_id)
            if question.difficulty != Difficulty.EXAM_REALISTIC:
                raise SourcingFailed(
                    f"Question {question.question_id} has difficulty {question.difficulty.value}, "
                    f"expected {Difficulty.EXAM_REALISTIC.value}"
                )
            if question.question_id in seen_ids or question.question_id in used:
                raise SourcingFailed(f"Question {question.question_id} was already used in this run")
            seen_ids.add(question.question_id)

            if mode == TestMode.IN_APP_EXAM and (
                question.question_type != QuestionType.MULTIPLE_CHOICE
                or isinstance(question.correct_answer, list)
            ):
                logger.warning(
                    f"Question {question.question_id} is {question.question_type.value}, "
                    f"in-app exams expect single-answer multiple choice"
                )
