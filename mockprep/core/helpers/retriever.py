"""
Question retrieval using pgvector similarity search, with a keyword
fallback for questions that have no vector.
"""
import logging
import re
from typing import Iterable, List, Optional, Sequence, Set

from sqlalchemy.orm import Session

from mockprep.core.config import settings
from mockprep.core.errors import IndexingError, RetrievalError
from mockprep.core.helpers.embedder import (
    EmbeddingService,
    average_embeddings,
    question_embedding_text,
)
from mockprep.core.helpers.repository import question_from_row
from mockprep.core.helpers.topics import is_synthetic_topic, parse_synthetic_topic
from mockprep.models.question import BankQuestion, QuestionEmbedding
from mockprep.models.syllabus import SyllabusTopic
from mockprep.schemas.exam import Question, SyllabusContext
from mockprep.services.interfaces import QuestionRetriever

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[a-z0-9]+")
MIN_KEYWORD_LENGTH = 4


def syllabus_keywords(contexts: Iterable[SyllabusContext]) -> Set[str]:
    """Distinct words of at least MIN_KEYWORD_LENGTH letters in the syllabus text."""
    keywords: Set[str] = set()
    for context in contexts:
        text = " ".join([context.content, *context.related_concepts]).lower()
        keywords.update(w for w in _WORD.findall(text) if len(w) >= MIN_KEYWORD_LENGTH)
    return keywords


def keyword_overlap(row: BankQuestion, keywords: Set[str]) -> int:
    text = f"{row.question_text} {row.syllabus_reference or ''}".lower()
    return len(keywords.intersection(_WORD.findall(text)))


def synthetic_syllabus_context(topic_id: str, prefix: Optional[str] = None) -> SyllabusContext:
    """Grounding context for a topic that only exists as an encoded id."""
    topic = parse_synthetic_topic(topic_id, prefix)
    return SyllabusContext(
        topic_id=topic_id,
        content=(
            f"{topic.curriculum} Class {topic.grade} {topic.subject}: {topic.name}. "
            f"Generate exam-realistic questions for this topic following the official "
            f"{topic.curriculum} curriculum standards."
        ),
        related_concepts=[
            f"{topic.curriculum} curriculum standards",
            f"Class {topic.grade} level difficulty",
            f"{topic.subject} fundamentals",
        ],
    )


def stored_syllabus_context(topic: SyllabusTopic) -> SyllabusContext:
    return SyllabusContext(
        topic_id=topic.id,
        content=f"{topic.name}: {topic.official_content or ''}".strip(),
        related_concepts=list(topic.learning_objectives or []),
    )


class VectorQuestionRetriever(QuestionRetriever):
    """
    Retrieves bank questions close to the syllabus of the requested topics.

    The query vector is the normalized mean of the topic syllabus
    embeddings; candidates are filtered to the topics and ordered by
    cosine distance.
    """

    def __init__(self, db: Session, embedding_service: Optional[EmbeddingService] = None):
        self.db = db
        self._embedding_service = embedding_service

    @property
    def embedding_service(self) -> EmbeddingService:
        """Created on first use so syllabus lookups work without an API key."""
        if self._embedding_service is None:
            self._embedding_service = EmbeddingService()
        return self._embedding_service

    @property
    def vector_search_enabled(self) -> bool:
        return self._embedding_service is not None or bool(settings.OPENAI_API_KEY)

    def retrieve_questions(
        self, topic_ids: Sequence[str], count: int, exclude_ids: Iterable[str]
    ) -> List[Question]:
        """
        Retrieve count questions for the topics.

        Indexed questions are ranked by cosine similarity to the syllabus.
        Questions without a vector, or every question when no embedding key
        is configured, are ranked by keyword overlap with the syllabus.

        Args:
            topic_ids: Topics the questions must belong to
            count: Number of questions wanted
            exclude_ids: Question ids already used in this run

        Returns:
            Exactly count questions, most similar first

        Raises:
            RetrievalError: InsufficientMatches when too few questions match,
                VectorDBError when the lookup itself fails
        """
        if count <= 0:
            return []

        excluded = set(exclude_ids)
        try:
            contexts = [self.get_syllabus_context(topic_id) for topic_id in topic_ids]

            rows = []
            if self.vector_search_enabled:
                rows = self._vector_search(topic_ids, contexts, count, excluded)
            if len(rows) < count:
                taken = excluded | {row.id for row in rows}
                rows += self._keyword_search(
                    topic_ids,
                    contexts,
                    count - len(rows),
                    taken,
                    unindexed_only=self.vector_search_enabled,
                )
        except RetrievalError:
            raise
        except Exception as e:
            logger.error(f"Question search failed for topics {list(topic_ids)}: {e}")
            raise RetrievalError("VectorDBError", f"Vector search failed: {e}", requested=count)

        questions = [question_from_row(row) for row in rows]
        if len(questions) < count:
            logger.warning(f"Only {len(questions)} of {count} questions matched topics {list(topic_ids)}")
            raise RetrievalError(
                "InsufficientMatches",
                f"Found {len(questions)} matching questions, {count} requested",
                found=len(questions),
                requested=count,
            )

        logger.info(f"Retrieved {len(questions)} questions for {len(topic_ids)} topics")
        return questions

    def _vector_search(
        self,
        topic_ids: Sequence[str],
        contexts: List[SyllabusContext],
        count: int,
        excluded: Set[str],
    ) -> List[BankQuestion]:
        query_embedding = average_embeddings(
            [self.embedding_service.embed_syllabus(context) for context in contexts]
        )

        query = (
            self.db.query(BankQuestion)
            .join(QuestionEmbedding, QuestionEmbedding.question_id == BankQuestion.id)
            .filter(BankQuestion.topic_id.in_(list(topic_ids)))
        )
        if excluded:
            query = query.filter(~BankQuestion.id.in_(excluded))

        return (
            query.order_by(QuestionEmbedding.embedding_vector.cosine_distance(query_embedding))
            .limit(count)
            .all()
        )

    def _keyword_search(
        self,
        topic_ids: Sequence[str],
        contexts: List[SyllabusContext],
        count: int,
        excluded: Set[str],
        unindexed_only: bool = False,
    ) -> List[BankQuestion]:
        query = self.db.query(BankQuestion).filter(BankQuestion.topic_id.in_(list(topic_ids)))
        if excluded:
            query = query.filter(~BankQuestion.id.in_(excluded))
        if unindexed_only:
            query = (
                query.outerjoin(QuestionEmbedding, QuestionEmbedding.question_id == BankQuestion.id)
                .filter(QuestionEmbedding.question_id.is_(None))
            )

        candidates = query.order_by(BankQuestion.created_at, BankQuestion.id).all()
        keywords = syllabus_keywords(contexts)
        # Stable sort keeps bank order among equal scores
        ranked = sorted(candidates, key=lambda row: -keyword_overlap(row, keywords))
        return ranked[:count]

    def get_syllabus_context(self, topic_id: str) -> SyllabusContext:
        """
        Grounding context for a topic.

        Raises:
            RetrievalError: If a stored topic does not exist or a synthetic id is malformed
        """
        if is_synthetic_topic(topic_id):
            try:
                return synthetic_syllabus_context(topic_id)
            except ValueError as e:
                raise RetrievalError("InvalidTopic", str(e))

        topic = self.db.get(SyllabusTopic, topic_id)
        if topic is None:
            raise RetrievalError("InvalidTopic", f"Topic not found: {topic_id}")
        return stored_syllabus_context(topic)

    def index_question(self, question: Question) -> None:
        """
        Embed a bank question and store its vector.

        The question row must already exist in the bank.
        """
        try:
            embedding = self.embedding_service.embed_question(question)

            row = self.db.get(QuestionEmbedding, question.question_id)
            if row is None:
                row = QuestionEmbedding(question_id=question.question_id)
                self.db.add(row)
            row.topic_id = question.topic_id
            row.embedding_vector = embedding
            self.db.flush()
        except Exception as e:
            logger.error(f"Failed to index question {question.question_id}: {e}")
            raise IndexingError(f"Failed to index question {question.question_id}: {e}")

    def index_all_questions(self, batch_size: int = 100) -> int:
        """
        Embed every bank question that has no vector yet.

        Returns:
            Number of questions indexed
        """
        rows = (
            self.db.query(BankQuestion)
            .outerjoin(QuestionEmbedding, QuestionEmbedding.question_id == BankQuestion.id)
            .filter(QuestionEmbedding.question_id.is_(None))
            .all()
        )
        indexed = 0
        for start in range(0, len(rows), batch_size):
            batch = [question_from_row(r) for r in rows[start:start + batch_size]]
            vectors = self.embedding_service.embed_texts([question_embedding_text(q) for q in batch])
            for question, vector in zip(batch, vectors):
                self.db.add(QuestionEmbedding(
                    question_id=question.question_id,
                    topic_id=question.topic_id,
                    embedding_vector=vector,
                ))
            self.db.flush()
            indexed += len(batch)
            logger.info(f"Indexed {indexed}/{len(rows)} bank questions")
        return indexed
