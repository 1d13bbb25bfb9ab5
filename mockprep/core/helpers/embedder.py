"""
Embedding service for generating vector embeddings using OpenAI.
"""
import logging
import time
from typing import List, Optional

import numpy as np
from openai import OpenAI

from mockprep.core.config import settings
from mockprep.schemas.exam import Question, SyllabusContext

logger = logging.getLogger(__name__)


class EmbeddingService:
    """
    Service for generating text embeddings using OpenAI.
    Handles batching and error handling for embedding operations.
    """

    MAX_BATCH_SIZE = 2048  # OpenAI limit for text-embedding-3-*

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
    ):
        """
        Initialize embedding service.

        Args:
            api_key: OpenAI API key (defaults to settings.OPENAI_API_KEY)
            model: Embedding model (defaults to settings.EMBEDDING_MODEL)
            dimensions: Output dimension (defaults to settings.EMBEDDING_DIMENSION)
        """
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.EMBEDDING_MODEL
        self.dimensions = dimensions or settings.EMBEDDING_DIMENSION
        self._client: Optional[OpenAI] = None

        if not self.api_key:
            raise ValueError("OPENAI_API_KEY not configured")

    @property
    def client(self) -> OpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
            logger.info("OpenAI client initialized")
        return self._client

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: Texts to embed

        Returns:
            List of embedding vectors (each is a list of floats)

        Raises:
            ValueError: If texts is empty or every text is blank
        """
        if not texts:
            raise ValueError("Cannot embed empty text list")

        valid_texts = [t.strip() for t in texts if t.strip()]
        if not valid_texts:
            raise ValueError("No valid texts to embed (all empty)")

        logger.info(f"Generating embeddings for {len(valid_texts)} texts using {self.model}")

        try:
            if len(valid_texts) <= self.MAX_BATCH_SIZE:
                return self._embed_batch(valid_texts)
            return self._embed_large_batch(valid_texts)
        except Exception as e:
            logger.error(f"Embedding generation failed: {e}")
            raise

    def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed a single batch of texts."""
        response = self.client.embeddings.create(
            input=texts,
            model=self.model,
            dimensions=self.dimensions
        )

        embeddings = [
            [float(val) for val in data.embedding]
            for data in response.data
        ]

        logger.debug(f"Generated {len(embeddings)} embeddings")
        return embeddings

    def _embed_large_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed texts in multiple batches."""
        all_embeddings = []

        for i in range(0, len(texts), self.MAX_BATCH_SIZE):
            batch = texts[i:i + self.MAX_BATCH_SIZE]
            all_embeddings.extend(self._embed_batch(batch))

            # Small delay between batches to stay under rate limits
            if i + self.MAX_BATCH_SIZE < len(texts):
                time.sleep(0.1)

        return all_embeddings

    def embed_query(self, query: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            query: Text to embed

        Returns:
            Embedding vector as list of floats
        """
        if not query.strip():
            raise ValueError("Cannot embed empty query")

        response = self.client.embeddings.create(
            input=[query.strip()],
            model=self.model,
            dimensions=self.dimensions
        )
        return [float(val) for val in response.data[0].embedding]

    def embed_question(self, question: Question) -> List[float]:
        return self.embed_query(question_embedding_text(question))

    def embed_syllabus(self, context: SyllabusContext) -> List[float]:
        return self.embed_query(syllabus_embedding_text(context))


def question_embedding_text(question: Question) -> str:
    """Text representation of a question used for its embedding."""
    parts = [question.question_text]
    if question.options:
        parts.append("Options: " + "; ".join(question.options))
    if question.syllabus_reference:
        parts.append(question.syllabus_reference)
    return "\n".join(parts)


def syllabus_embedding_text(context: SyllabusContext) -> str:
    parts = [context.content]
    if context.related_concepts:
        parts.append("Concepts: " + ", ".join(context.related_concepts))
    return "\n".join(parts)


def average_embeddings(embeddings: List[List[float]]) -> List[float]:
    """
    Average embeddings and scale the result to unit length.

    Raises:
        ValueError: If embeddings is empty
    """
    if not embeddings:
        raise ValueError("Cannot average empty embeddings list")

    mean = np.mean(np.asarray(embeddings, dtype=float), axis=0)
    norm = np.linalg.norm(mean)
    if norm > 0:
        mean = mean / norm
    return mean.tolist()
