"""
Question bank and question embedding models.
"""
from sqlalchemy import Column, String, Text, JSON, DateTime, ForeignKey
from pgvector.sqlalchemy import Vector
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mockprep.core.config import settings
from mockprep.db.base import Base


class BankQuestion(Base):
    """A question in the shared bank, either seeded or generated."""

    __tablename__ = "questions"

    id = Column(String(64), primary_key=True, index=True)
    topic_id = Column(String(255), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(32), nullable=False)  # MultipleChoice, ShortAnswer, Numerical
    options = Column(JSON, nullable=True)
    # JSON-encoded string or list, see SqlAlchemyExamRepository
    correct_answer = Column(Text, nullable=False)
    solution_steps = Column(JSON, default=list)
    syllabus_reference = Column(Text, default="")
    difficulty = Column(String(32), nullable=False, default="ExamRealistic")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    embedding = relationship(
        "QuestionEmbedding", back_populates="question", uselist=False, cascade="all, delete-orphan"
    )


class QuestionEmbedding(Base):
    __tablename__ = "question_embeddings"

    question_id = Column(
        String(64),
        ForeignKey("questions.id", ondelete="CASCADE"),
        primary_key=True
    )
    topic_id = Column(String(255), nullable=False, index=True)
    embedding_vector = Column(Vector(settings.EMBEDDING_DIMENSION), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    question = relationship("BankQuestion", back_populates="embedding")
