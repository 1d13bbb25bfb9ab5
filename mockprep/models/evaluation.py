"""
Evaluation, topic score and performance report models.
"""
from sqlalchemy import Column, Integer, String, JSON, DateTime, ForeignKey, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mockprep.db.base import Base


class Evaluation(Base):
    """Graded result of a submitted session. One per session."""

    __tablename__ = "evaluations"

    id = Column(String(64), primary_key=True, index=True)
    session_id = Column(
        String(64), ForeignKey("test_sessions.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    test_id = Column(String(64), ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    overall_score = Column(Float, nullable=False)
    correct_count = Column(Integer, nullable=False)
    total_count = Column(Integer, nullable=False)
    evaluated_at = Column(DateTime(timezone=True), server_default=func.now())

    topic_scores = relationship(
        "TopicScoreRecord",
        back_populates="evaluation",
        cascade="all, delete-orphan",
        order_by="TopicScoreRecord.position",
    )
    report = relationship("PerformanceReportRecord", back_populates="evaluation", uselist=False)


class TopicScoreRecord(Base):
    __tablename__ = "topic_scores"

    id = Column(Integer, primary_key=True, index=True)
    evaluation_id = Column(String(64), ForeignKey("evaluations.id", ondelete="CASCADE"), nullable=False)
    topic_id = Column(String(255), nullable=False)
    topic_name = Column(String(255), nullable=False)
    correct = Column(Integer, nullable=False)
    total = Column(Integer, nullable=False)
    percentage = Column(Float, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    evaluation = relationship("Evaluation", back_populates="topic_scores")


class PerformanceReportRecord(Base):
    """Persisted feedback for an evaluation."""

    __tablename__ = "performance_reports"

    id = Column(String(64), primary_key=True, index=True)
    evaluation_id = Column(
        String(64), ForeignKey("evaluations.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    test_id = Column(String(64), ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    overall_score = Column(Float, nullable=False)
    grade = Column(String(2), nullable=False)

    # Stored as JSON lists of dicts
    weak_topics = Column(JSON, default=list)
    suggestions = Column(JSON, default=list)
    ranked_topics = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    evaluation = relationship("Evaluation", back_populates="report")
