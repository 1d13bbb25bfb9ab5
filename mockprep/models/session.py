"""
Models for tracking test-taking sessions and answers.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mockprep.db.base import Base


class ExamSession(Base):
    """A user's attempt at a generated test."""

    __tablename__ = "test_sessions"

    id = Column(String(64), primary_key=True, index=True)
    test_id = Column(String(64), ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="InProgress")  # InProgress, Submitted
    started_at = Column(DateTime(timezone=True), server_default=func.now())
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    test = relationship("GeneratedTest", back_populates="sessions")
    responses = relationship("UserResponse", back_populates="session", cascade="all, delete-orphan")


class UserResponse(Base):
    """Latest answer given to one question in a session."""

    __tablename__ = "user_responses"
    __table_args__ = (UniqueConstraint("session_id", "question_id", name="uq_session_question"),)

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), ForeignKey("test_sessions.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(String(64), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    answer = Column(Text, nullable=False)  # JSON-encoded string or list
    answered_at = Column(DateTime(timezone=True), server_default=func.now())

    session = relationship("ExamSession", back_populates="responses")
