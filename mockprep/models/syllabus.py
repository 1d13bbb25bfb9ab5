"""
Syllabus topic model.
"""
from sqlalchemy import Column, String, Text, JSON, DateTime
from sqlalchemy.sql import func

from mockprep.db.base import Base


class SyllabusTopic(Base):
    """A syllabus topic questions are organised under."""

    __tablename__ = "syllabus_topics"

    id = Column(String(255), primary_key=True, index=True)
    subject = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    section = Column(String(255), nullable=True)
    official_content = Column(Text, nullable=True)
    learning_objectives = Column(JSON, default=list)  # List[str]
    created_at = Column(DateTime(timezone=True), server_default=func.now())
