"""Models module - Import all models here so metadata.create_all sees them."""
from mockprep.db.base import Base
from mockprep.models.syllabus import SyllabusTopic
from mockprep.models.question import BankQuestion, QuestionEmbedding
from mockprep.models.mock_test import GeneratedTest, GeneratedTestQuestion
from mockprep.models.session import ExamSession, UserResponse
from mockprep.models.evaluation import Evaluation, TopicScoreRecord, PerformanceReportRecord

__all__ = [
    "Base",
    "SyllabusTopic",
    "BankQuestion",
    "QuestionEmbedding",
    "GeneratedTest",
    "GeneratedTestQuestion",
    "ExamSession",
    "UserResponse",
    "Evaluation",
    "TopicScoreRecord",
    "PerformanceReportRecord",
]
