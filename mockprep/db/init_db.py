"""
Database initialization and seeding.
"""
import logging

from sqlalchemy.orm import Session

from mockprep.core.helpers.repository import SqlAlchemyExamRepository
from mockprep.models.syllabus import SyllabusTopic
from mockprep.schemas.exam import Question, QuestionType

logger = logging.getLogger(__name__)

SEED_TOPICS = [
    {
        "id": "phy-kinematics",
        "subject": "Physics",
        "name": "Kinematics",
        "section": "Mechanics",
        "official_content": "Motion in a straight line, uniform and non-uniform motion, equations of motion.",
        "learning_objectives": [
            "Apply the equations of uniformly accelerated motion",
            "Interpret position-time and velocity-time graphs",
        ],
    },
    {
        "id": "phy-laws-of-motion",
        "subject": "Physics",
        "name": "Laws of Motion",
        "section": "Mechanics",
        "official_content": "Newton's laws, inertia, momentum, friction.",
        "learning_objectives": [
            "State and apply Newton's three laws",
            "Solve problems involving static and kinetic friction",
        ],
    },
]

SEED_QUESTIONS = [
    Question(
        question_id="seed-kin-1",
        topic_id="phy-kinematics",
        question_text="A car starts from rest and accelerates at 2 m/s^2 for 5 s. What is its final speed in m/s?",
        question_type=QuestionType.NUMERICAL,
        correct_answer="10",
        solution_steps=["v = u + at", "v = 0 + 2 x 5 = 10 m/s"],
        syllabus_reference="Equations of motion",
    ),
    Question(
        question_id="seed-kin-2",
        topic_id="phy-kinematics",
        question_text="The slope of a velocity-time graph gives which quantity?",
        question_type=QuestionType.MULTIPLE_CHOICE,
        options=["Displacement", "Acceleration", "Speed", "Jerk"],
        correct_answer="Acceleration",
        solution_steps=["Slope = change in velocity / time = acceleration"],
        syllabus_reference="Velocity-time graphs",
    ),
    Question(
        question_id="seed-lom-1",
        topic_id="phy-laws-of-motion",
        question_text="Which law of motion defines inertia?",
        question_type=QuestionType.MULTIPLE_CHOICE,
        options=["First law", "Second law", "Third law", "Law of gravitation"],
        correct_answer="First law",
        solution_steps=["A body stays at rest or in uniform motion unless acted on by a net force"],
        syllabus_reference="Newton's first law",
    ),
    Question(
        question_id="seed-lom-2",
        topic_id="phy-laws-of-motion",
        question_text="A 2 kg mass is pushed with a net force of 6 N. What is its acceleration in m/s^2?",
        question_type=QuestionType.NUMERICAL,
        correct_answer="3",
        solution_steps=["F = ma", "a = 6 / 2 = 3 m/s^2"],
        syllabus_reference="Newton's second law",
    ),
]


def init_db(db: Session) -> None:
    """
    Seed syllabus topics and a starter question bank.

    Existing rows are left untouched, so the function can run on every deploy.

    Args:
        db: Database session
    """
    for data in SEED_TOPICS:
        if db.get(SyllabusTopic, data["id"]) is None:
            db.add(SyllabusTopic(**data))
            logger.info(f"Seeded syllabus topic {data['id']}")

    repository = SqlAlchemyExamRepository(db)
    for question in SEED_QUESTIONS:
        if repository.get_question(question.question_id) is None:
            repository.upsert_question(question)
            logger.info(f"Seeded question {question.question_id}")

    repository.commit()
