"""
Script to initialize the database with tables and seed data.

Pass --index to embed seeded questions for similarity retrieval
(requires OPENAI_API_KEY).
"""
import logging
import sys

from mockprep.db.base import Base, engine, SessionLocal
from mockprep.db.init_db import init_db
from mockprep.core.helpers.retriever import VectorQuestionRetriever
import mockprep.models  # noqa: F401

logging.basicConfig(level=logging.INFO, format='%(levelname)s:\t%(name)s\t%(message)s')
logger = logging.getLogger("init_db")


def init(index: bool = False) -> None:
    """Initialize database."""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")

    logger.info("Seeding initial data...")
    db = SessionLocal()
    try:
        init_db(db)
        logger.info("Initial data seeded")

        if index:
            indexed = VectorQuestionRetriever(db).index_all_questions()
            db.commit()
            logger.info(f"Indexed {indexed} questions")
    finally:
        db.close()

    logger.info("Database initialization complete!")


if __name__ == "__main__":
    init(index="--index" in sys.argv)
