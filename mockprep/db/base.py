"""
Database session, base configuration and connection pool metrics.
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, QueuePool

from mockprep.core.config import settings
from mockprep.schemas.exam import PoolMetrics

logger = logging.getLogger(__name__)

# Serverless deployments open a connection per request, everything else shares a pool
if settings.ENV == "production":
    engine = create_engine(
        settings.DATABASE_URL,
        poolclass=NullPool,
        pool_pre_ping=True,
        connect_args={
            "options": "-c statement_timeout=30000"  # 30s timeout
        }
    )
else:
    engine = create_engine(
        settings.DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_pre_ping=True,
        pool_recycle=3600
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_pool_metrics(bind=None) -> PoolMetrics:
    """
    Snapshot the connection pool of an engine.

    Pools without a fixed size (NullPool, StaticPool) report zero utilization.

    Args:
        bind: Engine to inspect, defaults to the application engine

    Returns:
        PoolMetrics with active/idle counts and utilization percent
    """
    bind = bind if bind is not None else engine
    pool = bind.pool

    if not isinstance(pool, QueuePool):
        return PoolMetrics(active=0, idle=0, total=0, capacity=0, utilization_percent=0.0)

    active = pool.checkedout()
    idle = pool.checkedin()
    capacity = pool.size() + max(pool._max_overflow, 0)
    utilization = (active / capacity) * 100 if capacity else 0.0

    metrics = PoolMetrics(
        active=active,
        idle=idle,
        total=active + idle,
        capacity=capacity,
        utilization_percent=round(utilization, 2),
    )

    if utilization >= settings.POOL_WARNING_PERCENT:
        logger.warning(
            f"Connection pool utilization high: {metrics.utilization_percent}% "
            f"({active}/{capacity} active)"
        )

    return metrics
