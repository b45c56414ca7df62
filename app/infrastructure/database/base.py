"""SQLAlchemy base configuration for the school database."""

import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings

logger = logging.getLogger(__name__)

_ENGINE = None
_SESSION_LOCAL = None

Base = declarative_base()


def build_engine(database_url: str, echo: bool = False):
    """Create an engine; SQLite URLs get a single shared connection."""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )
    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo,
        connect_args={"application_name": "school_portal_backend"},
    )


def get_engine():
    """Lazily create and return the SQLAlchemy engine."""
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = build_engine(settings.database_url, echo=settings.DEBUG)
    return _ENGINE


def get_session_factory():
    """Lazily create the session factory."""
    global _SESSION_LOCAL
    if _SESSION_LOCAL is None:
        _SESSION_LOCAL = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SESSION_LOCAL


def get_db():
    """Dependency to get a database session."""
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(engine=None):
    """Create all database tables."""
    # Import models to register them on the metadata
    from app.infrastructure.database.models import school_models  # noqa: F401

    engine = engine or get_engine()
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Error creating database tables: {e}")
        raise
