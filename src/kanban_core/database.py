"""Database connection and session management."""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from .config import get_settings

settings = get_settings()

# SQLite connections are shared across FastAPI's threadpool
connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
    engine_options = {}
else:
    # Conservative pool settings for a small managed Postgres instance
    engine_options = {
        "pool_size": 3,              # Base pool of 3 connections
        "max_overflow": 7,           # Allow up to 10 total connections
        "pool_recycle": 3600,        # Recycle connections every hour
        "pool_timeout": 30,          # Timeout after 30 seconds
    }

# Create database engine
engine = create_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,              # Verify connections before using
    connect_args=connect_args,
    **engine_options,
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.

    Closing the session rolls back any transaction left open by a request
    that failed or was cancelled midway.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
