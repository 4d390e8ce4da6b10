"""Database session management."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from chainproof_api.settings import get_settings

settings = get_settings()


def build_engine(database_url: str):
    """Create an engine with pool settings suited to the backend."""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


engine = build_engine(settings.database_url_computed)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
