"""Database session management"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from pesalog.config import settings
from pesalog.infrastructure.database.models import Base
from pesalog.infrastructure.database.repositories import CategoryRepository


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections are shared across the API's worker threads"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Create tables and seed system categories"""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    with Session(bind=bind) as db:
        CategoryRepository(db).ensure_system_categories()
        db.commit()


def get_db() -> Generator[Session, None, None]:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
