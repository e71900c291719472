"""Pytest fixtures for testing"""

from datetime import datetime, timedelta
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from pesalog.api.main import create_app
from pesalog.domain.message_filter import MessageFilter
from pesalog.domain.parser import DialectMatcher
from pesalog.infrastructure.database.models import Base
from pesalog.infrastructure.database.repositories import CategoryRepository
from pesalog.infrastructure.database.session import get_db
from pesalog.services.debts import DebtReconciler
from pesalog.services.ingestion import IngestionPipeline
from pesalog.services.linker import ReferenceLinker


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    CategoryRepository(db).ensure_system_categories()
    db.commit()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def matcher() -> DialectMatcher:
    return DialectMatcher()


@pytest.fixture
def reconciler() -> DebtReconciler:
    return DebtReconciler()


@pytest.fixture
def pipeline(matcher: DialectMatcher, reconciler: DebtReconciler) -> IngestionPipeline:
    """Pipeline wired the way the app factory wires it"""
    return IngestionPipeline(
        matcher=matcher,
        message_filter=MessageFilter(),
        linker=ReferenceLinker(matcher),
        reconciler=reconciler,
    )


@pytest.fixture
def fuliza_draw() -> Callable[..., str]:
    """Build a facility draw message due `due_in_days` from today"""

    def build(
        ref_code: str = "UAH3H46G3P",
        principal: str = "709.45",
        fee: str = "7.17",
        total: str = "716.62",
        due_in_days: int = 30,
    ) -> str:
        due = (datetime.now() + timedelta(days=due_in_days)).strftime("%d/%m/%y")
        return (
            f"{ref_code} Confirmed. Fuliza M-Pesa amount is Ksh {principal}. Access Fee charged Ksh {fee}. "
            f"Total Fuliza M-Pesa outstanding amount is Ksh {total} due on {due}."
        )

    return build
