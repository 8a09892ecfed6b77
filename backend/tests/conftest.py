# backend/tests/conftest.py
"""
Pytest configuration for the booking engine test suite.

Every test gets its own file-backed SQLite database built with the same
engine recipe the application uses, so conditional updates, savepoints and
the BEGIN IMMEDIATE locking behave as they do in production. Tests that
drive several sessions (threads, the scheduler, HTTP requests) must commit
their setup first: an open transaction on the test session holds the
database write lock.
"""

import os
import sys

# CRITICAL: Set testing mode BEFORE any app imports!
os.environ["is_testing"] = "true"
os.environ["scheduler_enabled"] = "false"

# Add the backend directory to Python path so imports work
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, backend_dir)

from app.core.config import settings

settings.is_testing = True
settings.scheduler_enabled = False

from typing import Callable, Generator

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app import models  # noqa: F401
from app.api.dependencies import get_db
from app.core.enums import UserRole
from app.database import Base, build_engine
from app.main import app
from app.models.user import User
from tests.factories import booking_builders


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    test_engine = build_engine(f"sqlite:///{tmp_path / 'booking_engine.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> Callable[[], Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory: Callable[[], Session]) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(session_factory: Callable[[], Session]) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def member(db: Session):
    """Active member on a 3-sessions-per-week subscription. Committed."""
    user, tier, subscription = booking_builders.create_entitled_member(db)
    service_type = booking_builders.create_service_type(db)
    db.commit()
    return {"user": user, "tier": tier, "subscription": subscription, "service_type": service_type}


@pytest.fixture
def admin_user(db: Session) -> User:
    admin = booking_builders.create_user(db, role=UserRole.ADMIN.value)
    db.commit()
    return admin
