import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["AUTO_CREATE_DB"] = "0"
os.environ["ENABLE_SCHEDULER"] = "0"
os.environ["RATE_LIMIT"] = "10000/minute"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from worklog.auth.security import create_access_token
from worklog.db import Base, get_db
from worklog.main import app
from worklog.models.models import ROLE_MANAGER, ROLE_TEAM_LEADER
from worklog.services.users import create_user
from worklog.storage.local_provider import LocalStorageProvider, get_storage


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorageProvider(str(tmp_path / "storage"))


@pytest.fixture
def client(session_factory, storage):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def manager(db):
    return create_user(db, "m1", "password123", ROLE_MANAGER, full_name="Maya Manager")


@pytest.fixture
def leader(db):
    return create_user(db, "t1", "password123", ROLE_TEAM_LEADER, full_name="Tom Leader")


@pytest.fixture
def other_leader(db):
    return create_user(db, "t2", "password123", ROLE_TEAM_LEADER, full_name="Tal Leader")


@pytest.fixture
def headers():
    def _headers(user):
        token = create_access_token(str(user.id), role=user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def log_payload():
    def _payload(**overrides):
        payload = {
            "date": "2025-01-06",
            "project": "Harbor Bridge",
            "employees": ["Dana Cohen", "Yossi Levi"],
            "start_time": "08:00",
            "end_time": "16:30",
            "work_description": "Poured concrete for the north pier",
        }
        payload.update(overrides)
        return payload

    return _payload
