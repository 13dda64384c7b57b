# tests/conftest.py
import os
import tempfile
from datetime import date

os.environ["SKIP_DB_INIT"] = "1"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from agenda.db import Base, init_db, make_engine
from agenda.deps import get_sessions, get_store
from agenda.main import app
from agenda.schemas import AccessCode, Availability, CodeStatus, Identity, Role
from agenda.services.access_control import AccessControl
from agenda.sessions import SessionManager
from agenda.store import MemoryRecordStore, SqlRecordStore


@pytest.fixture(scope="function")
def test_engine():
    # temp DB
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    engine = make_engine(f"sqlite:///{tmp.name}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()
        os.unlink(tmp.name)


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False)


@pytest.fixture(scope="function")
def test_db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every service test runs against both record store implementations."""
    if request.param == "memory":
        return MemoryRecordStore()
    return SqlRecordStore(request.getfixturevalue("test_db_session"))


@pytest.fixture
def sessions():
    return SessionManager(secret_key="test-secret-key-for-session-signing")


@pytest.fixture
def access(store, sessions):
    return AccessControl(store, sessions)


@pytest.fixture(scope="function")
def client(test_engine, test_db_session, sessions):
    init_db(bind=test_engine)

    def override_get_store():
        yield SqlRecordStore(test_db_session)

    app.dependency_overrides[get_store] = override_get_store
    app.dependency_overrides[get_sessions] = lambda: sessions

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# —— Factories ——
@pytest.fixture
def make_code(store):
    def _make_code(code="EMB000001", role=Role.PROVIDER, location=None, active=True):
        status = CodeStatus.ACTIVE if active else CodeStatus.DEACTIVATED
        return store.insert(AccessCode, code=code, role=role, location=location, status=status)
    return _make_code


@pytest.fixture
def make_identity(make_code):
    def _make_identity(code="EMB000001", role=Role.PROVIDER):
        record = make_code(code=code, role=role)
        return Identity(id=record.id, code=record.code, role=record.role)
    return _make_identity


@pytest.fixture
def admin(make_identity):
    return make_identity("ADM123456", Role.ADMIN)


@pytest.fixture
def provider(make_identity):
    return make_identity("EMB000001", Role.PROVIDER)


@pytest.fixture
def requester(make_identity):
    return make_identity("SAC000001", Role.REQUESTER)


@pytest.fixture
def make_availability(store):
    def _make_availability(day=date(2024, 6, 10), start_time="08:00", end_time="10:00",
                           capacity=1, remaining_slots=None, created_by="EMB000001"):
        return store.insert(
            Availability,
            date=day,
            start_time=start_time,
            end_time=end_time,
            capacity=capacity,
            remaining_slots=capacity if remaining_slots is None else remaining_slots,
            created_by=created_by,
        )
    return _make_availability
