import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Tests build their own store; keep the app's startup from seeding its default one.
os.environ.setdefault("SEED_DEMO_DATA", "0")

from notes_backend.api.main import app  # noqa: E402
from notes_backend.api import deps  # noqa: E402
from notes_backend.api.deps import get_db  # noqa: E402
from notes_database.models import Base  # noqa: E402


@pytest.fixture
def engine():
    """Fixture for a fresh in-memory SQLite engine per test."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Provide a SQLAlchemy session for isolated test usage."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """Fixture for FastAPI TestClient with test DB dependency override."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def live_client(engine, monkeypatch):
    """TestClient that keeps the app's own get_db, bound to the test engine."""
    monkeypatch.setattr(deps, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine))

    with TestClient(app) as c:
        yield c


@pytest.fixture
def user_data():
    """Returns default user data for registration."""
    return {
        "username": "alice",
        "email": "alice@x.com",
        "password": "secret1"
    }


@pytest.fixture
def second_user_data():
    """Returns a second user's data."""
    return {
        "username": "bob",
        "email": "bob@example.com",
        "password": "bobpassword456"
    }


def register_and_auth(client, username, email, password):
    """Helper for registering then logging in to get a session token."""
    r1 = client.post("/api/register", json={
        "username": username, "email": email, "password": password
    })
    assert r1.status_code == 201

    r2 = client.post("/api/login", json={
        "username": username, "password": password
    })
    assert r2.status_code == 200
    return r2.json()["token"]


@pytest.fixture
def auth_header(client, user_data):
    """Returns {'Authorization': '<token>'} for default user."""
    token = register_and_auth(client, user_data["username"], user_data["email"], user_data["password"])
    return {"Authorization": token}


@pytest.fixture
def second_auth_header(client, second_user_data):
    """Returns auth header for second user."""
    token = register_and_auth(client, second_user_data["username"], second_user_data["email"], second_user_data["password"])
    return {"Authorization": token}
