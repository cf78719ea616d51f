from datetime import timedelta

import pytest
from jose import jwt

from notes_backend.api.config import SECRET_KEY, ALGORITHM
from notes_backend.api.errors import AuthError, ConflictError, NotFoundError, ValidationError
from notes_backend.api.identity import IdentityStore, WELCOME_TAGS
from notes_backend.api.repository import NoteRepository
from notes_backend.api.security import (
    SessionValidator,
    create_access_token,
    decode_token,
    get_password_hash,
)
from notes_database.init_db import seed_demo_data, DEMO_USERNAME, DEMO_PASSWORD, DEMO_NOTE_TAGS
from notes_database.models import Note, User


@pytest.fixture
def identity(db_session):
    return IdentityStore(db_session)


def test_register_creates_user_and_welcome_note(identity, db_session):
    user, note = identity.register("erin", "erin@example.com", "hunter22")
    assert user.id is not None
    assert user.is_active is True
    assert user.last_login is None
    assert user.hashed_password != "hunter22"
    assert note.user_id == user.id
    assert note.tags == WELCOME_TAGS
    assert "erin" in note.content
    assert NoteRepository(db_session).list(user.id) == [note]


@pytest.mark.parametrize("username,email,password", [
    ("", "a@x.com", "secret1"),
    ("erin", None, "secret1"),
    ("erin", "a@x.com", ""),
    ("er", "a@x.com", "secret1"),
    ("erin", "a@x.com", "12345"),
    ("erin", "ax.com", "secret1"),
])
def test_register_validation(identity, username, email, password):
    with pytest.raises(ValidationError):
        identity.register(username, email, password)


def test_register_conflicts(identity):
    identity.register("erin", "erin@example.com", "hunter22")
    with pytest.raises(ConflictError):
        identity.register("erin", "other@example.com", "hunter22")
    with pytest.raises(ConflictError):
        identity.register("erin2", "erin@example.com", "hunter22")
    # Usernames are case-sensitive
    identity.register("Erin", "erin3@example.com", "hunter22")


def test_sequential_registrations_are_unique(identity):
    ids = set()
    for i in range(10):
        user, _ = identity.register(f"user{i}", f"user{i}@example.com", "secret1")
        ids.add(user.id)
    assert len(ids) == 10


def test_authenticate(identity):
    identity.register("erin", "erin@example.com", "hunter22")
    user = identity.authenticate("erin", "hunter22")
    assert user.last_login is not None
    with pytest.raises(AuthError):
        identity.authenticate("erin", "wrong-password")
    with pytest.raises(AuthError):
        identity.authenticate("ERIN", "hunter22")
    with pytest.raises(AuthError):
        identity.authenticate("nobody", "hunter22")


def test_deactivated_user_is_locked_out(identity, db_session):
    user, _ = identity.register("erin", "erin@example.com", "hunter22")
    token = create_access_token(user.id)
    assert SessionValidator(db_session).resolve(token).id == user.id

    identity.deactivate(user.id)
    assert db_session.get(User, user.id) is not None
    with pytest.raises(AuthError):
        identity.authenticate("erin", "hunter22")
    with pytest.raises(AuthError):
        SessionValidator(db_session).resolve(token)
    with pytest.raises(NotFoundError):
        identity.get_profile(user.id)


def test_token_round_trip_and_rejections(identity, db_session):
    user, _ = identity.register("erin", "erin@example.com", "hunter22")
    token = create_access_token(user.id)
    assert decode_token(token) == user.id
    assert decode_token(f"Bearer {token}") == user.id

    for bad in (None, "", "   ", str(user.id), "garbage"):
        with pytest.raises(AuthError):
            decode_token(bad)

    expired = create_access_token(user.id, expires_delta=timedelta(seconds=-5))
    with pytest.raises(AuthError):
        decode_token(expired)

    forged = jwt.encode({"sub": str(user.id)}, "some-other-key", algorithm=ALGORITHM)
    with pytest.raises(AuthError):
        decode_token(forged)

    non_numeric = jwt.encode({"sub": "abc"}, SECRET_KEY, algorithm=ALGORITHM)
    with pytest.raises(AuthError):
        decode_token(non_numeric)

    with pytest.raises(AuthError):
        SessionValidator(db_session).resolve(create_access_token(user.id + 1000))


def test_seed_demo_data(db_session):
    assert seed_demo_data(db_session, get_password_hash) is True
    assert seed_demo_data(db_session, get_password_hash) is False
    assert db_session.query(User).count() == 1
    assert db_session.query(Note).count() == 1
    assert db_session.query(Note).one().tags == DEMO_NOTE_TAGS
    user = IdentityStore(db_session).authenticate(DEMO_USERNAME, DEMO_PASSWORD)
    assert user.username == DEMO_USERNAME


def test_register_unique_constraint_race_is_conflict(identity, db_session, monkeypatch):
    identity.register("erin", "erin@example.com", "hunter22")
    # Another request inserted the same user after this one checked
    monkeypatch.setattr(identity, "get_user_by_username", lambda username: None)
    monkeypatch.setattr(identity, "get_user_by_email", lambda email: None)

    with pytest.raises(ConflictError):
        identity.register("erin", "erin@example.com", "hunter22")

    # Session is usable and nothing half-written remains
    assert db_session.query(User).count() == 1
    assert db_session.query(Note).count() == 1
    identity.register("gina", "gina@example.com", "hunter22")
    assert db_session.query(User).count() == 2
