import asyncio
from typing import Optional

from fastapi import Depends, Header, Request

from notes_database.db import SessionLocal
from notes_database.models import User
from .identity import IdentityStore
from .repository import NoteRepository
from .security import SessionValidator, decode_token
from .stats import StatsAggregator, stats_timezone


def db_lock(app):
    """
    The per-app lock that serializes database work. The in-memory store is a
    single shared connection, so one request at a time may hold a session.
    """
    lock = getattr(app.state, "db_lock", None)
    if lock is None:
        lock = app.state.db_lock = asyncio.Lock()
    return lock


# DATABASE Dependency
async def get_db(request: Request):
    async with db_lock(request.app):
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()


def get_identity_store(db=Depends(get_db)) -> IdentityStore:
    return IdentityStore(db)


def get_note_repository(db=Depends(get_db)) -> NoteRepository:
    return NoteRepository(db)


def get_stats_aggregator(repository: NoteRepository = Depends(get_note_repository)) -> StatsAggregator:
    return StatsAggregator(repository, stats_timezone())


def get_token_user_id(authorization: Optional[str] = Header(None)) -> int:
    """Decode the Authorization header without looking the user up."""
    return decode_token(authorization)


def get_current_user(authorization: Optional[str] = Header(None), db=Depends(get_db)) -> User:
    """Resolve the Authorization header to an active user; required by every notes route."""
    return SessionValidator(db).resolve(authorization)
