"""
Owner-scoped note storage.

Every method takes the caller's user id. A note that belongs to someone else
is reported exactly like a note that does not exist.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from notes_database.models import Note, utcnow
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "content", "tags", "is_favorite")


def clean_tags(tags) -> List[str]:
    """Anything that is not a list becomes an empty tag list."""
    if not isinstance(tags, list):
        return []
    return [tag for tag in tags if isinstance(tag, str)]


def _required_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field.capitalize()} must not be empty.")
    return value.strip()


def _next_timestamp(previous):
    now = utcnow()
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


# PUBLIC_INTERFACE
class NoteRepository:
    """Create, read, update, delete, list and search one user's notes."""

    def __init__(self, db):
        self.db = db

    def _owned(self, user_id: int):
        return self.db.query(Note).filter(Note.user_id == user_id)

    def list(self, user_id: int) -> List[Note]:
        """All of the user's notes, most recently updated first."""
        return self._owned(user_id).order_by(Note.updated_at.desc(), Note.id.desc()).all()

    def all_in_storage_order(self, user_id: int) -> List[Note]:
        return self._owned(user_id).order_by(Note.id).all()

    def get(self, user_id: int, note_id: int) -> Note:
        note = self._owned(user_id).filter(Note.id == note_id).first()
        if note is None:
            raise NotFoundError("Note not found.")
        return note

    def create(self, user_id: int, title: Optional[str], content: Optional[str], tags: Any = None) -> Note:
        if not title or not content:
            raise ValidationError("Title and content are required.")
        title = _required_text(title, "title")
        content = _required_text(content, "content")
        now = utcnow()
        note = Note(
            user_id=user_id,
            title=title,
            content=content,
            tags=clean_tags(tags),
            is_favorite=False,
            created_at=now,
            updated_at=now,
        )
        self.db.add(note)
        self.db.commit()
        self.db.refresh(note)
        logger.info("Created note %s for user %s", note.id, user_id)
        return note

    def update(self, user_id: int, note_id: int, changes: Dict[str, Any]) -> Note:
        """
        Apply a sparse patch: only keys present in `changes` are written.
        updated_at always moves forward, even when nothing else changes.
        """
        note = self.get(user_id, note_id)
        title = _required_text(changes["title"], "title") if "title" in changes else note.title
        content = _required_text(changes["content"], "content") if "content" in changes else note.content
        note.title = title
        note.content = content
        if "tags" in changes:
            note.tags = clean_tags(changes["tags"])
        if "is_favorite" in changes:
            note.is_favorite = bool(changes["is_favorite"])
        note.updated_at = _next_timestamp(note.updated_at)
        self.db.commit()
        self.db.refresh(note)
        logger.info("Updated note %s for user %s", note.id, user_id)
        return note

    def remove(self, user_id: int, note_id: int) -> int:
        note = self.get(user_id, note_id)
        self.db.delete(note)
        self.db.commit()
        logger.info("Deleted note %s for user %s", note_id, user_id)
        return note_id

    def search(self, user_id: int, query: str) -> List[Note]:
        """Case-insensitive substring match on title or content, in storage order."""
        needle = query.lower()
        return [
            note for note in self.all_in_storage_order(user_id)
            if needle in note.title.lower() or needle in note.content.lower()
        ]
