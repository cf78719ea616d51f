"""
Pydantic models for request validation and response serialization.

Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel


def _iso_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat().replace("+00:00", "Z")


# Stored timestamps are naive UTC
UtcDatetime = Annotated[datetime, PlainSerializer(_iso_utc, return_type=str, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Requests. Fields are optional so that missing values surface as domain
# validation errors with a readable message.

class RegisterRequest(CamelModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class NoteCreate(CamelModel):
    title: Optional[str] = Field(None, description="Note title")
    content: Optional[str] = Field(None, description="Note content")
    tags: Any = Field(None, description="List of tags; anything else is treated as no tags")


class NoteUpdate(CamelModel):
    """Sparse patch: only fields present in the request body are applied."""
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Any = None
    is_favorite: Any = None


# Responses

class UserOut(CamelModel):
    id: int
    username: str
    email: str
    created_at: UtcDatetime
    is_active: bool
    last_login: Optional[UtcDatetime] = None


class NoteOut(CamelModel):
    id: int
    user_id: int
    title: str
    content: str
    tags: List[str]
    is_favorite: bool
    created_at: UtcDatetime
    updated_at: UtcDatetime


class RegisterResponse(CamelModel):
    success: bool = True
    message: str = "Registration successful."
    user_id: int
    username: str
    note_id: int


class LoginResponse(CamelModel):
    success: bool = True
    token: str
    username: str
    email: str
    user_id: int
    created_at: UtcDatetime


class DeleteResponse(CamelModel):
    success: bool = True
    message: str = "Note deleted."
    note_id: int


class ServerStatus(CamelModel):
    message: str
    users_count: int
    notes_count: int
    timestamp: UtcDatetime


class StatsSnapshot(CamelModel):
    total: int = 0
    favorites: int = 0
    tags: List[str] = Field(default_factory=list)
    last_created: Optional[str] = None
    last_updated: Optional[str] = None
    by_month: Dict[str, int] = Field(default_factory=dict)
