"""
Client-side mirror of a user's notes.

Keeps a local copy of the note list and the latest stats snapshot, plus the
search text and favorites-only filter used to build the visible list. The
server stays authoritative: local state is only patched after the server has
accepted a mutation.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from notes_backend.api.errors import ERRORS_BY_STATUS, AuthError, NotFoundError, NotesError

logger = logging.getLogger(__name__)


def _raise_for_error(response: httpx.Response):
    if response.is_success:
        return
    try:
        message = response.json().get("error") or response.reason_phrase
    except ValueError:
        message = response.text or response.reason_phrase
    error_cls = ERRORS_BY_STATUS.get(response.status_code, NotesError)
    raise error_cls(message)


# PUBLIC_INTERFACE
def matches(note: Dict[str, Any], search: str = "", favorites_only: bool = False) -> bool:
    """Search text hits title, content or any tag; favorites_only keeps starred notes."""
    if favorites_only and not note.get("isFavorite"):
        return False
    if not search:
        return True
    needle = search.lower()
    return (
        needle in note.get("title", "").lower()
        or needle in note.get("content", "").lower()
        or any(needle in tag.lower() for tag in note.get("tags") or [])
    )


# PUBLIC_INTERFACE
class NotesMirror:
    """
    Local, non-authoritative view of the logged-in user's notes.

    `http` is any httpx.Client pointed at the API; FastAPI's TestClient works too.
    """

    def __init__(self, http: httpx.Client, token: Optional[str] = None):
        self.http = http
        self.token = token
        self.username: Optional[str] = None
        self.notes: List[Dict[str, Any]] = []
        self.stats: Optional[Dict[str, Any]] = None
        self.search = ""
        self.favorites_only = False

    @classmethod
    def connect(cls, base_url: str, **kwargs):
        return cls(httpx.Client(base_url=base_url, **kwargs))

    def _headers(self):
        return {"Authorization": self.token} if self.token else {}

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        response = self.http.request(method, url, headers=self._headers(), **kwargs)
        if response.status_code == 401:
            self.logout()
        _raise_for_error(response)
        return response

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        response = self.http.post("/api/register", json={"username": username, "email": email, "password": password})
        _raise_for_error(response)
        return response.json()

    def login(self, username: str, password: str) -> Dict[str, Any]:
        response = self.http.post("/api/login", json={"username": username, "password": password})
        _raise_for_error(response)
        data = response.json()
        self.token = data["token"]
        self.username = data["username"]
        self.load_notes()
        self.refresh_stats()
        return data

    def logout(self):
        self.token = None
        self.username = None
        self.notes = []
        self.stats = None

    def load_notes(self) -> List[Dict[str, Any]]:
        """Replace the local list with the server's, most recently updated first."""
        if not self.token:
            raise AuthError("Not logged in.")
        self.notes = self._request("GET", "/api/notes").json()
        return self.notes

    def refresh_stats(self) -> bool:
        """
        Best effort: a failure is logged and leaves the previous snapshot in
        place. Unlike other calls, a 401 here does not clear the session.
        """
        try:
            response = self.http.get("/api/stats", headers=self._headers())
            _raise_for_error(response)
            self.stats = response.json()
        except (NotesError, httpx.HTTPError) as exc:
            logger.warning("Stats refresh failed: %s", exc)
            return False
        return True

    def filtered_view(self) -> List[Dict[str, Any]]:
        return [note for note in self.notes if matches(note, self.search, self.favorites_only)]

    def _replace(self, saved: Dict[str, Any]):
        self.notes = [saved if note["id"] == saved["id"] else note for note in self.notes]

    def create_note(self, title: str, content: str, tags: Optional[List[str]] = None) -> Dict[str, Any]:
        saved = self._request("POST", "/api/notes", json={"title": title, "content": content, "tags": tags or []}).json()
        self.notes = [saved] + self.notes
        self.refresh_stats()
        return saved

    def update_note(self, note_id: int, **changes) -> Dict[str, Any]:
        """Send only the given fields; keys use the wire names (title, content, tags, isFavorite)."""
        saved = self._request("PUT", f"/api/notes/{note_id}", json=changes).json()
        self._replace(saved)
        self.refresh_stats()
        return saved

    def toggle_favorite(self, note_id: int) -> Dict[str, Any]:
        current = next((note for note in self.notes if note["id"] == note_id), None)
        if current is None:
            raise NotFoundError("Note not found.")
        return self.update_note(note_id, isFavorite=not current["isFavorite"])

    def delete_note(self, note_id: int) -> int:
        deleted = self._request("DELETE", f"/api/notes/{note_id}").json()["noteId"]
        self.notes = [note for note in self.notes if note["id"] != deleted]
        self.refresh_stats()
        return deleted
