from collections import Counter
from datetime import timezone, tzinfo
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from notes_database.models import Note
from .config import STATS_TIMEZONE
from .schemas import StatsSnapshot


def stats_timezone() -> Optional[tzinfo]:
    return ZoneInfo(STATS_TIMEZONE) if STATS_TIMEZONE else None


def to_local(moment, tz: Optional[tzinfo] = None):
    """Stored timestamps are naive UTC; tz=None means the server's local zone."""
    return moment.replace(tzinfo=timezone.utc).astimezone(tz)


def month_label(moment, tz: Optional[tzinfo] = None) -> str:
    return to_local(moment, tz).strftime("%B %Y")


# PUBLIC_INTERFACE
def compute_stats(notes: Iterable[Note], tz: Optional[tzinfo] = None) -> StatsSnapshot:
    """
    Summarize a set of notes. Never fails: an empty set gives zero counts,
    no tags, no dates and an empty month histogram.
    """
    notes = list(notes)
    if not notes:
        return StatsSnapshot()

    tags = []
    seen = set()
    for note in notes:
        for tag in note.tags or []:
            if tag not in seen:
                seen.add(tag)
                tags.append(tag)

    by_month = Counter(month_label(note.created_at, tz) for note in notes)
    return StatsSnapshot(
        total=len(notes),
        favorites=sum(1 for note in notes if note.is_favorite),
        tags=tags,
        last_created=to_local(max(note.created_at for note in notes), tz).date().isoformat(),
        last_updated=to_local(max(note.updated_at for note in notes), tz).date().isoformat(),
        by_month=dict(by_month),
    )


# PUBLIC_INTERFACE
class StatsAggregator:
    """Computes a fresh snapshot from the repository on every call; nothing is cached."""

    def __init__(self, repository, tz: Optional[tzinfo] = None):
        self.repository = repository
        self.tz = tz

    def compute(self, user_id: int) -> StatsSnapshot:
        return compute_stats(self.repository.all_in_storage_order(user_id), self.tz)
