"""In-memory log of the writes made during this process lifetime."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class WriteLogEntry:
    """One confirmed save: server id plus a display excerpt."""

    id: str
    excerpt: str
    written_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class WriteLedger:
    """
    Ordered log of successful saves, oldest first.

    Only :meth:`take_last` removes entries, and only from the tail. Nothing is
    persisted: the ledger is a per-session undo buffer, the durable record
    lives in the service's audit trail.
    """

    def __init__(self, excerpt_chars: int = 80):
        self.excerpt_chars = excerpt_chars
        self._entries: list[WriteLogEntry] = []

    def record(self, memory_id: str, content: str) -> WriteLogEntry:
        """Append an entry for a save that returned *memory_id*."""
        entry = WriteLogEntry(id=memory_id, excerpt=content[:self.excerpt_chars])
        self._entries.append(entry)
        return entry

    def take_last(self, n: int) -> list[WriteLogEntry]:
        """Remove and return up to *n* entries from the tail, newest first."""
        if n <= 0 or not self._entries:
            return []
        taken = self._entries[-n:]
        del self._entries[-n:]
        taken.reverse()
        return taken

    def entries(self) -> list[WriteLogEntry]:
        return list(self._entries)

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
