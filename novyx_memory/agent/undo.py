"""Undo recent writes by deleting them from the memory service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from novyx_memory.agent.commands import parse_count
from novyx_memory.logging import get_logger
from novyx_memory.session.ledger import WriteLedger

logger = get_logger(__name__)

DEFAULT_MAX_PER_CALL = 10


class DeletesMemories(Protocol):
    async def delete(self, memory_id: str) -> bool: ...


def parse_undo_count(raw: str | None) -> int:
    """Leading positive integer of *raw*; 1 when absent, unparseable or zero."""
    return parse_count(raw, default=1)


@dataclass(frozen=True)
class UndoReport:
    requested: int
    undone: int = 0
    failed: int = 0
    remaining: int = 0
    empty: bool = False

    def render(self) -> str:
        if self.empty:
            return "Nothing to undo."
        noun = "memory" if self.undone == 1 else "memories"
        text = f"Undid {self.undone} {noun}."
        if self.failed:
            text += f" {self.failed} failed."
        return f"{text}\n{self.remaining} more in undo history."


class UndoEngine:
    """Resolves "undo last N" against the write ledger.

    At most ``max_per_call`` deletes are issued per invocation. Entries are
    taken off the ledger before deleting and are not restored when a delete
    fails.
    """

    def __init__(
        self,
        ledger: WriteLedger,
        client: DeletesMemories,
        max_per_call: int = DEFAULT_MAX_PER_CALL,
    ):
        self.ledger = ledger
        self.client = client
        self.max_per_call = max_per_call

    async def undo(self, raw_argument: str | None = None) -> UndoReport:
        requested = parse_undo_count(raw_argument)
        if self.ledger.size() == 0:
            return UndoReport(requested=requested, empty=True)

        effective = min(requested, self.ledger.size(), self.max_per_call)
        undone = 0
        failed = 0
        # take_last yields newest first, the order deletes must be issued in
        for entry in self.ledger.take_last(effective):
            if await self.client.delete(entry.id):
                undone += 1
            else:
                failed += 1
                logger.warning("undo_delete_failed", memory_id=entry.id, excerpt=entry.excerpt)

        report = UndoReport(
            requested=requested,
            undone=undone,
            failed=failed,
            remaining=self.ledger.size(),
        )
        logger.info(
            "undo_completed",
            requested=requested,
            effective=effective,
            undone=undone,
            failed=failed,
            remaining=report.remaining,
        )
        return report
