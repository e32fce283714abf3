"""Session-scoped bookkeeping."""

from novyx_memory.session.ledger import WriteLedger, WriteLogEntry

__all__ = ["WriteLedger", "WriteLogEntry"]
