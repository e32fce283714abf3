"""Conversation-facing memory components."""

from novyx_memory.agent.commands import Command, CommandDispatcher, CommandKind
from novyx_memory.agent.middleware import MemoryMiddleware
from novyx_memory.agent.undo import UndoEngine, UndoReport

__all__ = [
    "Command",
    "CommandDispatcher",
    "CommandKind",
    "MemoryMiddleware",
    "UndoEngine",
    "UndoReport",
]
