"""Per-turn memory middleware: recall on the way in, save on the way out."""

from __future__ import annotations

import asyncio
from typing import Any

from novyx_memory.agent.background import BackgroundTasks
from novyx_memory.agent.commands import CommandDispatcher, CommandKind, parse_count
from novyx_memory.agent.formatting import format_audit, format_recalled_context, format_status
from novyx_memory.agent.undo import UndoEngine
from novyx_memory.client.remote import MemoryClient
from novyx_memory.config.schema import MemoryConfig
from novyx_memory.logging import get_logger
from novyx_memory.session.ledger import WriteLedger

logger = get_logger(__name__)

MAX_AUDIT_LIMIT = 100


def session_tags(role: str, session_id: str) -> list[str]:
    return [f"role:{role}", f"session:{session_id}"]


class MemoryMiddleware:
    """
    Gives a conversational agent durable memory for one session.

    It:
    1. Routes ``!``-commands (undo, audit, status, help) before anything else
    2. Recalls related memories and injects them ahead of the user message
    3. Saves user and assistant messages in the background
    4. Tracks confirmed saves in a write ledger so they can be undone

    The ledger is owned by this instance; run one middleware per session when
    sessions are served in parallel.
    """

    def __init__(self, config: MemoryConfig, client: MemoryClient | None = None):
        self.config = config
        self.client = client or MemoryClient(config)
        self.ledger = WriteLedger(excerpt_chars=config.excerpt_chars)
        self.undo_engine = UndoEngine(self.ledger, self.client, max_per_call=config.undo_max_per_call)
        self.background = BackgroundTasks()
        self.commands = CommandDispatcher()
        self._register_default_commands()

    def _register_default_commands(self) -> None:
        self.commands.register(
            CommandKind.UNDO, self._handle_undo,
            usage="!undo [N]", summary=f"Delete your last N saved memories (max {self.config.undo_max_per_call})",
        )
        self.commands.register(
            CommandKind.AUDIT, self._handle_audit,
            usage="!audit [N]", summary="Show the last N operations from the audit trail",
        )
        self.commands.register(
            CommandKind.STATUS, self._handle_status,
            usage="!status", summary="Show plan tier, usage and undo history",
        )
        self.commands.register(
            CommandKind.HELP, self._handle_help,
            usage="!help", summary="Show available commands",
        )

    async def remember(self, content: str, tags: list[str] | None = None) -> str | None:
        """Save *content* and record it in the write ledger once the id is confirmed."""
        memory_id = await self.client.save(content, tags)
        if memory_id:
            self.ledger.record(memory_id, content)
        return memory_id

    async def recall(self, query: str, limit: int | None = None) -> list[dict[str, Any]]:
        return await self.client.search(query, limit or self.config.recall_limit)

    async def on_incoming(self, message: str, session_id: str) -> str:
        """Handle one inbound user message; returns the text to hand to the agent."""
        reply = await self.commands.dispatch(message, session_id)
        if reply is not None:
            return reply

        self.background.spawn(
            "save_user_message",
            lambda: self.remember(message, session_tags("user", session_id)),
            session_id=session_id,
        )
        records = await self.recall(message)
        if records:
            logger.debug("memory_context_injected", session_id=session_id, records=len(records))
        return format_recalled_context(records, message)

    async def on_outgoing(self, response: str, session_id: str) -> None:
        """Save the agent's reply in the background; never waits on the service."""
        self.background.spawn(
            "save_assistant_message",
            lambda: self.remember(response, session_tags("assistant", session_id)),
            session_id=session_id,
        )

    async def drain(self) -> None:
        """Wait for background saves spawned so far."""
        await self.background.drain()

    async def aclose(self) -> None:
        """Give background saves one request timeout to finish, then cancel the rest."""
        if not self.background.tasks:
            return
        _, still_running = await asyncio.wait(set(self.background.tasks), timeout=self.config.timeout)
        if still_running:
            cancelled = await self.background.cancel_all()
            logger.warning("Background memory saves cancelled on close", cancelled=cancelled)

    async def _handle_undo(self, argument: str, session_id: str) -> str:
        report = await self.undo_engine.undo(argument)
        return report.render()

    async def _handle_audit(self, argument: str, session_id: str) -> str:
        limit = parse_count(argument, default=self.config.audit_default_limit)
        payload = await self.client.audit_log(min(limit, MAX_AUDIT_LIMIT))
        return format_audit(payload)

    async def _handle_status(self, argument: str, session_id: str) -> str:
        usage = await self.client.usage()
        return format_status(usage, self.ledger.size())

    async def _handle_help(self, argument: str, session_id: str) -> str:
        return self.commands.help_text()
