"""Prefix-triggered chat commands (``!undo``, ``!audit``, ...)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, TypeAlias

from novyx_memory.logging import get_logger

logger = get_logger(__name__)

# (argument text after the trigger, session id) -> reply
CommandHandler: TypeAlias = Callable[[str, str], Awaitable[str]]


_LEADING_INT_RE = re.compile(r"^\s*(\d+)")


def parse_count(raw: str | None, default: int = 1) -> int:
    """Leading positive integer of a command argument, else *default*.

    ``"2 please"`` parses as 2, matching how chat users type arguments.
    """
    if not raw:
        return default
    m = _LEADING_INT_RE.match(raw)
    if not m or int(m.group(1)) <= 0:
        return default
    return int(m.group(1))


class CommandKind(str, Enum):
    UNDO = "undo"
    AUDIT = "audit"
    STATUS = "status"
    HELP = "help"

    @property
    def default_trigger(self) -> str:
        return f"!{self.value}"


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    trigger: str
    handler: CommandHandler
    summary: str = ""
    usage: str = ""


class CommandDispatcher:
    """
    Dispatch table mapping command kinds to handlers.

    Matching is a case-sensitive prefix test on the raw message. When two
    triggers both match (``!undo`` and ``!undoall``), the longer one wins;
    otherwise registration order decides.
    """

    def __init__(self) -> None:
        self._commands: list[Command] = []

    def register(
        self,
        kind: CommandKind,
        handler: CommandHandler,
        *,
        trigger: str | None = None,
        summary: str = "",
        usage: str = "",
    ) -> Command:
        trigger = trigger or kind.default_trigger
        if not trigger or trigger != trigger.strip():
            raise ValueError(f"Invalid command trigger: {trigger!r}")
        for existing in self._commands:
            if existing.trigger == trigger:
                raise ValueError(f"Trigger {trigger!r} is already registered for {existing.kind.value}")
            if existing.kind is kind:
                raise ValueError(f"Command kind {kind.value} is already registered as {existing.trigger!r}")
        command = Command(kind=kind, trigger=trigger, handler=handler, summary=summary, usage=usage or trigger)
        self._commands.append(command)
        return command

    def match(self, text: str) -> tuple[Command, str] | None:
        """Return the matching command and its stripped argument text, or None."""
        best: Command | None = None
        for command in self._commands:
            if text.startswith(command.trigger):
                if best is None or len(command.trigger) > len(best.trigger):
                    best = command
        if best is None:
            return None
        return best, text[len(best.trigger):].strip()

    async def dispatch(self, text: str, session_id: str) -> str | None:
        """Run the matching command and return its reply; None if *text* is not a command."""
        matched = self.match(text)
        if matched is None:
            return None
        command, argument = matched
        logger.debug("command_dispatched", command=command.kind.value, session_id=session_id, argument=argument)
        try:
            return await command.handler(argument, session_id)
        except Exception:
            logger.exception("command_failed", command=command.kind.value, session_id=session_id)
            return f"{command.trigger} failed. Please try again."

    def help_text(self) -> str:
        lines = ["Memory commands:"]
        for command in self._commands:
            lines.append(f"{command.usage} — {command.summary}" if command.summary else command.usage)
        return "\n".join(lines)
