"""Plain-text rendering of recalled context and command views."""

from __future__ import annotations

from typing import Any

RECALL_HEADER = "[Recalled memory]"
HASH_PREFIX_CHARS = 12


def format_recalled_context(records: list[dict[str, Any]], message: str) -> str:
    """Prefix *message* with a block of recalled observations, if there are any."""
    observations = [str(r.get("observation") or "").strip() for r in records]
    observations = [obs for obs in observations if obs]
    if not observations:
        return message
    lines = [RECALL_HEADER, *(f"- {obs}" for obs in observations)]
    return "\n".join(lines) + "\n\n" + message


def format_audit(payload: dict[str, Any] | None) -> str:
    if payload is None:
        return "Audit trail unavailable."
    entries = [e for e in payload.get("entries") or [] if isinstance(e, dict)]
    if not entries:
        return "No audit entries yet."
    total = payload.get("total_count", len(entries))
    lines = [f"Audit trail ({len(entries)} of {total} entries):"]
    for entry in entries:
        entry_hash = str(entry.get("entry_hash") or "")[:HASH_PREFIX_CHARS]
        lines.append(
            f"{entry.get('timestamp', '?')}  {entry.get('method', '?')} {entry.get('endpoint', '?')}"
            f" -> {entry.get('status', '?')}  #{entry_hash or '-'}"
        )
    return "\n".join(lines)


def _counter(section: Any) -> str:
    if not isinstance(section, dict):
        return "?"
    current = section.get("current", 0)
    limit = section.get("limit")
    return f"{current}/{limit if limit is not None else 'unlimited'}"


def format_status(usage: dict[str, Any] | None, undo_depth: int | None = None) -> str:
    """Tier and usage counters, plus the session undo depth when given."""
    if usage is None:
        lines = ["Status unavailable."]
    else:
        lines = [
            f"Tier: {usage.get('tier', 'unknown')}",
            f"Memories: {_counter(usage.get('memories'))}",
            f"API calls: {_counter(usage.get('api_calls'))}",
        ]
    if undo_depth is not None:
        lines.append(f"Undo history: {undo_depth}")
    return "\n".join(lines)
