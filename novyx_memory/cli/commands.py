"""Command-line interface for the memory layer."""

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Coroutine, Optional, TypeVar

import typer

from novyx_memory import __version__
from novyx_memory.agent.formatting import format_audit, format_status
from novyx_memory.agent.middleware import MemoryMiddleware
from novyx_memory.client.remote import MemoryClient
from novyx_memory.config.loader import ConfigError, load_config
from novyx_memory.config.schema import MemoryConfig
from novyx_memory.logging import setup_logging

T = TypeVar("T")

app = typer.Typer(
    name="novyx-memory",
    help="Durable memory for conversational agents.",
    no_args_is_help=True,
)

DISABLED_NOTICE = "Memory disabled: NOVYX_API_KEY is not set."


class _State:
    config_path: Path | None = None


_state = _State()


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def _load() -> MemoryConfig:
    try:
        return load_config(_state.config_path)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)


def _make_client(config: MemoryConfig) -> MemoryClient:
    return MemoryClient(config)


def _client_or_exit() -> MemoryClient:
    config = _load()
    if not config.is_configured:
        typer.echo(DISABLED_NOTICE)
        raise typer.Exit(0)
    return _make_client(config)


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"novyx-memory v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON config file"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for diagnostics"),
    json_logs: bool = typer.Option(False, "--json-logs/--console-logs", help="Log format"),
    version: bool = typer.Option(False, "--version", "-v", callback=_version_callback, is_eager=True),
) -> None:
    """novyx-memory - durable memory for conversational agents."""
    _state.config_path = config
    setup_logging(json_output=json_logs, level=log_level)


@app.command()
def remember(
    text: str = typer.Argument(..., help="Observation to store"),
    tag: list[str] = typer.Option([], "--tag", "-t", help="Tag to attach (repeatable)"),
) -> None:
    """Save a memory."""
    client = _client_or_exit()
    memory_id = _run(client.save(text, tag))
    if memory_id is None:
        typer.echo("Save failed (see logs).")
        raise typer.Exit(1)
    typer.echo(f"Saved: {memory_id}")


@app.command()
def forget(memory_id: str = typer.Argument(..., help="Memory id to delete")) -> None:
    """Delete a memory by id."""
    client = _client_or_exit()
    if not _run(client.delete(memory_id)):
        typer.echo(f"Could not delete {memory_id}.")
        raise typer.Exit(1)
    typer.echo(f"Deleted: {memory_id}")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Max results"),
) -> None:
    """Search memories semantically."""
    client = _client_or_exit()
    records = _run(client.search(query, limit))
    if not records:
        typer.echo(f"No memories for: {query}")
        return
    for i, record in enumerate(records, 1):
        typer.echo(f"{i}. {record.get('observation', '')}")
        if memory_id := record.get("uuid") or record.get("id"):
            typer.echo(f"   id: {memory_id}")


@app.command()
def stats() -> None:
    """Show memory statistics."""
    client = _client_or_exit()
    data = _run(client.stats())
    if data is None:
        typer.echo("Stats unavailable.")
        raise typer.Exit(1)
    _echo_json(data)


@app.command()
def edges(
    memory_id: Optional[str] = typer.Option(None, "--memory-id", help="Only edges touching this memory"),
    relation: Optional[str] = typer.Option(None, "--relation", help="Relation type, e.g. auto_related"),
    limit: Optional[int] = typer.Option(None, "--limit", min=1),
    offset: Optional[int] = typer.Option(None, "--offset", min=0),
) -> None:
    """List graph edges between memories."""
    client = _client_or_exit()
    data = _run(client.list_edges(memory_id=memory_id, relation=relation, limit=limit, offset=offset))
    if data is None:
        typer.echo("Edges unavailable.")
        raise typer.Exit(1)
    _echo_json(data)


@app.command()
def usage() -> None:
    """Show tier and usage limits."""
    client = _client_or_exit()
    typer.echo(format_status(_run(client.usage())))


@app.command()
def audit(limit: int = typer.Option(10, "--limit", "-n", min=1, max=100)) -> None:
    """Show recent audit trail entries."""
    client = _client_or_exit()
    typer.echo(format_audit(_run(client.audit_log(limit))))


@app.command()
def send(
    message: str = typer.Argument(..., help="User message or !command"),
    session: str = typer.Option("cli", "--session", "-s", help="Session id used for tags"),
) -> None:
    """Run one message through the middleware and print what the agent would receive."""
    config = _load()
    if not config.is_configured:
        typer.echo(DISABLED_NOTICE)
        raise typer.Exit(0)

    async def _turn() -> str:
        middleware = MemoryMiddleware(config, _make_client(config))
        try:
            return await middleware.on_incoming(message, session)
        finally:
            await middleware.aclose()

    typer.echo(_run(_turn()))


async def _verify(middleware: MemoryMiddleware, session_id: str, settle_s: float) -> bool:
    nonce = int(time.time() * 1000)
    ok = True

    typer.echo("[1] Saving a memory...")
    observation = f"novyx-memory check {nonce}: Project Atlas uses Postgres and Redis"
    memory_id = await middleware.remember(observation, ["test", f"session:{session_id}"])
    if not memory_id:
        typer.echo("    FAILED to save.")
        return False
    typer.echo(f"    Saved: {memory_id}")

    typer.echo("[2] Recalling...")
    await asyncio.sleep(settle_s)
    recalled = await middleware.recall(f"Project Atlas {nonce}", limit=1)
    if recalled and str(nonce) in str(recalled[0].get("observation", "")):
        typer.echo("    OK: memory persisted and recalled.")
    else:
        typer.echo("    WARNING: could not recall the saved memory yet.")

    typer.echo("[3] !undo")
    undo_reply = await middleware.on_incoming("!undo", session_id)
    typer.echo("    " + undo_reply.replace("\n", "\n    "))
    if not undo_reply.startswith("Undid 1 "):
        typer.echo("    FAILED: undo did not delete the memory.")
        ok = False

    typer.echo("[4] !audit 5")
    audit_reply = await middleware.on_incoming("!audit 5", session_id)
    typer.echo("    " + audit_reply.replace("\n", "\n    "))

    typer.echo("[5] !status")
    status_reply = await middleware.on_incoming("!status", session_id)
    typer.echo("    " + status_reply.replace("\n", "\n    "))
    if "Tier:" not in status_reply:
        typer.echo("    WARNING: status did not return usage info.")
    return ok


@app.command()
def verify(
    session: str = typer.Option("", "--session", "-s", help="Session id (generated when empty)"),
    settle: float = typer.Option(1.5, "--settle", help="Seconds to wait for indexing before recall"),
) -> None:
    """Check the save / recall / undo / audit / status lifecycle against the service."""
    config = _load()
    if not config.is_configured:
        typer.echo(DISABLED_NOTICE)
        raise typer.Exit(0)

    session_id = session or f"verify-{int(time.time())}"

    async def _main() -> bool:
        middleware = MemoryMiddleware(config, _make_client(config))
        try:
            return await _verify(middleware, session_id, settle)
        finally:
            await middleware.aclose()

    if not _run(_main()):
        raise typer.Exit(1)
    typer.echo("All checks complete.")


if __name__ == "__main__":
    app()
