import json

import httpx
import pytest
from typer.testing import CliRunner

import novyx_memory.cli.commands as commands_module
from novyx_memory.cli.commands import app
from novyx_memory.client.remote import MemoryClient
from novyx_memory.config.schema import MemoryConfig

runner = CliRunner()


class _FakeService:
    """In-memory stand-in for the memory service behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.memories: dict[str, str] = {}
        self.requests: list[tuple[str, str]] = []
        self._next = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        if request.method == "POST" and path == "/v1/memories":
            self._next += 1
            memory_id = f"mem-{self._next}"
            self.memories[memory_id] = json.loads(request.content)["observation"]
            return httpx.Response(201, json={"uuid": memory_id})
        if request.method == "DELETE" and path.startswith("/v1/memories/"):
            memory_id = path.rsplit("/", 1)[-1]
            if self.memories.pop(memory_id, None) is None:
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(204)
        if path == "/v1/memories/search":
            query = request.url.params["q"]
            hits = [
                {"uuid": k, "observation": v}
                for k, v in self.memories.items()
                if any(word in v for word in query.split())
            ]
            return httpx.Response(200, json={"memories": hits[: int(request.url.params["limit"])]})
        if path == "/v1/usage":
            return httpx.Response(200, json={
                "tier": "free",
                "memories": {"current": len(self.memories), "limit": 1000},
                "api_calls": {"current": len(self.requests), "limit": 10000},
            })
        if path == "/v1/audit":
            return httpx.Response(200, json={
                "entries": [
                    {"timestamp": "2026-10-17T09:00:00Z", "method": m, "endpoint": p, "status": 200,
                     "entry_hash": "f" * 64}
                    for m, p in self.requests[-int(request.url.params["limit"]):]
                ],
                "total_count": len(self.requests),
            })
        if path == "/v1/memories/stats":
            return httpx.Response(200, json={"total": len(self.memories)})
        return httpx.Response(404, json={"error": "unknown endpoint"})


@pytest.fixture
def service(monkeypatch) -> _FakeService:
    fake = _FakeService()
    config = MemoryConfig(api_key="nvx_test_key_123456", api_url="https://mem.test")
    monkeypatch.setattr(commands_module, "load_config", lambda path=None: config)
    monkeypatch.setattr(
        commands_module,
        "_make_client",
        lambda cfg: MemoryClient(cfg, transport=httpx.MockTransport(fake)),
    )
    return fake


def test_remember_and_forget(service: _FakeService) -> None:
    result = runner.invoke(app, ["remember", "Project Atlas uses Postgres", "--tag", "test"])
    assert result.exit_code == 0
    assert "Saved: mem-1" in result.output

    result = runner.invoke(app, ["forget", "mem-1"])
    assert result.exit_code == 0
    assert "Deleted: mem-1" in result.output
    assert service.memories == {}


def test_forget_unknown_id_exits_nonzero(service: _FakeService) -> None:
    result = runner.invoke(app, ["forget", "missing"])
    assert result.exit_code == 1
    assert "Could not delete missing." in result.output


def test_search_lists_observations(service: _FakeService) -> None:
    service.memories["mem-9"] = "Uses Postgres"
    result = runner.invoke(app, ["search", "Postgres"])
    assert result.exit_code == 0
    assert "1. Uses Postgres" in result.output
    assert "id: mem-9" in result.output


def test_usage_and_stats(service: _FakeService) -> None:
    result = runner.invoke(app, ["usage"])
    assert result.exit_code == 0
    assert "Tier: free" in result.output
    assert "Undo history" not in result.output

    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert '"total": 0' in result.output


def test_send_injects_recalled_context(service: _FakeService) -> None:
    service.memories["mem-9"] = "We deploy to Fly.io"
    result = runner.invoke(app, ["send", "deploy target?", "--session", "s1"])
    assert result.exit_code == 0
    assert "[Recalled memory]" in result.output
    assert "- We deploy to Fly.io" in result.output
    assert ("POST", "/v1/memories") in service.requests


def test_verify_runs_full_lifecycle(service: _FakeService) -> None:
    result = runner.invoke(app, ["verify", "--settle", "0"])
    assert result.exit_code == 0, result.output
    assert "Undid 1 memory." in result.output
    assert "Audit trail" in result.output
    assert "Tier: free" in result.output
    assert "All checks complete." in result.output
    assert service.memories == {}


def test_commands_degrade_without_api_key(monkeypatch) -> None:
    monkeypatch.setattr(commands_module, "load_config", lambda path=None: MemoryConfig())

    for args in (["remember", "x"], ["search", "x"], ["audit"], ["send", "x"], ["verify"]):
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        assert "Memory disabled" in result.output


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "novyx-memory v" in result.output
