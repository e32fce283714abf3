"""HTTP client for the remote memory service."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from novyx_memory.client.errors import ProviderError, ProviderErrorKind, classify_error
from novyx_memory.config.schema import MemoryConfig
from novyx_memory.logging import get_logger

logger = get_logger(__name__)

USER_AGENT = "novyx-memory-python"


class MemoryClient:
    """
    Typed wrapper over the memory service REST API.

    Every method is fail-open: without a credential it returns its empty
    value before touching the network, and any transport failure is
    classified, logged once, and turned into the same empty value. Nothing
    raises to the caller.
    """

    def __init__(
        self,
        config: MemoryConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._transport = transport
        if not config.is_configured:
            ProviderError(ProviderErrorKind.UNCONFIGURED, "init").log()

    @property
    def configured(self) -> bool:
        return self.config.is_configured

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.resolved_api_key}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    async def _request(
        self,
        action: str,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> tuple[bool, Any]:
        """Perform one call. Returns ``(ok, payload)``; payload is None for an empty body."""
        try:
            async with httpx.AsyncClient(
                base_url=self.config.api_url,
                headers=self._headers(),
                timeout=self.config.timeout,
                transport=self._transport,
            ) as client:
                r = await client.request(method, path, params=params, json=json_body)
                r.raise_for_status()
        except Exception as e:
            # httpx errors, plus failures building the request (a key with non-ASCII characters)
            classify_error(e, action).log()
            return False, None

        if not r.content:
            return True, None
        try:
            return True, r.json()
        except ValueError:
            logger.warning("memory_unexpected_body", action=action, status=r.status_code)
            return True, None

    def _skip(self, action: str, reason: str) -> None:
        logger.debug("memory_call_skipped", action=action, reason=reason)

    async def save(self, content: str, tags: list[str] | None = None) -> str | None:
        """Store an observation; return the server-assigned id or None."""
        if not self.configured:
            self._skip("save", ProviderErrorKind.UNCONFIGURED.value)
            return None
        if not self.config.auto_save:
            self._skip("save", "auto_save_disabled")
            return None

        ok, data = await self._request(
            "save", "POST", "/v1/memories",
            json_body={"observation": content, "tags": list(tags or [])},
        )
        if not ok or not isinstance(data, dict):
            return None
        memory_id = data.get("uuid") or data.get("id")
        if not memory_id:
            logger.warning("memory_save_missing_id", keys=sorted(data))
            return None
        return str(memory_id)

    async def delete(self, memory_id: str) -> bool:
        """Delete one memory. An empty success body counts as deleted."""
        if not self.configured:
            self._skip("delete", ProviderErrorKind.UNCONFIGURED.value)
            return False

        ok, data = await self._request(
            "delete", "DELETE", f"/v1/memories/{quote(str(memory_id), safe='')}",
        )
        if not ok:
            return False
        if data is None:
            data = {"deleted": True}
        if isinstance(data, dict) and "deleted" in data:
            return bool(data["deleted"])
        return bool(data)

    async def search(self, query: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Semantic search; returns the matching records, most relevant first."""
        if not self.configured:
            self._skip("search", ProviderErrorKind.UNCONFIGURED.value)
            return []
        if not self.config.auto_recall:
            self._skip("search", "auto_recall_disabled")
            return []

        ok, data = await self._request(
            "search", "GET", "/v1/memories/search",
            params={"q": query, "limit": limit or self.config.recall_limit},
        )
        if not ok or not isinstance(data, dict):
            return []
        memories = data.get("memories") or []
        return [m for m in memories if isinstance(m, dict)]

    async def _get_document(
        self,
        action: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        if not self.configured:
            self._skip(action, ProviderErrorKind.UNCONFIGURED.value)
            return None
        ok, data = await self._request(action, "GET", path, params=params)
        if not ok or not isinstance(data, dict):
            return None
        return data

    async def stats(self) -> dict[str, Any] | None:
        return await self._get_document("stats", "/v1/memories/stats")

    async def list_edges(
        self,
        memory_id: str | None = None,
        relation: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> dict[str, Any] | None:
        """List graph edges between memories; only the given filters are sent."""
        params: dict[str, Any] = {}
        if memory_id:
            params["memory_id"] = memory_id
        if relation:
            params["relation"] = relation
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset
        return await self._get_document("edges", "/v1/memories/edges", params or None)

    async def usage(self) -> dict[str, Any] | None:
        """Current tier plus memory and API-call counters."""
        return await self._get_document("usage", "/v1/usage")

    async def audit_log(self, limit: int | None = None) -> dict[str, Any] | None:
        """Recent entries of the service's tamper-evident audit trail."""
        params = {"limit": limit} if limit is not None else None
        return await self._get_document("audit", "/v1/audit", params)
