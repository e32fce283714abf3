"""Classification of memory-service failures.

The client never raises these; it classifies a transport exception, logs one
line, and hands its caller an empty result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from novyx_memory.logging import get_logger

logger = get_logger("novyx_memory.provider")

PRICING_URL = "novyxlabs.com/pricing"

# Payload fields the service uses to explain a 403
_UPGRADE_FIELDS = ("code", "error", "detail", "message")


class ProviderErrorKind(str, Enum):
    UNCONFIGURED = "unconfigured"
    RATE_LIMITED = "rate_limited"
    FORBIDDEN_NEEDS_UPGRADE = "forbidden_needs_upgrade"
    FORBIDDEN_BAD_CREDENTIALS = "forbidden_bad_credentials"
    API_ERROR = "api_error"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class ProviderError:
    """A classified failure of one client action."""

    kind: ProviderErrorKind
    action: str
    status: int | None = None
    detail: str = ""

    def log(self) -> None:
        """Emit the single diagnostic line for this failure."""
        fields: dict[str, Any] = {"action": self.action, "kind": self.kind.value}
        if self.status is not None:
            fields["status"] = self.status
        if self.detail:
            fields["detail"] = self.detail

        if self.kind is ProviderErrorKind.RATE_LIMITED:
            logger.warning("memory_rate_limited", upgrade_url=PRICING_URL, **fields)
        elif self.kind is ProviderErrorKind.FORBIDDEN_NEEDS_UPGRADE:
            logger.warning("memory_upgrade_required", upgrade_url=PRICING_URL, **fields)
        elif self.kind is ProviderErrorKind.FORBIDDEN_BAD_CREDENTIALS:
            logger.warning("memory_access_forbidden", hint="check your API key", **fields)
        elif self.kind is ProviderErrorKind.UNCONFIGURED:
            logger.warning("memory_disabled", hint="NOVYX_API_KEY is not set", **fields)
        else:
            logger.error("memory_request_failed", **fields)


def _response_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _mentions_upgrade(payload: Any) -> bool:
    if isinstance(payload, dict):
        for key in _UPGRADE_FIELDS:
            value = payload.get(key)
            if isinstance(value, str) and "upgrade" in value.lower():
                return True
        return False
    return isinstance(payload, str) and "upgrade" in payload.lower()


def _payload_detail(payload: Any, limit: int = 300) -> str:
    if isinstance(payload, dict):
        for key in ("error", "detail", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value[:limit]
        return str(payload)[:limit]
    return str(payload or "")[:limit]


def classify_status(status: int, payload: Any, action: str) -> ProviderError:
    """Classify an HTTP error response by status code and body."""
    if status == 429:
        return ProviderError(ProviderErrorKind.RATE_LIMITED, action, status)
    if status == 403:
        if _mentions_upgrade(payload):
            detail = _payload_detail(payload) or "Upgrade required"
            return ProviderError(ProviderErrorKind.FORBIDDEN_NEEDS_UPGRADE, action, status, detail)
        return ProviderError(ProviderErrorKind.FORBIDDEN_BAD_CREDENTIALS, action, status)
    return ProviderError(ProviderErrorKind.API_ERROR, action, status, _payload_detail(payload))


def classify_error(exc: Exception, action: str) -> ProviderError:
    """Map an exception raised while talking to the service onto the taxonomy."""
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        return classify_status(response.status_code, _response_payload(response), action)
    if isinstance(exc, httpx.RequestError):
        return ProviderError(
            ProviderErrorKind.NETWORK_ERROR,
            action,
            detail=f"{type(exc).__name__}: {exc}",
        )
    return ProviderError(ProviderErrorKind.API_ERROR, action, detail=f"{type(exc).__name__}: {exc}")
