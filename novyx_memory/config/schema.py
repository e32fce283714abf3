"""Settings model for the memory layer."""

from __future__ import annotations

import os
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_API_URL = "https://novyx-ram-api.fly.dev"

_ENV_REF_RE = re.compile(r"^\$\{?([A-Za-z_][A-Za-z0-9_]*)\}?$")


def _resolve_env(value: str, default: str | None = None) -> str:
    """Resolve a ``$VAR`` or ``${VAR}`` reference.

    An unset variable yields *default*, or *value* unchanged when no default is given.
    """
    if not value:
        return value
    m = _ENV_REF_RE.match(value.strip())
    if not m:
        return value
    return os.environ.get(m.group(1), value if default is None else default)


class MemoryConfig(BaseModel):
    """Immutable settings handed to the client and middleware.

    Accepts camelCase (``autoSave``) or snake_case (``auto_save``) keys so a
    JSON config file written for the original client loads unchanged.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    api_key: str = ""
    api_url: str = DEFAULT_API_URL
    auto_save: bool = True
    auto_recall: bool = True
    recall_limit: int = Field(default=5, ge=1)
    timeout: float = Field(default=10.0, gt=0)
    undo_max_per_call: int = Field(default=10, ge=1)
    excerpt_chars: int = Field(default=80, ge=1)
    audit_default_limit: int = Field(default=10, ge=1)

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") or DEFAULT_API_URL

    @property
    def resolved_api_key(self) -> str:
        # An unresolved reference must not be sent as a bearer token
        return _resolve_env(self.api_key, default="")

    @property
    def is_configured(self) -> bool:
        return bool(self.resolved_api_key)
