"""Structured logging for the memory layer, built on structlog.

All modules log through :func:`get_logger`; :func:`setup_logging` is called
once by the host (or the CLI) to pick JSON or console rendering.
"""

import json
import logging
import re
import sys
from typing import IO

import structlog

ROOT_LOGGER = "novyx_memory"

# Credential shapes that may end up in an error body or a repr
_SECRET_PATTERNS = [
    re.compile(r"Bearer\s+[A-Za-z0-9_\-.]{10,}"),
    re.compile(r"nvx_[A-Za-z0-9_-]{10,}"),
    re.compile(r"sk-[A-Za-z0-9_-]{10,}"),
]

# Event keys whose values are always masked, whatever they look like
_SECRET_KEYS = {"api_key", "authorization", "token"}


def mask_secret(value: str) -> str:
    """Mask a secret value, keeping first 4 and last 4 chars visible.

    >>> mask_secret("nvx_abc123456789xyz")
    'nvx_****9xyz'
    """
    if len(value) <= 8:
        return "****"
    return value[:4] + "****" + value[-4:]


def _redact_value(value: str) -> str:
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(lambda m: mask_secret(m.group(0)), value)
    return value


def _redact_event(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    """Structlog processor masking credentials in string values."""
    for key, val in event_dict.items():
        if not isinstance(val, str):
            continue
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = mask_secret(val)
        else:
            event_dict[key] = _redact_value(val)
    return event_dict


def setup_logging(
    json_output: bool = True,
    level: str = "INFO",
    stream: IO[str] | None = None,
) -> None:
    """Route the ``novyx_memory`` logger hierarchy through structlog.

    Args:
        json_output: Emit JSON lines when True, colored console output otherwise.
        level: Minimum level name, e.g. ``"DEBUG"``.
        stream: Destination stream; stderr by default so stdout stays clean for CLI output.
    """
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        _redact_event,
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer(
            serializer=lambda obj, **kw: json.dumps(obj, ensure_ascii=False, **kw)
        )
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger(ROOT_LOGGER)
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False


def get_logger(name: str = ROOT_LOGGER) -> structlog.stdlib.BoundLogger:
    """Return a structlog bound logger for the given name."""
    return structlog.get_logger(name)
