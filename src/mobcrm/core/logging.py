"""Structured logging for mob-crm.

structlog's ProcessorFormatter renders every ``logging.getLogger(__name__)``
call site, either as coloured console text or as JSON lines.

Request-scoped fields live in structlog's contextvars, so they follow each
MCP tool call (an asyncio task) without being passed around:

- ``user_id``: the acting user, bound once per tool call or CLI command.
- ``operation`` plus ``primary_contact_id`` / ``secondary_contact_id``: bound
  for the duration of a merge or a duplicate scan.

A merge logs one ``summary`` mapping (passed via ``extra``); the formatter
adds its ``rows_moved`` total so log queries don't have to sum it.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog
from opentelemetry import trace

_NOISE_LOGGERS = (
    "uvicorn.access",
    "uvicorn.error",
    "mcp.server.lowlevel.server",
    "httpx",
    "httpcore",
)


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------


def bind_user(user_id: str | None) -> None:
    """Bind the acting user id to the current async context."""
    structlog.contextvars.bind_contextvars(user_id=user_id)


def current_user() -> str | None:
    return structlog.contextvars.get_contextvars().get("user_id")


@contextmanager
def contact_log_context(operation: str, **contact_ids: Any) -> Iterator[None]:
    """Bind *operation* and the given contact ids while the block runs.

    Ids are stringified so UUIDs and raw tool arguments render the same way.
    """
    bound = {name: None if value is None else str(value) for name, value in contact_ids.items()}
    with structlog.contextvars.bound_contextvars(operation=operation, **bound):
        yield


# ---------------------------------------------------------------------------
# Structlog processors
# ---------------------------------------------------------------------------


def add_otel_context(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict,
) -> dict:
    """Inject ``trace_id`` and ``span_id`` when an OTel span is active."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def add_merge_total(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict,
) -> dict:
    """Add ``rows_moved`` next to a merge ``summary`` mapping."""
    summary = event_dict.get("summary")
    if isinstance(summary, dict):
        event_dict["rows_moved"] = sum(v for v in summary.values() if isinstance(v, int))
    return event_dict


def _build_processors(time_fmt: str) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt=time_fmt),
        add_otel_context,
        structlog.stdlib.ExtraAdder(),
        add_merge_total,
    ]


def _formatter(
    renderer: structlog.types.Processor, time_fmt: str
) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=_build_processors(time_fmt),
    )


def configure_logging(
    level: str = "INFO",
    fmt: str = "text",
    log_file: Path | str | None = None,
) -> None:
    """Configure structured logging for the process.

    Parameters
    ----------
    level:
        Root log level (e.g. "DEBUG", "INFO", "WARNING").
    fmt:
        Console format, ``"text"`` or ``"json"``.
    log_file:
        Optional path of an extra JSON-lines log file. Parent directories
        are created.
    """
    if fmt == "json":
        time_fmt = "iso"
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        time_fmt = "%H:%M:%S"
        renderer = structlog.dev.ConsoleRenderer()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(_formatter(renderer, time_fmt))

    root = logging.getLogger()
    # Reconfiguration must not duplicate output
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.addHandler(console_handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISE_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer(), "iso"))
        root.addHandler(file_handler)

    structlog.configure(
        processors=[
            *_build_processors(time_fmt),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
