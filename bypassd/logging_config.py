# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of bypassd, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Centralized logging configuration for bypassd.

Uses structlog in stdlib-compatible mode so that plain
``logging.getLogger()`` calls gain structured output (context binding,
JSON file output) without changing call sites.

Provides:
- setup_logging(): structlog + stdlib unified setup (console + file)
- bind_container_id(): scope a short container ID onto every log line
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

import orjson
import structlog

from bypassd.id_utils import shrink_id


@contextmanager
def bind_container_id(container_id: str) -> Iterator[None]:
    """Bind the short container ID into structlog contextvars."""
    with structlog.contextvars.bound_contextvars(id=shrink_id(container_id)):
        yield


# ── Shared Processors ──────────────────────────────────────────


def _build_shared_processors() -> list:
    """Build the shared processor chain used by both structlog and stdlib."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _orjson_serializer(obj: object, **_kw) -> str:  # noqa: ANN001
    return orjson.dumps(obj, default=str).decode("utf-8")


_LOG_FILE_NAME = "bypassd.log"
_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 5


def _formatter(renderer, foreign_pre_chain: list) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=foreign_pre_chain,
    )


def _attach(root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter) -> None:
    # Filtering happens on the root level only
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    root.addHandler(handler)


# ── Main Setup ─────────────────────────────────────────────────


def setup_logging(
    level: str = "INFO",
    log_dir: Path | None = None,
    json_file: bool = True,
) -> None:
    """Configure logging for the whole bypassd process.

    Args:
        level: Root log level name.  Unknown names fall back to INFO.
        log_dir: Directory for ``bypassd.log``. None disables file logging.
        json_file: Render the file as JSON lines instead of plain text.
    """
    shared_processors = _build_shared_processors()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    # Plain logging.getLogger() records go through the same chain
    pre_chain = list(shared_processors)

    _attach(root, logging.StreamHandler(), _formatter(structlog.dev.ConsoleRenderer(), pre_chain))

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    if json_file:
        renderer = structlog.processors.JSONRenderer(serializer=_orjson_serializer)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    file_handler = RotatingFileHandler(
        log_dir / _LOG_FILE_NAME,
        maxBytes=_LOG_FILE_MAX_BYTES,
        backupCount=_LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    _attach(root, file_handler, _formatter(renderer, pre_chain))
