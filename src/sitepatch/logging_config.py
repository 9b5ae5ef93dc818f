# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for SitePatch.

Library modules log through ``logging.getLogger(__name__)``; this module
decides how those records are rendered (console for humans, JSON lines
for log shippers). Only applications (the CLI, an embedding service)
should call configure().

Leaf module: no sitepatch imports.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

_PACKAGE_LOGGER = "sitepatch"


def configure(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Route stdlib logging through structlog renderers.

    Args:
        json_output: True for JSON lines, False for human-readable console output.
        level: Level applied to the ``sitepatch`` logger (root stays at WARNING
            so third-party chatter does not drown engine messages).
        stream: Destination stream (default stderr; stdout carries CLI results).
    """
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    )

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

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger(_PACKAGE_LOGGER).setLevel(getattr(logging, level.upper(), logging.INFO))


def bind_stream(**values: object) -> None:
    """Attach per-stream identifiers (conversation id, file) to subsequent log lines."""
    structlog.contextvars.bind_contextvars(**values)


def clear_stream() -> None:
    structlog.contextvars.clear_contextvars()
