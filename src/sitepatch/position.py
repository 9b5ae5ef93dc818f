# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Offset mapping between a text and its whitespace-collapsed copy.

The collapsed copy replaces every whitespace run with a single space, so
each run counts as one unit and every other character as one unit.
Whitespace-significant content (``<pre>``) gets no special treatment.
"""

from __future__ import annotations

import re

_WS_RUN_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    """Replace each whitespace run with a single space (no trimming)."""
    return _WS_RUN_RE.sub(" ", text)


def find_original_position(original: str, collapsed_pos: int) -> int:
    """Map an offset in ``collapse_whitespace(original)`` back to ``original``.

    Returns the index in ``original`` where collapsed unit number
    ``collapsed_pos`` begins, ``len(original)`` when the position is the
    end of the collapsed text, or -1 when the original ends first.
    """
    if collapsed_pos < 0:
        return -1

    count = 0
    prev_ws = False
    for i, ch in enumerate(original):
        is_ws = ch.isspace()
        if is_ws and prev_ws:
            # continuation of a run that was already counted
            continue
        if count == collapsed_pos:
            return i
        count += 1
        prev_ws = is_ws

    if count == collapsed_pos:
        return len(original)
    return -1


def map_span(original: str, start: int, end: int) -> tuple[int, int] | None:
    """Map a half-open collapsed span to original offsets, or None."""
    actual_start = find_original_position(original, start)
    actual_end = find_original_position(original, end)
    if actual_start == -1 or actual_end == -1:
        return None
    return actual_start, actual_end
