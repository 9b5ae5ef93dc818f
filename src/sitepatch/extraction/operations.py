# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Edit-list extractors: <editOperations> and <domOperations>.

Only fully closed sub-blocks are emitted; half-written operations are
never applied.

    <editOperations file="about.html">
      <edit expected="2"><search>old</search><replace>new</replace></edit>
    </editOperations>

    <domOperations file="index.html">
      <op selector="#hero h1" action="setText">Fresh headline</op>
      <op selector=".cta" action="replaceClass" oldClass="bg-blue-500" newClass="bg-rose-500"/>
    </domOperations>
"""

from __future__ import annotations

import logging
import re

from sitepatch import DomAction, DomOperation, EditOperation, InsertPosition
from sitepatch.extraction.base import TagStreamExtractor, parse_attributes

logger = logging.getLogger(__name__)

_EDIT_OPEN_RE = re.compile(r'<edit((?:\s+[\w:-]+\s*=\s*"[^"]*")*)\s*>')
_EDIT_CLOSE = "</edit>"
_SEARCH_OPEN, _SEARCH_CLOSE = "<search>", "</search>"
_REPLACE_OPEN, _REPLACE_CLOSE = "<replace>", "</replace>"

_OP_OPEN_RE = re.compile(r'<op((?:\s+[\w:-]+\s*=\s*"[^"]*")*)\s*(/?)>')  # quoted values may contain ">"
_OP_CLOSE = "</op>"


def _between(text: str, open_tag: str, close_tag: str) -> str | None:
    start = text.find(open_tag)
    if start == -1:
        return None
    end = text.find(close_tag, start + len(open_tag))
    if end == -1:
        return None
    return text[start + len(open_tag) : end]


def _parse_count(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        count = int(raw)
    except ValueError:
        logger.debug("Ignoring non-numeric expected=%r", raw)
        return None
    return count if count > 0 else None


class EditStreamExtractor(TagStreamExtractor[list[EditOperation]]):
    """Search/replace operations; ``target_file`` comes from ``file="..."``."""

    tag = "editOperations"

    def _consume(self, region, committed):
        position = 0
        while True:
            match = _EDIT_OPEN_RE.search(region, position)
            if match is None:
                break
            close_index = region.find(_EDIT_CLOSE, match.end())
            if close_index == -1:
                break
            body = region[match.end() : close_index]
            search = _between(body, _SEARCH_OPEN, _SEARCH_CLOSE)
            replace = _between(body, _REPLACE_OPEN, _REPLACE_CLOSE)
            if search is not None and replace is not None:
                attrs = parse_attributes(match.group(1))
                committed.append(
                    EditOperation(
                        search=search,
                        replace=replace,
                        expected_replacements=_parse_count(attrs.get("expected")),
                    )
                )
            else:
                logger.debug("Dropping <edit> without both <search> and <replace>")
            position = close_index + len(_EDIT_CLOSE)
        return position

    def _build_payload(self, committed, rest):
        return list(committed)


def _coerce(enum_type, raw: str | None):
    if raw is None:
        return None
    try:
        return enum_type(raw)
    except ValueError:
        return raw


class DomOperationExtractor(TagStreamExtractor[list[DomOperation]]):
    """Selector-addressed operations; unknown actions pass through as strings."""

    tag = "domOperations"

    def _consume(self, region, committed):
        position = 0
        while True:
            match = _OP_OPEN_RE.search(region, position)
            if match is None:
                break
            attrs = parse_attributes(match.group(1))
            if match.group(2):
                value = attrs.get("value")
                position = match.end()
            else:
                close_index = region.find(_OP_CLOSE, match.end())
                if close_index == -1:
                    break
                value = region[match.end() : close_index]
                if not value and "value" in attrs:
                    value = attrs["value"]
                position = close_index + len(_OP_CLOSE)
            committed.append(
                DomOperation(
                    selector=attrs.get("selector", ""),
                    action=_coerce(DomAction, attrs.get("action", "")),
                    attr=attrs.get("attr"),
                    value=value,
                    old_class=attrs.get("oldClass"),
                    new_class=attrs.get("newClass"),
                    position=_coerce(InsertPosition, attrs.get("position")),
                )
            )
        return position

    def _build_payload(self, committed, rest):
        return list(committed)
