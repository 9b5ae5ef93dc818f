# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Incremental tag-region parser shared by every extractor flavor.

A stream looks like::

    narration ... <region attr="..."> <sub>...</sub> <sub>...</sub> </region>

Text before the opening delimiter is the preamble. Once inside, every
sub-block that has fully closed is committed and its text dropped from
the front of the buffer; committed items never change afterwards. The
still-open sub-block, if any, is re-scanned on every chunk to give a
best-effort partial payload.

Extractors never raise on malformed or truncated input. A region that
never closes simply stays ``is_complete=False``.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sitepatch.errors import ExtractorStateError

logger = logging.getLogger(__name__)

P = TypeVar("P")

_ATTR_RE = re.compile(r'([A-Za-z_][\w:-]*)\s*=\s*"([^"]*)"')
_FENCE_OPEN_RE = re.compile(r"^\s*```\w*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang line and a trailing ``` fence, nothing else."""
    return _FENCE_CLOSE_RE.sub("", _FENCE_OPEN_RE.sub("", text, count=1), count=1)


def parse_attributes(raw: str | None) -> dict[str, str]:
    """Double-quoted attributes of a tag, entity-decoded."""
    if not raw:
        return {}
    return {name: html.unescape(value) for name, value in _ATTR_RE.findall(raw)}


def trim_partial_tag(text: str, *delimiters: str) -> str:
    """Drop a trailing prefix of any delimiter (a tag still arriving)."""
    for delimiter in delimiters:
        for size in range(len(delimiter) - 1, 0, -1):
            if text.endswith(delimiter[:size]):
                return text[:-size]
    return text


@dataclass
class ExtractionState:
    """Per-stream mutable state. One instance per in-flight stream."""

    buffer: str = ""
    inside: bool = False
    preamble: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    committed: list[Any] = field(default_factory=list)
    complete: bool = False
    stream_id: str | None = None

    def reset(self) -> None:
        self.buffer = ""
        self.inside = False
        self.preamble = ""
        self.attributes = {}
        self.committed = []
        self.complete = False
        self.stream_id = None


@dataclass(frozen=True, slots=True)
class ExtractionResult(Generic[P]):
    """Best-effort view of a stream after one chunk."""

    payload: P
    preamble: str
    is_complete: bool
    has_open_tag: bool
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def target_file(self) -> str | None:
        return self.attributes.get("file")


class TagStreamExtractor(Generic[P]):
    """Base class: subclasses define the region tag and sub-block grammar."""

    tag: str = ""

    def __init__(self) -> None:
        if not self.tag:
            raise TypeError(f"{type(self).__name__} must define a region tag")
        self._state = ExtractionState()
        self._open_re = re.compile(rf"<{re.escape(self.tag)}(\s[^>]*)?>")
        self._close = f"</{self.tag}>"
        self._final: ExtractionResult[P] | None = None

    @property
    def state(self) -> ExtractionState:
        return self._state

    def reset(self) -> None:
        """Forget the current stream so the instance can serve a new one."""
        self._state.reset()
        self._final = None

    def parse(self, chunk: str, *, stream_id: str | None = None) -> ExtractionResult[P]:
        """Feed one chunk and return the current best-effort result.

        ``stream_id`` optionally binds the extractor to one stream; feeding
        it a chunk of a different stream without reset() is a bug and raises
        ExtractorStateError.
        """
        if not isinstance(chunk, str):
            raise ExtractorStateError(f"chunk must be str, got {type(chunk).__name__}")
        state = self._state
        if stream_id is not None:
            if state.stream_id is None:
                state.stream_id = stream_id
            elif state.stream_id != stream_id:
                raise ExtractorStateError(
                    f"extractor owned by stream {state.stream_id!r} was fed stream {stream_id!r}; call reset() first"
                )

        if self._final is not None:
            # Region already closed: trailing text cannot change the result
            return self._final

        state.buffer += chunk

        if not state.inside:
            match = self._open_re.search(state.buffer)
            if match is None:
                return ExtractionResult(
                    payload=self._build_payload([], ""),
                    preamble=state.buffer,
                    is_complete=False,
                    has_open_tag=False,
                )
            state.preamble = state.buffer[: match.start()].strip()
            state.attributes = parse_attributes(match.group(1))
            state.inside = True
            state.buffer = state.buffer[match.end() :]
            logger.debug("<%s> opened after %d preamble chars", self.tag, len(state.preamble))

        close_index = state.buffer.find(self._close)
        complete = close_index != -1
        region = state.buffer[:close_index] if complete else state.buffer

        consumed = self._consume(region, state.committed)
        if consumed:
            state.buffer = state.buffer[consumed:]
            region = region[consumed:]

        rest = region if complete else trim_partial_tag(region, self._close)
        result = ExtractionResult(
            payload=self._build_payload(state.committed, rest),
            preamble=state.preamble,
            is_complete=complete,
            has_open_tag=True,
            attributes=dict(state.attributes),
        )
        if complete:
            state.complete = True
            state.buffer = ""
            self._final = result
            logger.debug("<%s> closed with %d committed block(s)", self.tag, len(state.committed))
        return result

    # -- subclass hooks ------------------------------------------------------

    def _consume(self, region: str, committed: list[Any]) -> int:
        """Commit closed sub-blocks at the front of ``region``; return chars consumed."""
        return 0

    def _build_payload(self, committed: list[Any], rest: str) -> P:
        raise NotImplementedError
