# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Multi-tier search/replace for model-authored edits.

Tiers, tried in order until one locates the search text:
  1. exact:      plain substring
  2. whitespace: whitespace runs collapsed on both sides, span mapped back
  3. token:      same word/punctuation token sequence, any whitespace between
  4. fuzzy:      best line window by difflib ratio, above a threshold

Operations apply in order against the evolving text. Each operation is
atomic; the list is not. The first failure stops processing and the text
keeps every earlier edit, so a retry can target just the failed operation.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Literal

from sitepatch import EditOperation, MatchTier, OperationResult
from sitepatch.config import EngineSettings, get_settings
from sitepatch.errors import ErrorKind
from sitepatch.position import collapse_whitespace, map_span

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+|[^\w\s]")

_SURROUNDING_LINES = 2
_PREVIEW_CHARS = 160

Span = tuple[int, int]


@dataclass(frozen=True, slots=True)
class BestMatch:
    """Closest region to a search that could not be applied (retry context)."""

    text: str
    similarity: float
    line: int  # 1-based
    surrounding: str = ""

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "similarity": round(self.similarity, 3),
            "line": self.line,
            "surrounding": self.surrounding,
        }


@dataclass
class ApplyResult:
    """Outcome of apply_edit_operations().

    ``success`` is True when every operation applied, "partial" when some
    did before one failed, False when the first one failed.
    """

    success: bool | Literal["partial"]
    text: str
    applied_count: int
    failed_index: int | None = None
    error: str = ""
    error_kind: ErrorKind | None = None
    best_match: BestMatch | None = None
    tiers: list[MatchTier] = field(default_factory=list)
    results: list[OperationResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.success is True

    def to_dict(self) -> dict:
        data: dict = {
            "success": self.success,
            "applied_count": self.applied_count,
            "tiers": [str(t) for t in self.tiers],
            "results": [r.to_dict() for r in self.results],
        }
        if self.failed_index is not None:
            data["failed_index"] = self.failed_index
            data["error"] = self.error
            data["error_kind"] = str(self.error_kind)
        if self.best_match is not None:
            data["best_match"] = self.best_match.to_dict()
        return data


# ---------------------------------------------------------------------------
# Tiers: each returns every non-overlapping match span in ``text``
# ---------------------------------------------------------------------------


def _find_all(haystack: str, needle: str) -> list[Span]:
    spans: list[Span] = []
    start = haystack.find(needle)
    while start != -1:
        spans.append((start, start + len(needle)))
        start = haystack.find(needle, start + len(needle))
    return spans


def _exact_spans(text: str, search: str) -> list[Span]:
    return _find_all(text, search)


def _whitespace_spans(text: str, search: str) -> list[Span]:
    needle = collapse_whitespace(search.strip())
    if not needle:
        return []
    spans = []
    for start, end in _find_all(collapse_whitespace(text), needle):
        mapped = map_span(text, start, end)
        if mapped is not None:
            spans.append(mapped)
    return spans


def _token_spans(text: str, search: str) -> list[Span]:
    wanted = _TOKEN_RE.findall(search)
    if not wanted:
        return []
    tokens = list(_TOKEN_RE.finditer(text))
    size = len(wanted)
    spans: list[Span] = []
    i = 0
    while i + size <= len(tokens):
        if all(tokens[i + k].group() == wanted[k] for k in range(size)):
            spans.append((tokens[i].start(), tokens[i + size - 1].end()))
            i += size
        else:
            i += 1
    return spans


def _line_offsets(text: str) -> tuple[list[str], list[int]]:
    lines = text.splitlines(keepends=True)
    offsets = []
    position = 0
    for line in lines:
        offsets.append(position)
        position += len(line)
    return lines, offsets


def _trimmed_span(text: str, start: int, end: int) -> Span:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return start, end


def find_best_match(text: str, search: str) -> tuple[Span, float, int] | None:
    """Best line window for ``search``: (span, similarity, 1-based line).

    Windows span the search's line count and one line either side. Spans
    are trimmed of surrounding whitespace.
    """
    needle = collapse_whitespace(search.strip())
    if not needle or not text:
        return None
    lines, offsets = _line_offsets(text)
    want = max(1, len(search.strip().splitlines()))
    sizes = sorted({max(1, want - 1), want, want + 1})

    matcher = SequenceMatcher(None, autojunk=False)
    matcher.set_seq2(needle)
    best: tuple[Span, float, int] | None = None
    best_score = 0.0
    for size in sizes:
        for i in range(0, max(1, len(lines) - size + 1)):
            window = "".join(lines[i : i + size])
            candidate = collapse_whitespace(window).strip()
            if not candidate:
                continue
            matcher.set_seq1(candidate)
            # quick_ratio bounds ratio from above
            if matcher.real_quick_ratio() <= best_score or matcher.quick_ratio() <= best_score:
                continue
            score = matcher.ratio()
            if score > best_score:
                start = offsets[i]
                best_score = score
                best = (_trimmed_span(text, start, start + len(window)), score, i + 1)
    return best


def _surrounding(text: str, line: int) -> str:
    lines = text.splitlines()
    lo = max(0, line - 1 - _SURROUNDING_LINES)
    hi = min(len(lines), line + _SURROUNDING_LINES)
    return "\n".join(lines[lo:hi])


# ---------------------------------------------------------------------------
# Per-operation location
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Located:
    tier: MatchTier
    spans: list[Span]


@dataclass(frozen=True, slots=True)
class _Miss:
    kind: ErrorKind
    detail: str


_SPAN_TIERS = (
    (MatchTier.EXACT, _exact_spans),
    (MatchTier.WHITESPACE, _whitespace_spans),
    (MatchTier.TOKEN, _token_spans),
)


def _locate(text: str, op: EditOperation, settings: EngineSettings) -> _Located | _Miss:
    if not op.search or not op.search.strip():
        return _Miss(ErrorKind.EMPTY_SEARCH, "search text is empty")

    expected = op.expected_replacements
    mismatch: tuple[MatchTier, int] | None = None
    for tier, finder in _SPAN_TIERS:
        spans = finder(text, op.search)
        if not spans:
            continue
        if expected is None:
            return _Located(tier, spans[:1])
        if len(spans) == expected:
            return _Located(tier, spans)
        if mismatch is None:
            mismatch = (tier, len(spans))
        logger.debug("%s tier found %d match(es), expected %d", tier, len(spans), expected)

    if mismatch is not None:
        tier, found = mismatch
        return _Miss(
            ErrorKind.OPERATION_COUNT_MISMATCH,
            f"expected {expected} match(es), found {found} ({tier} match)",
        )

    needle_len = len(collapse_whitespace(op.search.strip()))
    if settings.enable_fuzzy and needle_len >= settings.fuzzy_min_length and expected in (None, 1):
        best = find_best_match(text, op.search)
        if best is not None and best[1] >= settings.fuzzy_threshold:
            span, score, line = best
            logger.debug("Fuzzy match at line %d (similarity %.2f)", line, score)
            return _Located(MatchTier.FUZZY, [span])

    return _Miss(ErrorKind.SEARCH_TEXT_NOT_FOUND, "search text not found")


def _splice(text: str, spans: Sequence[Span], replacement: str) -> str:
    for start, end in sorted(spans, reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


def _best_match_for(text: str, search: str) -> BestMatch | None:
    best = find_best_match(text, search)
    if best is None:
        return None
    (start, end), score, line = best
    return BestMatch(
        text=text[start:end][:_PREVIEW_CHARS],
        similarity=score,
        line=line,
        surrounding=_surrounding(text, line),
    )


def apply_edit_operations(
    text: str,
    operations: Sequence[EditOperation],
    *,
    settings: EngineSettings | None = None,
) -> ApplyResult:
    """Apply search/replace operations in order with tiered matching.

    Never raises for an operation that cannot be applied; the failure is
    reported on the result and processing stops there.
    """
    settings = settings or get_settings()
    total = len(operations)
    results: list[OperationResult] = []
    tiers: list[MatchTier] = []

    for index, op in enumerate(operations):
        located = _locate(text, op, settings)
        if isinstance(located, _Located):
            text = _splice(text, located.spans, op.replace)
            tiers.append(located.tier)
            results.append(OperationResult(index=index, success=True, tier=located.tier))
            if located.tier is not MatchTier.EXACT:
                logger.debug("Edit %d/%d applied via %s tier", index + 1, total, located.tier)
            continue

        error = f"Edit operation {index + 1} of {total} failed: {located.detail}"
        best_match = None
        if located.kind is ErrorKind.SEARCH_TEXT_NOT_FOUND:
            best_match = _best_match_for(text, op.search)
            if best_match is not None:
                error += f". Closest match ({best_match.similarity:.0%} similar) at line {best_match.line}"
        results.append(OperationResult(index=index, success=False, error=error, error_kind=located.kind))
        for skipped in range(index + 1, total):
            results.append(
                OperationResult(
                    index=skipped,
                    success=False,
                    error=f"not attempted: operation {index + 1} failed",
                    error_kind=ErrorKind.NOT_ATTEMPTED,
                )
            )
        logger.warning("Edit %d/%d not applied: %s", index + 1, total, located.kind)
        return ApplyResult(
            success="partial" if index > 0 else False,
            text=text,
            applied_count=index,
            failed_index=index,
            error=error,
            error_kind=located.kind,
            best_match=best_match,
            tiers=tiers,
            results=results,
        )

    return ApplyResult(success=True, text=text, applied_count=total, tiers=tiers, results=results)
