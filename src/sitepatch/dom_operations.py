# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Selector-addressed structural edits applied to one parsed tree.

The markup is parsed once; every operation runs against the same tree
and sees the effects of the ones before it. Each operation gets its own
OperationResult, so the returned HTML carries every successful edit even
when later ones fail. Single-target actions refuse ambiguous selectors
instead of silently editing the first match.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from cssselect import SelectorError
from lxml import etree
from lxml.cssselect import CSSSelector

from sitepatch import MULTI_TARGET_ACTIONS, DomAction, DomOperation, InsertPosition, OperationResult
from sitepatch.errors import ErrorKind
from sitepatch.html_tree import (
    ParsedMarkup,
    insert_adjacent,
    parse_markup,
    remove_element,
    serialize,
    set_inner_html,
    set_text,
)

logger = logging.getLogger(__name__)

_LEADING_TAG_RE = re.compile(r"^(\w+)")
_MAX_SUGGESTIONS = 5


@dataclass
class DomApplyResult:
    html: str
    results: list[OperationResult] = field(default_factory=list)

    @property
    def applied_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def all_succeeded(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def failures(self) -> list[OperationResult]:
        return [r for r in self.results if not r.success]

    def to_dict(self) -> dict:
        return {
            "applied_count": self.applied_count,
            "results": [r.to_dict() for r in self.results],
        }


class _OperationError(Exception):
    """Internal: one operation cannot be applied."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


# ---------------------------------------------------------------------------
# Selector resolution
# ---------------------------------------------------------------------------


def _select(parsed: ParsedMarkup, selector: str) -> list:
    try:
        matcher = CSSSelector(selector, translator="html")
    except SelectorError as e:
        raise _OperationError(ErrorKind.INVALID_SELECTOR, f'Invalid selector "{selector}": {e}') from None
    if parsed.is_document:
        return matcher(parsed.root)

    # The compiled path starts with descendant-or-self::, so running it from
    # each top-level node keeps the wrapper out of every selector step.
    found = set()
    for top in parsed.root:
        if isinstance(top.tag, str):
            found.update(matcher(top))
    return [el for el in parsed.root.iterdescendants() if el in found]


def _describe(el) -> str:
    text = el.tag
    el_id = el.get("id")
    if el_id:
        text += f"#{el_id}"
    classes = (el.get("class") or "").split()
    if classes:
        text += "." + ".".join(classes[:2])
    return text


def _suggest_similar(parsed: ParsedMarkup, selector: str) -> list[str]:
    match = _LEADING_TAG_RE.match(selector)
    if match is None:
        return []
    tag = match.group(1).lower()
    similar = []
    for el in parsed.root.iter(tag):
        if el is parsed.root and not parsed.is_document:
            continue
        similar.append(_describe(el))
        if len(similar) == _MAX_SUGGESTIONS:
            break
    return similar


# ---------------------------------------------------------------------------
# Class helpers
# ---------------------------------------------------------------------------


def _classes(el) -> list[str]:
    return (el.get("class") or "").split()


def _set_classes(el, names: list[str]) -> None:
    if names:
        el.set("class", " ".join(names))
    elif "class" in el.attrib:
        del el.attrib["class"]


def _add_classes(el, names: Sequence[str]) -> None:
    current = _classes(el)
    current.extend(n for n in names if n not in current)
    _set_classes(el, current)


def _remove_classes(el, names: Sequence[str]) -> None:
    drop = set(names)
    _set_classes(el, [n for n in _classes(el) if n not in drop])


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def _require(op: DomOperation, *names: str) -> None:
    missing = [n for n in names if getattr(op, n) is None or (n != "value" and not getattr(op, n))]
    if missing:
        raise _OperationError(
            ErrorKind.MISSING_PARAMETER,
            f"{op.action} requires {' and '.join(names)}",
        )


def _set_attribute(op, elements):
    _require(op, "attr", "value")
    for el in elements:
        el.set(op.attr, op.value)


def _set_text(op, elements):
    _require(op, "value")
    for el in elements:
        set_text(el, op.value)


def _set_html(op, elements):
    _require(op, "value")
    for el in elements:
        set_inner_html(el, op.value)


def _add_class(op, elements):
    if not op.value or not op.value.split():
        raise _OperationError(ErrorKind.MISSING_PARAMETER, "addClass requires value")
    for el in elements:
        _add_classes(el, op.value.split())


def _remove_class(op, elements):
    if not op.value or not op.value.split():
        raise _OperationError(ErrorKind.MISSING_PARAMETER, "removeClass requires value")
    for el in elements:
        _remove_classes(el, op.value.split())


def _replace_class(op, elements):
    _require(op, "old_class", "new_class")
    for el in elements:
        _remove_classes(el, op.old_class.split())
        _add_classes(el, op.new_class.split())


def _remove(op, elements):
    for el in elements:
        if el.getparent() is None:
            raise _OperationError(ErrorKind.OPERATION_FAILED, "cannot remove the document root")
    for el in elements:
        remove_element(el)


def _insert_adjacent_html(op, elements):
    _require(op, "position", "value")
    try:
        position = InsertPosition(op.position)
    except ValueError:
        raise _OperationError(
            ErrorKind.OPERATION_FAILED,
            f'insertAdjacentHTML position "{op.position}" must be one of: '
            + ", ".join(p.value for p in InsertPosition),
        ) from None
    for el in elements:
        try:
            insert_adjacent(el, position, op.value)
        except ValueError as e:
            raise _OperationError(ErrorKind.OPERATION_FAILED, str(e)) from None


_HANDLERS: dict[DomAction, Callable[[DomOperation, list], None]] = {
    DomAction.SET_ATTRIBUTE: _set_attribute,
    DomAction.SET_TEXT: _set_text,
    DomAction.SET_HTML: _set_html,
    DomAction.ADD_CLASS: _add_class,
    DomAction.REMOVE_CLASS: _remove_class,
    DomAction.REPLACE_CLASS: _replace_class,
    DomAction.REMOVE: _remove,
    DomAction.INSERT_ADJACENT_HTML: _insert_adjacent_html,
}


def _apply_one(parsed: ParsedMarkup, op: DomOperation) -> None:
    matches = _select(parsed, op.selector)

    if not matches:
        similar = _suggest_similar(parsed, op.selector)
        suggestion = f" Similar elements: {', '.join(similar)}" if similar else ""
        raise _OperationError(
            ErrorKind.SELECTOR_NOT_FOUND,
            f'Selector "{op.selector}" matched 0 elements.{suggestion}',
        )

    if len(matches) > 1 and op.action not in MULTI_TARGET_ACTIONS:
        raise _OperationError(
            ErrorKind.SELECTOR_AMBIGUOUS,
            f'Selector "{op.selector}" matched {len(matches)} elements. '
            "Use a more specific selector (add ID, class, or nth-child).",
        )

    try:
        handler = _HANDLERS[DomAction(op.action)]
    except ValueError:
        raise _OperationError(ErrorKind.UNKNOWN_ACTION, f"Unknown action: {op.action}") from None

    handler(op, matches)


def apply_dom_operations(html: str, operations: Sequence[DomOperation]) -> DomApplyResult:
    """Apply DOM operations to one page or fragment.

    Never raises for an operation that cannot be applied; see the
    per-operation results.
    """
    parsed = parse_markup(html)
    results: list[OperationResult] = []

    for index, op in enumerate(operations):
        try:
            _apply_one(parsed, op)
        except _OperationError as e:
            results.append(OperationResult(index=index, success=False, error=str(e), error_kind=e.kind))
            logger.warning("DOM operation %d (%s %s) failed: %s", index + 1, op.action, op.selector, e.kind)
            continue
        except (ValueError, TypeError, etree.LxmlError) as e:
            # lxml rejects some values (invalid attribute names, unparsable markup)
            results.append(
                OperationResult(
                    index=index,
                    success=False,
                    error=f"Operation failed: {e}",
                    error_kind=ErrorKind.OPERATION_FAILED,
                )
            )
            logger.warning("DOM operation %d (%s %s) raised: %s", index + 1, op.action, op.selector, e)
            continue
        results.append(OperationResult(index=index, success=True))

    applied = sum(1 for r in results if r.success)
    logger.debug("Applied %d/%d DOM operation(s)", applied, len(operations))
    return DomApplyResult(html=serialize(parsed), results=results)
