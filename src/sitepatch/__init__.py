# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SitePatch: streaming artifact extraction and patch application for generated sites.

Turns streamed model output into structured website artifacts:
- extraction: incremental parsers for file artifacts, edit lists, DOM operation lists
- search_replace / dom_operations: layered edit engines with per-operation results
- blocks / components: block ids and shared header/footer/nav components
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from sitepatch.errors import ErrorKind

__version__ = "0.4.0"


class MatchTier(StrEnum):
    """Which search/replace strategy located the search text."""

    EXACT = "exact"
    WHITESPACE = "whitespace"
    TOKEN = "token"
    FUZZY = "fuzzy"


class DomAction(StrEnum):
    """Structural mutation applied to the element(s) a selector matches."""

    SET_ATTRIBUTE = "setAttribute"
    SET_TEXT = "setText"
    SET_HTML = "setHTML"
    ADD_CLASS = "addClass"
    REMOVE_CLASS = "removeClass"
    REPLACE_CLASS = "replaceClass"
    REMOVE = "remove"
    INSERT_ADJACENT_HTML = "insertAdjacentHTML"


class InsertPosition(StrEnum):
    """insertAdjacentHTML positions, relative to the matched element."""

    BEFORE_BEGIN = "beforebegin"
    AFTER_BEGIN = "afterbegin"
    BEFORE_END = "beforeend"
    AFTER_END = "afterend"


# Class actions may legitimately touch every match.
MULTI_TARGET_ACTIONS = frozenset({DomAction.ADD_CLASS, DomAction.REMOVE_CLASS, DomAction.REPLACE_CLASS})


@dataclass(frozen=True, slots=True)
class EditOperation:
    """A single search/replace instruction."""

    search: str
    replace: str
    expected_replacements: int | None = None


@dataclass(frozen=True, slots=True)
class DomOperation:
    """A selector-addressed structural edit.

    ``action`` is kept as a plain string when the stream carried an action
    the engine does not know, so the failure can be reported per operation.
    """

    selector: str
    action: DomAction | str
    attr: str | None = None
    value: str | None = None
    old_class: str | None = None
    new_class: str | None = None
    position: InsertPosition | str | None = None


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Outcome of one operation, reported in input order."""

    index: int
    success: bool
    error: str = ""
    error_kind: ErrorKind | None = None
    tier: MatchTier | None = None  # search/replace only

    def to_dict(self) -> dict:
        data: dict = {"index": self.index, "success": self.success}
        if self.error:
            data["error"] = self.error
        if self.error_kind is not None:
            data["error_kind"] = str(self.error_kind)
        if self.tier is not None:
            data["tier"] = str(self.tier)
        return data


__all__ = [
    "DomAction",
    "DomOperation",
    "EditOperation",
    "ErrorKind",
    "InsertPosition",
    "MULTI_TARGET_ACTIONS",
    "MatchTier",
    "OperationResult",
    "__version__",
]
