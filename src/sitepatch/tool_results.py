# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Typed results at the collaborator boundary.

Content tools (image/icon/web search) and the HTML linter live outside
this package. Their loosely shaped outputs are converted here, once, into
a tagged ToolSuccess / ToolFailure so nothing downstream inspects raw
dicts. Payloads are opaque: URLs and markup are substituted verbatim.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

from sitepatch.errors import ErrorKind

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ToolSuccess(Generic[T]):
    payload: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class ToolFailure:
    message: str
    kind: ErrorKind = ErrorKind.OPERATION_FAILED
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False


ToolResult = ToolSuccess[Any] | ToolFailure


def is_success(result: ToolResult) -> bool:
    return isinstance(result, ToolSuccess)


def from_mapping(raw: Mapping[str, Any], *, payload_key: str | None = None) -> ToolResult:
    """Convert a collaborator's ``{"success": bool, ...}`` dict.

    ``payload_key`` selects one field as the payload; otherwise every key
    except ``success`` is kept.
    """
    if not raw.get("success"):
        message = raw.get("error") or raw.get("message") or "tool reported failure"
        return ToolFailure(message=str(message))
    if payload_key is not None:
        if payload_key not in raw:
            return ToolFailure(message=f"tool result missing {payload_key!r}")
        return ToolSuccess(raw[payload_key])
    return ToolSuccess({k: v for k, v in raw.items() if k != "success"})


# ---------------------------------------------------------------------------
# Linter output
# ---------------------------------------------------------------------------


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True, slots=True)
class LintIssue:
    severity: Severity
    message: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column} {self.severity}: {self.message}"


def lint_issue_from_mapping(raw: Mapping[str, Any]) -> LintIssue:
    try:
        severity = Severity(str(raw.get("severity", "warning")).lower())
    except ValueError:
        severity = Severity.WARNING
    return LintIssue(
        severity=severity,
        message=str(raw.get("message", "")),
        line=int(raw.get("line", 0) or 0),
        column=int(raw.get("column", 0) or 0),
    )


def summarize_lint(path: str, issues: Iterable[LintIssue], *, limit: int = 10) -> str:
    """One report block per file, errors first, for feeding back to the model."""
    ordered = sorted(issues, key=lambda i: (i.severity is not Severity.ERROR, i.line, i.column))
    if not ordered:
        return f"{path}: no issues"
    errors = sum(1 for i in ordered if i.severity is Severity.ERROR)
    lines = [f"{path}: {errors} error(s), {len(ordered) - errors} other issue(s)"]
    lines.extend(f"  {issue}" for issue in ordered[:limit])
    if len(ordered) > limit:
        lines.append(f"  ... {len(ordered) - limit} more")
    return "\n".join(lines)
