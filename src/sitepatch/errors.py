# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SitePatch exception hierarchy and reportable error kinds.

Operation-level problems (bad selector, search text not found, ...) are
reported as data through ``ErrorKind`` and never raised. Exceptions are
reserved for misuse and for explicit validation requests; all of them
inherit from SitePatchError.

Leaf module: no sitepatch imports.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Non-fatal failure categories carried on results."""

    INCOMPLETE_REGION = "incomplete_region"
    SELECTOR_NOT_FOUND = "selector_not_found"
    SELECTOR_AMBIGUOUS = "selector_ambiguous"
    INVALID_SELECTOR = "invalid_selector"
    SEARCH_TEXT_NOT_FOUND = "search_text_not_found"
    EMPTY_SEARCH = "empty_search"
    OPERATION_COUNT_MISMATCH = "operation_count_mismatch"
    MISSING_PARAMETER = "missing_parameter"
    UNKNOWN_ACTION = "unknown_action"
    FILE_NOT_FOUND = "file_not_found"
    OPERATION_FAILED = "operation_failed"
    NOT_ATTEMPTED = "not_attempted"


class SitePatchError(Exception):
    """Base exception for all SitePatch errors."""


class ExtractorStateError(SitePatchError):
    """Extractor misused (wrong input type, shared across streams)."""


class ArtifactValidationError(SitePatchError):
    """A file set failed artifact validation."""

    def __init__(self, message: str, *, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class ConfigError(SitePatchError):
    """Invalid engine configuration (usually from environment overrides)."""

    def __init__(self, message: str, *, key: str = "") -> None:
        super().__init__(message)
        self.key = key
