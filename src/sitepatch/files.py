# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Project file sets and artifact validation.

A project is a flat mapping of relative path to full text. Ordering is
never stored; html_pages() derives the display order (index.html first).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

from sitepatch.errors import ArtifactValidationError

logger = logging.getLogger(__name__)

COMPONENTS_DIR = "_components/"
INDEX_PAGE = "index.html"

ALLOWED_EXTENSIONS = frozenset({".html", ".css", ".js"})
MAX_FILE_COUNT = 25
MAX_FILE_BYTES = 500_000


def is_component_file(path: str) -> bool:
    return path.startswith(COMPONENTS_DIR)


def is_page_file(path: str) -> bool:
    return path.endswith(".html") and not is_component_file(path)


def component_filename(block_id: str) -> str:
    return f"{COMPONENTS_DIR}{block_id}.html"


def component_id(path: str) -> str:
    """``_components/main-nav.html`` -> ``main-nav``."""
    return path.removeprefix(COMPONENTS_DIR).removesuffix(".html")


def html_pages(paths: Iterable[str]) -> list[str]:
    """Page filenames sorted for display: index.html first, then by name."""
    pages = [p for p in paths if is_page_file(p)]
    return sorted(pages, key=lambda p: (p != INDEX_PAGE, p))


class ProjectFileSet:
    """Path → content mapping with overwrite-in-place writes."""

    __slots__ = ("_files",)

    def __init__(self, files: Mapping[str, str] | None = None) -> None:
        self._files: dict[str, str] = dict(files or {})

    def write(self, path: str, content: str) -> None:
        self._files[path] = content

    def write_many(self, files: Mapping[str, str]) -> None:
        self._files.update(files)

    def read(self, path: str) -> str | None:
        return self._files.get(path)

    def delete(self, path: str) -> bool:
        return self._files.pop(path, None) is not None

    def paths(self) -> list[str]:
        return list(self._files)

    def html_pages(self) -> list[str]:
        return html_pages(self._files)

    def component_files(self) -> list[str]:
        return sorted(p for p in self._files if is_component_file(p))

    def copy(self) -> ProjectFileSet:
        return ProjectFileSet(self._files)

    def to_dict(self) -> dict[str, str]:
        return dict(self._files)

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __repr__(self) -> str:
        return f"ProjectFileSet({len(self._files)} files)"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    reason: str = ""
    path: str = ""


def _extension(path: str) -> str:
    dot = path.rfind(".")
    return "" if dot == -1 else path[dot:]


def validate_artifact(files: Mapping[str, str]) -> ValidationResult:
    """Check a finished file set is fit for persistence."""
    index = files.get(INDEX_PAGE)
    if not index or not index.strip():
        return ValidationResult(False, f"Missing or empty {INDEX_PAGE}", INDEX_PAGE)

    if len(files) > MAX_FILE_COUNT:
        return ValidationResult(False, f"Too many files ({len(files)}), max {MAX_FILE_COUNT}")

    for path, content in files.items():
        if not path or not path.strip():
            return ValidationResult(False, "Empty or whitespace-only filename", path)

        # One level under _components/ is the only nesting allowed
        if "/" in path or "\\" in path:
            nested_ok = is_component_file(path) and ".." not in path and len(path.split("/")) == 2
            if not nested_ok:
                return ValidationResult(False, f'Nested path "{path}" not allowed', path)

        if _extension(path) not in ALLOWED_EXTENSIONS:
            return ValidationResult(
                False, f'File "{path}" has disallowed extension (only .html, .css, .js)', path
            )

        if len(content.encode("utf-8")) > MAX_FILE_BYTES:
            return ValidationResult(False, f'File "{path}" exceeds {MAX_FILE_BYTES} bytes', path)

    return ValidationResult(True)


def is_persistable(files: Mapping[str, str]) -> bool:
    return validate_artifact(files).valid


def require_valid_artifact(files: Mapping[str, str]) -> None:
    """Raise ArtifactValidationError when the file set cannot be persisted."""
    result = validate_artifact(files)
    if not result.valid:
        logger.warning("Artifact rejected: %s", result.reason)
        raise ArtifactValidationError(result.reason, path=result.path)
