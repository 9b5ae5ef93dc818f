# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Streaming extractors for model output.

One extractor instance belongs to exactly one in-flight stream; call
reset() before reusing it.
"""

from __future__ import annotations

from sitepatch.extraction.artifact import FileArtifactExtractor, HtmlStreamExtractor
from sitepatch.extraction.base import (
    ExtractionResult,
    ExtractionState,
    TagStreamExtractor,
    strip_code_fences,
)
from sitepatch.extraction.operations import DomOperationExtractor, EditStreamExtractor

EXTRACTORS: dict[str, type[TagStreamExtractor]] = {
    "files": FileArtifactExtractor,
    "edits": EditStreamExtractor,
    "dom": DomOperationExtractor,
    "html": HtmlStreamExtractor,
}


def create_extractor(flavor: str) -> TagStreamExtractor:
    try:
        return EXTRACTORS[flavor]()
    except KeyError:
        raise ValueError(f"unknown extractor flavor {flavor!r}; expected one of {sorted(EXTRACTORS)}") from None


__all__ = [
    "EXTRACTORS",
    "DomOperationExtractor",
    "EditStreamExtractor",
    "ExtractionResult",
    "ExtractionState",
    "FileArtifactExtractor",
    "HtmlStreamExtractor",
    "TagStreamExtractor",
    "create_extractor",
    "strip_code_fences",
]
