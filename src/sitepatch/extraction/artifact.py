# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Whole-file extractors: multi-file <fileArtifact> and single <htmlOutput>."""

from __future__ import annotations

import re

from sitepatch.extraction.base import TagStreamExtractor, strip_code_fences, trim_partial_tag

_FILE_OPEN_RE = re.compile(r'<file\s+path="([^"]+)">')
_FILE_CLOSE = "</file>"


class FileArtifactExtractor(TagStreamExtractor[dict[str, str]]):
    """``<fileArtifact><file path="index.html">...</file>...</fileArtifact>``.

    Payload maps path to content. A file still streaming is included with
    what has arrived so far, so previews can render early.
    """

    tag = "fileArtifact"

    def _consume(self, region, committed):
        position = 0
        while True:
            match = _FILE_OPEN_RE.search(region, position)
            if match is None:
                break
            close_index = region.find(_FILE_CLOSE, match.end())
            if close_index == -1:
                break
            path = match.group(1)
            if path.strip():
                committed.append((path, strip_code_fences(region[match.end() : close_index])))
            position = close_index + len(_FILE_CLOSE)
        return position

    def _build_payload(self, committed, rest):
        files = dict(committed)
        match = _FILE_OPEN_RE.search(rest)
        if match is not None and match.group(1).strip():
            partial = trim_partial_tag(rest[match.end() :], _FILE_CLOSE)
            files[match.group(1)] = strip_code_fences(partial)
        return files


class HtmlStreamExtractor(TagStreamExtractor[str]):
    """``<htmlOutput>...</htmlOutput>`` carrying one raw HTML document."""

    tag = "htmlOutput"

    def _build_payload(self, committed, rest):
        return strip_code_fences(rest)
