# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared header/footer/nav extraction across pages.

When two or more pages carry structurally equivalent header, footer or
nav blocks, one canonical copy moves to ``_components/<block-id>.html``
and each page keeps a ``<!-- @component:<block-id> -->`` placeholder.
expand_components() reverses this for previews.

Outer tags are processed before nav so a nav placeholder never ends up
stranded inside a header that is extracted afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from sitepatch.blocks import BLOCK_ATTR
from sitepatch.config import EngineSettings, get_settings
from sitepatch.files import component_filename, component_id, html_pages, is_component_file
from sitepatch.html_tree import outer_html, parse_markup, replace_with_comment, serialize
from sitepatch.similarity import structural_similarity

logger = logging.getLogger(__name__)

COMPONENT_TAGS = ("header", "footer", "nav")


@dataclass(frozen=True, slots=True)
class ExtractedComponent:
    block_id: str
    filename: str  # e.g. "_components/main-nav.html"
    content: str


@dataclass
class ComponentExtraction:
    files: dict[str, str]
    components: list[ExtractedComponent] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class _PageBlock:
    page: str
    block_id: str
    outer_html: str


def placeholder_for(block_id: str) -> str:
    return f"<!-- @component:{block_id} -->"


def _first_block(content: str, tag: str) -> tuple[str, str] | None:
    """(block id, outer html) of the first ``tag`` element, if it has an id."""
    parsed = parse_markup(content)
    el = next(parsed.root.iter(tag), None)
    if el is None:
        return None
    block_id = el.get(BLOCK_ATTR)
    if not block_id:
        return None
    return block_id, outer_html(el)


def _replace_block(content: str, block_id: str, component: str) -> str | None:
    """Swap every element with ``data-block=block_id`` for the placeholder."""
    parsed = parse_markup(content)
    matches = parsed.root.xpath(f"//*[@{BLOCK_ATTR}=$bid]", bid=block_id)
    if not matches:
        return None
    for el in matches:
        if el.getparent() is not None:
            replace_with_comment(el, f" @component:{component} ")
    return serialize(parsed)


def extract_components(
    files: Mapping[str, str],
    *,
    settings: EngineSettings | None = None,
) -> ComponentExtraction:
    """Move repeated header/footer/nav blocks into shared component files.

    Returns a new file mapping; ``files`` is left untouched. Blocks are
    keyed by their data-block ids, so assign_block_ids() should run first.
    """
    settings = settings or get_settings()
    threshold = settings.similarity_threshold
    result = dict(files)
    pages = html_pages(result)
    if len(pages) < 2:
        return ComponentExtraction(files=result)

    existing = {path for path in result if is_component_file(path)}
    extracted: list[ExtractedComponent] = []

    for tag in COMPONENT_TAGS:
        collected: list[_PageBlock] = []
        for page in pages:
            found = _first_block(result[page], tag)
            if found is not None:
                collected.append(_PageBlock(page, *found))

        if len(collected) < 2:
            continue

        reference = collected[0]
        filename = component_filename(reference.block_id)

        if filename in existing:
            # Already shared: only pull in pages that have not been converted yet
            canonical = result[filename]
            marker = placeholder_for(reference.block_id)
            for entry in collected:
                if marker in result[entry.page]:
                    continue
                if structural_similarity(canonical, entry.outer_html) < threshold:
                    continue
                updated = _replace_block(result[entry.page], entry.block_id, reference.block_id)
                if updated is not None:
                    result[entry.page] = updated
                    logger.debug("Linked %s to existing component %s", entry.page, filename)
            continue

        if not all(structural_similarity(reference.outer_html, b.outer_html) >= threshold for b in collected):
            logger.debug("Skipping <%s>: blocks differ structurally across pages", tag)
            continue

        extracted.append(
            ExtractedComponent(block_id=reference.block_id, filename=filename, content=reference.outer_html)
        )
        result[filename] = reference.outer_html
        for entry in collected:
            updated = _replace_block(result[entry.page], entry.block_id, reference.block_id)
            if updated is not None:
                result[entry.page] = updated

    if extracted:
        logger.info(
            "Extracted %d shared component(s): %s",
            len(extracted),
            ", ".join(c.filename for c in extracted),
        )
    return ComponentExtraction(files=result, components=extracted)


def expand_components(
    html: str,
    files: Mapping[str, str],
    *,
    max_passes: int | None = None,
) -> str:
    """Inline component files in place of their placeholders.

    Several passes resolve components nested in components (a header
    component holding a nav placeholder).
    """
    passes = max_passes if max_passes is not None else get_settings().max_component_passes
    components = {component_id(path): content for path, content in files.items() if is_component_file(path)}
    for _ in range(passes):
        replaced = False
        for block_id, content in components.items():
            marker = placeholder_for(block_id)
            if marker in html:
                html = html.replace(marker, content)
                replaced = True
        if not replaced:
            break
    return html
