# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Stable data-block ids for semantic page regions.

Every nav/header/main/section/footer/aside inside a page's <body> carries
a ``data-block`` attribute once assign_block_ids() has run. Existing ids
are never touched, so re-running on unchanged content is a no-op and a
file without missing ids comes back byte-identical.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from sitepatch.files import is_page_file
from sitepatch.html_tree import parse_markup, serialize

logger = logging.getLogger(__name__)

BLOCK_ATTR = "data-block"
SEMANTIC_TAGS = ("nav", "header", "main", "section", "footer", "aside")


@dataclass(frozen=True, slots=True)
class Block:
    block_id: str
    tag: str
    file: str = ""


@dataclass
class BlockAssignment:
    files: dict[str, str]
    assigned: list[str] = field(default_factory=list)  # "<file>: <tag> -> <id>"


def block_selector(block_id: str) -> str:
    escaped = block_id.replace("\\", "\\\\").replace('"', '\\"')
    return f'[{BLOCK_ATTR}="{escaped}"]'


def list_blocks(html: str, file: str = "") -> list[Block]:
    """Elements carrying a data-block id, in document order."""
    parsed = parse_markup(html)
    return [
        Block(block_id=el.get(BLOCK_ATTR), tag=el.tag, file=file)
        for el in parsed.root.iter()
        if isinstance(el.tag, str) and el.get(BLOCK_ATTR)
    ]


def _assign_in_page(content: str) -> tuple[str | None, list[tuple[str, str]]]:
    """Return (new content or None when unchanged, [(tag, id), ...])."""
    parsed = parse_markup(content)
    root = parsed.root
    used = {el.get(BLOCK_ATTR) for el in root.iter() if isinstance(el.tag, str) and el.get(BLOCK_ATTR)}

    scope = root.find("body") if parsed.is_document else root
    if scope is None:
        scope = root

    counters: dict[str, int] = {}
    assigned: list[tuple[str, str]] = []
    for el in scope.iter(*SEMANTIC_TAGS):
        if el is scope or el.get(BLOCK_ATTR):
            continue
        tag = el.tag
        counters[tag] = counters.get(tag, 0) + 1
        block_id = tag
        if block_id in used:
            block_id = f"{tag}-{counters[tag]}"
        while block_id in used:
            counters[tag] += 1
            block_id = f"{tag}-{counters[tag]}"
        el.set(BLOCK_ATTR, block_id)
        used.add(block_id)
        assigned.append((tag, block_id))

    if not assigned:
        return None, []
    return serialize(parsed), assigned


def assign_block_ids(files: Mapping[str, str]) -> BlockAssignment:
    """Give every semantic region in every page a data-block id.

    Returns a new mapping; ``files`` is left untouched.
    """
    result = dict(files)
    log_lines: list[str] = []
    for path, content in files.items():
        if not is_page_file(path):
            continue
        updated, assigned = _assign_in_page(content)
        if updated is None:
            continue
        result[path] = updated
        log_lines.extend(f"{path}: {tag} -> {block_id}" for tag, block_id in assigned)

    if log_lines:
        logger.info("Assigned %d block id(s) across %d file(s)", len(log_lines), len(files))
    return BlockAssignment(files=result, assigned=log_lines)
