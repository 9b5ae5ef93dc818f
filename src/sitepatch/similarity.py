# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Structural skeletons and a position-sensitive similarity score.

Two navs with different link labels but the same markup shape reduce to
the same skeleton. The score compares skeleton characters index by index,
so an extra wrapper element early in a block costs far more than its
real edit distance. Callers treat it as a conservative near-duplicate
test, not a distance metric.
"""

from __future__ import annotations

import re

from sitepatch.config import DEFAULT_SIMILARITY_THRESHOLD as SIMILARITY_THRESHOLD

_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_TEXT_BETWEEN_TAGS_RE = re.compile(r">[^<]+<")
_OPEN_TAG_RE = re.compile(r"<(\w+)(\s[^>]*)?>")
_WS_RE = re.compile(r"\s+")

# Attributes that describe structure; everything else is content.
_STRUCTURAL_ATTRS = (
    ("class", re.compile(r'\bclass="([^"]*)"')),
    ("id", re.compile(r'\bid="([^"]*)"')),
    ("data-block", re.compile(r'\bdata-block="([^"]*)"')),
)


def _reduce_tag(match: re.Match) -> str:
    tag, attrs = match.group(1), match.group(2)
    if not attrs:
        return f"<{tag}>"
    kept = []
    for name, pattern in _STRUCTURAL_ATTRS:
        m = pattern.search(attrs)
        if m:
            kept.append(f'{name}="{m.group(1)}"')
    if not kept:
        return f"<{tag}>"
    return f"<{tag} {' '.join(kept)}>"


def structural_skeleton(html: str) -> str:
    """Reduce markup to tags plus class/id/data-block attributes."""
    skeleton = _COMMENT_RE.sub("", html)
    skeleton = _TEXT_BETWEEN_TAGS_RE.sub("><", skeleton)
    skeleton = _OPEN_TAG_RE.sub(_reduce_tag, skeleton)
    return _WS_RE.sub(" ", skeleton).strip()


def skeleton_similarity(skel_a: str, skel_b: str) -> float:
    if skel_a == skel_b:
        return 1.0
    longest = max(len(skel_a), len(skel_b))
    matches = sum(1 for a, b in zip(skel_a, skel_b) if a == b)
    return matches / longest


def structural_similarity(a: str, b: str) -> float:
    """Score two HTML fragments in [0, 1] by their structural skeletons."""
    return skeleton_similarity(structural_skeleton(a), structural_skeleton(b))
