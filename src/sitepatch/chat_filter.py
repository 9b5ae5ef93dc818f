# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Strip structured regions from assistant text before it is shown in chat.

Works on partial streams: an unterminated region hides everything after
its opening tag, and a trailing fragment that could still grow into an
opening tag (``<editOp``) is held back rather than flashed to the user.
"""

from __future__ import annotations

STRUCTURED_TAGS: tuple[tuple[str, str], ...] = (
    ("<fileartifact>", "</fileartifact>"),
    ("<editoperations>", "</editoperations>"),
    ("<domoperations>", "</domoperations>"),
    ("<htmloutput>", "</htmloutput>"),
)

_LONGEST_OPEN_TAG = max(len(open_tag) for open_tag, _ in STRUCTURED_TAGS)


def _open_tag_at(lowered: str, index: int) -> tuple[str, str] | None:
    for open_tag, close_tag in STRUCTURED_TAGS:
        bare = open_tag[:-1]
        if lowered.startswith(bare, index):
            after = index + len(bare)
            if after < len(lowered) and (lowered[after] == ">" or lowered[after].isspace()):
                return open_tag, close_tag
    return None


def _is_partial_open_tag(lowered_tail: str) -> bool:
    return any(open_tag.startswith(lowered_tail) for open_tag, _ in STRUCTURED_TAGS)


def strip_structured_tags(text: str) -> str:
    """Return only the narration parts of an assistant message, stripped."""
    lowered = text.lower()
    output: list[str] = []
    i = 0
    length = len(text)

    while i < length:
        if text[i] != "<":
            next_tag = text.find("<", i)
            end = length if next_tag == -1 else next_tag
            output.append(text[i:end])
            i = end
            continue

        closing = next((c for _, c in STRUCTURED_TAGS if lowered.startswith(c, i)), None)
        if closing is not None:
            # stray close tag
            i += len(closing)
            continue

        opened = _open_tag_at(lowered, i)
        if opened is not None:
            close_index = lowered.find(opened[1], i)
            if close_index == -1:
                break
            i = close_index + len(opened[1])
            continue

        if length - i < _LONGEST_OPEN_TAG and _is_partial_open_tag(lowered[i:]):
            break

        output.append("<")
        i += 1

    return "".join(output).strip()
