# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""lxml parsing, serialization and mutation helpers.

Full documents (doctype, <html>, or a bare <head>/<body> page) are parsed
as documents and serialized back with their doctype. Anything else is
parsed as a fragment inside a synthetic wrapper element and serialized as
that wrapper's inner markup, so component files and snippets round-trip
without gaining <html>/<body>. The wrapper's tag name is not an HTML tag,
so no type selector can name it.

A leading byte order mark is set aside before parsing and written back
in front of the serialized markup.

First parse normalizes formatting (attribute quoting, void tags); the
normalized form is stable under further parse/serialize cycles.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import lxml.html
from lxml import etree

_BOM = "\ufeff"

_DOCUMENT_RE = re.compile(
    r"^\ufeff?\s*(?:<!--.*?-->\s*)*<(?:!doctype|html|head|body)[\s>]",
    re.IGNORECASE | re.DOTALL,
)

FRAGMENT_WRAPPER = "sitepatch-fragment"


@dataclass(slots=True)
class ParsedMarkup:
    """A mutable tree plus what is needed to serialize it back."""

    root: lxml.html.HtmlElement
    is_document: bool
    doctype: str = ""
    bom: str = ""


def looks_like_document(markup: str) -> bool:
    return bool(_DOCUMENT_RE.match(markup))


def parse_markup(markup: str) -> ParsedMarkup:
    """Parse a page or a fragment into a mutable tree."""
    bom = _BOM if markup.startswith(_BOM) else ""
    text = markup[len(bom) :]
    if looks_like_document(text):
        root = lxml.html.document_fromstring(text)
        doctype = root.getroottree().docinfo.doctype or ""
        return ParsedMarkup(root=root, is_document=True, doctype=doctype, bom=bom)
    root = lxml.html.fragment_fromstring(text, create_parent=FRAGMENT_WRAPPER)
    return ParsedMarkup(root=root, is_document=False, bom=bom)


def serialize(parsed: ParsedMarkup) -> str:
    if not parsed.is_document:
        return parsed.bom + inner_html(parsed.root)
    body = lxml.html.tostring(parsed.root, encoding="unicode", method="html")
    if parsed.doctype:
        return f"{parsed.bom}{parsed.doctype}\n{body}"
    return parsed.bom + body


def outer_html(el: lxml.html.HtmlElement) -> str:
    return lxml.html.tostring(el, encoding="unicode", method="html", with_tail=False)


def inner_html(el: lxml.html.HtmlElement) -> str:
    parts = [_escape_text(el.text)] if el.text else []
    parts.extend(lxml.html.tostring(child, encoding="unicode", method="html") for child in el)
    return "".join(parts)


def _escape_text(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def parse_fragment(markup: str) -> tuple[str, list]:
    """Parse raw markup into (leading text, top-level nodes).

    Each node keeps its own tail text, so inserting the nodes in order
    reproduces the fragment.
    """
    wrapper = lxml.html.fragment_fromstring(markup, create_parent=FRAGMENT_WRAPPER)
    return wrapper.text or "", list(wrapper)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def _append_text_before(el: etree._Element, text: str) -> None:
    """Append text immediately before ``el`` (previous tail or parent text)."""
    if not text:
        return
    prev = el.getprevious()
    if prev is not None:
        prev.tail = (prev.tail or "") + text
    else:
        parent = el.getparent()
        parent.text = (parent.text or "") + text


def clear_children(el: etree._Element) -> None:
    for child in list(el):
        el.remove(child)
    el.text = None


def set_text(el: etree._Element, value: str) -> None:
    """Replace all content with a single text node (markup is escaped on output)."""
    clear_children(el)
    el.text = value


def set_inner_html(el: etree._Element, markup: str) -> None:
    leading, nodes = parse_fragment(markup)
    clear_children(el)
    el.text = leading or None
    for node in nodes:
        el.append(node)


def insert_adjacent(el: etree._Element, position: str, markup: str) -> None:
    """DOM insertAdjacentHTML semantics on an lxml element.

    Raises ValueError for an unknown position or for sibling insertion
    next to the tree root.
    """
    leading, nodes = parse_fragment(markup)

    if position == "afterbegin":
        original_text = el.text or ""
        el.text = leading or None
        for offset, node in enumerate(nodes):
            el.insert(offset, node)
        if nodes:
            nodes[-1].tail = (nodes[-1].tail or "") + original_text or None
        else:
            el.text = leading + original_text or None
        return

    if position == "beforeend":
        if len(el):
            last = el[-1]
            last.tail = (last.tail or "") + leading or None
        else:
            el.text = (el.text or "") + leading or None
        for node in nodes:
            el.append(node)
        return

    if position not in ("beforebegin", "afterend"):
        raise ValueError(f"unknown insert position: {position!r}")
    if el.getparent() is None:
        raise ValueError(f"cannot insert {position} the document root")

    if position == "beforebegin":
        _append_text_before(el, leading)
        for node in nodes:
            el.addprevious(node)
        return

    original_tail = el.tail or ""
    el.tail = leading or None
    anchor = el
    for node in nodes:
        anchor.addnext(node)
        anchor = node
    if nodes:
        nodes[-1].tail = (nodes[-1].tail or "") + original_tail or None
    else:
        el.tail = leading + original_tail or None


def remove_element(el: lxml.html.HtmlElement) -> None:
    """Detach ``el`` and its subtree, keeping the text that followed it."""
    el.drop_tree()


def replace_with_comment(el: etree._Element, comment_text: str) -> etree._Element:
    """Swap ``el`` for an HTML comment, preserving the tail text."""
    comment = etree.Comment(comment_text)
    comment.tail = el.tail
    el.getparent().replace(el, comment)
    return comment
