# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for sitepatch.extraction: incremental tag-region parsers."""

from __future__ import annotations

import pytest

from sitepatch import DomAction, DomOperation, EditOperation, InsertPosition
from sitepatch.errors import ExtractorStateError
from sitepatch.extraction import (
    DomOperationExtractor,
    EditStreamExtractor,
    FileArtifactExtractor,
    HtmlStreamExtractor,
    create_extractor,
    strip_code_fences,
)
from sitepatch.extraction.base import parse_attributes, trim_partial_tag
from tests._site_helpers import chunked

ARTIFACT = (
    "Here is your site.\n"
    "<fileArtifact>\n"
    '<file path="index.html">\n```html\n<h1>Home</h1>\n```\n</file>\n'
    '<file path="styles.css">body { color: red; }</file>\n'
    "</fileArtifact>\n"
    "Let me know what to change."
)

EDITS = (
    "Updating the headline.\n"
    '<editOperations file="about.html">\n'
    "<edit><search><h1>About</h1></search><replace><h1>About us</h1></replace></edit>\n"
    '<edit expected="2"><search>blue</search><replace>rose</replace></edit>\n'
    "</editOperations>"
)

DOM_OPS = (
    '<domOperations file="index.html">\n'
    '<op selector="#hero h1" action="setText">Fresh and new</op>\n'
    '<op selector=".cta" action="replaceClass" oldClass="bg-blue-500" newClass="bg-rose-500"/>\n'
    '<op selector="a[href=&quot;/&quot;]" action="setAttribute" attr="title" value="Home"/>\n'
    '<op selector="main" action="insertAdjacentHTML" position="beforeend"><p>New</p></op>\n'
    "</domOperations>"
)


def _feed(extractor, chunks):
    result = None
    for chunk in chunks:
        result = extractor.parse(chunk)
    return result


class TestEndToEnd:
    def test_three_chunk_artifact(self):
        extractor = FileArtifactExtractor()
        chunks = ["Building your site.", '<fileArtifact><file path="index.html">', "<h1>Hi</h1></file></fileArtifact>"]

        first = extractor.parse(chunks[0])
        assert first.preamble == "Building your site."
        assert first.payload == {}
        assert not first.has_open_tag and not first.is_complete

        second = extractor.parse(chunks[1])
        assert second.has_open_tag and not second.is_complete
        assert second.payload == {"index.html": ""}

        final = extractor.parse(chunks[2])
        assert final.preamble == "Building your site."
        assert final.payload == {"index.html": "<h1>Hi</h1>"}
        assert final.is_complete


class TestFileArtifactExtractor:
    def test_complete_stream(self):
        result = FileArtifactExtractor().parse(ARTIFACT)
        assert result.is_complete
        assert result.preamble == "Here is your site."
        assert result.payload == {"index.html": "<h1>Home</h1>", "styles.css": "body { color: red; }"}

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 64])
    def test_chunking_does_not_change_result(self, size):
        whole = FileArtifactExtractor().parse(ARTIFACT)
        pieces = _feed(FileArtifactExtractor(), chunked(ARTIFACT, size))
        assert pieces.payload == whole.payload
        assert pieces.preamble == whole.preamble
        assert pieces.is_complete

    def test_partial_file_is_previewable(self):
        cut = ARTIFACT.index("body { color")
        result = FileArtifactExtractor().parse(ARTIFACT[: cut + 6])
        assert not result.is_complete
        assert result.payload["index.html"] == "<h1>Home</h1>"
        assert result.payload["styles.css"] == "body {"

    def test_partial_close_tag_trimmed(self):
        stream = '<fileArtifact><file path="a.html"><p>x</p></fi'
        assert FileArtifactExtractor().parse(stream).payload == {"a.html": "<p>x</p>"}

    def test_committed_blocks_leave_buffer(self):
        extractor = FileArtifactExtractor()
        extractor.parse('<fileArtifact><file path="a.html">A</file><file path="b.html">B')
        assert len(extractor.state.committed) == 1
        assert extractor.state.buffer == '<file path="b.html">B'

    def test_blank_path_ignored(self):
        stream = '<fileArtifact><file path=" ">x</file><file path="a.html">y</file></fileArtifact>'
        assert FileArtifactExtractor().parse(stream).payload == {"a.html": "y"}

    def test_never_closed_stays_incomplete(self):
        extractor = FileArtifactExtractor()
        result = _feed(extractor, ['<fileArtifact><file path="a.html">A</file>', "more text"])
        assert not result.is_complete
        assert result.payload == {"a.html": "A"}

    def test_completed_result_is_frozen(self):
        extractor = FileArtifactExtractor()
        done = extractor.parse('<fileArtifact><file path="a.html">A</file></fileArtifact>')
        later = extractor.parse('<file path="b.html">B</file>')
        assert later is done

    def test_reset_allows_reuse(self):
        extractor = FileArtifactExtractor()
        extractor.parse('<fileArtifact><file path="a.html">A</file></fileArtifact>')
        extractor.reset()
        result = extractor.parse('Second.<fileArtifact><file path="b.html">B</file></fileArtifact>')
        assert result.payload == {"b.html": "B"}
        assert result.preamble == "Second."

    def test_open_tag_attributes(self):
        result = FileArtifactExtractor().parse('<fileArtifact title="Bakery"><file path="a.html">x')
        assert result.attributes == {"title": "Bakery"}


class TestStreamOwnership:
    def test_other_stream_rejected(self):
        extractor = HtmlStreamExtractor()
        extractor.parse("a", stream_id="conv-1")
        with pytest.raises(ExtractorStateError, match="conv-1"):
            extractor.parse("b", stream_id="conv-2")

    def test_reset_releases_stream(self):
        extractor = HtmlStreamExtractor()
        extractor.parse("a", stream_id="conv-1")
        extractor.reset()
        extractor.parse("b", stream_id="conv-2")
        assert extractor.state.stream_id == "conv-2"

    def test_non_str_chunk(self):
        with pytest.raises(ExtractorStateError):
            HtmlStreamExtractor().parse(b"<htmlOutput>")  # type: ignore[arg-type]


class TestEditStreamExtractor:
    def test_complete_stream(self):
        result = EditStreamExtractor().parse(EDITS)
        assert result.is_complete
        assert result.preamble == "Updating the headline."
        assert result.target_file == "about.html"
        assert result.payload == [
            EditOperation("<h1>About</h1>", "<h1>About us</h1>"),
            EditOperation("blue", "rose", expected_replacements=2),
        ]

    def test_half_written_edit_not_emitted(self):
        cut = EDITS.index("<replace>rose")
        result = EditStreamExtractor().parse(EDITS[:cut])
        assert len(result.payload) == 1

    @pytest.mark.parametrize("size", [1, 5, 13])
    def test_chunked(self, size):
        result = _feed(EditStreamExtractor(), chunked(EDITS, size))
        assert result.payload == EditStreamExtractor().parse(EDITS).payload

    def test_edit_missing_replace_dropped(self):
        stream = "<editOperations><edit><search>a</search></edit></editOperations>"
        assert EditStreamExtractor().parse(stream).payload == []

    @pytest.mark.parametrize("raw", ["zero", "0", "-3"])
    def test_bad_expected_ignored(self, raw):
        stream = f'<editOperations><edit expected="{raw}"><search>a</search><replace>b</replace></edit>'
        assert EditStreamExtractor().parse(stream).payload[0].expected_replacements is None

    def test_replace_may_be_empty(self):
        stream = "<editOperations><edit><search>a</search><replace></replace></edit></editOperations>"
        assert EditStreamExtractor().parse(stream).payload == [EditOperation("a", "")]


class TestDomOperationExtractor:
    def test_complete_stream(self):
        result = DomOperationExtractor().parse(DOM_OPS)
        assert result.is_complete
        assert result.target_file == "index.html"
        assert result.payload == [
            DomOperation(selector="#hero h1", action=DomAction.SET_TEXT, value="Fresh and new"),
            DomOperation(
                selector=".cta",
                action=DomAction.REPLACE_CLASS,
                old_class="bg-blue-500",
                new_class="bg-rose-500",
            ),
            DomOperation(selector='a[href="/"]', action=DomAction.SET_ATTRIBUTE, attr="title", value="Home"),
            DomOperation(
                selector="main",
                action=DomAction.INSERT_ADJACENT_HTML,
                position=InsertPosition.BEFORE_END,
                value="<p>New</p>",
            ),
        ]

    def test_unknown_action_kept_raw(self):
        stream = '<domOperations><op selector="p" action="explode"/></domOperations>'
        (op,) = DomOperationExtractor().parse(stream).payload
        assert op.action == "explode"
        assert not isinstance(op.action, DomAction)

    def test_child_combinator_in_selector(self):
        stream = '<domOperations><op selector="main > p" action="setText">Hi</op></domOperations>'
        (op,) = DomOperationExtractor().parse(stream).payload
        assert op.selector == "main > p"
        assert op.value == "Hi"

    def test_open_op_not_emitted(self):
        stream = '<domOperations><op selector="p" action="setText">half'
        assert DomOperationExtractor().parse(stream).payload == []

    @pytest.mark.parametrize("size", [1, 4, 9])
    def test_chunked(self, size):
        result = _feed(DomOperationExtractor(), chunked(DOM_OPS, size))
        assert result.payload == DomOperationExtractor().parse(DOM_OPS).payload


class TestHtmlStreamExtractor:
    def test_fenced_document(self):
        result = HtmlStreamExtractor().parse("Sure.<htmlOutput>```html\n<p>x</p>\n```</htmlOutput>")
        assert result.payload == "<p>x</p>"
        assert result.is_complete

    def test_streaming_prefix(self):
        extractor = HtmlStreamExtractor()
        result = _feed(extractor, ["<htmlOutput><!DOCTYPE html>", "<body><h1>Hel"])
        assert result.payload == "<!DOCTYPE html><body><h1>Hel"
        assert not result.is_complete

    def test_preamble_before_open_tag(self):
        result = HtmlStreamExtractor().parse("Thinking about it")
        assert result.preamble == "Thinking about it"
        assert result.payload == ""
        assert not result.has_open_tag


class TestHelpers:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("```html\n<p>x</p>\n```", "<p>x</p>"),
            ("```\ncode\n```\n", "code"),
            ("<p>no fence</p>", "<p>no fence</p>"),
            ("```css\nbody{}", "body{}"),
            ("a ``` b", "a ``` b"),
        ],
    )
    def test_strip_code_fences(self, raw, expected):
        assert strip_code_fences(raw) == expected

    def test_parse_attributes_unescapes(self):
        assert parse_attributes(' a="1" data-x="&lt;b&gt;"') == {"a": "1", "data-x": "<b>"}

    def test_trim_partial_tag(self):
        assert trim_partial_tag("text</fil", "</file>") == "text"
        assert trim_partial_tag("a < b", "</file>") == "a < b"
        assert trim_partial_tag("text<", "</file>") == "text"

    def test_create_extractor(self):
        assert isinstance(create_extractor("files"), FileArtifactExtractor)
        with pytest.raises(ValueError, match="unknown extractor flavor"):
            create_extractor("yaml")
