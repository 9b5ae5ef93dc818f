# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for sitepatch.dom_operations: selector-addressed edits."""

from __future__ import annotations

import pytest

from sitepatch import DomAction, DomOperation, InsertPosition
from sitepatch.dom_operations import apply_dom_operations
from sitepatch.errors import ErrorKind
from tests._site_helpers import page


def _op(selector, action, **kwargs):
    return DomOperation(selector=selector, action=action, **kwargs)


def _apply_one(html, selector, action, **kwargs):
    result = apply_dom_operations(html, [_op(selector, action, **kwargs)])
    return result, result.results[0]


class TestCardinality:
    def test_two_buttons_set_text_is_ambiguous(self):
        html = "<div><button>A</button><button>B</button></div>"
        result, outcome = _apply_one(html, "button", DomAction.SET_TEXT, value="Go")
        assert not outcome.success
        assert outcome.error_kind is ErrorKind.SELECTOR_AMBIGUOUS
        assert "matched 2 elements" in outcome.error
        assert "more specific selector" in outcome.error
        assert result.html == html

    def test_class_actions_touch_every_match(self):
        html = '<ul><li class="item">1</li><li class="item">2</li></ul>'
        result, outcome = _apply_one(html, ".item", DomAction.ADD_CLASS, value="active")
        assert outcome.success
        assert result.html.count('class="item active"') == 2

    def test_not_found_suggests_same_tag(self):
        html = '<div><p class="lead intro extra">x</p><p id="note">y</p></div>'
        _, outcome = _apply_one(html, "p.missing", DomAction.SET_TEXT, value="z")
        assert outcome.error_kind is ErrorKind.SELECTOR_NOT_FOUND
        assert "matched 0 elements" in outcome.error
        assert "Similar elements: p.lead.intro, p#note" in outcome.error

    def test_suggestions_capped_at_five(self):
        html = "".join(f'<p id="p{i}">{i}</p>' for i in range(8))
        _, outcome = _apply_one(html, "p.nope", DomAction.REMOVE)
        assert outcome.error.count("p#p") == 5

    def test_no_suggestions_without_leading_tag(self):
        _, outcome = _apply_one("<p>x</p>", "#missing", DomAction.REMOVE)
        assert outcome.error == 'Selector "#missing" matched 0 elements.'

    def test_fragment_wrapper_is_not_selectable(self):
        _, outcome = _apply_one("<p>x</p>", "div", DomAction.REMOVE)
        assert outcome.error_kind is ErrorKind.SELECTOR_NOT_FOUND

    @pytest.mark.parametrize("selector", ["div > p", "* > p", "div p", ":empty ~ p, div > p"])
    def test_fragment_combinators_do_not_reach_wrapper(self, selector):
        result, outcome = _apply_one("<p>x</p>", selector, DomAction.SET_TEXT, value="y")
        assert outcome.error_kind is ErrorKind.SELECTOR_NOT_FOUND
        assert result.html == "<p>x</p>"

    def test_fragment_combinators_inside_markup(self):
        html = '<nav><a href="/">Home</a></nav><p class="x">1</p><p>2</p>'
        result, outcome = _apply_one(html, "nav > a", DomAction.SET_TEXT, value="Start")
        assert outcome.success
        assert '<a href="/">Start</a>' in result.html

        result, outcome = _apply_one(html, "nav ~ p.x + p", DomAction.SET_TEXT, value="two")
        assert outcome.success
        assert result.html.endswith("<p>two</p>")

    def test_fragment_sibling_match_counted_once(self):
        html = "<h2>a</h2><h2>b</h2><p>x</p>"
        _, outcome = _apply_one(html, "h2 ~ p", DomAction.SET_TEXT, value="y")
        assert outcome.success

    def test_invalid_selector(self):
        _, outcome = _apply_one("<p>x</p>", "p[", DomAction.REMOVE)
        assert outcome.error_kind is ErrorKind.INVALID_SELECTOR


class TestActions:
    def test_set_attribute(self):
        result, _ = _apply_one('<a id="l" href="/">x</a>', "#l", DomAction.SET_ATTRIBUTE, attr="href", value="/new")
        assert result.html == '<a id="l" href="/new">x</a>'

    def test_set_attribute_empty_value_allowed(self):
        result, outcome = _apply_one('<input id="i">', "#i", DomAction.SET_ATTRIBUTE, attr="placeholder", value="")
        assert outcome.success
        assert 'placeholder=""' in result.html

    def test_set_text_escapes(self):
        result, _ = _apply_one('<p id="t">old</p>', "#t", DomAction.SET_TEXT, value="<b>bold</b>")
        assert result.html == '<p id="t">&lt;b&gt;bold&lt;/b&gt;</p>'

    def test_set_html_is_raw(self):
        result, _ = _apply_one('<p id="t">old</p>', "#t", DomAction.SET_HTML, value="<b>bold</b>")
        assert result.html == '<p id="t"><b>bold</b></p>'

    def test_remove_class_drops_empty_attribute(self):
        result, _ = _apply_one('<p class="a">x</p>', "p", DomAction.REMOVE_CLASS, value="a")
        assert result.html == "<p>x</p>"

    def test_add_class_no_duplicates(self):
        result, _ = _apply_one('<p class="a">x</p>', "p", DomAction.ADD_CLASS, value="a b")
        assert result.html == '<p class="a b">x</p>'

    def test_replace_class(self):
        html = '<a class="btn bg-blue-500 px-4">Go</a>'
        result, _ = _apply_one(html, ".btn", DomAction.REPLACE_CLASS, old_class="bg-blue-500", new_class="bg-rose-500")
        assert result.html == '<a class="btn px-4 bg-rose-500">Go</a>'

    def test_remove_keeps_following_text(self):
        result, _ = _apply_one('<div><p id="a">x</p>after<p id="b">y</p></div>', "#a", DomAction.REMOVE)
        assert result.html == '<div>after<p id="b">y</p></div>'

    def test_remove_document_root(self):
        _, outcome = _apply_one(page("<p>x</p>"), "html", DomAction.REMOVE)
        assert outcome.error_kind is ErrorKind.OPERATION_FAILED

    def test_insert_adjacent_all_positions(self):
        html = '<section><div id="t"><span>mid</span></div></section>'
        ops = [
            _op("#t", DomAction.INSERT_ADJACENT_HTML, position=InsertPosition.BEFORE_BEGIN, value="<p>1</p>"),
            _op("#t", DomAction.INSERT_ADJACENT_HTML, position=InsertPosition.AFTER_BEGIN, value="<i>2</i>"),
            _op("#t", DomAction.INSERT_ADJACENT_HTML, position=InsertPosition.BEFORE_END, value="<b>3</b>"),
            _op("#t", DomAction.INSERT_ADJACENT_HTML, position=InsertPosition.AFTER_END, value="<hr>"),
        ]
        result = apply_dom_operations(html, ops)
        assert result.all_succeeded
        assert result.html == '<section><p>1</p><div id="t"><i>2</i><span>mid</span><b>3</b></div><hr></section>'

    def test_insert_before_top_level_fragment_element(self):
        result, _ = _apply_one(
            '<p id="a">x</p>', "#a", DomAction.INSERT_ADJACENT_HTML, position="beforebegin", value="<h2>T</h2>"
        )
        assert result.html == '<h2>T</h2><p id="a">x</p>'

    def test_insert_bad_position(self):
        _, outcome = _apply_one("<p>x</p>", "p", DomAction.INSERT_ADJACENT_HTML, position="middle", value="<i></i>")
        assert outcome.error_kind is ErrorKind.OPERATION_FAILED
        assert "beforebegin" in outcome.error

    def test_unknown_action(self):
        _, outcome = _apply_one("<p>x</p>", "p", "explode")
        assert outcome.error_kind is ErrorKind.UNKNOWN_ACTION
        assert "explode" in outcome.error

    @pytest.mark.parametrize(
        ("action", "kwargs"),
        [
            (DomAction.SET_ATTRIBUTE, {"value": "x"}),
            (DomAction.SET_ATTRIBUTE, {"attr": "title"}),
            (DomAction.SET_TEXT, {}),
            (DomAction.SET_HTML, {}),
            (DomAction.ADD_CLASS, {"value": "  "}),
            (DomAction.REMOVE_CLASS, {}),
            (DomAction.REPLACE_CLASS, {"old_class": "a"}),
            (DomAction.INSERT_ADJACENT_HTML, {"value": "<i></i>"}),
            (DomAction.INSERT_ADJACENT_HTML, {"position": "afterend"}),
        ],
    )
    def test_missing_parameter(self, action, kwargs):
        result, outcome = _apply_one('<p class="a">x</p>', "p", action, **kwargs)
        assert outcome.error_kind is ErrorKind.MISSING_PARAMETER
        assert result.html == '<p class="a">x</p>'


class TestPartialSuccess:
    def test_later_operations_see_earlier_effects(self):
        html = '<button class="btn">Buy</button>'
        ops = [
            _op(".btn", DomAction.ADD_CLASS, value="primary"),
            _op("button.primary", DomAction.SET_TEXT, value="Buy now"),
        ]
        result = apply_dom_operations(html, ops)
        assert result.all_succeeded
        assert result.html == '<button class="btn primary">Buy now</button>'

    def test_failures_are_itemized(self):
        html = '<h1 id="t">Old</h1><p>a</p><p>b</p>'
        ops = [
            _op("#t", DomAction.SET_TEXT, value="New"),
            _op("p", DomAction.SET_TEXT, value="x"),
            _op("#nope", DomAction.REMOVE),
            _op("h1", DomAction.SET_ATTRIBUTE, attr="class", value="title"),
        ]
        result = apply_dom_operations(html, ops)
        assert [r.success for r in result.results] == [True, False, False, True]
        assert [r.index for r in result.results] == [0, 1, 2, 3]
        assert result.applied_count == 2
        assert result.html == '<h1 id="t" class="title">New</h1><p>a</p><p>b</p>'
        assert [r.index for r in result.failures] == [1, 2]

    def test_to_dict(self):
        data = apply_dom_operations("<p>x</p>", [_op("#nope", DomAction.REMOVE)]).to_dict()
        assert data["applied_count"] == 0
        assert data["results"][0]["error_kind"] == "selector_not_found"


class TestDocuments:
    def test_document_keeps_doctype_and_head(self):
        html = page('<section id="hero"><h1>Hi</h1></section>', title="Home")
        result, outcome = _apply_one(html, "#hero h1", DomAction.SET_TEXT, value="Hello")
        assert outcome.success
        assert result.html.startswith("<!DOCTYPE html>")
        assert "<title>Home</title>" in result.html
        assert "<h1>Hello</h1>" in result.html

    def test_byte_order_mark_document_keeps_structure(self):
        html = "\ufeff<!DOCTYPE html><html><head><title>T</title></head><body><h1>Hi</h1></body></html>"
        result, outcome = _apply_one(html, "h1", DomAction.SET_TEXT, value="Yo")
        assert outcome.success
        assert result.html.startswith("\ufeff<!DOCTYPE html>")
        assert "<head><title>T</title></head>" in result.html
        assert "<body><h1>Yo</h1></body>" in result.html

    def test_normalized_output_is_stable(self):
        html = page("<img src=a.png><br/><p class='x'>t</p>")
        first = apply_dom_operations(html, [_op("p", DomAction.ADD_CLASS, value="y")]).html
        second = apply_dom_operations(first, [_op("p", DomAction.ADD_CLASS, value="y")]).html
        assert second == first
