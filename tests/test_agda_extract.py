"""Tests for goal/diagnostic extraction."""

from agda_cli.agda_extract import (
    Diagnostic, Extractor, Goal, NO_OUTPUT, extract_items, normal_form, normal_form_text,
)
from agda_cli.agda_file_parser import Hole, SourceRange
from agda_cli.agda_response import TextResponse, decode_json

from fake_agda import error_json, goal_json, normal_form_json


def test_goal_and_diagnostic_in_discovery_order():
    output = "\n".join([
        goal_json(0, 8, 12, 19, "Nat", [("n", "Nat")]),
        error_json("/tmp/A.agda:7,5-8\nSet !=< Nat"),
        goal_json(1, 11, 10, 15, "Nat -> Nat"),
    ])
    items = extract_items(decode_json(output))
    assert items == [
        Goal(0, SourceRange(8, 12, 8, 19), "Nat", (("n", "Nat"),)),
        Diagnostic("/tmp/A.agda:7,5-8\nSet !=< Nat", "/tmp/A.agda", SourceRange(7, 5, 7, 8)),
        Goal(1, SourceRange(11, 10, 11, 15), "Nat -> Nat", ()),
    ]


def test_diagnostics_deduplicated_first_wins():
    messages = ["a.agda:1,1-2\nX", "a.agda:2,1-2\nY", "a.agda:1,1-2\nX", "a.agda:3,1-2\nZ", "a.agda:2,1-2\nY"]
    output = "\n".join(error_json(m) for m in messages)
    items = extract_items(decode_json(output))
    assert [d.message for d in items] == ["a.agda:1,1-2\nX", "a.agda:2,1-2\nY", "a.agda:3,1-2\nZ"]


def test_dedup_spans_feeds_within_one_run():
    extractor = Extractor()
    extractor.feed_json(decode_json(error_json("dup")))
    extractor.feed_json(decode_json(error_json("dup")))
    assert len(extractor.diagnostics) == 1

    # A new run starts fresh
    assert len(extract_items(decode_json(error_json("dup")))) == 1


def test_diagnostic_without_location():
    diag = Diagnostic.from_message("Failed to find source of module Foo")
    assert diag.range is None
    assert diag.source_file == "Failed to find source of module Foo"


def test_text_error_response():
    extractor = Extractor()
    extractor.feed_text([
        TextResponse("agda2-info-action", ("*Error*", "/tmp/A.agda:3,5-8\nNot in scope:\n  foo at x")),
        TextResponse("agda2-info-action", ("*Error*", "/tmp/A.agda:3,5-8\nNot in scope:\n  foo at x")),
    ])
    assert len(extractor.items) == 1
    assert extractor.diagnostics[0].range == SourceRange(3, 5, 3, 8)


def test_text_goal_block():
    body = "Goal: Nat\nHave: Nat\n————————————————————————————————\nn : Nat\nm   : Nat -> Nat\n\nweird line"
    extractor = Extractor()
    hole = Hole(id=2, line=4, column=5, hint="?")
    extractor.feed_text([TextResponse("agda2-info-action", ("*Goal type etc.*", body))], hole)

    assert extractor.items == [Goal(
        hole_id=2,
        range=None,
        type_text="Nat",
        context=(("n", "Nat"), ("m", "Nat -> Nat"), ("weird line", "")),
    )]


def test_text_non_goal_responses_ignored():
    extractor = Extractor()
    extractor.feed_text([
        TextResponse("agda2-info-action", ("*Type-checking*", "")),
        TextResponse("agda2-info-action", ("*All Goals*", "?0 : Nat\n?1 : Nat")),
    ])
    assert extractor.items == []


def test_normal_form():
    assert normal_form(decode_json(normal_form_json("suc (suc zero)"))) == "suc (suc zero)"
    assert normal_form(decode_json(error_json("oops"))) == NO_OUTPUT
    assert normal_form_text([TextResponse("agda2-info-action", ("*Normal Form*", "zero"))]) == "zero"
    assert normal_form_text([]) == NO_OUTPUT
