"""
Syntax repair: sanitizer passes, truncation repair and fenced-block extraction.
"""
from __future__ import annotations

import json
import time

import pytest

from citydef.core.parser import CityDefParseError, decode_json, load_document
from citydef.core.sanitizer import extract_citydef_blocks, sanitize_json, try_repair_json


# ---------------------------------------------------------------------
# sanitize_json
# ---------------------------------------------------------------------
MESSY_SAMPLES = [
    '{"name": "Dusty // Gulch", // trailing\n "streets": [] /* block */}',
    "{'name': 'Red Rock', 'edit': true}",
    '{"name": "A", "streets": [1, 2, ], }',
    '{"name": "Line\nBreak\tTab"}',
    '{"name": "Tombstone}',
    "{'a': 'b\"c', // x\n}",
    '{"name": "Rosie\'s Saloon"}',
    "",
    "not json at all",
    "}}]]{{[[",
    '"\\',
    "/* never closed",
]


@pytest.mark.parametrize("text", MESSY_SAMPLES)
def test_sanitize_is_idempotent(text):
    once = sanitize_json(text)
    assert sanitize_json(once) == once


@pytest.mark.parametrize("text", [None, "", "   ", "\x00\x01", "'", "\"", "{'", 12345])
def test_sanitize_is_total(text):
    assert isinstance(sanitize_json(text), str)


def test_comments_are_stripped_but_not_inside_strings():
    out = sanitize_json(MESSY_SAMPLES[0])
    assert json.loads(out) == {"name": "Dusty // Gulch", "streets": []}


def test_single_quotes_become_double_quotes():
    assert json.loads(sanitize_json(MESSY_SAMPLES[1])) == {"name": "Red Rock", "edit": True}


def test_double_quote_inside_single_quoted_literal_is_escaped():
    assert json.loads(sanitize_json(MESSY_SAMPLES[5])) == {"a": 'b"c'}


def test_apostrophe_inside_double_quoted_string_is_kept():
    assert json.loads(sanitize_json(MESSY_SAMPLES[6])) == {"name": "Rosie's Saloon"}


def test_trailing_commas_are_removed():
    assert json.loads(sanitize_json(MESSY_SAMPLES[2])) == {"name": "A", "streets": [1, 2]}


def test_raw_control_characters_are_escaped():
    assert json.loads(sanitize_json(MESSY_SAMPLES[3])) == {"name": "Line\nBreak\tTab"}


def test_unterminated_string_is_closed_before_brace():
    assert json.loads(sanitize_json(MESSY_SAMPLES[4])) == {"name": "Tombstone"}


def test_valid_json_passes_through_unchanged():
    text = json.dumps({"name": "Deadwood", "streets": [{"name": "Main", "length": 40}]})
    assert sanitize_json(text) == text


# ---------------------------------------------------------------------
# Truncation repair
# ---------------------------------------------------------------------
TRUNCATED = (
    '{"name": "Deadwood", "streets": [{"name": "Main", "length": 60}], '
    '"buildings": [{"name": "Saloon", "zone": "Saloon", "side": "Left"}, {"name": "Ba'
)


def test_repair_recovers_truncated_document():
    repaired = try_repair_json(TRUNCATED)
    assert repaired is not None
    data = json.loads(repaired)
    assert data["name"] == "Deadwood"
    assert [b["name"] for b in data["buildings"]] == ["Saloon"]
    assert data["streets"][0]["length"] == 60


@pytest.mark.parametrize("text", ["", "no braces here at all, none", '{"streets": [{"a": 1}], "x": [{"b": 2}'])
def test_repair_gives_up_without_named_object(text):
    assert try_repair_json(text) is None


def test_repair_of_large_truncated_document_is_fast():
    text = '{"name": "Big", "buildings": [' + '{"name": "B", "zone": "Bank"}, ' * 5000 + '{"na'
    start = time.perf_counter()
    repaired = try_repair_json(text)
    assert time.perf_counter() - start < 5.0
    assert len(json.loads(repaired)["buildings"]) == 5000


def test_repair_cost_is_bounded_on_hopeless_input():
    text = '{"name":"X","a":[' + '{"k":"v"} x,' * 3000
    start = time.perf_counter()
    assert try_repair_json(text) is None
    assert time.perf_counter() - start < 5.0


def test_decode_falls_back_to_repair():
    data, accepted = decode_json(TRUNCATED)
    assert data["name"] == "Deadwood"
    assert json.loads(accepted) == data


def test_unrecoverable_text_raises_parse_error():
    with pytest.raises(CityDefParseError, match="JSON parse error"):
        decode_json("not json at all")


@pytest.mark.parametrize("text", ["[1, 2, 3]", '{"streets": []}', '{"name": ""}', "null"])
def test_load_document_requires_named_object(text):
    with pytest.raises(CityDefParseError):
        load_document(text)


# ---------------------------------------------------------------------
# Fenced blocks in generator responses
# ---------------------------------------------------------------------
def test_extract_blocks_keeps_only_town_documents(make_town):
    response = (
        "Here is your town:\n"
        f"```citydef\n{make_town('First')}\n```\n"
        "and some code:\n"
        "```python\nprint('hello there, world')\n```\n"
        f"```JSON\n{make_town('Second')}\n```\n"
        '```json\n{"unrelated": "object without a town"}\n```\n'
    )
    blocks = extract_citydef_blocks(response)
    assert [json.loads(b)["name"] for b in blocks] == ["First", "Second"]


@pytest.mark.parametrize("response", ["", "plain chat reply", "```citydef\n{\"name\": \"unclosed fence\", \"streets\": []}"])
def test_extract_blocks_without_complete_fence(response):
    assert extract_citydef_blocks(response) == []
