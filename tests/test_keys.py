from __future__ import annotations

import pytest

from tidings.errors import ParseError
from tidings.input.bindings import DEFAULT_BINDINGS, BindingTable
from tidings.input.keys import KeyChord, format_key_sequence, parse_key_sequence


def test_parse_plain_and_named_keys():
    assert KeyChord.parse("g") == KeyChord("g")
    assert KeyChord.parse("G") == KeyChord("G")
    assert KeyChord.parse("enter") == KeyChord("enter")
    assert KeyChord.parse("f12") == KeyChord("f12")


def test_parse_modifiers():
    assert KeyChord.parse("C-f") == KeyChord("f", ctrl=True)
    assert KeyChord.parse("C-M-x") == KeyChord("x", ctrl=True, alt=True)
    assert KeyChord.parse("S-tab") == KeyChord("tab", shift=True)


def test_shifted_character_is_the_uppercase_key():
    assert KeyChord.parse("S-g") == KeyChord("G")
    assert KeyChord.from_event("g", shift=True) == KeyChord("G")
    assert KeyChord.from_event(" ") == KeyChord("space")


def test_single_dash_is_a_key():
    assert KeyChord.parse("-") == KeyChord("-")
    assert KeyChord.parse("C--") == KeyChord("-", ctrl=True)


@pytest.mark.parametrize("text", ["", "gg", "C-", "X-a", "pagedown"])
def test_parse_rejects_unknown_keys(text):
    with pytest.raises(ParseError):
        KeyChord.parse(text)


def test_sequence_round_trip_text():
    sequence = parse_key_sequence("g  C-f S-tab")

    assert len(sequence) == 3
    assert format_key_sequence(sequence) == "g C-f S-tab"


def test_empty_sequence_is_rejected():
    with pytest.raises(ParseError):
        parse_key_sequence("   ")


def test_default_bindings_parse():
    table = BindingTable.defaults()

    assert len(table) == len(DEFAULT_BINDINGS)
    assert table.lookup(parse_key_sequence("o")).commands == ("open", "read", "nextunread")


def test_overrides_replace_and_unbind_with_nop():
    table = BindingTable.defaults({"q": "nop", "g x": ["sort title", "gotofirst"]})

    assert table.lookup(parse_key_sequence("q")).commands == ("nop",)
    assert table.lookup(parse_key_sequence("g x")).commands == ("sort title", "gotofirst")


def test_lookup_reports_prefixes_and_dead_ends():
    table = BindingTable.from_mapping({"g g": "gotofirst", "j": "down"})

    prefix = table.lookup(parse_key_sequence("g"))
    assert prefix.commands is None
    assert prefix.has_continuations is True
    assert not prefix.is_dead_end

    assert table.lookup(parse_key_sequence("x")).is_dead_end
    assert table.lookup(parse_key_sequence("j j")).is_dead_end


def test_unbind_prunes_prefix():
    table = BindingTable.from_mapping({"g g": "gotofirst"})

    assert table.unbind(parse_key_sequence("g g")) is True
    assert table.lookup(parse_key_sequence("g")).is_dead_end
    assert table.unbind(parse_key_sequence("g g")) is False


def test_continuations_list_relative_keys_shortest_first():
    table = BindingTable.from_mapping({"g g": "gotofirst", "g f": "focus feeds", "g x y": "nop", "j": "down"})

    hints = table.continuations(parse_key_sequence("g"))

    assert [format_key_sequence(keys) for keys, _ in hints] == ["f", "g", "x y"]
    assert hints[0][1] == ("focus feeds",)
