"""
Tests for the colon-separated list and stanza parsing
"""

import pytest

from colon_list import attributes_to_args, parse_aix_objects, parse_colon_separated_list
from exceptions import ParseError


class TestParseColonSeparatedList:

    @pytest.mark.parametrize("items", [
        ["a"],
        ["a", "b", "c"],
        ["", "b"],
        ["a", ""],
        ["", ""],
        ["/home/alice", "ALL", "10000"],
    ])
    def test_join_and_parse_round_trip(self, items):
        assert parse_colon_separated_list(":".join(items)) == items

    def test_escaped_colon_stays_in_its_item(self):
        assert parse_colon_separated_list("a#!:b:c") == ["a:b", "c"]

    def test_empty_list_is_one_empty_item(self):
        assert parse_colon_separated_list("") == [""]

    def test_lone_separator_is_two_empty_items(self):
        assert parse_colon_separated_list(":") == ["", ""]

    def test_lone_escaped_colon_is_one_colon(self):
        assert parse_colon_separated_list("#!:") == [":"]

    def test_trailing_separator_gives_trailing_empty_item(self):
        assert parse_colon_separated_list("a:b:") == ["a", "b", ""]

    def test_escaped_colons_at_item_boundaries(self):
        assert parse_colon_separated_list("#!:a:b#!:") == [":a", "b:"]
        assert parse_colon_separated_list("a:#!:") == ["a", ":"]
        assert parse_colon_separated_list("a#!:#!:b") == ["a::b"]

    def test_several_escaped_colons(self):
        text = "name:gecos:home"
        escaped = "alice:Alice#!: Admin#!: Ops:/home/alice"
        assert parse_colon_separated_list(text) == ["name", "gecos", "home"]
        assert parse_colon_separated_list(escaped) == ["alice", "Alice: Admin: Ops", "/home/alice"]

    def test_other_separator(self):
        assert parse_colon_separated_list("a#!;b;c", sep=";") == ["a;b", "c"]


class TestParseAixObjects:

    def test_list_all_output(self):
        output = "#name:id\nalice:501\n#name:id\nbob:502\n"
        assert parse_aix_objects(output) == {
            "alice": {"id": "501"},
            "bob": {"id": "502"},
        }

    def test_attributes_keep_their_order(self):
        output = "#name:pgrp:id:home\nalice:staff:501:/home/alice\n"
        attributes = parse_aix_objects(output)["alice"]
        assert list(attributes) == ["pgrp", "id", "home"]

    def test_escaped_values(self):
        output = "#name:gecos:home\nalice:Alice#!: Admin:/home/alice\n"
        assert parse_aix_objects(output)["alice"]["gecos"] == "Alice: Admin"

    def test_stanzas_with_different_attributes(self):
        output = (
            "#name:id:admin\nsystem:0:true\n"
            "#name:id:admin:users\nstaff:1:false:alice,bob\n"
        )
        objects = parse_aix_objects(output)
        assert objects["system"] == {"id": "0", "admin": "true"}
        assert objects["staff"] == {"id": "1", "admin": "false", "users": "alice,bob"}

    def test_empty_values(self):
        output = "#name:id:users\nstaff:1:\n"
        assert parse_aix_objects(output)["staff"]["users"] == ""

    def test_missing_trailing_newline(self):
        assert parse_aix_objects("#name:id\nalice:501") == {"alice": {"id": "501"}}

    def test_empty_output(self):
        assert parse_aix_objects("") == {}

    def test_mismatched_field_counts_raise(self):
        with pytest.raises(ParseError):
            parse_aix_objects("#name:id:home\nalice:501\n")

    def test_missing_value_line_raises(self):
        with pytest.raises(ParseError):
            parse_aix_objects("#name:id\n#name:id\nbob:502\n")

    def test_extra_lines_raise(self):
        with pytest.raises(ParseError):
            parse_aix_objects("#name:id\nalice:501\nbob:502\n")

    def test_output_before_first_stanza_raises(self):
        with pytest.raises(ParseError):
            parse_aix_objects("garbage\n#name:id\nalice:501\n")

    def test_stanza_without_name_raises(self):
        with pytest.raises(ParseError):
            parse_aix_objects("#id:home\n501:/home/alice\n")


def test_attributes_to_args_keeps_insertion_order():
    attributes = {"pgrp": "staff", "id": "501", "gecos": "Alice Example"}
    assert attributes_to_args(attributes) == ["pgrp=staff", "id=501", "gecos=Alice Example"]


def test_attributes_to_args_empty():
    assert attributes_to_args({}) == []
