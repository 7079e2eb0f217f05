"""Unit tests for player-name normalization and team mapping."""

import pytest

from qlview.identity import clean_player_name, identity_key, team_name


class TestCleanPlayerName:
    def test_strips_color_codes(self):
        assert clean_player_name("^1Player^7Name") == "PlayerName"

    def test_strips_multi_digit_codes_and_whitespace(self):
        assert clean_player_name("  ^12Foo^0 ") == "Foo"

    def test_plain_name_unchanged(self):
        assert clean_player_name("anarki") == "anarki"

    def test_caret_without_digit_is_kept(self):
        assert clean_player_name("^_^face") == "^_^face"

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_input(self, value):
        assert clean_player_name(value) == ""


class TestIdentityKey:
    def test_differently_formatted_names_share_a_key(self):
        assert identity_key("^1FoO") == identity_key("foo") == "foo"


class TestTeamName:
    @pytest.mark.parametrize(
        "team,expected",
        [(1, "red"), (2, "blue"), (3, "spectator"), (0, "free"), (None, "free"), (9, "free")],
    )
    def test_mapping(self, team, expected):
        assert team_name(team) == expected
