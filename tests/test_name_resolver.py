"""Tests for canonical team identifiers."""

import logging

from football_stats.name_resolver import (
    _alias_log_throttle,
    _DISPLAY_NAMES,
    canonical_team_id,
    display_spellings_for,
    distinct_teams,
    get_all_aliases_for,
    same_team,
)


def test_atletico_spellings():
    names = ["Atlético Madrid", "Ath Madrid", "ATLETICO DE MADRID", "  atleti "]
    for name in names:
        assert canonical_team_id(name) == "atletico madrid"


def test_manchester_united_spellings():
    for name in ["Man United", "Man Utd", "Manchester United"]:
        assert canonical_team_id(name) == "manchester united"


def test_unknown_names_are_normalized_only():
    assert canonical_team_id("  Real   Madrid ") == "real madrid"
    assert canonical_team_id("Cádiz") == "cadiz"


def test_blank_input():
    assert canonical_team_id(None) == ""
    assert canonical_team_id("   ") == ""
    assert same_team("", "") is False


def test_same_team_is_exact():
    assert same_team("Betis", "Real Betis")
    assert not same_team("Madrid", "Real Madrid")
    assert not same_team("Manchester City", "Manchester United")


def test_get_all_aliases_for_includes_canonical():
    aliases = get_all_aliases_for("Spurs")
    assert "tottenham hotspur" in aliases
    assert "spurs" in aliases


def test_display_spellings_resolve_back_to_their_team():
    for canonical, spellings in _DISPLAY_NAMES.items():
        for name in spellings:
            assert canonical_team_id(name) == canonical


def test_display_spellings_for_alias_input():
    assert "Atlético Madrid" in display_spellings_for("Ath Madrid")
    assert display_spellings_for("Getafe") == []


def test_distinct_teams_keeps_first_spelling():
    teams = distinct_teams(["Ath Madrid", "Atletico Madrid", "Getafe", None, "getafe"])
    assert teams == ["Ath Madrid", "Getafe"]


def test_alias_mapping_log_is_throttled(caplog):
    _alias_log_throttle.reset()
    with caplog.at_level(logging.INFO, logger="football_stats.name_resolver"):
        canonical_team_id("Wolves")
        canonical_team_id("Wolves")
    mapped = [r for r in caplog.records if "team_alias_mapped" in r.getMessage()]
    assert len(mapped) == 1
