from datetime import date

import pytest

from football_stats.errors import MatchValidationError
from football_stats.validators import (
    normalize_team_name,
    validate_league,
    validate_limit,
    validate_match_date,
    validate_match_rows,
    validate_offset,
    validate_team_optional,
    validate_team_required,
    validate_weight,
)


@pytest.mark.parametrize("raw", ["spain", "SPAIN", "SP1", "la liga", "La Liga", "PD"])
def test_validate_league_aliases(raw):
    v, w = validate_league(raw)
    assert v == "spain"
    assert w == []


def test_validate_league_unknown_soft():
    v, w = validate_league("xyz")
    assert v is None
    assert w and "league_unknown" in w[0]


def test_validate_league_missing_soft():
    v, w = validate_league(None)
    assert v is None
    assert w and w[0] == "league_missing"


def test_validate_team_optional_normalizes():
    t, w = validate_team_optional("  Real   Sociedad ")
    assert t == "Real Sociedad"
    assert w == []
    t2, w2 = validate_team_optional(None)
    assert t2 is None and w2 == []


def test_normalize_team_name_collapses_spaces():
    assert normalize_team_name("  Rayo   Vallecano ") == "Rayo Vallecano"
    assert normalize_team_name("   ") is None


def test_validate_team_required_raises():
    assert validate_team_required(" Getafe ", "home_team") == "Getafe"
    with pytest.raises(MatchValidationError) as exc_info:
        validate_team_required("  ", "away_team")
    assert exc_info.value.field == "away_team"
    assert exc_info.value.code == "missing_team"


def test_validate_limit_default_and_clamp():
    assert validate_limit(None) == (10, [])
    v, w = validate_limit("0")
    assert v == 1 and w
    v2, w2 = validate_limit("5000")
    assert v2 == 200 and w2
    v3, w3 = validate_limit("bad", default=50)
    assert v3 == 50 and w3 == ["limit_invalid"]


def test_validate_offset_floor():
    v, w = validate_offset("-3")
    assert v == 0 and w == ["offset_floor"]


@pytest.mark.parametrize(
    "raw, expected, warned",
    [
        (None, 0.5, False),
        ("0.7", 0.7, False),
        ("1.5", 1.0, True),
        ("-1", 0.0, True),
        ("abc", 0.5, True),
        ("nan", 0.5, True),
    ],
)
def test_validate_weight(raw, expected, warned):
    v, w = validate_weight(raw, 0.5)
    assert v == pytest.approx(expected)
    assert bool(w) is warned


def test_validate_match_date():
    assert validate_match_date("2024-05-01") == ("2024-05-01", [])
    assert validate_match_date("01/05/2024") == ("2024-05-01", [])
    today = date.today().isoformat()
    assert validate_match_date(None) == (today, [])
    v, w = validate_match_date("soon")
    assert v == today and w == ["match_date_invalid"]


def test_validate_match_rows_fails_on_first_bad_row():
    good = {
        "home_team": "Getafe",
        "away_team": "Girona",
        "half_time_home_goals": 0,
        "half_time_away_goals": 0,
        "full_time_home_goals": 1,
        "full_time_away_goals": 0,
    }
    bad = dict(good, full_time_home_goals=-2)
    assert len(validate_match_rows([good, good])) == 2
    with pytest.raises(MatchValidationError):
        validate_match_rows([good, bad])
