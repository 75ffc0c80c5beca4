from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from football_stats.domain.models import (
    AWAY,
    HOME,
    HeadToHeadFeatures,
    Match,
    MatchupFeatures,
    Ratio,
    TeamFeatures,
)
from football_stats.errors import MatchValidationError
from football_stats.features import build_matchup
from football_stats.scoring import (
    ENHANCED_V1,
    STATISTICAL_V1,
    VARIANTS,
    _TeamInputs,
    coverage_confidence,
    draw_probability,
    get_variant,
    home_win_probability,
    score,
    score_head_to_head,
)


def _team(name, *, matches=10, form=(15, 30), scored=1.5, conceded=1.0, ratio=(5, 10),
          comeback=(0, 10), blown=(0, 10), home_scored=None, away_scored=None):
    return TeamFeatures(
        team=name,
        matches_count=matches,
        form=Ratio(*form),
        goals_matches=matches,
        avg_goals_scored=scored,
        avg_goals_conceded=conceded,
        btts=Ratio(*ratio),
        over25=Ratio(*ratio),
        comeback_win=Ratio(*comeback),
        comeback_draw=Ratio(0, comeback[1]),
        blown_lead=Ratio(*blown),
        blown_lead_draw=Ratio(0, blown[1]),
        ht_lead=Ratio(0, matches),
        ht_draw=Ratio(0, matches),
        home_avg_scored=scored if home_scored is None else home_scored,
        home_avg_conceded=conceded,
        away_avg_scored=scored if away_scored is None else away_scored,
        away_avg_conceded=conceded,
    )


def _h2h(total=0, wins=0, losses=0, draws=0, goals=0):
    return HeadToHeadFeatures(
        team="Home FC",
        opponent="Away FC",
        total_matches=total,
        home_wins=wins,
        away_wins=losses,
        draws=draws,
        total_goals=goals,
    )


def _matchup(home=None, away=None, h2h=None):
    return MatchupFeatures(
        home=home or _team("Home FC"),
        away=away or _team("Away FC"),
        head_to_head=h2h or _h2h(),
    )


def _all_zero(name):
    return _team(name, form=(0, 30), scored=0.0, conceded=0.0, ratio=(0, 10))


def _all_one(name):
    return _team(
        name, matches=40, form=(30, 30), scored=5.0, conceded=5.0, ratio=(10, 10),
        comeback=(20, 20), blown=(20, 20),
    )


@pytest.mark.parametrize("variant", list(VARIANTS.values()), ids=list(VARIANTS))
@pytest.mark.parametrize(
    "matchup",
    [
        _matchup(),
        _matchup(_all_zero("Home FC"), _all_one("Away FC")),
        _matchup(_all_one("Home FC"), _all_zero("Away FC"), _h2h(10, 10, 0, 0, 40)),
        _matchup(TeamFeatures(team="Home FC"), TeamFeatures(team="Away FC")),
    ],
    ids=["neutral", "weak_home", "dominant_home", "empty"],
)
def test_outcomes_sum_to_one(matchup, variant):
    pred = score(matchup, variant)
    assert pred.outcome_sum == pytest.approx(1.0, abs=1e-6)
    assert 0.0 <= pred.away_win <= 1.0
    low, high = variant.confidence_bounds
    assert low <= pred.confidence <= high
    assert pred.expected_goals.home >= 0.1
    assert pred.expected_goals.away >= 0.1
    assert pred.model == variant.name


@pytest.mark.parametrize(
    "home, away",
    [
        (_all_one("Home FC"), _all_zero("Away FC")),
        (_all_zero("Home FC"), _all_one("Away FC")),
        (_all_one("Home FC"), _all_one("Away FC")),
    ],
)
def test_clamps_hold_before_normalization(home, away):
    h2h = _h2h(10, 10, 0, 0, 30)
    hi = _TeamInputs.from_features(home, STATISTICAL_V1)
    ai = _TeamInputs.from_features(away, STATISTICAL_V1)
    assert 0.05 <= home_win_probability(hi, ai, h2h, STATISTICAL_V1) <= 0.85
    assert 0.15 <= draw_probability(hi, ai, h2h, STATISTICAL_V1) <= 0.45


def test_home_win_hits_upper_clamp_for_dominant_home():
    hi = _TeamInputs.from_features(_all_one("Home FC"), STATISTICAL_V1)
    ai = _TeamInputs.from_features(_all_zero("Away FC"), STATISTICAL_V1)
    assert home_win_probability(hi, ai, _h2h(), STATISTICAL_V1) == pytest.approx(0.85)


@pytest.mark.parametrize("variant", [STATISTICAL_V1, ENHANCED_V1])
@pytest.mark.parametrize("builder", [_all_zero, _all_one])
def test_confidence_bounds_at_extremes(variant, builder):
    h2h = _h2h(10, 5, 5, 0, 30) if builder is _all_one else _h2h()
    pred = score(_matchup(builder("Home FC"), builder("Away FC"), h2h), variant)
    low, high = variant.confidence_bounds
    assert low <= pred.confidence <= high


def test_statistical_confidence_saturates_at_upper_bound():
    pred = score(_matchup(_all_one("Home FC"), _all_zero("Away FC"), _h2h(10, 10, 0, 0, 30)))
    assert pred.confidence == pytest.approx(0.95)


def test_variants_declare_their_own_bounds():
    assert STATISTICAL_V1.confidence_bounds == (0.3, 0.95)
    assert ENHANCED_V1.confidence_bounds == (0.1, 0.95)


def test_good_form_beats_base_probability():
    # 6W/2D/2L, no comebacks; opponent has no history
    home = _team("Home FC", form=(20, 30), scored=1.4, conceded=0.5, comeback=(0, 10), blown=(0, 10))
    hi = _TeamInputs.from_features(home, STATISTICAL_V1)
    ai = _TeamInputs.from_features(TeamFeatures(team="Away FC"), STATISTICAL_V1)
    prob = home_win_probability(hi, ai, _h2h(), STATISTICAL_V1)
    assert 0.33 < prob <= 0.85


def test_symmetric_teams_differ_only_by_home_advantage():
    flat = _team("Home FC")
    skewed_home = _team("Home FC", home_scored=2.0, away_scored=1.0)
    skewed_away = _team("Away FC", home_scored=2.0, away_scored=1.0)
    assert skewed_home.home_advantage == pytest.approx(1.0)

    def _triple(home, away):
        hi = _TeamInputs.from_features(home, STATISTICAL_V1)
        ai = _TeamInputs.from_features(away, STATISTICAL_V1)
        h = home_win_probability(hi, ai, _h2h(), STATISTICAL_V1)
        d = draw_probability(hi, ai, _h2h(), STATISTICAL_V1)
        return h, d, 1.0 - h - d

    base_h, base_d, base_a = _triple(flat, _team("Away FC"))
    adv_h, adv_d, adv_a = _triple(skewed_home, skewed_away)
    assert base_h > base_a
    assert adv_d == pytest.approx(base_d)
    assert adv_h - base_h == pytest.approx(0.1 * skewed_home.home_advantage)
    assert (adv_h - adv_a) - (base_h - base_a) == pytest.approx(0.2 * skewed_home.home_advantage)


def test_h2h_terms_need_minimum_sample():
    hi = _TeamInputs.from_features(_team("Home FC"), STATISTICAL_V1)
    ai = _TeamInputs.from_features(_team("Away FC"), STATISTICAL_V1)
    small = home_win_probability(hi, ai, _h2h(2, 2, 0, 0, 4), STATISTICAL_V1)
    enough = home_win_probability(hi, ai, _h2h(3, 3, 0, 0, 6), STATISTICAL_V1)
    assert enough - small == pytest.approx(0.1)


def test_empty_history_uses_neutral_defaults():
    pred = score(_matchup(TeamFeatures(team="Home FC"), TeamFeatures(team="Away FC")))
    # neutral inputs: equal form and goals, comeback 0.5 each side
    assert pred.home_win > pred.away_win
    assert 0.2 <= pred.btts <= 0.8
    assert pred.expected_goals.home == pytest.approx(1.0 + 0.5 * 0.3 - 0.5 * 0.3)


def test_btts_and_over_bonuses():
    heavy = _team("Home FC", scored=2.0, ratio=(5, 10))
    light = _team("Away FC", scored=0.5, ratio=(5, 10))
    high = score(_matchup(heavy, _team("Away FC", scored=1.5, ratio=(5, 10))))
    low = score(_matchup(_team("Home FC", scored=0.8), light))
    assert high.btts == pytest.approx(0.6)
    assert high.over25 == pytest.approx(0.65)
    assert low.over25 == pytest.approx(0.4)


def test_poisson_ratio_expected_goals():
    pred = score(_matchup(_team("Home FC", scored=2.0), _team("Away FC", scored=1.0)), ENHANCED_V1)
    assert pred.expected_goals.home == pytest.approx(2.2)
    assert pred.expected_goals.away == pytest.approx(0.9)


def test_score_rejects_missing_team_and_negative_goals():
    with pytest.raises(MatchValidationError):
        score(_matchup(TeamFeatures(team=""), TeamFeatures(team="Away FC")))
    with pytest.raises(MatchValidationError):
        score(_matchup(_team("Home FC", scored=-1.0)))
    with pytest.raises(MatchValidationError):
        score(None)


def test_head_to_head_model_without_history():
    pred = score_head_to_head(_matchup())
    assert pred.home_win == pytest.approx(0.33)
    assert pred.draw == pytest.approx(0.34)
    assert pred.btts == 0.5
    assert pred.expected_goals.home == 1.0
    assert pred.model == "h2h"


def test_head_to_head_model_with_history():
    pred = score_head_to_head(_matchup(h2h=_h2h(4, 2, 1, 1, 12)))
    assert pred.home_win == pytest.approx(0.5)
    assert pred.draw == pytest.approx(0.25)
    assert pred.btts == pytest.approx(0.8)
    assert pred.over25 == pytest.approx(0.9)
    assert pred.expected_goals.home == pytest.approx(1.5)


def test_coverage_confidence_agreement_term():
    matchup = _matchup(h2h=_h2h(2, 1, 1, 0, 4))
    without = coverage_confidence(matchup, ENHANCED_V1)
    with_agreement = coverage_confidence(matchup, ENHANCED_V1, agreement=1.0)
    assert with_agreement == pytest.approx(min(0.95, without + 0.2))


def test_get_variant_unknown_name():
    assert get_variant("statistical_v1") is STATISTICAL_V1
    assert get_variant(" enhanced_stat_v1.1 ") is ENHANCED_V1
    with pytest.raises(ValueError):
        get_variant("ai_v2")


def _played(home, away, ft, days_ago):
    return Match(
        home_team=home,
        away_team=away,
        half_time_home_goals=0,
        half_time_away_goals=0,
        full_time_home_goals=ft[0],
        full_time_away_goals=ft[1],
        match_time=datetime(2024, 5, 1) - timedelta(days=days_ago),
        league="spain",
    )


def _venue_split_matchup():
    # Sevilla: 3 at home, 0 away; Betis: 0 at home, 1 away
    sevilla = [_played("Sevilla", "Girona", (3, 0), 1), _played("Getafe", "Sevilla", (0, 0), 8)]
    betis = [_played("Betis", "Cadiz", (0, 0), 2), _played("Osasuna", "Betis", (1, 1), 9)]
    return build_matchup("Sevilla", "Betis", sevilla, betis, [], league="spain")


def test_statistical_variant_reads_venue_goal_averages():
    matchup = _venue_split_matchup()
    assert matchup.home.avg_goals_scored == pytest.approx(1.5)
    assert matchup.away.avg_goals_scored == pytest.approx(0.5)

    pred = score(matchup, STATISTICAL_V1)
    # home 3.0 >= 1.5 and away 1.0 >= 1.0 earn the bonus
    assert pred.btts == pytest.approx(0.35)
    assert pred.expected_goals.home == pytest.approx(3.0 * (1 + (4 / 6 - 0.5)))
    assert pred.expected_goals.away == pytest.approx(1.0 * (1 + (2 / 6 - 0.5)))

    overall = score(matchup, replace(STATISTICAL_V1, venue_goal_averages=False))
    assert overall.btts == pytest.approx(0.25)
    assert overall.expected_goals.home == pytest.approx(1.5 * (1 + (4 / 6 - 0.5)))


def test_enhanced_variant_keeps_overall_averages():
    pred = score(_venue_split_matchup(), ENHANCED_V1)
    assert pred.expected_goals.home == pytest.approx(1.5 * 1.1)
    assert pred.expected_goals.away == pytest.approx(0.5 * 0.9)


def test_venue_average_falls_back_without_venue_matches():
    team = _team("Home FC", scored=1.2, home_scored=0.0, away_scored=2.4)
    assert _TeamInputs.from_features(team, STATISTICAL_V1, HOME).avg_scored == pytest.approx(1.2)
    counted = replace(team, away_goals_matches=3)
    assert _TeamInputs.from_features(counted, STATISTICAL_V1, AWAY).avg_scored == pytest.approx(2.4)
