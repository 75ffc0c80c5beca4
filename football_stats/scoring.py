"""
Heuristic scoring model: turns aggregated matchup features into outcome,
BTTS and over 2.5 probabilities, expected goals and a confidence score.

Two independently tuned formula families exist and both are kept as named
variants (``statistical_v1`` and ``enhanced_stat_v1.1``). A variant bundles the
base probabilities, weights, clamp bounds and the expected-goals strategy; the
active one is chosen by configuration and each carries its own confidence
bounds.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from .config import H2H_SAMPLE_THRESHOLD, setup_logger
from .domain.models import (
    AWAY,
    HOME,
    ExpectedGoals,
    HeadToHeadFeatures,
    MatchupFeatures,
    Prediction,
    TeamFeatures,
)
from .errors import MatchValidationError
from .name_resolver import canonical_team_id

logger = setup_logger(__name__)

Bounds = Tuple[float, float]

WEIGHTED_SUM = "weighted_sum"
GOAL_RATIO = "goal_ratio"
ADJUSTED_FORM = "adjusted"
POISSON_RATIO = "poisson_ratio"


@dataclass(frozen=True)
class ScoringVariant:
    name: str
    outcome_strategy: str
    expected_goals_strategy: str
    confidence_bounds: Bounds
    confidence_base: float = 0.5

    home_base: float = 0.33
    draw_base: float = 0.25
    form_weight: float = 0.3
    goal_diff_weight: float = 0.1
    comeback_weight: float = 0.2
    blown_lead_weight: float = 0.15
    home_advantage_weight: float = 0.1
    h2h_home_weight: float = 0.1
    h2h_draw_weight: float = 0.15
    h2h_min_sample: int = H2H_SAMPLE_THRESHOLD
    close_form_threshold: float = 0.2
    close_form_bonus: float = 0.1
    comeback_balance_threshold: float = 0.1
    comeback_balance_bonus: float = 0.05
    home_win_bounds: Bounds = (0.05, 0.85)
    draw_bounds: Bounds = (0.15, 0.45)

    btts_bounds: Bounds = (0.2, 0.8)
    btts_home_goals: float = 1.5
    btts_away_goals: float = 1.0
    btts_bonus: float = 0.1
    over25_bounds: Bounds = (0.2, 0.8)
    over25_high_goals: float = 3.0
    over25_high_bonus: float = 0.15
    over25_low_goals: float = 2.0
    over25_low_malus: float = 0.1

    expected_goals_floor: float = 0.1
    comeback_goal_bonus: float = 0.3
    blown_lead_goal_malus: float = 0.3
    home_goal_factor: float = 1.1
    away_goal_factor: float = 0.9
    # home side reads its home-venue averages, away side its away-venue averages
    venue_goal_averages: bool = False

    neutral_form: float = 0.5
    neutral_ratio: float = 0.5
    neutral_goals: float = 1.0

    def __post_init__(self) -> None:
        low, high = self.confidence_bounds
        if not 0.0 <= low <= high <= 1.0:
            raise ValueError(f"invalid confidence bounds for {self.name}: {self.confidence_bounds}")
        if self.outcome_strategy not in OUTCOME_STRATEGIES:
            raise ValueError(f"unknown outcome strategy: {self.outcome_strategy}")
        if self.expected_goals_strategy not in EXPECTED_GOALS_STRATEGIES:
            raise ValueError(f"unknown expected goals strategy: {self.expected_goals_strategy}")


@dataclass(frozen=True)
class _TeamInputs:
    """Scoring view of a team; neutral values stand in for an empty history."""

    matches: int
    form: float
    avg_scored: float
    avg_conceded: float
    btts: float
    over25: float
    comeback_win: float
    blown_lead: float
    home_advantage: float
    comeback_total: int

    @classmethod
    def from_features(
        cls, features: TeamFeatures, variant: ScoringVariant, side: Optional[str] = None
    ) -> "_TeamInputs":
        if not features.has_history:
            return cls(
                matches=0,
                form=variant.neutral_form,
                avg_scored=variant.neutral_goals,
                avg_conceded=variant.neutral_goals,
                btts=variant.neutral_ratio,
                over25=variant.neutral_ratio,
                comeback_win=variant.neutral_ratio,
                blown_lead=variant.neutral_ratio,
                home_advantage=0.0,
                comeback_total=0,
            )
        avg_scored, avg_conceded = features.avg_goals_scored, features.avg_goals_conceded
        if variant.venue_goal_averages and side is not None:
            venue = features.venue_goal_averages(side)
            if venue is not None:
                avg_scored, avg_conceded = venue
        return cls(
            matches=features.matches_count,
            form=features.form_index,
            avg_scored=avg_scored,
            avg_conceded=avg_conceded,
            btts=features.btts.value,
            over25=features.over25.value,
            comeback_win=features.comeback_win.value,
            blown_lead=features.blown_lead.value,
            home_advantage=features.home_advantage,
            comeback_total=features.comeback_win.total,
        )


def clamp(value: float, bounds: Bounds) -> float:
    low, high = bounds
    return max(low, min(high, value))


def _h2h_counts(h2h: HeadToHeadFeatures, variant: ScoringVariant) -> bool:
    return h2h.total_matches >= variant.h2h_min_sample


# ---- weighted-sum outcome formulas ----

def home_win_probability(
    home: _TeamInputs, away: _TeamInputs, h2h: HeadToHeadFeatures, variant: ScoringVariant
) -> float:
    prob = variant.home_base
    prob += (home.form - away.form) * variant.form_weight
    prob += (home.avg_scored - away.avg_scored) * variant.goal_diff_weight
    prob += home.comeback_win * variant.comeback_weight
    prob += away.blown_lead * variant.blown_lead_weight
    prob += max(0.0, home.home_advantage) * variant.home_advantage_weight
    if _h2h_counts(h2h, variant):
        prob += h2h.home_win_ratio * variant.h2h_home_weight
    return clamp(prob, variant.home_win_bounds)


def draw_probability(
    home: _TeamInputs, away: _TeamInputs, h2h: HeadToHeadFeatures, variant: ScoringVariant
) -> float:
    prob = variant.draw_base
    if abs(home.form - away.form) < variant.close_form_threshold:
        prob += variant.close_form_bonus
    if abs(home.comeback_win - away.comeback_win) < variant.comeback_balance_threshold:
        prob += variant.comeback_balance_bonus
    if _h2h_counts(h2h, variant):
        prob += h2h.draw_ratio * variant.h2h_draw_weight
    return clamp(prob, variant.draw_bounds)


def _weighted_outcomes(
    home: _TeamInputs,
    away: _TeamInputs,
    h2h: HeadToHeadFeatures,
    expected: ExpectedGoals,
    variant: ScoringVariant,
) -> Tuple[float, float, float]:
    home_win = home_win_probability(home, away, h2h, variant)
    draw = draw_probability(home, away, h2h, variant)
    away_win = max(0.0, 1.0 - home_win - draw)
    return home_win, draw, away_win


def _goal_ratio_outcomes(
    home: _TeamInputs,
    away: _TeamInputs,
    h2h: HeadToHeadFeatures,
    expected: ExpectedGoals,
    variant: ScoringVariant,
) -> Tuple[float, float, float]:
    total = expected.home + expected.away
    home_win = clamp(expected.home / total, variant.home_win_bounds)
    away_win = expected.away / total
    draw = clamp(max(variant.draw_bounds[0], 1.0 - (home_win + away_win)), variant.draw_bounds)
    return home_win, draw, away_win


OUTCOME_STRATEGIES: Dict[str, Callable[..., Tuple[float, float, float]]] = {
    WEIGHTED_SUM: _weighted_outcomes,
    GOAL_RATIO: _goal_ratio_outcomes,
}


# ---- expected goals ----

def _adjusted_expected_goals(
    home: _TeamInputs, away: _TeamInputs, variant: ScoringVariant
) -> ExpectedGoals:
    def _team(inputs: _TeamInputs) -> float:
        value = inputs.avg_scored * (1.0 + (inputs.form - 0.5))
        value += inputs.comeback_win * variant.comeback_goal_bonus
        value -= inputs.blown_lead * variant.blown_lead_goal_malus
        return max(variant.expected_goals_floor, value)

    return ExpectedGoals(home=_team(home), away=_team(away))


def _poisson_ratio_expected_goals(
    home: _TeamInputs, away: _TeamInputs, variant: ScoringVariant
) -> ExpectedGoals:
    return ExpectedGoals(
        home=max(variant.expected_goals_floor, home.avg_scored * variant.home_goal_factor),
        away=max(variant.expected_goals_floor, away.avg_scored * variant.away_goal_factor),
    )


EXPECTED_GOALS_STRATEGIES: Dict[str, Callable[..., ExpectedGoals]] = {
    ADJUSTED_FORM: _adjusted_expected_goals,
    POISSON_RATIO: _poisson_ratio_expected_goals,
}


# ---- markets ----

def btts_probability(home: _TeamInputs, away: _TeamInputs, variant: ScoringVariant) -> float:
    prob = (home.btts + away.btts) / 2
    if home.avg_scored >= variant.btts_home_goals and away.avg_scored >= variant.btts_away_goals:
        prob += variant.btts_bonus
    return clamp(prob, variant.btts_bounds)


def over25_probability(home: _TeamInputs, away: _TeamInputs, variant: ScoringVariant) -> float:
    prob = (home.over25 + away.over25) / 2
    combined = home.avg_scored + away.avg_scored
    if combined >= variant.over25_high_goals:
        prob += variant.over25_high_bonus
    elif combined <= variant.over25_low_goals:
        prob -= variant.over25_low_malus
    return clamp(prob, variant.over25_bounds)


# ---- confidence ----

def statistical_confidence(
    matchup: MatchupFeatures, outcomes: Tuple[float, float, float], variant: ScoringVariant
) -> float:
    """Data volume, prediction clarity and comeback sample size."""

    data_quality = min(1.0, matchup.home.form_matches / 5) * 0.2
    data_quality += min(1.0, matchup.away.form_matches / 5) * 0.2
    data_quality += min(1.0, matchup.head_to_head.total_matches / 5) * 0.1
    clarity = (max(outcomes) - min(outcomes)) * 0.3
    comeback_sample = matchup.home.comeback_win.total + matchup.away.comeback_win.total
    reliability = min(1.0, comeback_sample / 40) * 0.2
    confidence = variant.confidence_base + data_quality + clarity + reliability
    return clamp(confidence, variant.confidence_bounds)


def coverage_confidence(
    matchup: MatchupFeatures,
    variant: ScoringVariant,
    agreement: Optional[float] = None,
) -> float:
    """Match volume plus h2h sample, with an optional sub-model agreement term."""

    total_matches = matchup.home.matches_count + matchup.away.matches_count
    confidence = variant.confidence_base
    confidence += min(1.0, total_matches / 40) * 0.3
    confidence += min(0.2, matchup.head_to_head.total_matches / 10)
    if agreement is not None:
        confidence += max(0.0, min(1.0, agreement)) * 0.2
    return clamp(confidence, variant.confidence_bounds)


# ---- entry points ----

def _validate_matchup(matchup: Optional[MatchupFeatures]) -> MatchupFeatures:
    if matchup is None:
        raise MatchValidationError("features", "matchup features are required", code="missing_features")
    for side, team in (("home", matchup.home), ("away", matchup.away)):
        if not canonical_team_id(team.team):
            raise MatchValidationError(f"{side}.team", "team identifier is required", code="missing_team")
        if team.avg_goals_scored < 0 or team.avg_goals_conceded < 0:
            raise MatchValidationError(f"{side}.avg_goals", "goal averages cannot be negative", code="negative_goals")
    return matchup


def score(matchup: MatchupFeatures, variant: Optional[ScoringVariant] = None) -> Prediction:
    """Run one scoring variant over a fixture's features."""

    variant = variant or STATISTICAL_V1
    matchup = _validate_matchup(matchup)
    home = _TeamInputs.from_features(matchup.home, variant, HOME)
    away = _TeamInputs.from_features(matchup.away, variant, AWAY)
    h2h = matchup.head_to_head

    expected = EXPECTED_GOALS_STRATEGIES[variant.expected_goals_strategy](home, away, variant)
    outcomes = OUTCOME_STRATEGIES[variant.outcome_strategy](home, away, h2h, expected, variant)

    if variant.outcome_strategy == WEIGHTED_SUM:
        confidence = statistical_confidence(matchup, outcomes, variant)
    else:
        confidence = coverage_confidence(matchup, variant)

    prediction = Prediction(
        home_win=outcomes[0],
        draw=outcomes[1],
        away_win=outcomes[2],
        btts=btts_probability(home, away, variant),
        over25=over25_probability(home, away, variant),
        expected_goals=expected,
        confidence=confidence,
        model=variant.name,
    ).normalized()
    logger.debug(
        "scored %s vs %s variant=%s home=%.3f draw=%.3f away=%.3f conf=%.3f",
        matchup.home.team,
        matchup.away.team,
        variant.name,
        prediction.home_win,
        prediction.draw,
        prediction.away_win,
        prediction.confidence,
    )
    return prediction


def score_head_to_head(
    matchup: MatchupFeatures, variant: Optional[ScoringVariant] = None
) -> Prediction:
    """Second-opinion model built only from direct meetings."""

    variant = variant or ENHANCED_V1
    matchup = _validate_matchup(matchup)
    h2h = matchup.head_to_head
    confidence = coverage_confidence(matchup, variant)

    if h2h.total_matches == 0:
        return Prediction(
            home_win=0.33,
            draw=0.34,
            away_win=0.33,
            btts=variant.neutral_ratio,
            over25=variant.neutral_ratio,
            expected_goals=ExpectedGoals(home=variant.neutral_goals, away=variant.neutral_goals),
            confidence=confidence,
            model="h2h",
        ).normalized()

    avg_goals = h2h.avg_goals
    half = max(variant.expected_goals_floor, avg_goals / 2)
    return Prediction(
        home_win=h2h.home_win_ratio,
        draw=h2h.draw_ratio,
        away_win=h2h.away_win_ratio,
        btts=min(0.8, avg_goals / 3),
        over25=min(0.9, avg_goals / 2.5),
        expected_goals=ExpectedGoals(home=half, away=half),
        confidence=confidence,
        model="h2h",
    ).normalized()


STATISTICAL_V1 = ScoringVariant(
    name="statistical_v1",
    outcome_strategy=WEIGHTED_SUM,
    expected_goals_strategy=ADJUSTED_FORM,
    confidence_bounds=(0.3, 0.95),
    venue_goal_averages=True,
)

ENHANCED_V1 = ScoringVariant(
    name="enhanced_stat_v1.1",
    outcome_strategy=GOAL_RATIO,
    expected_goals_strategy=POISSON_RATIO,
    confidence_bounds=(0.1, 0.95),
    btts_bounds=(0.0, 1.0),
    btts_bonus=0.0,
    over25_bounds=(0.0, 1.0),
    over25_high_bonus=0.0,
    over25_low_malus=0.0,
)

VARIANTS: Dict[str, ScoringVariant] = {v.name: v for v in (STATISTICAL_V1, ENHANCED_V1)}


def get_variant(name: Optional[str]) -> ScoringVariant:
    """Look up a named variant; unknown names are a configuration error."""

    key = (name or "").strip()
    try:
        return VARIANTS[key]
    except KeyError:
        known = ", ".join(sorted(VARIANTS))
        raise ValueError(f"Unknown scoring variant: {key!r}. Known: {known}") from None
