"""
Reduce recency-ordered match slices to the per-team and head-to-head features
consumed by the scoring model.

Every ratio carries its (count, total) provenance and each feature family reads
its own lookback window from :class:`FeatureWindows`. Empty input is a valid
input: it yields zeroed ratios, never an exception.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .config import FEATURE_WINDOW_DEFAULTS, setup_logger
from .constants import OVER_UNDER_LINE
from .domain.models import (
    AWAY,
    HOME,
    FeatureSet,
    HeadToHeadFeatures,
    Match,
    MatchupFeatures,
    Ratio,
    TeamFeatures,
)
from .errors import MatchValidationError
from .logging_utils import warn_once
from .name_resolver import canonical_team_id

logger = setup_logger(__name__)


@dataclass(frozen=True)
class FeatureWindows:
    """Number of most-recent matches each feature family looks at."""

    form: int = FEATURE_WINDOW_DEFAULTS["form"]
    goals: int = FEATURE_WINDOW_DEFAULTS["goals"]
    ratios: int = FEATURE_WINDOW_DEFAULTS["ratios"]
    halftime: int = FEATURE_WINDOW_DEFAULTS["halftime"]
    comeback: int = FEATURE_WINDOW_DEFAULTS["comeback"]
    h2h: int = FEATURE_WINDOW_DEFAULTS["h2h"]

    def __post_init__(self) -> None:
        for name in ("form", "goals", "ratios", "halftime", "comeback", "h2h"):
            if getattr(self, name) < 1:
                raise MatchValidationError(f"window.{name}", "window must be at least 1", code="invalid_window")

    @property
    def team_fetch_size(self) -> int:
        """Smallest slice that satisfies every per-team window."""

        return max(self.form, self.goals, self.ratios, self.halftime, self.comeback)


def _require_team(team: Optional[str], field: str = "team") -> str:
    if not canonical_team_id(team):
        raise MatchValidationError(field, "team identifier is required", code="missing_team")
    return str(team)


def _filter_league(matches: Iterable[Match], league: Optional[str], caller: str) -> List[Match]:
    if league is None:
        warn_once(
            ("league_filter_missing", caller),
            "league_filter_missing: %s aggregates across every league",
            caller,
            logger=logger,
        )
        return list(matches)
    wanted = league.strip().lower()
    return [m for m in matches if (m.league or "").lower() == wanted]


def team_matches(matches: Iterable[Match], team: str) -> List[Match]:
    """Matches in which ``team`` played, preserving input (recency) order."""

    return [m for m in matches if m.side_of(team) is not None]


def head_to_head_matches(matches: Iterable[Match], team: str, opponent: str) -> List[Match]:
    """Matches between exactly the two teams, in either orientation."""

    return [m for m in matches if m.involves(team, opponent)]


def form_ratio(matches: Sequence[Match], team: str, window: int) -> Ratio:
    """3/1/0 points over the last ``window`` matches, against 3 points per match."""

    recent = list(matches)[:window]
    points = 0
    for match in recent:
        _, _, ft_for, ft_against = match.scores_for(match.side_of(team))
        if ft_for > ft_against:
            points += 3
        elif ft_for == ft_against:
            points += 1
    return Ratio(count=points, total=3 * len(recent))


def _average(values: Sequence[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def _goal_averages(matches: Sequence[Match], team: str) -> tuple[float, float]:
    scored: List[int] = []
    conceded: List[int] = []
    for match in matches:
        _, _, ft_for, ft_against = match.scores_for(match.side_of(team))
        scored.append(ft_for)
        conceded.append(ft_against)
    return _average(scored), _average(conceded)


def _count(matches: Sequence[Match], predicate) -> Ratio:
    return Ratio(count=sum(1 for m in matches if predicate(m)), total=len(matches))


def is_comeback_win(match: Match, team: str) -> bool:
    """Trailed at half time, won at full time."""

    ht_for, ht_against, ft_for, ft_against = match.scores_for(match.side_of(team))
    return ht_for < ht_against and ft_for > ft_against


def is_comeback_draw(match: Match, team: str) -> bool:
    """Trailed at half time, drew at full time."""

    ht_for, ht_against, ft_for, ft_against = match.scores_for(match.side_of(team))
    return ht_for < ht_against and ft_for == ft_against


def is_blown_lead(match: Match, team: str) -> bool:
    """Led at half time, drew or lost at full time."""

    ht_for, ht_against, ft_for, ft_against = match.scores_for(match.side_of(team))
    return ht_for > ht_against and ft_for <= ft_against


def is_blown_lead_draw(match: Match, team: str) -> bool:
    ht_for, ht_against, ft_for, ft_against = match.scores_for(match.side_of(team))
    return ht_for > ht_against and ft_for == ft_against


def aggregate_team(
    matches: Iterable[Match],
    team: str,
    windows: Optional[FeatureWindows] = None,
    *,
    league: Optional[str] = None,
) -> TeamFeatures:
    """Reduce a team's recency-ordered matches to named ratios and averages."""

    team = _require_team(team)
    windows = windows or FeatureWindows()
    played = team_matches(_filter_league(matches, league, "aggregate_team"), team)
    if not played:
        logger.debug("team_features_empty team=%s league=%s", team, league)
        return TeamFeatures(team=team)

    goals_slice = played[: windows.goals]
    ratio_slice = played[: windows.ratios]
    halftime_slice = played[: windows.halftime]
    comeback_slice = played[: windows.comeback]

    avg_scored, avg_conceded = _goal_averages(goals_slice, team)
    home_slice = [m for m in played if m.side_of(team) == HOME][: windows.goals]
    away_slice = [m for m in played if m.side_of(team) == AWAY][: windows.goals]
    home_scored, home_conceded = _goal_averages(home_slice, team)
    away_scored, away_conceded = _goal_averages(away_slice, team)

    def _ht(match: Match) -> tuple[int, int]:
        ht_for, ht_against, _, _ = match.scores_for(match.side_of(team))
        return ht_for, ht_against

    features = TeamFeatures(
        team=team,
        matches_count=len(played),
        form=form_ratio(played, team, windows.form),
        goals_matches=len(goals_slice),
        avg_goals_scored=avg_scored,
        avg_goals_conceded=avg_conceded,
        btts=_count(ratio_slice, lambda m: m.both_teams_scored),
        over25=_count(ratio_slice, lambda m: m.total_goals > OVER_UNDER_LINE),
        comeback_win=_count(comeback_slice, lambda m: is_comeback_win(m, team)),
        comeback_draw=_count(comeback_slice, lambda m: is_comeback_draw(m, team)),
        blown_lead=_count(comeback_slice, lambda m: is_blown_lead(m, team)),
        blown_lead_draw=_count(comeback_slice, lambda m: is_blown_lead_draw(m, team)),
        ht_lead=_count(halftime_slice, lambda m: _ht(m)[0] > _ht(m)[1]),
        ht_draw=_count(halftime_slice, lambda m: _ht(m)[0] == _ht(m)[1]),
        home_avg_scored=home_scored,
        home_avg_conceded=home_conceded,
        away_avg_scored=away_scored,
        away_avg_conceded=away_conceded,
        home_goals_matches=len(home_slice),
        away_goals_matches=len(away_slice),
    )
    logger.debug(
        "team_features team=%s matches=%d form=%.3f comeback=%d/%d",
        team,
        features.matches_count,
        features.form_index,
        features.comeback_win.count,
        features.comeback_win.total,
    )
    return features


def aggregate_head_to_head(
    matches: Iterable[Match],
    team: str,
    opponent: str,
    window: Optional[int] = None,
    *,
    league: Optional[str] = None,
) -> HeadToHeadFeatures:
    """Win/draw/loss split of direct meetings from ``team``'s perspective."""

    team = _require_team(team)
    opponent = _require_team(opponent, "opponent")
    window = window or FeatureWindows().h2h
    meetings = head_to_head_matches(
        _filter_league(matches, league, "aggregate_head_to_head"), team, opponent
    )[:window]

    team_wins = opponent_wins = draws = total_goals = comebacks = 0
    for match in meetings:
        _, _, ft_for, ft_against = match.scores_for(match.side_of(team))
        total_goals += match.total_goals
        if ft_for > ft_against:
            team_wins += 1
            if is_comeback_win(match, team):
                comebacks += 1
        elif ft_for < ft_against:
            opponent_wins += 1
            if is_comeback_win(match, opponent):
                comebacks += 1
        else:
            draws += 1

    return HeadToHeadFeatures(
        team=team,
        opponent=opponent,
        total_matches=len(meetings),
        home_wins=team_wins,
        away_wins=opponent_wins,
        draws=draws,
        total_goals=total_goals,
        comeback_count=comebacks,
    )


def aggregate(
    matches: Iterable[Match],
    team: str,
    opponent: Optional[str] = None,
    windows: Optional[FeatureWindows] = None,
    *,
    league: Optional[str] = None,
) -> FeatureSet:
    """Team features, plus head-to-head features when an opponent is named."""

    windows = windows or FeatureWindows()
    rows = list(matches)
    team_features = aggregate_team(rows, team, windows, league=league)
    h2h = None
    if opponent is not None:
        h2h = aggregate_head_to_head(rows, team, opponent, windows.h2h, league=league)
    return FeatureSet(team=team_features, head_to_head=h2h)


def build_matchup(
    home_team: str,
    away_team: str,
    home_matches: Iterable[Match],
    away_matches: Iterable[Match],
    h2h_matches: Optional[Iterable[Match]] = None,
    windows: Optional[FeatureWindows] = None,
    *,
    league: Optional[str] = None,
) -> MatchupFeatures:
    """Assemble home, away and head-to-head features for a fixture."""

    windows = windows or FeatureWindows()
    home_rows = list(home_matches)
    h2h_rows = list(h2h_matches) if h2h_matches is not None else home_rows
    return MatchupFeatures(
        home=aggregate_team(home_rows, home_team, windows, league=league),
        away=aggregate_team(away_matches, away_team, windows, league=league),
        head_to_head=aggregate_head_to_head(
            h2h_rows, home_team, away_team, windows.h2h, league=league
        ),
    )
