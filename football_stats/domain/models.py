"""Value objects shared by the aggregation, scoring and presentation layers."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from ..errors import MatchValidationError
from ..name_resolver import canonical_team_id

HOME = "home"
AWAY = "away"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def recency_key(match: "Match") -> datetime:
    """Sort key for most-recent-first ordering; undated matches sort oldest."""

    ts = match.match_time
    if ts is None:
        return _OLDEST
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _parse_goals(row: Mapping[str, Any], key: str) -> int:
    raw = row.get(key)
    if raw is None or isinstance(raw, bool):
        raise MatchValidationError(key, "goal count is required", code="missing_goals")
    try:
        value = int(raw)
        exact = value == float(raw)
    except (TypeError, ValueError, OverflowError):
        raise MatchValidationError(key, f"not an integer: {raw!r}", code="invalid_goals") from None
    if not exact:
        raise MatchValidationError(key, f"not an integer: {raw!r}", code="invalid_goals")
    return value


def _parse_time(raw: Any) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    text = str(raw).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in ("%d/%m/%Y %H:%M", "%d/%m/%Y", "%d/%m/%y"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise MatchValidationError("match_time", f"unparseable timestamp: {raw!r}", code="invalid_time")


@dataclass(frozen=True)
class Match:
    """A finished fixture with half-time and full-time scores."""

    home_team: str
    away_team: str
    half_time_home_goals: int
    half_time_away_goals: int
    full_time_home_goals: int
    full_time_away_goals: int
    match_time: Optional[datetime] = None
    league: Optional[str] = None
    id: Optional[Any] = None

    def __post_init__(self) -> None:
        for name in ("home_team", "away_team"):
            if not canonical_team_id(getattr(self, name)):
                raise MatchValidationError(name, "team identifier is required", code="missing_team")
        if canonical_team_id(self.home_team) == canonical_team_id(self.away_team):
            raise MatchValidationError("away_team", "a team cannot play itself", code="same_team")
        for name in (
            "half_time_home_goals",
            "half_time_away_goals",
            "full_time_home_goals",
            "full_time_away_goals",
        ):
            if getattr(self, name) < 0:
                raise MatchValidationError(name, "goal count cannot be negative", code="negative_goals")
        if self.half_time_home_goals > self.full_time_home_goals:
            raise MatchValidationError(
                "half_time_home_goals", "exceeds full-time goals", code="half_time_exceeds_full_time"
            )
        if self.half_time_away_goals > self.full_time_away_goals:
            raise MatchValidationError(
                "half_time_away_goals", "exceeds full-time goals", code="half_time_exceeds_full_time"
            )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Match":
        """Build a match from a data store row (snake_case column names)."""

        return cls(
            home_team=str(row.get("home_team") or "").strip(),
            away_team=str(row.get("away_team") or "").strip(),
            half_time_home_goals=_parse_goals(row, "half_time_home_goals"),
            half_time_away_goals=_parse_goals(row, "half_time_away_goals"),
            full_time_home_goals=_parse_goals(row, "full_time_home_goals"),
            full_time_away_goals=_parse_goals(row, "full_time_away_goals"),
            match_time=_parse_time(row.get("match_time") or row.get("date")),
            league=(str(row["league"]).strip().lower() if row.get("league") else None),
            id=row.get("id"),
        )

    @property
    def total_goals(self) -> int:
        return self.full_time_home_goals + self.full_time_away_goals

    @property
    def both_teams_scored(self) -> bool:
        return self.full_time_home_goals > 0 and self.full_time_away_goals > 0

    def side_of(self, team: str) -> Optional[str]:
        """Return 'home'/'away' for the team's role, None when it did not play."""

        key = canonical_team_id(team)
        if not key:
            return None
        if canonical_team_id(self.home_team) == key:
            return HOME
        if canonical_team_id(self.away_team) == key:
            return AWAY
        return None

    def involves(self, team: str, opponent: Optional[str] = None) -> bool:
        side = self.side_of(team)
        if side is None:
            return False
        if opponent is None:
            return True
        other = self.away_team if side == HOME else self.home_team
        return canonical_team_id(other) == canonical_team_id(opponent)

    def scores_for(self, side: str) -> tuple[int, int, int, int]:
        """(ht_for, ht_against, ft_for, ft_against) from one side's perspective."""

        if side == HOME:
            return (
                self.half_time_home_goals,
                self.half_time_away_goals,
                self.full_time_home_goals,
                self.full_time_away_goals,
            )
        return (
            self.half_time_away_goals,
            self.half_time_home_goals,
            self.full_time_away_goals,
            self.full_time_home_goals,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "match_time": self.match_time.isoformat() if self.match_time else None,
            "league": self.league,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "half_time_home_goals": self.half_time_home_goals,
            "half_time_away_goals": self.half_time_away_goals,
            "full_time_home_goals": self.full_time_home_goals,
            "full_time_away_goals": self.full_time_away_goals,
        }


@dataclass(frozen=True)
class Ratio:
    """A count over a total; the value is 0 when nothing was observed."""

    count: int = 0
    total: int = 0

    @property
    def value(self) -> float:
        return self.count / self.total if self.total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"percent": round(self.value, 3), "count": self.count, "total": self.total}


@dataclass(frozen=True)
class TeamFeatures:
    """Per-team reductions over a recency-ordered slice of matches."""

    team: str
    matches_count: int = 0
    form: Ratio = field(default_factory=Ratio)  # points over max points
    goals_matches: int = 0
    avg_goals_scored: float = 0.0
    avg_goals_conceded: float = 0.0
    btts: Ratio = field(default_factory=Ratio)
    over25: Ratio = field(default_factory=Ratio)
    comeback_win: Ratio = field(default_factory=Ratio)
    comeback_draw: Ratio = field(default_factory=Ratio)
    blown_lead: Ratio = field(default_factory=Ratio)
    blown_lead_draw: Ratio = field(default_factory=Ratio)
    ht_lead: Ratio = field(default_factory=Ratio)
    ht_draw: Ratio = field(default_factory=Ratio)
    home_avg_scored: float = 0.0
    home_avg_conceded: float = 0.0
    away_avg_scored: float = 0.0
    away_avg_conceded: float = 0.0
    home_goals_matches: int = 0
    away_goals_matches: int = 0

    def venue_goal_averages(self, side: str) -> Optional[tuple[float, float]]:
        """(scored, conceded) at one venue, None when the team has not played there."""

        if side == HOME:
            return (self.home_avg_scored, self.home_avg_conceded) if self.home_goals_matches else None
        return (self.away_avg_scored, self.away_avg_conceded) if self.away_goals_matches else None

    @property
    def form_index(self) -> float:
        return self.form.value

    @property
    def form_matches(self) -> int:
        return self.form.total // 3

    @property
    def home_advantage(self) -> float:
        """Goal swing between the team's home and away fixtures."""

        return (self.home_avg_scored - self.away_avg_scored) + (
            self.away_avg_conceded - self.home_avg_conceded
        )

    @property
    def has_history(self) -> bool:
        return self.matches_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team": self.team,
            "matches": self.matches_count,
            "form_index": {
                "value": round(self.form_index, 3),
                "points": self.form.count,
                "max_points": self.form.total,
                "window": self.form_matches,
            },
            "avg_goals_scored": round(self.avg_goals_scored, 2),
            "avg_goals_conceded": round(self.avg_goals_conceded, 2),
            "btts_ratio": self.btts.to_dict(),
            "over_2_5_ratio": self.over25.to_dict(),
            "comeback_win_ratio": self.comeback_win.to_dict(),
            "comeback_draw_ratio": self.comeback_draw.to_dict(),
            "blown_lead_ratio": self.blown_lead.to_dict(),
            "blown_lead_draw_ratio": self.blown_lead_draw.to_dict(),
            "ht_lead_ratio": self.ht_lead.to_dict(),
            "ht_draw_ratio": self.ht_draw.to_dict(),
            "home_advantage": {
                "value": round(self.home_advantage, 3),
                "home_scored": round(self.home_avg_scored, 2),
                "away_scored": round(self.away_avg_scored, 2),
                "home_conceded": round(self.home_avg_conceded, 2),
                "away_conceded": round(self.away_avg_conceded, 2),
            },
        }


@dataclass(frozen=True)
class HeadToHeadFeatures:
    """Direct meetings, classified from ``team``'s perspective (either venue)."""

    team: str
    opponent: str
    total_matches: int = 0
    home_wins: int = 0  # wins for `team`
    away_wins: int = 0  # wins for `opponent`
    draws: int = 0
    total_goals: int = 0
    comeback_count: int = 0

    def _ratio(self, count: int) -> float:
        return count / self.total_matches if self.total_matches > 0 else 0.0

    @property
    def home_win_ratio(self) -> float:
        return self._ratio(self.home_wins)

    @property
    def away_win_ratio(self) -> float:
        return self._ratio(self.away_wins)

    @property
    def draw_ratio(self) -> float:
        return self._ratio(self.draws)

    @property
    def avg_goals(self) -> float:
        return self._ratio(self.total_goals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_matches": self.total_matches,
            "home_wins": self.home_wins,
            "away_wins": self.away_wins,
            "draws": self.draws,
            "home_win_ratio": round(self.home_win_ratio, 3),
            "draw_ratio": round(self.draw_ratio, 3),
            "away_win_ratio": round(self.away_win_ratio, 3),
            "avg_goals": round(self.avg_goals, 2),
            "comeback_count": self.comeback_count,
        }


@dataclass(frozen=True)
class FeatureSet:
    team: TeamFeatures
    head_to_head: Optional[HeadToHeadFeatures] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = self.team.to_dict()
        if self.head_to_head is not None:
            payload["h2h_stats"] = self.head_to_head.to_dict()
        return payload


@dataclass(frozen=True)
class MatchupFeatures:
    """Everything the scoring model needs for one fixture."""

    home: TeamFeatures
    away: TeamFeatures
    head_to_head: HeadToHeadFeatures


@dataclass(frozen=True)
class ExpectedGoals:
    home: float
    away: float

    def to_dict(self, digits: int = 2) -> Dict[str, float]:
        return {"home": round(self.home, digits), "away": round(self.away, digits)}


@dataclass(frozen=True)
class Prediction:
    """Outcome, market and expected-goal probabilities for one model run."""

    home_win: float
    draw: float
    away_win: float
    btts: float
    over25: float
    expected_goals: ExpectedGoals
    confidence: float
    model: str = ""

    @property
    def outcome_sum(self) -> float:
        return self.home_win + self.draw + self.away_win

    def normalized(self) -> "Prediction":
        """Rescale the outcome triple so it sums to exactly one."""

        total = self.outcome_sum
        if total <= 0:
            third = 1.0 / 3.0
            return replace(self, home_win=third, draw=third, away_win=third)
        return replace(
            self,
            home_win=self.home_win / total,
            draw=self.draw / total,
            away_win=self.away_win / total,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "home": round(self.home_win, 3),
            "draw": round(self.draw, 3),
            "away": round(self.away_win, 3),
            "btts": round(self.btts, 3),
            "over_25": round(self.over25, 3),
            "expected_goals": self.expected_goals.to_dict(),
            "confidence": round(self.confidence, 3),
        }
