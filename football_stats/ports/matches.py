from typing import Any, List, Optional, TypedDict

from ..domain.models import Match


class MatchRow(TypedDict):
    id: int
    home_team: str
    away_team: str
    half_time_home_goals: int
    half_time_away_goals: int
    full_time_home_goals: int
    full_time_away_goals: int
    match_time: str           # ISO8601
    league: str               # internal league code (spain, england, ...)


class MatchRepository:
    """Read access to finished matches; every list is ordered most recent first."""

    def fetch_recent_matches(
        self,
        team: str,
        opponent: Optional[str] = None,
        limit: int = 50,
        league: Optional[str] = None,
    ) -> List[Match]: ...

    def search_matches(
        self,
        home_team: Optional[str] = None,
        away_team: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        league: Optional[str] = None,
    ) -> List[Match]: ...

    def list_teams(self, league: Optional[str] = None) -> List[str]: ...

    def get_match(self, match_id: Any) -> Optional[Match]: ...
