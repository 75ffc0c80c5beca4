"""Request-scoped memoization of repository fetches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .domain.models import Match
from .name_resolver import canonical_team_id
from .ports.matches import MatchRepository


def _normalize_league(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value.lower() if value else None


_FetchKey = Tuple[Optional[str], str, str, int]


@dataclass
class RequestMemo:
    """Holds per-request copies of match slices so a team is fetched once per request.

    A prediction needs the home slice, the away slice and the head-to-head
    slice; the statistics page asks for the same slices again. Nothing here
    outlives the request.
    """

    repository: MatchRepository
    fetched: Dict[_FetchKey, List[Match]] = field(default_factory=dict)
    hits: int = 0

    def _key(self, team: str, opponent: Optional[str], limit: int, league: Optional[str]) -> _FetchKey:
        return (
            _normalize_league(league),
            canonical_team_id(team),
            canonical_team_id(opponent) if opponent else "",
            int(limit),
        )

    def recent_matches(
        self,
        team: str,
        opponent: Optional[str] = None,
        limit: int = 50,
        league: Optional[str] = None,
    ) -> List[Match]:
        key = self._key(team, opponent, limit, league)
        if key in self.fetched:
            self.hits += 1
            return self.fetched[key]

        # a larger slice of the same team already answers a smaller request
        for (stored_league, stored_team, stored_opp, stored_limit), rows in self.fetched.items():
            if (stored_league, stored_team, stored_opp) == key[:3] and stored_limit >= key[3]:
                self.hits += 1
                return rows[: key[3]]

        rows = list(self.repository.fetch_recent_matches(team, opponent, limit=limit, league=league))
        self.fetched[key] = rows
        return rows
