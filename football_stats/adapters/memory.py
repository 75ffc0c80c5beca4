from __future__ import annotations

import json
import threading
from typing import Any, Iterable, List, Mapping, Optional

from ..config import setup_logger
from ..domain.models import Match, recency_key
from ..features import head_to_head_matches, team_matches
from ..name_resolver import distinct_teams, same_team
from ..ports.matches import MatchRepository
from ..validators import validate_match_rows

log = setup_logger(__name__)


def _league_filter(matches: Iterable[Match], league: Optional[str]) -> List[Match]:
    if not league:
        return list(matches)
    wanted = league.strip().lower()
    return [m for m in matches if (m.league or "").lower() == wanted]


class InMemoryMatchRepository(MatchRepository):
    """Match store backed by a list; used for local runs and tests."""

    def __init__(self, matches: Optional[Iterable[Match]] = None) -> None:
        self._lock = threading.Lock()
        self._matches: List[Match] = []
        if matches:
            self.add_matches(matches)

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> "InMemoryMatchRepository":
        return cls(validate_match_rows(rows))

    @classmethod
    def from_json_file(cls, path: str) -> "InMemoryMatchRepository":
        """Load a JSON array of match rows (same column names as the hosted table)."""

        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
        if not isinstance(rows, list):
            raise ValueError(f"{path}: expected a JSON array of match rows")
        repo = cls.from_rows(rows)
        log.info("memory_repository_seeded path=%s matches=%d", path, len(repo))
        return repo

    def __len__(self) -> int:
        return len(self._matches)

    def add_matches(self, matches: Iterable[Match]) -> None:
        with self._lock:
            self._matches.extend(matches)
            # stable sort: equal timestamps keep insertion order
            self._matches.sort(key=recency_key, reverse=True)

    def _snapshot(self, league: Optional[str]) -> List[Match]:
        with self._lock:
            rows = list(self._matches)
        return _league_filter(rows, league)

    # -------- MatchRepository --------
    def fetch_recent_matches(
        self,
        team: str,
        opponent: Optional[str] = None,
        limit: int = 50,
        league: Optional[str] = None,
    ) -> List[Match]:
        rows = self._snapshot(league)
        if opponent:
            selected = head_to_head_matches(rows, team, opponent)
        else:
            selected = team_matches(rows, team)
        return selected[: max(0, int(limit))]

    def search_matches(
        self,
        home_team: Optional[str] = None,
        away_team: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        league: Optional[str] = None,
    ) -> List[Match]:
        rows = self._snapshot(league)
        if home_team:
            rows = [m for m in rows if same_team(m.home_team, home_team)]
        if away_team:
            rows = [m for m in rows if same_team(m.away_team, away_team)]
        start = max(0, int(offset))
        return rows[start : start + max(0, int(limit))]

    def list_teams(self, league: Optional[str] = None) -> List[str]:
        rows = self._snapshot(league)
        return distinct_teams(name for m in rows for name in (m.home_team, m.away_team))

    def get_match(self, match_id: Any) -> Optional[Match]:
        wanted = str(match_id).strip()
        with self._lock:
            rows = list(self._matches)
        for match in rows:
            if match.id is not None and str(match.id) == wanted:
                return match
        return None
