from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from ..config import setup_logger
from ..constants import MAX_FETCH_LIMIT
from ..domain.models import Match
from ..errors import APIError, MatchValidationError
from ..features import head_to_head_matches, team_matches
from ..logging_utils import RateLimitedLogger
from ..name_resolver import display_spellings_for, distinct_teams, get_all_aliases_for
from ..net_retry import request_with_retries, scrub_url
from ..ports.matches import MatchRepository, MatchRow
from ..settings import (
    SUPABASE_KEY,
    SUPABASE_MATCHES_TABLE,
    SUPABASE_TIMEOUT_MS,
    SUPABASE_URL,
)

log = setup_logger(__name__)
_throttle = RateLimitedLogger(log)

TEAM_LIST_ROW_CAP = 1000


def _quote(value: str) -> str:
    """Double-quote a PostgREST filter value; commas and parentheses are reserved."""

    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    # ilike wildcards must not leak in from team names
    for ch in ("%", "_", "*"):
        escaped = escaped.replace(ch, "\\" + ch)
    return f'"{escaped}"'


def _spellings(team: str) -> List[str]:
    names = {team.strip()}
    names.update(get_all_aliases_for(team))
    names.update(display_spellings_for(team))
    return sorted(n for n in names if n)


def _team_clause(column: str, team: str) -> List[str]:
    return [f"{column}.ilike.{_quote(name)}" for name in _spellings(team)]


class SupabaseMatchRepository(MatchRepository):
    """Reads the ``matches`` table through the PostgREST endpoint of a Supabase project.

    Team filters send every known spelling of a team: the raw input, the folded
    aliases and the accented display names from the resolver. Rows stored under
    any other spelling are not found.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        table: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        session: Optional[Any] = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else SUPABASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else SUPABASE_KEY
        self.table = table or SUPABASE_MATCHES_TABLE
        self.timeout = (timeout_ms or SUPABASE_TIMEOUT_MS) / 1000.0
        self._session = session

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key or "",
            "Authorization": f"Bearer {self.api_key or ''}",
            "Accept": "application/json",
        }

    def _get(self, params: Dict[str, Any], context: str) -> List[Dict[str, Any]]:
        if not self.base_url or not self.api_key:
            log.warning("supabase_not_configured")
            raise APIError("supabase", "not_configured", "Match data store is not configured")

        try:
            response = request_with_retries(
                "GET",
                self.endpoint,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
                logger=log,
                context=f"supabase {context}",
                session=self._session,
            )
        except requests.exceptions.HTTPError as exc:
            status = getattr(getattr(exc, "response", None), "status_code", None)
            _throttle.error(
                ("supabase_fetch_failed", context, status),
                "supabase_fetch_failed context=%s status=%s url=%s",
                context,
                status,
                scrub_url(self.endpoint),
            )
            raise APIError(
                "supabase",
                str(status or "http_error"),
                "Match data store returned an error",
                details=str(exc),
            ) from exc
        except requests.exceptions.RequestException as exc:
            _throttle.error(
                ("supabase_unreachable", context),
                "supabase_unreachable context=%s err=%s",
                context,
                exc.__class__.__name__,
            )
            raise APIError(
                "supabase",
                "unavailable",
                "Match data store is unreachable",
                details=exc.__class__.__name__,
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise APIError("supabase", "invalid_payload", "Match data store returned invalid JSON") from exc
        if not isinstance(payload, list):
            raise APIError("supabase", "invalid_payload", "Expected a list of rows")
        return [row for row in payload if isinstance(row, dict)]

    def _to_matches(self, rows: List[MatchRow]) -> List[Match]:
        matches: List[Match] = []
        for row in rows:
            try:
                matches.append(Match.from_row(row))
            except MatchValidationError as exc:
                _throttle.warning(
                    ("supabase_row_invalid", row.get("id")),
                    "supabase_row_invalid id=%s field=%s code=%s",
                    row.get("id"),
                    exc.field,
                    exc.code,
                )
        return matches

    @staticmethod
    def _base_params(limit: int, league: Optional[str], offset: int = 0) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "select": "*",
            "order": "match_time.desc.nullslast",
            "limit": max(0, min(int(limit), MAX_FETCH_LIMIT)),
        }
        if offset:
            params["offset"] = int(offset)
        if league:
            params["league"] = f"eq.{league.strip().lower()}"
        return params

    # -------- MatchRepository --------
    def fetch_recent_matches(
        self,
        team: str,
        opponent: Optional[str] = None,
        limit: int = 50,
        league: Optional[str] = None,
    ) -> List[Match]:
        params = self._base_params(limit, league)
        if opponent:
            pairs = []
            for home_clause in _team_clause("home_team", team):
                for away_clause in _team_clause("away_team", opponent):
                    pairs.append(f"and({home_clause},{away_clause})")
            for home_clause in _team_clause("home_team", opponent):
                for away_clause in _team_clause("away_team", team):
                    pairs.append(f"and({home_clause},{away_clause})")
            params["or"] = "(" + ",".join(pairs) + ")"
        else:
            clauses = _team_clause("home_team", team) + _team_clause("away_team", team)
            params["or"] = "(" + ",".join(clauses) + ")"

        matches = self._to_matches(self._get(params, "fetch_recent_matches"))
        # ilike is case-insensitive only; re-check on canonical ids
        if opponent:
            return head_to_head_matches(matches, team, opponent)
        return team_matches(matches, team)

    def search_matches(
        self,
        home_team: Optional[str] = None,
        away_team: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        league: Optional[str] = None,
    ) -> List[Match]:
        params = self._base_params(limit, league, offset)
        clauses = []
        if home_team:
            clauses.append("or(" + ",".join(_team_clause("home_team", home_team)) + ")")
        if away_team:
            clauses.append("or(" + ",".join(_team_clause("away_team", away_team)) + ")")
        if clauses:
            params["and"] = "(" + ",".join(clauses) + ")"
        return self._to_matches(self._get(params, "search_matches"))

    def list_teams(self, league: Optional[str] = None) -> List[str]:
        params: Dict[str, Any] = {"select": "home_team,away_team", "limit": TEAM_LIST_ROW_CAP}
        if league:
            params["league"] = f"eq.{league.strip().lower()}"
        rows = self._get(params, "list_teams")
        return distinct_teams(
            name for row in rows for name in (row.get("home_team"), row.get("away_team"))
        )

    def get_match(self, match_id: Any) -> Optional[Match]:
        params: Dict[str, Any] = {"select": "*", "id": f"eq.{str(match_id).strip()}", "limit": 1}
        matches = self._to_matches(self._get(params, "get_match"))
        return matches[0] if matches else None
