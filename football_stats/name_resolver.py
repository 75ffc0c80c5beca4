"""Team identity resolution: canonical identifiers plus a small alias table.

Team matching across the service is exact on the canonical identifier. Raw
names are accent-folded, lower-cased and whitespace-collapsed, then mapped
through ``TEAM_ALIASES`` so that spellings used by the CSV feeds
("Ath Madrid", "Betis") and by users ("Atlético Madrid", "Real Betis") agree.
Substring matching is never used: "Madrid" is not "Real Madrid".
"""
from __future__ import annotations

import re
import unicodedata
from functools import lru_cache
from typing import Dict, Iterable, List, Optional

from .config import setup_logger
from .logging_utils import RateLimitedLogger

logger = setup_logger(__name__)

_alias_log_throttle = RateLimitedLogger(logger)

# canonical id -> known raw spellings (already normalized with _norm)
_ALIAS_SEED: Dict[str, List[str]] = {
    "athletic club": ["ath bilbao", "athletic bilbao", "athletic"],
    "atletico madrid": ["ath madrid", "atl madrid", "atletico de madrid", "atleti"],
    "real betis": ["betis", "real betis balompie"],
    "celta vigo": ["celta", "rc celta"],
    "espanyol": ["espanol", "rcd espanyol"],
    "real sociedad": ["sociedad", "la real"],
    "rayo vallecano": ["vallecano", "rayo"],
    "deportivo alaves": ["alaves"],
    "real valladolid": ["valladolid"],
    "sporting gijon": ["sp gijon", "sporting"],
    "deportivo la coruna": ["la coruna", "deportivo"],
    "manchester united": ["man united", "man utd"],
    "manchester city": ["man city"],
    "tottenham hotspur": ["tottenham", "spurs"],
    "wolverhampton wanderers": ["wolves"],
    "newcastle united": ["newcastle"],
    "nottingham forest": ["nott m forest", "nott'm forest", "nottm forest"],
    "bayern munich": ["bayern munchen", "fc bayern"],
    "borussia dortmund": ["dortmund"],
    "paris saint germain": ["paris sg", "psg"],
    "inter": ["inter milan", "internazionale"],
}

# display spellings the match stores use where they differ from the folded aliases;
# ilike compares case-insensitively but not accent-insensitively
_DISPLAY_NAMES: Dict[str, List[str]] = {
    "atletico madrid": ["Atlético Madrid", "Atlético de Madrid"],
    "deportivo alaves": ["Deportivo Alavés", "Alavés"],
    "deportivo la coruna": ["Deportivo La Coruña", "La Coruña"],
    "sporting gijon": ["Sporting Gijón"],
    "real betis": ["Real Betis Balompié"],
    "bayern munich": ["Bayern München"],
    "paris saint germain": ["Paris Saint-Germain"],
    "nottingham forest": ["Nott'm Forest"],
}


def _norm(value: str) -> str:
    """Return a normalized identifier string for alias matching."""

    value = unicodedata.normalize("NFKD", value)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = re.sub(r"[^\w&' ]+", " ", value, flags=re.UNICODE)
    value = re.sub(r"\s+", " ", value).strip().lower()
    return value


@lru_cache(maxsize=1)
def _alias_lookup() -> Dict[str, str]:
    lookup: Dict[str, str] = {}
    for canonical, aliases in _ALIAS_SEED.items():
        lookup[_norm(canonical)] = _norm(canonical)
        for alias in aliases:
            lookup[_norm(alias)] = _norm(canonical)
    return lookup


def canonical_team_id(raw: Optional[str]) -> str:
    """Canonical identifier for a raw team name; empty string for blank input."""

    if raw is None:
        return ""
    normalized = _norm(str(raw))
    if not normalized:
        return ""
    canonical = _alias_lookup().get(normalized, normalized)
    if canonical != normalized:
        _alias_log_throttle.info(
            ("alias", normalized),
            "team_alias_mapped: '%s' -> '%s'",
            raw,
            canonical,
        )
    return canonical


def same_team(a: Optional[str], b: Optional[str]) -> bool:
    """Exact identity on canonical identifiers."""

    ca = canonical_team_id(a)
    return bool(ca) and ca == canonical_team_id(b)


def get_all_aliases_for(canonical: str) -> list[str]:
    """Return every known spelling that resolves to ``canonical``."""

    target = canonical_team_id(canonical)
    return sorted(raw for raw, resolved in _alias_lookup().items() if resolved == target)


def display_spellings_for(team: Optional[str]) -> list[str]:
    """Accented or punctuated spellings of ``team`` as stored upstream, if any."""

    return list(_DISPLAY_NAMES.get(canonical_team_id(team), []))


def distinct_teams(names: Iterable[Optional[str]]) -> list[str]:
    """Deduplicate display names by canonical id, keeping the first spelling seen."""

    seen: Dict[str, str] = {}
    for name in names:
        key = canonical_team_id(name)
        if key and key not in seen:
            seen[key] = str(name).strip()
    return sorted(seen.values(), key=str.lower)
