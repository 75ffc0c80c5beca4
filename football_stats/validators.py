from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .config import setup_logger
from .constants import LEAGUE_ALIAS_MAPPING, LEAGUE_CODES, LEAGUE_DISPLAY_NAMES, MAX_FETCH_LIMIT
from .domain.models import Match
from .errors import MatchValidationError

logger = setup_logger(__name__)


class ValidationWarning(str):
    """Lightweight tag for soft validation warnings."""
    pass


_DISPLAY_TO_CODE = {name.upper().replace(" ", "_"): code for code, name in LEAGUE_DISPLAY_NAMES.items()}


def validate_league(code: Optional[str]) -> Tuple[Optional[str], List[ValidationWarning]]:
    """Return (normalized_league_code_or_None, warnings). Soft-fails on unknown/missing."""
    if not code:
        return None, [ValidationWarning("league_missing")]
    c = str(code).strip()
    if c.lower() in LEAGUE_CODES:
        return c.lower(), []
    alias_key = c.upper().replace(" ", "_")
    alias_match = LEAGUE_ALIAS_MAPPING.get(alias_key) or _DISPLAY_TO_CODE.get(alias_key)
    if alias_match:
        return alias_match, []
    logger.warning("league_unknown: %s", c)
    return None, [ValidationWarning(f"league_unknown:{c}")]


def normalize_team_name(name: Optional[str]) -> Optional[str]:
    """Trim/collapse spaces; return None if empty. Casing is left to the data store."""
    if not name:
        return None
    n = " ".join(str(name).strip().split())
    return n or None


def validate_team_required(name: Optional[str], field: str) -> str:
    """Hard validation for team parameters the computation cannot run without."""
    n = normalize_team_name(name)
    if n is None:
        raise MatchValidationError(field, "team name is required", code="missing_team")
    return n


def validate_team_optional(name: Optional[str]):
    """Soft validation for optional team fields. Always returns (normalized_or_None, [])."""
    n = normalize_team_name(name)
    return n, []


def _clamp_int(
    raw: Any, default: int, min_v: int, max_v: int, label: str
) -> Tuple[int, List[ValidationWarning]]:
    if raw is None or raw == "":
        return default, []
    try:
        v = int(raw)
    except (TypeError, ValueError):
        logger.warning("%s_invalid: %s", label, raw)
        return default, [ValidationWarning(f"{label}_invalid")]
    if v < min_v:
        logger.warning("%s_floor: %s -> %s", label, v, min_v)
        return min_v, [ValidationWarning(f"{label}_floor")]
    if v > max_v:
        logger.warning("%s_cap: %s -> %s", label, v, max_v)
        return max_v, [ValidationWarning(f"{label}_cap")]
    return v, []


def validate_limit(raw: Any, default: int = 10, min_v: int = 1, max_v: int = MAX_FETCH_LIMIT):
    """Coerce to int and clamp to [min_v,max_v]. Return (value, warnings)."""
    return _clamp_int(raw, default, min_v, max_v, "limit")


def validate_offset(raw: Any, default: int = 0):
    return _clamp_int(raw, default, 0, 100_000, "offset")


def validate_weight(raw: Any, default: float) -> Tuple[float, List[ValidationWarning]]:
    """Coerce an ensemble weight to a float in [0, 1]."""
    if raw is None or raw == "":
        return default, []
    try:
        v = float(raw)
    except (TypeError, ValueError):
        logger.warning("weight_invalid: %s", raw)
        return default, [ValidationWarning("weight_invalid")]
    if v != v:  # NaN
        return default, [ValidationWarning("weight_invalid")]
    if v < 0.0:
        return 0.0, [ValidationWarning("weight_floor")]
    if v > 1.0:
        return 1.0, [ValidationWarning("weight_cap")]
    return v, []


def validate_match_date(raw: Optional[str]) -> Tuple[str, List[ValidationWarning]]:
    """Return an ISO (YYYY-MM-DD) match date, defaulting to today."""
    today = date.today().isoformat()
    if not raw:
        return today, []
    text = str(raw).strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(text, fmt).date().isoformat(), []
        except ValueError:
            continue
    logger.warning("match_date_invalid: %s", raw)
    return today, [ValidationWarning("match_date_invalid")]


def validate_match_rows(rows: Iterable[Mapping[str, Any]]) -> List[Match]:
    """Convert raw rows into matches, failing fast on the first malformed row."""
    matches: List[Match] = []
    for index, row in enumerate(rows):
        try:
            matches.append(Match.from_row(row))
        except MatchValidationError as exc:
            logger.warning("match_row_invalid index=%d id=%s err=%s", index, row.get("id"), exc)
            raise
    return matches
