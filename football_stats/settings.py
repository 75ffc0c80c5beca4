import os
from dotenv import load_dotenv

from .constants import (
    DEFAULT_FORM_WEIGHT,
    H2H_FETCH_LIMIT,
    MATCH_FETCH_LIMIT,
    PREDICTION_CACHE_TTL_SEC,
)

# Load .env from repo root (dotenv auto-walks up from CWD)
load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _get_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or not str(val).strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _read_secret_file(path: str | None) -> str | None:
    if not path:
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read().strip()
    except OSError:
        return None


# --- Match repository ---
MATCH_PROVIDER = os.getenv("MATCH_PROVIDER", "memory").strip().lower()
DEFAULT_LEAGUE = os.getenv("DEFAULT_LEAGUE", "spain").strip().lower() or None
MATCH_FETCH_SIZE = int(os.getenv("MATCH_FETCH_LIMIT", str(MATCH_FETCH_LIMIT)))
H2H_FETCH_SIZE = int(os.getenv("H2H_FETCH_LIMIT", str(H2H_FETCH_LIMIT)))
MATCH_SEED_FILE = os.getenv("MATCH_SEED_FILE") or None  # JSON rows for the memory provider

# --- Supabase (hosted Postgres via PostgREST) ---
SUPABASE_URL = (os.getenv("SUPABASE_URL") or "").rstrip("/")
SUPABASE_KEY = os.getenv("SUPABASE_KEY") or _read_secret_file(os.getenv("SUPABASE_KEY_FILE"))
SUPABASE_TIMEOUT_MS = int(os.getenv("SUPABASE_TIMEOUT_MS", "7000"))
SUPABASE_MATCHES_TABLE = os.getenv("SUPABASE_MATCHES_TABLE", "matches")

# --- Scoring ---
SCORING_VARIANT = os.getenv("SCORING_VARIANT", "statistical_v1").strip()
ENSEMBLE_FORM_WEIGHT = _get_float("ENSEMBLE_FORM_WEIGHT", DEFAULT_FORM_WEIGHT)

# --- Prediction cache ---
PREDICTION_CACHE_ENABLED = _get_bool("PREDICTION_CACHE_ENABLED", True)
PREDICTION_CACHE_TTL = _get_float("PREDICTION_CACHE_TTL_SEC", float(PREDICTION_CACHE_TTL_SEC))
