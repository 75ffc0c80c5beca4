"""Centralized configuration constants for the football statistics service."""

# ---- League codes ----
# Stable internal codes; the hosted match table stores these in `league`.
LEAGUE_CODES = (
    "spain",
    "england",
    "germany",
    "italy",
    "france",
)

LEAGUE_DISPLAY_NAMES = {
    "spain": "La Liga",
    "england": "Premier League",
    "germany": "Bundesliga",
    "italy": "Serie A",
    "france": "Ligue 1",
}

# football-data.co.uk division codes and common spellings -> internal code
LEAGUE_ALIAS_MAPPING = {
    "LA_LIGA": "spain",
    "LALIGA": "spain",
    "SP1": "spain",
    "PD": "spain",
    "PREMIER_LEAGUE": "england",
    "EPL": "england",
    "E0": "england",
    "PL": "england",
    "BUNDESLIGA": "germany",
    "D1": "germany",
    "BL1": "germany",
    "SERIE_A": "italy",
    "I1": "italy",
    "SA": "italy",
    "LIGUE_1": "france",
    "F1": "france",
    "FL1": "france",
}

# Lookback windows (most-recent matches considered per feature)
FORM_WINDOW = 10
GOALS_WINDOW = 10
RATIO_WINDOW = 10  # BTTS and over 2.5
HALFTIME_WINDOW = 10
COMEBACK_WINDOW = 20  # comeback wins/draws and blown leads
H2H_WINDOW = 10

# Minimum head-to-head sample before h2h terms enter the weighted formulas
H2H_MIN_SAMPLE = 3

# Goal line used for the over/under ratio
OVER_UNDER_LINE = 2.5

# Repository fetch sizes
MATCH_FETCH_LIMIT = 50
H2H_FETCH_LIMIT = 20
MAX_FETCH_LIMIT = 200

# Ensemble
DEFAULT_FORM_WEIGHT = 0.5
WEIGHT_SUM_TOLERANCE = 0.01
DISAGREEMENT_LOW = 0.1
DISAGREEMENT_MEDIUM = 0.25

# Cache Duration
PREDICTION_CACHE_TTL_SEC = 24 * 60 * 60
