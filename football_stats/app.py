from datetime import datetime, timezone
from functools import lru_cache
from types import SimpleNamespace
from typing import Optional

from flask import Flask, request, g

from .config import setup_logger
from .app_utils import make_ok, make_error, legacy_endpoint
from .composition.providers import match_repository
from .errors import APIError, MatchValidationError
from .prediction_service import PredictionService
from .request_memo import RequestMemo
from .settings import DEFAULT_LEAGUE, MATCH_FETCH_SIZE
from .statistics import calculate_statistics, merge_recent, team_record
from .validators import (
    validate_league,
    validate_limit,
    validate_match_date,
    validate_offset,
    validate_team_optional,
    validate_weight,
)

app = Flask(__name__)

logger = setup_logger(__name__)


@lru_cache(maxsize=1)
def prediction_service() -> PredictionService:
    return PredictionService(match_repository())


@app.before_request
def _prime_request_memo() -> None:
    g.ctx = SimpleNamespace()
    g.ctx.memo = RequestMemo(match_repository())


def _league_arg() -> Optional[str]:
    """League from the query string; the configured default when omitted."""
    raw = request.args.get("league")
    league, warnings = validate_league(raw if raw else DEFAULT_LEAGUE)
    if warnings:
        logger.info("league_arg_warnings path=%s warnings=%s", request.path, list(warnings))
    return league


def _missing_teams_response():
    return make_error(
        error="MISSING_PARAMETERS",
        message="home_team and away_team are required",
        status_code=400,
    )


def _validation_error_response(exc: MatchValidationError):
    logger.info("request_validation_failed field=%s code=%s", exc.field, exc.code)
    return make_error(exc, message=exc.message, status_code=400)


def _store_error_response(exc: APIError):
    logger.warning("match_store_unavailable source=%s code=%s", exc.source, exc.code)
    return make_error(exc, message="Match data temporarily unavailable", status_code=503)


@app.route("/status", methods=["GET"])
def status():
    """Health-check endpoint reporting response format mode."""
    from .config import USE_LEGACY_RESPONSES

    return make_ok({"legacy_mode": USE_LEGACY_RESPONSES})


@app.route("/health", methods=["GET"])
def health():
    return make_ok(
        {"ok": True, "ts": datetime.now(timezone.utc).isoformat()},
        "OK",
        status_code=200,
    )


@app.route("/api/matches", methods=["GET"])
def list_matches():
    """Search stored matches, optionally by home and/or away team."""
    league = _league_arg()
    limit, _lw = validate_limit(request.args.get("limit"))
    offset, _ow = validate_offset(request.args.get("offset"))
    home_team, _ = validate_team_optional(request.args.get("home_team"))
    away_team, _ = validate_team_optional(request.args.get("away_team"))

    try:
        matches = match_repository().search_matches(
            home_team=home_team,
            away_team=away_team,
            limit=limit,
            offset=offset,
            league=league,
        )
    except APIError as e:
        return _store_error_response(e)
    except Exception:
        logger.exception("Error in /api/matches")
        return make_error(error="Match search failed", message="Match search failed", status_code=500)

    return make_ok({
        "matches": [m.to_dict() for m in matches],
        "count": len(matches),
        "limit": limit,
        "offset": offset,
        "league": league,
    })


@app.route("/api/matches/<match_id>", methods=["GET"])
def get_match_by_id(match_id):
    try:
        match = match_repository().get_match(match_id)
    except APIError as e:
        return _store_error_response(e)
    except Exception:
        logger.exception("Error in /api/matches/<match_id>")
        return make_error(error="Match lookup failed", message="Match lookup failed", status_code=500)

    if match is None:
        return make_error(error="MATCH_NOT_FOUND", message="Match not found", status_code=404)
    return make_ok(match.to_dict())


@app.route("/api/teams", methods=["GET"])
def list_teams():
    league = _league_arg()
    try:
        teams = match_repository().list_teams(league=league)
    except APIError as e:
        return _store_error_response(e)
    except Exception:
        logger.exception("Error in /api/teams")
        return make_error(error="Team listing failed", message="Team listing failed", status_code=500)

    return make_ok({"teams": teams, "count": len(teams), "league": league})


@app.route("/api/teams/<team>/record", methods=["GET"])
def get_team_record(team):
    """Win/draw/loss record and recent form of one team."""
    league = _league_arg()
    limit, _lw = validate_limit(request.args.get("limit"), default=MATCH_FETCH_SIZE)
    team_name, _ = validate_team_optional(team)
    if not team_name:
        return make_error(error="MISSING_PARAMETERS", message="team is required", status_code=400)

    try:
        matches = g.ctx.memo.recent_matches(team_name, limit=limit, league=league)
        record = team_record(matches, team_name)
    except MatchValidationError as e:
        return _validation_error_response(e)
    except APIError as e:
        return _store_error_response(e)
    except Exception:
        logger.exception("Error in /api/teams/<team>/record")
        return make_error(error="Team record failed", message="Team record failed", status_code=500)

    record["league"] = league
    return make_ok(record)


@app.route("/api/statistics", methods=["GET"])
def statistics():
    """Descriptive statistics; adds team analysis and a baseline when both teams are given."""
    league = _league_arg()
    limit, _lw = validate_limit(request.args.get("limit"), default=MATCH_FETCH_SIZE)
    home_team, _ = validate_team_optional(request.args.get("home_team"))
    away_team, _ = validate_team_optional(request.args.get("away_team"))
    memo = g.ctx.memo

    try:
        if home_team and away_team:
            matches = merge_recent(
                memo.recent_matches(home_team, limit=limit, league=league),
                memo.recent_matches(away_team, limit=limit, league=league),
            )
        elif home_team or away_team:
            matches = memo.recent_matches(home_team or away_team, limit=limit, league=league)
        else:
            matches = match_repository().search_matches(limit=limit, league=league)
        payload = calculate_statistics(matches, home_team, away_team)
    except MatchValidationError as e:
        return _validation_error_response(e)
    except APIError as e:
        return _store_error_response(e)
    except Exception:
        logger.exception("Error in /api/statistics")
        return make_error(error="Statistics failed", message="Statistics failed", status_code=500)

    payload["league"] = league
    return make_ok(payload)


@app.route("/api/prediction", methods=["GET"])
@legacy_endpoint
def prediction():
    """Statistical prediction for a fixture."""
    league = _league_arg()
    home_team, _ = validate_team_optional(request.args.get("home_team"))
    away_team, _ = validate_team_optional(request.args.get("away_team"))
    if not home_team or not away_team:
        return _missing_teams_response()
    match_date, _dw = validate_match_date(request.args.get("match_date"))

    logger.info("Handling /api/prediction", extra={
        "home_team": home_team,
        "away_team": away_team,
        "league": league,
    })
    try:
        payload = prediction_service().predict(
            home_team, away_team, league=league, match_date=match_date, memo=g.ctx.memo
        )
    except MatchValidationError as e:
        return _validation_error_response(e)
    except APIError as e:
        return _store_error_response(e)
    except Exception:
        logger.exception("Error in /api/prediction")
        return make_error(error="Prediction failed", message="Prediction failed", status_code=500)

    return make_ok(payload)


@app.route("/api/enhanced-prediction", methods=["GET"])
@legacy_endpoint
def enhanced_prediction():
    """Form and head-to-head models blended with an adjustable form weight."""
    league = _league_arg()
    home_team, _ = validate_team_optional(request.args.get("home_team"))
    away_team, _ = validate_team_optional(request.args.get("away_team"))
    if not home_team or not away_team:
        return _missing_teams_response()
    match_date, _dw = validate_match_date(request.args.get("match_date"))
    service = prediction_service()
    form_weight, _ww = validate_weight(request.args.get("form_weight"), service.weights.form)

    try:
        payload = service.enhanced_prediction(
            home_team,
            away_team,
            league=league,
            match_date=match_date,
            form_weight=form_weight,
            memo=g.ctx.memo,
        )
    except MatchValidationError as e:
        return _validation_error_response(e)
    except APIError as e:
        return _store_error_response(e)
    except Exception:
        logger.exception("Error in /api/enhanced-prediction")
        return make_error(error="Prediction failed", message="Prediction failed", status_code=500)

    return make_ok(payload)


if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=5000)
