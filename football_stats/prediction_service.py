"""
Fixture prediction orchestration: fetch the three match slices, aggregate
features, run the scoring variants and blend, then cache the serialized
payload for the day.
"""
from __future__ import annotations

import copy
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .config import setup_logger
from .domain.models import MatchupFeatures
from .ensemble import EnsembleWeights, agreement, disagreement_level, model_disagreement
from .errors import MatchValidationError
from .features import FeatureWindows, build_matchup
from .name_resolver import canonical_team_id, same_team
from .ports.matches import MatchRepository
from .request_memo import RequestMemo
from .scoring import (
    ENHANCED_V1,
    ScoringVariant,
    coverage_confidence,
    get_variant,
    score,
    score_head_to_head,
)
from .settings import (
    ENSEMBLE_FORM_WEIGHT,
    H2H_FETCH_SIZE,
    MATCH_FETCH_SIZE,
    PREDICTION_CACHE_ENABLED,
    PREDICTION_CACHE_TTL,
    SCORING_VARIANT,
)
from .utils import prediction_cache_key

logger = setup_logger(__name__)


class _TTLCache:
    """Thread-safe in-process cache; entries expire ``ttl_sec`` after being set."""

    def __init__(self) -> None:
        self._d: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str, ttl_sec: float) -> Optional[Any]:
        now = time.time()
        with self._lock:
            v = self._d.get(key)
            if not v:
                return None
            ts, data = v
            if now - ts > ttl_sec:
                self._d.pop(key, None)
                return None
            return data

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._d[key] = (time.time(), value)

    def clear(self) -> None:
        with self._lock:
            self._d.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._d)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PredictionService:
    """Builds prediction payloads for a fixture from a match repository."""

    def __init__(
        self,
        repository: MatchRepository,
        variant: Optional[ScoringVariant] = None,
        windows: Optional[FeatureWindows] = None,
        form_weight: float = ENSEMBLE_FORM_WEIGHT,
        cache_enabled: bool = PREDICTION_CACHE_ENABLED,
        cache_ttl: float = PREDICTION_CACHE_TTL,
    ) -> None:
        self.repository = repository
        self.variant = variant or get_variant(SCORING_VARIANT)
        self.windows = windows or FeatureWindows()
        self.weights = EnsembleWeights.from_form_weight(form_weight)
        self.cache_enabled = cache_enabled
        self.cache_ttl = float(cache_ttl)
        self._cache = _TTLCache()

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def team_fetch_size(self) -> int:
        return max(MATCH_FETCH_SIZE, self.windows.team_fetch_size)

    @property
    def h2h_fetch_size(self) -> int:
        return max(H2H_FETCH_SIZE, self.windows.h2h)

    def load_matchup(
        self,
        home_team: str,
        away_team: str,
        league: Optional[str] = None,
        memo: Optional[RequestMemo] = None,
    ) -> MatchupFeatures:
        for field, team in (("home_team", home_team), ("away_team", away_team)):
            if not canonical_team_id(team):
                raise MatchValidationError(field, "team identifier is required", code="missing_team")
        if same_team(home_team, away_team):
            raise MatchValidationError("away_team", "a team cannot play itself", code="same_team")
        memo = memo or RequestMemo(self.repository)
        home_rows = memo.recent_matches(home_team, limit=self.team_fetch_size, league=league)
        away_rows = memo.recent_matches(away_team, limit=self.team_fetch_size, league=league)
        h2h_rows = memo.recent_matches(home_team, away_team, limit=self.h2h_fetch_size, league=league)
        return build_matchup(
            home_team,
            away_team,
            home_rows,
            away_rows,
            h2h_rows,
            self.windows,
            league=league,
        )

    def _cached(self, key: str) -> Optional[Dict[str, Any]]:
        if not self.cache_enabled:
            return None
        hit = self._cache.get(key, self.cache_ttl)
        if hit is None:
            return None
        logger.info("prediction_cache_hit key=%s", key)
        payload = copy.deepcopy(hit)
        payload["meta"]["cache_hit"] = True
        return payload

    def _store(self, key: str, payload: Dict[str, Any]) -> None:
        if self.cache_enabled:
            self._cache.set(key, copy.deepcopy(payload))

    def predict(
        self,
        home_team: str,
        away_team: str,
        league: Optional[str] = None,
        match_date: Optional[str] = None,
        memo: Optional[RequestMemo] = None,
    ) -> Dict[str, Any]:
        """Single-variant prediction with the feature values it was computed from."""

        match_date = match_date or datetime.now(timezone.utc).date().isoformat()
        key = prediction_cache_key(home_team, away_team, match_date, self.variant.name, league)
        cached = self._cached(key)
        if cached is not None:
            return cached

        matchup = self.load_matchup(home_team, away_team, league, memo)
        prediction = score(matchup, self.variant)
        payload = {
            "home_team": home_team,
            "away_team": away_team,
            "league": league,
            "match_date": match_date,
            "prediction": prediction.to_dict(),
            "features": {
                "home": matchup.home.to_dict(),
                "away": matchup.away.to_dict(),
                "h2h": matchup.head_to_head.to_dict(),
            },
            "meta": {
                "model_version": self.variant.name,
                "cache_key": key,
                "cache_hit": False,
                "generated_at": _now_iso(),
            },
        }
        self._store(key, payload)
        logger.info(
            "prediction_generated %s vs %s league=%s variant=%s",
            home_team,
            away_team,
            league,
            self.variant.name,
        )
        return payload

    def enhanced_prediction(
        self,
        home_team: str,
        away_team: str,
        league: Optional[str] = None,
        match_date: Optional[str] = None,
        form_weight: Optional[float] = None,
        memo: Optional[RequestMemo] = None,
    ) -> Dict[str, Any]:
        """Form model and head-to-head model, blended with the ensemble weights."""

        started = time.perf_counter()
        match_date = match_date or datetime.now(timezone.utc).date().isoformat()
        weights = (
            self.weights if form_weight is None else EnsembleWeights.from_form_weight(form_weight)
        )
        key = prediction_cache_key(
            home_team, away_team, match_date, "enhanced", league, round(weights.form, 3)
        )
        cached = self._cached(key)
        if cached is not None:
            cached["meta"]["generation_time_ms"] = round((time.perf_counter() - started) * 1000, 2)
            return cached

        matchup = self.load_matchup(home_team, away_team, league, memo)
        form_prediction = score(matchup, ENHANCED_V1)
        h2h_prediction = score_head_to_head(matchup, ENHANCED_V1)
        ensemble = weights.blend(form_prediction, h2h_prediction)
        confidence = coverage_confidence(
            matchup, ENHANCED_V1, agreement=agreement(form_prediction, h2h_prediction)
        )
        disagreement = model_disagreement(form_prediction, h2h_prediction)

        final = ensemble.to_dict()
        final["confidence"] = round(confidence, 3)
        h2h = matchup.head_to_head
        payload = {
            "home_team": home_team,
            "away_team": away_team,
            "league": league,
            "match_date": match_date,
            "prediction": final,
            "confidence": round(confidence, 3),
            "predictions": {
                "form": form_prediction.to_dict(),
                "h2h": h2h_prediction.to_dict(),
                "ensemble": ensemble.to_dict(),
            },
            "weights": {
                **weights.to_dict(),
                "confidence_adjustment": round(weights.confidence_adjustment(), 3),
            },
            "disagreement": {"value": round(disagreement, 3), **disagreement_level(disagreement)},
            "features": {
                "home": {
                    "form_index": round(matchup.home.form_index, 3),
                    "avg_goals_scored": round(matchup.home.avg_goals_scored, 2),
                    "avg_goals_conceded": round(matchup.home.avg_goals_conceded, 2),
                    "comeback_win_ratio": round(matchup.home.comeback_win.value, 3),
                },
                "away": {
                    "form_index": round(matchup.away.form_index, 3),
                    "avg_goals_scored": round(matchup.away.avg_goals_scored, 2),
                    "avg_goals_conceded": round(matchup.away.avg_goals_conceded, 2),
                    "comeback_win_ratio": round(matchup.away.comeback_win.value, 3),
                },
                "h2h": h2h.to_dict(),
            },
            "meta": {
                "model_version": ENHANCED_V1.name,
                "cache_key": key,
                "cache_hit": False,
                "generated_at": _now_iso(),
                "data_quality": {
                    "home_matches": matchup.home.matches_count,
                    "away_matches": matchup.away.matches_count,
                    "h2h_matches": h2h.total_matches,
                    "total_matches": matchup.home.matches_count + matchup.away.matches_count,
                },
                "generation_time_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        }
        self._store(key, payload)
        logger.info(
            "enhanced_prediction_generated %s vs %s league=%s form_weight=%.2f disagreement=%.3f",
            home_team,
            away_team,
            league,
            weights.form,
            disagreement,
        )
        return payload
