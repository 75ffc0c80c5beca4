"""Linear blending of two model runs plus the weight bookkeeping around it."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .constants import (
    DEFAULT_FORM_WEIGHT,
    DISAGREEMENT_LOW,
    DISAGREEMENT_MEDIUM,
    WEIGHT_SUM_TOLERANCE,
)
from .domain.models import ExpectedGoals, Prediction


def _clamp_weight(weight: float) -> float:
    return max(0.0, min(1.0, float(weight)))


def blend(a: Prediction, b: Prediction, weight_a: float = DEFAULT_FORM_WEIGHT) -> Prediction:
    """Return ``weight_a·a + (1 − weight_a)·b`` field by field, renormalized.

    Weights outside [0, 1] are clamped. Confidence is blended like any other
    scalar; callers that own a better confidence estimate replace it.
    """

    w = _clamp_weight(weight_a)
    rest = 1.0 - w

    def _mix(x: float, y: float) -> float:
        return w * x + rest * y

    return Prediction(
        home_win=_mix(a.home_win, b.home_win),
        draw=_mix(a.draw, b.draw),
        away_win=_mix(a.away_win, b.away_win),
        btts=_mix(a.btts, b.btts),
        over25=_mix(a.over25, b.over25),
        expected_goals=ExpectedGoals(
            home=_mix(a.expected_goals.home, b.expected_goals.home),
            away=_mix(a.expected_goals.away, b.expected_goals.away),
        ),
        confidence=_mix(a.confidence, b.confidence),
        model="ensemble",
    ).normalized()


@dataclass(frozen=True)
class EnsembleWeights:
    """Form-model vs head-to-head-model weights; always sum to one."""

    form: float = DEFAULT_FORM_WEIGHT
    h2h: float = 1.0 - DEFAULT_FORM_WEIGHT

    @classmethod
    def from_form_weight(cls, form_weight: float) -> "EnsembleWeights":
        w = _clamp_weight(form_weight)
        return cls(form=w, h2h=1.0 - w)

    @classmethod
    def from_h2h_weight(cls, h2h_weight: float) -> "EnsembleWeights":
        w = _clamp_weight(h2h_weight)
        return cls(form=1.0 - w, h2h=w)

    @staticmethod
    def is_valid(raw: Any) -> bool:
        if not isinstance(raw, Mapping):
            return False
        form, h2h = raw.get("form"), raw.get("h2h")
        if isinstance(form, bool) or isinstance(h2h, bool):
            return False
        if not isinstance(form, (int, float)) or not isinstance(h2h, (int, float)):
            return False
        return (
            0.0 <= form <= 1.0
            and 0.0 <= h2h <= 1.0
            and abs(form + h2h - 1.0) < WEIGHT_SUM_TOLERANCE
        )

    @classmethod
    def from_mapping(cls, raw: Any, default: Optional["EnsembleWeights"] = None) -> "EnsembleWeights":
        """Parse stored weights, falling back to ``default`` when invalid."""

        if cls.is_valid(raw):
            return cls.from_form_weight(raw["form"])
        return default or cls()

    def blend(self, form_prediction: Prediction, h2h_prediction: Prediction) -> Prediction:
        return blend(form_prediction, h2h_prediction, self.form)

    def description(self) -> str:
        form_pct = round(self.form * 100)
        h2h_pct = round(self.h2h * 100)
        if form_pct >= 80:
            return f"Mostly form based ({form_pct}%)"
        if h2h_pct >= 80:
            return f"Mostly head-to-head based ({h2h_pct}%)"
        return f"Balanced ({form_pct}% form, {h2h_pct}% head-to-head)"

    def confidence_adjustment(self) -> float:
        """Up to +0.1 for perfectly balanced weights."""

        return (1.0 - abs(self.form - self.h2h)) * 0.1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "form": round(self.form, 3),
            "h2h": round(self.h2h, 3),
            "description": self.description(),
        }


def model_disagreement(a: Prediction, b: Prediction) -> float:
    """Mean absolute difference across the outcome triple."""

    return (
        abs(a.home_win - b.home_win) + abs(a.draw - b.draw) + abs(a.away_win - b.away_win)
    ) / 3


def agreement(a: Prediction, b: Prediction) -> float:
    """1 minus the home-win gap between two model runs."""

    return 1.0 - abs(a.home_win - b.home_win)


def disagreement_level(disagreement: float) -> Dict[str, str]:
    if disagreement < DISAGREEMENT_LOW:
        return {"level": "low", "description": "Models agree"}
    if disagreement < DISAGREEMENT_MEDIUM:
        return {"level": "medium", "description": "Moderate disagreement between models"}
    return {"level": "high", "description": "Models disagree strongly"}
