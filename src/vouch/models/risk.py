"""Risk scoring models: factors in, score out, plus tenant tunables."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class RiskLevel(str, Enum):
    """Discrete risk band derived from a numeric score."""

    low = "low"
    medium = "medium"
    high = "high"


class RiskFactors(BaseModel):
    """Raw inputs to the risk model, derived fresh per evaluation."""

    model_config = {"frozen": True}

    confidence: float
    evidence_count: int = Field(ge=0)
    has_pii: bool = False
    has_historical_violations: bool = False
    prompt_complexity: float | None = None


class RiskScore(BaseModel):
    """Computed risk for one answer."""

    model_config = {"frozen": True}

    score: int = Field(ge=0, le=100)
    level: RiskLevel
    explanation: str


class ScoringWeights(BaseModel):
    """Per-factor weights. They are not renormalized after overrides."""

    model_config = {"extra": "forbid"}

    confidence_weight: float = 0.4
    evidence_weight: float = 0.3
    pii_weight: float = 0.2
    historical_weight: float = 0.1


class RiskLevelThresholds(BaseModel):
    """Minimum scores for the high and medium bands."""

    model_config = {"extra": "forbid"}

    high_risk_min: float = 70
    medium_risk_min: float = 40
