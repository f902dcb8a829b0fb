"""Weighted risk scorer.

Maps RiskFactors to a 0-100 RiskScore and a low/medium/high level. Weights
and level thresholds can be overridden per workspace through a
TenantConfigStore; every field falls back to its default independently.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from vouch.models.risk import (
    RiskFactors,
    RiskLevel,
    RiskLevelThresholds,
    RiskScore,
    ScoringWeights,
)

if TYPE_CHECKING:
    from vouch.stores.base import ConfigKind, TenantConfigStore

logger = logging.getLogger(__name__)

EVIDENCE_STEP = 20

_LEVEL_SUMMARIES: dict[RiskLevel, str] = {
    RiskLevel.high: "High risk; review before release",
    RiskLevel.medium: "Moderate risk",
    RiskLevel.low: "Low risk",
}


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))


def confidence_component(confidence: float) -> float:
    """High confidence means low risk."""
    return 100.0 - _clamp(confidence)


def evidence_component(evidence_count: int) -> float:
    """Each evidence item removes 20 points; five or more remove all."""
    return float(max(0, 100 - evidence_count * EVIDENCE_STEP))


def explain(factors: RiskFactors, level: RiskLevel) -> str:
    """Build the deterministic explanation for a score."""
    reasons: list[str] = []

    if factors.confidence < 60:
        reasons.append("low confidence")
    elif factors.confidence > 90:
        reasons.append("high confidence")

    if factors.evidence_count < 2:
        reasons.append("insufficient evidence")
    elif factors.evidence_count >= 5:
        reasons.append("sufficient evidence")

    if factors.has_pii:
        reasons.append("contains PII")

    if factors.has_historical_violations:
        reasons.append("similar violations in history")

    summary = _LEVEL_SUMMARIES[level]
    if not reasons:
        return f"{summary}."
    reason_text = ", ".join(reasons)
    return f"{reason_text[0].upper()}{reason_text[1:]}. {summary}."


def _merge(model: Any, overrides: dict[str, Any] | None) -> Any:
    """Overlay numeric overrides onto a defaults model, field by field."""
    if not overrides:
        return model
    update: dict[str, float] = {}
    for name in type(model).model_fields:
        value = overrides.get(name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            update[name] = float(value)
    return model.model_copy(update=update)


class RiskScorer:
    """Compute risk scores with default or per-workspace tunables.

    Args:
        config_store: Tenant configuration source consulted by
            score_for_workspace(). Optional; without it every workspace
            uses the defaults.
    """

    def __init__(self, config_store: TenantConfigStore | None = None) -> None:
        self._config_store = config_store

    def score(
        self,
        factors: RiskFactors,
        weights: ScoringWeights | None = None,
        thresholds: RiskLevelThresholds | None = None,
    ) -> RiskScore:
        """Score *factors* synchronously. Defaults apply to omitted tunables."""
        weights = weights or ScoringWeights()
        thresholds = thresholds or RiskLevelThresholds()

        raw = (
            confidence_component(factors.confidence) * weights.confidence_weight
            + evidence_component(factors.evidence_count) * weights.evidence_weight
            + (100.0 if factors.has_pii else 0.0) * weights.pii_weight
            + (100.0 if factors.has_historical_violations else 0.0) * weights.historical_weight
        )
        score = math.floor(_clamp(raw) + 0.5)

        if score >= thresholds.high_risk_min:
            level = RiskLevel.high
        elif score >= thresholds.medium_risk_min:
            level = RiskLevel.medium
        else:
            level = RiskLevel.low

        return RiskScore(score=score, level=level, explanation=explain(factors, level))

    async def score_for_workspace(self, workspace_id: str, factors: RiskFactors) -> RiskScore:
        """Score *factors* with the workspace's weights and thresholds."""
        weights = _merge(
            ScoringWeights(), await self._lookup(workspace_id, "scoring_weights")
        )
        thresholds = _merge(
            RiskLevelThresholds(), await self._lookup(workspace_id, "risk_levels")
        )
        return self.score(factors, weights, thresholds)

    async def _lookup(self, workspace_id: str, kind: ConfigKind) -> dict[str, Any] | None:
        if self._config_store is None:
            return None
        try:
            data = await self._config_store.get_validation_config(workspace_id, kind)
        except Exception as exc:
            logger.warning(
                "[RiskScorer] %s lookup failed for workspace %s (%s); using defaults",
                kind,
                workspace_id,
                type(exc).__name__,
            )
            return None
        return data if isinstance(data, dict) else None
