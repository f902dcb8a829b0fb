"""Rule that turns the weighted risk score into a verdict."""

from __future__ import annotations

from vouch.models.answer import StructuredAnswer
from vouch.models.risk import RiskFactors, RiskLevel
from vouch.models.validation import RuleResult, ValidationLevel
from vouch.validation.rules.base import ValidationContext
from vouch.validation.rules.pii import scan_text
from vouch.validation.scoring import RiskScorer

_LEVELS: dict[RiskLevel, ValidationLevel] = {
    RiskLevel.low: ValidationLevel.PASS,
    RiskLevel.medium: ValidationLevel.WARN,
    RiskLevel.high: ValidationLevel.BLOCK,
}


class RiskScoreRule:
    """BLOCK high-risk answers and WARN on medium-risk ones.

    Not part of the default rule set; add it by name ("risk_score") for
    workspaces that want the numeric score to gate release.
    """

    name = "risk_score"

    def __init__(self, scorer: RiskScorer | None = None) -> None:
        self._scorer = scorer or RiskScorer()

    async def evaluate(self, answer: StructuredAnswer, context: ValidationContext) -> RuleResult:
        factors = RiskFactors(
            confidence=answer.confidence,
            evidence_count=len(answer.evidence),
            has_pii=scan_text(answer.scan_text()).has_pii,
            has_historical_violations=context.has_historical_violations,
        )
        if context.workspace_id is not None:
            risk = await self._scorer.score_for_workspace(context.workspace_id, factors)
        else:
            risk = self._scorer.score(factors)

        return RuleResult(
            rule_name=self.name,
            level=_LEVELS[risk.level],
            message=f"Risk score {risk.score} ({risk.level.value}): {risk.explanation}",
            metadata={"score": risk.score, "level": risk.level.value},
        )
