"""Confidence/evidence consistency rule.

Flags answers whose self-reported confidence is not backed by evidence,
answers the model itself was unsure about, and answers whose reported
confidence disagrees with a model-side estimate.
"""

from __future__ import annotations

from vouch.models.answer import StructuredAnswer
from vouch.models.validation import RuleResult, ValidationLevel
from vouch.validation.rules.base import ValidationContext

HIGH_CONFIDENCE = 90.0
MIN_EVIDENCE_FOR_HIGH_CONFIDENCE = 2
LOW_CONFIDENCE = 50.0
MAX_CONFIDENCE_DISCREPANCY = 30.0


class ConfidenceEvidenceRule:
    """WARN on unsupported, low or inconsistent confidence."""

    name = "confidence_evidence_check"

    def evaluate(self, answer: StructuredAnswer, context: ValidationContext) -> RuleResult:
        confidence = answer.confidence
        evidence_count = len(answer.evidence)
        issues: list[str] = []

        if confidence >= HIGH_CONFIDENCE and evidence_count < MIN_EVIDENCE_FOR_HIGH_CONFIDENCE:
            issues.append(
                f"High confidence ({confidence:g}) with insufficient evidence "
                f"({evidence_count} item{'s' if evidence_count != 1 else ''})"
            )

        if confidence < LOW_CONFIDENCE:
            issues.append(f"Low confidence ({confidence:g})")

        internal = context.internal_confidence
        if internal is not None and abs(confidence - internal) > MAX_CONFIDENCE_DISCREPANCY:
            issues.append(
                f"Reported confidence ({confidence:g}) differs from internal "
                f"estimate ({internal:g}) by more than {MAX_CONFIDENCE_DISCREPANCY:g} points"
            )

        if issues:
            return RuleResult(
                rule_name=self.name,
                level=ValidationLevel.WARN,
                message="; ".join(issues),
                metadata={"confidence": confidence, "evidence_count": evidence_count},
            )
        return RuleResult(
            rule_name=self.name,
            level=ValidationLevel.PASS,
            message="Confidence is consistent with evidence",
        )
