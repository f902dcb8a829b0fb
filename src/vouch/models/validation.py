"""Rule and validation result models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ValidationLevel(str, Enum):
    """Severity of a rule outcome, least to most severe."""

    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"
    BLOCK = "BLOCK"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def score(self) -> int:
        """Per-level constant used by the validation score."""
        return _LEVEL_SCORES[self]

    @classmethod
    def worst(cls, levels: "list[ValidationLevel]") -> "ValidationLevel":
        """Return the most severe level, PASS for an empty list."""
        return max(levels, key=lambda level: level.severity, default=cls.PASS)


_SEVERITY: dict[ValidationLevel, int] = {
    ValidationLevel.PASS: 0,
    ValidationLevel.WARN: 1,
    ValidationLevel.FAIL: 2,
    ValidationLevel.BLOCK: 3,
}

_LEVEL_SCORES: dict[ValidationLevel, int] = {
    ValidationLevel.PASS: 100,
    ValidationLevel.WARN: 60,
    ValidationLevel.FAIL: 20,
    ValidationLevel.BLOCK: 0,
}


class RuleResult(BaseModel):
    """Outcome of one rule for one validation run."""

    model_config = {"frozen": True}

    rule_name: str
    level: ValidationLevel
    message: str
    metadata: dict[str, Any] | None = None


class ValidationResult(BaseModel):
    """Overall verdict over every rule that ran.

    ``rules`` keeps rule registration order, not severity order.
    """

    model_config = {"frozen": True}

    overall: ValidationLevel
    score: int = Field(ge=0, le=100)
    rules: tuple[RuleResult, ...] = ()

    @property
    def passed(self) -> bool:
        return self.overall is not ValidationLevel.BLOCK

    def result_for(self, rule_name: str) -> RuleResult | None:
        for result in self.rules:
            if result.rule_name == rule_name:
                return result
        return None
