"""Validation engine: runs every rule concurrently and reduces the results.

Overall level is the most severe rule level (BLOCK > FAIL > WARN > PASS).
The score is the rounded mean of per-level constants (PASS=100, WARN=60,
FAIL=20, BLOCK=0), or 100 when no rules are registered. A rule that
raises, or returns something other than a RuleResult, is reported as
FAIL; it never aborts the other rules.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math

from vouch.models.answer import StructuredAnswer
from vouch.models.validation import RuleResult, ValidationLevel, ValidationResult
from vouch.validation.rules.base import ValidationContext, ValidationRule

logger = logging.getLogger(__name__)


def compute_score(results: list[RuleResult]) -> int:
    """Rounded mean of per-level scores; 100 for an empty list."""
    if not results:
        return 100
    # Halves round up: a mean of 2.5 scores 3.
    return math.floor(sum(r.level.score for r in results) / len(results) + 0.5)


def reduce_results(results: list[RuleResult]) -> ValidationResult:
    return ValidationResult(
        overall=ValidationLevel.worst([r.level for r in results]),
        score=compute_score(results),
        rules=tuple(results),
    )


class ValidationEngine:
    """Ordered registry of rules plus the concurrent evaluation loop.

    Each validate() call works on a snapshot of the registry taken when it
    starts, so rules added or removed mid-flight only affect later calls.
    """

    def __init__(self, rules: list[ValidationRule] | None = None) -> None:
        self._rules: list[ValidationRule] = []
        for rule in rules or []:
            self.add_rule(rule)

    @property
    def rule_names(self) -> list[str]:
        return [rule.name for rule in self._rules]

    def add_rule(self, rule: ValidationRule) -> None:
        """Append a rule.

        Raises:
            ValueError: If a rule with the same name is already registered.
        """
        if rule.name in self.rule_names:
            raise ValueError(f"Rule {rule.name!r} is already registered")
        self._rules = [*self._rules, rule]

    def remove_rule(self, name: str) -> bool:
        """Remove a rule by name. Returns False if it was not registered."""
        remaining = [rule for rule in self._rules if rule.name != name]
        removed = len(remaining) != len(self._rules)
        self._rules = remaining
        return removed

    async def validate(
        self,
        answer: StructuredAnswer,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        """Run every registered rule against *answer*.

        Args:
            answer: The structured answer to check. Rules never mutate it.
            context: Optional per-request facts (workspace, history).

        Returns:
            ValidationResult with rule results in registration order.
        """
        context = context or ValidationContext()
        rules = list(self._rules)
        results = await asyncio.gather(*(self._run_rule(rule, answer, context) for rule in rules))
        return reduce_results(list(results))

    async def _run_rule(
        self,
        rule: ValidationRule,
        answer: StructuredAnswer,
        context: ValidationContext,
    ) -> RuleResult:
        try:
            result = rule.evaluate(answer, context)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.warning("[Validation] Rule %s raised %s", rule.name, type(exc).__name__)
            return RuleResult(
                rule_name=rule.name,
                level=ValidationLevel.FAIL,
                message=f"Rule error: {exc}",
                metadata={"error_type": type(exc).__name__},
            )
        if not isinstance(result, RuleResult):
            logger.warning("[Validation] Rule %s returned %s", rule.name, type(result).__name__)
            return RuleResult(
                rule_name=rule.name,
                level=ValidationLevel.FAIL,
                message=f"Rule returned {type(result).__name__}",
                metadata={"error_type": "InvalidRuleResult"},
            )
        return result
