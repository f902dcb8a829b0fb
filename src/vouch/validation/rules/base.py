"""Rule capability and the context handed to every rule."""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from vouch.models.answer import StructuredAnswer
from vouch.models.validation import RuleResult


@dataclass(frozen=True)
class ValidationContext:
    """Per-request facts a rule may consult besides the answer itself.

    ``internal_confidence`` is a model-side certainty estimate on the same
    0-100 scale as StructuredAnswer.confidence, when one is available.
    """

    workspace_id: str | None = None
    has_historical_violations: bool = False
    internal_confidence: float | None = None


@runtime_checkable
class ValidationRule(Protocol):
    """Anything with a ``name`` and an ``evaluate`` method is a rule.

    ``evaluate`` may be a plain function or a coroutine function. It must
    not mutate the answer; raising is allowed and is reported as FAIL by
    the engine.
    """

    name: str

    def evaluate(
        self, answer: StructuredAnswer, context: ValidationContext
    ) -> RuleResult | Awaitable[RuleResult]: ...
