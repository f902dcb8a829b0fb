"""Rule registry -- maps rule names to rule factories.

Rules are looked up by builtin name or, for rules shipped outside this
package, by dotted import path ("package.module:ClassName" or
"package.module.ClassName").
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from typing import TYPE_CHECKING

from vouch.validation.rules.base import ValidationContext, ValidationRule
from vouch.validation.rules.confidence import ConfidenceEvidenceRule
from vouch.validation.rules.pii import PiiRiskRule
from vouch.validation.rules.risk_score import RiskScoreRule

if TYPE_CHECKING:
    from vouch.stores.base import CustomPatternStore
    from vouch.validation.scoring import RiskScorer

# Builtin rules applied by default, in registration order.
DEFAULT_RULE_NAMES: tuple[str, ...] = ("confidence_evidence_check", "risk_scanner")


class RuleDependencies:
    """Collaborators handed to rule factories that need them."""

    def __init__(
        self,
        pattern_store: CustomPatternStore | None = None,
        scorer: RiskScorer | None = None,
    ) -> None:
        self.pattern_store = pattern_store
        self.scorer = scorer


BUILTIN_RULES: dict[str, Callable[[RuleDependencies], ValidationRule]] = {
    "confidence_evidence_check": lambda deps: ConfidenceEvidenceRule(),
    "risk_scanner": lambda deps: PiiRiskRule(deps.pattern_store),
    "risk_score": lambda deps: RiskScoreRule(deps.scorer),
}


def _import_rule(path: str) -> ValidationRule:
    """Import a rule class or instance from a dotted path."""
    module_path, sep, attr = path.partition(":")
    if not sep:
        module_path, _, attr = path.rpartition(".")
    if not module_path or not attr:
        raise ValueError(f"Invalid rule path {path!r}")
    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise ValueError(f"Cannot import rule module {module_path!r}: {exc}") from exc
    target = getattr(module, attr, None)
    if target is None:
        raise ValueError(f"Module {module_path!r} has no attribute {attr!r}")
    rule = target() if isinstance(target, type) else target
    if not isinstance(rule, ValidationRule):
        raise ValueError(f"{path!r} is not a validation rule (needs name and evaluate)")
    return rule


def get_rule(name: str, deps: RuleDependencies | None = None) -> ValidationRule:
    """Look up and instantiate a rule by builtin name or dotted path.

    Raises:
        ValueError: If *name* is neither a builtin rule nor an importable
            rule path.
    """
    factory = BUILTIN_RULES.get(name)
    if factory is not None:
        return factory(deps or RuleDependencies())
    if "." in name:
        return _import_rule(name)
    available = sorted(BUILTIN_RULES.keys())
    raise ValueError(f"Unknown rule {name!r}. Available rules: {available}")


def default_rules(deps: RuleDependencies | None = None) -> list[ValidationRule]:
    return [get_rule(name, deps) for name in DEFAULT_RULE_NAMES]


__all__ = [
    "BUILTIN_RULES",
    "DEFAULT_RULE_NAMES",
    "ConfidenceEvidenceRule",
    "PiiRiskRule",
    "RiskScoreRule",
    "RuleDependencies",
    "ValidationContext",
    "ValidationRule",
    "default_rules",
    "get_rule",
]
