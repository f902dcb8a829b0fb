"""Validation engine, rules and the risk scorer."""

from vouch.validation.engine import ValidationEngine
from vouch.validation.rules import (
    RuleDependencies,
    ValidationContext,
    ValidationRule,
    default_rules,
    get_rule,
)
from vouch.validation.scoring import RiskScorer

__all__ = [
    "RiskScorer",
    "RuleDependencies",
    "ValidationContext",
    "ValidationEngine",
    "ValidationRule",
    "default_rules",
    "get_rule",
]
