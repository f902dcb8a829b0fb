"""Vouch data models - re-exports all public model classes."""

from vouch.models.answer import StructuredAnswer
from vouch.models.config import GatewayConfig, VendorConfig, WorkspaceConfig
from vouch.models.request import ChatMessage, ChatRequest, Vendor
from vouch.models.risk import (
    RiskFactors,
    RiskLevel,
    RiskLevelThresholds,
    RiskScore,
    ScoringWeights,
)
from vouch.models.trace import TokenUsage, TraceRecord
from vouch.models.validation import RuleResult, ValidationLevel, ValidationResult

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "GatewayConfig",
    "RiskFactors",
    "RiskLevel",
    "RiskLevelThresholds",
    "RiskScore",
    "RuleResult",
    "ScoringWeights",
    "StructuredAnswer",
    "TokenUsage",
    "TraceRecord",
    "ValidationLevel",
    "ValidationResult",
    "Vendor",
    "VendorConfig",
    "WorkspaceConfig",
]
