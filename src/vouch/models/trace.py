"""Trace records handed to the trace sink.

Pydantic models because traces are serialized to JSON for persistence.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from vouch.models.answer import StructuredAnswer
from vouch.models.risk import RiskScore
from vouch.models.validation import ValidationResult


class TokenUsage(BaseModel):
    """Token usage reported by the vendor for one request."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class TraceRecord(BaseModel):
    """Everything recorded about one completed request."""

    trace_id: str
    workspace_id: str
    timestamp: datetime
    vendor: str
    model: str
    prompt: str
    answer: StructuredAnswer
    validation: ValidationResult
    risk: RiskScore | None = None
    latency_ms: float
    usage: TokenUsage = TokenUsage()
    estimated_cost_usd: float | None = None
    attempts: int = 1
    streamed: bool = False
