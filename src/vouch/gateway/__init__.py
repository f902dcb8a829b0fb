"""Vouch gateway - the request pipeline and its HTTP surface."""

from vouch.gateway.cost import estimate_cost
from vouch.gateway.pipeline import (
    CompletionEnvelope,
    CompletionPipeline,
    StreamEvent,
    build_pipeline,
)

__all__ = [
    "CompletionEnvelope",
    "CompletionPipeline",
    "StreamEvent",
    "build_pipeline",
    "estimate_cost",
]
