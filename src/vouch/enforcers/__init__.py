"""Vouch enforcers - vendor request normalization and structured-output enforcement.

Re-exports the BaseEnforcer ABC, result dataclasses, the error taxonomy,
the stream aggregator and the vendor factory.
"""

from vouch.enforcers.base import BaseEnforcer, EnforcedCompletion, VendorReply
from vouch.enforcers.decoding import decode_structured_answer, try_decode_structured_answer
from vouch.enforcers.errors import (
    CredentialError,
    EnforcerError,
    TransportError,
    UpstreamError,
)
from vouch.enforcers.prompts import PromptTier
from vouch.enforcers.registry import EnforcerFactory, create_enforcer
from vouch.enforcers.streaming import StreamAggregator

__all__ = [
    "BaseEnforcer",
    "CredentialError",
    "EnforcedCompletion",
    "EnforcerError",
    "EnforcerFactory",
    "PromptTier",
    "StreamAggregator",
    "TransportError",
    "UpstreamError",
    "VendorReply",
    "create_enforcer",
    "decode_structured_answer",
    "try_decode_structured_answer",
]
