"""BaseEnforcer ABC and the result types shared by every vendor.

Each vendor enforcer subclasses BaseEnforcer and implements two hooks:
_complete() for a blocking call and _open_stream() for a streaming one.
The escalation loop, retry budget, error translation and decoding live
here so every vendor honors the same structured-answer contract.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from vouch.enforcers.decoding import decode_structured_answer, try_decode_structured_answer
from vouch.enforcers.errors import CredentialError, UpstreamError, classify_vendor_error
from vouch.enforcers.prompts import ESCALATION_ORDER, PromptTier, build_system_instruction
from vouch.enforcers.retry import retry_with_backoff
from vouch.enforcers.streaming import StreamAggregator
from vouch.models.answer import StructuredAnswer
from vouch.models.request import ChatRequest, Vendor
from vouch.models.trace import TokenUsage

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class VendorReply:
    """Text and usage from a single blocking vendor call."""

    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str | None = None


@dataclass
class EnforcedCompletion:
    """Result of enforce(): the decoded answer plus call bookkeeping."""

    answer: StructuredAnswer
    raw_text: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    attempts: int = 1
    tier: PromptTier = PromptTier.STRUCTURED


def add_usage(total: TokenUsage, usage: TokenUsage) -> None:
    total.input_tokens += usage.input_tokens
    total.output_tokens += usage.output_tokens
    total.total_tokens += usage.total_tokens


async def close_stream(stream: Any) -> None:
    """Close a vendor SDK stream via close() or aclose(), sync or async."""
    close = getattr(stream, "close", None) or getattr(stream, "aclose", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result


class BaseEnforcer(ABC):
    """Abstract base class for vendor enforcers.

    Holds only an immutable credential, an SDK client and settings, so a
    single instance is safe to share across concurrent requests.

    Subclasses set ``vendor``, ``default_model`` and ``json_mode_models``
    (substrings of model names that accept the vendor's native JSON mode).
    """

    vendor: Vendor
    default_model: str
    json_mode_models: tuple[str, ...] = ()

    def __init__(
        self,
        api_key: str,
        *,
        model: str | None = None,
        escalate: bool = True,
        max_retries: int = 2,
        timeout: float = 60.0,
        retry_base_delay: float = 1.0,
    ) -> None:
        if not api_key or not api_key.strip():
            raise CredentialError(
                f"API key is required for the {self.vendor.value} vendor",
                vendor=self.vendor.value,
            )
        self._api_key = api_key
        self.model = model or self.default_model
        self.escalate = escalate
        self.max_retries = max_retries
        self.timeout = timeout
        self.retry_base_delay = retry_base_delay

    # -- hooks ---------------------------------------------------------

    @abstractmethod
    async def _complete(
        self,
        request: ChatRequest,
        model: str,
        instruction: str,
        json_mode: bool,
    ) -> VendorReply:
        """Issue one blocking completion call and return its text."""

    @abstractmethod
    async def _open_stream(
        self,
        request: ChatRequest,
        model: str,
        instruction: str,
        json_mode: bool,
        usage: TokenUsage,
    ) -> AsyncIterator[str]:
        """Open a streaming call and return an iterator of text deltas.

        Errors raised while opening propagate (and are retried); errors
        raised while iterating are handled by the StreamAggregator.
        Implementations update ``usage`` as the vendor reports it.
        """

    # -- public API ----------------------------------------------------

    def supports_json_mode(self, model: str) -> bool:
        lowered = model.lower()
        return any(name.lower() in lowered for name in self.json_mode_models)

    def resolve_model(self, request: ChatRequest) -> str:
        return request.model or self.model

    def escalation_tiers(self, model: str) -> tuple[PromptTier, ...]:
        """Return the prompt tiers to try, in order, for a model."""
        if self.supports_json_mode(model) or not self.escalate:
            return (PromptTier.STRUCTURED,)
        return ESCALATION_ORDER

    async def enforce(self, request: ChatRequest) -> EnforcedCompletion:
        """Produce a StructuredAnswer from one request.

        Tries each escalation tier until an attempt decodes to a JSON
        object with a string answer. When every attempt fails to decode,
        the last raw text goes through the per-field/unparsed fallback.

        Raises:
            CredentialError, UpstreamError, TransportError: the vendor
                call itself failed; no answer is produced.
        """
        model = self.resolve_model(request)
        json_mode = self.supports_json_mode(model)
        tiers = self.escalation_tiers(model)
        usage = TokenUsage()
        raw_text = ""

        for attempt, tier in enumerate(tiers, start=1):
            instruction = build_system_instruction(request.system_prompt, tier)
            reply: VendorReply = await self._call(
                lambda: self._complete(request, model, instruction, json_mode)
            )
            add_usage(usage, reply.usage)
            if not reply.text:
                raise UpstreamError(
                    f"Empty response from {self.vendor.value}",
                    vendor=self.vendor.value,
                )
            raw_text = reply.text

            decoded = try_decode_structured_answer(raw_text)
            if decoded is not None:
                return EnforcedCompletion(
                    answer=decoded,
                    raw_text=raw_text,
                    model=model,
                    usage=usage,
                    attempts=attempt,
                    tier=tier,
                )
            if attempt < len(tiers):
                logger.info(
                    "[Enforcer] %s/%s attempt %d (%s) was not valid JSON; escalating",
                    self.vendor.value,
                    model,
                    attempt,
                    tier.value,
                )

        logger.warning(
            "[Enforcer] %s/%s returned no decodable JSON after %d attempt(s)",
            self.vendor.value,
            model,
            len(tiers),
        )
        return EnforcedCompletion(
            answer=decode_structured_answer(raw_text),
            raw_text=raw_text,
            model=model,
            usage=usage,
            attempts=len(tiers),
            tier=tiers[-1],
        )

    async def enforce_stream(self, request: ChatRequest) -> StreamAggregator:
        """Open a streaming completion and wrap it in a StreamAggregator.

        Streaming makes a single attempt at the STRUCTURED tier: deltas
        are already forwarded to the caller, so there is nothing to retry
        with a stricter instruction.
        """
        model = self.resolve_model(request)
        json_mode = self.supports_json_mode(model)
        instruction = build_system_instruction(request.system_prompt, PromptTier.STRUCTURED)
        usage = TokenUsage()
        deltas: AsyncIterator[str] = await self._call(
            lambda: self._open_stream(request, model, instruction, json_mode, usage)
        )
        return StreamAggregator(deltas, usage=usage, vendor=self.vendor.value)

    def provider_name(self) -> str:
        return self.vendor.value

    # -- internals -----------------------------------------------------

    async def _call(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Run a vendor call inside the retry budget, translating errors."""
        try:
            result, retries, error_types = await retry_with_backoff(
                factory,
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
            )
        except Exception as exc:
            raise classify_vendor_error(exc, self.vendor.value) from exc
        if retries:
            logger.warning(
                "[Enforcer] %s call succeeded after %d retr%s (%s)",
                self.vendor.value,
                retries,
                "y" if retries == 1 else "ies",
                ", ".join(error_types),
            )
        return result
