"""Anthropic enforcer.

Converts ChatRequest to the Anthropic messages format. Anthropic has no
JSON mode, so every model goes through the escalation tiers.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from vouch.enforcers.base import BaseEnforcer, VendorReply, close_stream
from vouch.models.request import ChatMessage, ChatRequest, Vendor
from vouch.models.trace import TokenUsage

DEFAULT_MAX_TOKENS = 4096


class AnthropicEnforcer(BaseEnforcer):
    """Enforcer for the Anthropic messages API.

    Uses a lazily initialized AsyncAnthropic client bound to this
    instance's API key.
    """

    vendor = Vendor.ANTHROPIC
    default_model = "claude-sonnet-4-5"

    def __init__(self, api_key: str, **kwargs: Any) -> None:
        super().__init__(api_key, **kwargs)
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the AsyncAnthropic client."""
        if self._client is None:
            from anthropic import AsyncAnthropic

            self._client = AsyncAnthropic(
                api_key=self._api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def _extract_system(
        self, messages: list[ChatMessage], instruction: str
    ) -> tuple[str, list[ChatMessage]]:
        """Fold system messages into the separate 'system' parameter.

        Anthropic takes the system prompt outside the messages array. The
        structured-output instruction always comes last.
        """
        system_parts: list[str] = []
        remaining: list[ChatMessage] = []
        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.content)
            else:
                remaining.append(msg)
        system_parts.append(instruction)
        return "\n\n".join(system_parts), remaining

    def _convert_messages(self, messages: list[ChatMessage]) -> list[dict[str, Any]]:
        result: list[dict[str, Any]] = []
        for msg in messages:
            role = "assistant" if msg.role == "assistant" else "user"
            result.append({"role": role, "content": msg.content})
        return result

    def _build_kwargs(
        self, request: ChatRequest, model: str, instruction: str
    ) -> dict[str, Any]:
        system_prompt, remaining = self._extract_system(request.conversation(), instruction)
        kwargs: dict[str, Any] = {
            "model": model,
            "system": system_prompt,
            "messages": self._convert_messages(remaining),
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        return kwargs

    async def _complete(
        self,
        request: ChatRequest,
        model: str,
        instruction: str,
        json_mode: bool,
    ) -> VendorReply:
        client = self._get_client()
        response = await client.messages.create(**self._build_kwargs(request, model, instruction))

        content_parts = [block.text for block in response.content if block.type == "text"]

        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
        )

        return VendorReply(
            text="\n".join(content_parts),
            usage=usage,
            finish_reason=response.stop_reason,
        )

    async def _open_stream(
        self,
        request: ChatRequest,
        model: str,
        instruction: str,
        json_mode: bool,
        usage: TokenUsage,
    ) -> AsyncIterator[str]:
        client = self._get_client()
        stream = await client.messages.create(
            **self._build_kwargs(request, model, instruction), stream=True
        )
        return self._iter_deltas(stream, usage)

    async def _iter_deltas(self, stream: Any, usage: TokenUsage) -> AsyncIterator[str]:
        try:
            async for event in stream:
                if event.type == "message_start":
                    usage.input_tokens = event.message.usage.input_tokens
                elif event.type == "content_block_delta" and event.delta.type == "text_delta":
                    yield event.delta.text
                elif event.type == "message_delta":
                    usage.output_tokens = event.usage.output_tokens
                usage.total_tokens = usage.input_tokens + usage.output_tokens
        finally:
            await close_stream(stream)
