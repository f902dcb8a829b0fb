"""OpenAI enforcer.

Converts ChatRequest to OpenAI chat completion format, using the
vendor's native JSON mode for models that support it.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from vouch.enforcers.base import BaseEnforcer, VendorReply, close_stream
from vouch.models.request import ChatRequest, Vendor
from vouch.models.trace import TokenUsage


class OpenAIEnforcer(BaseEnforcer):
    """Enforcer for the OpenAI chat completion API.

    Uses a lazily initialized AsyncOpenAI client bound to this instance's
    API key. The SDK's own retries are disabled; BaseEnforcer owns the
    retry budget.
    """

    vendor = Vendor.OPENAI
    default_model = "gpt-4o-mini"
    json_mode_models = (
        "gpt-4-turbo",
        "gpt-4o",
        "gpt-4.1",
        "gpt-3.5-turbo-1106",
        "gpt-3.5-turbo-0125",
    )
    base_url: str | None = None

    def __init__(self, api_key: str, **kwargs: Any) -> None:
        super().__init__(api_key, **kwargs)
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the AsyncOpenAI client."""
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def _convert_messages(
        self, request: ChatRequest, instruction: str
    ) -> list[dict[str, Any]]:
        """Build the OpenAI message list: instruction first, then the conversation."""
        messages: list[dict[str, Any]] = [{"role": "system", "content": instruction}]
        for msg in request.conversation():
            role = msg.role if msg.role in ("system", "user", "assistant") else "user"
            messages.append({"role": role, "content": msg.content})
        return messages

    def _build_kwargs(
        self,
        request: ChatRequest,
        model: str,
        instruction: str,
        json_mode: bool,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": self._convert_messages(request, instruction),
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.max_tokens is not None:
            kwargs["max_tokens"] = request.max_tokens
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        return kwargs

    async def _complete(
        self,
        request: ChatRequest,
        model: str,
        instruction: str,
        json_mode: bool,
    ) -> VendorReply:
        client = self._get_client()
        response = await client.chat.completions.create(
            **self._build_kwargs(request, model, instruction, json_mode)
        )

        choice = response.choices[0] if response.choices else None
        content = choice.message.content if choice is not None else None

        usage = TokenUsage()
        if response.usage is not None:
            usage = TokenUsage(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return VendorReply(
            text=content or "",
            usage=usage,
            finish_reason=choice.finish_reason if choice is not None else None,
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
        stream = await client.chat.completions.create(
            **self._build_kwargs(request, model, instruction, json_mode),
            stream=True,
            stream_options={"include_usage": True},
        )
        return self._iter_deltas(stream, usage)

    async def _iter_deltas(self, stream: Any, usage: TokenUsage) -> AsyncIterator[str]:
        try:
            async for chunk in stream:
                # The final chunk carries usage and no choices.
                if getattr(chunk, "usage", None) is not None:
                    usage.input_tokens = chunk.usage.prompt_tokens
                    usage.output_tokens = chunk.usage.completion_tokens
                    usage.total_tokens = chunk.usage.total_tokens
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        finally:
            await close_stream(stream)
