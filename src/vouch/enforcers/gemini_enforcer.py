"""Google Gemini enforcer.

Gemini 1.5 and later accept ``response_mime_type="application/json"``,
which is treated as native JSON mode; older models escalate.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from vouch.enforcers.base import BaseEnforcer, VendorReply, close_stream
from vouch.models.request import ChatMessage, ChatRequest, Vendor
from vouch.models.trace import TokenUsage


def _response_text(response: Any) -> str:
    """Collect text parts of the first candidate without raising.

    A candidate with no text parts (for example a safety stop) degrades
    to empty text.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return ""
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    return "".join(getattr(part, "text", "") or "" for part in parts)


def _usage_of(response: Any) -> TokenUsage | None:
    metadata = getattr(response, "usage_metadata", None)
    if metadata is None:
        return None
    input_tokens = getattr(metadata, "prompt_token_count", 0) or 0
    output_tokens = getattr(metadata, "candidates_token_count", 0) or 0
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
    )


class GeminiEnforcer(BaseEnforcer):
    """Enforcer for the Gemini generateContent API.

    Each instance owns a ``genai.Client`` bound to its own key, so
    enforcers for different workspaces never share a credential.
    """

    vendor = Vendor.GEMINI
    default_model = "gemini-2.0-flash"
    json_mode_models = ("gemini-1.5", "gemini-2")

    def __init__(self, api_key: str, **kwargs: Any) -> None:
        super().__init__(api_key, **kwargs)
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the google-genai client."""
        if self._client is None:
            from google import genai
            from google.genai import types

            self._client = genai.Client(
                api_key=self._api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
            )
        return self._client

    def _convert_contents(
        self, messages: list[ChatMessage], instruction: str
    ) -> tuple[str, list[dict[str, Any]]]:
        """Split out the system instruction and map roles to user/model."""
        system_parts: list[str] = []
        contents: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.content)
                continue
            role = "model" if msg.role == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": msg.content}]})
        system_parts.append(instruction)
        return "\n\n".join(system_parts), contents

    def _build_config(self, system_instruction: str, request: ChatRequest, json_mode: bool) -> Any:
        from google.genai import types

        return types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=request.temperature,
            max_output_tokens=request.max_tokens,
            response_mime_type="application/json" if json_mode else None,
        )

    def _build_kwargs(
        self, request: ChatRequest, model: str, instruction: str, json_mode: bool
    ) -> dict[str, Any]:
        system_instruction, contents = self._convert_contents(request.conversation(), instruction)
        return {
            "model": model,
            "contents": contents,
            "config": self._build_config(system_instruction, request, json_mode),
        }

    async def _complete(
        self,
        request: ChatRequest,
        model: str,
        instruction: str,
        json_mode: bool,
    ) -> VendorReply:
        client = self._get_client()
        response = await client.aio.models.generate_content(
            **self._build_kwargs(request, model, instruction, json_mode)
        )
        return VendorReply(
            text=_response_text(response),
            usage=_usage_of(response) or TokenUsage(),
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
        stream = await client.aio.models.generate_content_stream(
            **self._build_kwargs(request, model, instruction, json_mode)
        )
        return self._iter_deltas(stream, usage)

    async def _iter_deltas(self, stream: Any, usage: TokenUsage) -> AsyncIterator[str]:
        try:
            async for chunk in stream:
                chunk_usage = _usage_of(chunk)
                if chunk_usage is not None:
                    usage.input_tokens = chunk_usage.input_tokens
                    usage.output_tokens = chunk_usage.output_tokens
                    usage.total_tokens = chunk_usage.total_tokens
                text = _response_text(chunk)
                if text:
                    yield text
        finally:
            await close_stream(stream)
