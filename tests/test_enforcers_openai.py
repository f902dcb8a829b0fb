"""Tests for vouch.enforcers.openai_enforcer and deepseek_enforcer.

Uses unittest.mock to mock the OpenAI SDK client, so tests run
without API keys or network access.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import FakeStream
from vouch.enforcers.deepseek_enforcer import DEEPSEEK_BASE_URL, DeepSeekEnforcer
from vouch.enforcers.openai_enforcer import OpenAIEnforcer
from vouch.enforcers.prompts import STRUCTURED_INSTRUCTION
from vouch.enforcers.streaming import collect
from vouch.models.request import ChatRequest

GOOD = '{"answer": "Tokyo", "confidence": 88, "evidence": ["capital"], "alternatives": []}'


def _mock_response(content: str | None = GOOD, finish_reason: str = "stop") -> MagicMock:
    """Create a realistic mock OpenAI ChatCompletion response."""
    mock_msg = MagicMock()
    mock_msg.content = content

    mock_choice = MagicMock()
    mock_choice.message = mock_msg
    mock_choice.finish_reason = finish_reason

    mock_usage = MagicMock()
    mock_usage.prompt_tokens = 10
    mock_usage.completion_tokens = 5
    mock_usage.total_tokens = 15

    mock_response = MagicMock()
    mock_response.choices = [mock_choice]
    mock_response.usage = mock_usage
    return mock_response


def _chunk(content: str | None = None, usage: tuple[int, int] | None = None) -> MagicMock:
    chunk = MagicMock()
    if content is None:
        chunk.choices = []
    else:
        choice = MagicMock()
        choice.delta.content = content
        chunk.choices = [choice]
    if usage is None:
        chunk.usage = None
    else:
        chunk.usage.prompt_tokens = usage[0]
        chunk.usage.completion_tokens = usage[1]
        chunk.usage.total_tokens = sum(usage)
    return chunk


def _enforcer_with(client: MagicMock, cls=OpenAIEnforcer, **kwargs) -> OpenAIEnforcer:
    enforcer = cls("sk-test", retry_base_delay=0.001, **kwargs)
    enforcer._client = client
    return enforcer


class TestOpenAIMessages:
    def test_instruction_comes_first(self):
        enforcer = OpenAIEnforcer("sk-test")
        request = ChatRequest(
            messages=[
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": "Hi"},
            ]
        )
        result = enforcer._convert_messages(request, "INSTRUCTION")
        assert result == [
            {"role": "system", "content": "INSTRUCTION"},
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Hi"},
        ]

    def test_unknown_role_maps_to_user(self):
        enforcer = OpenAIEnforcer("sk-test")
        request = ChatRequest(messages=[{"role": "tool", "content": "data"}])
        assert enforcer._convert_messages(request, "I")[1]["role"] == "user"

    @pytest.mark.parametrize(
        ("model", "expected"),
        [("gpt-4o", True), ("gpt-4o-mini", True), ("gpt-4-turbo", True), ("gpt-4", False), ("o1-mini", False)],
    )
    def test_json_mode_allow_list(self, model, expected):
        assert OpenAIEnforcer("sk-test").supports_json_mode(model) is expected


class TestOpenAIEnforce:
    @pytest.mark.asyncio
    async def test_json_mode_request(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_mock_response())
        enforcer = _enforcer_with(client)

        result = await enforcer.enforce(ChatRequest(prompt="Capital of Japan?", temperature=0.2))

        assert result.answer.answer == "Tokyo"
        assert result.answer.confidence == 88
        assert result.usage.input_tokens == 10
        assert result.usage.output_tokens == 5
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"][0] == {"role": "system", "content": STRUCTURED_INSTRUCTION}

    @pytest.mark.asyncio
    async def test_non_json_model_escalates(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            side_effect=[_mock_response("nope"), _mock_response(GOOD)]
        )
        enforcer = _enforcer_with(client, model="gpt-4")

        result = await enforcer.enforce(ChatRequest(prompt="q"))

        assert result.attempts == 2
        first_kwargs = client.chat.completions.create.call_args_list[0].kwargs
        assert "response_format" not in first_kwargs

    @pytest.mark.asyncio
    async def test_null_content_is_upstream_error(self):
        from vouch.enforcers.errors import UpstreamError

        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_mock_response(content=None))
        enforcer = _enforcer_with(client)

        with pytest.raises(UpstreamError):
            await enforcer.enforce(ChatRequest(prompt="q"))


class TestOpenAIStream:
    @pytest.mark.asyncio
    async def test_stream_forwards_deltas_and_usage(self):
        stream = FakeStream(
            [
                _chunk('{"answer": "To'),
                _chunk('kyo", "confidence": 70}'),
                _chunk(usage=(12, 8)),
            ]
        )
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=stream)
        enforcer = _enforcer_with(client)

        aggregator = await enforcer.enforce_stream(ChatRequest(prompt="q"))
        deltas, answer = await collect(aggregator)

        assert deltas == ['{"answer": "To', 'kyo", "confidence": 70}']
        assert answer.answer == "Tokyo"
        assert aggregator.usage.input_tokens == 12
        assert aggregator.usage.total_tokens == 20
        assert stream.closed is True
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["stream_options"] == {"include_usage": True}


class TestDeepSeek:
    def test_vendor_settings(self):
        enforcer = DeepSeekEnforcer("sk-test")
        assert enforcer.provider_name() == "deepseek"
        assert enforcer.model == "deepseek-chat"
        assert enforcer.base_url == DEEPSEEK_BASE_URL
        assert enforcer.supports_json_mode("deepseek-chat") is True
        assert enforcer.supports_json_mode("deepseek-reasoner") is False

    @pytest.mark.asyncio
    async def test_uses_openai_wire_format(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_mock_response())
        enforcer = _enforcer_with(client, cls=DeepSeekEnforcer)

        result = await enforcer.enforce(ChatRequest(vendor="deepseek", prompt="q"))

        assert result.answer.answer == "Tokyo"
        assert client.chat.completions.create.call_args.kwargs["model"] == "deepseek-chat"
