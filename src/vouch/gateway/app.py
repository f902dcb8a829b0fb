"""
HTTP gateway -- FastAPI application factory.

  POST   /v1/chat/completions   -- Structured completion (JSON or SSE)
  GET    /v1/rules              -- Active validation rules
  POST   /v1/rules              -- Add a rule by name or dotted path
  DELETE /v1/rules/{name}       -- Remove a rule
  GET    /health                -- Liveness

The workspace comes from the X-Workspace-Id header ("default" when
absent). Run with:

    vouch serve
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field, ValidationError

import vouch
from vouch.enforcers.errors import CredentialError, EnforcerError
from vouch.gateway.pipeline import (
    DEFAULT_WORKSPACE,
    CompletionEnvelope,
    CompletionPipeline,
    StreamEvent,
)
from vouch.models.request import ChatRequest, Vendor
from vouch.validation.rules import get_rule

logger = logging.getLogger(__name__)


class AddRuleRequest(BaseModel):
    """Add a validation rule by builtin name or dotted import path."""

    name: str = Field(..., min_length=1)


def trace_summary(envelope: CompletionEnvelope) -> dict[str, Any]:
    """Caller-facing trace: verdict and risk, without rule internals."""
    validation = envelope.validation
    return {
        "trace_id": envelope.trace_id,
        "vendor": envelope.vendor,
        "model": envelope.model,
        "latency_ms": envelope.latency_ms,
        "usage": envelope.usage.model_dump(),
        "estimated_cost_usd": envelope.estimated_cost_usd,
        "attempts": envelope.attempts,
        "validation": {
            "overall": validation.overall.value,
            "passed": validation.passed,
            "score": validation.score,
            "risk_score": envelope.risk.score,
            "risk_level": envelope.risk.level.value,
            "explanation": envelope.risk.explanation,
            "issue_count": sum(1 for r in validation.rules if r.level.severity > 0),
        },
    }


def completion_body(envelope: CompletionEnvelope) -> dict[str, Any]:
    return {
        **envelope.answer.model_dump(mode="json"),
        "_trace": trace_summary(envelope),
    }


def _sse(data: dict[str, Any] | str) -> str:
    """Format one OpenAI-style Server-Sent Event."""
    payload = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False, default=str)
    return f"data: {payload}\n\n"


def _error_status(exc: EnforcerError) -> int:
    return 401 if isinstance(exc, CredentialError) else 502


def _parse_request(body: Any, default_vendor: Vendor) -> ChatRequest:
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    body = {"vendor": default_vendor.value, **body}
    try:
        return ChatRequest.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail=json.loads(exc.json(include_url=False)),
        ) from exc


def create_app(pipeline: CompletionPipeline, default_vendor: Vendor = Vendor.OPENAI) -> FastAPI:
    """
    Application factory -- wires routes around an existing pipeline.

    Args:
        pipeline: The request pipeline (see vouch.gateway.pipeline.build_pipeline).
        default_vendor: Vendor used when a request body names none.
    """
    application = FastAPI(
        title="Vouch Gateway",
        description="Structured-output enforcement and validation gateway",
        version=vouch.__version__,
    )
    application.state.pipeline = pipeline

    @application.exception_handler(EnforcerError)
    async def enforcer_error_handler(request: Request, exc: EnforcerError) -> JSONResponse:
        status = _error_status(exc)
        logger.warning("[Gateway] %s from %s -> %d", type(exc).__name__, exc.vendor, status)
        return JSONResponse(status_code=status, content={"error": str(exc), "vendor": exc.vendor})

    @application.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": vouch.__version__}

    @application.post("/v1/chat/completions")
    async def chat_completions(
        request: Request,
        x_workspace_id: str | None = Header(default=None),
    ) -> Any:
        try:
            body = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Request body is not valid JSON") from exc

        chat_request = _parse_request(body, default_vendor)
        workspace_id = x_workspace_id or DEFAULT_WORKSPACE

        if not chat_request.stream:
            envelope = await pipeline.complete(chat_request, workspace_id)
            return completion_body(envelope)

        events = pipeline.stream(chat_request, workspace_id)
        # Pull the first event here so vendor errors still map to a status code.
        try:
            first = await anext(events)
        except StopAsyncIteration:
            first = None

        return StreamingResponse(
            _sse_stream(first, events),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    @application.get("/v1/rules")
    async def list_rules() -> dict[str, list[str]]:
        return {"rules": pipeline.engine.rule_names}

    @application.post("/v1/rules", status_code=201)
    async def add_rule(rule_request: AddRuleRequest) -> dict[str, list[str]]:
        try:
            rule = get_rule(rule_request.name, pipeline.rule_deps)
            pipeline.engine.add_rule(rule)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        logger.info("[Gateway] Added rule %s", rule.name)
        return {"rules": pipeline.engine.rule_names}

    @application.delete("/v1/rules/{name}")
    async def remove_rule(name: str) -> dict[str, list[str]]:
        if not pipeline.engine.remove_rule(name):
            raise HTTPException(status_code=404, detail=f"Rule {name!r} is not registered")
        logger.info("[Gateway] Removed rule %s", name)
        return {"rules": pipeline.engine.rule_names}

    return application


def _format_event(event: StreamEvent) -> str:
    if event.kind == "delta":
        return _sse({"choices": [{"delta": {"content": event.delta}, "index": 0}]})
    envelope = event.envelope
    return _sse(
        {
            "choices": [{"delta": {}, "index": 0, "finish_reason": "stop"}],
            "answer": envelope.answer.model_dump(mode="json") if envelope else None,
            "_trace": trace_summary(envelope) if envelope else None,
        }
    )


async def _sse_stream(
    first: StreamEvent | None, events: AsyncGenerator[StreamEvent, None]
) -> AsyncIterator[str]:
    try:
        if first is not None:
            yield _format_event(first)
        async for event in events:
            yield _format_event(event)
    except EnforcerError as exc:
        logger.warning("[Gateway] Stream failed: %s", type(exc).__name__)
        yield _sse({"error": str(exc)})
    finally:
        await events.aclose()
    yield _sse("[DONE]")
