"""CompletionPipeline: enforce, validate, score, record.

Drives one request through the vendor enforcer, the validation engine and
the risk scorer, then hands a TraceRecord to the trace sink without
waiting for it. Both the blocking and the streaming path end in the same
CompletionEnvelope.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from vouch.enforcers.registry import EnforcerFactory
from vouch.gateway.cost import estimate_cost
from vouch.models.answer import StructuredAnswer
from vouch.models.config import GatewayConfig, find_project_root
from vouch.models.request import ChatRequest
from vouch.models.risk import RiskFactors, RiskScore
from vouch.models.trace import TokenUsage, TraceRecord
from vouch.models.validation import ValidationResult
from vouch.stores.base import CredentialResolver, TraceSink
from vouch.stores.config_store import ConfigCredentialResolver, ConfigTenantStore
from vouch.stores.json_store import JsonTraceStore
from vouch.validation.engine import ValidationEngine
from vouch.validation.rules import RuleDependencies, default_rules
from vouch.validation.rules.base import ValidationContext
from vouch.validation.scoring import RiskScorer

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE = "default"


class CompletionEnvelope(BaseModel):
    """What the caller receives for one completed request."""

    model_config = {"frozen": True}

    trace_id: str
    vendor: str
    model: str
    answer: StructuredAnswer
    validation: ValidationResult
    risk: RiskScore
    usage: TokenUsage
    latency_ms: float
    estimated_cost_usd: float | None = None
    attempts: int = 1
    streamed: bool = False


@dataclass(frozen=True)
class StreamEvent:
    """One item of a streaming completion.

    ``delta`` events carry a text fragment; the single terminal ``done``
    event carries the envelope.
    """

    kind: Literal["delta", "done"]
    delta: str | None = None
    envelope: CompletionEnvelope | None = None


def has_pii(validation: ValidationResult) -> bool:
    """True when the risk scanner reported at least one PII detection."""
    result = validation.result_for("risk_scanner")
    if result is None or not result.metadata:
        return False
    return bool(result.metadata.get("detections"))


class CompletionPipeline:
    """Request pipeline shared by the HTTP app and the CLI.

    Args:
        enforcers: Resolves the vendor enforcer for a workspace.
        engine: Validation engine holding the active rules.
        scorer: Risk scorer (reads per-workspace tunables).
        trace_sink: Where finished traces go. None disables recording.
        rule_deps: Collaborators for rules added later by name.
    """

    def __init__(
        self,
        enforcers: EnforcerFactory,
        engine: ValidationEngine,
        scorer: RiskScorer,
        trace_sink: TraceSink | None = None,
        rule_deps: RuleDependencies | None = None,
    ) -> None:
        self.enforcers = enforcers
        self.engine = engine
        self.scorer = scorer
        self.trace_sink = trace_sink
        self.rule_deps = rule_deps or RuleDependencies(scorer=scorer)
        self._pending: set[asyncio.Task[None]] = set()

    async def complete(
        self,
        request: ChatRequest,
        workspace_id: str = DEFAULT_WORKSPACE,
        *,
        has_historical_violations: bool = False,
        internal_confidence: float | None = None,
    ) -> CompletionEnvelope:
        """Run one blocking completion through the whole pipeline.

        ``has_historical_violations`` and ``internal_confidence`` are
        caller-supplied facts passed to the rules and the scorer.

        Raises:
            CredentialError, UpstreamError, TransportError: the vendor call
                failed; nothing is validated or recorded.
        """
        start = time.perf_counter()
        enforcer = await self.enforcers.get(request.vendor, workspace_id)
        completion = await enforcer.enforce(request)
        return await self._finish(
            request,
            workspace_id,
            answer=completion.answer,
            model=completion.model,
            usage=completion.usage,
            attempts=completion.attempts,
            streamed=False,
            start=start,
            has_historical_violations=has_historical_violations,
            internal_confidence=internal_confidence,
        )

    async def stream(
        self,
        request: ChatRequest,
        workspace_id: str = DEFAULT_WORKSPACE,
        *,
        has_historical_violations: bool = False,
        internal_confidence: float | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream deltas as they arrive, then one ``done`` event.

        Errors opening the vendor stream raise from the first iteration.
        Closing this iterator early closes the upstream stream and skips
        validation and recording.
        """
        start = time.perf_counter()
        enforcer = await self.enforcers.get(request.vendor, workspace_id)
        aggregator = await enforcer.enforce_stream(request)
        try:
            async for delta in aggregator:
                yield StreamEvent(kind="delta", delta=delta)
        finally:
            if not aggregator.done:
                logger.info("[Pipeline] Stream closed by caller; upstream cancelled")
                await aggregator.aclose()

        envelope = await self._finish(
            request,
            workspace_id,
            answer=aggregator.answer,
            model=enforcer.resolve_model(request),
            usage=aggregator.usage,
            attempts=1,
            streamed=True,
            start=start,
            has_historical_violations=has_historical_violations,
            internal_confidence=internal_confidence,
        )
        yield StreamEvent(kind="done", envelope=envelope)

    async def drain(self) -> None:
        """Wait for every in-flight trace write."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def _finish(
        self,
        request: ChatRequest,
        workspace_id: str,
        *,
        answer: StructuredAnswer,
        model: str,
        usage: TokenUsage,
        attempts: int,
        streamed: bool,
        start: float,
        has_historical_violations: bool,
        internal_confidence: float | None,
    ) -> CompletionEnvelope:
        context = ValidationContext(
            workspace_id=workspace_id,
            has_historical_violations=has_historical_violations,
            internal_confidence=internal_confidence,
        )
        validation = await self.engine.validate(answer, context)
        factors = RiskFactors(
            confidence=answer.confidence,
            evidence_count=len(answer.evidence),
            has_pii=has_pii(validation),
            has_historical_violations=has_historical_violations,
        )
        risk = await self.scorer.score_for_workspace(workspace_id, factors)
        latency_ms = round((time.perf_counter() - start) * 1000, 2)

        envelope = CompletionEnvelope(
            trace_id=str(uuid.uuid4()),
            vendor=request.vendor.value,
            model=model,
            answer=answer,
            validation=validation,
            risk=risk,
            usage=usage,
            latency_ms=latency_ms,
            estimated_cost_usd=estimate_cost(model, usage.input_tokens, usage.output_tokens),
            attempts=attempts,
            streamed=streamed,
        )
        logger.info(
            "[Pipeline] %s/%s verdict=%s score=%d risk=%s attempts=%d",
            envelope.vendor,
            model,
            validation.overall.value,
            validation.score,
            risk.level.value,
            attempts,
        )
        self._record(request, workspace_id, envelope)
        return envelope

    def _record(self, request: ChatRequest, workspace_id: str, envelope: CompletionEnvelope) -> None:
        if self.trace_sink is None:
            return
        trace = TraceRecord(
            trace_id=envelope.trace_id,
            workspace_id=workspace_id,
            timestamp=datetime.now(timezone.utc),
            vendor=envelope.vendor,
            model=envelope.model,
            prompt=request.prompt_text(),
            answer=envelope.answer,
            validation=envelope.validation,
            risk=envelope.risk,
            latency_ms=envelope.latency_ms,
            usage=envelope.usage,
            estimated_cost_usd=envelope.estimated_cost_usd,
            attempts=envelope.attempts,
            streamed=envelope.streamed,
        )
        task = asyncio.create_task(self._save(trace))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save(self, trace: TraceRecord) -> None:
        try:
            await self.trace_sink.save(trace)
        except Exception as exc:
            logger.warning(
                "[Pipeline] Trace %s was not saved: %s", trace.trace_id, type(exc).__name__
            )


def build_pipeline(
    config: GatewayConfig | None = None,
    *,
    project_root: Path | None = None,
    credentials: CredentialResolver | None = None,
    trace_sink: TraceSink | None = None,
    record_traces: bool = True,
) -> CompletionPipeline:
    """Wire up a pipeline from configuration.

    Args:
        config: Gateway configuration; defaults when None.
        project_root: Root for the .vouch storage directory. Found by
            walking up from the working directory when None.
        credentials: Credential source. Defaults to workspace keys from
            config, then environment variables.
        trace_sink: Trace destination. Defaults to a JsonTraceStore.
        record_traces: When False and no sink is given, traces are not kept.
    """
    config = config or GatewayConfig()
    tenant_store = ConfigTenantStore(config)
    scorer = RiskScorer(tenant_store)
    deps = RuleDependencies(pattern_store=tenant_store, scorer=scorer)

    if trace_sink is None and record_traces:
        trace_sink = JsonTraceStore(project_root or find_project_root(), config.storage_dir)

    return CompletionPipeline(
        enforcers=EnforcerFactory(credentials or ConfigCredentialResolver(config), config),
        engine=ValidationEngine(default_rules(deps)),
        scorer=scorer,
        trace_sink=trace_sink,
        rule_deps=deps,
    )
