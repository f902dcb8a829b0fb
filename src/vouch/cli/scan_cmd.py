"""vouch scan -- validate text as if a vendor had answered with it.

No vendor is called. The text becomes the answer field of a
StructuredAnswer and goes through the default rules and the risk scorer
for the chosen workspace.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from pydantic import BaseModel
from rich.console import Console

from vouch.cli.complete_cmd import EXIT_CODES
from vouch.cli.output import output_json, render_risk, render_validation, setup_logging
from vouch.gateway.pipeline import DEFAULT_WORKSPACE, build_pipeline, has_pii
from vouch.models.answer import StructuredAnswer
from vouch.models.config import GatewayConfig, load_gateway_config
from vouch.models.risk import RiskFactors, RiskScore
from vouch.models.validation import ValidationResult
from vouch.validation.rules.base import ValidationContext

console = Console(stderr=True)


class ScanOutput(BaseModel):
    """JSON shape written by ``vouch scan --json``."""

    answer: StructuredAnswer
    validation: ValidationResult
    risk: RiskScore


def scan(
    text: Optional[str] = typer.Argument(None, help="Text to scan (omit with --file)"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the text from a file"),
    confidence: float = typer.Option(50.0, "--confidence", "-c", min=0, max=100, help="Confidence (0-100)"),
    evidence: list[str] = typer.Option([], "--evidence", "-e", help="Evidence item (repeatable)"),
    internal_confidence: Optional[float] = typer.Option(
        None, "--internal-confidence", min=0, max=100, help="Model-side confidence to compare against"
    ),
    workspace: str = typer.Option(DEFAULT_WORKSPACE, "--workspace", "-w", help="Workspace id"),
    format_json: bool = typer.Option(False, "--json", help="Output pure JSON to stdout"),
) -> None:
    """Run the validation rules over TEXT without calling a vendor."""
    if file is not None:
        text = file.read_text(encoding="utf-8")
    if not text:
        console.print("[bold red]Error:[/bold red] provide TEXT or --file")
        raise typer.Exit(code=1)

    config = load_gateway_config()
    setup_logging(config.log_level, console)

    answer = StructuredAnswer(answer=text, confidence=confidence, evidence=tuple(evidence))
    result = asyncio.run(_scan_async(config, answer, workspace, internal_confidence))

    if format_json:
        output_json(result)
    else:
        render_validation(result.validation, console)
        render_risk(result.risk, console)

    raise typer.Exit(code=EXIT_CODES.get(result.validation.overall.value, 1))


async def _scan_async(
    config: GatewayConfig,
    answer: StructuredAnswer,
    workspace: str,
    internal_confidence: float | None = None,
) -> ScanOutput:
    pipeline = build_pipeline(config, record_traces=False)
    context = ValidationContext(workspace_id=workspace, internal_confidence=internal_confidence)
    validation = await pipeline.engine.validate(answer, context)
    risk = await pipeline.scorer.score_for_workspace(
        workspace,
        RiskFactors(
            confidence=answer.confidence,
            evidence_count=len(answer.evidence),
            has_pii=has_pii(validation),
        ),
    )
    return ScanOutput(answer=answer, validation=validation, risk=risk)
