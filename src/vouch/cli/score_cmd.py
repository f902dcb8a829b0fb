"""vouch score -- compute a risk score from raw factors."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console

from vouch.cli.output import output_json, render_risk
from vouch.models.config import load_gateway_config
from vouch.models.risk import RiskFactors
from vouch.stores.config_store import ConfigTenantStore
from vouch.validation.scoring import RiskScorer

console = Console(stderr=True)


def score(
    confidence: float = typer.Option(..., "--confidence", "-c", help="Confidence (0-100)"),
    evidence: int = typer.Option(0, "--evidence", "-e", min=0, help="Number of evidence items"),
    pii: bool = typer.Option(False, "--pii", help="The answer contains PII"),
    history: bool = typer.Option(False, "--history", help="The workspace has past violations"),
    workspace: Optional[str] = typer.Option(None, "--workspace", "-w", help="Apply this workspace's weights"),
    format_json: bool = typer.Option(False, "--json", help="Output pure JSON to stdout"),
) -> None:
    """Score risk factors with default or workspace weights."""
    factors = RiskFactors(
        confidence=confidence,
        evidence_count=evidence,
        has_pii=pii,
        has_historical_violations=history,
    )
    if workspace is None:
        risk = RiskScorer().score(factors)
    else:
        scorer = RiskScorer(ConfigTenantStore(load_gateway_config()))
        risk = asyncio.run(scorer.score_for_workspace(workspace, factors))

    if format_json:
        output_json(risk)
    else:
        render_risk(risk, console)
