"""Rich terminal output layer for completions, scans and risk scores.

Provides the verdict tables shared by the CLI commands, JSON output for
machine consumption, and the RichHandler logging setup.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

if TYPE_CHECKING:
    from vouch.gateway.pipeline import CompletionEnvelope
    from vouch.models.answer import StructuredAnswer
    from vouch.models.risk import RiskScore
    from vouch.models.validation import ValidationResult


# Level styling map: level value -> (symbol, Rich markup style)
_LEVEL_STYLES: dict[str, tuple[str, str]] = {
    "PASS": ("✓ PASS", "bold green"),
    "WARN": ("~ WARN", "bold yellow"),
    "FAIL": ("✗ FAIL", "bold red"),
    "BLOCK": ("! BLOCK", "bold bright_red"),
}

_RISK_STYLES: dict[str, str] = {
    "low": "green",
    "medium": "yellow",
    "high": "bold red",
}


def setup_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Route stdlib logging through rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console or Console(stderr=True), show_path=False)],
        force=True,
    )


def styled_level(level: str) -> str:
    symbol, style = _LEVEL_STYLES.get(level, (level, "bold"))
    return f"[{style}]{symbol}[/{style}]"


def render_answer(answer: StructuredAnswer, console: Console) -> None:
    """Render the structured answer fields."""
    console.print()
    console.print("[bold]Answer[/bold]")
    console.print(answer.answer, markup=False)
    console.print(f"\n[bold]Confidence[/bold] {answer.confidence:g}")
    if answer.evidence:
        console.print("[bold]Evidence[/bold]")
        for item in answer.evidence:
            console.print(f"  - {item}", markup=False)
    if answer.alternatives:
        console.print("[bold]Alternatives[/bold]")
        for item in answer.alternatives:
            console.print(f"  - {item}", markup=False)


def render_validation(validation: ValidationResult, console: Console) -> None:
    """Render the overall verdict and one row per rule."""
    table = Table(box=box.SIMPLE, padding=(0, 2))
    table.add_column("Rule", style="bold")
    table.add_column("Level")
    table.add_column("Message")

    for result in validation.rules:
        table.add_row(result.rule_name, styled_level(result.level.value), result.message)

    console.print()
    console.print(
        f"Verdict: {styled_level(validation.overall.value)}  "
        f"score={validation.score}"
    )
    if validation.rules:
        console.print(table)


def render_risk(risk: RiskScore, console: Console) -> None:
    style = _RISK_STYLES.get(risk.level.value, "bold")
    console.print(
        f"Risk: [{style}]{risk.score} ({risk.level.value})[/{style}]  {risk.explanation}"
    )


def render_envelope(envelope: CompletionEnvelope, console: Console) -> None:
    """Render a full completion: answer, verdict, risk and usage."""
    render_answer(envelope.answer, console)
    render_validation(envelope.validation, console)
    render_risk(envelope.risk, console)

    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Model", f"{envelope.vendor}/{envelope.model}")
    table.add_row("Attempts", str(envelope.attempts))
    table.add_row(
        "Tokens",
        f"in={envelope.usage.input_tokens} out={envelope.usage.output_tokens}",
    )
    table.add_row("Latency", f"{envelope.latency_ms:.0f}ms")
    if envelope.estimated_cost_usd is not None:
        table.add_row("Cost", f"${envelope.estimated_cost_usd:.6f}")
    table.add_row("Trace", envelope.trace_id)
    console.print(table)


def output_json(model: BaseModel) -> None:
    """Write a model as pure JSON to stdout.

    No Rich markup, no color, no extra text. Suitable for pipelines
    and machine parsing.
    """
    sys.stdout.write(model.model_dump_json(indent=2))
    sys.stdout.write("\n")
