"""vouch complete -- send one prompt through the full pipeline.

Resolves the vendor enforcer, enforces the structured answer (streaming
deltas to the terminal with --stream), validates and scores it, records
the trace, and exits with a code derived from the verdict.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console

from vouch.cli.output import output_json, render_envelope, setup_logging
from vouch.enforcers.errors import CredentialError, EnforcerError
from vouch.gateway.pipeline import (
    DEFAULT_WORKSPACE,
    CompletionEnvelope,
    CompletionPipeline,
    build_pipeline,
)
from vouch.models.config import find_project_root, load_gateway_config
from vouch.models.request import ChatRequest, Vendor

console = Console(stderr=True)

# Exit code mapping: overall verdict -> exit code
EXIT_CODES: dict[str, int] = {
    "PASS": 0,
    "WARN": 0,
    "FAIL": 1,
    "BLOCK": 2,
}

EXIT_VENDOR_ERROR = 3


def complete(
    prompt: str = typer.Argument(..., help="Prompt to send"),
    vendor: Optional[str] = typer.Option(None, "--vendor", help="openai, anthropic, gemini or deepseek"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Override the vendor's default model"),
    system: Optional[str] = typer.Option(None, "--system", help="System prompt"),
    workspace: str = typer.Option(DEFAULT_WORKSPACE, "--workspace", "-w", help="Workspace id"),
    temperature: Optional[float] = typer.Option(None, "--temperature", help="Sampling temperature"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens", help="Maximum output tokens"),
    stream: bool = typer.Option(False, "--stream", help="Print deltas as they arrive"),
    format_json: bool = typer.Option(False, "--json", help="Output pure JSON to stdout"),
    no_trace: bool = typer.Option(False, "--no-trace", help="Do not record the trace"),
) -> None:
    """Run one completion and display the validated answer."""
    project_root = find_project_root()
    config = load_gateway_config(project_root)
    setup_logging(config.log_level, console)

    try:
        selected = Vendor(vendor) if vendor else config.default_vendor
    except ValueError:
        available = ", ".join(v.value for v in Vendor)
        console.print(f"[bold red]Unknown vendor:[/bold red] {vendor} (available: {available})")
        raise typer.Exit(code=1)

    request = ChatRequest(
        vendor=selected,
        model=model,
        system_prompt=system,
        prompt=prompt,
        temperature=temperature,
        max_tokens=max_tokens,
        stream=stream,
    )
    pipeline = build_pipeline(config, project_root=project_root, record_traces=not no_trace)

    try:
        envelope = asyncio.run(
            _complete_async(pipeline, request, workspace, echo_deltas=stream and not format_json)
        )
    except CredentialError as exc:
        console.print(f"[bold red]Credential error:[/bold red] {exc}")
        raise typer.Exit(code=EXIT_VENDOR_ERROR)
    except EnforcerError as exc:
        console.print(f"[bold red]Vendor error:[/bold red] {exc}")
        raise typer.Exit(code=EXIT_VENDOR_ERROR)

    if format_json:
        output_json(envelope)
    else:
        render_envelope(envelope, console)

    raise typer.Exit(code=EXIT_CODES.get(envelope.validation.overall.value, 1))


async def _complete_async(
    pipeline: CompletionPipeline,
    request: ChatRequest,
    workspace: str,
    *,
    echo_deltas: bool,
) -> CompletionEnvelope:
    """Async implementation of the complete command."""
    try:
        if not request.stream:
            return await pipeline.complete(request, workspace)

        envelope: CompletionEnvelope | None = None
        async for event in pipeline.stream(request, workspace):
            if event.kind == "delta" and echo_deltas:
                console.print(event.delta, end="", markup=False, highlight=False)
            elif event.kind == "done":
                envelope = event.envelope
        if echo_deltas:
            console.print()
        if envelope is None:
            raise EnforcerError(
                f"{request.vendor.value} stream ended without a result", vendor=request.vendor.value
            )
        return envelope
    finally:
        await pipeline.drain()
