"""vouch serve -- run the HTTP gateway with uvicorn."""

from __future__ import annotations

import typer
from rich.console import Console

from vouch.cli.output import setup_logging
from vouch.gateway.app import create_app
from vouch.gateway.pipeline import build_pipeline
from vouch.models.config import find_project_root, load_gateway_config

console = Console(stderr=True)


def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    no_trace: bool = typer.Option(False, "--no-trace", help="Do not record traces"),
) -> None:
    """Serve the chat-completion gateway over HTTP."""
    import uvicorn

    project_root = find_project_root()
    config = load_gateway_config(project_root)
    setup_logging(config.log_level, console)

    pipeline = build_pipeline(config, project_root=project_root, record_traces=not no_trace)
    application = create_app(pipeline, default_vendor=config.default_vendor)

    console.print(f"[bold]Vouch gateway[/bold] listening on http://{host}:{port}")
    uvicorn.run(application, host=host, port=port, log_level=config.log_level.lower())
