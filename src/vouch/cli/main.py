"""Entry point for the ``vouch`` command."""

import typer

from vouch import __version__
from vouch.cli.complete_cmd import complete
from vouch.cli.rules_cmd import rules
from vouch.cli.scan_cmd import scan
from vouch.cli.score_cmd import score
from vouch.cli.serve_cmd import serve

app = typer.Typer(
    name="vouch",
    help="Enforce structured answers from LLM vendors and validate them before release.",
    no_args_is_help=True,
)

for command in (complete, scan, score, rules, serve):
    app.command()(command)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"vouch {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-v", callback=_print_version, is_eager=True, help="Print the version and exit."
    ),
) -> None:
    """Structured-output gateway for OpenAI, Anthropic, Gemini and DeepSeek."""
