"""Tests for the vouch CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from fakes import FakeEnforcer, FakeEnforcers, MemorySink
from vouch import __version__
from vouch.cli.main import app
from vouch.enforcers.errors import CredentialError
from vouch.gateway.pipeline import CompletionPipeline, StreamEvent
from vouch.validation.engine import ValidationEngine
from vouch.validation.rules import default_rules
from vouch.validation.scoring import RiskScorer

runner = CliRunner()

GOOD = '{"answer": "Tokyo", "confidence": 92, "evidence": ["a", "b"]}'
WITH_SSN = '{"answer": "SSN 123-45-6789", "confidence": 92, "evidence": ["a", "b"]}'


def _pipeline(enforcers: FakeEnforcers, sink=None) -> CompletionPipeline:
    return CompletionPipeline(
        enforcers=enforcers,
        engine=ValidationEngine(default_rules()),
        scorer=RiskScorer(),
        trace_sink=sink,
    )


def _invoke_complete(tmp_path: Path, pipeline: CompletionPipeline, *args: str):
    with (
        patch("vouch.cli.complete_cmd.find_project_root", return_value=tmp_path),
        patch("vouch.cli.complete_cmd.build_pipeline", return_value=pipeline) as build,
    ):
        result = runner.invoke(app, ["complete", *args])
    return result, build


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"vouch {__version__}" in result.output


class TestComplete:
    def test_pass_exits_zero(self, tmp_path: Path):
        sink = MemorySink()
        result, build = _invoke_complete(
            tmp_path, _pipeline(FakeEnforcers(FakeEnforcer(GOOD)), sink), "Capital of Japan?"
        )

        assert result.exit_code == 0, f"Output: {result.output}"
        assert "Tokyo" in result.output
        assert "PASS" in result.output
        assert len(sink.traces) == 1
        assert build.call_args.kwargs["record_traces"] is True

    def test_block_exits_two(self, tmp_path: Path):
        result, _ = _invoke_complete(
            tmp_path, _pipeline(FakeEnforcers(FakeEnforcer(WITH_SSN))), "q"
        )
        assert result.exit_code == 2
        assert "BLOCK" in result.output

    def test_json_output(self, tmp_path: Path):
        result, _ = _invoke_complete(
            tmp_path, _pipeline(FakeEnforcers(FakeEnforcer(GOOD))), "q", "--json"
        )
        assert result.exit_code == 0
        assert '"trace_id"' in result.output
        assert '"answer": "Tokyo"' in result.output

    def test_stream(self, tmp_path: Path):
        enforcer = FakeEnforcer(GOOD)
        result, _ = _invoke_complete(
            tmp_path, _pipeline(FakeEnforcers(enforcer)), "q", "--stream"
        )
        assert result.exit_code == 0, f"Output: {result.output}"
        assert enforcer.closed is True
        assert "PASS" in result.output

    def test_request_options(self, tmp_path: Path):
        enforcer = FakeEnforcer(GOOD)
        result, build = _invoke_complete(
            tmp_path,
            _pipeline(FakeEnforcers(enforcer)),
            "q",
            "--vendor", "openai",
            "--model", "gpt-4o",
            "--system", "Be brief.",
            "--temperature", "0.3",
            "--max-tokens", "99",
            "--no-trace",
        )
        assert result.exit_code == 0, f"Output: {result.output}"
        request = enforcer.requests[0]
        assert request.model == "gpt-4o"
        assert request.system_prompt == "Be brief."
        assert request.temperature == 0.3
        assert request.max_tokens == 99
        assert build.call_args.kwargs["record_traces"] is False

    def test_unknown_vendor(self, tmp_path: Path):
        result, _ = _invoke_complete(
            tmp_path, _pipeline(FakeEnforcers(FakeEnforcer(GOOD))), "q", "--vendor", "mistral"
        )
        assert result.exit_code == 1
        assert "Unknown vendor" in result.output

    def test_credential_error_exits_three(self, tmp_path: Path):
        enforcers = FakeEnforcers(error=CredentialError("OPENAI_API_KEY is not set", vendor="openai"))
        result, _ = _invoke_complete(tmp_path, _pipeline(enforcers), "q")
        assert result.exit_code == 3
        assert "OPENAI_API_KEY" in result.output

    def test_stream_without_result_exits_three(self, tmp_path: Path):
        async def deltas_only(request, workspace):
            yield StreamEvent(kind="delta", delta="{")

        pipeline = MagicMock()
        pipeline.stream = deltas_only
        pipeline.drain = AsyncMock()

        result, _ = _invoke_complete(tmp_path, pipeline, "q", "--stream")

        assert result.exit_code == 3
        assert "stream ended without a result" in result.output
        pipeline.drain.assert_awaited_once()


class TestScan:
    def test_clean_text(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["scan", "The sky is blue", "-c", "80", "-e", "a", "-e", "b"])
        assert result.exit_code == 0, f"Output: {result.output}"
        assert "PASS" in result.output

    def test_block_text(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["scan", "マイナンバー: 1234-5678-9012"])
        assert result.exit_code == 2
        assert "BLOCK" in result.output

    def test_from_file_as_json(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        text_file = tmp_path / "answer.txt"
        text_file.write_text("contact a@b.co", encoding="utf-8")

        result = runner.invoke(app, ["scan", "--file", str(text_file), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["validation"]["overall"] == "WARN"
        assert data["risk"]["explanation"].startswith("Low confidence")
        assert "contains PII" in data["risk"]["explanation"]

    def test_workspace_custom_pattern(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        (tmp_path / "vouch.yaml").write_text(
            "workspaces:\n  acme:\n    custom_patterns:\n      - 'PROJ-[0-9]{4}'\n",
            encoding="utf-8",
        )
        monkeypatch.chdir(tmp_path)

        blocked = runner.invoke(app, ["scan", "Ticket PROJ-1234", "-w", "acme", "-c", "80", "-e", "a", "-e", "b"])
        other = runner.invoke(app, ["scan", "Ticket PROJ-1234", "-c", "80", "-e", "a", "-e", "b"])

        assert blocked.exit_code == 2
        assert other.exit_code == 0

    def test_internal_confidence_discrepancy(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        args = ["scan", "The sky is blue", "-c", "80", "-e", "a", "-e", "b", "--json"]

        result = runner.invoke(app, [*args, "--internal-confidence", "30"])

        assert result.exit_code == 0
        rules = json.loads(result.stdout)["validation"]["rules"]
        check = next(r for r in rules if r["rule_name"] == "confidence_evidence_check")
        assert check["level"] == "WARN"
        assert "internal estimate" in check["message"]

    def test_missing_text(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["scan"])
        assert result.exit_code == 1


class TestScore:
    def test_json(self):
        result = runner.invoke(app, ["score", "-c", "100", "-e", "10", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["score"] == 0
        assert data["level"] == "low"

    def test_all_factors(self):
        result = runner.invoke(app, ["score", "-c", "0", "--pii", "--history"])
        assert result.exit_code == 0
        assert "100 (high)" in result.output

    def test_workspace_thresholds(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        (tmp_path / "vouch.yaml").write_text(
            "workspaces:\n  acme:\n    risk_levels:\n      high_risk_min: 30\n",
            encoding="utf-8",
        )
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["score", "-c", "50", "-e", "1", "-w", "acme"])

        assert result.exit_code == 0
        assert "44 (high)" in result.output


class TestRules:
    def test_lists_builtins(self):
        result = runner.invoke(app, ["rules"])
        assert result.exit_code == 0
        assert "confidence_evidence_check" in result.output
        assert "risk_scanner" in result.output
        assert "risk_score" in result.output
