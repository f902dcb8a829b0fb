"""Tests for vouch.validation.rules.pii -- sensitive data detection."""

from __future__ import annotations

import re

import pytest

from vouch.models.answer import StructuredAnswer
from vouch.models.validation import ValidationLevel
from vouch.validation.rules.base import ValidationContext
from vouch.validation.rules.pii import (
    REDACTED_PLACEHOLDER,
    PiiRiskRule,
    compile_custom_patterns,
    mask_digits,
    mask_text,
    redact_secrets,
    scan_text,
)


def _kinds(text: str) -> list[str]:
    return [d.kind for d in scan_text(text).detections]


class FakePatternStore:
    def __init__(self, patterns=None, error: Exception | None = None):
        self.patterns = patterns or []
        self.error = error
        self.calls: list[str] = []

    async def get_custom_patterns(self, workspace_id):
        self.calls.append(workspace_id)
        if self.error is not None:
            raise self.error
        return self.patterns


async def _evaluate(text: str, store=None, workspace: str | None = "ws-1"):
    rule = PiiRiskRule(store)
    answer = StructuredAnswer(answer=text, confidence=80)
    return await rule.evaluate(answer, ValidationContext(workspace_id=workspace))


class TestJapaneseIdentifiers:
    @pytest.mark.parametrize(
        "text",
        [
            "マイナンバーは 1234-5678-9012 です",
            "個人番号: 1234 5678 9012",
            "My Number: 123456789012",
        ],
    )
    def test_labeled_my_number_blocks(self, text):
        report = scan_text(text)
        assert report.level is ValidationLevel.BLOCK
        assert [d.kind for d in report.detections] == ["jp_my_number_labeled"]

    def test_unlabeled_my_number_warns(self):
        report = scan_text("番号は 123456789012 です")
        assert report.level is ValidationLevel.WARN
        assert _kinds("番号は 123456789012 です") == ["jp_my_number"]

    def test_digits_adjacent_to_kana(self):
        assert _kinds("番号は123456789012です") == ["jp_my_number"]

    def test_corporate_number(self):
        assert _kinds("法人番号: 1234567890123") == ["jp_corporate_number"]

    @pytest.mark.parametrize("text", ["口座番号: 123-4567890", "account number: 1234567890"])
    def test_labeled_bank_account_blocks(self, text):
        report = scan_text(text)
        assert report.level is ValidationLevel.BLOCK
        assert _kinds(text) == ["jp_bank_account_labeled"]

    def test_labeled_phone(self):
        assert _kinds("電話番号は 03-1234-5678 です") == ["jp_phone_labeled"]

    @pytest.mark.parametrize("number", ["090-1234-5678", "080 1234 5678", "07012345678"])
    def test_mobile(self, number):
        assert _kinds(f"連絡先 {number}") == ["jp_mobile"]

    def test_unlabeled_landline_needs_separators(self):
        assert _kinds("代表 06-6123-4567") == ["jp_phone"]

    @pytest.mark.parametrize("text", ["〒123-4567", "郵便番号: 100-0001"])
    def test_postal_code(self, text):
        assert _kinds(text) == ["jp_postal_code"]

    def test_product_code_is_clean(self):
        report = scan_text("製品番号ABC-123は在庫が500個あります")
        assert report.detections == []
        assert report.level is ValidationLevel.PASS

    def test_plain_japanese_is_clean(self):
        assert scan_text("本日は晴れです").level is ValidationLevel.PASS


class TestGenericDetectors:
    def test_ssn_and_my_number_reported_together(self):
        report = scan_text("SSN 123-45-6789, マイナンバー: 1234-5678-9012")
        assert report.level is ValidationLevel.BLOCK
        assert sorted(d.kind for d in report.detections) == ["jp_my_number_labeled", "ssn"]
        assert any("SSN" in issue for issue in report.issues)
        assert any("My Number" in issue for issue in report.issues)

    def test_credit_card_suppresses_sub_runs(self):
        report = scan_text("card 4111 1111 1111 1111")
        assert [d.kind for d in report.detections] == ["credit_card"]
        assert report.issues == ["Detected potential sensitive data: Credit Card"]

    def test_email_warns(self):
        report = scan_text("contact john.doe@example.com")
        assert report.level is ValidationLevel.WARN
        assert report.detections[0].evidence == "j***@example.com"

    def test_card_plus_email_blocks(self):
        report = scan_text("4111-1111-1111-1111 / a@b.io")
        assert report.level is ValidationLevel.BLOCK
        assert len(report.detections) == 2

    def test_credentials(self):
        kinds = _kinds("password: hunter22 and api_key=abcd1234")
        assert kinds == ["password", "api_key"]

    def test_vendor_keys(self):
        text = (
            "sk-ant-" + "a" * 24 + " " + "sk-" + "b" * 40 + " ghp_" + "c" * 36 + " AKIA" + "D" * 16
        )
        assert _kinds(text) == [
            "anthropic_api_key",
            "openai_api_key",
            "github_token",
            "aws_access_key",
        ]

    def test_duplicate_value_reported_once(self):
        report = scan_text("123456789012 and again 1234-5678-9012")
        assert len(report.detections) == 1

    def test_keywords_warn_without_pii(self):
        report = scan_text("This is CONFIDENTIAL and 社外秘")
        assert report.level is ValidationLevel.WARN
        assert report.has_pii is False
        assert report.keywords == ["confidential", "社外秘"]
        assert report.issues == ["Found sensitive keywords: confidential, 社外秘"]


class TestMasking:
    def test_mask_digits(self):
        assert mask_digits("1234-5678-9012") == "12***12"
        assert mask_digits("123") == "**"

    def test_mask_text(self):
        assert mask_text("password: x1") == "pass***"
        assert mask_text("abc") == "**"
        assert mask_text("someone@example.org") == "s***@example.org"

    def test_evidence_never_contains_full_value(self):
        report = scan_text("マイナンバー 1234-5678-9012")
        assert report.detections[0].evidence == "12***12"
        assert report.detections[0].as_dict() == {
            "type": "jp_my_number_labeled",
            "level": "BLOCK",
            "evidence": "12***12",
        }


class TestRedactSecrets:
    def test_bearer_and_keys(self):
        text = "Authorization: Bearer abc.def api_key=sk-" + "x" * 24
        redacted = redact_secrets(text)
        assert "abc.def" not in redacted
        assert "xxxx" not in redacted
        assert REDACTED_PLACEHOLDER in redacted

    def test_plain_text_untouched(self):
        assert redact_secrets("nothing to hide") == "nothing to hide"


class TestPiiRiskRule:
    @pytest.mark.asyncio
    async def test_clean(self):
        result = await _evaluate("The capital of France is Paris.")
        assert result.rule_name == "risk_scanner"
        assert result.level is ValidationLevel.PASS
        assert result.message == "No sensitive data detected"
        assert result.metadata is None

    @pytest.mark.asyncio
    async def test_scans_evidence_and_alternatives(self):
        answer = StructuredAnswer(
            answer="See notes",
            confidence=80,
            evidence=("SSN 123-45-6789",),
            alternatives=("mail x@y.com",),
        )
        result = await PiiRiskRule().evaluate(answer, ValidationContext())
        assert result.level is ValidationLevel.BLOCK
        kinds = [d["type"] for d in result.metadata["detections"]]
        assert kinds == ["ssn", "email"]

    @pytest.mark.asyncio
    async def test_metadata_shape(self):
        result = await _evaluate("confidential: a@b.co")
        assert result.level is ValidationLevel.WARN
        assert result.metadata["keywords"] == ["confidential"]
        assert result.message == "Email address; Found sensitive keywords: confidential"

    @pytest.mark.asyncio
    async def test_custom_patterns_block(self):
        store = FakePatternStore([r"PROJ-\d{4}", "("])
        result = await _evaluate("Ticket PROJ-1234 is open", store)

        assert result.level is ValidationLevel.BLOCK
        detection = result.metadata["detections"][0]
        assert detection["type"] == "custom_pattern"
        assert detection["pattern"] == r"PROJ-\d{4}"
        assert detection["evidence"] == "PROJ***"
        assert store.calls == ["ws-1"]

    @pytest.mark.asyncio
    async def test_store_failure_uses_builtin_only(self):
        store = FakePatternStore(error=RuntimeError("db down"))
        result = await _evaluate("Ticket PROJ-1234 is open", store)
        assert result.level is ValidationLevel.PASS

    @pytest.mark.asyncio
    async def test_store_skipped_without_workspace(self):
        store = FakePatternStore([r"PROJ-\d{4}"])
        result = await _evaluate("PROJ-1234", store, workspace=None)
        assert result.level is ValidationLevel.PASS
        assert store.calls == []


class TestCompileCustomPatterns:
    def test_invalid_skipped(self):
        compiled = compile_custom_patterns(["a+", "[unclosed", r"\d{3}"])
        assert [p.pattern for p in compiled] == ["a+", r"\d{3}"]
        assert all(isinstance(p, re.Pattern) for p in compiled)
