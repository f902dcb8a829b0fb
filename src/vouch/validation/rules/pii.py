"""PII, secret and sensitive-content detection.

Scans the free text of a StructuredAnswer (answer, evidence and
alternatives joined by spaces) for:

- generic secrets and identifiers (SSN, card numbers, key/value
  credentials, vendor API keys, GitHub tokens, AWS access keys) -> BLOCK
- email addresses -> WARN
- Japanese identifiers: labeled My Number and bank accounts -> BLOCK;
  unlabeled 12-digit runs, corporate numbers, phone numbers and postal
  codes -> WARN
- sensitive keywords -> WARN
- per-workspace custom regexes -> BLOCK

Patterns are tried in priority order. A numeric value is reported once
per scan (keyed by its digits), and a match overlapping an already
accepted detection is dropped, so a labeled My Number is never also
reported as an unlabeled 12-digit run.

Digit boundaries use lookarounds rather than ``\\b``: Python's ``\\b`` is
Unicode aware and treats kana and kanji as word characters, so
"は123456789012です" would otherwise never match.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from vouch.models.answer import StructuredAnswer
from vouch.models.validation import RuleResult, ValidationLevel
from vouch.validation.rules.base import ValidationContext

if TYPE_CHECKING:
    from vouch.stores.base import CustomPatternStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PiiPattern:
    """One detector. ``group`` selects the span that holds the value."""

    kind: str
    level: ValidationLevel
    description: str
    regex: re.Pattern[str]
    numeric: bool = True
    group: int = 0


def _pattern(
    kind: str,
    level: ValidationLevel,
    description: str,
    regex: str,
    *,
    numeric: bool = True,
    group: int = 0,
) -> PiiPattern:
    return PiiPattern(kind, level, description, re.compile(regex), numeric, group)


BLOCK = ValidationLevel.BLOCK
WARN = ValidationLevel.WARN

# Priority order: labeled and BLOCK detectors before their unlabeled WARN
# counterparts.
PII_PATTERNS: list[PiiPattern] = [
    _pattern(
        "jp_my_number_labeled",
        BLOCK,
        "Japanese My Number (マイナンバー) with label",
        r"(?i)(?:マイナンバー|個人番号|my\s?number)[\s:：は]*(\d{4}[\s-]?\d{4}[\s-]?\d{4})(?!\d)",
        group=1,
    ),
    _pattern(
        "jp_bank_account_labeled",
        BLOCK,
        "Bank account number with label",
        r"(?i)(?:口座番号|銀行口座|account\s?number)[\s:：は]*(\d{3}[\s-]?\d{7})(?!\d)",
        group=1,
    ),
    _pattern("ssn", BLOCK, "Detected potential sensitive data: SSN", r"(?<!\d)\d{3}-\d{2}-\d{4}(?!\d)"),
    _pattern(
        "credit_card",
        BLOCK,
        "Detected potential sensitive data: Credit Card",
        r"(?<!\d)\d{4}[- ]?\d{4}[- ]?\d{4}[- ]?\d{4}(?!\d)",
    ),
    _pattern(
        "password",
        BLOCK,
        "Detected potential sensitive data: Password",
        r"(?i)\bpassword\s*[:=]\s*['\"]?[^\s'\"]+",
        numeric=False,
    ),
    _pattern(
        "api_key",
        BLOCK,
        "Detected potential sensitive data: API Key",
        r"(?i)\bapi[_-]?key\s*[:=]\s*['\"]?[^\s'\"]+",
        numeric=False,
    ),
    _pattern(
        "secret_key",
        BLOCK,
        "Detected potential sensitive data: Secret Key",
        r"(?i)\bsecret[_-]?key\s*[:=]\s*['\"]?[^\s'\"]+",
        numeric=False,
    ),
    _pattern(
        "anthropic_api_key",
        BLOCK,
        "Detected potential sensitive data: Anthropic API Key",
        r"sk-ant-[A-Za-z0-9_-]{20,}",
        numeric=False,
    ),
    _pattern(
        "openai_api_key",
        BLOCK,
        "Detected potential sensitive data: OpenAI API Key",
        r"(?<![A-Za-z0-9])sk-[A-Za-z0-9]{32,}",
        numeric=False,
    ),
    _pattern(
        "github_token",
        BLOCK,
        "Detected potential sensitive data: GitHub Token",
        r"gh[po]_[A-Za-z0-9]{36}",
        numeric=False,
    ),
    _pattern(
        "aws_access_key",
        BLOCK,
        "Detected potential sensitive data: AWS Access Key",
        r"(?<![A-Z0-9])AKIA[A-Z0-9]{16}(?![A-Z0-9])",
        numeric=False,
    ),
    _pattern(
        "email",
        WARN,
        "Email address",
        r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}",
        numeric=False,
    ),
    _pattern(
        "jp_my_number",
        WARN,
        "Possible Japanese My Number (12 digits)",
        r"(?<!\d)\d{4}[\s-]?\d{4}[\s-]?\d{4}(?!\d)",
    ),
    _pattern(
        "jp_corporate_number",
        WARN,
        "Japanese Corporate Number (法人番号, 13 digits)",
        r"(?<!\d)\d{13}(?!\d)",
    ),
    _pattern(
        "jp_phone_labeled",
        WARN,
        "Japanese phone number with label",
        r"(?i)(?:電話番号|(?<![a-z])tel|phone)[\s:：は]*(0\d{1,4}[\s-]?\d{1,4}[\s-]?\d{4})(?!\d)",
        group=1,
    ),
    _pattern(
        "jp_mobile",
        WARN,
        "Japanese mobile phone number",
        r"(?<!\d)0[789]0[\s-]?\d{4}[\s-]?\d{4}(?!\d)",
    ),
    _pattern(
        "jp_phone",
        WARN,
        "Japanese phone number",
        r"(?<![\d-])0\d{1,4}[\s-]\d{1,4}[\s-]\d{4}(?!\d)",
    ),
    _pattern(
        "jp_postal_code",
        WARN,
        "Japanese postal code",
        r"〒\s?\d{3}-?\d{4}(?!\d)|(?<![\d-])\d{3}-\d{4}(?![\d-])",
    ),
]

SENSITIVE_KEYWORDS: list[str] = [
    "機密",
    "confidential",
    "社外秘",
    "internal only",
    "do not share",
    "取扱注意",
    "proprietary",
]

# Secret shapes replaced before text is persisted.
SECRET_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?i)bearer\s+[a-zA-Z0-9._-]+"),
    re.compile(r"sk-ant-[a-zA-Z0-9_-]{20,}"),
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
    re.compile(r"(?i)(api[_-]?key|secret[_-]?key|secret|password|token|authorization)\s*[:=]\s*\S+"),
    re.compile(r"gh[po]_[a-zA-Z0-9]{36}"),
    re.compile(r"AKIA[A-Z0-9]{16}"),
]

REDACTED_PLACEHOLDER = "[REDACTED]"

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class Detection:
    """One reported finding. ``evidence`` is always masked."""

    kind: str
    level: ValidationLevel
    description: str
    evidence: str
    pattern: str | None = None

    def as_dict(self) -> dict[str, str]:
        data = {"type": self.kind, "level": self.level.value, "evidence": self.evidence}
        if self.pattern is not None:
            data["pattern"] = self.pattern
        return data


@dataclass
class ScanReport:
    """Everything a scan found, in detection order."""

    detections: list[Detection] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)

    @property
    def level(self) -> ValidationLevel:
        levels = [d.level for d in self.detections]
        if self.keywords:
            levels.append(ValidationLevel.WARN)
        return ValidationLevel.worst(levels)

    @property
    def has_pii(self) -> bool:
        return bool(self.detections)

    @property
    def issues(self) -> list[str]:
        messages = [d.description for d in self.detections]
        if self.keywords:
            messages.append(f"Found sensitive keywords: {', '.join(self.keywords)}")
        return messages


def mask_digits(value: str) -> str:
    """Show only the first two and last two digits of *value*."""
    digits = _NON_DIGITS.sub("", value)
    if len(digits) <= 4:
        return "**"
    return f"{digits[:2]}***{digits[-2:]}"


def mask_text(value: str) -> str:
    """Mask a non-numeric match, keeping a short prefix for context."""
    if "@" in value:
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    if len(value) <= 4:
        return "**"
    return f"{value[:4]}***"


def redact_secrets(text: str) -> str:
    """Replace secret-shaped substrings with [REDACTED]."""
    for pattern in SECRET_PATTERNS:
        text = pattern.sub(REDACTED_PLACEHOLDER, text)
    return text


def compile_custom_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile tenant regexes, skipping (and logging) invalid ones."""
    compiled: list[re.Pattern[str]] = []
    for raw in patterns:
        try:
            compiled.append(re.compile(raw))
        except re.error as exc:
            logger.warning("[RiskScanner] Skipping invalid custom pattern %r: %s", raw, exc)
    return compiled


def scan_text(text: str, custom_patterns: Iterable[re.Pattern[str]] = ()) -> ScanReport:
    """Run every detector over *text*.

    Args:
        text: The text to scan.
        custom_patterns: Pre-compiled tenant patterns; any match is BLOCK.

    Returns:
        A ScanReport. An empty report means the text is clean.
    """
    report = ScanReport()
    seen_values: set[str] = set()
    accepted_spans: list[tuple[int, int]] = []

    for detector in PII_PATTERNS:
        for match in detector.regex.finditer(text):
            start, end = match.span(detector.group)
            value = match.group(detector.group)
            if any(start < a_end and a_start < end for a_start, a_end in accepted_spans):
                continue
            key = _NON_DIGITS.sub("", value) if detector.numeric else value.lower()
            if key in seen_values:
                continue
            seen_values.add(key)
            accepted_spans.append((start, end))
            report.detections.append(
                Detection(
                    kind=detector.kind,
                    level=detector.level,
                    description=detector.description,
                    evidence=mask_digits(value) if detector.numeric else mask_text(value),
                )
            )

    for pattern in custom_patterns:
        match = pattern.search(text)
        if match is None:
            continue
        value = match.group(0)
        report.detections.append(
            Detection(
                kind="custom_pattern",
                level=ValidationLevel.BLOCK,
                description=f"Matched custom pattern {pattern.pattern!r}",
                evidence=mask_digits(value) if value.isdigit() else mask_text(value),
                pattern=pattern.pattern,
            )
        )

    lowered = text.lower()
    report.keywords = [kw for kw in SENSITIVE_KEYWORDS if kw.lower() in lowered]
    return report


class PiiRiskRule:
    """Validation rule wrapping scan_text().

    Args:
        pattern_store: Source of per-workspace custom regexes. When None,
            or when the lookup fails, only the built-in detectors run.
    """

    name = "risk_scanner"

    def __init__(self, pattern_store: CustomPatternStore | None = None) -> None:
        self._pattern_store = pattern_store

    async def evaluate(self, answer: StructuredAnswer, context: ValidationContext) -> RuleResult:
        custom = await self._custom_patterns(context.workspace_id)
        report = scan_text(answer.scan_text(), custom)
        level = report.level

        if level is ValidationLevel.PASS:
            return RuleResult(
                rule_name=self.name,
                level=level,
                message="No sensitive data detected",
            )
        return RuleResult(
            rule_name=self.name,
            level=level,
            message="; ".join(report.issues),
            metadata={
                "detections": [d.as_dict() for d in report.detections],
                "keywords": report.keywords,
            },
        )

    async def _custom_patterns(self, workspace_id: str | None) -> list[re.Pattern[str]]:
        if self._pattern_store is None or workspace_id is None:
            return []
        try:
            raw = await self._pattern_store.get_custom_patterns(workspace_id)
        except Exception as exc:
            logger.warning(
                "[RiskScanner] Custom pattern lookup failed for workspace %s: %s",
                workspace_id,
                type(exc).__name__,
            )
            return []
        return compile_custom_patterns(raw or [])
