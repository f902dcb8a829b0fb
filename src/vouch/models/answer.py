"""The structured answer every request resolves to.

Confidence is held on a 0-100 scale. Vendors that report a 0.0-1.0
fraction are converted when the payload is decoded (see
vouch.enforcers.decoding), never here.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_CONFIDENCE: float = 50.0

UNPARSED_EVIDENCE = "Raw response - could not parse structured format"


class StructuredAnswer(BaseModel):
    """Fixed-shape answer decoded from (or coerced out of) vendor output."""

    model_config = {"frozen": True}

    answer: str
    confidence: float = Field(default=DEFAULT_CONFIDENCE, ge=0.0, le=100.0)
    evidence: tuple[str, ...] = ()
    alternatives: tuple[str, ...] = ()

    @classmethod
    def fallback(cls, raw_text: str) -> "StructuredAnswer":
        """Build the answer used when the vendor text is not valid JSON."""
        return cls(
            answer=raw_text,
            confidence=DEFAULT_CONFIDENCE,
            evidence=(UNPARSED_EVIDENCE,),
            alternatives=(),
        )

    @property
    def is_unparsed(self) -> bool:
        return UNPARSED_EVIDENCE in self.evidence

    def scan_text(self) -> str:
        """Concatenate every free-text field for content scanning."""
        return " ".join([self.answer, *self.evidence, *self.alternatives])
