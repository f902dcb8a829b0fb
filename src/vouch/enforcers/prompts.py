"""System instructions that demand the structured-answer JSON shape.

Three tiers of increasing strictness. Enforcers start at STRUCTURED and
move down the list only when the previous attempt did not decode.
"""

from __future__ import annotations

from enum import Enum


class PromptTier(str, Enum):
    """Strictness level of the structured-output instruction."""

    STRUCTURED = "structured"
    STRICT = "strict"
    EMERGENCY = "emergency"


STRUCTURED_INSTRUCTION = """
You must respond ONLY with a JSON object in the following format. No other text, no markdown code blocks, just pure JSON:

{
  "answer": "Your final, complete answer",
  "confidence": 85,
  "evidence": ["Fact 1", "Fact 2"],
  "alternatives": ["Alternative answer or caveat"]
}

Rules:
- answer: Your final, complete answer to the question
- confidence: A number between 0 and 100 representing your certainty
- evidence: Array of specific facts or sources supporting your answer
- alternatives: Array of alternative answers, limitations or caveats

Output ONLY valid JSON, no explanations before or after.
""".strip()

STRICT_INSTRUCTION = """
IMPORTANT: Return ONLY valid JSON. No markdown, no explanations, no code blocks.

Required JSON format:
{"answer":"your answer","confidence":80,"evidence":["fact1","fact2"],"alternatives":["alternative1"]}

Rules:
- Start your response with { and end with }
- confidence must be a number between 0 and 100
- evidence and alternatives must be arrays of strings
- Do NOT wrap in ```json code blocks
""".strip()

EMERGENCY_INSTRUCTION = """
YOUR PREVIOUS RESPONSE WAS INVALID JSON. THIS IS YOUR FINAL ATTEMPT.

You MUST return EXACTLY this structure (fill in the values):
{"answer":"[answer]","confidence":[0-100],"evidence":["[fact]"],"alternatives":["[alternative]"]}

CRITICAL RULES:
1. Output ONLY JSON - no other text
2. Start with { end with }
3. No markdown code blocks
4. confidence is a NUMBER not string

RESPOND WITH ONLY THE JSON OBJECT NOW:
""".strip()

INSTRUCTIONS: dict[PromptTier, str] = {
    PromptTier.STRUCTURED: STRUCTURED_INSTRUCTION,
    PromptTier.STRICT: STRICT_INSTRUCTION,
    PromptTier.EMERGENCY: EMERGENCY_INSTRUCTION,
}

ESCALATION_ORDER: tuple[PromptTier, ...] = (
    PromptTier.STRUCTURED,
    PromptTier.STRICT,
    PromptTier.EMERGENCY,
)


def build_system_instruction(system_prompt: str | None, tier: PromptTier) -> str:
    """Join the caller's system prompt (if any) with the tier instruction."""
    parts = [system_prompt or "", INSTRUCTIONS[tier]]
    return "\n\n".join(part for part in parts if part)
