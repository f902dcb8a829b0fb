"""Tests for cost estimation (vouch.gateway.cost)."""

from __future__ import annotations

import pytest

from vouch.gateway.cost import PRICING_TABLE, estimate_cost, resolve_model


class TestResolveModel:
    @pytest.mark.parametrize(
        ("model", "expected"),
        [
            ("gpt-4o", "gpt-4o"),
            ("GPT-4o", "gpt-4o"),
            ("gpt-4o-2024-08-06", "gpt-4o"),
            ("claude-sonnet-4-5-20250929", "claude-sonnet-4-5"),
            ("gpt-4-1106-preview", "gpt-4-turbo"),
            ("gemini-2.0-flash-exp", "gemini-2.0-flash"),
        ],
    )
    def test_normalization(self, model, expected):
        assert resolve_model(model) == expected


class TestEstimateCost:
    def test_known_model(self):
        # 1000 * 5/1M + 500 * 15/1M
        assert estimate_cost("gpt-4o", 1000, 500) == pytest.approx(0.0125)

    def test_dated_snapshot_priced_like_base(self):
        assert estimate_cost("claude-sonnet-4-5-20250929", 1_000_000, 0) == pytest.approx(3.0)

    def test_unknown_model(self):
        assert estimate_cost("my-local-llama", 10, 10) is None

    def test_zero_tokens(self):
        assert estimate_cost("deepseek-chat", 0, 0) == 0

    def test_rounded_to_six_places(self):
        cost = estimate_cost("gpt-4o-mini", 7, 3)
        assert cost == round(cost, 6)

    def test_every_default_model_is_priced(self):
        for model in ("gpt-4o-mini", "claude-sonnet-4-5", "gemini-2.0-flash", "deepseek-chat"):
            assert model in PRICING_TABLE
