"""DeepSeek enforcer.

DeepSeek serves an OpenAI-compatible API, so this reuses the OpenAI
wire format against DeepSeek's base URL and model list.
"""

from __future__ import annotations

from vouch.enforcers.openai_enforcer import OpenAIEnforcer
from vouch.models.request import Vendor

DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"


class DeepSeekEnforcer(OpenAIEnforcer):
    """Enforcer for the DeepSeek chat completion API."""

    vendor = Vendor.DEEPSEEK
    default_model = "deepseek-chat"
    json_mode_models = ("deepseek-chat", "deepseek-coder")
    base_url = DEEPSEEK_BASE_URL
