"""Enforcer resolution by vendor.

Dispatch is an exhaustive match over the Vendor enum. EnforcerFactory
adds credential lookup and keeps one enforcer per (vendor, credential)
so SDK clients and their connection pools are reused across requests.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from vouch.enforcers.anthropic_enforcer import AnthropicEnforcer
from vouch.enforcers.base import BaseEnforcer
from vouch.enforcers.deepseek_enforcer import DeepSeekEnforcer
from vouch.enforcers.gemini_enforcer import GeminiEnforcer
from vouch.enforcers.openai_enforcer import OpenAIEnforcer
from vouch.models.config import GatewayConfig, VendorConfig
from vouch.models.request import Vendor

if TYPE_CHECKING:
    from vouch.stores.base import CredentialResolver


def create_enforcer(
    vendor: Vendor | str,
    api_key: str,
    settings: VendorConfig | None = None,
) -> BaseEnforcer:
    """Build the enforcer for a vendor.

    Args:
        vendor: Vendor enum member or its string value.
        api_key: Credential for the vendor.
        settings: Optional per-vendor enforcement settings.

    Raises:
        ValueError: If *vendor* is not a known vendor.
        CredentialError: If *api_key* is empty.
    """
    try:
        vendor = Vendor(vendor)
    except ValueError:
        available = ", ".join(v.value for v in Vendor)
        raise ValueError(
            f"Unknown vendor '{vendor}'. Available vendors: {available}."
        ) from None

    settings = settings or VendorConfig()
    options = {
        "model": settings.default_model,
        "escalate": settings.escalate,
        "max_retries": settings.max_retries,
        "timeout": settings.timeout_seconds,
    }

    match vendor:
        case Vendor.OPENAI:
            return OpenAIEnforcer(api_key, **options)
        case Vendor.ANTHROPIC:
            return AnthropicEnforcer(api_key, **options)
        case Vendor.GEMINI:
            return GeminiEnforcer(api_key, **options)
        case Vendor.DEEPSEEK:
            return DeepSeekEnforcer(api_key, **options)


class EnforcerFactory:
    """Resolve credentials and hand out shared enforcer instances."""

    def __init__(
        self,
        credentials: CredentialResolver,
        config: GatewayConfig | None = None,
    ) -> None:
        self._credentials = credentials
        self._config = config or GatewayConfig()
        self._cache: dict[tuple[Vendor, str], BaseEnforcer] = {}

    async def get(self, vendor: Vendor, workspace_id: str | None = None) -> BaseEnforcer:
        """Return the enforcer for a vendor under a workspace's credential.

        Raises:
            CredentialError: If no credential is configured.
        """
        api_key = await self._credentials.get_api_key(vendor, workspace_id)
        fingerprint = hashlib.sha256(api_key.encode()).hexdigest()
        key = (vendor, fingerprint)
        enforcer = self._cache.get(key)
        if enforcer is None:
            enforcer = create_enforcer(vendor, api_key, self._config.vendor(vendor))
            self._cache[key] = enforcer
        return enforcer
