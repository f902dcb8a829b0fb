"""Stores backed by GatewayConfig (vouch.yaml) and the environment."""

from __future__ import annotations

import os
from typing import Any

from vouch.enforcers.errors import CredentialError
from vouch.models.config import GatewayConfig
from vouch.models.request import Vendor
from vouch.stores.base import ConfigKind

# Environment variables consulted when no workspace key is configured.
API_KEY_ENV_VARS: dict[Vendor, str] = {
    Vendor.OPENAI: "OPENAI_API_KEY",
    Vendor.ANTHROPIC: "ANTHROPIC_API_KEY",
    Vendor.GEMINI: "GOOGLE_API_KEY",
    Vendor.DEEPSEEK: "DEEPSEEK_API_KEY",
}


class ConfigCredentialResolver:
    """Resolve API keys from workspace config, then the environment."""

    def __init__(
        self,
        config: GatewayConfig | None = None,
        environ: dict[str, str] | None = None,
    ) -> None:
        self._config = config or GatewayConfig()
        self._environ = environ if environ is not None else os.environ

    async def get_api_key(self, vendor: Vendor, workspace_id: str | None = None) -> str:
        workspace = self._config.workspace(workspace_id)
        if workspace is not None:
            key = workspace.api_keys.get(vendor)
            if key:
                return key

        env_var = API_KEY_ENV_VARS[vendor]
        key = self._environ.get(env_var, "")
        if not key.strip():
            raise CredentialError(
                f"{env_var} is not set and no key is configured for "
                f"workspace '{workspace_id or 'default'}'",
                vendor=vendor.value,
            )
        return key


class ConfigTenantStore:
    """Tenant configuration and custom patterns read from GatewayConfig.

    Implements both TenantConfigStore and CustomPatternStore.
    """

    def __init__(self, config: GatewayConfig | None = None) -> None:
        self._config = config or GatewayConfig()

    async def get_validation_config(
        self, workspace_id: str, kind: ConfigKind
    ) -> dict[str, Any] | None:
        workspace = self._config.workspace(workspace_id)
        if workspace is None:
            return None
        if kind == "scoring_weights" and workspace.scoring_weights is not None:
            return workspace.scoring_weights.model_dump(exclude_unset=True)
        if kind == "risk_levels" and workspace.risk_levels is not None:
            return workspace.risk_levels.model_dump(exclude_unset=True)
        return None

    async def get_custom_patterns(self, workspace_id: str) -> list[str]:
        workspace = self._config.workspace(workspace_id)
        if workspace is None:
            return []
        return list(workspace.custom_patterns)
