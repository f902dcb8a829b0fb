"""Contracts for the collaborators the pipeline consumes.

Credentials, tenant configuration, custom patterns and trace storage all
live outside the pipeline. These protocols are the only surface it uses;
vouch.stores ships config-file and JSON-file implementations.
"""

from __future__ import annotations

from typing import Any, Literal, Protocol, runtime_checkable

from vouch.models.request import Vendor
from vouch.models.trace import TraceRecord

ConfigKind = Literal["scoring_weights", "risk_levels"]


@runtime_checkable
class CredentialResolver(Protocol):
    async def get_api_key(self, vendor: Vendor, workspace_id: str | None = None) -> str:
        """Return the vendor API key, raising CredentialError when unset."""
        ...


@runtime_checkable
class TenantConfigStore(Protocol):
    async def get_validation_config(
        self, workspace_id: str, kind: ConfigKind
    ) -> dict[str, Any] | None:
        """Return the override mapping for *kind*, or None when unset."""
        ...


@runtime_checkable
class CustomPatternStore(Protocol):
    async def get_custom_patterns(self, workspace_id: str) -> list[str]:
        """Return the workspace's custom regex strings (possibly empty)."""
        ...


@runtime_checkable
class TraceSink(Protocol):
    async def save(self, trace: TraceRecord) -> None:
        """Append one trace."""
        ...
