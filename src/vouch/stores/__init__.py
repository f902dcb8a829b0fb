"""Vouch stores - contracts for external collaborators and local implementations."""

from vouch.stores.base import (
    CredentialResolver,
    CustomPatternStore,
    TenantConfigStore,
    TraceSink,
)
from vouch.stores.config_store import ConfigCredentialResolver, ConfigTenantStore
from vouch.stores.json_store import JsonTraceStore

__all__ = [
    "ConfigCredentialResolver",
    "ConfigTenantStore",
    "CredentialResolver",
    "CustomPatternStore",
    "JsonTraceStore",
    "TenantConfigStore",
    "TraceSink",
]
