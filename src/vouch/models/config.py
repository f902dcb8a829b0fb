"""Gateway configuration model.

Captures vouch.yaml fields with sensible defaults: per-vendor enforcement
settings and per-workspace credentials, scoring overrides and custom
patterns.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from vouch.models.request import Vendor
from vouch.models.risk import RiskLevelThresholds, ScoringWeights

CONFIG_FILENAME = "vouch.yaml"


class VendorConfig(BaseModel):
    """Enforcement settings for one upstream vendor."""

    model_config = {"extra": "forbid"}

    default_model: str | None = None
    escalate: bool = True
    max_retries: int = Field(default=2, ge=0, le=10)
    timeout_seconds: float = Field(default=60.0, gt=0)


class WorkspaceConfig(BaseModel):
    """Tenant-scoped settings keyed by workspace id."""

    model_config = {"extra": "forbid"}

    api_keys: dict[Vendor, str] = Field(default_factory=dict)
    scoring_weights: ScoringWeights | None = None
    risk_levels: RiskLevelThresholds | None = None
    custom_patterns: list[str] = Field(default_factory=list)


class GatewayConfig(BaseModel):
    """Project-level configuration loaded from vouch.yaml."""

    model_config = {"extra": "forbid"}

    default_vendor: Vendor = Vendor.OPENAI
    storage_dir: str = ".vouch"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    vendors: dict[Vendor, VendorConfig] = Field(default_factory=dict)
    workspaces: dict[str, WorkspaceConfig] = Field(default_factory=dict)

    def vendor(self, vendor: Vendor) -> VendorConfig:
        """Return the settings for a vendor, defaults when unconfigured."""
        return self.vendors.get(vendor) or VendorConfig()

    def workspace(self, workspace_id: str | None) -> WorkspaceConfig | None:
        if workspace_id is None:
            return None
        return self.workspaces.get(workspace_id)


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from start (default: cwd) looking for vouch.yaml or .vouch/.

    Returns cwd if neither is found.
    """
    current = (start or Path.cwd()).resolve()
    if current.is_file():
        current = current.parent
    while current != current.parent:
        if (current / CONFIG_FILENAME).exists() or (current / ".vouch").exists():
            return current
        current = current.parent
    return Path.cwd()


def load_gateway_config(project_root: Path | None = None) -> GatewayConfig:
    """Load GatewayConfig from vouch.yaml. Returns defaults if not found.

    Args:
        project_root: Directory holding vouch.yaml. If None, uses
            find_project_root() to locate it.

    Returns:
        Validated GatewayConfig instance.
    """
    if project_root is None:
        project_root = find_project_root()
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        return GatewayConfig()
    import yaml

    raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if raw is None:
        return GatewayConfig()
    return GatewayConfig.model_validate(raw)
