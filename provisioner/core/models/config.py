"""
Provisioning configuration — loaded from provision.yml.

Every field has a default so an absent file still describes a
complete, runnable workstation profile.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_ADK_ROOT = "C:/Program Files (x86)/Windows Kits/10/Assessment and Deployment Kit"

DEFAULT_INSTALL_ARGS = [
    "install",
    "--id", "{package}",
    "--exact",
    "--silent",
    "--accept-source-agreements",
    "--accept-package-agreements",
]


class CapabilityOverride(BaseModel):
    """Per-capability tuning declared under ``capabilities:``."""

    enabled: bool = True
    fatal: bool = True
    minimum_version: str | None = None
    package_id: str | None = None


class IdentitySettings(BaseModel):
    """Pre-seeded identity values (skip the prompt when set)."""

    email: str = ""
    name: str = ""


class ProvisionConfig(BaseModel):
    """Root provisioning profile."""

    version: int = 1

    package_manager: str = "winget"
    package_install_args: list[str] = Field(
        default_factory=lambda: list(DEFAULT_INSTALL_ARGS)
    )

    modules_path: str = "~/Documents/PowerShell/Modules"
    search_path_variable: str = "PSModulePath"
    repository: str = "PSGallery"
    modules: list[str] = Field(default_factory=lambda: ["OSD"])

    adk_root: str = DEFAULT_ADK_ROOT
    require_admin: bool = False

    identity: IdentitySettings = Field(default_factory=IdentitySettings)
    capabilities: dict[str, CapabilityOverride] = Field(default_factory=dict)

    def override(self, name: str) -> CapabilityOverride:
        """Look up the override for a capability (defaults when undeclared)."""
        return self.capabilities.get(name) or CapabilityOverride()

    def resolved_modules_path(self) -> Path:
        """The modules directory with ``~`` expanded."""
        return Path(self.modules_path).expanduser()

    def install_arguments(self, package_id: str) -> list[str]:
        """Render the package-manager argument list for one package."""
        return [arg.replace("{package}", package_id) for arg in self.package_install_args]
