"""
Capability catalog — the ordered workstation declaration table.

Pure data plus one builder. Order is dependency order: the runtime
comes before anything that shells out to it, git before the identity
written with it, the modules directory before the modules saved there.

Each declaration names a probe strategy and an install strategy; the
builder turns them into ``Capability`` objects using the probe and
installer factories, applying ``provision.yml`` overrides.
"""

from __future__ import annotations

from pathlib import Path

from provisioner.core.context import ProvisionContext
from provisioner.core.models.capability import Capability
from provisioner.core.models.config import ProvisionConfig
from provisioner.core.services import installers, probes
from provisioner.core.services.identity import EMAIL_KEY, NAME_KEY

IDENTITY_DOMAIN = "identity"

MODULE_PREFIX = "module-"

CAPABILITY_DECLARATIONS: list[dict] = [
    {
        "name": "pwsh",
        "description": "PowerShell 7 runtime, required by the module tooling",
        "probe": "version",
        "tool": "pwsh",
        "minimum_version": "7.4.0",
        "install": "package",
        "package_id": "Microsoft.PowerShell",
    },
    {
        "name": "git",
        "description": "Git client for the deployment repositories",
        "probe": "version",
        "tool": "git",
        "minimum_version": "2.40.0",
        "install": "package",
        "package_id": "Git.Git",
    },
    {
        "name": "git-identity",
        "description": "Commit identity (user.email / user.name)",
        "probe": "git-config",
        "install": "git-config",
        "keys": (EMAIL_KEY, NAME_KEY),
        "consumes": (IDENTITY_DOMAIN,),
    },
    {
        "name": "vscode",
        "description": "Visual Studio Code editor",
        "probe": "executable",
        "tool": "code",
        "install": "package",
        "package_id": "Microsoft.VisualStudioCode",
    },
    {
        "name": "adk",
        "description": "Windows ADK Deployment Tools (DISM, oscdimg)",
        "probe": "adk-path",
        "subpath": "Deployment Tools",
        "install": "package",
        "package_id": "Microsoft.WindowsADK",
    },
    {
        "name": "adk-winpe",
        "description": "Windows PE add-on for the ADK",
        "probe": "adk-path",
        "subpath": "Windows Preinstallation Environment",
        "install": "package",
        "package_id": "Microsoft.ADKPEAddon",
    },
    {
        "name": "modules-path",
        "description": "Module directory registered on the module search path",
        "probe": "search-path",
        "install": "search-path",
    },
]


def capability_names(config: ProvisionConfig) -> list[str]:
    """Every capability name the config can produce, in order."""
    names = [d["name"] for d in CAPABILITY_DECLARATIONS]
    names.extend(f"{MODULE_PREFIX}{m}" for m in config.modules)
    return names


def _adk_path(subpath: str):
    def path_for(ctx: ProvisionContext) -> Path:
        return Path(ctx.config.adk_root) / subpath

    return path_for


def _build_probe(decl: dict, minimum: str | None) -> probes.Probe:
    kind = decl["probe"]
    if kind == "version":
        return probes.version_probe(decl["tool"], minimum)
    if kind == "executable":
        return probes.executable_probe(decl["tool"])
    if kind == "adk-path":
        return probes.path_probe(_adk_path(decl["subpath"]), label=decl["subpath"])
    if kind == "search-path":
        return probes.search_path_probe()
    if kind == "git-config":
        return probes.git_config_probe(decl["keys"])
    raise ValueError(f"Unknown probe strategy: {kind}")


def _build_installer(decl: dict, package_id: str | None) -> installers.Installer:
    kind = decl["install"]
    if kind == "package":
        return installers.package_install(package_id or decl["package_id"])
    if kind == "search-path":
        return installers.search_path_install()
    if kind == "git-config":
        return installers.git_config_install(decl["keys"])
    raise ValueError(f"Unknown install strategy: {kind}")


def build_capabilities(
    config: ProvisionConfig,
    only: list[str] | None = None,
) -> list[Capability]:
    """Build the ordered capability table from the declarations.

    Args:
        config: Provisioning profile (overrides, module list).
        only: Optional subset of capability names; order is preserved.

    Returns:
        Enabled capabilities in declaration order.
    """
    table: list[Capability] = []

    for decl in CAPABILITY_DECLARATIONS:
        override = config.override(decl["name"])
        if not override.enabled:
            continue
        minimum = override.minimum_version or decl.get("minimum_version")
        table.append(
            Capability(
                name=decl["name"],
                description=decl["description"],
                minimum_version=minimum,
                probe=_build_probe(decl, minimum),
                install=_build_installer(decl, override.package_id),
                fatal=override.fatal,
                consumes=tuple(decl.get("consumes", ())),
            )
        )

    for module in config.modules:
        name = f"{MODULE_PREFIX}{module}"
        override = config.override(name)
        if not override.enabled:
            continue
        table.append(
            Capability(
                name=name,
                description=f"{module} module from {config.repository}",
                probe=probes.module_probe(module),
                install=installers.module_fetch(module),
                fatal=override.fatal,
            )
        )

    if only:
        wanted = set(only)
        table = [c for c in table if c.name in wanted]

    return table
