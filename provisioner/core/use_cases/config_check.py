"""
Config check use case — validate provision.yml and report issues.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.core.config.loader import ConfigError, find_config_file, load_config
from provisioner.core.data.catalog import build_capabilities, capability_names
from provisioner.core.models.config import ProvisionConfig
from provisioner.core.services.identity import EMAIL_KEY, NAME_KEY, is_placeholder


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: ProvisionConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "package_manager": self.config.package_manager if self.config else None,
            "capability_count": (
                len(build_capabilities(self.config)) if self.config else 0
            ),
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate provisioning configuration and report issues.

    Args:
        config_path: Optional explicit path to provision.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            result.warnings.append("No provision.yml found; defaults apply.")

    result.config_path = config_path

    try:
        config = load_config(config_path)
        result.config = config
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Overrides must name real capabilities
    known = set(capability_names(config))
    unknown = sorted(set(config.capabilities) - known)
    if unknown:
        result.errors.append(f"Unknown capabilities in overrides: {', '.join(unknown)}")

    dupes = sorted({m for m in config.modules if config.modules.count(m) > 1})
    if dupes:
        result.errors.append(f"Duplicate modules: {', '.join(dupes)}")

    if not any("{package}" in arg for arg in config.package_install_args):
        result.errors.append("package_install_args must contain a '{package}' placeholder")

    if not config.search_path_variable.strip():
        result.errors.append("search_path_variable must not be empty")

    # Soft checks
    if shutil.which(config.package_manager) is None:
        result.warnings.append(
            f"Package manager '{config.package_manager}' not found on PATH."
        )

    if config.identity.email and is_placeholder(EMAIL_KEY, config.identity.email):
        result.warnings.append(
            f"identity.email is a placeholder ({config.identity.email}); it will be prompted for."
        )
    if config.identity.name and is_placeholder(NAME_KEY, config.identity.name):
        result.warnings.append(
            f"identity.name is a placeholder ({config.identity.name}); it will be prompted for."
        )

    if not build_capabilities(config):
        result.warnings.append("Every capability is disabled. A run has nothing to do.")

    result.valid = len(result.errors) == 0
    return result
