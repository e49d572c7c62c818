"""
Identity resolution — the git ``--global`` user identity.

Read-only helpers shared by the identity preflight domain and the
``git-identity`` capability probe. A missing git, an unset key, and a
template placeholder all read as "not configured".
"""

from __future__ import annotations

import logging

from provisioner.adapters.base import ToolInvoker

logger = logging.getLogger(__name__)

EMAIL_KEY = "user.email"
NAME_KEY = "user.name"

# Template values shipped by setup guides and dotfile templates
PLACEHOLDERS: dict[str, frozenset[str]] = {
    EMAIL_KEY: frozenset({"you@example.com", "your.email@example.com", "email@example.com"}),
    NAME_KEY: frozenset({"Your Name", "your name", "Name"}),
}


def is_placeholder(key: str, value: str | None) -> bool:
    """Whether ``value`` is empty or a known template value for ``key``."""
    if value is None or not value.strip():
        return True
    return value.strip() in PLACEHOLDERS.get(key, frozenset())


def read_git_config(invoker: ToolInvoker, key: str) -> str | None:
    """Read ``git config --global --get <key>``.

    Returns the stripped value, or ``None`` if git is not installed,
    the key is unset, or the query fails.
    """
    if not invoker.is_available("git"):
        return None
    result = invoker.execute("git", ["config", "--global", "--get", key])
    if result.ok and result.stdout.strip():
        return result.stdout.strip()
    logger.debug("git config %s unavailable (exit %d)", key, result.exit_code)
    return None
