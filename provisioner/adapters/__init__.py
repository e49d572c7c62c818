"""Adapters — bindings for external tools and package repositories.

Public re-exports for convenient access.
"""

from provisioner.adapters.base import (
    InvocationResult,
    PackageFetchError,
    PackageRepositoryClient,
    ToolInvoker,
)
from provisioner.adapters.mock import MockInvoker, MockPackageClient
from provisioner.adapters.packages.powershell_gallery import PowerShellGalleryClient
from provisioner.adapters.shell.command import SubprocessInvoker

__all__ = [
    "InvocationResult",
    "MockInvoker",
    "MockPackageClient",
    "PackageFetchError",
    "PackageRepositoryClient",
    "PowerShellGalleryClient",
    "SubprocessInvoker",
    "ToolInvoker",
]
