"""Workstation Provisioner — idempotent setup of an imaging toolchain."""

__version__ = "0.1.0"
