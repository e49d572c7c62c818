"""
Domain models — Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from provisioner.core.models import Capability, ProbeResult, StepOutcome
"""

from provisioner.core.models.capability import Capability, ProbeResult
from provisioner.core.models.config import (
    CapabilityOverride,
    IdentitySettings,
    ProvisionConfig,
)
from provisioner.core.models.outcome import StepOutcome
from provisioner.core.models.preflight import PreflightAnswer
from provisioner.core.models.status import StatusEvent, StatusLevel

__all__ = [
    # capability.py
    "Capability",
    # config.py
    "CapabilityOverride",
    "IdentitySettings",
    # preflight.py
    "PreflightAnswer",
    "ProbeResult",
    "ProvisionConfig",
    # status.py
    "StatusEvent",
    "StatusLevel",
    # outcome.py
    "StepOutcome",
]
