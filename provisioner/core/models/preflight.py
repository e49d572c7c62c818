"""
PreflightAnswer — one piece of user-supplied configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class PreflightAnswer(BaseModel):
    """A captured preflight field.

    ``was_prompted`` distinguishes "already configured, detected" from
    "freshly collected". Answers are scoped to one run and never
    written anywhere by the core.
    """

    model_config = ConfigDict(frozen=True)

    domain: str
    key: str
    value: str
    was_prompted: bool = False
