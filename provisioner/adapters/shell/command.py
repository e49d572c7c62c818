"""
Subprocess invoker — run external tools and capture their output.

This is the SINGLE PLACE where ``subprocess.run`` is called. No
timeout is enforced by default: a hung installer hangs the run, and
the operator interrupts it.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from collections.abc import Mapping, Sequence

from provisioner.adapters.base import EXIT_NOT_FOUND, InvocationResult, ToolInvoker

logger = logging.getLogger(__name__)


class SubprocessInvoker(ToolInvoker):
    """Execute tools as child processes.

    Args:
        timeout: Optional timeout in seconds applied to every call.
    """

    def __init__(self, timeout: int | None = None):
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "subprocess"

    def is_available(self, tool: str) -> bool:
        return shutil.which(tool) is not None

    def execute(
        self,
        tool: str,
        arguments: Sequence[str] = (),
        env: Mapping[str, str] | None = None,
    ) -> InvocationResult:
        args = list(arguments)
        logger.debug("Executing: %s %s", tool, " ".join(args))
        start = time.monotonic()

        try:
            result = subprocess.run(
                [tool, *args],
                capture_output=True,
                text=True,
                env=dict(env) if env is not None else None,
                timeout=self._timeout,
            )
        except FileNotFoundError:
            return InvocationResult(
                tool=tool,
                arguments=args,
                exit_code=EXIT_NOT_FOUND,
                stderr=f"{tool}: command not found",
            )
        except subprocess.TimeoutExpired:
            return InvocationResult(
                tool=tool,
                arguments=args,
                exit_code=-1,
                stderr=f"{tool} timed out after {self._timeout}s",
            )
        except OSError as e:
            return InvocationResult(
                tool=tool,
                arguments=args,
                exit_code=-1,
                stderr=f"{tool} could not be started: {e}",
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode != 0:
            logger.debug("%s exited with code %d", tool, result.returncode)

        return InvocationResult(
            tool=tool,
            arguments=args,
            exit_code=result.returncode,
            stdout=result.stdout.strip(),
            stderr=result.stderr.strip(),
            duration_ms=elapsed_ms,
        )
