"""SubprocessSystemAdapter — real implementation of ISystemAdapter."""

from __future__ import annotations

import logging
import subprocess

import textswitch.log  # registers TRACE level and logger.trace()
from textswitch.platform.system_adapter import CommandResult, ISystemAdapter

logger = logging.getLogger(__name__)


class SubprocessSystemAdapter(ISystemAdapter):
    """Executes real subprocess calls."""

    def __init__(self, debug: bool = False) -> None:
        self.debug = debug

    def run_command(
        self,
        args: list[str],
        timeout: float = 1.0,
        input: bytes | None = None,
        capture: bool = True,
    ) -> CommandResult:
        out = subprocess.PIPE if capture else subprocess.DEVNULL
        try:
            r = subprocess.run(args, input=input, stdout=out, stderr=out, timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.trace("Command timed out after %.3fs: %s", timeout, args)  # type: ignore[attr-defined]
            return CommandResult(stdout=b"", stderr="timeout", returncode=-1)
        except OSError as e:
            logger.trace("Command failed to start: %s (%s)", args, e)  # type: ignore[attr-defined]
            return CommandResult(stdout=b"", stderr=str(e), returncode=-1)
        stderr = r.stderr.decode("utf-8", errors="replace") if r.stderr else ""
        if r.returncode != 0 and self.debug:
            logger.debug("Command %s exited %d: %s", args[0], r.returncode, stderr.strip())
        return CommandResult(stdout=r.stdout or b"", stderr=stderr, returncode=r.returncode)
