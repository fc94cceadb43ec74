"""ISystemAdapter interface — abstraction for subprocess/system calls."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class CommandResult:
    stdout: bytes
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def text(self) -> str:
        """stdout decoded as UTF-8 (undecodable bytes replaced)."""
        return self.stdout.decode("utf-8", errors="replace")


class ISystemAdapter(ABC):
    @abstractmethod
    def run_command(
        self,
        args: list[str],
        timeout: float = 1.0,
        input: bytes | None = None,
        capture: bool = True,
    ) -> CommandResult:
        """Run *args*; never raises for missing binaries or timeouts.

        ``capture=False`` discards output, which is required for tools that
        fork a background owner (``xclip -i``) and would otherwise keep the
        pipe open.
        """
