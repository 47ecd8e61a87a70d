"""
Subprocess execution for actions that shell out.

CommandRunner is registered as shared state so that every action in a
run uses the same timeout and environment, and so tests can swap in a
fake runner without touching the actions.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from .errors import ActionFailed

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    """Result of a finished command."""

    command: List[str]
    stdout: str = ""
    stderr: str = ""
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)


class CommandRunner:
    """Runs commands without a shell and captures both streams.

    A non-zero exit is returned to the caller, which decides whether it
    is a failure. Spawn errors and timeouts raise ActionFailed.
    """

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.env = dict(env or {})

    async def run(self, args: Sequence[str]) -> CommandResult:
        """Run ``args`` and wait for it to exit.

        Args:
            args: Program followed by its arguments

        Returns:
            CommandResult with decoded stdout/stderr

        Raises:
            ActionFailed: If the program cannot be started or times out
        """
        command = [str(a) for a in args]
        line = shlex.join(command)
        logger.debug("Running command: %s", line)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, **self.env},
            )
        except OSError as exc:
            raise ActionFailed(f"Failed to run {command[0]}", f"{line}: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise ActionFailed(
                f"Command timed out after {self.timeout_seconds}s",
                line,
            ) from exc

        result = CommandResult(
            command=command,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=process.returncode if process.returncode is not None else -1,
        )
        logger.debug("Command exited with %d: %s", result.exit_code, line)
        return result
