"""Async wrapper around external tool processes.

Adapters never spawn processes themselves; they go through a ProcessRunner
so the spawning primitive can be swapped out (tests use a fake runner).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from legalscribe.errors import LaunchFailure, ToolFailure

logger = logging.getLogger(__name__)

# How much of a tool's stderr to keep in a failure detail string
STDERR_TAIL_CHARS = 2000


@dataclass
class ProcessResult:
    """Outcome of one finished external process."""
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_tail(self, limit: int = STDERR_TAIL_CHARS) -> str:
        return self.stderr.strip()[-limit:]


class ProcessRunner:
    """Spawns a process, feeds stdin, waits for exit and collects both streams."""

    async def run(
        self,
        argv: Sequence[str],
        stdin: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """Run ``argv`` to completion.

        Raises:
            LaunchFailure: the executable is missing or not executable.
            ToolFailure: the process did not exit within ``timeout`` seconds.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise LaunchFailure(f"Failed to start {argv[0]}: {exc}") from exc

        data = stdin.encode("utf-8") if stdin is not None else None
        try:
            out, err = await asyncio.wait_for(proc.communicate(data), timeout=timeout)
        except asyncio.TimeoutError:
            _kill(proc)
            await proc.wait()
            raise ToolFailure(f"{argv[0]} timed out after {timeout} seconds")
        except asyncio.CancelledError:
            _kill(proc)
            raise

        return ProcessResult(
            returncode=proc.returncode,
            stdout=out.decode("utf-8", errors="replace"),
            stderr=err.decode("utf-8", errors="replace"),
        )


def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        logger.warning("Killed process %s", proc.pid)
