"""Generator subprocess lifecycle.

GeneratorProcess:
    Owns the generator subprocess: stdin discarded, stdout captured, stderr
    inherited so the generator diagnostics stay visible.
    Stops with SIGTERM -> wait -> SIGKILL, always reaping the child.
"""

from __future__ import annotations

__all__ = ["GeneratorProcess", "spawn"]

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

from .channel import STREAM_LIMIT
from .models import SpawnFailure

if TYPE_CHECKING:
    from .config import GeneratorConfig


class GeneratorProcess:
    """Handle over the running generator.

    Usage:
        proc = GeneratorProcess()
        await proc.start(["i3status", "-c", "~/.i3status.conf"])

        if proc.stdout:
            line = await proc.stdout.readline()

        await proc.terminate()
    """

    def __init__(self, graceful_timeout: float = 1.0) -> None:
        """Initialize.

        Args:
            graceful_timeout: Seconds to wait after SIGTERM before SIGKILL
        """
        self._proc: asyncio.subprocess.Process | None = None
        self._argv: list[str] = []
        self._graceful_timeout = graceful_timeout

    @property
    def argv(self) -> list[str]:
        """Return the command line of the last start."""
        return list(self._argv)

    @property
    def pid(self) -> int | None:
        """Return PID if process exists, else None."""
        return self._proc.pid if self._proc else None

    @property
    def returncode(self) -> int | None:
        """Return exit code if process exited, else None."""
        return self._proc.returncode if self._proc else None

    @property
    def is_alive(self) -> bool:
        """Check if process is currently running."""
        return self._proc is not None and self._proc.returncode is None

    @property
    def stdout(self) -> asyncio.StreamReader | None:
        """Return the captured output, None if capture failed."""
        return self._proc.stdout if self._proc else None

    async def start(self, argv: list[str], **subprocess_kwargs: Any) -> None:  # noqa: ANN401
        """Start the generator.

        Args:
            argv: Program and arguments
            **subprocess_kwargs: Overrides passed to create_subprocess_exec

        Raises:
            SpawnFailure: the executable is missing or can't be started
        """
        if not argv:
            msg = "No generator command configured"
            raise SpawnFailure(msg)

        kwargs: dict[str, Any] = {
            "stdin": asyncio.subprocess.DEVNULL,
            "stdout": asyncio.subprocess.PIPE,
            "stderr": None,
            "limit": STREAM_LIMIT,
        }
        kwargs.update(subprocess_kwargs)
        self._argv = list(argv)
        try:
            self._proc = await asyncio.create_subprocess_exec(*argv, **kwargs)
        except OSError as e:
            msg = f"Failed to spawn {argv[0]}: {e}"
            raise SpawnFailure(msg) from e

    async def terminate(self) -> int | None:
        """Stop the generator.

        Shutdown sequence:
        1. SIGTERM
        2. Wait up to graceful_timeout
        3. SIGKILL if still alive
        4. wait() to reap

        Returns:
            The process return code, or None if never started
        """
        if self._proc is None:
            return None

        if self._proc.returncode is not None:
            return self._proc.returncode

        with contextlib.suppress(ProcessLookupError):
            self._proc.terminate()

        try:
            await asyncio.wait_for(self._proc.wait(), timeout=self._graceful_timeout)
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                self._proc.kill()
            await self._proc.wait()

        return self._proc.returncode


async def spawn(config: GeneratorConfig) -> GeneratorProcess:
    """Launch the generator described by `config`.

    Raises:
        SpawnFailure: the command line is invalid, or the executable is missing or can't be started
    """
    try:
        argv = config.argv()
    except ValueError as e:
        msg = f"Invalid generator command {config.command!r}: {e}"
        raise SpawnFailure(msg) from e
    proc = GeneratorProcess(graceful_timeout=config.graceful_timeout)
    await proc.start(argv)
    return proc
