"""
Subprocess output capture into tail buffers.

This module runs child processes and keeps only the most recent lines of
their combined stdout/stderr:

- PYTHONUNBUFFERED=1 in the child environment for prompt output
- Fixed-size chunk reads; line splitting is left to TailBuffer
- SIGTERM -> wait -> SIGKILL for graceful termination
- start_new_session=True so children do not share our process group
"""

import asyncio
import logging
import os
from dataclasses import dataclass

from tail_buffer.buffer import TailBuffer

logger = logging.getLogger(__name__)


@dataclass
class CapturedProcess:
    """
    Wrapper for a subprocess with its tail buffer.

    Attributes:
        process: The asyncio subprocess handle
        buffer: Tail buffer receiving the process output
        name: Identifier for this process (e.g., "build", "server")
    """

    process: asyncio.subprocess.Process
    buffer: TailBuffer
    name: str


@dataclass
class CaptureResult:
    """Exit status and retained output of a finished command."""

    returncode: int
    buffer: TailBuffer


class ProcessCapture:
    """
    Manages subprocesses whose output is retained in tail buffers.

    Example:
        capture = ProcessCapture()
        proc = await capture.spawn("build", ["make", "all"], max_lines=20)
        read_task = asyncio.create_task(capture.read_output(proc))
        # ... later ...
        await capture.terminate_all()
        print(proc.buffer)
    """

    def __init__(self, chunk_size: int = 4096) -> None:
        """
        Initialize with an empty process registry.

        Args:
            chunk_size: Maximum bytes per read from a process pipe
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._chunk_size = chunk_size
        self._processes: dict[str, CapturedProcess] = {}
        self._shutdown = asyncio.Event()

    @property
    def shutdown(self) -> asyncio.Event:
        """Return shutdown event for external coordination."""
        return self._shutdown

    async def spawn(
        self,
        name: str,
        command: list[str],
        max_lines: int = 50,
        env: dict[str, str] | None = None,
    ) -> CapturedProcess:
        """
        Spawn a subprocess with output capture.

        Args:
            name: Identifier for this process
            command: Program and arguments
            max_lines: Window size of the process's tail buffer
            env: Optional environment variables merged over the current env

        Returns:
            CapturedProcess with process handle and tail buffer
        """
        if not command:
            raise ValueError("command must not be empty")

        subprocess_env = os.environ.copy()
        subprocess_env["PYTHONUNBUFFERED"] = "1"
        if env:
            subprocess_env.update(env)

        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            env=subprocess_env,
            start_new_session=True,
        )
        logger.debug(f"Spawned {name} (pid {proc.pid}): {command[0]}")

        captured = CapturedProcess(process=proc, buffer=TailBuffer(max_lines), name=name)
        self._processes[name] = captured
        return captured

    async def read_output(self, captured: CapturedProcess) -> None:
        """
        Pump process output into its buffer.

        Runs until EOF or until the shutdown event is set. Uses a short
        read timeout so shutdown is noticed promptly.

        Args:
            captured: The CapturedProcess to read from
        """
        stream = captured.process.stdout
        while not self._shutdown.is_set():
            try:
                chunk = await asyncio.wait_for(
                    stream.read(self._chunk_size),
                    timeout=0.1,
                )
            except asyncio.TimeoutError:
                continue
            if not chunk:
                break
            captured.buffer.write(chunk)

    async def terminate(self, name: str, timeout: float = 5.0) -> None:
        """
        Gracefully terminate a subprocess.

        Sends SIGTERM, waits, escalates to SIGKILL if needed. Always awaits
        proc.wait() to prevent zombies.

        Args:
            name: Identifier of process to terminate
            timeout: Seconds to wait before SIGKILL
        """
        captured = self._processes.pop(name, None)
        if captured is None:
            return

        proc = captured.process
        if proc.returncode is not None:
            return

        proc.terminate()
        try:
            await asyncio.wait_for(proc.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{name} (pid {proc.pid}) ignored SIGTERM for {timeout}s, killing")
            proc.kill()
            await proc.wait()
        logger.debug(f"{name} exited with {proc.returncode}")

    async def terminate_all(self, timeout: float = 5.0) -> None:
        """
        Terminate all managed subprocesses.

        Sets shutdown event first to stop reader tasks.

        Args:
            timeout: Seconds to wait for each process before SIGKILL
        """
        self._shutdown.set()
        for name in list(self._processes):
            await self.terminate(name, timeout=timeout)

    def get_buffer(self, name: str) -> TailBuffer | None:
        """
        Get tail buffer for a subprocess.

        Args:
            name: Identifier of the process

        Returns:
            TailBuffer if process exists, None otherwise
        """
        captured = self._processes.get(name)
        return captured.buffer if captured is not None else None


async def run_and_capture(
    command: list[str],
    max_lines: int = 50,
    env: dict[str, str] | None = None,
    chunk_size: int = 4096,
    terminate_timeout: float = 5.0,
) -> CaptureResult:
    """
    Run a command to completion, keeping the last max_lines of its output.

    If this coroutine is cancelled (e.g. Ctrl-C under asyncio.run), the
    child is terminated and reaped before the cancellation propagates.

    Args:
        command: Program and arguments
        max_lines: Window size
        env: Optional environment variables merged over the current env
        chunk_size: Maximum bytes per pipe read
        terminate_timeout: Seconds to wait after SIGTERM before SIGKILL

    Returns:
        CaptureResult with exit code and tail buffer
    """
    capture = ProcessCapture(chunk_size=chunk_size)
    captured = await capture.spawn("command", command, max_lines=max_lines, env=env)
    try:
        await capture.read_output(captured)
        returncode = await captured.process.wait()
    finally:
        await capture.terminate_all(timeout=terminate_timeout)
    logger.debug(f"{command[0]} exited with {returncode}")
    return CaptureResult(returncode=returncode, buffer=captured.buffer)
