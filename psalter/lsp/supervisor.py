"""Analyzer process lifecycle management.

Owns the single Psalm language server process of a workspace: spawns it,
pumps its output, observes its exit and tears it down. Lifecycle operations
are serialized by one lock, so a stop always completes before the next start
and two starts never overlap.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

from psalter.constants import SERVER_NAME, STOP_TIMEOUT
from psalter.types import ExitStatus, ProcessStartError, ProcessState, ProcessStateError
from psalter.utils.logger import logger

_READ_CHUNK = 64 * 1024


class ProcessSupervisor:
    """Supervises one analyzer process.

    State moves STOPPED -> STARTING -> RUNNING -> STOPPED. ``send`` writes to
    the analyzer's stdin. Standard error is always logged; protocol traffic
    is logged only in debug mode.

    Stdout goes to ``stdout_sink`` when one is given. The sink is awaited
    per chunk, so a slow consumer slows reading from the pipe. Without a
    sink, stdout is buffered in ``reader`` (a fresh ``StreamReader`` per
    process) and the transport must keep draining it: that buffer is not
    bounded.

    There is no automatic restart: a crash is logged and leaves the
    supervisor STOPPED until someone calls ``start`` or ``restart``.
    """

    def __init__(
        self,
        command: Sequence[str],
        cwd: str | Path,
        *,
        debug: bool = False,
        stop_timeout: float = STOP_TIMEOUT,
        on_exit: Callable[[ExitStatus], None] | None = None,
        stdout_sink: Callable[[bytes], Awaitable[None]] | None = None,
    ) -> None:
        self._command = list(command)
        self._cwd = os.path.abspath(cwd)
        self._debug = debug
        self._stop_timeout = stop_timeout
        self._on_exit = on_exit
        self._stdout_sink = stdout_sink

        self._state = ProcessState.STOPPED
        self._process: asyncio.subprocess.Process | None = None
        self._exit_task: asyncio.Task[None] | None = None
        self._pump_tasks: list[asyncio.Task[None]] = []
        self._stopping = False
        self._lock = asyncio.Lock()

        self.reader: asyncio.StreamReader | None = None
        self.last_exit: ExitStatus | None = None

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ProcessState.RUNNING

    @property
    def pid(self) -> int | None:
        if self._process is None or self._process.returncode is not None:
            return None
        return self._process.pid

    async def start(self) -> None:
        """Spawn the analyzer.

        Raises:
            ProcessStateError: The supervisor is not STOPPED.
            ProcessStartError: The process could not be spawned. The
                supervisor stays STOPPED and nothing is retried.
        """
        async with self._lock:
            await self._start_locked()

    async def stop(self) -> None:
        """Terminate the analyzer and wait until its exit has been observed.

        If the process ignores the termination request for ``stop_timeout``
        seconds it is killed. Stopping a stopped supervisor is a no-op.
        """
        async with self._lock:
            await self._stop_locked()

    async def restart(self) -> None:
        """Stop, then start, as one operation."""
        async with self._lock:
            await self._stop_locked()
            await self._start_locked()

    async def send(self, data: bytes) -> None:
        """Write raw bytes to the analyzer's stdin."""
        proc = self._process
        if proc is None or proc.stdin is None or self._state is not ProcessState.RUNNING:
            raise ProcessStateError("send", self._state.value)
        if self._debug:
            logger.debug(f"in: {data.decode('utf-8', errors='replace')}")
        proc.stdin.write(data)
        await proc.stdin.drain()

    def get_status(self) -> dict[str, Any]:
        """Snapshot of the supervisor for status displays."""
        return {
            "state": self._state.value,
            "pid": self.pid,
            "cwd": self._cwd,
            "command": self.command,
            "last_exit": str(self.last_exit) if self.last_exit else None,
        }

    async def _start_locked(self) -> None:
        if self._state is not ProcessState.STOPPED:
            raise ProcessStateError("start", self._state.value)
        # A previous process that crashed still needs reaping.
        await self._reap()

        self._state = ProcessState.STARTING
        logger.info(f"Starting {SERVER_NAME}: {' '.join(self._command)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
            )
        except (OSError, ValueError) as e:
            self._state = ProcessState.STOPPED
            logger.error(f"Failed to start {SERVER_NAME}: {e}")
            raise ProcessStartError(self._command, e) from e

        self._process = proc
        self.reader = None if self._stdout_sink is not None else asyncio.StreamReader()
        self._pump_tasks = [
            asyncio.create_task(self._pump_stderr(proc)),
            asyncio.create_task(self._pump_stdout(proc, self.reader)),
        ]
        self._exit_task = asyncio.create_task(self._observe_exit(proc))
        self._state = ProcessState.RUNNING
        logger.debug(f"{SERVER_NAME} running with pid {proc.pid}")

    async def _stop_locked(self) -> None:
        proc = self._process
        if proc is None:
            return
        if proc.returncode is None and self._exit_task is not None:
            self._stopping = True
            try:
                proc.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(asyncio.shield(self._exit_task), timeout=self._stop_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"{SERVER_NAME} did not exit within {self._stop_timeout}s, killing it"
                )
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
        await self._reap()

    async def _reap(self) -> None:
        """Wait for the exit observer and output pumps of the last process."""
        proc = self._process
        if proc is None:
            return
        if self._exit_task is not None:
            await self._exit_task
        if self._pump_tasks:
            _, pending = await asyncio.wait(self._pump_tasks, timeout=1.0)
            for task in pending:
                task.cancel()
            await asyncio.gather(*self._pump_tasks, return_exceptions=True)
        if proc.stdin is not None and not proc.stdin.is_closing():
            proc.stdin.close()

        self._process = None
        self._exit_task = None
        self._pump_tasks = []
        self._stopping = False
        self._state = ProcessState.STOPPED

    async def _observe_exit(self, proc: asyncio.subprocess.Process) -> None:
        status = ExitStatus.from_returncode(await proc.wait())
        self.last_exit = status
        logger.info(f"{SERVER_NAME} exited: {status}")
        if self._process is proc:
            if not self._stopping and self._state is ProcessState.RUNNING:
                logger.warning(f"{SERVER_NAME} exited unexpectedly ({status}); not restarting")
            self._state = ProcessState.STOPPED
        if self._on_exit is not None:
            try:
                self._on_exit(status)
            except Exception:
                logger.opt(exception=True).warning("Exit callback failed")

    async def _pump_stderr(self, proc: asyncio.subprocess.Process) -> None:
        stream = proc.stderr
        if stream is None:
            return
        while True:
            line = await stream.readline()
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                logger.error(text)

    async def _pump_stdout(
        self,
        proc: asyncio.subprocess.Process,
        reader: asyncio.StreamReader | None,
    ) -> None:
        stream = proc.stdout
        try:
            if stream is None:
                return
            while True:
                chunk = await stream.read(_READ_CHUNK)
                if not chunk:
                    break
                if self._debug:
                    logger.debug(f"out: {chunk.decode('utf-8', errors='replace')}")
                if reader is not None:
                    reader.feed_data(chunk)
                    continue
                try:
                    await self._stdout_sink(chunk)
                except Exception:
                    logger.opt(exception=True).error("Stdout sink failed, chunk dropped")
        finally:
            if reader is not None:
                reader.feed_eof()
