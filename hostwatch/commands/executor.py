"""Command Executor — run one external command with a time budget.

Each call spawns the command with stderr merged into stdout and starts a
drain task on the merged stream straight away, so the child can never
stall on a full pipe while we wait for it to exit. The drain task is
scoped to the call:

  - normal exit: joined with a short grace period to flush trailing output
  - timeout: the child's whole process group is killed, the drain gets
    the same grace, then is cancelled
  - caller cancellation: the child keeps running; the drain is handed to a
    tracked background set and finishes on its own

Every call, whatever the outcome, appends exactly one audit entry.

Usage:
    executor = CommandExecutor(audit_log, timeout=30)
    result = await executor.execute(["echo", "hello"], actor="alice")
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from datetime import datetime
from typing import Sequence

from pydantic import BaseModel, Field, model_validator

from hostwatch.audit.trail import AuditLog
from hostwatch.exceptions import CommandInterruptedError, CommandTimeoutError, SpawnError
from hostwatch.types import CommandErrorKind, utcnow

_logger = logging.getLogger(__name__)

_READ_CHUNK = 64 * 1024
_EXIT_POLL = 0.05


class CommandResult(BaseModel):
    """Outcome of one command execution."""

    command: str
    argv: list[str] = Field(default_factory=list)
    exit_code: int | None = None  # None when the process never exited on its own
    output: str = ""
    truncated: bool = False
    started_at: datetime = Field(default_factory=utcnow)
    duration_s: float = 0.0
    success: bool = False
    error: str | None = None
    error_kind: CommandErrorKind | None = None

    @model_validator(mode="after")
    def _success_matches_exit_code(self) -> CommandResult:
        if self.exit_code is None:
            if self.success:
                raise ValueError("a result without exit code cannot be successful")
        elif self.success != (self.exit_code == 0):
            raise ValueError(
                f"success={self.success} contradicts exit_code={self.exit_code}"
            )
        return self


def split_command(command_line: str) -> list[str]:
    """Split on whitespace. No quoting, escaping, pipes or redirection."""
    return command_line.split()


class _OutputBuffer:
    """Keeps the first ``limit`` bytes of output, counts the rest."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._chunks: list[bytes] = []
        self._size = 0
        self.truncated = False

    def feed(self, data: bytes) -> None:
        room = self._limit - self._size
        if len(data) > room:
            self.truncated = True
            data = data[:max(room, 0)]
        if data:
            self._chunks.append(data)
            self._size += len(data)

    def text(self) -> str:
        return b"".join(self._chunks).decode("utf-8", errors="replace")


async def _drain(stream: asyncio.StreamReader, buf: _OutputBuffer) -> None:
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return
        buf.feed(chunk)


async def _exited(proc: asyncio.subprocess.Process) -> int:
    """Exit status as soon as the child is reaped.

    ``proc.wait()`` also waits for the output pipe to close, which never
    happens while a background grandchild still holds it.
    """
    while proc.returncode is None:
        await asyncio.sleep(_EXIT_POLL)
    return proc.returncode


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    """SIGKILL the child and everything it spawned into its session."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


class CommandExecutor:
    """Spawns commands, drains their output concurrently, enforces timeouts."""

    def __init__(
        self,
        audit_log: AuditLog,
        timeout: float = 30.0,
        drain_grace: float = 2.0,
        max_output_bytes: int = 1_000_000,
    ) -> None:
        self._audit = audit_log
        self._timeout = timeout
        self._grace = drain_grace
        self._max_output = max_output_bytes
        self._orphans: set[asyncio.Task] = set()

    @property
    def default_timeout(self) -> float:
        return self._timeout

    async def execute(
        self,
        argv: Sequence[str],
        actor: str,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run ``argv`` and return a well-formed result. Never raises."""
        argv = list(argv)
        command = " ".join(argv)
        budget = self._timeout if timeout is None else timeout
        started_at = utcnow()
        start = time.monotonic()
        buf = _OutputBuffer(self._max_output)

        def _result(**kwargs) -> CommandResult:
            return CommandResult(
                command=command,
                argv=argv,
                started_at=started_at,
                duration_s=round(time.monotonic() - start, 3),
                output=buf.text(),
                truncated=buf.truncated,
                **kwargs,
            )

        try:
            proc = await self._spawn(argv)
        except SpawnError as e:
            return self._finish(_result(
                error=str(e), error_kind=CommandErrorKind.SPAWN,
            ), actor)

        drain = asyncio.create_task(_drain(proc.stdout, buf))
        try:
            exit_code = await self._wait(proc, drain, budget)
        except CommandTimeoutError as e:
            result = _result(error=str(e), error_kind=CommandErrorKind.TIMEOUT)
        except CommandInterruptedError as e:
            self._abandon(drain)
            result = _result(error=str(e), error_kind=CommandErrorKind.INTERRUPTED)
        else:
            result = _result(exit_code=exit_code, success=exit_code == 0)
        return self._finish(result, actor)

    async def _spawn(self, argv: list[str]) -> asyncio.subprocess.Process:
        if not argv:
            raise SpawnError("empty command")
        try:
            return await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            raise SpawnError(f"I/O error: {e}") from e

    async def _wait(
        self,
        proc: asyncio.subprocess.Process,
        drain: asyncio.Task,
        timeout: float,
    ) -> int:
        try:
            exit_code = await asyncio.wait_for(_exited(proc), timeout=timeout)
        except asyncio.TimeoutError:
            _kill_group(proc)
            try:
                await asyncio.wait_for(_exited(proc), timeout=self._grace)
            except asyncio.TimeoutError:
                _logger.warning("pid %d still not reaped %.1fs after SIGKILL", proc.pid, self._grace)
            await self._join(drain)
            raise CommandTimeoutError(f"execution timeout ({timeout:g}s)") from None
        except asyncio.CancelledError:
            # Swallowed here, so drop it from the task's pending cancel count
            asyncio.current_task().uncancel()
            raise CommandInterruptedError("interrupted") from None

        await self._join(drain)
        return exit_code

    async def _join(self, drain: asyncio.Task) -> None:
        """Give the drain task the grace period; cancel it past that."""
        try:
            await asyncio.wait_for(drain, timeout=self._grace)
        except asyncio.TimeoutError:
            _logger.debug("Output drain did not finish within %.1fs", self._grace)
        except OSError as e:
            _logger.warning("Output drain failed: %s", e)

    def _abandon(self, drain: asyncio.Task) -> None:
        self._orphans.add(drain)
        drain.add_done_callback(self._orphans.discard)

    def _finish(self, result: CommandResult, actor: str) -> CommandResult:
        if result.exit_code is not None:
            detail = result.output
        else:
            detail = result.error or ""

        self._audit.log_action(actor, result.command, result.success, detail)

        if result.error_kind is None:
            _logger.info(
                "Command %r by %s exited %d in %.2fs",
                result.command, actor, result.exit_code, result.duration_s,
            )
        else:
            _logger.warning(
                "Command %r by %s failed (%s): %s",
                result.command, actor, result.error_kind.value, result.error,
            )
        return result

    @property
    def pending_drains(self) -> int:
        """Drain tasks still attached to children whose caller gave up."""
        return len(self._orphans)
