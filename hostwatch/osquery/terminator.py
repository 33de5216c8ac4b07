"""Process terminators — forceful kill, one implementation per host family.

The right terminator is chosen once at startup by ``select_terminator()``
and injected into the adapter. Each one raises the same errors:

  - ProcessNotFoundError: the pid is gone
  - KillRefusedError: the OS refused (insufficient permission)
  - OSQueryError: anything else
"""

from __future__ import annotations

import os
import signal
import subprocess
import sys
from abc import ABC, abstractmethod

from hostwatch.exceptions import KillRefusedError, OSQueryError, ProcessNotFoundError

# taskkill exit status when the pid does not exist
_TASKKILL_NOT_FOUND = 128


class Terminator(ABC):
    """Forcefully ends an OS process by pid."""

    name: str = "base"

    @abstractmethod
    def kill(self, pid: int) -> None: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SignalTerminator(Terminator):
    """POSIX: deliver SIGKILL directly."""

    name = "signal"

    def __init__(self, sig: int | None = None) -> None:
        self._signal = sig if sig is not None else getattr(signal, "SIGKILL", signal.SIGTERM)

    def kill(self, pid: int) -> None:
        if pid <= 0:
            # 0 and negatives address process groups, never a single process
            raise ProcessNotFoundError(f"invalid pid {pid}")
        try:
            os.kill(pid, self._signal)
        except ProcessLookupError as e:
            raise ProcessNotFoundError(f"pid {pid} does not exist") from e
        except PermissionError as e:
            raise KillRefusedError(f"not permitted to signal pid {pid}") from e
        except OSError as e:
            raise OSQueryError(f"kill({pid}) failed: {e}") from e


class TaskkillTerminator(Terminator):
    """Windows: ``taskkill /F /PID <pid>``."""

    name = "taskkill"

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout

    def kill(self, pid: int) -> None:
        if pid <= 0:
            raise ProcessNotFoundError(f"invalid pid {pid}")
        try:
            proc = subprocess.run(
                ["taskkill", "/F", "/PID", str(pid)],
                capture_output=True, text=True, timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise OSQueryError(f"taskkill failed: {e}") from e

        if proc.returncode == 0:
            return
        message = (proc.stderr or proc.stdout or "").strip()
        if proc.returncode == _TASKKILL_NOT_FOUND or "not found" in message.lower():
            raise ProcessNotFoundError(f"pid {pid} does not exist")
        if "access is denied" in message.lower():
            raise KillRefusedError(message or f"not permitted to terminate pid {pid}")
        raise OSQueryError(message or f"taskkill exited with {proc.returncode}")


def select_terminator(platform: str | None = None) -> Terminator:
    """Pick the terminator for the host OS."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return TaskkillTerminator()
    return SignalTerminator()
