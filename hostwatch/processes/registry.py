"""Process Registry — the host's process table as seen by operators.

Lists, searches and inspects OS processes through the OS-Query adapter,
and kills them on request. The registry only decides whether to invoke
the adapter's kill and reports what happened; how a process is actually
terminated is the adapter's (and its terminator's) business.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import BaseModel

from hostwatch.audit.trail import AuditLog
from hostwatch.exceptions import KillRefusedError, OSQueryError, ProcessNotFoundError
from hostwatch.osquery.base import OSQueryAdapter, RawProcess
from hostwatch.types import ProcessState

_logger = logging.getLogger(__name__)

MSG_KILLED = "process terminated"
MSG_NOT_FOUND = "process not found"
MSG_DENIED = "permission denied"
MSG_FAILED = "termination failed"


class ProcessDescriptor(BaseModel):
    """Everything an operator sees about one OS process."""

    pid: int
    name: str
    exe: str = ""
    cmdline: str = ""
    username: str = ""
    state: ProcessState = ProcessState.UNKNOWN
    cpu_load: float = 0.0  # cumulative fraction, 0..1
    rss_bytes: int = 0
    vms_bytes: int = 0
    num_threads: int = 0
    started_at: datetime | None = None
    uptime_s: int = 0

    @property
    def cpu_percent(self) -> float:
        return round(self.cpu_load * 100, 2)

    @classmethod
    def from_raw(cls, raw: RawProcess) -> ProcessDescriptor:
        return cls(
            pid=raw.pid,
            name=raw.name,
            exe=raw.exe,
            cmdline=raw.cmdline,
            username=raw.username,
            state=raw.state,
            cpu_load=raw.cpu_load,
            rss_bytes=raw.rss_bytes,
            vms_bytes=raw.vms_bytes,
            num_threads=raw.num_threads,
            started_at=(
                datetime.fromtimestamp(raw.create_time, tz=timezone.utc)
                if raw.create_time else None
            ),
            uptime_s=int(raw.uptime_s),
        )


class KillResult(BaseModel):
    success: bool
    message: str
    pid: int
    name: str = ""


class ProcessRegistry:
    """Read access to the process table plus audited kills."""

    def __init__(
        self,
        adapter: OSQueryAdapter,
        audit_log: AuditLog,
        search_limit: int = 50,
    ) -> None:
        self._adapter = adapter
        self._audit = audit_log
        self._search_limit = search_limit

    def list(self, limit: int = 100) -> list[ProcessDescriptor]:
        """Busiest processes first, by cumulative CPU load."""
        if limit <= 0:
            return []
        raws = sorted(self._adapter.process_list(), key=lambda r: r.cpu_load, reverse=True)
        return [ProcessDescriptor.from_raw(r) for r in raws[:limit]]

    def get(self, pid: int) -> ProcessDescriptor | None:
        """Look up one process. None when absent; never raises."""
        try:
            raw = self._adapter.process_by_pid(pid)
        except OSQueryError as e:
            _logger.warning("Lookup of pid %d failed: %s", pid, e)
            return None
        return ProcessDescriptor.from_raw(raw) if raw else None

    def search(self, term: str) -> list[ProcessDescriptor]:
        """Case-insensitive substring match on process name."""
        needle = term.lower()
        matches: list[ProcessDescriptor] = []
        for raw in self._adapter.process_list():
            if needle in raw.name.lower():
                matches.append(ProcessDescriptor.from_raw(raw))
                if len(matches) >= self._search_limit:
                    break
        return matches

    def kill(self, pid: int, actor: str) -> KillResult:
        """Forcefully terminate ``pid``. Always audited, never raises."""
        try:
            raw = self._adapter.process_by_pid(pid)
        except OSQueryError as e:
            message = f"{MSG_FAILED}: {e}"
            self._audit.log_action(actor, f"KILL_PROCESS {pid}", False, message)
            _logger.warning("Kill of pid %d for %s: %s", pid, actor, message)
            return KillResult(success=False, message=message, pid=pid)

        proc = ProcessDescriptor.from_raw(raw) if raw else None
        if proc is None:
            self._audit.log_action(actor, f"KILL_PROCESS {pid}", False, MSG_NOT_FOUND)
            return KillResult(success=False, message=MSG_NOT_FOUND, pid=pid)

        try:
            self._adapter.kill_by_pid(pid)
        except ProcessNotFoundError:
            success, message = False, MSG_NOT_FOUND
        except KillRefusedError:
            success, message = False, MSG_DENIED
        except OSQueryError as e:
            success, message = False, f"{MSG_FAILED}: {e}"
        else:
            success, message = True, MSG_KILLED

        self._audit.log_action(
            actor, f"KILL_PROCESS {pid} ({proc.name})", success, message,
        )
        if success:
            _logger.info("Killed pid %d (%s) for %s", pid, proc.name, actor)
        else:
            _logger.warning("Kill of pid %d (%s) for %s: %s", pid, proc.name, actor, message)
        return KillResult(success=success, message=message, pid=pid, name=proc.name)
