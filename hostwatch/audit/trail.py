"""Audit Log — bounded record of every command and kill action.

Every command execution and process kill gets recorded here, whatever
its outcome. The log lives in memory only: it holds the last
``capacity`` entries and resets when the process restarts.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from hostwatch.audit.ring import BoundedLog
from hostwatch.types import new_id, utcnow

DETAIL_LIMIT = 500


class AuditEntry(BaseModel):
    """A single audit log entry."""

    id: str = Field(default_factory=new_id)
    timestamp: datetime = Field(default_factory=utcnow)
    actor: str = "system"
    action: str = ""  # command text, or "KILL_PROCESS <pid> (<name>)"
    success: bool = True
    detail: str = ""


class AuditLog:
    """Process-wide FIFO audit log capped at ``capacity`` entries."""

    def __init__(self, capacity: int = 100) -> None:
        self._entries: BoundedLog[AuditEntry] = BoundedLog(capacity)

    def record(self, entry: AuditEntry) -> AuditEntry:
        """Record an audit entry (append, evicting the oldest when full)."""
        return self._entries.append(entry)

    def log_action(
        self,
        actor: str | None,
        action: str,
        success: bool,
        detail: str = "",
    ) -> AuditEntry:
        """Convenience: log one executor or registry action."""
        entry = AuditEntry(
            actor=actor or "system",
            action=action,
            success=success,
            detail=detail[:DETAIL_LIMIT],
        )
        return self.record(entry)

    def recent(self, limit: int = 50) -> list[AuditEntry]:
        """Most recent entries first."""
        return self._entries.recent(limit)

    def entries(self) -> list[AuditEntry]:
        """Every retained entry, oldest first."""
        return self._entries.snapshot()

    def clear(self) -> None:
        self._entries.clear()

    def count(self) -> int:
        return len(self._entries)

    @property
    def capacity(self) -> int:
        return self._entries.capacity

    def __repr__(self) -> str:
        return f"AuditLog(entries={self.count()})"
