"""Core types shared across all hostwatch subsystems."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TypeAlias

# ── ID Types ──────────────────────────────────────────────────────────────────

Pid: TypeAlias = int
Actor: TypeAlias = str


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Process States ────────────────────────────────────────────────────────────


class ProcessState(str, Enum):
    RUNNING = "running"
    SLEEPING = "sleeping"
    STOPPED = "stopped"
    ZOMBIE = "zombie"
    UNKNOWN = "unknown"


# ── Command outcome kinds ─────────────────────────────────────────────────────


class CommandErrorKind(str, Enum):
    SPAWN = "spawn"              # never started
    TIMEOUT = "timeout"          # started but exceeded its time budget
    INTERRUPTED = "interrupted"  # caller stopped waiting


# ── Alerts ────────────────────────────────────────────────────────────────────


class AlertKind(str, Enum):
    CPU = "CPU"
    MEMORY = "MEMORY"
    DISK = "DISK"


class Severity(str, Enum):
    HIGH = "HIGH"
