"""Alert Evaluator — compares snapshots against mutable thresholds.

Thresholds are process-wide and take effect on the next evaluation.
They are not range-checked. Every alert raised is also appended to a
bounded, in-memory alert history.

The disk threshold is stored and reported but not evaluated: snapshots
carry disk I/O counters, not disk usage percentages.
"""

from __future__ import annotations

import threading
from datetime import datetime

from pydantic import BaseModel, Field

from hostwatch.audit.ring import BoundedLog
from hostwatch.metrics.sampler import MetricsSnapshot
from hostwatch.types import AlertKind, Severity, new_id, utcnow


class AlertRecord(BaseModel):
    id: str = Field(default_factory=new_id)
    kind: AlertKind
    severity: Severity = Severity.HIGH
    message: str
    value: float
    timestamp: datetime = Field(default_factory=utcnow)


class ThresholdConfig(BaseModel):
    cpu: float = 80.0
    memory: float = 85.0
    disk: float = 90.0


class AlertEvaluator:
    """Emits HIGH alerts for metrics above their thresholds."""

    def __init__(
        self,
        thresholds: ThresholdConfig | None = None,
        history_capacity: int = 100,
    ) -> None:
        self._thresholds = thresholds or ThresholdConfig()
        self._lock = threading.Lock()
        self._history: BoundedLog[AlertRecord] = BoundedLog(history_capacity)

    def evaluate(self, snapshot: MetricsSnapshot) -> list[AlertRecord]:
        limits = self.thresholds()
        alerts: list[AlertRecord] = []

        if snapshot.cpu_usage_percent > limits.cpu:
            alerts.append(AlertRecord(
                kind=AlertKind.CPU,
                message=f"High CPU usage: {snapshot.cpu_usage_percent}%",
                value=snapshot.cpu_usage_percent,
            ))

        if snapshot.memory_usage_percent > limits.memory:
            alerts.append(AlertRecord(
                kind=AlertKind.MEMORY,
                message=f"High memory usage: {snapshot.memory_usage_percent}%",
                value=snapshot.memory_usage_percent,
            ))

        for alert in alerts:
            self._history.append(alert)
        return alerts

    # ── thresholds ────────────────────────────

    def thresholds(self) -> ThresholdConfig:
        with self._lock:
            return self._thresholds.model_copy()

    def set_cpu_threshold(self, value: float) -> None:
        self.set_thresholds(cpu=value)

    def set_memory_threshold(self, value: float) -> None:
        self.set_thresholds(memory=value)

    def set_disk_threshold(self, value: float) -> None:
        self.set_thresholds(disk=value)

    def set_thresholds(
        self,
        cpu: float | None = None,
        memory: float | None = None,
        disk: float | None = None,
    ) -> ThresholdConfig:
        updates = {
            k: float(v)
            for k, v in (("cpu", cpu), ("memory", memory), ("disk", disk))
            if v is not None
        }
        with self._lock:
            self._thresholds = self._thresholds.model_copy(update=updates)
            return self._thresholds.model_copy()

    # ── history ───────────────────────────────

    def history(self) -> list[AlertRecord]:
        """Retained alerts, oldest first."""
        return self._history.snapshot()

    def clear_history(self) -> None:
        self._history.clear()

    def history_count(self) -> int:
        return len(self._history)
