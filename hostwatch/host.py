"""HostControl — the single entry point the request layer talks to.

Wires the adapter, audit log, executor, registry, sampler, evaluator and
poller together and exposes the operations the dashboard and CLI need.
No authorization happens here: callers decide who may do what and pass
the actor name along for the audit log.
"""

from __future__ import annotations

import logging
from typing import Sequence

from hostwatch.alerts.evaluator import AlertEvaluator, AlertRecord, ThresholdConfig
from hostwatch.audit.trail import AuditEntry, AuditLog
from hostwatch.commands.executor import CommandExecutor, CommandResult, split_command
from hostwatch.config import HostwatchSettings, settings as default_settings
from hostwatch.exceptions import OSQueryError
from hostwatch.metrics.poller import MetricsPoller
from hostwatch.metrics.sampler import MetricsSampler, MetricsSnapshot, SystemInfo
from hostwatch.osquery.base import OSQueryAdapter
from hostwatch.processes.registry import KillResult, ProcessDescriptor, ProcessRegistry

_logger = logging.getLogger(__name__)


class HostControl:
    """Process control and telemetry for this host."""

    def __init__(
        self,
        adapter: OSQueryAdapter,
        config: HostwatchSettings | None = None,
    ) -> None:
        cfg = config or default_settings
        self.config = cfg
        self.adapter = adapter
        self.audit_log = AuditLog(capacity=cfg.audit_capacity)
        self.executor = CommandExecutor(
            self.audit_log,
            timeout=cfg.command_timeout_seconds,
            drain_grace=cfg.drain_grace_seconds,
            max_output_bytes=cfg.max_output_bytes,
        )
        self.registry = ProcessRegistry(adapter, self.audit_log, search_limit=cfg.search_limit)
        self.sampler = MetricsSampler(adapter, window=cfg.cpu_sample_window_seconds)
        self.evaluator = AlertEvaluator(
            ThresholdConfig(
                cpu=cfg.cpu_threshold,
                memory=cfg.memory_threshold,
                disk=cfg.disk_threshold,
            ),
            history_capacity=cfg.alert_capacity,
        )
        self.poller = MetricsPoller(
            self.sampler,
            interval=cfg.poll_interval_seconds,
            evaluator=self.evaluator if cfg.poll_evaluate_alerts else None,
        )

    @classmethod
    def default(cls, config: HostwatchSettings | None = None) -> HostControl:
        """Production wiring: psutil adapter with the host OS's terminator."""
        from hostwatch.osquery.psutil_adapter import PsutilAdapter
        return cls(PsutilAdapter(), config)

    # ── commands ──────────────────────────────

    async def execute(
        self,
        command: str | Sequence[str],
        actor: str,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = split_command(command) if isinstance(command, str) else list(command)
        return await self.executor.execute(argv, actor, timeout=timeout)

    # ── processes ─────────────────────────────

    def list_processes(self, limit: int | None = None) -> list[ProcessDescriptor]:
        return self.registry.list(self.config.default_process_limit if limit is None else limit)

    def process_details(self, pid: int) -> ProcessDescriptor | None:
        return self.registry.get(pid)

    def kill_process(self, pid: int, actor: str) -> KillResult:
        return self.registry.kill(pid, actor)

    def search_processes(self, term: str) -> list[ProcessDescriptor]:
        return self.registry.search(term)

    # ── audit ─────────────────────────────────

    def get_audit_log(self, limit: int = 50) -> list[AuditEntry]:
        return self.audit_log.recent(limit)

    def clear_audit_log(self) -> None:
        self.audit_log.clear()

    # ── metrics & alerts ──────────────────────

    async def sample_metrics(self) -> MetricsSnapshot:
        return await self.sampler.sample()

    async def current_metrics(self) -> MetricsSnapshot:
        """Poller's cached snapshot, sampling inline only if none exists yet."""
        return self.poller.latest() or await self.poller.refresh()

    def evaluate_alerts(self, snapshot: MetricsSnapshot) -> list[AlertRecord]:
        return self.evaluator.evaluate(snapshot)

    def get_alert_history(self) -> list[AlertRecord]:
        return self.evaluator.history()

    def clear_alert_history(self) -> None:
        self.evaluator.clear_history()

    def get_thresholds(self) -> ThresholdConfig:
        return self.evaluator.thresholds()

    def set_thresholds(
        self,
        cpu: float | None = None,
        memory: float | None = None,
        disk: float | None = None,
    ) -> ThresholdConfig:
        return self.evaluator.set_thresholds(cpu=cpu, memory=memory, disk=disk)

    def system_info(self) -> SystemInfo:
        return self.sampler.system_info()

    async def dashboard(self, limit: int | None = None) -> dict:
        """Metrics, top processes, fresh alerts and host info in one payload."""
        metrics = await self.current_metrics()
        try:
            info = self.system_info().model_dump(mode="json")
        except OSQueryError as e:
            _logger.warning("System info probe failed: %s", e)
            info = None
        return {
            "metrics": metrics.model_dump(mode="json"),
            "top_processes": [p.model_dump(mode="json") for p in self.list_processes(limit)],
            "alerts": [a.model_dump(mode="json") for a in self.evaluate_alerts(metrics)],
            "system_info": info,
        }
