"""Metrics Sampler — one point-in-time snapshot of the host.

CPU usage needs two tick observations a fixed window apart, so ``sample()``
suspends for that window (about a second). It awaits rather than blocks,
but callers on a latency-sensitive path should read the poller's cached
snapshot instead of sampling inline.

A failing sub-probe (disks, network, memory, cpu model) degrades to an
empty or zero field; the snapshot itself is always returned.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field

from hostwatch.exceptions import OSQueryError
from hostwatch.osquery.base import CpuInfo, MemoryInfo, OSQueryAdapter, load_between
from hostwatch.types import utcnow

_logger = logging.getLogger(__name__)


def round2(value: float) -> float:
    """Round to 2 decimals, halves away from zero."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class DiskStat(BaseModel):
    name: str
    model: str = ""
    size_bytes: int = 0
    reads: int = 0
    writes: int = 0


class NetworkStat(BaseModel):
    name: str
    display_name: str = ""
    addresses: list[str] = Field(default_factory=list)
    bytes_received: int = 0
    bytes_sent: int = 0
    speed_bps: int = 0


class MetricsSnapshot(BaseModel):
    sampled_at: datetime = Field(default_factory=utcnow)

    cpu_usage_percent: float = 0.0
    cpu_cores: int = 0
    cpu_model: str = ""

    total_memory_bytes: int = 0
    used_memory_bytes: int = 0
    available_memory_bytes: int = 0
    memory_usage_percent: float = 0.0

    disks: list[DiskStat] = Field(default_factory=list)
    network_interfaces: list[NetworkStat] = Field(default_factory=list)


class SystemInfo(BaseModel):
    os_family: str
    os_version: str
    hostname: str
    boot_time: datetime
    uptime_s: int
    uptime_hours: int
    process_count: int
    thread_count: int


class MetricsSampler:
    """Builds MetricsSnapshot objects from an OS-Query adapter."""

    def __init__(self, adapter: OSQueryAdapter, window: float = 1.0) -> None:
        self._adapter = adapter
        self._window = window

    async def sample(self) -> MetricsSnapshot:
        cpu_percent = await self._cpu_usage()
        cpu = self._probe("cpu info", self._adapter.cpu_info, CpuInfo(logical_cores=0))
        mem = self._probe("memory", self._adapter.memory_info, MemoryInfo(total=0, available=0))
        used = max(mem.total - mem.available, 0)

        return MetricsSnapshot(
            cpu_usage_percent=cpu_percent,
            cpu_cores=cpu.logical_cores,
            cpu_model=cpu.model,
            total_memory_bytes=mem.total,
            used_memory_bytes=used,
            available_memory_bytes=mem.available,
            memory_usage_percent=round2(used / mem.total * 100) if mem.total else 0.0,
            disks=self._disks(),
            network_interfaces=self._networks(),
        )

    async def _cpu_usage(self) -> float:
        try:
            prev = self._adapter.cpu_ticks()
            await asyncio.sleep(self._window)
            cur = self._adapter.cpu_ticks()
        except OSQueryError as e:
            _logger.warning("CPU tick probe failed: %s", e)
            return 0.0
        return round2(load_between(prev, cur) * 100)

    def _disks(self) -> list[DiskStat]:
        stores = self._probe("disks", self._adapter.disk_stores, [])
        return [
            DiskStat(
                name=d.name, model=d.model, size_bytes=d.size_bytes,
                reads=d.reads, writes=d.writes,
            )
            for d in stores
        ]

    def _networks(self) -> list[NetworkStat]:
        interfaces = self._probe("network", self._adapter.network_interfaces, [])
        return [
            NetworkStat(
                name=n.name,
                display_name=n.display_name or n.name,
                addresses=list(n.addresses),
                bytes_received=n.bytes_recv,
                bytes_sent=n.bytes_sent,
                speed_bps=n.speed_bps,
            )
            for n in interfaces
            if n.bytes_recv > 0 or n.bytes_sent > 0
        ]

    def _probe(self, label, fn, fallback):
        try:
            return fn()
        except OSQueryError as e:
            _logger.warning("Sub-probe %s failed: %s", label, e)
            return fallback

    def system_info(self) -> SystemInfo:
        """Host identity and counts. Raises OSQueryError on probe failure."""
        host = self._adapter.host_info()
        boot = datetime.fromtimestamp(host.boot_time, tz=timezone.utc)
        uptime = max(int((utcnow() - boot).total_seconds()), 0)
        return SystemInfo(
            os_family=host.os_family,
            os_version=host.os_version,
            hostname=host.hostname,
            boot_time=boot,
            uptime_s=uptime,
            uptime_hours=uptime // 3600,
            process_count=host.process_count,
            thread_count=host.thread_count,
        )
