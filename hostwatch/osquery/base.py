"""OS-Query boundary — raw process and hardware data, as plain records.

Everything above this layer (registry, executor, sampler) talks to an
``OSQueryAdapter``. The production implementation is psutil-based; tests
substitute an in-memory fake.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from hostwatch.types import ProcessState


@dataclass(frozen=True)
class RawProcess:
    pid: int
    name: str
    exe: str = ""
    cmdline: str = ""
    username: str = ""
    state: ProcessState = ProcessState.UNKNOWN
    cpu_load: float = 0.0        # cumulative, 0..1
    rss_bytes: int = 0
    vms_bytes: int = 0
    num_threads: int = 0
    create_time: float = 0.0     # epoch seconds
    uptime_s: float = 0.0


@dataclass(frozen=True)
class CpuTicks:
    """Cumulative system-wide CPU time counters (seconds or ticks)."""

    user: float = 0.0
    nice: float = 0.0
    system: float = 0.0
    idle: float = 0.0
    iowait: float = 0.0
    irq: float = 0.0
    softirq: float = 0.0
    steal: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.user + self.nice + self.system + self.idle
            + self.iowait + self.irq + self.softirq + self.steal
        )

    @property
    def idle_total(self) -> float:
        return self.idle + self.iowait


def load_between(prev: CpuTicks, cur: CpuTicks) -> float:
    """Fraction of non-idle time between two tick observations, 0..1."""
    total = cur.total - prev.total
    if total <= 0:
        return 0.0
    idle = cur.idle_total - prev.idle_total
    return min(1.0, max(0.0, (total - idle) / total))


@dataclass(frozen=True)
class CpuInfo:
    logical_cores: int
    model: str = ""


@dataclass(frozen=True)
class MemoryInfo:
    total: int
    available: int


@dataclass(frozen=True)
class DiskStore:
    name: str
    model: str = ""
    size_bytes: int = 0
    reads: int = 0
    writes: int = 0


@dataclass(frozen=True)
class NetInterface:
    name: str
    display_name: str = ""
    addresses: list[str] = field(default_factory=list)
    bytes_recv: int = 0
    bytes_sent: int = 0
    speed_bps: int = 0


@dataclass(frozen=True)
class HostInfo:
    os_family: str
    os_version: str
    hostname: str
    boot_time: float
    process_count: int
    thread_count: int


class OSQueryAdapter(ABC):
    """Abstract provider of process-table and hardware counters.

    Probe failures are raised as ``OSQueryError``. ``process_by_pid``
    returns ``None`` for an absent pid instead of raising.
    """

    @abstractmethod
    def process_list(self) -> list[RawProcess]:
        """Every process currently visible to this user."""

    @abstractmethod
    def process_by_pid(self, pid: int) -> RawProcess | None:
        """One process, or None when it does not exist."""

    @abstractmethod
    def kill_by_pid(self, pid: int) -> None:
        """Forcefully terminate a process.

        Raises ProcessNotFoundError, KillRefusedError or OSQueryError.
        """

    @abstractmethod
    def cpu_ticks(self) -> CpuTicks: ...

    @abstractmethod
    def cpu_info(self) -> CpuInfo: ...

    @abstractmethod
    def memory_info(self) -> MemoryInfo: ...

    @abstractmethod
    def disk_stores(self) -> list[DiskStore]: ...

    @abstractmethod
    def network_interfaces(self) -> list[NetInterface]: ...

    @abstractmethod
    def host_info(self) -> HostInfo: ...
