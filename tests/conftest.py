"""Shared test fixtures: an in-memory OS-Query adapter and a wired HostControl."""

from __future__ import annotations

import pytest

from hostwatch.audit.trail import AuditLog
from hostwatch.config import HostwatchSettings
from hostwatch.exceptions import OSQueryError, ProcessNotFoundError
from hostwatch.host import HostControl
from hostwatch.osquery.base import (
    CpuInfo,
    CpuTicks,
    DiskStore,
    HostInfo,
    MemoryInfo,
    NetInterface,
    OSQueryAdapter,
    RawProcess,
)
from hostwatch.types import ProcessState


def make_process(pid: int, name: str, cpu_load: float = 0.0, **kw) -> RawProcess:
    return RawProcess(
        pid=pid,
        name=name,
        exe=kw.pop("exe", f"/usr/bin/{name}"),
        cmdline=kw.pop("cmdline", name),
        username=kw.pop("username", "root"),
        state=kw.pop("state", ProcessState.SLEEPING),
        cpu_load=cpu_load,
        rss_bytes=kw.pop("rss_bytes", 10 * 1024 * 1024),
        vms_bytes=kw.pop("vms_bytes", 50 * 1024 * 1024),
        num_threads=kw.pop("num_threads", 1),
        create_time=kw.pop("create_time", 1_700_000_000.0),
        uptime_s=kw.pop("uptime_s", 120.0),
    )


class FakeAdapter(OSQueryAdapter):
    """In-memory adapter. Failures are injected per probe via ``fail``."""

    def __init__(self, processes: list[RawProcess] | None = None) -> None:
        self.processes: dict[int, RawProcess] = {p.pid: p for p in (processes or [])}
        self.ticks: list[CpuTicks] = [
            CpuTicks(user=100, system=50, idle=850),
            CpuTicks(user=150, system=75, idle=875),
        ]
        self.memory = MemoryInfo(total=8_000, available=2_000)
        self.disks = [DiskStore(name="sda", model="FakeDisk", size_bytes=500_000, reads=10, writes=20)]
        self.nics = [
            NetInterface(name="eth0", addresses=["10.0.0.2"], bytes_recv=1_000, bytes_sent=500, speed_bps=1_000_000_000),
            NetInterface(name="dummy0", bytes_recv=0, bytes_sent=0),
        ]
        self.fail: set[str] = set()
        self.kill_error: Exception | None = None
        self.killed: list[int] = []
        self._tick_index = 0

    def _check(self, probe: str) -> None:
        if probe in self.fail:
            raise OSQueryError(f"{probe} probe failed")

    def process_list(self) -> list[RawProcess]:
        self._check("processes")
        return list(self.processes.values())

    def process_by_pid(self, pid: int) -> RawProcess | None:
        self._check("processes")
        return self.processes.get(pid)

    def kill_by_pid(self, pid: int) -> None:
        if self.kill_error is not None:
            raise self.kill_error
        if pid not in self.processes:
            raise ProcessNotFoundError(f"pid {pid} does not exist")
        self.killed.append(pid)
        del self.processes[pid]

    def cpu_ticks(self) -> CpuTicks:
        self._check("cpu")
        # Alternate so every two-read sample sees the same delta
        ticks = self.ticks[self._tick_index % len(self.ticks)]
        self._tick_index += 1
        return ticks

    def cpu_info(self) -> CpuInfo:
        self._check("cpu_info")
        return CpuInfo(logical_cores=4, model="Fake CPU @ 3.0GHz")

    def memory_info(self) -> MemoryInfo:
        self._check("memory")
        return self.memory

    def disk_stores(self) -> list[DiskStore]:
        self._check("disks")
        return list(self.disks)

    def network_interfaces(self) -> list[NetInterface]:
        self._check("network")
        return list(self.nics)

    def host_info(self) -> HostInfo:
        self._check("host")
        return HostInfo(
            os_family="Linux",
            os_version="6.1.0-fake",
            hostname="testhost",
            boot_time=1_700_000_000.0,
            process_count=len(self.processes),
            thread_count=sum(p.num_threads for p in self.processes.values()),
        )


@pytest.fixture
def fake_adapter():
    return FakeAdapter([
        make_process(1, "init", cpu_load=0.01),
        make_process(200, "postgres", cpu_load=0.30),
        make_process(201, "postgres", cpu_load=0.05),
        make_process(300, "nginx", cpu_load=0.12),
        make_process(400, "Python3", cpu_load=0.50),
    ])


@pytest.fixture
def adapter_with():
    """Build a FakeAdapter from (pid, name) pairs."""
    def _build(*entries, **kw):
        return FakeAdapter([make_process(pid, name, **kw) for pid, name in entries])
    return _build


@pytest.fixture
def audit_log():
    return AuditLog(capacity=100)


@pytest.fixture
def test_settings():
    return HostwatchSettings(
        cpu_sample_window_seconds=0.01,
        poll_interval_seconds=0.05,
        command_timeout_seconds=5.0,
        drain_grace_seconds=1.0,
    )


@pytest.fixture
def host(fake_adapter, test_settings):
    return HostControl(fake_adapter, test_settings)
