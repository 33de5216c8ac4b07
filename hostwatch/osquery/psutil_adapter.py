"""psutil-backed OS-Query adapter."""

from __future__ import annotations

import platform
import socket
import time
from pathlib import Path

import psutil

from hostwatch.exceptions import OSQueryError
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
from hostwatch.osquery.terminator import Terminator, select_terminator
from hostwatch.types import ProcessState

_PROC_ATTRS = [
    "pid", "name", "exe", "cmdline", "username", "status",
    "cpu_times", "memory_info", "num_threads", "create_time",
]

_STATE_MAP = {
    psutil.STATUS_RUNNING: ProcessState.RUNNING,
    psutil.STATUS_SLEEPING: ProcessState.SLEEPING,
    psutil.STATUS_DISK_SLEEP: ProcessState.SLEEPING,
    psutil.STATUS_IDLE: ProcessState.SLEEPING,
    psutil.STATUS_WAITING: ProcessState.SLEEPING,
    psutil.STATUS_STOPPED: ProcessState.STOPPED,
    psutil.STATUS_TRACING_STOP: ProcessState.STOPPED,
    psutil.STATUS_ZOMBIE: ProcessState.ZOMBIE,
}

_SYS_BLOCK = Path("/sys/block")


def map_status(status: str | None) -> ProcessState:
    return _STATE_MAP.get(status, ProcessState.UNKNOWN)


def cumulative_load(busy_s: float, age_s: float, cores: int) -> float:
    """CPU seconds used over wall-clock age, spread across cores, 0..1."""
    if age_s <= 0:
        return 0.0
    return min(1.0, max(0.0, busy_s / age_s / max(cores, 1)))


class PsutilAdapter(OSQueryAdapter):
    """Reads the live host through psutil; kills through a Terminator."""

    def __init__(self, terminator: Terminator | None = None) -> None:
        self._terminator = terminator or select_terminator()
        self._cores = psutil.cpu_count(logical=True) or 1

    @property
    def terminator(self) -> Terminator:
        return self._terminator

    # ── processes ─────────────────────────────

    def process_list(self) -> list[RawProcess]:
        now = time.time()
        rows: list[RawProcess] = []
        try:
            for p in psutil.process_iter(_PROC_ATTRS, ad_value=None):
                rows.append(self._to_raw(p.info, now))
        except psutil.Error as e:
            raise OSQueryError(f"process listing failed: {e}") from e
        return rows

    def process_by_pid(self, pid: int) -> RawProcess | None:
        if pid < 0:
            return None
        try:
            p = psutil.Process(pid)
            info = p.as_dict(attrs=_PROC_ATTRS, ad_value=None)
        except (psutil.NoSuchProcess, psutil.ZombieProcess):
            return None
        except psutil.Error as e:
            raise OSQueryError(f"lookup of pid {pid} failed: {e}") from e
        return self._to_raw(info, time.time())

    def kill_by_pid(self, pid: int) -> None:
        self._terminator.kill(pid)

    def _to_raw(self, info: dict, now: float) -> RawProcess:
        cpu_times = info.get("cpu_times")
        mem = info.get("memory_info")
        created = float(info.get("create_time") or 0.0)
        age = now - created if created else 0.0
        busy = (cpu_times.user + cpu_times.system) if cpu_times else 0.0
        return RawProcess(
            pid=int(info["pid"]),
            name=info.get("name") or "",
            exe=info.get("exe") or "",
            cmdline=" ".join(info.get("cmdline") or []),
            username=info.get("username") or "",
            state=map_status(info.get("status")),
            cpu_load=cumulative_load(busy, age, self._cores),
            rss_bytes=int(mem.rss) if mem else 0,
            vms_bytes=int(mem.vms) if mem else 0,
            num_threads=int(info.get("num_threads") or 0),
            create_time=created,
            uptime_s=max(0.0, age),
        )

    # ── cpu / memory ──────────────────────────

    def cpu_ticks(self) -> CpuTicks:
        try:
            t = psutil.cpu_times()
        except (psutil.Error, OSError) as e:
            raise OSQueryError(f"cpu_times failed: {e}") from e
        return CpuTicks(
            user=t.user,
            nice=getattr(t, "nice", 0.0),
            system=t.system,
            idle=t.idle,
            iowait=getattr(t, "iowait", 0.0),
            irq=getattr(t, "irq", 0.0) or getattr(t, "interrupt", 0.0),
            softirq=getattr(t, "softirq", 0.0),
            steal=getattr(t, "steal", 0.0),
        )

    def cpu_info(self) -> CpuInfo:
        return CpuInfo(logical_cores=self._cores, model=_cpu_model())

    def memory_info(self) -> MemoryInfo:
        try:
            vm = psutil.virtual_memory()
        except (psutil.Error, OSError) as e:
            raise OSQueryError(f"virtual_memory failed: {e}") from e
        return MemoryInfo(total=int(vm.total), available=int(vm.available))

    # ── disks / network ───────────────────────

    def disk_stores(self) -> list[DiskStore]:
        try:
            counters = psutil.disk_io_counters(perdisk=True) or {}
        except (psutil.Error, OSError, RuntimeError) as e:
            raise OSQueryError(f"disk_io_counters failed: {e}") from e
        return [
            DiskStore(
                name=name,
                model=_block_model(name),
                size_bytes=_block_size(name),
                reads=int(c.read_count),
                writes=int(c.write_count),
            )
            for name, c in counters.items()
        ]

    def network_interfaces(self) -> list[NetInterface]:
        try:
            counters = psutil.net_io_counters(pernic=True) or {}
            addrs = psutil.net_if_addrs()
            stats = psutil.net_if_stats()
        except (psutil.Error, OSError) as e:
            raise OSQueryError(f"network probe failed: {e}") from e

        result = []
        for name, c in counters.items():
            st = stats.get(name)
            result.append(NetInterface(
                name=name,
                display_name=name,
                addresses=[
                    a.address for a in addrs.get(name, [])
                    if a.family in (socket.AF_INET, socket.AF_INET6)
                ],
                bytes_recv=int(c.bytes_recv),
                bytes_sent=int(c.bytes_sent),
                speed_bps=int(st.speed) * 1_000_000 if st and st.speed else 0,
            ))
        return result

    # ── host ──────────────────────────────────

    def host_info(self) -> HostInfo:
        threads = 0
        count = 0
        try:
            for p in psutil.process_iter(["num_threads"], ad_value=0):
                count += 1
                threads += p.info.get("num_threads") or 0
            boot = psutil.boot_time()
        except (psutil.Error, OSError) as e:
            raise OSQueryError(f"host probe failed: {e}") from e
        return HostInfo(
            os_family=platform.system(),
            os_version=platform.release(),
            hostname=socket.gethostname(),
            boot_time=boot,
            process_count=count,
            thread_count=threads,
        )


def _cpu_model() -> str:
    try:
        with open("/proc/cpuinfo") as f:
            for line in f:
                if line.startswith("model name"):
                    return line.split(":", 1)[1].strip()
    except OSError:
        pass
    return platform.processor() or platform.machine()


def _block_size(name: str) -> int:
    try:
        # /sys/block/<dev>/size is in 512-byte sectors
        return int((_SYS_BLOCK / name / "size").read_text().strip()) * 512
    except (OSError, ValueError):
        return 0


def _block_model(name: str) -> str:
    try:
        return (_SYS_BLOCK / name / "device" / "model").read_text().strip()
    except OSError:
        return ""
