"""Tests for the psutil adapter against the live host."""

import os

import psutil

from hostwatch.osquery.base import CpuTicks, load_between
from hostwatch.osquery.psutil_adapter import PsutilAdapter, cumulative_load, map_status
from hostwatch.osquery.terminator import Terminator
from hostwatch.types import ProcessState


class RecordingTerminator(Terminator):
    name = "recording"

    def __init__(self):
        self.calls = []

    def kill(self, pid):
        self.calls.append(pid)


def test_map_status():
    assert map_status(psutil.STATUS_RUNNING) == ProcessState.RUNNING
    assert map_status(psutil.STATUS_SLEEPING) == ProcessState.SLEEPING
    assert map_status(psutil.STATUS_ZOMBIE) == ProcessState.ZOMBIE
    assert map_status(psutil.STATUS_STOPPED) == ProcessState.STOPPED
    assert map_status("weird") == ProcessState.UNKNOWN
    assert map_status(None) == ProcessState.UNKNOWN


def test_cumulative_load():
    assert cumulative_load(10, 100, 1) == 0.1
    assert cumulative_load(10, 100, 2) == 0.05
    assert cumulative_load(500, 100, 1) == 1.0
    assert cumulative_load(10, 0, 4) == 0.0
    assert cumulative_load(10, 100, 0) == 0.1


def test_load_between():
    prev = CpuTicks(user=100, system=50, idle=850)
    cur = CpuTicks(user=150, system=75, idle=875)
    assert load_between(prev, cur) == 0.75
    assert load_between(cur, cur) == 0.0
    # iowait counts as idle
    assert load_between(CpuTicks(), CpuTicks(idle=50, iowait=50)) == 0.0


def test_own_process_visible():
    adapter = PsutilAdapter(RecordingTerminator())
    me = adapter.process_by_pid(os.getpid())

    assert me is not None
    assert me.pid == os.getpid()
    assert me.name
    assert 0.0 <= me.cpu_load <= 1.0
    assert me.rss_bytes > 0
    assert any(p.pid == os.getpid() for p in adapter.process_list())


def test_absent_pid_is_none():
    adapter = PsutilAdapter(RecordingTerminator())
    assert adapter.process_by_pid(99_999_999) is None
    assert adapter.process_by_pid(-5) is None


def test_kill_delegates_to_terminator():
    term = RecordingTerminator()
    adapter = PsutilAdapter(term)
    adapter.kill_by_pid(4321)
    assert term.calls == [4321]
    assert adapter.terminator is term


def test_counters():
    adapter = PsutilAdapter(RecordingTerminator())
    assert adapter.cpu_ticks().total > 0
    assert adapter.cpu_info().logical_cores >= 1
    mem = adapter.memory_info()
    assert mem.total > 0
    assert 0 <= mem.available <= mem.total
    assert isinstance(adapter.network_interfaces(), list)
    assert isinstance(adapter.disk_stores(), list)


def test_host_info():
    info = PsutilAdapter(RecordingTerminator()).host_info()
    assert info.hostname
    assert info.process_count >= 1
    assert info.thread_count >= 1
    assert info.boot_time > 0
