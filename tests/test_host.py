"""Tests for the HostControl facade."""

import sys

import pytest

from hostwatch.config import HostwatchSettings
from hostwatch.host import HostControl

posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX commands")


def test_wiring_follows_config(fake_adapter):
    cfg = HostwatchSettings(
        audit_capacity=10, alert_capacity=5, cpu_threshold=70,
        memory_threshold=60, disk_threshold=50, search_limit=3,
    )
    host = HostControl(fake_adapter, cfg)

    assert host.audit_log.capacity == 10
    t = host.get_thresholds()
    assert (t.cpu, t.memory, t.disk) == (70.0, 60.0, 50.0)
    assert host.executor.default_timeout == cfg.command_timeout_seconds


@posix_only
@pytest.mark.asyncio
async def test_execute_splits_string(host):
    result = await host.execute("echo  hello   world", actor="alice")
    assert result.argv == ["echo", "hello", "world"]
    assert "hello world" in result.output
    assert host.get_audit_log()[0].actor == "alice"


@posix_only
@pytest.mark.asyncio
async def test_execute_accepts_argv(host):
    result = await host.execute(["sh", "-c", "echo 'a  b'"], actor="alice")
    assert "a  b" in result.output


def test_list_processes_default_limit(host, fake_adapter):
    assert len(host.list_processes()) == 5
    assert len(host.list_processes(3)) == 3


def test_kill_then_audit(host):
    result = host.kill_process(999999, "carol")
    assert result.success is False
    log = host.get_audit_log()
    assert len(log) == 1
    host.clear_audit_log()
    assert host.get_audit_log() == []


def test_search_and_details(host):
    assert [p.pid for p in host.search_processes("nginx")] == [300]
    assert host.process_details(300).name == "nginx"
    assert host.process_details(12345) is None


@pytest.mark.asyncio
async def test_current_metrics_uses_cache(host):
    first = await host.current_metrics()
    second = await host.current_metrics()
    assert first is second
    assert host.poller.refresh_count == 1


@pytest.mark.asyncio
async def test_alert_history_roundtrip(host):
    host.set_thresholds(cpu=10)
    snap = await host.sample_metrics()
    raised = host.evaluate_alerts(snap)
    assert len(raised) == 1
    assert len(host.get_alert_history()) == 1
    host.clear_alert_history()
    assert host.get_alert_history() == []


@pytest.mark.asyncio
async def test_dashboard_payload(host):
    data = await host.dashboard(limit=2)
    assert set(data) == {"metrics", "top_processes", "alerts", "system_info"}
    assert len(data["top_processes"]) == 2
    assert data["system_info"]["hostname"] == "testhost"
    assert data["metrics"]["cpu_usage_percent"] == 75.0


@pytest.mark.asyncio
async def test_dashboard_survives_host_probe_failure(host, fake_adapter):
    fake_adapter.fail.add("host")
    data = await host.dashboard()
    assert data["system_info"] is None
    assert data["metrics"] is not None
