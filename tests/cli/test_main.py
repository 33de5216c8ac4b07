"""Tests for the hostwatch CLI."""

import sys

import pytest
from typer.testing import CliRunner

from hostwatch.cli.context import HostContext
from hostwatch.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _host(host):
    HostContext.set(host)
    yield host
    HostContext.set(None)


def test_ps():
    result = runner.invoke(app, ["ps", "-n", "2"])
    assert result.exit_code == 0
    assert "Python3" in result.output
    assert "nginx" not in result.output


def test_search():
    result = runner.invoke(app, ["search", "postgres"])
    assert result.exit_code == 0
    assert "200" in result.output
    assert "201" in result.output


def test_search_no_match():
    result = runner.invoke(app, ["search", "zzz"])
    assert result.exit_code == 0
    assert "No process matches" in result.output


def test_show():
    result = runner.invoke(app, ["show", "300"])
    assert result.exit_code == 0
    assert "nginx" in result.output


def test_show_missing():
    result = runner.invoke(app, ["show", "999999"])
    assert result.exit_code == 1


def test_kill_missing_is_audited(_host):
    result = runner.invoke(app, ["kill", "999999", "--actor", "carol"])
    assert result.exit_code == 1
    assert "process not found" in result.output
    assert _host.get_audit_log()[0].actor == "carol"


def test_kill(_host, fake_adapter):
    result = runner.invoke(app, ["kill", "300", "--actor", "dave"])
    assert result.exit_code == 0
    assert fake_adapter.killed == [300]


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX commands")
def test_run():
    result = runner.invoke(app, ["run", "--actor", "alice", "echo", "hello"])
    assert result.exit_code == 0
    assert "hello" in result.output


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX commands")
def test_run_propagates_exit_code():
    result = runner.invoke(app, ["run", "--", "sh", "-c", "exit 3"])
    assert result.exit_code == 3


def test_run_spawn_failure():
    result = runner.invoke(app, ["run", "no-such-binary-abc"])
    assert result.exit_code == 1
    assert "I/O error" in result.output


def test_metrics():
    result = runner.invoke(app, ["metrics"])
    assert result.exit_code == 0
    assert "75.00%" in result.output
    assert "eth0" in result.output


def test_alerts_with_override():
    result = runner.invoke(app, ["alerts", "--cpu", "50"])
    assert result.exit_code == 0
    assert "High CPU usage" in result.output


def test_alerts_none():
    result = runner.invoke(app, ["alerts"])
    assert result.exit_code == 0
    assert "No alerts" in result.output


def test_info():
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0
    assert "testhost" in result.output


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "hostwatch" in result.output


def test_ps_reports_probe_failure(fake_adapter):
    fake_adapter.fail.add("processes")
    result = runner.invoke(app, ["ps"])
    assert result.exit_code == 1
    assert "Process listing failed" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)


def test_search_reports_probe_failure(fake_adapter):
    fake_adapter.fail.add("processes")
    result = runner.invoke(app, ["search", "nginx"])
    assert result.exit_code == 1
    assert "Process search failed" in result.output


def test_info_reports_probe_failure(fake_adapter):
    fake_adapter.fail.add("host")
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 1
    assert "System probe failed" in result.output
