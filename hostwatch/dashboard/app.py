"""Dashboard — FastAPI REST surface over HostControl.

`hostwatch serve` launches this server at localhost:8430.
Access control is expected in front of this app; it records the
``user`` it is given and checks nothing.
"""

from __future__ import annotations

import time

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from hostwatch import __version__
from hostwatch.exceptions import OSQueryError
from hostwatch.host import HostControl

dashboard_app = FastAPI(title="hostwatch", version=__version__)

_host: HostControl | None = None
_start_time = time.time()


def configure(host: HostControl | None = None) -> None:
    global _host
    _host = host


def _require() -> HostControl:
    if _host is None:
        raise HTTPException(status_code=503, detail="hostwatch not initialized")
    return _host


@dashboard_app.exception_handler(OSQueryError)
async def _os_query_failed(request: Request, exc: OSQueryError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": f"OS query failed: {exc}"})


class ExecutePayload(BaseModel):
    command: str = ""
    user: str = "anonymous"
    timeout: float | None = None


class ThresholdsPayload(BaseModel):
    cpu: float | None = None
    memory: float | None = None
    disk: float | None = None


# ── Processes ────────────────────────────────────────────────────

@dashboard_app.post("/api/processes/execute")
async def execute_command(payload: ExecutePayload) -> dict:
    host = _require()
    if not payload.command.strip():
        raise HTTPException(status_code=400, detail="command must not be empty")
    result = await host.execute(payload.command, payload.user, timeout=payload.timeout)
    return result.model_dump(mode="json")


@dashboard_app.get("/api/processes/search")
async def search_processes(query: str) -> list[dict]:
    return [p.model_dump(mode="json") for p in _require().search_processes(query)]


@dashboard_app.get("/api/processes/logs")
async def command_log(limit: int = 50) -> list[dict]:
    return [e.model_dump(mode="json") for e in _require().get_audit_log(limit)]


@dashboard_app.delete("/api/processes/logs")
async def clear_command_log() -> dict:
    _require().clear_audit_log()
    return {"message": "command log cleared"}


@dashboard_app.get("/api/processes/{pid}")
async def process_details(pid: int) -> dict:
    proc = _require().process_details(pid)
    if proc is None:
        raise HTTPException(status_code=404, detail="process not found")
    return proc.model_dump(mode="json")


@dashboard_app.delete("/api/processes/{pid}")
async def kill_process(pid: int, user: str = "anonymous") -> dict:
    return _require().kill_process(pid, user).model_dump(mode="json")


# ── Monitor ──────────────────────────────────────────────────────

@dashboard_app.get("/api/monitor/metrics")
async def metrics() -> dict:
    snapshot = await _require().current_metrics()
    return snapshot.model_dump(mode="json")


@dashboard_app.get("/api/monitor/processes")
async def top_processes(limit: int = 100) -> list[dict]:
    return [p.model_dump(mode="json") for p in _require().list_processes(limit)]


@dashboard_app.get("/api/monitor/info")
async def system_info() -> dict:
    return _require().system_info().model_dump(mode="json")


@dashboard_app.get("/api/monitor/alerts")
async def check_alerts() -> list[dict]:
    host = _require()
    snapshot = await host.current_metrics()
    return [a.model_dump(mode="json") for a in host.evaluate_alerts(snapshot)]


@dashboard_app.get("/api/monitor/alerts/history")
async def alert_history() -> list[dict]:
    return [a.model_dump(mode="json") for a in _require().get_alert_history()]


@dashboard_app.delete("/api/monitor/alerts/history")
async def clear_alert_history() -> dict:
    _require().clear_alert_history()
    return {"message": "alert history cleared"}


@dashboard_app.get("/api/monitor/alerts/thresholds")
async def get_thresholds() -> dict:
    return _require().get_thresholds().model_dump()


@dashboard_app.put("/api/monitor/alerts/thresholds")
async def update_thresholds(payload: ThresholdsPayload) -> dict:
    updated = _require().set_thresholds(
        cpu=payload.cpu, memory=payload.memory, disk=payload.disk,
    )
    return {"message": "thresholds updated", "thresholds": updated.model_dump()}


@dashboard_app.get("/api/monitor/dashboard")
async def dashboard(limit: int = 100) -> dict:
    return await _require().dashboard(limit)


@dashboard_app.get("/api/status")
async def service_status() -> dict:
    host = _require()
    return {
        "version": __version__,
        "audit_entries": host.audit_log.count(),
        "alert_history": host.evaluator.history_count(),
        "poller_running": host.poller.is_running,
        "poller_refreshes": host.poller.refresh_count,
        "uptime_s": int(time.time() - _start_time),
    }
