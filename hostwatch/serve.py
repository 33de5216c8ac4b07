"""hostwatch live server — dashboard + background metrics poller."""

from __future__ import annotations

import asyncio
import logging
import sys

import structlog
import uvicorn

from hostwatch.config import HostwatchSettings, settings
from hostwatch.dashboard.app import configure, dashboard_app
from hostwatch.host import HostControl
from hostwatch.osquery.psutil_adapter import PsutilAdapter

_logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(
        level=numeric,
        stream=sys.stdout,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        cache_logger_on_first_use=True,
    )


async def main(config: HostwatchSettings | None = None) -> None:
    cfg = config or settings
    setup_logging(cfg.log_level)

    adapter = PsutilAdapter()
    host = HostControl(adapter, cfg)
    configure(host)
    _logger.info(
        "hostwatch starting on %s:%d (terminator=%s)",
        cfg.dashboard_host, cfg.dashboard_port, adapter.terminator.name,
    )

    await host.poller.start()

    server = uvicorn.Server(uvicorn.Config(
        dashboard_app,
        host=cfg.dashboard_host,
        port=cfg.dashboard_port,
        log_level="warning",
    ))
    try:
        await server.serve()
    finally:
        await host.poller.stop()
        configure(None)


if __name__ == "__main__":
    asyncio.run(main())
