"""CLI runtime context — bridges sync CLI commands to the async core."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

from hostwatch.host import HostControl


class HostContext:
    """Singleton holder for the HostControl used by CLI commands."""

    _instance: HostControl | None = None

    @classmethod
    def get(cls) -> HostControl:
        if cls._instance is None:
            cls._instance = HostControl.default()
        return cls._instance

    @classmethod
    def set(cls, host: HostControl | None) -> None:
        cls._instance = host


def run_async(coro: Coroutine) -> Any:
    """Run an async coroutine from sync CLI code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # Already inside an event loop (e.g. embedded use); run on a worker
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    else:
        return asyncio.run(coro)
