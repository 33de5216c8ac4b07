"""Metrics poller — keeps a fresh snapshot cached in the background.

``MetricsSampler.sample()`` takes about a second. The poller pays that cost
on its own schedule so request handlers can serve ``latest()`` instantly.
"""

from __future__ import annotations

import asyncio

import structlog

from hostwatch.alerts.evaluator import AlertEvaluator
from hostwatch.metrics.sampler import MetricsSampler, MetricsSnapshot

logger = structlog.get_logger()


class MetricsPoller:
    """Background task that refreshes a cached MetricsSnapshot."""

    def __init__(
        self,
        sampler: MetricsSampler,
        interval: float = 5.0,
        evaluator: AlertEvaluator | None = None,
    ) -> None:
        self._sampler = sampler
        self._interval = interval
        self._evaluator = evaluator
        self._latest: MetricsSnapshot | None = None
        self._running = False
        self._task: asyncio.Task | None = None
        self._refreshes = 0

    async def start(self) -> None:
        """Start the poll loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("metrics_poller_started", interval_s=self._interval)

    async def stop(self) -> None:
        """Stop the poller."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("metrics_poller_stopped", refreshes=self._refreshes)

    async def refresh(self) -> MetricsSnapshot:
        """Take one sample, cache it and evaluate alerts if configured."""
        snapshot = await self._sampler.sample()
        self._latest = snapshot
        self._refreshes += 1
        if self._evaluator is not None:
            alerts = self._evaluator.evaluate(snapshot)
            for alert in alerts:
                logger.warning(
                    "threshold_exceeded",
                    kind=alert.kind.value,
                    value=alert.value,
                    message=alert.message,
                )
        return snapshot

    def latest(self) -> MetricsSnapshot | None:
        """Most recent cached snapshot; None before the first refresh."""
        return self._latest

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def refresh_count(self) -> int:
        return self._refreshes

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.refresh()
            except Exception as e:
                logger.error("metrics_poll_failed", error=str(e))

            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
