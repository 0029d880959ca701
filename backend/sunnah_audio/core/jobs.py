# sunnah_audio/core/jobs.py
"""
Background job that expires subscriptions past their end date.

An AsyncIOScheduler fires the sweep on a fixed interval. One sweep runs at a
time: a tick that comes due while the previous sweep is still running is
dropped (max_instances=1, coalesce=True). The sweep itself is shielded from
cancellation, and `stop()` waits for an in-flight sweep before returning.
"""
import asyncio
import datetime as dt
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from sunnah_audio.services.subscriptions import sweep_expired

logger = logging.getLogger("uvicorn.error")

JOB_ID = "subscription-expiry-sweep"


class SubscriptionExpirySweeper:
    def __init__(self, interval_seconds: int = 3600):
        self.interval_seconds = interval_seconds
        self._scheduler: AsyncIOScheduler | None = None
        self._inflight: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            return
        self._scheduler = AsyncIOScheduler(timezone=dt.timezone.utc)
        self._scheduler.add_job(
            self._tick,
            IntervalTrigger(seconds=self.interval_seconds, timezone=dt.timezone.utc),
            id=JOB_ID,
            name=JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            next_run_time=dt.datetime.now(dt.timezone.utc),  # sweep once at boot
        )
        self._scheduler.start()
        logger.info("Subscription expiry sweeper started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        if self._inflight is not None and not self._inflight.done():
            await asyncio.wait({self._inflight})
        logger.info("Subscription expiry sweeper stopped")

    async def _tick(self) -> None:
        self._inflight = asyncio.ensure_future(self.run_once())
        await asyncio.shield(self._inflight)

    async def run_once(self) -> int:
        try:
            expired = await sweep_expired()
        except Exception:
            logger.exception("Failed to check expired subscriptions")
            return 0
        if expired:
            logger.info("Expired %d subscription(s)", expired)
        return expired
