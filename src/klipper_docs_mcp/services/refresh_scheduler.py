"""Periodic git sync followed by a full re-parse and re-index."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import suppress
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Protocol

from cron_converter import Cron

from klipper_docs_mcp.observability.metrics import GIT_SYNC_COUNT
from klipper_docs_mcp.utils.git_sync import GitSyncResult


logger = logging.getLogger(__name__)

BASE_RETRY_DELAY_SECONDS = 60
MAX_RETRY_DELAY_SECONDS = 3600
# Upper bound on one sleep so stop() and clock changes are noticed promptly.
MAX_WAIT_SECONDS = 60.0


class Syncer(Protocol):
    async def sync(self) -> GitSyncResult: ...


OnSynced = Callable[[GitSyncResult], Awaitable[None]]


def retry_delay(consecutive_failures: int) -> int:
    """Seconds to wait after the n-th failure in a row: 60, 120, 240 ... capped at 3600."""
    return min(BASE_RETRY_DELAY_SECONDS * (2 ** max(consecutive_failures - 1, 0)), MAX_RETRY_DELAY_SECONDS)


class RefreshSchedulerService:
    """Run ``syncer.sync()`` then ``on_synced(result)`` on a cron schedule.

    After a failed run the next attempt is delayed exponentially, starting at
    one minute and capped at one hour, until a run succeeds again.
    """

    def __init__(
        self,
        syncer: Syncer,
        on_synced: OnSynced,
        refresh_schedule: str | None = None,
    ) -> None:
        self.syncer = syncer
        self.on_synced = on_synced
        self.refresh_schedule = refresh_schedule or None
        self._cron = Cron(self.refresh_schedule) if self.refresh_schedule else None

        self._running = False
        self._scheduler_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

        self._total_syncs = 0
        self._errors = 0
        self._consecutive_failures = 0
        self._last_sync_at: datetime | None = None
        self._next_sync_at: datetime | None = None
        self._last_result: dict[str, Any] | None = None

    @property
    def running(self) -> bool:
        return self._running and self._scheduler_task is not None and not self._scheduler_task.done()

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "refresh_schedule": self.refresh_schedule,
            "running": self.running,
            "total_syncs": self._total_syncs,
            "errors": self._errors,
            "consecutive_failures": self._consecutive_failures,
            "last_sync_at": _datetime_to_iso(self._last_sync_at),
            "next_sync_at": _datetime_to_iso(self._next_sync_at),
            "last_result": self._last_result,
        }

    def start(self) -> bool:
        """Start the cron loop; returns False when no schedule is configured."""

        if self._cron is None:
            logger.info("Periodic refresh disabled (no schedule configured)")
            return False
        if self._scheduler_task and not self._scheduler_task.done():
            return True

        self._stop_event.clear()
        self._running = True
        self._scheduler_task = asyncio.create_task(self._run_scheduler_loop())
        logger.info("Periodic refresh scheduled: %s", self.refresh_schedule)
        return True

    async def stop(self) -> None:
        self._stop_event.set()
        if self._scheduler_task is not None:
            self._scheduler_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._scheduler_task
        self._scheduler_task = None
        self._running = False

    def _next_run(self, start: datetime) -> datetime:
        assert self._cron is not None
        return self._cron.schedule(start_date=start).next()

    async def _wait_or_stop(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; True when stop() was requested meanwhile."""

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def _run_scheduler_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                # A pending retry runs as soon as its backoff has elapsed.
                if not self._consecutive_failures:
                    now = datetime.now(timezone.utc)
                    next_run = self._next_run(self._last_sync_at or now)
                    self._next_sync_at = next_run

                    remaining = (next_run - now).total_seconds()
                    if remaining > 0:
                        if await self._wait_or_stop(min(remaining, MAX_WAIT_SECONDS)):
                            break
                        if remaining > MAX_WAIT_SECONDS:
                            continue

                result = await self._execute_and_record()
                if not result["success"]:
                    delay = retry_delay(self._consecutive_failures)
                    self._next_sync_at = datetime.now(timezone.utc) + timedelta(seconds=delay)
                    logger.warning("Refresh failed, retrying in %ds", delay)
                    if await self._wait_or_stop(delay):
                        break
        finally:
            self._running = False

    async def _execute_and_record(self) -> dict[str, Any]:
        try:
            sync_result = await self.syncer.sync()
            await self.on_synced(sync_result)
        except Exception as exc:
            logger.error("Scheduled refresh failed: %s", exc, exc_info=True)
            GIT_SYNC_COUNT.labels(status="error").inc()
            self._errors += 1
            self._consecutive_failures += 1
            return {"success": False, "message": f"Refresh error: {exc}"}

        GIT_SYNC_COUNT.labels(status="success").inc()
        self._total_syncs += 1
        self._consecutive_failures = 0
        self._last_sync_at = datetime.now(timezone.utc)
        self._last_result = {
            "commit_id": sync_result.commit_id,
            "repo_updated": sync_result.repo_updated,
            "duration_seconds": round(sync_result.duration_seconds, 3),
        }
        if self._cron is not None:
            self._next_sync_at = self._next_run(self._last_sync_at)
        return {"success": True, "message": "Refresh complete", **self._last_result}


def _datetime_to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
