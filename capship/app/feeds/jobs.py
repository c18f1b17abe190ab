"""
Feed aggregation job.

Regenerates the canonical feed from the alert directory and publishes it.
A run is all-or-nothing: if any alert cannot be read or parsed the run
fails and the previously published feed is left untouched.

The job is triggered after each upload and, when an interval is
configured, periodically from a background task:

    job = AggregationJob(store, identity, logger, interval_seconds=300)
    await job.start()
    ...
    await job.stop()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from capship.app.core.errors import CapshipError
from capship.app.feeds.generator import FeedIdentity, generate_feed
from capship.app.storage.store import DocumentKind, DocumentStore


class JobStatus(str, Enum):
    """Status of an aggregation run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AggregationRun:
    """Outcome of one aggregation run."""
    status: JobStatus = JobStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    entries: int = 0
    bytes_written: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "entries": self.entries,
            "bytes_written": self.bytes_written,
            "error": self.error,
        }


class AggregationJob:
    """Runs feed aggregation on demand and on a fixed interval."""

    def __init__(
        self,
        store: DocumentStore,
        identity: FeedIdentity,
        logger: logging.Logger,
        interval_seconds: int = 0,
    ):
        self.store = store
        self.identity = identity
        self.logger = logger
        self.interval_seconds = interval_seconds
        self.last_run = AggregationRun()
        self._task: Optional[asyncio.Task] = None

    def run_once(self) -> AggregationRun:
        """Generate and publish the feed; errors are recorded, not raised."""
        run = AggregationRun(status=JobStatus.RUNNING, started_at=datetime.now(timezone.utc))
        try:
            feed = generate_feed(
                self.store.directory(DocumentKind.ALERTS), self.identity, self.logger,
            )
            run.bytes_written = self.store.publish_feed(feed)
            run.entries = len(feed.entries)
            run.status = JobStatus.COMPLETED
        except CapshipError as exc:
            run.status = JobStatus.FAILED
            run.error = exc.message
            self.logger.error("Feed aggregation failed: %s | details=%s", exc.message, exc.details)
        run.completed_at = datetime.now(timezone.utc)
        self.last_run = run
        return run

    async def run_in_background(self) -> AggregationRun:
        return await asyncio.to_thread(self.run_once)

    async def start(self) -> None:
        """Start the periodic loop (no-op when the interval is 0)."""
        if self.interval_seconds <= 0 or self._task is not None:
            return
        self._task = asyncio.create_task(self._run_scheduler())
        self.logger.info("Feed aggregation scheduled every %ds", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self.logger.info("Feed aggregation stopped")

    async def _run_scheduler(self) -> None:
        while True:
            await self.run_in_background()
            await asyncio.sleep(self.interval_seconds)
