"""
Background worker for AI queue items.
Polls the queue and runs the generation pipeline, one item per tick.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from draftdesk.errors import ClaimConflictError, PersistenceError, PipelineError
from draftdesk.jobs.database import AiQueueDatabase
from draftdesk.jobs.models import QueueStatus
from draftdesk.utils.logging import queue_logger as logger

if TYPE_CHECKING:
    from draftdesk.agents.pipeline import GenerationPipeline
    from draftdesk.agents.provider import OllamaCloudClient


@dataclass
class TickResult:
    """Outcome of one worker tick."""
    processed: bool
    item_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"processed": self.processed}
        if self.item_id is not None:
            data["item_id"] = self.item_id
        if self.status is not None:
            data["status"] = self.status
        if self.error is not None:
            data["error"] = self.error
        return data


class QueueWorker:
    """
    Background worker that processes AI queue items.

    A timer (APScheduler interval job) and manual triggers both call
    tick(). Ticks never overlap: a tick that starts while another is
    in flight returns immediately. Each tick claims at most one item.
    """

    def __init__(
        self,
        db: AiQueueDatabase,
        pipeline: "GenerationPipeline",
        provider: Optional["OllamaCloudClient"] = None,
        poll_interval_seconds: int = 10
    ):
        self.db = db
        self.pipeline = pipeline
        self.provider = provider
        self.poll_interval = poll_interval_seconds

        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_processing = False  # Prevent concurrent item processing
        self._current_item_id: Optional[str] = None
        self._inflight: Optional[asyncio.Future] = None

    async def tick(self) -> TickResult:
        """
        Claim and process the oldest pending item, if any.

        Shared by the timer and by manual triggers.
        """
        if self._is_processing:
            return TickResult(processed=False, error="A tick is already in progress")

        if self.provider is not None and not self.provider.is_configured:
            return TickResult(
                processed=False,
                error="Generation provider is not configured (missing OLLAMA_CLOUD_API_KEY)"
            )

        self._is_processing = True
        self._inflight = asyncio.ensure_future(self._claim_and_process())
        try:
            # Shielded so a cancelled caller (e.g. scheduler shutdown) does not
            # abandon an item mid-pipeline.
            return await asyncio.shield(self._inflight)
        finally:
            if self._inflight.done():
                self._inflight = None

    async def _claim_and_process(self) -> TickResult:
        try:
            item_id = await self.db.find_next_pending()
            if item_id is None:
                return TickResult(processed=False)

            item = await self._claim(item_id)
            self._current_item_id = item.id
            return await self._process_item(item)

        except ClaimConflictError as e:
            # Lost the race; the next tick picks up whatever is left.
            logger.debug(e.message, item_id=item_id)
            return TickResult(processed=False, item_id=item_id, error=e.message)

        except PersistenceError as e:
            logger.error(f"Queue store error during tick: {e.message}")
            return TickResult(processed=False, error=e.message)
        finally:
            self._is_processing = False
            self._current_item_id = None

    async def _claim(self, item_id: str):
        item = await self.db.try_claim(item_id)
        if item is None:
            raise ClaimConflictError(f"Item {item_id} was claimed by another worker")
        return item

    async def _process_item(self, item) -> TickResult:
        """Run the pipeline for a claimed item and record the outcome."""
        start_time = time.time()
        logger.info(
            "Processing AI queue item",
            item_id=item.id,
            request_type=item.request_type.value
        )

        try:
            output = await self.pipeline.run(item.input_payload, item.request_type)
        except PipelineError as e:
            error_msg = f"{type(e).__name__}: {e.message}"
            return await self._record_failure(item.id, error_msg, start_time)
        except Exception as e:
            # Worker must survive anything a bad request can trigger
            error_msg = f"Unexpected pipeline error: {type(e).__name__}: {e}"
            return await self._record_failure(item.id, error_msg, start_time)

        elapsed = round(time.time() - start_time, 2)
        try:
            recorded = await self.db.complete(item.id, output)
        except PersistenceError as e:
            logger.error(
                f"Could not record completion: {e.message}",
                item_id=item.id,
                elapsed=elapsed
            )
            return TickResult(processed=True, item_id=item.id, status=QueueStatus.PROCESSING.value,
                              error=e.message)

        if not recorded:
            return await self._not_recorded(item.id, "completion")

        logger.info("AI queue item completed", item_id=item.id, elapsed=elapsed)
        return TickResult(processed=True, item_id=item.id, status=QueueStatus.COMPLETED.value)

    async def _record_failure(self, item_id: str, error_msg: str, start_time: float) -> TickResult:
        elapsed = round(time.time() - start_time, 2)
        logger.warning("AI queue item failed", item_id=item_id, error=error_msg, elapsed=elapsed)

        try:
            recorded = await self.db.fail(item_id, error_msg)
        except PersistenceError as e:
            logger.error(f"Could not record failure: {e.message}", item_id=item_id)
            return TickResult(processed=True, item_id=item_id, status=QueueStatus.PROCESSING.value,
                              error=e.message)

        if not recorded:
            return await self._not_recorded(item_id, "failure")

        return TickResult(processed=True, item_id=item_id, status=QueueStatus.FAILED.value,
                          error=error_msg)

    async def _not_recorded(self, item_id: str, outcome: str) -> TickResult:
        """The item left processing before its outcome was written; report what the store holds."""
        error_msg = f"Item left processing state before its {outcome} was recorded"
        logger.error(error_msg, item_id=item_id)

        try:
            current = await self.db.get(item_id)
        except PersistenceError as e:
            logger.error(f"Could not read back item status: {e.message}", item_id=item_id)
            current = None
        status = current.status.value if current is not None else None
        return TickResult(processed=True, item_id=item_id, status=status, error=error_msg)

    async def _scheduled_tick(self):
        """Timer entry point."""
        await self.tick()

    def start(self):
        """Start the background worker. A second call is a no-op."""
        if self.is_running:
            logger.warning("AI queue worker is already running")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._scheduled_tick,
            trigger=IntervalTrigger(seconds=self.poll_interval),
            id="ai_queue_worker",
            name="Process AI queue items",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
            coalesce=True,
            next_run_time=datetime.now(timezone.utc)  # Initial poll immediately
        )
        self.scheduler.start()
        logger.info("AI queue worker started", poll_interval=self.poll_interval)

    async def shutdown(self):
        """Stop the timer and wait for an in-flight tick to finish."""
        if self.scheduler is not None:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
            self.scheduler = None

        inflight = self._inflight
        if inflight is not None and not inflight.done():
            logger.info("Waiting for in-flight item before shutdown", item_id=self._current_item_id)
            await asyncio.wait([inflight])
        logger.info("AI queue worker stopped")

    @property
    def is_running(self) -> bool:
        """Check if the timer is active"""
        return self.scheduler is not None and self.scheduler.running

    @property
    def is_processing(self) -> bool:
        """Check if worker is currently processing an item"""
        return self._is_processing

    @property
    def current_item(self) -> Optional[str]:
        """Get the ID of the item being processed"""
        return self._current_item_id
