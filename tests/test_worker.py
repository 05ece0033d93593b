"""Tests for the queue worker."""

import asyncio
from datetime import datetime

from draftdesk.errors import EmptyOutputError, ProviderError, UnsupportedInputError
from draftdesk.jobs.models import QueueItem, QueueStatus, RequestType, utc_now
from draftdesk.jobs.worker import QueueWorker

from helpers import StubPipeline, make_client


async def _enqueue(db, item_id, created_at=None):
    await db.insert(QueueItem(
        id=item_id,
        request_type=RequestType.GENERATE_POST,
        status=QueueStatus.PENDING,
        input_payload={"category": "news", "instructions": "write"},
        created_at=created_at or utc_now(),
    ))


def test_tick_on_empty_queue_does_nothing(with_db):
    async def scenario(db):
        before = await db.counts_by_status()
        result = await QueueWorker(db, StubPipeline()).tick()
        return before, result, await db.counts_by_status()

    before, result, after = with_db(scenario)
    assert result.processed is False
    assert result.item_id is None
    assert result.error is None
    assert before == after


def test_tick_completes_item_with_pipeline_output(with_db):
    pipeline = StubPipeline(output={"title": "T", "content": "C"})

    async def scenario(db):
        await _enqueue(db, "aiq_a")
        result = await QueueWorker(db, pipeline).tick()
        return result, await db.get("aiq_a")

    result, item = with_db(scenario)
    assert result.processed is True
    assert result.item_id == "aiq_a"
    assert result.status == "completed"
    assert item.status is QueueStatus.COMPLETED
    assert item.output_payload == {"title": "T", "content": "C"}
    assert item.error_message is None
    assert item.started_at is not None and item.completed_at is not None
    assert datetime.fromisoformat(item.completed_at) >= datetime.fromisoformat(item.started_at)
    assert pipeline.calls[0][1] is RequestType.GENERATE_POST


def test_tick_records_pipeline_error_as_failure(with_db):
    pipeline = StubPipeline(error=ProviderError("Rate limit exceeded", code="RATE_LIMITED"))

    async def scenario(db):
        await _enqueue(db, "aiq_a")
        result = await QueueWorker(db, pipeline).tick()
        return result, await db.get("aiq_a")

    result, item = with_db(scenario)
    assert result.processed is True
    assert result.status == "failed"
    assert item.status is QueueStatus.FAILED
    assert item.error_message == "ProviderError: Rate limit exceeded"
    assert item.output_payload is None


def test_tick_survives_unexpected_exception(with_db):
    pipeline = StubPipeline(error=KeyError("title"))

    async def scenario(db):
        await _enqueue(db, "aiq_a")
        worker = QueueWorker(db, pipeline)
        result = await worker.tick()
        return result, await db.get("aiq_a"), worker.is_processing

    result, item, still_processing = with_db(scenario)
    assert result.status == "failed"
    assert item.status is QueueStatus.FAILED
    assert "KeyError" in item.error_message
    assert still_processing is False


def test_tick_processes_one_item_oldest_first(with_db):
    async def scenario(db):
        await _enqueue(db, "aiq_new", created_at="2026-01-02T00:00:00+00:00")
        await _enqueue(db, "aiq_old", created_at="2026-01-01T00:00:00+00:00")
        result = await QueueWorker(db, StubPipeline()).tick()
        return result, await db.counts_by_status()

    result, counts = with_db(scenario)
    assert result.item_id == "aiq_old"
    assert counts["completed"] == 1
    assert counts["pending"] == 1


def test_overlapping_tick_returns_immediately(with_db):
    pipeline = StubPipeline(delay=0.2)

    async def scenario(db):
        await _enqueue(db, "aiq_a")
        await _enqueue(db, "aiq_b")
        worker = QueueWorker(db, pipeline)

        first = asyncio.ensure_future(worker.tick())
        await asyncio.sleep(0.05)
        assert worker.is_processing is True
        assert worker.current_item == "aiq_a"

        second = await worker.tick()
        return await first, second, await db.counts_by_status()

    first, second, counts = with_db(scenario)
    assert first.processed is True
    assert second.processed is False
    assert second.error == "A tick is already in progress"
    assert len(pipeline.calls) == 1
    assert counts["completed"] == 1
    assert counts["pending"] == 1


def test_tick_skipped_when_provider_unconfigured(with_db):
    pipeline = StubPipeline()
    provider = make_client(lambda request: None, api_key=None)

    async def scenario(db):
        await _enqueue(db, "aiq_a")
        result = await QueueWorker(db, pipeline, provider=provider).tick()
        return result, await db.get("aiq_a")

    result, item = with_db(scenario)
    assert result.processed is False
    assert "OLLAMA_CLOUD_API_KEY" in result.error
    assert item.status is QueueStatus.PENDING
    assert pipeline.calls == []


def test_failed_item_is_not_picked_up_again(with_db):
    pipeline = StubPipeline(error=EmptyOutputError("Provider returned an empty response"))

    async def scenario(db):
        await _enqueue(db, "aiq_a")
        worker = QueueWorker(db, pipeline)
        first = await worker.tick()
        second = await worker.tick()
        return first, second

    first, second = with_db(scenario)
    assert first.status == "failed"
    assert second.processed is False
    assert len(pipeline.calls) == 1


def test_unsupported_input_error_message_names_type(with_db):
    pipeline = StubPipeline(error=UnsupportedInputError("Unsupported document type: application/zip"))

    async def scenario(db):
        await _enqueue(db, "aiq_a")
        await QueueWorker(db, pipeline).tick()
        return await db.get("aiq_a")

    item = with_db(scenario)
    assert item.error_message == "UnsupportedInputError: Unsupported document type: application/zip"


def test_start_is_idempotent_and_shutdown_stops(with_db):
    async def scenario(db):
        worker = QueueWorker(db, StubPipeline(), poll_interval_seconds=60)
        worker.start()
        scheduler = worker.scheduler
        worker.start()
        same_scheduler = worker.scheduler is scheduler
        jobs = len(scheduler.get_jobs())
        running = worker.is_running
        await worker.shutdown()
        return same_scheduler, jobs, running, worker.is_running

    same_scheduler, jobs, running, after = with_db(scenario)
    assert same_scheduler is True
    assert jobs == 1
    assert running is True
    assert after is False


def test_started_worker_polls_immediately(with_db):
    async def scenario(db):
        await _enqueue(db, "aiq_a")
        worker = QueueWorker(db, StubPipeline(), poll_interval_seconds=60)
        worker.start()
        try:
            for _ in range(50):
                item = await db.get("aiq_a")
                if item.status is QueueStatus.COMPLETED:
                    break
                await asyncio.sleep(0.05)
        finally:
            await worker.shutdown()
        return await db.get("aiq_a")

    assert with_db(scenario).status is QueueStatus.COMPLETED


def test_shutdown_waits_for_inflight_item(with_db):
    pipeline = StubPipeline(delay=0.2)

    async def scenario(db):
        await _enqueue(db, "aiq_a")
        worker = QueueWorker(db, pipeline)
        task = asyncio.ensure_future(worker.tick())
        await asyncio.sleep(0.05)
        await worker.shutdown()
        item = await db.get("aiq_a")
        await task
        return item

    assert with_db(scenario).status is QueueStatus.COMPLETED


def test_shutdown_without_start_is_safe(with_db):
    async def scenario(db):
        worker = QueueWorker(db, StubPipeline())
        await worker.shutdown()
        return worker.is_running

    assert with_db(scenario) is False


def test_lost_claim_reports_conflict_without_running_pipeline(with_db):
    pipeline = StubPipeline()

    async def scenario(db):
        await _enqueue(db, "aiq_a")

        # Another worker claims the item between lookup and claim
        original_claim = db.try_claim

        async def racing_claim(item_id):
            await original_claim(item_id)
            return await original_claim(item_id)

        db.try_claim = racing_claim
        result = await QueueWorker(db, pipeline).tick()
        db.try_claim = original_claim
        return result

    result = with_db(scenario)
    assert result.processed is False
    assert result.item_id == "aiq_a"
    assert "claimed by another worker" in result.error
    assert pipeline.calls == []


def test_completion_not_recorded_reports_actual_status(with_db):
    async def scenario(db):
        await _enqueue(db, "aiq_a")

        class FailingMidway(StubPipeline):
            async def run(self, input_payload, request_type):
                # The item is moved to a terminal state while the pipeline runs
                await db.fail("aiq_a", "cancelled elsewhere")
                return await super().run(input_payload, request_type)

        result = await QueueWorker(db, FailingMidway()).tick()
        return result, await db.get("aiq_a")

    result, item = with_db(scenario)
    assert result.processed is True
    assert result.status == "failed"
    assert "before its completion was recorded" in result.error
    assert item.status is QueueStatus.FAILED
    assert item.output_payload is None
