"""Tests for the queue service."""

import httpx
import pytest

from draftdesk.agents.health import HealthProbe
from draftdesk.agents.parser import DocumentParser
from draftdesk.agents.pipeline import GenerationPipeline
from draftdesk.agents.writer import DraftWriter
from draftdesk.errors import NotFoundError, ValidationError
from draftdesk.jobs.models import QueueStatus
from draftdesk.jobs.queue import AiQueueService
from draftdesk.jobs.worker import QueueWorker

from helpers import StubPipeline, make_client


def _service(db, pipeline=None, provider=None):
    worker = QueueWorker(db, pipeline or StubPipeline(), provider=provider)
    probe = HealthProbe(provider) if provider is not None else None
    return AiQueueService(db, worker, probe, max_instructions_length=50)


# ===== Validation =====

@pytest.mark.parametrize("request_type,input_data,fragment", [
    ("write-poem", {"category": "news", "instructions": "x"}, "Unsupported request type"),
    ("generate-post", "not an object", "input must be an object"),
    ("generate-post", {"instructions": "x"}, "category"),
    ("generate-post", {"category": "news"}, "Provide instructions"),
    ("generate-post", {"category": "   ", "instructions": "x"}, "category"),
    ("generate-post", {"category": "news", "document_text": "a", "document_base64": "YQ=="}, "not both"),
    ("generate-post", {"category": "news", "instructions": "x", "surprise": 1}, "surprise"),
    ("generate-post", {"category": "news", "instructions": "x" * 51}, "at most 50"),
])
def test_enqueue_rejects_invalid_input(with_db, request_type, input_data, fragment):
    async def scenario(db):
        with pytest.raises(ValidationError) as exc_info:
            await _service(db).enqueue(request_type, input_data, requested_by="u1")
        return exc_info.value, await db.counts_by_status()

    error, counts = with_db(scenario)
    assert fragment in error.message
    assert error.status_code == 400
    assert sum(counts.values()) == 0


def test_enqueue_accepts_camel_case_keys(with_db):
    async def scenario(db):
        service = _service(db)
        result = await service.enqueue(
            "content-summary",
            {"category": "council", "documentText": "Minutes", "mimeType": "text/plain"},
            requested_by="u1"
        )
        return result, await service.get_item(result["id"])

    result, item = with_db(scenario)
    assert result["status"] == "pending"
    assert result["id"].startswith("aiq_")
    assert item.input_payload == {
        "category": "council",
        "document_text": "Minutes",
        "mime_type": "text/plain",
        "requested_by": "u1",
    }
    assert item.requested_by == "u1"


def test_enqueue_deduplicates_active_requests(with_db):
    payload = {"category": "news", "instructions": "Announce the fair"}

    async def scenario(db):
        service = _service(db)
        first = await service.enqueue("generate-post", payload, requested_by="u1")
        second = await service.enqueue("generate-post", dict(payload), requested_by="u1")
        other_user = await service.enqueue("generate-post", payload, requested_by="u2")
        other_type = await service.enqueue("newsletter-intro", payload, requested_by="u1")
        return first, second, other_user, other_type

    first, second, other_user, other_type = with_db(scenario)
    assert first["deduplicated"] is False
    assert second == {"id": first["id"], "status": "pending", "deduplicated": True}
    assert other_user["id"] != first["id"]
    assert other_type["id"] != first["id"]


def test_enqueue_after_completion_creates_new_item(with_db):
    payload = {"category": "news", "instructions": "Announce the fair"}

    async def scenario(db):
        service = _service(db)
        first = await service.enqueue("generate-post", payload, requested_by="u1")
        await service.trigger_processing()
        second = await service.enqueue("generate-post", payload, requested_by="u1")
        return first, second

    first, second = with_db(scenario)
    assert second["deduplicated"] is False
    assert second["id"] != first["id"]


def test_get_item_unknown_raises_not_found(with_db):
    async def scenario(db):
        with pytest.raises(NotFoundError) as exc_info:
            await _service(db).get_item("aiq_missing")
        return exc_info.value

    assert with_db(scenario).status_code == 404


# ===== Processing =====

def test_trigger_processing_on_empty_queue(with_db):
    async def scenario(db):
        service = _service(db)
        result = await service.trigger_processing()
        return result, await service.get_stats()

    result, stats = with_db(scenario)
    assert result.processed is False
    assert stats["counts_by_status"] == {"pending": 0, "processing": 0, "completed": 0, "failed": 0}
    assert stats["total"] == 0


def test_unsupported_document_fails_item_and_updates_counts(with_db):
    def handler(request):
        raise AssertionError("provider must not be called")

    client = make_client(handler)
    pipeline = GenerationPipeline(parser=DocumentParser(), writer=DraftWriter(client))

    async def scenario(db):
        service = _service(db, pipeline=pipeline, provider=client)
        created = await service.enqueue(
            "generate-post",
            {"category": "news", "documentBase64": "UEsDBA==", "mimeType": "application/zip"},
            requested_by="u1"
        )
        before = await db.counts_by_status()
        result = await service.trigger_processing()
        item = await service.get_item(created["id"])
        return before, result, item, await db.counts_by_status()

    before, result, item, after = with_db(scenario)
    assert before["pending"] == 1
    assert result.status == "failed"
    assert item.status is QueueStatus.FAILED
    assert "application/zip" in item.error_message
    assert item.output_payload is None
    assert after["pending"] == 0
    assert after["failed"] == 1


def test_stats_include_worker_state_and_health(with_db):
    client = make_client(lambda request: httpx.Response(200, json={"models": [{"name": "deepseek-v3.2"}]}))

    async def scenario(db):
        service = _service(db, provider=client)
        await service.enqueue("generate-post", {"category": "news", "instructions": "x"}, requested_by="u1")
        return await service.get_stats()

    stats = with_db(scenario)
    assert stats["counts_by_status"]["pending"] == 1
    assert stats["total"] == 1
    assert stats["is_worker_running"] is False
    assert stats["is_processing"] is False
    assert stats["health"]["connected"] is True
    assert stats["health"]["model_available"] is True
