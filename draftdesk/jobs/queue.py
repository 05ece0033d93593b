"""
AI queue service.
High-level interface for enqueueing, inspecting and processing
generation requests. The HTTP layer talks only to this class.
"""

import json
import uuid
from typing import Any, Dict, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from draftdesk.errors import NotFoundError, ValidationError
from draftdesk.jobs.database import AiQueueDatabase
from draftdesk.jobs.models import QueueItem, QueueStatus, RequestType, utc_now
from draftdesk.jobs.worker import QueueWorker, TickResult
from draftdesk.utils.logging import queue_logger as logger
from draftdesk.utils.text import hash_text

if TYPE_CHECKING:
    from draftdesk.agents.health import HealthProbe


class GenerationInput(BaseModel):
    """Shape of a queue item's input payload. Accepts snake_case or camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True
    )

    category: str = Field(min_length=1, max_length=100)
    instructions: Optional[str] = Field(default=None, max_length=10_000)
    document_text: Optional[str] = None
    document_base64: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, max_length=255)
    document_name: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def check_source(self):
        if not (self.instructions or self.document_text or self.document_base64):
            raise ValueError("Provide instructions, document_text or document_base64")
        if self.document_text and self.document_base64:
            raise ValueError("Provide either document_text or document_base64, not both")
        return self


def _validation_message(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid input")
    return f"{location}: {message}" if location else message


class AiQueueService:
    """
    High-level interface for the AI queue.

    Usage:
        service = AiQueueService(db, worker, health_probe)

        item_id = await service.enqueue("generate-post", {...}, requested_by="u1")
        item = await service.get_item(item_id)
        result = await service.trigger_processing()
    """

    def __init__(
        self,
        db: AiQueueDatabase,
        worker: QueueWorker,
        health_probe: Optional["HealthProbe"] = None,
        max_instructions_length: int = 2000
    ):
        self.db = db
        self.worker = worker
        self.health_probe = health_probe
        self.max_instructions_length = max_instructions_length

    def validate_input(self, request_type: Any, input_data: Any) -> tuple:
        """Validate the request type and payload. Returns (RequestType, normalized dict)."""
        try:
            parsed_type = RequestType(request_type)
        except ValueError:
            supported = ", ".join(t.value for t in RequestType)
            raise ValidationError(
                f"Unsupported request type: {request_type!r}. Supported: {supported}"
            )

        if not isinstance(input_data, dict):
            raise ValidationError("input must be an object")

        try:
            parsed_input = GenerationInput.model_validate(input_data)
        except PydanticValidationError as e:
            raise ValidationError(_validation_message(e))

        if parsed_input.instructions and len(parsed_input.instructions) > self.max_instructions_length:
            raise ValidationError(
                f"instructions: at most {self.max_instructions_length} characters allowed"
            )

        return parsed_type, parsed_input.model_dump(exclude_none=True)

    async def enqueue(
        self,
        request_type: Any,
        input_data: Any,
        requested_by: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Queue a new generation request.

        Returns:
            {"id", "status", "deduplicated"}; an identical request that is
            still pending or processing returns the existing item.
        """
        parsed_type, payload = self.validate_input(request_type, input_data)

        idempotency_key = hash_text(json.dumps(
            {"request_type": parsed_type.value, "input": payload},
            sort_keys=True
        ))

        existing = await self.db.find_active_by_idempotency_key(
            idempotency_key, requested_by, parsed_type
        )
        if existing is not None:
            logger.info("Duplicate request matched active item", item_id=existing.id)
            return {"id": existing.id, "status": existing.status.value, "deduplicated": True}

        if requested_by:
            payload["requested_by"] = requested_by

        item = QueueItem(
            id=f"aiq_{uuid.uuid4().hex[:12]}",
            request_type=parsed_type,
            status=QueueStatus.PENDING,
            input_payload=payload,
            created_at=utc_now(),
            requested_by=requested_by,
            idempotency_key=idempotency_key
        )
        await self.db.insert(item)

        logger.info(
            "AI queue item created",
            item_id=item.id,
            request_type=parsed_type.value,
            category=payload.get("category")
        )
        return {"id": item.id, "status": QueueStatus.PENDING.value, "deduplicated": False}

    async def get_item(self, item_id: str) -> QueueItem:
        item = await self.db.get(item_id)
        if item is None:
            raise NotFoundError(f"AI queue item {item_id} not found")
        return item

    async def list_items(
        self,
        status: Optional[QueueStatus] = None,
        request_type: Optional[RequestType] = None,
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        return await self.db.list_items(status=status, request_type=request_type, page=page, limit=limit)

    async def trigger_processing(self) -> TickResult:
        """Run one worker tick now (manual "process now")."""
        result = await self.worker.tick()
        logger.info("Manual processing triggered", **result.to_dict())
        return result

    async def check_health(self) -> Dict[str, Any]:
        if self.health_probe is None:
            return {}
        snapshot = await self.health_probe.check()
        return snapshot.to_dict()

    async def get_stats(self) -> Dict[str, Any]:
        """Counts by status, worker state and a fresh health snapshot"""
        counts = await self.db.counts_by_status()
        return {
            "counts_by_status": counts,
            "total": sum(counts.values()),
            "is_worker_running": self.worker.is_running,
            "is_processing": self.worker.is_processing,
            "health": await self.check_health()
        }
