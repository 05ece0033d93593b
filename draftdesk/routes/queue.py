"""
AI Queue API Routes

Endpoints for the admin console:
- Submitting generation requests
- Inspecting and listing queue items
- Manual "process now" trigger
- Queue statistics
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from draftdesk.jobs.models import QueueStatus, RequestType
from draftdesk.jobs.queue import AiQueueService
from draftdesk.security import get_requested_by, require_auth, require_same_origin


router = APIRouter(prefix="/queue", tags=["ai-queue"])


def get_queue_service(request: Request) -> AiQueueService:
    return request.app.state.queue_service


# =============================================================================
# Request/Response Models
# =============================================================================

class EnqueueRequest(BaseModel):
    """Request to queue a generation job."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    request_type: str
    input: Dict[str, Any]


class EnqueueResponse(BaseModel):
    """Response after queuing."""
    id: str
    status: str
    deduplicated: bool = False


class QueueItemResponse(BaseModel):
    """Single queue item."""
    id: str
    request_type: str
    status: str
    input_payload: Dict[str, Any]
    output_payload: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    requested_by: Optional[str] = None
    created_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class QueueListResponse(BaseModel):
    """Page of queue items."""
    items: List[QueueItemResponse]
    pagination: Pagination


class ProcessResponse(BaseModel):
    """Result of a manual trigger."""
    processed: bool
    item_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None


def _item_response(item) -> QueueItemResponse:
    data = item.to_dict()
    data.pop("idempotency_key", None)
    return QueueItemResponse(**data)


# =============================================================================
# Routes
# =============================================================================

@router.post(
    "",
    response_model=EnqueueResponse,
    status_code=201,
    dependencies=[Depends(require_same_origin)]
)
async def enqueue(
    body: EnqueueRequest,
    response: Response,
    requested_by: str = Depends(get_requested_by),
    service: AiQueueService = Depends(get_queue_service)
):
    """
    Queue a generation request.

    Returns 201 for a new item, 200 when an identical request is still active.
    """
    result = await service.enqueue(body.request_type, body.input, requested_by=requested_by)
    if result["deduplicated"]:
        response.status_code = 200
    return EnqueueResponse(**result)


@router.get("", response_model=QueueListResponse, dependencies=[require_auth])
async def list_items(
    status: Optional[QueueStatus] = Query(None),
    request_type: Optional[RequestType] = Query(None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    service: AiQueueService = Depends(get_queue_service)
):
    """List queue items, newest first."""
    result = await service.list_items(status=status, request_type=request_type, page=page, limit=limit)
    return QueueListResponse(
        items=[_item_response(item) for item in result["items"]],
        pagination=Pagination(**result["pagination"])
    )


@router.get("/stats", dependencies=[require_auth])
async def get_stats(service: AiQueueService = Depends(get_queue_service)):
    """Counts by status, worker state and provider health."""
    return await service.get_stats()


@router.post(
    "/process",
    response_model=ProcessResponse,
    dependencies=[require_auth, Depends(require_same_origin)]
)
async def process_now(service: AiQueueService = Depends(get_queue_service)):
    """Process the oldest pending item right away."""
    result = await service.trigger_processing()
    return ProcessResponse(**result.to_dict())


@router.get("/{item_id}", response_model=QueueItemResponse, dependencies=[require_auth])
async def get_item(item_id: str, service: AiQueueService = Depends(get_queue_service)):
    """Get a single queue item."""
    item = await service.get_item(item_id)
    return _item_response(item)
