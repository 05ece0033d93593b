"""
Provider health and log routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from draftdesk.agents.health import HealthProbe
from draftdesk.security import require_auth
from draftdesk.utils.logging import LogLevel, get_log_buffer


router = APIRouter(tags=["health"], dependencies=[require_auth])


def get_health_probe(request: Request) -> HealthProbe:
    return request.app.state.health_probe


@router.get("/health")
async def provider_health(probe: HealthProbe = Depends(get_health_probe)):
    """Provider connectivity snapshot, independent of queue state."""
    snapshot = await probe.check()
    return snapshot.to_dict()


@router.get("/logs")
async def get_logs(
    limit: int = Query(100, ge=1, le=1000),
    level: Optional[LogLevel] = Query(None),
    source: Optional[str] = Query(None),
    item_id: Optional[str] = Query(None)
):
    """Recent entries from the in-memory log buffer, newest first."""
    logs = get_log_buffer().get_recent(limit=limit, level=level, source=source, item_id=item_id)
    return {"logs": logs}


@router.get("/logs/stats")
async def get_log_stats():
    return get_log_buffer().get_stats()
