"""
Queue item and health snapshot models.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class QueueStatus(str, Enum):
    """Status values for AI queue items"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (QueueStatus.COMPLETED, QueueStatus.FAILED)


class RequestType(str, Enum):
    """Kinds of generation requests the pipeline knows how to run"""
    GENERATE_POST = "generate-post"
    NEWSLETTER_INTRO = "newsletter-intro"
    CONTENT_SUMMARY = "content-summary"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class QueueItem:
    """One requested generation and its lifecycle state."""
    id: str
    request_type: RequestType
    status: QueueStatus
    input_payload: Dict[str, Any]
    created_at: str
    requested_by: Optional[str] = None
    output_payload: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    idempotency_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["request_type"] = self.request_type.value
        data["status"] = self.status.value
        return data


@dataclass
class HealthSnapshot:
    """Point-in-time view of the generation provider. Never persisted."""
    configured: bool
    connected: bool
    model_available: bool
    model: str
    latency_ms: Optional[float] = None
    error: Optional[str] = None
    checked_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
