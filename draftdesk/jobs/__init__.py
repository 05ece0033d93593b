"""
AI generation queue.

Components:
- AiQueueDatabase: SQLite-backed item storage with atomic claims
- AiQueueService: enqueue / inspect / trigger / stats
- QueueWorker: background worker that processes one item per tick

Usage:
    # Compose once per process (see draftdesk.api.main)
    db = AiQueueDatabase(config.queue_db_path)
    await db.connect()
    worker = QueueWorker(db, pipeline, provider=client)
    service = AiQueueService(db, worker, HealthProbe(client))

    # In FastAPI lifespan
    worker.start()
    ...
    await worker.shutdown()
"""

from draftdesk.jobs.models import QueueItem, QueueStatus, RequestType, HealthSnapshot
from draftdesk.jobs.database import AiQueueDatabase
from draftdesk.jobs.worker import QueueWorker, TickResult
from draftdesk.jobs.queue import AiQueueService, GenerationInput

__all__ = [
    # Models
    "QueueItem",
    "QueueStatus",
    "RequestType",
    "HealthSnapshot",

    # Database
    "AiQueueDatabase",

    # Worker
    "QueueWorker",
    "TickResult",

    # Service
    "AiQueueService",
    "GenerationInput",
]
