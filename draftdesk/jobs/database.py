"""
Database schema for the AI generation queue.
Uses aiosqlite for async SQLite operations.

Status changes go through conditional UPDATEs (compare-and-set on the
status column), so two workers can never both own an item, even when
they run in separate processes against the same file.
"""

import json
import math
from pathlib import Path
from typing import Optional, Dict, Any, List

import aiosqlite

from draftdesk.errors import PersistenceError
from draftdesk.jobs.models import QueueItem, QueueStatus, RequestType, utc_now


ITEM_COLUMNS = """
    item_id, request_type, status, input_payload, output_payload,
    error_message, requested_by, idempotency_key,
    created_at, started_at, completed_at
"""


class AiQueueDatabase:
    """Handles AI queue database operations"""

    def __init__(self, db_path: str = "ai_queue.db"):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    async def connect(self):
        """Connect to database and create tables if needed"""
        db_file = Path(self.db_path)
        db_dir = db_file.parent
        if str(db_dir) != "." and not db_dir.exists():
            db_dir.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = await aiosqlite.connect(self.db_path)
            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._create_tables()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Cannot open queue database {self.db_path}: {e}") from e

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    async def _create_tables(self):
        """Create required tables"""
        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS ai_queue (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                item_id TEXT UNIQUE NOT NULL,
                request_type TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',

                -- Input data (JSON, immutable)
                input_payload TEXT NOT NULL,
                requested_by TEXT,
                idempotency_key TEXT,

                -- Outcome (exactly one set once terminal)
                output_payload TEXT,
                error_message TEXT,

                -- Timestamps
                created_at TEXT NOT NULL,
                started_at TEXT,
                completed_at TEXT
            )
        """)

        await self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_ai_queue_status
            ON ai_queue(status, created_at)
        """)

        await self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_ai_queue_idempotency
            ON ai_queue(idempotency_key)
        """)

        await self._conn.commit()

    async def _write(self, sql: str, params: tuple) -> int:
        """Execute a write and commit. Returns the affected row count."""
        if self._conn is None:
            raise PersistenceError("Queue database is not connected")
        try:
            cursor = await self._conn.execute(sql, params)
            await self._conn.commit()
            return cursor.rowcount
        except aiosqlite.Error as e:
            raise PersistenceError(f"Queue database write failed: {e}") from e

    async def _fetch(self, sql: str, params: tuple = ()) -> List[tuple]:
        if self._conn is None:
            raise PersistenceError("Queue database is not connected")
        try:
            cursor = await self._conn.execute(sql, params)
            return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            raise PersistenceError(f"Queue database read failed: {e}") from e

    @staticmethod
    def _row_to_item(row: tuple) -> QueueItem:
        return QueueItem(
            id=row[0],
            request_type=RequestType(row[1]),
            status=QueueStatus(row[2]),
            input_payload=json.loads(row[3]),
            output_payload=json.loads(row[4]) if row[4] else None,
            error_message=row[5],
            requested_by=row[6],
            idempotency_key=row[7],
            created_at=row[8],
            started_at=row[9],
            completed_at=row[10]
        )

    async def insert(self, item: QueueItem) -> str:
        """
        Create a new pending item.

        Returns the item id.
        """
        await self._write("""
            INSERT INTO ai_queue
            (item_id, request_type, status, input_payload, requested_by,
             idempotency_key, created_at)
            VALUES (?, ?, 'pending', ?, ?, ?, ?)
        """, (
            item.id,
            item.request_type.value,
            json.dumps(item.input_payload),
            item.requested_by,
            item.idempotency_key,
            item.created_at or utc_now()
        ))
        return item.id

    async def try_claim(self, item_id: str) -> Optional[QueueItem]:
        """
        Atomically move an item from pending to processing.

        Returns the claimed item, or None if it was not pending anymore.
        """
        claimed = await self._write("""
            UPDATE ai_queue
            SET status = 'processing',
                started_at = ?
            WHERE item_id = ? AND status = 'pending'
        """, (utc_now(), item_id))

        if claimed != 1:
            return None
        return await self.get(item_id)

    async def complete(self, item_id: str, output_payload: Dict[str, Any]) -> bool:
        """Mark a processing item as completed. Returns False if it was not processing."""
        updated = await self._write("""
            UPDATE ai_queue
            SET status = 'completed',
                output_payload = ?,
                completed_at = ?
            WHERE item_id = ? AND status = 'processing'
        """, (json.dumps(output_payload), utc_now(), item_id))
        return updated == 1

    async def fail(self, item_id: str, error_message: str) -> bool:
        """Mark a processing item as failed. Returns False if it was not processing."""
        updated = await self._write("""
            UPDATE ai_queue
            SET status = 'failed',
                error_message = ?,
                completed_at = ?
            WHERE item_id = ? AND status = 'processing'
        """, (error_message, utc_now(), item_id))
        return updated == 1

    async def find_next_pending(self) -> Optional[str]:
        """Get the oldest pending item id (FIFO)"""
        rows = await self._fetch("""
            SELECT item_id FROM ai_queue
            WHERE status = 'pending'
            ORDER BY created_at ASC, seq ASC
            LIMIT 1
        """)
        return rows[0][0] if rows else None

    async def get(self, item_id: str) -> Optional[QueueItem]:
        """Get an item by its id"""
        rows = await self._fetch(
            f"SELECT {ITEM_COLUMNS} FROM ai_queue WHERE item_id = ?",
            (item_id,)
        )
        return self._row_to_item(rows[0]) if rows else None

    async def find_active_by_idempotency_key(
        self,
        idempotency_key: str,
        requested_by: Optional[str],
        request_type: RequestType
    ) -> Optional[QueueItem]:
        """Find a pending or processing item created from the same request"""
        rows = await self._fetch(f"""
            SELECT {ITEM_COLUMNS} FROM ai_queue
            WHERE idempotency_key = ?
              AND request_type = ?
              AND requested_by IS ?
              AND status IN ('pending', 'processing')
            ORDER BY created_at DESC
            LIMIT 1
        """, (idempotency_key, request_type.value, requested_by))
        return self._row_to_item(rows[0]) if rows else None

    async def list_recent(self, limit: int = 20) -> List[QueueItem]:
        """Get the most recently created items"""
        rows = await self._fetch(f"""
            SELECT {ITEM_COLUMNS} FROM ai_queue
            ORDER BY created_at DESC, seq DESC
            LIMIT ?
        """, (limit,))
        return [self._row_to_item(row) for row in rows]

    async def list_items(
        self,
        status: Optional[QueueStatus] = None,
        request_type: Optional[RequestType] = None,
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        """Get a filtered page of items, newest first, with pagination info"""
        conditions = []
        values: List[Any] = []

        if status is not None:
            conditions.append("status = ?")
            values.append(status.value)

        if request_type is not None:
            conditions.append("request_type = ?")
            values.append(request_type.value)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        count_rows = await self._fetch(f"SELECT COUNT(*) FROM ai_queue {where}", tuple(values))
        total = count_rows[0][0]

        rows = await self._fetch(f"""
            SELECT {ITEM_COLUMNS} FROM ai_queue
            {where}
            ORDER BY created_at DESC, seq DESC
            LIMIT ? OFFSET ?
        """, tuple(values + [limit, (page - 1) * limit]))

        return {
            "items": [self._row_to_item(row) for row in rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if limit else 0
            }
        }

    async def counts_by_status(self) -> Dict[str, int]:
        """Get item counts for every status (zero-filled)"""
        rows = await self._fetch("SELECT status, COUNT(*) FROM ai_queue GROUP BY status")
        counts = {status.value: 0 for status in QueueStatus}
        for status, count in rows:
            counts[status] = count
        return counts

    async def close(self):
        """Close database connection"""
        if self._conn:
            await self._conn.close()
            self._conn = None
