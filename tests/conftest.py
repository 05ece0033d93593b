"""Shared test fixtures."""

import asyncio

import pytest

from draftdesk.config import AppConfig
from draftdesk.jobs.database import AiQueueDatabase
from draftdesk.security import reset_rate_limits
from draftdesk.utils.logging import get_log_buffer


@pytest.fixture()
def db_path(tmp_path):
    return str(tmp_path / "ai_queue.db")


@pytest.fixture()
def with_db(db_path):
    """Run `fn(db)` against a connected database and close it afterwards."""

    def _run(fn):
        async def _main():
            db = AiQueueDatabase(db_path)
            await db.connect()
            try:
                return await fn(db)
            finally:
                await db.close()

        return asyncio.run(_main())

    return _run


@pytest.fixture()
def app_config(db_path):
    return AppConfig(
        QUEUE_DB_PATH=db_path,
        STORAGE_PATH=None,
        AI_WORKER_ENABLED=False,
        OLLAMA_CLOUD_API_KEY="test-key",
        OLLAMA_CLOUD_URL="https://ollama.test",
        OLLAMA_CLOUD_MODEL="deepseek-v3.2",
        DEV_MODE=True,
        DEBUG=False,
        API_KEYS=None,
        ALLOWED_ORIGINS="*",
    )


@pytest.fixture(autouse=True)
def clean_state():
    get_log_buffer().clear()
    reset_rate_limits()
    yield
    get_log_buffer().clear()
    reset_rate_limits()
