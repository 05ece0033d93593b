#!/usr/bin/env python3
"""
Standalone AI queue worker process.

Run this as a separate process from the web server when the web service
sets AI_WORKER_ENABLED=false, so long generation calls never hold up a
gunicorn worker.

Usage:
    python -m draftdesk.jobs.run_worker
"""

import asyncio
import signal

from draftdesk.agents.pipeline import GenerationPipeline
from draftdesk.agents.provider import OllamaCloudClient
from draftdesk.config import config
from draftdesk.jobs.database import AiQueueDatabase
from draftdesk.jobs.worker import QueueWorker
from draftdesk.utils.logging import configure_logging, queue_logger as logger


async def main():
    """Run the AI queue worker as a standalone process."""
    configure_logging(config.LOG_LEVEL)

    print("=" * 60)
    print("Starting Standalone AI Queue Worker")
    print("=" * 60)
    print(f"  Queue database: {config.queue_db_path}")
    print(f"  Model: {config.OLLAMA_CLOUD_MODEL}")
    print(f"  Poll interval: {config.WORKER_POLL_INTERVAL}s")
    print("=" * 60)

    db = AiQueueDatabase(config.queue_db_path)
    client = OllamaCloudClient.from_config(config)
    worker = QueueWorker(
        db,
        GenerationPipeline.from_config(client, config),
        provider=client,
        poll_interval_seconds=config.WORKER_POLL_INTERVAL
    )

    # Handle shutdown signals gracefully
    shutdown_event = asyncio.Event()

    def handle_shutdown(signum, frame):
        print(f"\n  Received signal {signum}, shutting down...")
        shutdown_event.set()

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    try:
        await db.connect()
        if not client.is_configured:
            logger.warning("OLLAMA_CLOUD_API_KEY not set; ticks are skipped until it is configured")
        worker.start()

        print("\n  Worker running. Press Ctrl+C to stop.\n")

        # Keep running until shutdown signal
        await shutdown_event.wait()

    finally:
        print("\n  Shutting down worker...")
        await worker.shutdown()
        await db.close()
        print("  Worker stopped.")


if __name__ == "__main__":
    asyncio.run(main())
