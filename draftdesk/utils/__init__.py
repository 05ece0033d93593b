"""Utility modules for draftdesk."""

from draftdesk.utils.logging import (
    get_logger,
    get_log_buffer,
    configure_logging,
    LogLevel,
    LogEntry,
    LogBuffer,
    AppLogger,
    queue_logger,
    pipeline_logger,
    provider_logger,
    api_logger,
)

__all__ = [
    "get_logger",
    "get_log_buffer",
    "configure_logging",
    "LogLevel",
    "LogEntry",
    "LogBuffer",
    "AppLogger",
    "queue_logger",
    "pipeline_logger",
    "provider_logger",
    "api_logger",
]
