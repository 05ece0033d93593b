"""
Logging for draftdesk.

Every message goes to the standard logging module and to an in-memory
ring buffer. The admin console reads the buffer through /logs to follow
queue activity for a single item without external log aggregation.
"""

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Dict, List, Optional


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def stdlib_level(self) -> int:
        return logging.getLevelName(self.value.upper())


@dataclass
class LogEntry:
    """One buffered log message with its keyword metadata."""
    level: LogLevel
    message: str
    source: str = "system"
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}

    @property
    def item_id(self) -> Optional[str]:
        return self.metadata.get("item_id")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "message": self.message,
            "source": self.source,
            "metadata": self.metadata
        }


class LogBuffer:
    """
    Bounded, thread-safe store of recent entries.

    Old entries fall off the front once max_size is reached; the error
    and warning totals keep counting across evictions.
    """

    def __init__(self, max_size: int = 1000):
        self._entries: deque = deque(maxlen=max_size)
        self._lock = Lock()
        self._totals: Counter = Counter()

    def add(self, entry: LogEntry):
        with self._lock:
            self._entries.append(entry)
            self._totals[entry.level] += 1

    def get_recent(
        self,
        limit: int = 100,
        level: Optional[LogLevel] = None,
        source: Optional[str] = None,
        item_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Newest entries first, optionally filtered by level, source or queue item."""
        with self._lock:
            snapshot = list(self._entries)

        matches = []
        for entry in reversed(snapshot):
            if level and entry.level != level:
                continue
            if source and entry.source != source:
                continue
            if item_id and entry.item_id != item_id:
                continue
            matches.append(entry.to_dict())
            if len(matches) >= limit:
                break
        return matches

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            by_level = Counter(entry.level.value for entry in self._entries)
            by_source = Counter(entry.source for entry in self._entries)
            return {
                "total": len(self._entries),
                "by_level": dict(by_level),
                "by_source": dict(by_source),
                "error_count": self._totals[LogLevel.ERROR] + self._totals[LogLevel.CRITICAL],
                "warning_count": self._totals[LogLevel.WARNING]
            }

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._totals.clear()


_log_buffer = LogBuffer()


def get_log_buffer() -> LogBuffer:
    return _log_buffer


def _format_metadata(metadata: Dict[str, Any]) -> str:
    return " ".join(f"{key}={value}" for key, value in metadata.items())


class AppLogger:
    """
    Logger bound to one source (ai_queue, pipeline, provider, api).

    Keyword arguments become entry metadata:
        queue_logger.info("AI queue item completed", item_id=item.id, elapsed=3.2)
    """

    def __init__(self, source: str):
        self.source = source
        self._logger = logging.getLogger(f"draftdesk.{source}")

    def _log(self, level: LogLevel, message: str, metadata: Dict[str, Any]):
        _log_buffer.add(LogEntry(level, message, self.source, dict(metadata)))

        if metadata:
            self._logger.log(level.stdlib_level, "%s | %s", message, _format_metadata(metadata))
        else:
            self._logger.log(level.stdlib_level, message)

    def debug(self, message: str, **metadata):
        self._log(LogLevel.DEBUG, message, metadata)

    def info(self, message: str, **metadata):
        self._log(LogLevel.INFO, message, metadata)

    def warning(self, message: str, **metadata):
        self._log(LogLevel.WARNING, message, metadata)

    def error(self, message: str, **metadata):
        self._log(LogLevel.ERROR, message, metadata)

    def critical(self, message: str, **metadata):
        self._log(LogLevel.CRITICAL, message, metadata)


def get_logger(source: str) -> AppLogger:
    return AppLogger(source)


def configure_logging(level: str = "INFO"):
    """Attach a stream handler to the package logger once; later calls only change the level."""
    package_logger = logging.getLogger("draftdesk")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
        package_logger.addHandler(handler)


queue_logger = AppLogger("ai_queue")
pipeline_logger = AppLogger("pipeline")
provider_logger = AppLogger("provider")
api_logger = AppLogger("api")
