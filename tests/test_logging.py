"""Tests for the in-memory log buffer."""

from draftdesk.utils.logging import LogBuffer, LogEntry, LogLevel, get_logger, get_log_buffer


def test_buffer_keeps_most_recent_entries():
    buffer = LogBuffer(max_size=3)
    for i in range(5):
        buffer.add(LogEntry(LogLevel.INFO, f"message {i}", "test"))

    recent = buffer.get_recent()
    assert [entry["message"] for entry in recent] == ["message 4", "message 3", "message 2"]


def test_buffer_filters_and_counts():
    buffer = LogBuffer()
    buffer.add(LogEntry(LogLevel.INFO, "started", "ai_queue"))
    buffer.add(LogEntry(LogLevel.WARNING, "slow", "provider"))
    buffer.add(LogEntry(LogLevel.ERROR, "boom", "ai_queue", {"item_id": "aiq_1"}))

    errors = buffer.get_recent(level=LogLevel.ERROR)
    assert len(errors) == 1
    assert errors[0]["metadata"] == {"item_id": "aiq_1"}
    assert len(buffer.get_recent(source="ai_queue")) == 2

    stats = buffer.get_stats()
    assert stats["total"] == 3
    assert stats["error_count"] == 1
    assert stats["warning_count"] == 1
    assert stats["by_source"] == {"ai_queue": 2, "provider": 1}

    buffer.clear()
    assert buffer.get_stats()["total"] == 0


def test_app_logger_writes_to_global_buffer():
    get_logger("tests").warning("Heads up", item_id="aiq_9")
    entry = get_log_buffer().get_recent(limit=1)[0]
    assert entry["source"] == "tests"
    assert entry["level"] == "warning"
    assert entry["metadata"] == {"item_id": "aiq_9"}


def test_buffer_filters_by_item_and_keeps_totals_after_eviction():
    buffer = LogBuffer(max_size=2)
    buffer.add(LogEntry(LogLevel.ERROR, "first failure", "ai_queue", {"item_id": "aiq_1"}))
    buffer.add(LogEntry(LogLevel.INFO, "claimed", "ai_queue", {"item_id": "aiq_2"}))
    buffer.add(LogEntry(LogLevel.INFO, "completed", "ai_queue", {"item_id": "aiq_2"}))

    assert [e["message"] for e in buffer.get_recent(item_id="aiq_2")] == ["completed", "claimed"]
    assert buffer.get_recent(item_id="aiq_1") == []
    assert buffer.get_stats()["error_count"] == 1
