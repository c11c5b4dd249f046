"""Shared test helpers for transcript analytics tests.

Regular functions (not fixtures) that can be imported by any test module.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def days_ago(days: float, now: datetime = NOW) -> str:
    """ISO timestamp *days* before *now*."""
    return (now - timedelta(days=days)).isoformat()


def make_transcript(
    record_id: str,
    timestamp: str,
    content: str = "This is test content.",
    **extra,
) -> dict:
    """Build a transcript dict as exported by the transcript service.

    Args:
        record_id: Unique id.
        timestamp: Raw timestamp string (may be malformed on purpose).
        content: Transcript text.
        **extra: Additional keys such as summary or isStarred.
    """
    return {
        "id": record_id,
        "title": f"Test Transcript {record_id}",
        "timestamp": timestamp,
        "content": content,
        **extra,
    }


def spread_transcripts(
    prefix: str,
    count: int,
    newest_days: float,
    oldest_days: float,
    now: datetime = NOW,
    **extra,
) -> list[dict]:
    """Build *count* transcripts spread evenly between two ages in days."""
    step = (oldest_days - newest_days) / max(count - 1, 1)
    return [
        make_transcript(f"{prefix}{i}", days_ago(newest_days + i * step, now), **extra)
        for i in range(count)
    ]
