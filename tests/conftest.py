"""Shared fixtures for transcript analytics tests."""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from analytics import Transcript
from sentiment import SentimentTrendGenerator


def _live_records() -> list[Transcript]:
    """Transcripts dated relative to the wall clock, for the app routes."""
    now = datetime.now(timezone.utc)
    rows = [
        ("t1", now - timedelta(hours=2), "What a great and wonderful morning walk.", {}),
        ("t2", now - timedelta(days=1), "The meeting ran long and the problem is still open.",
         {"summary": "x" * 60, "isStarred": True}),
        ("t3", now - timedelta(days=3), "Lunch notes. " * 40, {}),
        ("t4", now - timedelta(days=20), "Older conversation about travel plans.", {}),
    ]
    records = [
        Transcript.from_dict({"id": rid, "title": f"Transcript {rid}", "timestamp": ts.isoformat(),
                              "content": content, **extra})
        for rid, ts, content, extra in rows
    ]
    records.append(Transcript.from_dict({"id": "bad", "timestamp": "not-a-date", "content": ""}))
    return records


@pytest.fixture()
def live_records():
    return _live_records()


@pytest.fixture()
def failing_analyzer():
    """Analyzer that always raises, forcing the local fallback."""
    return AsyncMock(side_effect=RuntimeError("analysis unavailable"))


@pytest.fixture()
def client(live_records, failing_analyzer):
    """TestClient for app.py with mocked transcript data.

    Patches load_transcripts so no transcripts.json is needed, resets the
    module-level cache and swaps in a sentiment generator with a fresh
    cache that never reaches the network.
    """
    import app as app_module

    with patch.object(app_module, "_cache", {"records": None, "loaded_at": 0.0}):
        with patch.object(
            app_module, "_sentiment", SentimentTrendGenerator(failing_analyzer)
        ):
            with patch("app.load_transcripts", return_value=live_records):
                with TestClient(app_module.app) as tc:
                    yield tc


@pytest.fixture()
def local_tz(monkeypatch):
    """Switch the process-local timezone for one test (POSIX only)."""

    def _set(name: str) -> None:
        monkeypatch.setenv("TZ", name)
        time.tzset()

    yield _set
    monkeypatch.undo()
    if hasattr(time, "tzset"):
        time.tzset()
