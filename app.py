"""FastAPI service for the Lifelog Transcript Analytics dashboard.

Serves JSON analytics over a local transcript export, cached in memory
(1-hour TTL since the export only changes on a new sync).

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import json
import os
import threading
import time
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.concurrency import run_in_threadpool

from analytics import (
    InvalidTimeRangeError,
    Transcript,
    calculate_dashboard_metrics,
    compute_dashboard,
    generate_activity_chart_data,
    generate_density_chart_data,
    generate_duration_chart_data,
    generate_hourly_activity_data,
    get_recent_activity,
    load_transcripts,
    resolve_group_by,
)
from gemini_service import GeminiAnalyzer
from sentiment import SentimentTrendGenerator, group_sentiment_points

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
TRANSCRIPTS_PATH = Path(os.getenv("TRANSCRIPTS_PATH", Path(__file__).parent / "transcripts.json"))
CACHE_TTL_SECONDS = 3600  # 1 hour

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Lifelog Transcript Analytics",
    root_path=os.getenv("ROOT_PATH", ""),
)

# Process-lifetime sentiment scores, shared by every request.
_sentiment = SentimentTrendGenerator(GeminiAnalyzer().analyze)

# ---------------------------------------------------------------------------
# Thread-safe cache
# ---------------------------------------------------------------------------
_cache_lock = threading.Lock()
_cache: dict[str, Any] = {
    "records": None,
    "loaded_at": 0.0,
}


def _get_cached_records(force_refresh: bool = False) -> list[Transcript]:
    """Return cached transcripts, reloading if stale or forced."""
    now = time.monotonic()
    with _cache_lock:
        if (
            not force_refresh
            and _cache["records"] is not None
            and (now - _cache["loaded_at"]) < CACHE_TTL_SECONDS
        ):
            return _cache["records"]

    try:
        records = load_transcripts(str(TRANSCRIPTS_PATH))
    except FileNotFoundError:
        raise HTTPException(status_code=503, detail="Transcripts file not found")
    except json.JSONDecodeError:
        raise HTTPException(status_code=500, detail=f"Invalid JSON in {TRANSCRIPTS_PATH.name}")
    except ValueError as exc:
        raise HTTPException(status_code=500, detail=str(exc))

    with _cache_lock:
        _cache["records"] = records
        _cache["loaded_at"] = time.monotonic()

    return records


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/data")
def api_data(time_range: str = Query("7d", alias="range")):
    """Return the full dashboard JSON payload."""
    records = _get_cached_records()
    try:
        return compute_dashboard(records, time_range)
    except InvalidTimeRangeError as exc:
        raise _bad_request(exc)


@app.get("/api/metrics")
def api_metrics(time_range: str = Query("7d", alias="range")):
    records = _get_cached_records()
    try:
        return calculate_dashboard_metrics(records, time_range).to_dict()
    except InvalidTimeRangeError as exc:
        raise _bad_request(exc)


@app.get("/api/hourly")
def api_hourly(time_range: str = Query("7d", alias="range")):
    """Return the 24 hour-of-day activity buckets."""
    records = _get_cached_records()
    try:
        buckets = generate_hourly_activity_data(records, time_range)
    except InvalidTimeRangeError as exc:
        raise _bad_request(exc)
    return [b.to_dict() for b in buckets]


_CHARTS = {
    "activity": generate_activity_chart_data,
    "duration": generate_duration_chart_data,
    "density": generate_density_chart_data,
}


@app.get("/api/charts/{chart}")
def api_chart(
    chart: str,
    time_range: str = Query("7d", alias="range"),
    group_by: str | None = None,
):
    if chart not in _CHARTS:
        raise HTTPException(status_code=404, detail=f"Unknown chart: {chart}")
    records = _get_cached_records()
    try:
        return _CHARTS[chart](records, time_range, group_by).to_dict()
    except ValueError as exc:
        raise _bad_request(exc)


@app.get("/api/recent")
def api_recent(
    time_range: str = Query("7d", alias="range"),
    limit: int = Query(5, ge=1, le=50),
):
    records = _get_cached_records()
    try:
        return get_recent_activity(records, limit=limit, time_range=time_range)
    except InvalidTimeRangeError as exc:
        raise _bad_request(exc)


@app.get("/api/sentiment")
async def api_sentiment(
    time_range: str = Query("7d", alias="range"),
    group_by: str | None = None,
):
    """Return per-transcript sentiment points and the grouped trend."""
    try:
        grouping = resolve_group_by(time_range, group_by)
    except ValueError as exc:
        raise _bad_request(exc)

    records = await run_in_threadpool(_get_cached_records)
    points = await _sentiment.generate(records, time_range)
    series = group_sentiment_points(points, grouping)
    return {
        "points": [p.to_dict() for p in points],
        "series": [{"date": s.date, "value": s.value, "label": s.label} for s in series],
        "group_by": grouping,
    }


@app.get("/api/refresh")
def api_refresh():
    """Force a reload of the transcripts file."""
    records = _get_cached_records(force_refresh=True)
    return {
        "status": "refreshed",
        "record_count": len(records),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=int(os.getenv("PORT", "8204")))
