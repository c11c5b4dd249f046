"""Core data processing for lifelog transcript analytics.

Computes time-windowed dashboard statistics from a list of timestamped
transcript records: totals with period-over-period growth, hour-of-day
activity, grouped chart series and a recent-activity feed.
Used by both the CLI (transcript_summary.py) and the web service (app.py).
The sentiment trend lives in sentiment.py because it needs the external
analysis call.
"""

from __future__ import annotations

import csv
import json
import logging
import math
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Iterable, Mapping

logger = logging.getLogger(__name__)

TIME_RANGES: list[dict[str, Any]] = [
    {"label": "7 days", "value": "7d", "days": 7},
    {"label": "30 days", "value": "30d", "days": 30},
    {"label": "90 days", "value": "90d", "days": 90},
    {"label": "All time", "value": "all", "days": None},
]
_RANGE_DAYS: dict[str, int | None] = {r["value"]: r["days"] for r in TIME_RANGES}

GROUP_BY_CHOICES = ("day", "week", "month")

# Growth is only meaningful once the previous period has this many samples.
MIN_GROWTH_SAMPLE = 5

ANALYZED_SUMMARY_MIN_CHARS = 50
CHARS_PER_WORD = 5
WORDS_PER_MINUTE = 150
MIN_DURATION_HOURS = 0.1


class InvalidTimeRangeError(ValueError):
    """Raised when a range token is not one of ``TIME_RANGES``."""


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Transcript:
    """A single lifelog transcript as seen by the analytics engine."""

    id: str
    timestamp: str
    content: str = ""
    title: str = ""
    summary: str | None = None
    is_starred: bool = False
    is_bookmarked: bool = False
    start_time: str | None = None
    end_time: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Transcript:
        """Build a transcript from a JSON object.

        Accepts the camelCase keys used by the transcript service export
        (``isStarred``, ``startTime`` ...) as well as snake_case, and
        ``date`` as an alias for ``timestamp``.  The starred and bookmarked
        flags are set only by a JSON ``true``; strings such as ``"false"``
        leave them unset.

        Raises:
            KeyError: If the object has no ``id``.
        """
        timestamp = data.get("timestamp")
        if timestamp is None:
            timestamp = data.get("date")
        return cls(
            id=str(data["id"]),
            timestamp=timestamp,
            content=data.get("content") or "",
            title=data.get("title") or "",
            summary=data.get("summary"),
            is_starred=data.get("isStarred", data.get("is_starred")) is True,
            is_bookmarked=data.get("isBookmarked", data.get("is_bookmarked")) is True,
            start_time=data.get("startTime", data.get("start_time")),
            end_time=data.get("endTime", data.get("end_time")),
        )

    @property
    def has_analysis(self) -> bool:
        return bool(self.summary) and len(self.summary) > ANALYZED_SUMMARY_MIN_CHARS

    @property
    def is_saved(self) -> bool:
        """True when the transcript is starred or bookmarked."""
        return self.is_starred or self.is_bookmarked


def as_transcript(item: Transcript | Mapping[str, Any]) -> Transcript:
    if isinstance(item, Transcript):
        return item
    return Transcript.from_dict(item)


def _as_transcripts(records: Iterable[Transcript | Mapping[str, Any]]) -> list[Transcript]:
    return [as_transcript(r) for r in records]


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC-comparable datetime.

    A trailing ``Z`` is accepted.  Timestamps without an offset are taken
    to be UTC.

    Args:
        value: The raw timestamp field of a record.

    Returns:
        An aware datetime, or None if *value* is not a parseable string.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def load_transcripts(path: str = "transcripts.json") -> list[Transcript]:
    """Load transcripts from a JSON export.

    The file may hold either a list of transcript objects or an object
    with a ``transcripts`` list.  Entries that are not objects or have no
    ``id`` are skipped with a warning.

    Args:
        path: Filesystem path to the export.

    Returns:
        List of ``Transcript`` records in file order.

    Raises:
        FileNotFoundError: If the file at *path* does not exist.
        json.JSONDecodeError: If the file contains invalid JSON.
        ValueError: If the JSON has neither supported top-level shape.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("transcripts")
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of transcripts")

    records = []
    for index, item in enumerate(data):
        if not isinstance(item, dict) or "id" not in item:
            logger.warning("Skipping entry %d in %s: not a transcript object", index, path)
            continue
        records.append(Transcript.from_dict(item))
    return records


# ---------------------------------------------------------------------------
# Time windows
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimeWindow:
    """Interval of instants; a ``None`` bound is unbounded.

    The start is always inclusive.  The end is inclusive for the current
    window and exclusive for the previous one so the two never overlap.
    """

    start: datetime | None
    end: datetime | None
    end_inclusive: bool = True

    def contains(self, instant: datetime) -> bool:
        if self.start is not None and instant < self.start:
            return False
        if self.end is None:
            return True
        return instant <= self.end if self.end_inclusive else instant < self.end

    @property
    def length(self) -> timedelta | None:
        if self.start is None or self.end is None:
            return None
        return self.end - self.start


@dataclass(frozen=True)
class WindowPair:
    current: TimeWindow
    previous: TimeWindow | None = None

    @property
    def current_only(self) -> bool:
        return self.previous is None


def _normalize_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def range_days(time_range: str) -> int | None:
    """Return the length in days of *time_range*, or None for ``all``.

    Raises:
        InvalidTimeRangeError: If *time_range* is not a known token.
    """
    if not isinstance(time_range, str) or time_range not in _RANGE_DAYS:
        accepted = ", ".join(_RANGE_DAYS)
        raise InvalidTimeRangeError(
            f"Unsupported time range {time_range!r}; expected one of: {accepted}"
        )
    return _RANGE_DAYS[time_range]


def resolve_time_window(time_range: str, now: datetime | None = None) -> WindowPair:
    """Map a range token to the current and previous comparison windows.

    For a range of N days the current window is ``[now - N, now]`` and the
    previous one is ``[now - 2N, now - N)``: contiguous, non-overlapping
    and of equal length.  ``all`` has an unbounded current window and no
    previous window.

    Args:
        time_range: One of ``7d``, ``30d``, ``90d``, ``all``.
        now: Reference instant.  Defaults to the current UTC time; naive
            values are taken as UTC.

    Returns:
        The resolved ``WindowPair``.

    Raises:
        InvalidTimeRangeError: If *time_range* is not a known token.
    """
    days = range_days(time_range)
    if days is None:
        return WindowPair(current=TimeWindow(start=None, end=None))

    ref = _normalize_now(now)
    span = timedelta(days=days)
    current = TimeWindow(start=ref - span, end=ref, end_inclusive=True)
    previous = TimeWindow(start=ref - 2 * span, end=ref - span, end_inclusive=False)
    return WindowPair(current=current, previous=previous)


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

@dataclass
class FilterResult:
    records: list[Transcript] = field(default_factory=list)
    invalid_ids: list[str] = field(default_factory=list)


def filter_records(
    records: Iterable[Transcript | Mapping[str, Any]],
    window: TimeWindow,
    report_invalid: bool = True,
) -> FilterResult:
    """Select the records whose timestamp falls inside *window*.

    Records with an unparseable timestamp are dropped and their ids are
    collected in ``invalid_ids``.

    Args:
        records: Transcripts or transcript dicts.  Not modified.
        window: Interval to select.
        report_invalid: Log a warning naming each invalid record.  Callers
            filtering the same collection more than once turn this off for
            the repeat passes.

    Returns:
        ``FilterResult`` with the matching records in input order.
    """
    result = FilterResult()
    for record in _as_transcripts(records):
        instant = parse_timestamp(record.timestamp)
        if instant is None:
            if report_invalid:
                logger.warning("Skipping transcript with invalid date: %s", record.id)
            result.invalid_ids.append(record.id)
            continue
        if window.contains(instant):
            result.records.append(record)
    return result


def filter_transcripts_by_time_range(
    records: Iterable[Transcript | Mapping[str, Any]],
    time_range: str,
    now: datetime | None = None,
) -> list[Transcript]:
    """Return the records inside the current window of *time_range*."""
    window = resolve_time_window(time_range, now).current
    return filter_records(records, window).records


# ---------------------------------------------------------------------------
# Duration
# ---------------------------------------------------------------------------

def estimate_duration(content: str) -> float:
    """Approximate the spoken duration of *content* in hours.

    No ground-truth duration exists for a transcript, so this assumes
    ~5 characters per word and ~150 spoken words per minute, with a floor
    of 0.1 hours.  It is an ordering proxy, not a measurement.
    """
    word_count = len(content or "") / CHARS_PER_WORD
    return max(word_count / WORDS_PER_MINUTE, MIN_DURATION_HOURS)


def estimate_record_duration(record: Transcript | Mapping[str, Any]) -> float:
    """Duration in hours from the lifelog interval, else from content length.

    Args:
        record: A transcript.  When both ``start_time`` and ``end_time``
            parse and end is not before start, their difference is used.

    Returns:
        Duration in hours.
    """
    record = as_transcript(record)
    if record.start_time and record.end_time:
        start = parse_timestamp(record.start_time)
        end = parse_timestamp(record.end_time)
        if start is None or end is None:
            logger.warning(
                "Invalid startTime or endTime for transcript %s, estimating from content length",
                record.id,
            )
        elif end < start:
            logger.warning(
                "endTime is before startTime for transcript %s, estimating from content length",
                record.id,
            )
        else:
            return (end - start).total_seconds() / 3600
    return estimate_duration(record.content)


# ---------------------------------------------------------------------------
# Dashboard metrics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GrowthPercentages:
    recordings: float
    hours: float
    analyses: float
    bookmarks: float


@dataclass(frozen=True)
class MetricsResult:
    """Snapshot of the dashboard metric cards for one range."""

    total_recordings: int
    total_hours: float
    total_analyses: int
    total_bookmarks: int
    recent_activity: int
    growth_percentages: GrowthPercentages
    invalid_date_count: int

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready camelCase dict; NaN growth becomes None."""
        growth = self.growth_percentages
        return {
            "totalRecordings": self.total_recordings,
            "totalHours": round(self.total_hours, 2),
            "totalAnalyses": self.total_analyses,
            "totalBookmarks": self.total_bookmarks,
            "recentActivity": self.recent_activity,
            "growthPercentages": {
                "recordings": _json_number(growth.recordings),
                "hours": _json_number(growth.hours),
                "analyses": _json_number(growth.analyses),
                "bookmarks": _json_number(growth.bookmarks),
            },
            "invalidDateCount": self.invalid_date_count,
        }


def _json_number(value: float) -> float | None:
    return None if math.isnan(value) else round(value, 2)


def compute_growth_percentage(current: float, previous: float) -> float:
    """Relative change from *previous* to *current* in percent.

    Args:
        current: Metric value in the current window.
        previous: Metric value in the previous window.

    Returns:
        100.0 when previous is 0 and current is positive, 0.0 when both
        are 0, NaN when previous is below ``MIN_GROWTH_SAMPLE`` (too few
        samples to call a trend), else ``(current - previous) / previous
        * 100``.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    if previous < MIN_GROWTH_SAMPLE:
        return math.nan
    return (current - previous) / previous * 100


def _compute_period_bucket(records: list[Transcript]) -> dict[str, float]:
    return {
        "recordings": len(records),
        "hours": sum(estimate_record_duration(r) for r in records),
        "analyses": sum(1 for r in records if r.has_analysis),
        "bookmarks": sum(1 for r in records if r.is_saved),
    }


def calculate_dashboard_metrics(
    records: Iterable[Transcript | Mapping[str, Any]],
    time_range: str,
    now: datetime | None = None,
) -> MetricsResult:
    """Compute the dashboard totals and growth for *time_range*.

    Filters the current and previous windows, sums recordings, estimated
    hours, analyzed and bookmarked transcripts for each, and derives the
    growth percentage of every metric with ``compute_growth_percentage``.
    For ``all`` there is no previous window and every growth value is NaN.

    Args:
        records: Full transcript collection.
        time_range: One of ``7d``, ``30d``, ``90d``, ``all``.
        now: Reference instant (defaults to the current UTC time).

    Returns:
        A fresh ``MetricsResult``.  ``invalid_date_count`` counts each
        record with an unparseable timestamp once.

    Raises:
        InvalidTimeRangeError: If *time_range* is not a known token.
    """
    records = _as_transcripts(records)
    ref = _normalize_now(now)
    windows = resolve_time_window(time_range, ref)

    current = filter_records(records, windows.current)
    invalid_ids = set(current.invalid_ids)
    current_stats = _compute_period_bucket(current.records)

    if windows.previous is None:
        growth = GrowthPercentages(math.nan, math.nan, math.nan, math.nan)
    else:
        previous = filter_records(records, windows.previous, report_invalid=False)
        invalid_ids.update(previous.invalid_ids)
        previous_stats = _compute_period_bucket(previous.records)
        growth = GrowthPercentages(
            **{
                key: compute_growth_percentage(current_stats[key], previous_stats[key])
                for key in current_stats
            }
        )

    recent_window = resolve_time_window("7d", ref).current
    recent = filter_records(records, recent_window, report_invalid=False)

    return MetricsResult(
        total_recordings=current_stats["recordings"],
        total_hours=current_stats["hours"],
        total_analyses=current_stats["analyses"],
        total_bookmarks=current_stats["bookmarks"],
        recent_activity=len(recent.records),
        growth_percentages=growth,
        invalid_date_count=len(invalid_ids),
    )


# ---------------------------------------------------------------------------
# Hourly activity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HourlyBucket:
    hour: int
    activity: int
    label: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def bin_by_local_hour(
    records: Iterable[Transcript | Mapping[str, Any]],
    tz_resolver: Callable[[], tzinfo | None] | None = None,
) -> list[HourlyBucket]:
    """Count records per local hour of day.

    The timezone is resolved once per record.  If resolving or converting
    fails, that record alone is binned by its UTC hour.

    Args:
        records: Transcripts to bin.  Unparseable timestamps are skipped.
        tz_resolver: Zero-argument callable returning the local tzinfo.
            Defaults to the runtime's local zone rules, applied to each
            instant so DST changes are honoured.

    Returns:
        24 ``HourlyBucket`` entries, hour 0 first, zero-count hours
        included.
    """
    counts = [0] * 24

    for record in _as_transcripts(records):
        instant = parse_timestamp(record.timestamp)
        if instant is None:
            logger.warning("Skipping transcript with invalid date for hourly data: %s", record.id)
            continue
        try:
            # astimezone(None) uses the local rules in effect at *instant*
            tz = tz_resolver() if tz_resolver is not None else None
            hour = instant.astimezone(tz).hour
        except Exception as exc:
            logger.warning(
                "Error resolving local time zone for transcript %s, defaulting to UTC: %s",
                record.id,
                exc,
            )
            hour = instant.astimezone(timezone.utc).hour
        counts[hour] += 1

    return [HourlyBucket(hour=h, activity=c, label=f"{h:02d}:00") for h, c in enumerate(counts)]


def generate_hourly_activity_data(
    records: Iterable[Transcript | Mapping[str, Any]],
    time_range: str,
    now: datetime | None = None,
    tz_resolver: Callable[[], tzinfo | None] | None = None,
) -> list[HourlyBucket]:
    """Hour-of-day histogram of the records in the current window of *time_range*."""
    window = resolve_time_window(time_range, now).current
    in_window = filter_records(records, window).records
    return bin_by_local_hour(in_window, tz_resolver)


# ---------------------------------------------------------------------------
# Grouped chart series
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChartPoint:
    date: str
    value: float
    label: str


@dataclass(frozen=True)
class ChartDataResponse:
    data: list[ChartPoint]
    status: str
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": [asdict(p) for p in self.data],
            "status": self.status,
            "message": self.message,
        }


_NO_TRANSCRIPTS = "No transcripts found for the selected period."


def group_by_for_time_range(time_range: str) -> str:
    """Default chart grouping: daily up to 30 days, weekly for 90, monthly for all."""
    days = range_days(time_range)
    if days is None:
        return "month"
    return "week" if days > 30 else "day"


def resolve_group_by(time_range: str, group_by: str | None = None) -> str:
    """Return *group_by*, or the default for *time_range* when it is None.

    Raises:
        InvalidTimeRangeError: If *time_range* is not a known token.
        ValueError: If *group_by* is not one of ``GROUP_BY_CHOICES``.
    """
    if group_by is None:
        return group_by_for_time_range(time_range)
    range_days(time_range)
    if group_by not in GROUP_BY_CHOICES:
        raise ValueError(
            f"Unsupported group_by {group_by!r}; expected one of: {', '.join(GROUP_BY_CHOICES)}"
        )
    return group_by


def period_key(instant: datetime, group_by: str) -> tuple[datetime, str]:
    """Return the (sort start, display label) of the period holding *instant*.

    Periods are UTC calendar days, ISO weeks starting Monday, or months.

    Raises:
        ValueError: If *group_by* is not one of ``GROUP_BY_CHOICES``.
    """
    day = instant.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    if group_by == "day":
        return day, day.strftime("%b %d, %Y")
    if group_by == "week":
        start = day - timedelta(days=day.weekday())
        return start, start.strftime("%b %d, %Y")
    if group_by == "month":
        start = day.replace(day=1)
        return start, start.strftime("%b %Y")
    raise ValueError(f"Unsupported group_by {group_by!r}; expected one of: {', '.join(GROUP_BY_CHOICES)}")


def _group_records(
    records: list[Transcript],
    group_by: str,
) -> list[tuple[str, list[Transcript]]]:
    """Bucket records by period, returning (label, records) pairs oldest first."""
    groups: dict[datetime, tuple[str, list[Transcript]]] = {}
    for record in records:
        instant = parse_timestamp(record.timestamp)
        if instant is None:
            continue
        start, label = period_key(instant, group_by)
        groups.setdefault(start, (label, []))[1].append(record)
    return [groups[start] for start in sorted(groups)]


def _build_chart(
    records: Iterable[Transcript | Mapping[str, Any]],
    time_range: str,
    group_by: str | None,
    now: datetime | None,
    point_fn: Callable[[str, list[Transcript]], ChartPoint],
    empty_message: str,
) -> ChartDataResponse:
    grouping = resolve_group_by(time_range, group_by)
    in_window = filter_transcripts_by_time_range(records, time_range, now)
    if not in_window:
        return ChartDataResponse(data=[], status="no-data", message=_NO_TRANSCRIPTS)

    points = [point_fn(label, group) for label, group in _group_records(in_window, grouping)]
    if not points:
        return ChartDataResponse(data=[], status="no-data", message=empty_message)
    return ChartDataResponse(data=points, status="success")


def _activity_point(label: str, group: list[Transcript]) -> ChartPoint:
    n = len(group)
    return ChartPoint(date=label, value=n, label=f"{n} recording{'s' if n != 1 else ''}")


def _duration_point(label: str, group: list[Transcript]) -> ChartPoint:
    hours = round(sum(estimate_record_duration(r) for r in group), 1)
    return ChartPoint(date=label, value=hours, label=f"{hours} hours")


def _density_point(label: str, group: list[Transcript]) -> ChartPoint:
    words = sum(round(len(r.content) / CHARS_PER_WORD) for r in group)
    minutes = sum(max(1.0, estimate_record_duration(r) * 60) for r in group)
    wpm = round(words / minutes, 1) if minutes > 0 else 0.0
    return ChartPoint(date=label, value=wpm, label=f"{wpm} WPM")


def generate_activity_chart_data(
    records: Iterable[Transcript | Mapping[str, Any]],
    time_range: str,
    group_by: str | None = None,
    now: datetime | None = None,
) -> ChartDataResponse:
    """Number of recordings per period.

    Args:
        records: Full transcript collection.
        time_range: Range token selecting the current window.
        group_by: ``day``, ``week`` or ``month``; defaults per range via
            ``group_by_for_time_range``.
        now: Reference instant.

    Returns:
        ``ChartDataResponse`` with one point per non-empty period, oldest
        first, or status ``no-data``.
    """
    return _build_chart(
        records, time_range, group_by, now, _activity_point,
        "No activity data to display for the selected period and grouping.",
    )


def generate_duration_chart_data(
    records: Iterable[Transcript | Mapping[str, Any]],
    time_range: str,
    group_by: str | None = None,
    now: datetime | None = None,
) -> ChartDataResponse:
    """Estimated recorded hours per period (1 dp)."""
    return _build_chart(
        records, time_range, group_by, now, _duration_point,
        "No duration data to display for the selected period and grouping.",
    )


def generate_density_chart_data(
    records: Iterable[Transcript | Mapping[str, Any]],
    time_range: str,
    group_by: str | None = None,
    now: datetime | None = None,
) -> ChartDataResponse:
    """Conversation density in words per minute per period.

    Each transcript contributes at least one minute so short snippets do
    not blow up the ratio.
    """
    return _build_chart(
        records, time_range, group_by, now, _density_point,
        "No conversation density data to display for the selected period and grouping.",
    )


# ---------------------------------------------------------------------------
# Recent activity feed
# ---------------------------------------------------------------------------

def _relative_time(instant: datetime, now: datetime) -> str:
    diff_hours = int((now - instant).total_seconds() // 3600)
    if diff_hours < 1:
        return "Just now"
    if diff_hours < 24:
        return f"{diff_hours} hour{'s' if diff_hours != 1 else ''} ago"
    diff_days = diff_hours // 24
    return f"{diff_days} day{'s' if diff_days != 1 else ''} ago"


def get_recent_activity(
    records: Iterable[Transcript | Mapping[str, Any]],
    limit: int = 5,
    time_range: str = "7d",
    now: datetime | None = None,
) -> list[dict[str, str]]:
    """Build the newest-first activity feed shown beside the charts.

    Each of the *limit* most recent transcripts yields a ``recording``
    item, plus an ``analysis`` item when it has a summary and a
    ``bookmark`` item when it is starred or bookmarked.

    Args:
        records: Full transcript collection.
        limit: Maximum number of transcripts considered and items returned.
        time_range: Range token selecting the window.
        now: Reference instant for the window and the relative times.

    Returns:
        List of dicts with keys id, type, title, description, timestamp,
        relativeTime.
    """
    ref = _normalize_now(now)
    in_window = filter_transcripts_by_time_range(records, time_range, ref)
    dated = [(parse_timestamp(r.timestamp), r) for r in in_window]
    dated.sort(key=lambda pair: pair[0], reverse=True)

    items: list[tuple[datetime, dict[str, str]]] = []
    for instant, record in dated[:limit]:
        relative = _relative_time(instant, ref)
        base = {"timestamp": record.timestamp, "relativeTime": relative}
        items.append((instant, {
            "id": f"recording-{record.id}",
            "type": "recording",
            "title": "New recording processed",
            "description": record.title,
            **base,
        }))
        if record.has_analysis:
            items.append((instant, {
                "id": f"analysis-{record.id}",
                "type": "analysis",
                "title": "AI analysis completed",
                "description": f"Generated insights for {record.title}",
                **base,
            }))
        if record.is_saved:
            items.append((instant, {
                "id": f"bookmark-{record.id}",
                "type": "bookmark",
                "title": "Recording bookmarked",
                "description": record.title,
                **base,
            }))

    items.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in items[:limit]]


# ---------------------------------------------------------------------------
# Dashboard payload
# ---------------------------------------------------------------------------

def compute_dashboard(
    records: Iterable[Transcript | Mapping[str, Any]],
    time_range: str = "7d",
    now: datetime | None = None,
    tz_resolver: Callable[[], tzinfo | None] | None = None,
) -> dict[str, Any]:
    """Run every synchronous analytics computation for one range.

    Args:
        records: Full transcript collection.
        time_range: Range token.
        now: Reference instant shared by every computation.
        tz_resolver: Timezone resolver for the hourly histogram.

    Returns:
        Dict with keys generated_at, time_range, metrics, hourly, charts
        (activity, duration, density) and recent_activity, all JSON-ready.
    """
    records = _as_transcripts(records)
    ref = _normalize_now(now)
    metrics = calculate_dashboard_metrics(records, time_range, ref)
    hourly = generate_hourly_activity_data(records, time_range, ref, tz_resolver)

    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "time_range": time_range,
        "metrics": metrics.to_dict(),
        "hourly": [b.to_dict() for b in hourly],
        "charts": {
            "activity": generate_activity_chart_data(records, time_range, now=ref).to_dict(),
            "duration": generate_duration_chart_data(records, time_range, now=ref).to_dict(),
            "density": generate_density_chart_data(records, time_range, now=ref).to_dict(),
        },
        "recent_activity": get_recent_activity(records, time_range=time_range, now=ref),
    }


def build_dashboard_payload(
    path: str = "transcripts.json",
    time_range: str = "7d",
    now: datetime | None = None,
) -> dict[str, Any]:
    """One-call entry point: load the export and compute the dashboard.

    Raises:
        FileNotFoundError: If the transcripts file does not exist.
        json.JSONDecodeError: If the file contains invalid JSON.
        InvalidTimeRangeError: If *time_range* is not a known token.
    """
    return compute_dashboard(load_transcripts(path), time_range, now)


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------

def save_analytics_files(
    payload: dict[str, Any],
    output_dir: str = "transcript_analytics",
) -> None:
    """Write JSON/CSV analytics files to output_dir.

    Creates the output directory if it doesn't exist and writes:
    dashboard.json, hourly_activity.csv, activity_chart.csv and (if the
    payload has a ``sentiment`` section) sentiment_trend.csv.

    Args:
        payload: Dict from ``compute_dashboard``, optionally extended with
            a ``sentiment`` dict holding ``points``.
        output_dir: Directory path for output files.
    """
    os.makedirs(output_dir, exist_ok=True)

    with open(f"{output_dir}/dashboard.json", "w") as f:
        json.dump(payload, f, indent=2)

    with open(f"{output_dir}/hourly_activity.csv", "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["hour", "activity", "label"])
        writer.writeheader()
        writer.writerows(payload["hourly"])

    with open(f"{output_dir}/activity_chart.csv", "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["date", "value", "label"])
        writer.writeheader()
        writer.writerows(payload["charts"]["activity"]["data"])

    sentiment = payload.get("sentiment")
    if sentiment:
        with open(f"{output_dir}/sentiment_trend.csv", "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=["record_id", "timestamp", "value"])
            writer.writeheader()
            writer.writerows(sentiment["points"])


def _format_growth(value: float | None) -> str:
    if value is None:
        return "n/a (insufficient data)"
    return f"{value:+.1f}%"


def print_summary_report(payload: dict[str, Any], output_dir: str = "transcript_analytics") -> None:
    """Print the CLI summary report to stdout.

    Args:
        payload: Dict from ``compute_dashboard``.
        output_dir: Directory the files were written to, for the footer.
    """
    metrics = payload["metrics"]
    growth = metrics["growthPercentages"]
    label = next((r["label"] for r in TIME_RANGES if r["value"] == payload["time_range"]), payload["time_range"])

    print(f"\n{'=' * 60}")
    print(f"Transcript Activity Summary ({label})")
    print(f"{'=' * 60}")
    print(f"Recordings: {metrics['totalRecordings']:,}  growth {_format_growth(growth['recordings'])}")
    print(f"Hours (estimated): {metrics['totalHours']:.1f}  growth {_format_growth(growth['hours'])}")
    print(f"AI Analyses: {metrics['totalAnalyses']:,}  growth {_format_growth(growth['analyses'])}")
    print(f"Bookmarks: {metrics['totalBookmarks']:,}  growth {_format_growth(growth['bookmarks'])}")
    print(f"Recordings in last 7 days: {metrics['recentActivity']:,}")
    if metrics["invalidDateCount"]:
        print(f"Skipped {metrics['invalidDateCount']:,} transcript(s) with invalid dates")

    busiest = max(payload["hourly"], key=lambda b: b["activity"])
    if busiest["activity"]:
        print(f"Busiest Hour: {busiest['label']} ({busiest['activity']:,} recordings)")

    sentiment = payload.get("sentiment")
    if sentiment and sentiment["points"]:
        values = [p["value"] for p in sentiment["points"]]
        print(f"Average Sentiment: {sum(values) / len(values):+.1f} over {len(values):,} transcripts")

    recent = payload.get("recent_activity") or []
    if recent:
        print("\nRecent Activity:")
        for item in recent:
            print(f"  {item['relativeTime']:<14} {item['title']}: {item['description']}")

    print(f"{'=' * 60}")
    print(f"\nAnalytics data has been saved to the '{output_dir}' directory:")
    print("1. dashboard.json - Full dashboard payload")
    print("2. hourly_activity.csv - Recordings per local hour")
    print("3. activity_chart.csv - Recordings per period")
    if sentiment:
        print("4. sentiment_trend.csv - Sentiment score per transcript")
