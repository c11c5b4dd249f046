"""Sentiment trend for lifelog transcripts.

Scores each transcript through an external analysis call, falling back to
a small word-list heuristic whenever the call fails or answers with
something unusable.  Scores are memoized per transcript id in a
``SentimentCache`` owned by the generator.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Mapping, Union

from analytics import (
    ChartPoint,
    Transcript,
    as_transcript,
    filter_records,
    parse_timestamp,
    period_key,
    resolve_time_window,
)

logger = logging.getLogger(__name__)

SENTIMENT_KIND = "sentiment"

SCORE_MIN = -100.0
SCORE_MAX = 100.0

LABEL_SCORES = {
    "positive": 75.0,
    "negative": -75.0,
    "neutral": 0.0,
}

POSITIVE_WORDS = frozenset({
    "good", "great", "excellent", "amazing", "wonderful", "fantastic", "love",
    "like", "enjoy", "happy", "excited", "awesome", "perfect", "brilliant",
    "outstanding",
})
NEGATIVE_WORDS = frozenset({
    "bad", "terrible", "awful", "hate", "dislike", "frustrated", "angry", "sad",
    "disappointed", "worried", "stressed", "difficult", "problem", "issue",
    "wrong",
})

_WORD_RE = re.compile(r"[a-z']+")

Analyzer = Callable[[str, str], Union[Mapping[str, Any], Awaitable[Mapping[str, Any]]]]


def _clamp_score(value: float) -> float:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def fallback_sentiment_score(content: str) -> float:
    """Score *content* from the positive and negative word lists.

    Returns:
        ``(positive - negative) / total_words * 100`` clamped to
        [-100, 100]; 0.0 for empty content.
    """
    words = _WORD_RE.findall((content or "").lower())
    if not words:
        return 0.0
    positive = sum(1 for w in words if w in POSITIVE_WORDS)
    negative = sum(1 for w in words if w in NEGATIVE_WORDS)
    return _clamp_score((positive - negative) / len(words) * 100)


# ---------------------------------------------------------------------------
# Response classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NumericScore:
    value: float


@dataclass(frozen=True)
class LabelScore:
    label: str

    @property
    def value(self) -> float:
        return LABEL_SCORES[self.label]


@dataclass(frozen=True)
class Unusable:
    shape: str


SentimentResponse = Union[NumericScore, LabelScore, Unusable]


def _is_real_number(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _as_label(value: object) -> str | None:
    if isinstance(value, str):
        label = value.strip().lower()
        if label in LABEL_SCORES:
            return label
    return None


def _describe_shape(data: object) -> str:
    if isinstance(data, Mapping):
        return f"dict with keys {sorted(str(k) for k in data)}"
    if isinstance(data, str):
        return f"str {data[:40]!r}"
    return type(data).__name__


def classify_sentiment_response(data: object) -> SentimentResponse:
    """Classify the ``data`` of an analysis response.

    Numbers (and mappings carrying a numeric ``score``) become a clamped
    ``NumericScore``; ``positive``/``negative``/``neutral`` labels, in any
    case, become a ``LabelScore``; everything else is ``Unusable``.
    """
    if _is_real_number(data):
        return NumericScore(_clamp_score(float(data)))
    label = _as_label(data)
    if label is not None:
        return LabelScore(label)
    if isinstance(data, Mapping):
        score = data.get("score")
        if _is_real_number(score):
            return NumericScore(_clamp_score(float(score)))
        label = _as_label(data.get("label"))
        if label is not None:
            return LabelScore(label)
    return Unusable(_describe_shape(data))


def _response_data(response: object) -> object:
    if isinstance(response, Mapping) and "data" in response:
        return response["data"]
    return response


# ---------------------------------------------------------------------------
# Cache and trend generator
# ---------------------------------------------------------------------------

class SentimentCache:
    """In-memory map of transcript id to sentiment score.

    Lives as long as its owner and is never persisted or evicted.
    """

    def __init__(self) -> None:
        self._scores: dict[str, float] = {}

    def get(self, record_id: str) -> float | None:
        return self._scores.get(record_id)

    def set(self, record_id: str, score: float) -> None:
        self._scores[record_id] = score

    def clear(self) -> None:
        self._scores.clear()

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._scores

    def __len__(self) -> int:
        return len(self._scores)


@dataclass(frozen=True)
class SentimentPoint:
    record_id: str
    timestamp: datetime
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "timestamp": self.timestamp.isoformat(),
            "value": round(self.value, 2),
        }


class SentimentTrendGenerator:
    """Produces per-transcript sentiment points for a time range.

    Args:
        analyzer: ``analyze(content, kind)`` returning ``{"data": ...}``,
            either directly or as an awaitable.  Failures never escape
            this class.
        cache: Score cache; a fresh one is created when omitted.
    """

    def __init__(self, analyzer: Analyzer, cache: SentimentCache | None = None):
        self.analyzer = analyzer
        self.cache = cache if cache is not None else SentimentCache()

    async def score(self, record: Transcript | Mapping[str, Any]) -> float:
        """Return the cached score for *record*, computing it on a miss."""
        record = as_transcript(record)
        cached = self.cache.get(record.id)
        if cached is not None:
            return cached
        value = await self._score_uncached(record)
        self.cache.set(record.id, value)
        return value

    async def _score_uncached(self, record: Transcript) -> float:
        try:
            response = self.analyzer(record.content, SENTIMENT_KIND)
            if inspect.isawaitable(response):
                response = await response
        except Exception as exc:
            logger.warning(
                "Sentiment analysis failed for transcript %s, using local fallback: %s",
                record.id,
                exc,
            )
            return fallback_sentiment_score(record.content)

        result = classify_sentiment_response(_response_data(response))
        if isinstance(result, Unusable):
            logger.warning(
                "Unusable sentiment response for transcript %s (%s), using local fallback",
                record.id,
                result.shape,
            )
            return fallback_sentiment_score(record.content)
        return result.value

    async def generate(
        self,
        records: Iterable[Transcript | Mapping[str, Any]],
        time_range: str,
        now: datetime | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[SentimentPoint]:
        """Score every transcript in the current window of *time_range*.

        Transcripts are scored one at a time.  When *cancel_event* is set,
        no further transcripts are scored and the points gathered so far
        are returned.

        Args:
            records: Full transcript collection.
            time_range: Range token.
            now: Reference instant for the window.
            cancel_event: Optional cancellation signal.

        Returns:
            ``SentimentPoint`` list in chronological order.

        Raises:
            InvalidTimeRangeError: If *time_range* is not a known token.
        """
        window = resolve_time_window(time_range, now).current
        in_window = filter_records(records, window).records

        points: list[SentimentPoint] = []
        for record in in_window:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(
                    "Sentiment trend cancelled after %d of %d transcripts",
                    len(points),
                    len(in_window),
                )
                break
            value = await self.score(record)
            points.append(SentimentPoint(record.id, parse_timestamp(record.timestamp), value))

        points.sort(key=lambda p: p.timestamp)
        return points


def group_sentiment_points(points: list[SentimentPoint], group_by: str) -> list[ChartPoint]:
    """Average sentiment per day/week/month, oldest period first."""
    groups: dict[datetime, tuple[str, list[float]]] = {}
    for point in points:
        start, label = period_key(point.timestamp, group_by)
        groups.setdefault(start, (label, []))[1].append(point.value)

    result = []
    for start in sorted(groups):
        label, values = groups[start]
        avg = round(sum(values) / len(values), 1)
        result.append(ChartPoint(date=label, value=avg, label=f"{avg} sentiment score"))
    return result
