"""Tests for the sentiment trend generator, its cache and the lexicon fallback."""

from __future__ import annotations

import asyncio
import math
from unittest.mock import AsyncMock, Mock

import pytest

from analytics import InvalidTimeRangeError
from sentiment import (
    LabelScore,
    NumericScore,
    SentimentCache,
    SentimentTrendGenerator,
    Unusable,
    classify_sentiment_response,
    fallback_sentiment_score,
    group_sentiment_points,
)
from helpers import NOW, days_ago, make_transcript

POSITIVE_TEXT = "This is a good, great, fantastic day."


def _run(coro):
    return asyncio.run(coro)


# ── TestFallbackSentiment ───────────────────


class TestFallbackSentiment:
    def test_positive_text(self):
        assert fallback_sentiment_score(POSITIVE_TEXT) > 0

    def test_negative_text(self):
        assert fallback_sentiment_score("A bad, terrible problem with the awful issue.") <= 0

    def test_no_lexicon_words(self):
        assert fallback_sentiment_score("The meeting is at noon.") == 0

    @pytest.mark.parametrize("content", ["", "   ", "...", None])
    def test_empty_content(self, content):
        assert fallback_sentiment_score(content) == 0

    def test_score_formula(self):
        # 3 positive of 7 words
        assert fallback_sentiment_score(POSITIVE_TEXT) == pytest.approx(3 / 7 * 100)

    def test_bounded(self):
        assert fallback_sentiment_score("great") == 100
        assert fallback_sentiment_score("awful") == -100

    def test_case_insensitive(self):
        assert fallback_sentiment_score("GREAT Day") == pytest.approx(50.0)


# ── TestClassifySentimentResponse ───────────


class TestClassifySentimentResponse:
    def test_number(self):
        assert classify_sentiment_response(42) == NumericScore(42.0)

    def test_number_clamped(self):
        assert classify_sentiment_response(250) == NumericScore(100.0)
        assert classify_sentiment_response(-180.5) == NumericScore(-100.0)

    @pytest.mark.parametrize("label,value", [("positive", 75), ("NEGATIVE", -75), (" Neutral ", 0)])
    def test_labels(self, label, value):
        result = classify_sentiment_response(label)
        assert isinstance(result, LabelScore)
        assert result.value == value

    def test_score_mapping(self):
        assert classify_sentiment_response({"score": 30, "label": "positive"}) == NumericScore(30.0)

    def test_label_only_mapping(self):
        assert classify_sentiment_response({"label": "negative"}) == LabelScore("negative")

    @pytest.mark.parametrize("data", [True, math.nan, "mixed", None, [1, 2], {"foo": 1}, {"score": "high"}])
    def test_unusable(self, data):
        assert isinstance(classify_sentiment_response(data), Unusable)

    def test_unusable_names_shape(self):
        assert "foo" in classify_sentiment_response({"foo": 1}).shape


# ── TestSentimentCache ──────────────────────


class TestSentimentCache:
    def test_get_set(self):
        cache = SentimentCache()
        assert cache.get("a") is None
        cache.set("a", 12.0)
        assert cache.get("a") == 12.0
        assert "a" in cache
        assert len(cache) == 1

    def test_zero_score_is_a_hit(self):
        cache = SentimentCache()
        cache.set("a", 0.0)
        assert cache.get("a") == 0.0

    def test_clear(self):
        cache = SentimentCache()
        cache.set("a", 1.0)
        cache.clear()
        assert len(cache) == 0


# ── TestSentimentTrendGenerator ─────────────


class TestSentimentTrendGenerator:
    def test_numeric_score_used_directly(self):
        analyzer = AsyncMock(return_value={"data": 40})
        gen = SentimentTrendGenerator(analyzer)
        points = _run(gen.generate([make_transcript("s1", days_ago(1))], "7d", NOW))
        assert [p.value for p in points] == [40.0]
        analyzer.assert_awaited_once_with("This is test content.", "sentiment")

    def test_label_mapped(self):
        gen = SentimentTrendGenerator(AsyncMock(return_value={"data": "Negative"}))
        points = _run(gen.generate([make_transcript("s1", days_ago(1))], "7d", NOW))
        assert points[0].value == -75.0

    def test_second_run_served_from_cache(self):
        analyzer = AsyncMock(return_value={"data": 10})
        gen = SentimentTrendGenerator(analyzer)
        records = [make_transcript("s1", days_ago(1)), make_transcript("s2", days_ago(2))]
        first = _run(gen.generate(records, "7d", NOW))
        second = _run(gen.generate(records, "7d", NOW))
        assert analyzer.await_count == 2
        assert [p.value for p in first] == [p.value for p in second]

    def test_same_id_scored_once(self):
        analyzer = AsyncMock(return_value={"data": 10})
        gen = SentimentTrendGenerator(analyzer)
        record = make_transcript("s1", days_ago(1))
        _run(gen.score(record))
        _run(gen.score(record))
        assert analyzer.await_count == 1

    def test_rejected_call_uses_fallback(self, caplog):
        async def analyzer(content, kind):
            if "wonderful" in content:
                raise RuntimeError("API quota exceeded")
            return {"data": 5}

        gen = SentimentTrendGenerator(analyzer)
        records = [
            make_transcript("s1", days_ago(2), content="Plain status update."),
            make_transcript("s2", days_ago(1), content="What a great and wonderful day."),
        ]
        points = {p.record_id: p.value for p in _run(gen.generate(records, "7d", NOW))}
        assert points["s1"] == 5.0
        assert points["s2"] > 0
        assert "s2" in caplog.text
        assert "fallback" in caplog.text
        assert "API quota exceeded" in caplog.text

    def test_unusable_response_uses_fallback(self, caplog):
        gen = SentimentTrendGenerator(AsyncMock(return_value={"data": {"mood": "sunny"}}))
        points = _run(gen.generate([make_transcript("u1", days_ago(1), content=POSITIVE_TEXT)], "7d", NOW))
        assert points[0].value == pytest.approx(fallback_sentiment_score(POSITIVE_TEXT))
        assert "u1" in caplog.text
        assert "mood" in caplog.text

    def test_fallback_result_is_cached(self):
        analyzer = AsyncMock(side_effect=RuntimeError("down"))
        gen = SentimentTrendGenerator(analyzer)
        record = make_transcript("s1", days_ago(1), content=POSITIVE_TEXT)
        _run(gen.score(record))
        _run(gen.score(record))
        assert analyzer.await_count == 1
        assert "s1" in gen.cache

    def test_sync_analyzer_supported(self):
        analyzer = Mock(return_value={"data": -20})
        gen = SentimentTrendGenerator(analyzer)
        points = _run(gen.generate([make_transcript("s1", days_ago(1))], "7d", NOW))
        assert points[0].value == -20.0

    def test_chronological_order(self):
        gen = SentimentTrendGenerator(AsyncMock(return_value={"data": 0}))
        records = [
            make_transcript("mid", days_ago(2)),
            make_transcript("new", days_ago(1)),
            make_transcript("old", days_ago(3)),
        ]
        points = _run(gen.generate(records, "7d", NOW))
        assert [p.record_id for p in points] == ["old", "mid", "new"]

    def test_window_filtering(self):
        analyzer = AsyncMock(return_value={"data": 0})
        gen = SentimentTrendGenerator(analyzer)
        records = [
            make_transcript("in", days_ago(1)),
            make_transcript("out", days_ago(10)),
            make_transcript("bad", "invalid-date"),
        ]
        points = _run(gen.generate(records, "7d", NOW))
        assert [p.record_id for p in points] == ["in"]
        assert analyzer.await_count == 1

    def test_cancelled_before_start(self):
        analyzer = AsyncMock(return_value={"data": 0})
        gen = SentimentTrendGenerator(analyzer)

        async def run():
            event = asyncio.Event()
            event.set()
            return await gen.generate([make_transcript("s1", days_ago(1))], "7d", NOW, cancel_event=event)

        assert _run(run()) == []
        analyzer.assert_not_awaited()

    def test_cancelled_midway_returns_partial(self):
        async def run():
            event = asyncio.Event()

            async def analyzer(content, kind):
                event.set()
                return {"data": 50}

            gen = SentimentTrendGenerator(analyzer)
            records = [make_transcript(f"s{i}", days_ago(i + 1)) for i in range(3)]
            return await gen.generate(records, "7d", NOW, cancel_event=event)

        points = _run(run())
        assert len(points) == 1
        assert points[0].record_id == "s0"

    def test_injected_cache_shared(self):
        cache = SentimentCache()
        cache.set("s1", 33.0)
        analyzer = AsyncMock(return_value={"data": 0})
        gen = SentimentTrendGenerator(analyzer, cache=cache)
        points = _run(gen.generate([make_transcript("s1", days_ago(1))], "7d", NOW))
        assert points[0].value == 33.0
        analyzer.assert_not_awaited()

    def test_fresh_cache_per_generator(self):
        assert SentimentTrendGenerator(AsyncMock()).cache is not SentimentTrendGenerator(AsyncMock()).cache

    def test_invalid_range(self):
        gen = SentimentTrendGenerator(AsyncMock())
        with pytest.raises(InvalidTimeRangeError):
            _run(gen.generate([], "1y", NOW))

    def test_point_to_dict(self):
        gen = SentimentTrendGenerator(AsyncMock(return_value={"data": 12.346}))
        point = _run(gen.generate([make_transcript("s1", "2024-06-14T09:00:00Z")], "7d", NOW))[0]
        assert point.to_dict() == {"record_id": "s1", "timestamp": "2024-06-14T09:00:00+00:00", "value": 12.35}


# ── TestGroupSentimentPoints ────────────────


class TestGroupSentimentPoints:
    def test_daily_average(self):
        gen = SentimentTrendGenerator(AsyncMock(side_effect=[{"data": 10}, {"data": 30}, {"data": -50}]))
        records = [
            make_transcript("a", "2024-06-14T09:00:00Z"),
            make_transcript("b", "2024-06-14T15:00:00Z"),
            make_transcript("c", "2024-06-13T09:00:00Z"),
        ]
        points = _run(gen.generate(records, "7d", NOW))
        series = group_sentiment_points(points, "day")
        assert [(s.date, s.value) for s in series] == [("Jun 13, 2024", -50.0), ("Jun 14, 2024", 20.0)]
        assert series[1].label == "20.0 sentiment score"

    def test_empty(self):
        assert group_sentiment_points([], "week") == []
