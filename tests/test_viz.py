"""Tests for transcript_viz.py chart rendering."""

from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import pandas as pd

from transcript_viz import plot_hourly_activity, plot_sentiment_trend, render_charts


def _hourly_df():
    return pd.DataFrame({
        "hour": list(range(24)),
        "activity": [h % 4 for h in range(24)],
        "label": [f"{h:02d}:00" for h in range(24)],
    })


def _sentiment_df():
    return pd.DataFrame({
        "record_id": ["a", "b", "c"],
        "timestamp": ["2024-06-12T09:00:00+00:00", "2024-06-13T09:00:00+00:00", "2024-06-14T09:00:00+00:00"],
        "value": [10.0, -20.0, 45.5],
    })


class TestPlots:
    def test_hourly_png(self, tmp_path):
        path = tmp_path / "hourly.png"
        plot_hourly_activity(_hourly_df(), str(path))
        assert path.stat().st_size > 0

    def test_sentiment_png(self, tmp_path):
        path = tmp_path / "sentiment.png"
        plot_sentiment_trend(_sentiment_df(), str(path))
        assert path.stat().st_size > 0


class TestRenderCharts:
    def test_renders_available_csvs(self, tmp_path):
        _hourly_df().to_csv(tmp_path / "hourly_activity.csv", index=False)
        _sentiment_df().to_csv(tmp_path / "sentiment_trend.csv", index=False)

        written = render_charts(str(tmp_path))

        assert len(written) == 2
        assert all((tmp_path / name).exists() for name in ("hourly_activity.png", "sentiment_trend.png"))

    def test_skips_missing_sentiment(self, tmp_path):
        _hourly_df().to_csv(tmp_path / "hourly_activity.csv", index=False)
        assert render_charts(str(tmp_path)) == [str(tmp_path / "hourly_activity.png")]

    def test_empty_dir(self, tmp_path):
        assert render_charts(str(tmp_path)) == []
