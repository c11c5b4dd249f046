"""Render PNG charts from the files written by transcript_summary.py."""

from __future__ import annotations

import os

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns


def plot_hourly_activity(df: pd.DataFrame, path: str) -> None:
    """Bar chart of recordings per local hour of day."""
    fig, ax = plt.subplots(figsize=(15, 8))
    sns.barplot(data=df, x="hour", y="activity", color="skyblue", ax=ax)
    ax.set_title("Recordings by Hour of Day", fontsize=14, pad=20)
    ax.set_xlabel("Hour (local time)", fontsize=12)
    ax.set_ylabel("Number of Recordings", fontsize=12)
    ax.grid(True, axis="y", alpha=0.3)
    fig.tight_layout()
    fig.savefig(path, dpi=300, bbox_inches="tight")
    plt.close(fig)


def plot_sentiment_trend(df: pd.DataFrame, path: str) -> None:
    """Per-transcript sentiment with a 7-point rolling average."""
    df = df.copy()
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df = df.sort_values("timestamp")
    df["rolling_avg"] = df["value"].rolling(window=7, min_periods=1).mean()

    fig, ax = plt.subplots(figsize=(15, 8))
    ax.scatter(df["timestamp"], df["value"], alpha=0.5, color="lightcoral", label="Transcript Sentiment")
    ax.plot(df["timestamp"], df["rolling_avg"], color="red", linewidth=2, label="7-point Average")
    ax.axhline(0, color="grey", linewidth=1, alpha=0.5)
    ax.set_ylim(-105, 105)
    ax.set_title("Sentiment Trend", fontsize=14, pad=20)
    ax.set_xlabel("Date", fontsize=12)
    ax.set_ylabel("Sentiment Score (-100 to 100)", fontsize=12)
    ax.grid(True, alpha=0.3)
    ax.legend()
    plt.setp(ax.get_xticklabels(), rotation=45)
    fig.tight_layout()
    fig.savefig(path, dpi=300, bbox_inches="tight")
    plt.close(fig)


def render_charts(output_dir: str = "transcript_analytics") -> list[str]:
    """Render every chart whose source CSV exists in *output_dir*.

    Returns:
        Paths of the PNG files written.
    """
    written = []

    hourly_csv = os.path.join(output_dir, "hourly_activity.csv")
    if os.path.exists(hourly_csv):
        path = os.path.join(output_dir, "hourly_activity.png")
        plot_hourly_activity(pd.read_csv(hourly_csv), path)
        written.append(path)

    sentiment_csv = os.path.join(output_dir, "sentiment_trend.csv")
    if os.path.exists(sentiment_csv):
        df = pd.read_csv(sentiment_csv)
        if not df.empty:
            path = os.path.join(output_dir, "sentiment_trend.png")
            plot_sentiment_trend(df, path)
            written.append(path)

    return written


if __name__ == "__main__":
    for chart in render_charts():
        print(f"Saved {chart}")
