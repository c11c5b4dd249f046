"""transcript_summary.py

Print a dashboard summary for a lifelog transcript export and save the
analytics as JSON/CSV files.

    python transcript_summary.py transcripts.json --range 30d --sentiment

``--sentiment`` scores each transcript through Gemini (``GEMINI_API_KEY``)
and falls back to the local word lists when the API is unavailable.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from analytics import (
    TIME_RANGES,
    Transcript,
    compute_dashboard,
    group_by_for_time_range,
    load_transcripts,
    print_summary_report,
    save_analytics_files,
)
from gemini_service import GeminiAnalyzer
from sentiment import SentimentTrendGenerator, group_sentiment_points

logger = logging.getLogger(__name__)


def _compute_sentiment(records: list[Transcript], time_range: str) -> dict:
    generator = SentimentTrendGenerator(GeminiAnalyzer().analyze)
    points = asyncio.run(generator.generate(records, time_range))
    logger.info("Scored sentiment for %d transcripts", len(points))
    series = group_sentiment_points(points, group_by_for_time_range(time_range))
    return {
        "points": [p.to_dict() for p in points],
        "series": [{"date": s.date, "value": s.value, "label": s.label} for s in series],
    }


def main(
    path: str = "transcripts.json",
    time_range: str = "7d",
    output_dir: str = "transcript_analytics",
    with_sentiment: bool = False,
) -> None:
    """Load *path*, compute the dashboard for *time_range* and report it.

    Exits with status 1 when the export is missing or not valid JSON.
    """
    try:
        records = load_transcripts(path)
    except FileNotFoundError:
        print(f"Error: transcripts file not found: {path}", file=sys.stderr)
        sys.exit(1)
    except ValueError as exc:
        print(f"Error: could not read {path}: {exc}", file=sys.stderr)
        sys.exit(1)

    payload = compute_dashboard(records, time_range)
    if with_sentiment:
        payload["sentiment"] = _compute_sentiment(records, time_range)

    save_analytics_files(payload, output_dir)
    print_summary_report(payload, output_dir)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[1])
    parser.add_argument("path", nargs="?", default="transcripts.json", help="Transcript export JSON")
    parser.add_argument(
        "--range",
        dest="time_range",
        default="7d",
        choices=[r["value"] for r in TIME_RANGES],
        help="Time range to summarise (default: 7d)",
    )
    parser.add_argument("--output-dir", default="transcript_analytics", help="Where to write JSON/CSV files")
    parser.add_argument("--sentiment", action="store_true", help="Include the sentiment trend")
    return parser.parse_args(argv)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = _parse_args()
    main(args.path, args.time_range, args.output_dir, args.sentiment)
