"""Gemini-backed text analysis used as the external sentiment source."""

from __future__ import annotations

import json
import os
import re
from typing import Any

from google import genai
from google.genai import types as genai_types

from sentiment import SENTIMENT_KIND

DEFAULT_MODEL = "gemini-2.5-flash"
MAX_CONTENT_CHARS = 4000

_SENTIMENT_PROMPT = """
You are a sentiment classifier for personal conversation transcripts.

Rules:
1) Judge the overall tone of the speakers from the text only.
2) score is an integer from -100 (very negative) to 100 (very positive).
3) label is one of "positive", "negative", "neutral".
4) Output STRICT JSON only, no markdown and no extra commentary.

Return exactly:
{{"score": 0, "label": "neutral"}}

Transcript:
{content}
"""


class AnalysisUnavailableError(RuntimeError):
    """The Gemini API could not produce an answer."""


def _extract_json_object(raw: str) -> dict | None:
    raw = raw.strip()
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", raw)
        if not match:
            return None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return parsed if isinstance(parsed, dict) else None


class GeminiAnalyzer:
    """Sends transcripts to Gemini for sentiment classification.

    The API key comes from the argument or ``GEMINI_API_KEY``; the model
    from the argument, ``GEMINI_MODEL`` or ``DEFAULT_MODEL``.  Without a
    key every call raises ``AnalysisUnavailableError``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: Any = None,
    ):
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        self.model = model or os.getenv("GEMINI_MODEL", DEFAULT_MODEL)
        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = genai.Client(api_key=self.api_key)
        else:
            self.client = None

    async def analyze(self, content: str, kind: str = SENTIMENT_KIND) -> dict[str, Any]:
        """Classify *content* and return ``{"data": ...}``.

        ``data`` is the parsed JSON object when the reply contains one,
        otherwise the stripped reply text (a bare label, say).

        Raises:
            ValueError: If *kind* is not ``"sentiment"``.
            AnalysisUnavailableError: If no client is configured, the
                request fails, or the reply is empty.
        """
        if kind != SENTIMENT_KIND:
            raise ValueError(f"Unsupported analysis kind {kind!r}")
        if self.client is None:
            raise AnalysisUnavailableError("GEMINI_API_KEY is not set")

        prompt = _SENTIMENT_PROMPT.format(content=(content or "")[:MAX_CONTENT_CHARS])
        try:
            resp = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(temperature=0),
            )
        except Exception as exc:
            raise AnalysisUnavailableError(f"Gemini request failed: {exc}") from exc

        raw = resp.text
        if not raw:
            raise AnalysisUnavailableError("Gemini returned an empty response")

        parsed = _extract_json_object(raw)
        return {"data": parsed if parsed is not None else raw.strip()}
