"""
AI summaries of the most upvoted complaints.

Sends a single chat-completion request to OpenRouter. The endpoint never
fails because of the provider: a missing answer or a transport error turns
into a fixed fallback sentence so the dashboard still has something to show.
"""

from __future__ import annotations

from typing import Optional, Sequence
import logging

import httpx

from .config import Settings
from .models import TimeRange
from .observability import upstream_failures_total
from .schemas import ComplaintDigest

logger = logging.getLogger("civic_api.summary")

NO_COMPLAINTS_TEXT = "No complaints found for the selected criteria."
EMPTY_RESPONSE_TEXT = "Unable to generate summary at this time."
UNAVAILABLE_TEXT = "Summary generation is temporarily unavailable."


class SummaryGenerator:
    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._url = settings.openrouter_url
        self._api_key = settings.openrouter_api_key
        self._model = settings.openrouter_model
        self._max_tokens = settings.summary_max_tokens
        self._referer = settings.app_referer
        self._title = settings.app_title
        self._default_region = settings.default_region

    def build_prompt(
        self,
        complaints: Sequence[ComplaintDigest],
        location: Optional[str] = None,
        time_range: Optional[TimeRange] = None,
    ) -> str:
        lines = "\n".join(
            f"{c.issue_type}: {c.title} - {c.description} ({c.upvotes} upvotes)" for c in complaints
        )
        period = ""
        if time_range is not None and TimeRange(time_range) is not TimeRange.all:
            period = f" over the past {TimeRange(time_range).value}"
        return (
            f"Analyze these civic complaints from {location or self._default_region}{period}:\n\n"
            f"{lines}\n\n"
            "Provide a brief summary highlighting:\n"
            "1. Most common issue types\n"
            "2. Key areas of concern\n"
            "3. Notable trends or patterns\n"
            "4. Any urgent issues that need attention\n\n"
            "Keep the summary concise and actionable for city officials."
        )

    async def generate(
        self,
        complaints: Sequence[ComplaintDigest],
        location: Optional[str] = None,
        time_range: Optional[TimeRange] = None,
    ) -> str:
        if not complaints:
            return NO_COMPLAINTS_TEXT
        if not self._api_key:
            logger.warning("OPENROUTER_API_KEY not configured. AI summaries disabled.")
            return UNAVAILABLE_TEXT

        payload = {
            "model": self._model,
            "messages": [{"role": "user", "content": self.build_prompt(complaints, location, time_range)}],
            "max_tokens": self._max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._referer,
            "X-Title": self._title,
        }
        try:
            resp = await self._client.post(self._url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            upstream_failures_total.labels(service="summary").inc()
            logger.error("AI summary generation failed: %s", exc)
            return UNAVAILABLE_TEXT

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            logger.warning("AI summary response had no content")
            return EMPTY_RESPONSE_TEXT
        return content.strip()


__all__ = [
    "EMPTY_RESPONSE_TEXT",
    "NO_COMPLAINTS_TEXT",
    "SummaryGenerator",
    "UNAVAILABLE_TEXT",
]
