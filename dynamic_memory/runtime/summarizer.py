"""
Relevance-filtered page summarization over an OpenAI-compatible chat completions endpoint.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from dynamic_memory import config
from dynamic_memory.runtime.models import Digest, PageResult, Settings, Skipped, SkipReason
from dynamic_memory.runtime.notify import Notifier, NullNotifier

logger = logging.getLogger("dynamic_memory.summarizer")


def build_prompt(page: str, present_situation: str) -> str:
    return (
        f"Present Situation:\n{present_situation}\n\n"
        f"Memory:\n{page}\n\n"
        "Based on the present situation, what details from the memory are relevant? "
        "Be brief. If nothing is relevant, respond with a blank message."
    )


class PageSummarizer:
    """
    One chat-completions request per history page.

    Failures never propagate: every outcome is a Digest or a Skipped with the
    reason, and failures are also logged and reported through the notifier.
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        notifier: Optional[Notifier] = None,
        timeout_s: Optional[float] = None,
        referer: Optional[str] = None,
        title: Optional[str] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s or config.summarizer_timeout_s())
        self.notifier: Notifier = notifier or NullNotifier()
        self.referer = referer if referer is not None else config.summarizer_referer()
        self.title = title if title is not None else config.summarizer_title()

    @classmethod
    def from_config(
        cls,
        path: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        notifier: Optional[Notifier] = None,
    ) -> "PageSummarizer":
        """Build a summarizer from the "summarizer" section of the settings file at `path`."""
        return cls(
            client=client,
            notifier=notifier,
            timeout_s=config.summarizer_timeout_s(path),
            referer=config.summarizer_referer(path),
            title=config.summarizer_title(path),
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
        }

    def _fail(self, reason: SkipReason, notice: str, detail: Optional[str] = None) -> Skipped:
        self.notifier.error(f"Dynamic Memory: {notice}")
        return Skipped(reason=reason, detail=detail)

    async def summarize_page(self, page: str, present_situation: str, settings: Settings) -> PageResult:
        if not settings.api_key:
            logger.error("API key is not set")
            return self._fail(
                SkipReason.MISSING_API_KEY,
                "API key is not set. Please set it in the extension settings.",
            )

        payload: Dict[str, Any] = {
            "model": settings.summarize_model,
            "messages": [{"role": "user", "content": build_prompt(page, present_situation)}],
        }

        try:
            r = await self._client.post(settings.api_url, json=payload, headers=self._headers(settings.api_key))
        except Exception as e:
            logger.error("error during API call: %r", e)
            return self._fail(
                SkipReason.TRANSPORT_ERROR,
                "Error during API call. See console for details.",
                detail=str(e),
            )

        if not r.is_success:
            logger.error("API request failed with status %s", r.status_code)
            logger.error("error details: %s", r.text)
            return self._fail(
                SkipReason.HTTP_STATUS,
                f"API request failed with status {r.status_code}. See console for details.",
                detail=str(r.status_code),
            )

        content = _first_choice_content(r)
        if content is None:
            logger.error("invalid API response: %s", r.text)
            return self._fail(
                SkipReason.INVALID_RESPONSE,
                "Invalid API response. See console for details.",
                detail=r.text,
            )
        return Digest(text=content.strip())


def _first_choice_content(r: httpx.Response) -> Optional[str]:
    try:
        data = r.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if content is None:
        return ""
    # Structured (list) content is not a plain-text answer.
    if not isinstance(content, str):
        return None
    return content
