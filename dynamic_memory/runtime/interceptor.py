"""
Dynamic memory pipeline: window the chat, summarize older history page by page, splice the digest back in.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Sequence

from dynamic_memory.runtime.models import ChatMessage, Digest, PageResult, Settings
from dynamic_memory.runtime.notify import Notifier
from dynamic_memory.runtime.pagination import paginate
from dynamic_memory.runtime.reconstruct import rebuild_chat
from dynamic_memory.runtime.snapshot import MemorySnapshot
from dynamic_memory.runtime.summarizer import PageSummarizer
from dynamic_memory.runtime.window import split_window

logger = logging.getLogger("dynamic_memory.pipeline")

# Very short chats are never worth summarizing.
MIN_CHAT_LENGTH = 3


def collect_digests(results: Sequence[PageResult]) -> List[str]:
    """Non-empty digests in page order; skipped pages and blank answers drop out."""
    return [r.text for r in results if isinstance(r, Digest) and r.text]


class DynamicMemory:
    """
    Owns one summarizer and the memory snapshot it feeds.

    The host must not call intercept() again while a run is in flight.
    """

    def __init__(
        self,
        *,
        settings_provider: Callable[[], Settings],
        summarizer: Optional[PageSummarizer] = None,
        snapshot: Optional[MemorySnapshot] = None,
        notifier: Optional[Notifier] = None,
    ):
        self._settings_provider = settings_provider
        self.summarizer = summarizer or PageSummarizer(notifier=notifier)
        if notifier is not None:
            self.summarizer.notifier = notifier
        self.snapshot = snapshot or MemorySnapshot()
        self.last_results: List[PageResult] = []

    async def close(self) -> None:
        await self.summarizer.close()

    async def intercept(
        self,
        chat: Sequence[ChatMessage],
        context_size: Optional[int] = None,
        abort: Any = None,
        generation_type: Optional[str] = None,
    ) -> Optional[List[ChatMessage]]:
        """
        Run the pipeline once over `chat`.

        Returns the new message list, or None when the chat should be left as is.
        context_size, abort and generation_type are part of the host's interceptor
        signature and are not used.
        """
        settings: Settings = self._settings_provider()
        if not settings.enabled or len(chat) < MIN_CHAT_LENGTH:
            logger.debug("skipped: enabled=%s messages=%d", settings.enabled, len(chat))
            return None

        logger.info("interceptor triggered (%d messages)", len(chat))

        window = split_window(list(chat), settings.present_situation_size)
        if window is None:
            logger.debug("skipped: chat is all system preamble")
            return None
        if not window.history:
            logger.debug("no history to summarize")
            return None

        pages = paginate(window.history, settings.page_size)
        present_situation = window.present_situation()

        results: List[PageResult] = []
        for i, page in enumerate(pages):
            result = await self.summarizer.summarize_page(page, present_situation, settings)
            logger.debug("page %d/%d: %s", i + 1, len(pages), result)
            results.append(result)
        self.last_results = results

        digests = collect_digests(results)
        self.snapshot.publish(digests)

        new_chat = rebuild_chat(window.preamble, digests, window.present)
        if new_chat is None:
            logger.info("no relevant history found in %d page(s); chat left unchanged", len(pages))
            return None

        logger.info(
            "chat context reconstructed: %d history messages -> %d digest(s) from %d page(s)",
            len(window.history),
            len(digests),
            len(pages),
        )
        return new_chat
