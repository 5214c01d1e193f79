from __future__ import annotations

import time
from typing import List, Optional, Sequence

from dynamic_memory.runtime.models import ChatMessage
from dynamic_memory.runtime.window import SYSTEM_NAME

SUMMARY_LABEL = "[The following is a summarized history of past events, used for context]"


def make_summary_message(digests: Sequence[str], now_ms: Optional[int] = None) -> ChatMessage:
    return ChatMessage(
        name=SYSTEM_NAME,
        text=f"{SUMMARY_LABEL}\n" + "\n".join(digests),
        is_user=False,
        is_system=True,
        send_date=now_ms if now_ms is not None else int(time.time() * 1000),
    )


def rebuild_chat(
    preamble: Sequence[ChatMessage],
    digests: Sequence[str],
    present: Sequence[ChatMessage],
) -> Optional[List[ChatMessage]]:
    """
    Replace the summarized history with a single synthetic system message.

    Returns None (no change) when there is nothing to inject.
    """
    if not digests:
        return None
    return [*preamble, make_summary_message(digests), *present]
