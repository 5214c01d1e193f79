from __future__ import annotations

from typing import Iterable, List

from dynamic_memory.runtime.models import ChatMessage


def render_transcript(messages: Iterable[ChatMessage]) -> str:
    return "".join(m.render() for m in messages)


def paginate(messages: Iterable[ChatMessage], page_size: int) -> List[str]:
    """
    Cut the rendered transcript into fixed-size character pages.

    Pages ignore message boundaries; only the last page may be shorter.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    text = render_transcript(messages)
    return [text[i : i + page_size] for i in range(0, len(text), page_size)]
