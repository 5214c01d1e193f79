from __future__ import annotations

from typing import List, Optional

from dynamic_memory.runtime.models import ChatMessage, ChatWindow

SYSTEM_NAME = "System"


def is_preamble(message: ChatMessage) -> bool:
    if message.is_user:
        return False
    return message.is_system or message.name == SYSTEM_NAME


def split_window(chat: List[ChatMessage], present_situation_size: int) -> Optional[ChatWindow]:
    """
    Partition a chat into preamble, history and present.

    Returns None when every message belongs to the leading system preamble.
    History is empty when the workable chat fits under the present size, or
    when not even the most recent message fits (no present situation).
    """
    start = None
    for i, message in enumerate(chat):
        if not is_preamble(message):
            start = i
            break
    if start is None:
        return None

    preamble = list(chat[:start])
    workable = list(chat[start:])

    # Whole messages only, newest first.
    split = len(workable)
    used = 0
    for i in range(len(workable) - 1, -1, -1):
        size = len(workable[i].render())
        if used + size > present_situation_size:
            break
        used += size
        split = i

    if split == len(workable):
        return ChatWindow(preamble=preamble, history=[], present=workable)

    return ChatWindow(preamble=preamble, history=workable[:split], present=workable[split:])
