from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol


class Notifier(Protocol):
    """User-visible, non-blocking notices (toasts in a UI, lines in a terminal)."""

    def error(self, message: str) -> None:
        ...


@dataclass
class NoticeCollector:
    """
    Notifier that buffers notices so a surface can show them after a run.
    """

    notices: List[str] = field(default_factory=list)

    def error(self, message: str) -> None:
        self.notices.append(message)

    def drain(self) -> List[str]:
        out = list(self.notices)
        self.notices.clear()
        return out


class NullNotifier:
    def error(self, message: str) -> None:
        pass
