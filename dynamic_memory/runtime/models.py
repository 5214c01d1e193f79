"""
Data models for the dynamic memory pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# Keys of the host chat message that the pipeline interprets. Everything else
# is carried through untouched in ChatMessage.extra.
_KNOWN_KEYS = ("name", "mes", "is_user", "is_system", "send_date")


@dataclass(frozen=True)
class ChatMessage:
    """
    A single chat message as seen by the downstream renderer.

    Fields cannot be reassigned, but `extra` is a plain dict, so messages are
    unhashable and cannot be used as set members or dict keys.
    """
    name: str
    text: str
    is_user: bool = False
    is_system: bool = False
    send_date: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)

    __hash__ = None  # type: ignore[assignment]

    def render(self) -> str:
        """Transcript line used for both windowing and pagination."""
        return f"{self.name}: {self.text}\n"

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extra,
            "name": self.name,
            "mes": self.text,
            "is_user": self.is_user,
            "is_system": self.is_system,
            "send_date": self.send_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            name=str(data.get("name", "") or ""),
            text=str(data.get("mes", "") or ""),
            is_user=bool(data.get("is_user", False)),
            is_system=bool(data.get("is_system", False)),
            send_date=data.get("send_date"),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )


@dataclass
class Settings:
    """Resolved extension settings for one run."""
    enabled: bool = True
    page_size: int = 2000
    present_situation_size: int = 1000
    api_url: str = "https://openrouter.ai/api/v1/chat/completions"
    api_key: str = ""
    summarize_model: str = "openai/gpt-3.5-turbo"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "pageSize": self.page_size,
            "presentSituationSize": self.present_situation_size,
            "apiUrl": self.api_url,
            "apiKey": self.api_key,
            "summarizeModel": self.summarize_model,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        return cls(
            enabled=bool(data["enabled"]),
            page_size=int(data["pageSize"]),
            present_situation_size=int(data["presentSituationSize"]),
            api_url=str(data["apiUrl"]),
            api_key=str(data["apiKey"] or ""),
            summarize_model=str(data["summarizeModel"]),
        )


@dataclass
class ChatWindow:
    """Disjoint, order-preserving partition of a chat."""
    preamble: List[ChatMessage]
    history: List[ChatMessage]
    present: List[ChatMessage]

    def present_situation(self) -> str:
        return "\n".join(f"{m.name}: {m.text}" for m in self.present)


class SkipReason(str, Enum):
    """Why a page contributed no digest."""
    MISSING_API_KEY = "missing_api_key"
    HTTP_STATUS = "http_status"
    INVALID_RESPONSE = "invalid_response"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class Digest:
    """Relevance-filtered digest of one page. May be empty."""
    text: str


@dataclass(frozen=True)
class Skipped:
    reason: SkipReason
    detail: Optional[str] = None


PageResult = Union[Digest, Skipped]
