from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventType:
    MEMORY_UPDATED = "memory.updated"


def create_response(
    request_id: str,
    *,
    ok: bool,
    payload: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None,
) -> dict:
    return {"type": "res", "id": request_id, "ok": ok, "payload": payload, "error": error}


def create_event(event: str, payload: Dict[str, Any], seq: Optional[int] = None) -> dict:
    return {"type": "event", "event": event, "payload": payload, "seq": seq}


class ChatMessageIn(BaseModel):
    """Host chat message. Unknown host fields pass through untouched."""
    model_config = ConfigDict(extra="allow")

    name: str = ""
    mes: str = ""
    is_user: bool = False
    is_system: bool = False
    send_date: Any = None


class InterceptRequest(BaseModel):
    chat: List[ChatMessageIn]
    contextSize: Optional[int] = None
    type: Optional[str] = None


class InterceptResponse(BaseModel):
    changed: bool
    chat: List[Dict[str, Any]]
    memory: List[str]
    notices: List[str] = Field(default_factory=list)


class SettingsUpdate(BaseModel):
    enabled: Optional[bool] = None
    pageSize: Optional[int] = None
    presentSituationSize: Optional[int] = None
    apiUrl: Optional[str] = None
    apiKey: Optional[str] = None
    summarizeModel: Optional[str] = None
