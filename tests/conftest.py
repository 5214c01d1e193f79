import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from dynamic_memory.runtime.models import ChatMessage, Settings


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DYNAMIC_MEMORY_API_KEY", raising=False)
    monkeypatch.delenv("DYNAMIC_MEMORY_CONFIG", raising=False)


def sys_msg(text: str, name: str = "System") -> ChatMessage:
    return ChatMessage(name=name, text=text, is_system=True)


def user_msg(text: str, name: str = "User") -> ChatMessage:
    return ChatMessage(name=name, text=text, is_user=True)


def bot_msg(text: str, name: str = "Bot") -> ChatMessage:
    return ChatMessage(name=name, text=text)


def completion(content: Any) -> Dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class RecordingTransport:
    """httpx mock transport that records requests and replays canned responses."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        enabled=True,
        page_size=2000,
        present_situation_size=1000,
        api_url="https://llm.example/v1/chat/completions",
        api_key="sk-test",
        summarize_model="test/model",
    )
