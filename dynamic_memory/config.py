from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dynamic_memory.runtime.models import Settings

logger = logging.getLogger("dynamic_memory.config")

MODULE_NAME = "dynamic-memory"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "enabled": True,
    "pageSize": 2000,
    "presentSituationSize": 1000,
    "apiUrl": "https://openrouter.ai/api/v1/chat/completions",
    "apiKey": "",
    "summarizeModel": "openai/gpt-3.5-turbo",
}

_BOOL_KEYS = ("enabled",)
_POSITIVE_INT_KEYS = ("pageSize", "presentSituationSize")
_STR_KEYS = ("apiUrl", "apiKey", "summarizeModel")


class SettingsError(ValueError):
    pass


def config_path() -> str:
    return os.getenv("DYNAMIC_MEMORY_CONFIG", "dynamic_memory.json")


def load_config_uncached(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Uncached config read. Settings edits must take effect on the next run without restarting.
    """
    p = Path(path or config_path())
    if not p.exists():
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except Exception as e:
        logger.error("could not read %s: %s", p, e)
        return {}
    return data if isinstance(data, dict) else {}


def _get(cfg: Dict[str, Any], *path: str, default: Any = None) -> Any:
    cur: Any = cfg
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def gateway_host(path: Optional[str] = None) -> str:
    cfg = load_config_uncached(path)
    return str(_get(cfg, "gateway", "host", default="127.0.0.1"))


def gateway_port(path: Optional[str] = None) -> int:
    cfg = load_config_uncached(path)
    try:
        return int(_get(cfg, "gateway", "port", default=3337))
    except Exception:
        return 3337


def summarizer_timeout_s(path: Optional[str] = None) -> float:
    cfg = load_config_uncached(path)
    try:
        return float(_get(cfg, "summarizer", "timeout_s", default=60))
    except Exception:
        return 60.0


def summarizer_referer(path: Optional[str] = None) -> str:
    cfg = load_config_uncached(path)
    return str(_get(cfg, "summarizer", "referer", default="https://sillytavern.app"))


def summarizer_title(path: Optional[str] = None) -> str:
    cfg = load_config_uncached(path)
    return str(_get(cfg, "summarizer", "title", default="SillyTavern"))


def validate_settings(values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Coerce and check a partial settings block. Unknown keys are rejected.
    """
    out: Dict[str, Any] = {}
    for key, value in values.items():
        if key not in DEFAULT_SETTINGS:
            raise SettingsError(f"unknown setting: {key}")
        if key in _BOOL_KEYS:
            if isinstance(value, str):
                value = value.strip().lower() in ("1", "true", "yes", "on")
            out[key] = bool(value)
        elif key in _POSITIVE_INT_KEYS:
            try:
                n = int(value)
            except (TypeError, ValueError):
                raise SettingsError(f"{key} must be an integer, got {value!r}")
            if n <= 0:
                raise SettingsError(f"{key} must be positive, got {n}")
            out[key] = n
        elif key in _STR_KEYS:
            out[key] = "" if value is None else str(value).strip()
    return out


def resolve_settings(block: Dict[str, Any], source: Any = None) -> Dict[str, Any]:
    """
    Read every recognized key on its own. Unknown keys are ignored and a bad
    value falls back to its default without touching the other keys.
    """
    out: Dict[str, Any] = {}
    for key, default in DEFAULT_SETTINGS.items():
        if key not in block:
            out[key] = default
            continue
        try:
            out.update(validate_settings({key: block[key]}))
        except SettingsError as e:
            logger.error("invalid setting in %s (%s); using default %r", source, e, default)
            out[key] = default
    return out


class SettingsStore:
    """
    Extension settings kept inside a larger host settings file.

    The block for this extension lives under MODULE_NAME. Reads fill in any
    missing recognized key from DEFAULT_SETTINGS; writes are debounced.
    """

    def __init__(self, path: Optional[str] = None, debounce_s: float = 1.0):
        self.path = Path(path or config_path())
        self.debounce_s = debounce_s
        self._host: Dict[str, Any] = {}
        self._pending: Optional[asyncio.TimerHandle] = None

    def load(self) -> Dict[str, Any]:
        # A pending debounced write is newer than the file.
        if self._pending is None:
            self._host = load_config_uncached(str(self.path))
        block = self._host.get(MODULE_NAME)
        if not isinstance(block, dict):
            block = copy.deepcopy(DEFAULT_SETTINGS)
            self._host[MODULE_NAME] = block
        for key, default in DEFAULT_SETTINGS.items():
            if key not in block:
                block[key] = default
        return block

    def settings(self) -> Settings:
        s = Settings.from_dict(resolve_settings(self.load(), self.path))
        if not s.api_key:
            s.api_key = os.getenv("DYNAMIC_MEMORY_API_KEY", "").strip()
        return s

    def update(self, values: Dict[str, Any]) -> Dict[str, Any]:
        clean = validate_settings(values)
        block = self.load()
        block.update(clean)
        self.save_debounced()
        return block

    def save_debounced(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return
        if self._pending is not None:
            self._pending.cancel()
        self._pending = loop.call_later(self.debounce_s, self.flush)

    def flush(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._host, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("settings written to %s", self.path)

    def flush_pending(self) -> None:
        if self._pending is not None:
            self.flush()

    def public(self) -> Dict[str, Any]:
        """Settings block for display, with the credential masked."""
        block = dict(self.load())
        if block.get("apiKey"):
            block["apiKey"] = "********"
        return block
