import asyncio
import logging
from typing import Any, Dict, Optional, Set, Tuple

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from dynamic_memory.config import SettingsError, SettingsStore
from dynamic_memory.protocol import (
    EventType,
    InterceptRequest,
    InterceptResponse,
    SettingsUpdate,
    create_event,
    create_response,
)
from dynamic_memory.runtime.interceptor import DynamicMemory
from dynamic_memory.runtime.models import ChatMessage
from dynamic_memory.runtime.notify import NoticeCollector
from dynamic_memory.runtime.summarizer import PageSummarizer

load_dotenv()

logger = logging.getLogger("dynamic_memory.gateway")

VERSION = "1.0.0"


class Gateway:
    """
    Host-side adapter around one DynamicMemory pipeline.

    Serializes intercept runs, swaps the returned chat in for the caller and
    pushes snapshot changes to connected memory viewers.
    """

    def __init__(self, store: Optional[SettingsStore] = None, memory: Optional[DynamicMemory] = None):
        self.store = store or SettingsStore()
        self.notices = NoticeCollector()
        self.memory = memory or DynamicMemory(
            settings_provider=self.store.settings,
            summarizer=PageSummarizer.from_config(str(self.store.path)),
        )
        self.memory.summarizer.notifier = self.notices
        self.clients: Set[WebSocket] = set()
        self._run_lock = asyncio.Lock()
        self._seq = 0
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe = self.memory.snapshot.subscribe(self._on_snapshot)

    async def shutdown(self) -> None:
        self._unsubscribe()
        self.store.flush_pending()
        await self.memory.close()

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def _on_snapshot(self, digests: Tuple[str, ...]) -> None:
        if not self.clients:
            return
        ev = create_event(EventType.MEMORY_UPDATED, {"memory": list(digests)}, seq=self._next_seq())
        task = asyncio.get_running_loop().create_task(self._broadcast_event(ev))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _broadcast_event(self, event: dict) -> None:
        for ws in list(self.clients):
            try:
                await ws.send_json(event)
            except Exception:
                self.clients.discard(ws)

    async def intercept(self, req: InterceptRequest) -> InterceptResponse:
        original = [m.model_dump() for m in req.chat]
        chat = [ChatMessage.from_dict(d) for d in original]
        async with self._run_lock:
            self.notices.drain()
            new_chat = await self.memory.intercept(chat, req.contextSize, None, req.type)
            notices = self.notices.drain()
        if new_chat is None:
            return InterceptResponse(changed=False, chat=original, memory=list(self.memory.snapshot.read()), notices=notices)
        return InterceptResponse(
            changed=True,
            chat=[m.to_dict() for m in new_chat],
            memory=list(self.memory.snapshot.read()),
            notices=notices,
        )


def create_app(gateway: Optional[Gateway] = None) -> FastAPI:
    gateway = gateway or Gateway()
    app = FastAPI(title="Dynamic Memory Gateway", version=VERSION)
    app.state.gateway = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("shutdown")
    async def _shutdown():
        await gateway.shutdown()

    @app.get("/health")
    async def health():
        return {"ok": True, "version": VERSION}

    @app.post("/intercept", response_model=InterceptResponse)
    async def intercept(req: InterceptRequest):
        return await gateway.intercept(req)

    @app.get("/memory")
    async def memory():
        digests = gateway.memory.snapshot.read()
        return {"memory": list(digests), "text": gateway.memory.snapshot.as_text()}

    @app.get("/settings")
    async def get_settings():
        return gateway.store.public()

    @app.put("/settings")
    async def put_settings(update: SettingsUpdate):
        values: Dict[str, Any] = update.model_dump(exclude_none=True)
        try:
            gateway.store.update(values)
        except SettingsError as e:
            raise HTTPException(status_code=422, detail=str(e))
        logger.info("settings updated: %s", sorted(values))
        return gateway.store.public()

    @app.websocket("/ws")
    async def ws_endpoint(websocket: WebSocket):
        await websocket.accept()
        try:
            req = await websocket.receive_json()
            if not _is_req(req) or req.get("method") != "connect":
                await websocket.send_json(create_response(_req_id(req), ok=False, error="First frame must be connect"))
                await websocket.close()
                return
            gateway.clients.add(websocket)
            await websocket.send_json(
                create_response(
                    req["id"],
                    ok=True,
                    payload={"gatewayVersion": VERSION, "memory": list(gateway.memory.snapshot.read())},
                )
            )
            while True:
                req = await websocket.receive_json()
                if not _is_req(req):
                    await websocket.send_json(create_response(_req_id(req), ok=False, error="Invalid request"))
                    continue
                if req["method"] == "memory.get":
                    await websocket.send_json(
                        create_response(req["id"], ok=True, payload={"memory": list(gateway.memory.snapshot.read())})
                    )
                else:
                    await websocket.send_json(create_response(req["id"], ok=False, error=f"Unknown method: {req['method']}"))
        except WebSocketDisconnect:
            pass
        finally:
            gateway.clients.discard(websocket)

    return app


def _is_req(v: Any) -> bool:
    return isinstance(v, dict) and v.get("type") == "req" and isinstance(v.get("id"), str) and isinstance(v.get("method"), str)


def _req_id(v: Any) -> str:
    return v.get("id", "unknown") if isinstance(v, dict) else "unknown"
