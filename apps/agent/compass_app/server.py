"""Local HTTP and WebSocket surface consumed by the web front end."""

from __future__ import annotations

import asyncio
import json
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from compass_core import AppConfig, CollaboratorUnavailable, HardwareAnalyzer, RealtimeSample, Subscription
from compass_core.logging_setup import get_logger
from compass_ollama import OllamaMonitor


class ModelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    model_name: str | None = Field(default=None, alias="modelName")
    prompt: str | None = None


def _ok(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def _fail(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


class _SocketSession:
    """One connected socket and its optional realtime subscription."""

    def __init__(self, ws: WebSocket, analyzer: HardwareAnalyzer, monitor: OllamaMonitor) -> None:
        self.ws = ws
        self.analyzer = analyzer
        self.monitor = monitor
        self._sub: Subscription[RealtimeSample] | None = None
        self._pump: asyncio.Task | None = None

    async def send_initial(self) -> None:
        analysis = self.analyzer.get_cached_analysis()
        if analysis is not None:
            await self.ws.send_json({"type": "hardware_info", "data": analysis.to_dict()})
        status = await run_in_threadpool(self.monitor.check_status)
        await self.ws.send_json({"type": "ollama_status", "data": status.to_dict()})

    async def handle(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except ValueError as exc:
            await self.ws.send_json({"type": "error", "message": f"Invalid message: {exc}"})
            return
        kind = message.get("type") if isinstance(message, dict) else None

        if kind == "start_realtime":
            self.start_realtime()
        elif kind == "stop_realtime":
            await self.stop_realtime()
        elif kind == "get_hardware":
            try:
                analysis = await run_in_threadpool(self.analyzer.run_full_analysis)
            except CollaboratorUnavailable as exc:
                await self.ws.send_json({"type": "error", "message": str(exc)})
                return
            await self.ws.send_json({"type": "hardware_info", "data": analysis.to_dict()})
        elif kind == "get_ollama_status":
            status = await run_in_threadpool(self.monitor.check_status)
            await self.ws.send_json({"type": "ollama_status", "data": status.to_dict()})
        else:
            await self.ws.send_json({"type": "error", "message": f"Unknown message type: {kind}"})

    def start_realtime(self) -> None:
        if self._sub is not None:
            return
        loop = asyncio.get_running_loop()
        ready = asyncio.Event()

        def wake() -> None:
            try:
                loop.call_soon_threadsafe(ready.set)
            except RuntimeError:
                pass  # event loop already closed; the session is gone

        self._sub = self.analyzer.subscribe(on_deliver=wake)
        self._pump = asyncio.create_task(self._drain(self._sub, ready))

    async def stop_realtime(self) -> None:
        sub, pump = self._sub, self._pump
        self._sub = None
        self._pump = None
        if sub is None:
            return
        # Unsubscribing may join the poll thread.
        await run_in_threadpool(self.analyzer.unsubscribe, sub)
        if pump is not None:
            pump.cancel()

    async def _drain(self, sub: Subscription[RealtimeSample], ready: asyncio.Event) -> None:
        # Waits on the event loop; no worker thread is held per socket.
        while not sub.closed:
            await ready.wait()
            ready.clear()
            sample = sub.get(timeout=0)
            while sample is not None and not sub.closed:
                try:
                    await self.ws.send_json({"type": "realtime_stats", "data": sample.to_dict()})
                except (WebSocketDisconnect, RuntimeError):
                    return
                sample = sub.get(timeout=0)


def create_app(
    analyzer: HardwareAnalyzer,
    monitor: OllamaMonitor,
    cfg: AppConfig | None = None,
    version: str = "1.0.0",
) -> FastAPI:
    cfg = cfg or AppConfig()
    log = get_logger()
    started_at = datetime.now(timezone.utc)
    boot = time.monotonic()
    sessions: set[_SocketSession] = set()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        analyzer.close()

    app = FastAPI(title="Ollama Compass", version=version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.server.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.state.analyzer = analyzer
    app.state.monitor = monitor
    app.state.sessions = sessions

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        log.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "event": "http_request",
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
            },
        )
        return response

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": version,
            "uptime": round(time.monotonic() - boot, 3),
        }

    @app.get("/api/hardware/analyze")
    def hardware_analyze():
        try:
            analysis = analyzer.run_full_analysis()
        except CollaboratorUnavailable as exc:
            return _fail(500, str(exc))
        return _ok(analysis.to_dict())

    @app.get("/api/hardware/info")
    def hardware_info():
        analysis = analyzer.get_cached_analysis()
        if analysis is None:
            return _fail(404, "No hardware analysis available. Run /api/hardware/analyze first.")
        return _ok(analysis.to_dict())

    @app.get("/api/hardware/realtime")
    def hardware_realtime():
        sample = analyzer.get_realtime_sample()
        if sample is None:
            return _fail(500, "Realtime stats unavailable")
        return _ok(sample.to_dict())

    @app.get("/api/ollama/status")
    def ollama_status():
        return _ok(monitor.check_status().to_dict())

    @app.post("/api/ollama/install")
    def ollama_install(req: ModelRequest):
        if not req.model_name:
            return _fail(400, "Model name is required")
        result = monitor.install_model(req.model_name)
        if not result.success:
            return _fail(400, result.error or "Model installation failed")
        return _ok(result.to_dict())

    @app.get("/api/ollama/models/{name:path}")
    def ollama_model_info(name: str):
        result = monitor.model_info(name)
        if not result.success:
            return _fail(404, result.error or "Model not found")
        return _ok(result.to_dict())

    @app.delete("/api/ollama/models/{name:path}")
    def ollama_delete(name: str):
        result = monitor.delete_model(name)
        if not result.success:
            return _fail(400, result.error or "Model deletion failed")
        return _ok(result.to_dict())

    @app.post("/api/ollama/test")
    def ollama_test(req: ModelRequest):
        if not req.model_name:
            return _fail(400, "Model name is required")
        if req.prompt:
            result = monitor.test_generation(req.model_name, req.prompt)
        else:
            result = monitor.test_generation(req.model_name)
        return {"success": result.success, "data": result.to_dict()}

    @app.get("/api/cli/info")
    def cli_info():
        return _ok(
            {
                "version": version,
                "isRunning": True,
                "startTime": started_at.isoformat(),
                "connectedClients": len(sessions),
                "realtimeState": analyzer.broadcast.state.value,
                "endpoints": {
                    "hardware": "/api/hardware/*",
                    "ollama": "/api/ollama/*",
                    "websocket": f"ws://localhost:{cfg.server.port}/ws",
                },
            }
        )

    @app.websocket("/ws")
    async def realtime_socket(ws: WebSocket):
        await ws.accept()
        session = _SocketSession(ws, analyzer, monitor)
        sessions.add(session)
        log.info("websocket client connected", extra={"event": "ws_connected", "subscribers": len(sessions)})
        try:
            await session.send_initial()
            while True:
                await session.handle(await ws.receive_text())
        except WebSocketDisconnect:
            pass
        finally:
            await session.stop_realtime()
            sessions.discard(session)
            log.info("websocket client disconnected", extra={"event": "ws_disconnected", "subscribers": len(sessions)})

    return app
