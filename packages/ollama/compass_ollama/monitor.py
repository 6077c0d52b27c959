"""Client for the local Ollama daemon HTTP API."""

from __future__ import annotations

import http.client
import json
import logging
import os
import socket
import ssl
import time
import urllib.error
import urllib.request
from datetime import datetime, timezone
from typing import Any

import certifi
import psutil

from .models import (
    CONNECTION_REFUSED,
    HOST_NOT_FOUND,
    TIMEOUT,
    UNKNOWN_ERROR,
    ErrorInfo,
    ModelOperation,
    OllamaModel,
    OllamaStatus,
    ProcessInfo,
)


DEFAULT_HOST = "http://localhost:11434"
DEFAULT_PROMPT = "Hello, how are you?"

_log = logging.getLogger("ollama_compass.ollama")

# URLError and HTTPError are OSError subclasses; ValueError covers bad JSON.
_REQUEST_ERRORS = (OSError, ValueError, http.client.HTTPException)


def _build_ssl_context() -> ssl.SSLContext:
    ca_bundle = os.environ.get("OLLAMA_COMPASS_CA_BUNDLE", "").strip()
    if ca_bundle:
        return ssl.create_default_context(cafile=ca_bundle)
    return ssl.create_default_context(cafile=certifi.where())


def categorize_error(exc: BaseException) -> ErrorInfo:
    reason: Any = exc.reason if isinstance(exc, urllib.error.URLError) else exc
    if isinstance(reason, ConnectionRefusedError):
        return ErrorInfo(
            CONNECTION_REFUSED,
            "Ollama is not running or not accepting connections",
            "Try starting Ollama with: ollama serve",
        )
    if isinstance(reason, socket.gaierror):
        return ErrorInfo(
            HOST_NOT_FOUND,
            "Cannot resolve Ollama host",
            "Check your OLLAMA_HOST environment variable",
        )
    if isinstance(reason, (TimeoutError, socket.timeout)):
        return ErrorInfo(
            TIMEOUT,
            "Connection to Ollama timed out",
            "Ollama may be starting up or overloaded",
        )
    return ErrorInfo(
        UNKNOWN_ERROR,
        str(reason) or "Unknown error occurred",
        "Check Ollama installation and try restarting",
    )


def ollama_process_info() -> ProcessInfo:
    try:
        count = 0
        for proc in psutil.process_iter(["name"]):
            name = (proc.info.get("name") or "").lower()
            if "ollama" in name:
                count += 1
    except psutil.Error as exc:
        return ProcessInfo(is_running=False, details=str(exc), error="Could not check process status")
    if count:
        return ProcessInfo(is_running=True, process_count=count, details=f"Found {count} Ollama process(es)")
    return ProcessInfo(is_running=False, details="No Ollama processes found")


class OllamaMonitor:
    def __init__(
        self,
        host: str | None = None,
        status_timeout_s: float = 5.0,
        version_timeout_s: float = 3.0,
        pull_timeout_s: float = 300.0,
        generate_timeout_s: float = 30.0,
    ) -> None:
        host = host or os.environ.get("OLLAMA_HOST", "").strip() or DEFAULT_HOST
        if "://" not in host:
            host = f"http://{host}"
        self.host = host.rstrip("/")
        self.status_timeout_s = status_timeout_s
        self.version_timeout_s = version_timeout_s
        self.pull_timeout_s = pull_timeout_s
        self.generate_timeout_s = generate_timeout_s
        self.last_status: OllamaStatus | None = None

    def _request(self, method: str, path: str, payload: dict[str, Any] | None, timeout: float) -> Any:
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(
            f"{self.host}{path}",
            data=data,
            method=method,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        context = _build_ssl_context() if self.host.startswith("https://") else None
        with urllib.request.urlopen(req, timeout=timeout, context=context) as resp:
            body = resp.read()
        if not body:
            return {}
        return json.loads(body.decode("utf-8"))

    def check_status(self) -> OllamaStatus:
        checked = datetime.now(timezone.utc).isoformat()
        try:
            tags = self._request("GET", "/api/tags", None, self.status_timeout_s)
        except _REQUEST_ERRORS as exc:
            error = categorize_error(exc)
            _log.info(f"ollama not reachable at {self.host}: {error.type}", extra={"event": "ollama_unreachable"})
            process = ollama_process_info()
            status = OllamaStatus(
                is_running=process.is_running,
                is_reachable=False,
                host=self.host,
                last_checked=checked,
                process=process,
                error=error,
            )
            self.last_status = status
            return status

        version = None
        try:
            info = self._request("GET", "/api/version", None, self.version_timeout_s)
        except _REQUEST_ERRORS:
            _log.warning("could not get ollama version info", extra={"event": "ollama_version_failed"})
        else:
            if isinstance(info, dict):
                version = info.get("version")

        models = tuple(
            OllamaModel(
                name=str(m.get("name", "")),
                size=m.get("size"),
                modified_at=m.get("modified_at"),
                digest=m.get("digest"),
            )
            for m in ((tags.get("models") if isinstance(tags, dict) else None) or [])
            if isinstance(m, dict)
        )
        status = OllamaStatus(
            is_running=True,
            is_reachable=True,
            host=self.host,
            last_checked=checked,
            process=ollama_process_info(),
            version=version,
            models=models,
        )
        self.last_status = status
        return status

    def install_model(self, name: str) -> ModelOperation:
        _log.info(f"installing model {name}", extra={"event": "model_install"})
        try:
            self._request("POST", "/api/pull", {"name": name, "stream": False}, self.pull_timeout_s)
        except _REQUEST_ERRORS as exc:
            _log.error(f"failed to install model {name}: {exc}", extra={"event": "model_install_failed"})
            return ModelOperation(success=False, model=name, error=str(exc))
        return ModelOperation(success=True, model=name, message="Model installation started")

    def delete_model(self, name: str) -> ModelOperation:
        _log.info(f"deleting model {name}", extra={"event": "model_delete"})
        try:
            self._request("DELETE", "/api/delete", {"name": name}, self.status_timeout_s)
        except _REQUEST_ERRORS as exc:
            _log.error(f"failed to delete model {name}: {exc}", extra={"event": "model_delete_failed"})
            return ModelOperation(success=False, model=name, error=str(exc))
        return ModelOperation(success=True, model=name, message="Model deleted successfully")

    def model_info(self, name: str) -> ModelOperation:
        try:
            info = self._request("POST", "/api/show", {"name": name}, self.status_timeout_s)
        except _REQUEST_ERRORS as exc:
            return ModelOperation(success=False, model=name, error=str(exc))
        return ModelOperation(success=True, model=name, info=info if isinstance(info, dict) else {"raw": info})

    def test_generation(self, name: str, prompt: str = DEFAULT_PROMPT) -> ModelOperation:
        _log.info(f"testing generation on {name}", extra={"event": "model_test"})
        started = time.perf_counter()
        try:
            payload = self._request(
                "POST",
                "/api/generate",
                {"model": name, "prompt": prompt, "stream": False},
                self.generate_timeout_s,
            )
        except _REQUEST_ERRORS as exc:
            _log.error(f"generation test failed for {name}: {exc}", extra={"event": "model_test_failed"})
            return ModelOperation(success=False, model=name, error=str(exc))

        elapsed_ms = max(1, int((time.perf_counter() - started) * 1000))
        text = payload.get("response") if isinstance(payload, dict) else None
        chars = len(text) if text else 0
        return ModelOperation(
            success=True,
            model=name,
            response=text,
            response_time_ms=elapsed_ms,
            chars_generated=chars,
            chars_per_second=round(chars / (elapsed_ms / 1000), 2) if chars else 0.0,
        )
