from __future__ import annotations

from dataclasses import dataclass
from typing import Any


CONNECTION_REFUSED = "CONNECTION_REFUSED"
HOST_NOT_FOUND = "HOST_NOT_FOUND"
TIMEOUT = "TIMEOUT"
UNKNOWN_ERROR = "UNKNOWN"


@dataclass(frozen=True)
class ErrorInfo:
    type: str
    message: str
    suggestion: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message, "suggestion": self.suggestion}


@dataclass(frozen=True)
class ProcessInfo:
    is_running: bool
    process_count: int = 0
    details: str = ""
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "isRunning": self.is_running,
            "processCount": self.process_count,
            "details": self.details,
        }
        if self.error:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class OllamaModel:
    name: str
    size: int | None = None
    modified_at: str | None = None
    digest: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "size": self.size, "modifiedAt": self.modified_at, "digest": self.digest}


@dataclass(frozen=True)
class OllamaStatus:
    is_running: bool
    is_reachable: bool
    host: str
    last_checked: str
    process: ProcessInfo
    version: str | None = None
    models: tuple[OllamaModel, ...] = ()
    error: ErrorInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "isRunning": self.is_running,
            "isReachable": self.is_reachable,
            "host": self.host,
            "processInfo": self.process.to_dict(),
            "lastChecked": self.last_checked,
        }
        if self.is_reachable:
            out["version"] = self.version or "Unknown"
            out["modelsCount"] = len(self.models)
            out["installedModels"] = [m.to_dict() for m in self.models]
        if self.error is not None:
            out["error"] = self.error.to_dict()
        return out


@dataclass(frozen=True)
class ModelOperation:
    """Outcome of a daemon model operation; failures carry `error` instead of raising."""

    success: bool
    model: str
    message: str | None = None
    error: str | None = None
    info: dict[str, Any] | None = None
    response: str | None = None
    response_time_ms: int | None = None
    chars_generated: int = 0
    chars_per_second: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success, "model": self.model}
        if self.message is not None:
            out["message"] = self.message
        if self.error is not None:
            out["error"] = self.error
        if self.info is not None:
            out["info"] = self.info
        if self.response_time_ms is not None:
            out["responseTime"] = self.response_time_ms
            out["response"] = self.response
            out["tokensGenerated"] = self.chars_generated
            out["tokensPerSecond"] = self.chars_per_second
        return out
