"""Persistent agent settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


CONFIG_VERSION = 2
DEFAULT_PORT = 7171
DEFAULT_OLLAMA_HOST = "http://localhost:11434"


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    cors_origins: list[str] = field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
            "https://ollamalyzer.com",
            "https://www.ollamalyzer.com",
        ]
    )


@dataclass
class RealtimeConfig:
    queue_size: int = 8


@dataclass
class OllamaConfig:
    host: str = DEFAULT_OLLAMA_HOST
    status_timeout_s: float = 5.0
    version_timeout_s: float = 3.0
    pull_timeout_s: float = 300.0
    generate_timeout_s: float = 30.0


@dataclass
class DiagnosticsConfig:
    keep_log_files: int = 7
    max_bundle_mb: int = 20


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    server: ServerConfig = field(default_factory=ServerConfig)
    realtime: RealtimeConfig = field(default_factory=RealtimeConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def config_root() -> Path:
    override = os.environ.get("OLLAMA_COMPASS_HOME", "").strip()
    if override:
        return Path(override).expanduser()
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "OllamaCompass"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "OllamaCompass"
    return Path.home() / ".config" / "ollama-compass"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    if not isinstance(raw, dict):
        return defaults
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _coerce(kind, value: Any, default: Any) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError):
        return default


def _normalize_server(cfg: AppConfig) -> None:
    port = _coerce(int, cfg.server.port, DEFAULT_PORT)
    cfg.server.port = port if 1 <= port <= 65535 else DEFAULT_PORT
    if not isinstance(cfg.server.cors_origins, list):
        cfg.server.cors_origins = ServerConfig().cors_origins


def _normalize_realtime(cfg: AppConfig) -> None:
    defaults = RealtimeConfig()
    cfg.realtime.queue_size = max(1, _coerce(int, cfg.realtime.queue_size, defaults.queue_size))


def _normalize_ollama(cfg: AppConfig) -> None:
    cfg.ollama.host = (str(cfg.ollama.host or DEFAULT_OLLAMA_HOST)).rstrip("/")
    for name in ("status_timeout_s", "version_timeout_s", "pull_timeout_s", "generate_timeout_s"):
        value = _coerce(float, getattr(cfg.ollama, name), getattr(OllamaConfig(), name))
        setattr(cfg.ollama, name, max(0.5, value))


def _migrate(raw: dict[str, Any]) -> dict[str, Any]:
    version = int(raw.get("config_version", 1))
    data = dict(raw)

    if version < 2:
        # v1 kept the listen port and daemon host as flat top-level keys.
        server = dict(data.get("server", {}) or {})
        if "port" in data:
            server.setdefault("port", data.pop("port"))
        ollama = dict(data.get("ollama", {}) or {})
        if "ollama_host" in data:
            ollama.setdefault("host", data.pop("ollama_host"))
        data["server"] = server
        data["ollama"] = ollama
        data.setdefault("realtime", {})
        data.setdefault("diagnostics", {})
        data["config_version"] = 2

    return data


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()

    data = _migrate(raw)
    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        server=_merge(ServerConfig, data.get("server", {})),
        realtime=_merge(RealtimeConfig, data.get("realtime", {})),
        ollama=_merge(OllamaConfig, data.get("ollama", {})),
        diagnostics=_merge(DiagnosticsConfig, data.get("diagnostics", {})),
    )

    _normalize_server(cfg)
    _normalize_realtime(cfg)
    _normalize_ollama(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path


def effective_ollama_host(cfg: AppConfig) -> str:
    env = os.environ.get("OLLAMA_HOST", "").strip()
    host = env or cfg.ollama.host
    if "://" not in host:
        host = f"http://{host}"
    return host.rstrip("/")
