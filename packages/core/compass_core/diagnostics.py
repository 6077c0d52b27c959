"""Diagnostics export helpers for local support bundles."""

from __future__ import annotations

import json
import platform
import re
import tempfile
import zipfile
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import AppConfig, config_path, effective_ollama_host
from .logging_setup import log_dir


_SECRET_RE = re.compile(r"(token|secret|password|apikey|api_key|auth)", re.IGNORECASE)


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if _SECRET_RE.search(str(k)):
                out[k] = "***REDACTED***"
            else:
                out[k] = redact(v)
        return out
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def _analysis_summary(analyzer) -> dict[str, Any] | None:
    analysis = analyzer.get_cached_analysis() if analyzer is not None else None
    if analysis is None:
        return None
    return {
        "fingerprint": analysis.fingerprint,
        "tier": analysis.tier.value,
        "overall_score": analysis.scores.overall_score,
        "timestamp": analysis.timestamp.isoformat(),
        "realtime_state": analyzer.broadcast.state.value,
    }


def _daemon_summary(monitor) -> dict[str, Any] | None:
    if monitor is None:
        return None
    status = monitor.check_status()
    return {
        "reachable": status.is_reachable,
        "version": status.version,
        "models": len(status.models),
        "error": status.error.type if status.error else None,
    }


def build_doctor_payload(cfg: AppConfig, analyzer=None, monitor=None) -> dict[str, Any]:
    return {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "config": redact(asdict(cfg)),
        "ollama_host": effective_ollama_host(cfg),
        "analysis": _analysis_summary(analyzer),
        "ollama": _daemon_summary(monitor),
    }


def _dump(value: Any) -> str:
    return json.dumps(redact(value), indent=2, sort_keys=True, default=_jsonable)


class DiagnosticsExporter:
    """Packs doctor output, redacted config, the realtime ring buffer and logs into one zip."""

    def __init__(self, app_name: str = "OllamaCompass") -> None:
        self.app_name = app_name

    def _entries(
        self,
        cfg: AppConfig,
        doctor_payload: dict[str, Any],
        recent_events: list[dict[str, Any]] | None,
        analysis: dict[str, Any] | None,
    ) -> dict[str, Any]:
        entries: dict[str, Any] = {
            "manifest.json": {
                "app": self.app_name,
                "created_utc": datetime.now(timezone.utc).isoformat(),
                "host": platform.platform(),
                "python": platform.python_version(),
                "config_path": str(config_path()),
                "log_dir": str(log_dir()),
            },
            "doctor.json": doctor_payload,
            "config.redacted.json": asdict(cfg),
            "realtime_events.json": recent_events or [],
        }
        if analysis is not None:
            entries["analysis.json"] = analysis
        return entries

    def bundle(
        self,
        cfg: AppConfig,
        doctor_payload: dict[str, Any],
        recent_events: list[dict[str, Any]] | None = None,
        output_dir: Path | None = None,
        analysis: dict[str, Any] | None = None,
    ) -> Path:
        target = output_dir or Path(tempfile.gettempdir())
        target.mkdir(parents=True, exist_ok=True)
        zip_path = target / f"ollama-compass-diagnostics-{datetime.now().strftime('%Y%m%d-%H%M%S')}.zip"

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, payload in self._entries(cfg, doctor_payload, recent_events, analysis).items():
                zf.writestr(name, _dump(payload))
            # Rotated logs and fault.log.
            for item in sorted(log_dir().glob("*.log*")):
                zf.write(item, arcname=f"logs/{item.name}")

        return zip_path
