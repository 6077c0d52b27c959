"""Hardware classification, scoring, and live broadcast engine."""

from .analyzer import HardwareAnalyzer, InventorySource, derive_analysis
from .broadcast import BroadcastLoop, BroadcastState, Subscription
from .config import AppConfig, effective_ollama_host, load_config, save_config
from .diagnostics import DiagnosticsExporter, build_doctor_payload
from .errors import CollaboratorUnavailable, CompassError
from .fingerprint import fingerprint
from .models import (
    Analysis,
    GpuType,
    HardwareFacts,
    HardwareTier,
    PerformanceScores,
    RealtimeSample,
)
from .scoring import score, tier_for
from .snapshot import SnapshotCache

__all__ = [
    "Analysis",
    "AppConfig",
    "BroadcastLoop",
    "BroadcastState",
    "CollaboratorUnavailable",
    "CompassError",
    "DiagnosticsExporter",
    "GpuType",
    "HardwareAnalyzer",
    "HardwareFacts",
    "HardwareTier",
    "InventorySource",
    "PerformanceScores",
    "RealtimeSample",
    "SnapshotCache",
    "Subscription",
    "build_doctor_payload",
    "derive_analysis",
    "effective_ollama_host",
    "fingerprint",
    "load_config",
    "save_config",
    "score",
    "tier_for",
]
