"""Heuristic GPU and memory classifiers driven by ordered rule tables.

Every table is evaluated top to bottom and the first matching rule wins, so
the order of entries is significant.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Sequence, TypeVar

from .models import UNKNOWN, GpuFacts, GpuType, round_half_up


T = TypeVar("T")

# Reported VRAM at or below this many MB is treated as sensor noise.
VRAM_NOISE_FLOOR_MB = 512


@dataclass(frozen=True)
class Rule(Generic[T]):
    name: str
    predicate: Callable[[str, str], bool]
    result: T


def first_match(rules: Sequence[Rule[T]], model: str, vendor: str, default: T) -> T:
    for rule in rules:
        if rule.predicate(model, vendor):
            return rule.result
    return default


def _has_token(text: str, *tokens: str) -> bool:
    return any(re.search(rf"(?<![a-z0-9]){re.escape(t)}(?![a-z0-9])", text) for t in tokens)


def _contains(text: str, *needles: str) -> bool:
    return any(n in text for n in needles)


BRAND_RULES: tuple[Rule[str], ...] = (
    Rule("nvidia", lambda s, _v: _has_token(s, "nvidia", "geforce"), "NVIDIA"),
    Rule("amd", lambda s, _v: _has_token(s, "amd", "ati", "radeon"), "AMD"),
    Rule("intel", lambda s, _v: _has_token(s, "intel") and not _has_token(s, "nvidia"), "Intel"),
    Rule("apple", lambda s, _v: _has_token(s, "apple"), "Apple"),
)


GPU_TYPE_RULES: tuple[Rule[GpuType], ...] = (
    Rule(
        "apple-silicon",
        lambda m, v: _has_token(f"{m} {v}", "apple", "m1", "m2", "m3"),
        GpuType.APPLE_UNIFIED,
    ),
    Rule("nvidia-model", lambda m, _v: _contains(m, "geforce", "rtx", "gtx", "quadro"), GpuType.DEDICATED),
    Rule(
        "nvidia-vendor",
        lambda m, v: _contains(v, "nvidia") and "integrated" not in m,
        GpuType.DEDICATED,
    ),
    Rule("radeon-discrete", lambda m, _v: "radeon" in m and "graphics" not in m, GpuType.DEDICATED),
    Rule("amd-model", lambda m, _v: _contains(m, "rx ", "vega"), GpuType.DEDICATED),
    Rule("amd-vendor", lambda m, v: _contains(v, "amd") and "integrated" not in m, GpuType.DEDICATED),
    Rule("intel-arc", lambda m, _v: _has_token(m, "arc"), GpuType.DEDICATED),
)


# Known board memory sizes in GB, matched as substrings of the lower-cased model.
# More specific tokens come before the tokens they contain.
VRAM_TABLE: tuple[tuple[str, int], ...] = (
    ("ga107m", 4),
    ("3050 ti", 4),
    ("2060", 6),
    ("2070", 8),
    ("2080", 8),
    ("3060", 6),
    ("3070", 8),
    ("3080 ti", 12),
    ("3080", 10),
    ("3090", 24),
    ("4060", 8),
    ("4070", 12),
    ("4080", 16),
    ("4090", 24),
    ("rx 6600", 8),
    ("rx 6700", 12),
    ("rx 6800", 16),
    ("arc", 6),
)

INTEGRATED_VENDOR_TOKENS = ("intel",)

MEMORY_SPEED_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (4800, "DDR5"),
    (2133, "DDR4"),
    (800, "DDR3"),
)
DEFAULT_MEMORY_TYPE = "DDR4"


def extract_gpu_brand(vendor: str | None) -> str:
    if not vendor:
        return UNKNOWN
    return first_match(BRAND_RULES, vendor.lower(), "", vendor)


def classify_gpu_type(model: str | None, vendor: str | None) -> GpuType:
    return first_match(GPU_TYPE_RULES, (model or "").lower(), (vendor or "").lower(), GpuType.INTEGRATED)


def lookup_vram_gb(model: str | None) -> int | None:
    lowered = (model or "").lower()
    for token, gb in VRAM_TABLE:
        if token in lowered:
            return gb
    return None


def _mb_to_gb(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value > VRAM_NOISE_FLOOR_MB:
        return round_half_up(value / 1024)
    return None


def estimate_vram_gb(
    model: str | None,
    vendor: str | None,
    reported_vram_mb: float | None = None,
    reported_memory_total_mb: float | None = None,
) -> int:
    """Resolve VRAM in GB.

    Order: known-model table, integrated vendors (shared memory, 0), reported
    VRAM above the noise floor, alternate reported memory field, then 0. The
    table always wins because sensor readings for discrete cards are known to
    be wrong.
    """
    table = lookup_vram_gb(model)
    if table is not None:
        return table
    if _has_token((vendor or "").lower(), *INTEGRATED_VENDOR_TOKENS):
        return 0
    for reported in (reported_vram_mb, reported_memory_total_mb):
        gb = _mb_to_gb(reported)
        if gb is not None:
            return gb
    return 0


def sort_gpus(gpus: Iterable[GpuFacts]) -> tuple[GpuFacts, ...]:
    return tuple(sorted(gpus, key=lambda g: (g.type is not GpuType.DEDICATED, -g.vram_gb)))


def infer_memory_type(reported_type: str | None, speed_mhz: int | None) -> str:
    if reported_type and reported_type.strip():
        return reported_type.strip().upper()
    speed = speed_mhz or 0
    for threshold, mem_type in MEMORY_SPEED_THRESHOLDS:
        if speed >= threshold:
            return mem_type
    return DEFAULT_MEMORY_TYPE
