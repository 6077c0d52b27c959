"""Raw inventory records as reported by the host, before normalization.

Every field is optional: ``None`` means the platform could not report it.
Units are part of the field names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RawCpu:
    brand: str | None = None
    model: str | None = None
    vendor: str | None = None
    family: str | None = None
    physical_cores: int | None = None
    logical_cores: int | None = None
    base_frequency_mhz: float | None = None
    max_frequency_mhz: float | None = None
    # Providers disagree on cache units/types; the normalizer coerces.
    l1d_cache_bytes: Any = None
    l1i_cache_bytes: Any = None
    l2_cache_bytes: Any = None
    l3_cache_bytes: Any = None


@dataclass(frozen=True)
class RawMemory:
    total_bytes: int | None = None
    available_bytes: int | None = None
    used_bytes: int | None = None


@dataclass(frozen=True)
class RawMemoryModule:
    type: str | None = None
    clock_speed_mhz: int | None = None
    size_bytes: int | None = None


@dataclass(frozen=True)
class RawGpuController:
    vendor: str | None = None
    model: str | None = None
    vram_mb: float | None = None
    memory_total_mb: float | None = None
    driver_version: str | None = None
    temperature_c: float | None = None
    utilization_gpu: float | None = None
    utilization_memory: float | None = None


@dataclass(frozen=True)
class RawDisk:
    name: str | None = None
    type: str | None = None
    size_bytes: int | None = None
    interface_type: str | None = None


@dataclass(frozen=True)
class RawFilesystem:
    mount: str
    available_bytes: int


@dataclass(frozen=True)
class RawNetworkInterface:
    name: str
    type: str | None = None
    speed_mbps: int | None = None
    internal: bool = False


@dataclass(frozen=True)
class RawBattery:
    has_battery: bool
    percent: float | None = None
    is_charging: bool | None = None


@dataclass(frozen=True)
class RawOsInfo:
    platform: str | None = None
    release: str | None = None
    arch: str | None = None
    hostname: str | None = None
    uptime_seconds: float | None = None


@dataclass(frozen=True)
class RawSystem:
    manufacturer: str | None = None
    model: str | None = None


@dataclass(frozen=True)
class RawLoad:
    current_load: float | None = None
    per_cpu_load: list[float] = field(default_factory=list)


@dataclass(frozen=True)
class RawInventory:
    cpu: RawCpu = field(default_factory=RawCpu)
    memory: RawMemory = field(default_factory=RawMemory)
    memory_modules: list[RawMemoryModule] = field(default_factory=list)
    gpus: list[RawGpuController] = field(default_factory=list)
    disks: list[RawDisk] = field(default_factory=list)
    os_info: RawOsInfo = field(default_factory=RawOsInfo)
    system: RawSystem = field(default_factory=RawSystem)
    network_interfaces: list[RawNetworkInterface] = field(default_factory=list)
    battery: RawBattery | None = None
