"""Typed hardware facts, scores and analysis results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any


UNKNOWN = "Unknown"


def round_half_up(value: float) -> int:
    return int(Decimal(repr(float(value))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class GpuType(str, Enum):
    DEDICATED = "dedicated"
    INTEGRATED = "integrated"
    APPLE_UNIFIED = "apple_unified"


class HardwareTier(str, Enum):
    VERY_LOW = "VERY_LOW"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class CpuFacts:
    brand: str = UNKNOWN
    model: str = UNKNOWN
    physical_cores: int = 1
    logical_cores: int = 1
    base_frequency_ghz: float = 0.0
    max_frequency_ghz: float = 0.0
    architecture: str = UNKNOWN
    cache_size_mb: int = 0
    current_usage_percent: int = 0
    temperature_c: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "brand": self.brand,
            "model": self.model,
            "physicalCores": self.physical_cores,
            "logicalCores": self.logical_cores,
            "baseFrequencyGHz": self.base_frequency_ghz,
            "maxFrequencyGHz": self.max_frequency_ghz,
            "architecture": self.architecture,
            "cacheSizeMB": self.cache_size_mb,
            "currentUsage": self.current_usage_percent,
            "temperature": self.temperature_c,
        }


@dataclass(frozen=True)
class MemoryFacts:
    total_gb: int = 0
    available_gb: int = 0
    used_gb: int = 0
    type: str = UNKNOWN
    speed_mhz: int = 0
    usage_percent: int = 0
    modules: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalMemoryGB": self.total_gb,
            "availableMemoryGB": self.available_gb,
            "usedMemoryGB": self.used_gb,
            "memoryType": self.type,
            "memorySpeedMHz": self.speed_mhz,
            "usagePercentage": self.usage_percent,
            "modules": self.modules,
        }


@dataclass(frozen=True)
class GpuFacts:
    brand: str = UNKNOWN
    model: str = "Integrated Graphics"
    vram_gb: int = 0
    type: GpuType = GpuType.INTEGRATED
    temperature_c: float | None = None
    driver: str = UNKNOWN
    vendor: str = UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        return {
            "brand": self.brand,
            "model": self.model,
            "vramGB": self.vram_gb,
            "type": self.type.value,
            "temperature": self.temperature_c,
            "driver": self.driver,
            "vendor": self.vendor,
        }


DEFAULT_GPU = GpuFacts()


@dataclass(frozen=True)
class DriveFacts:
    type: str = "HDD"
    size_gb: int = 0
    model: str = UNKNOWN
    interface: str = UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "sizeGB": self.size_gb, "model": self.model, "interface": self.interface}


@dataclass(frozen=True)
class StorageFacts:
    drives: tuple[DriveFacts, ...] = ()
    total_space_gb: int = 0
    available_space_gb: int = 0

    @property
    def storage_type(self) -> str:
        return self.drives[0].type if self.drives else "SSD"

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSpaceGB": self.total_space_gb,
            "availableSpaceGB": self.available_space_gb,
            "storageType": self.storage_type,
            "drives": [d.to_dict() for d in self.drives],
        }


@dataclass(frozen=True)
class SystemFacts:
    os: str = UNKNOWN
    os_version: str = UNKNOWN
    arch: str = UNKNOWN
    hostname: str = UNKNOWN
    uptime_hours: int = 0
    manufacturer: str = UNKNOWN
    model: str = UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        return {
            "os": self.os,
            "osVersion": self.os_version,
            "platform": self.arch,
            "hostname": self.hostname,
            "uptime": self.uptime_hours,
            "manufacturer": self.manufacturer,
            "model": self.model,
        }


@dataclass(frozen=True)
class HardwareFacts:
    cpu: CpuFacts = field(default_factory=CpuFacts)
    memory: MemoryFacts = field(default_factory=MemoryFacts)
    gpus: tuple[GpuFacts, ...] = ()
    storage: StorageFacts = field(default_factory=StorageFacts)
    system: SystemFacts = field(default_factory=SystemFacts)

    @property
    def primary_gpu(self) -> GpuFacts:
        return self.gpus[0] if self.gpus else DEFAULT_GPU

    def to_dict(self) -> dict[str, Any]:
        return {
            "cpu": self.cpu.to_dict(),
            "memory": self.memory.to_dict(),
            "gpu": self.primary_gpu.to_dict(),
            "gpus": [g.to_dict() for g in self.gpus],
            "storage": self.storage.to_dict(),
            "system": self.system.to_dict(),
        }


@dataclass(frozen=True)
class PerformanceScores:
    cpu_score: float
    memory_score: float
    gpu_score: float
    storage_score: float
    overall_score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "overallScore": self.overall_score,
            "cpuScore": round_half_up(self.cpu_score),
            "memoryScore": round_half_up(self.memory_score),
            "gpuScore": round_half_up(self.gpu_score),
            "storageScore": round_half_up(self.storage_score),
        }


@dataclass(frozen=True)
class NetworkInterfaceInfo:
    name: str
    type: str = UNKNOWN
    speed_mbps: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "speed": self.speed_mbps}


@dataclass(frozen=True)
class BatteryInfo:
    has_battery: bool
    percent: float | None = None
    is_charging: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"hasBattery": self.has_battery, "percent": self.percent, "isCharging": self.is_charging}


@dataclass(frozen=True)
class Analysis:
    fingerprint: str
    facts: HardwareFacts
    scores: PerformanceScores
    tier: HardwareTier
    timestamp: datetime
    network_interfaces: tuple[NetworkInterfaceInfo, ...] = ()
    battery: BatteryInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "hardwareFingerprint": self.fingerprint,
            "hardwareSpecs": self.facts.to_dict(),
            "performanceScores": self.scores.to_dict(),
            "hardwareTier": self.tier.value,
            "analysisTimestamp": self.timestamp.isoformat(),
            "networkInterfaces": [n.to_dict() for n in self.network_interfaces],
            "battery": (self.battery.to_dict() if self.battery else None),
        }


@dataclass(frozen=True)
class CpuLoad:
    usage_percent: int
    temperature_c: float | None
    per_core_usage: tuple[int, ...] = ()


@dataclass(frozen=True)
class MemoryLoad:
    usage_percent: int
    used_gb: int
    available_gb: int


@dataclass(frozen=True)
class GpuLoad:
    model: str
    temperature_c: float | None
    utilization_gpu_percent: float
    utilization_memory_percent: float


@dataclass(frozen=True)
class RealtimeSample:
    timestamp: datetime
    cpu: CpuLoad
    memory: MemoryLoad
    gpus: tuple[GpuLoad, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "cpu": {
                "usage": self.cpu.usage_percent,
                "temperature": self.cpu.temperature_c,
                "cores": list(self.cpu.per_core_usage),
            },
            "memory": {
                "usagePercentage": self.memory.usage_percent,
                "usedGB": self.memory.used_gb,
                "availableGB": self.memory.available_gb,
            },
            "gpu": [
                {
                    "model": g.model,
                    "temperature": g.temperature_c,
                    "utilizationGpu": g.utilization_gpu_percent,
                    "utilizationMemory": g.utilization_memory_percent,
                }
                for g in self.gpus
            ],
        }
