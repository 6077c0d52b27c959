"""Deterministic performance scores and tier classification."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from .models import CpuFacts, GpuFacts, GpuType, HardwareFacts, HardwareTier, MemoryFacts, PerformanceScores, StorageFacts


WEIGHTS = {
    "cpu": Decimal("0.35"),
    "memory": Decimal("0.25"),
    "gpu": Decimal("0.30"),
    "storage": Decimal("0.10"),
}

TIER_THRESHOLDS: tuple[tuple[int, HardwareTier], ...] = (
    (80, HardwareTier.HIGH),
    (60, HardwareTier.MEDIUM),
    (40, HardwareTier.LOW),
)

SSD_STORAGE_SCORE = 85.0
HDD_STORAGE_SCORE = 60.0


def _clamp(value: float) -> float:
    return float(max(0.0, min(100.0, value)))


def cpu_score(cpu: CpuFacts) -> float:
    return _clamp(cpu.logical_cores * 5 + cpu.base_frequency_ghz * 10 + cpu.cache_size_mb * 0.5)


def memory_score(memory: MemoryFacts) -> float:
    return _clamp(memory.total_gb * 4 + memory.speed_mhz / 100)


def gpu_score(gpu: GpuFacts) -> float:
    if gpu.type is GpuType.DEDICATED:
        return _clamp(60 + gpu.vram_gb * 4)
    if gpu.type is GpuType.APPLE_UNIFIED:
        return _clamp(50 + gpu.vram_gb * 3)
    return 30.0


def storage_score(storage: StorageFacts) -> float:
    if storage.drives and storage.drives[0].type == "SSD":
        return SSD_STORAGE_SCORE
    return HDD_STORAGE_SCORE


def overall_score(cpu: float, memory: float, gpu: float, storage: float) -> int:
    total = (
        Decimal(repr(cpu)) * WEIGHTS["cpu"]
        + Decimal(repr(memory)) * WEIGHTS["memory"]
        + Decimal(repr(gpu)) * WEIGHTS["gpu"]
        + Decimal(repr(storage)) * WEIGHTS["storage"]
    )
    rounded = int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(0, min(100, rounded))


def score(facts: HardwareFacts) -> PerformanceScores:
    cpu = cpu_score(facts.cpu)
    memory = memory_score(facts.memory)
    gpu = gpu_score(facts.primary_gpu)
    storage = storage_score(facts.storage)
    return PerformanceScores(
        cpu_score=cpu,
        memory_score=memory,
        gpu_score=gpu,
        storage_score=storage,
        overall_score=overall_score(cpu, memory, gpu, storage),
    )


def tier_for(overall: int) -> HardwareTier:
    for threshold, tier in TIER_THRESHOLDS:
        if overall >= threshold:
            return tier
    return HardwareTier.VERY_LOW
