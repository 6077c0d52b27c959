"""Turn raw, partially-absent inventory records into complete hardware facts.

Absent numbers become 0 and absent strings become "Unknown"; nothing here
raises on missing or malformed provider data.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from compass_telemetry.models import (
    RawBattery,
    RawCpu,
    RawDisk,
    RawFilesystem,
    RawGpuController,
    RawInventory,
    RawLoad,
    RawMemory,
    RawMemoryModule,
    RawNetworkInterface,
    RawOsInfo,
    RawSystem,
)

from .classifiers import classify_gpu_type, estimate_vram_gb, extract_gpu_brand, infer_memory_type, sort_gpus
from .models import (
    UNKNOWN,
    BatteryInfo,
    CpuFacts,
    CpuLoad,
    DriveFacts,
    GpuFacts,
    GpuLoad,
    HardwareFacts,
    MemoryFacts,
    MemoryLoad,
    NetworkInterfaceInfo,
    RealtimeSample,
    StorageFacts,
    SystemFacts,
    round_half_up,
)


_GB = 1024**3
_MB = 1024**2


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _number(value: Any, default: float = 0.0) -> float:
    return float(value) if _is_number(value) else default


def _text(value: Any) -> str:
    if value is None:
        return UNKNOWN
    text = str(value).strip()
    return text or UNKNOWN


def _percent(value: Any) -> int:
    return max(0, min(100, round_half_up(_number(value))))


def bytes_to_gb(value: Any) -> int:
    return max(0, round_half_up(_number(value) / _GB))


def _temperature(value: Any) -> float | None:
    if _is_number(value) and value > 0:
        return float(value)
    return None


def cache_size_mb(cpu: RawCpu) -> int:
    parts = (cpu.l1d_cache_bytes, cpu.l1i_cache_bytes, cpu.l2_cache_bytes, cpu.l3_cache_bytes)
    total = 0.0
    for part in parts:
        if part is None:
            continue
        if not _is_number(part):
            return 0
        total += part
    return max(0, round_half_up(total / _MB))


def mhz_to_ghz(value: Any) -> float:
    return round(max(0.0, _number(value)) / 1000, 2)


def normalize_cpu(
    cpu: RawCpu,
    load: RawLoad | None = None,
    temperature_c: float | None = None,
    arch_fallback: str | None = None,
) -> CpuFacts:
    logical = int(cpu.logical_cores) if _is_number(cpu.logical_cores) and cpu.logical_cores >= 1 else 1
    physical = int(cpu.physical_cores) if _is_number(cpu.physical_cores) and cpu.physical_cores >= 1 else logical
    return CpuFacts(
        brand=_text(cpu.brand),
        model=_text(cpu.model or cpu.brand),
        physical_cores=physical,
        logical_cores=logical,
        base_frequency_ghz=mhz_to_ghz(cpu.base_frequency_mhz),
        max_frequency_ghz=mhz_to_ghz(cpu.max_frequency_mhz),
        architecture=_text(cpu.family or arch_fallback),
        cache_size_mb=cache_size_mb(cpu),
        current_usage_percent=_percent(load.current_load if load else None),
        temperature_c=_temperature(temperature_c),
    )


def normalize_memory(memory: RawMemory, modules: list[RawMemoryModule]) -> MemoryFacts:
    total = _number(memory.total_bytes)
    used = _number(memory.used_bytes)
    if memory.available_bytes is None and total:
        available = max(total - used, 0.0)
    else:
        available = _number(memory.available_bytes)

    if modules:
        first = modules[0]
        mem_type = infer_memory_type(first.type, first.clock_speed_mhz)
        speed = int(_number(first.clock_speed_mhz))
    else:
        mem_type = UNKNOWN
        speed = 0

    return MemoryFacts(
        total_gb=bytes_to_gb(total),
        available_gb=bytes_to_gb(available),
        used_gb=bytes_to_gb(used),
        type=mem_type,
        speed_mhz=max(0, speed),
        usage_percent=_percent(used / total * 100 if total else 0),
        modules=len(modules),
    )


def normalize_gpu(gpu: RawGpuController) -> GpuFacts:
    return GpuFacts(
        brand=extract_gpu_brand(gpu.vendor or gpu.model),
        model=gpu.model or "Unknown GPU",
        vram_gb=estimate_vram_gb(gpu.model, gpu.vendor, gpu.vram_mb, gpu.memory_total_mb),
        type=classify_gpu_type(gpu.model, gpu.vendor),
        temperature_c=_temperature(gpu.temperature_c),
        driver=_text(gpu.driver_version),
        vendor=_text(gpu.vendor),
    )


def normalize_drive(disk: RawDisk) -> DriveFacts:
    return DriveFacts(
        type=("SSD" if (disk.type or "").upper() == "SSD" else "HDD"),
        size_gb=bytes_to_gb(disk.size_bytes),
        model=_text(disk.name),
        interface=_text(disk.interface_type),
    )


def normalize_storage(disks: list[RawDisk], filesystems: Iterable[RawFilesystem]) -> StorageFacts:
    drives = tuple(normalize_drive(d) for d in disks)
    available = sum(_number(fs.available_bytes) for fs in filesystems)
    return StorageFacts(
        drives=drives,
        total_space_gb=sum(d.size_gb for d in drives),
        available_space_gb=bytes_to_gb(available),
    )


def normalize_system(os_info: RawOsInfo, system: RawSystem) -> SystemFacts:
    return SystemFacts(
        os=_text(os_info.platform),
        os_version=_text(os_info.release),
        arch=_text(os_info.arch),
        hostname=_text(os_info.hostname),
        uptime_hours=max(0, round_half_up(_number(os_info.uptime_seconds) / 3600)),
        manufacturer=_text(system.manufacturer),
        model=_text(system.model),
    )


def normalize_network(interfaces: list[RawNetworkInterface]) -> tuple[NetworkInterfaceInfo, ...]:
    return tuple(
        NetworkInterfaceInfo(name=i.name, type=_text(i.type), speed_mbps=i.speed_mbps)
        for i in interfaces
        if not i.internal
    )


def normalize_battery(battery: RawBattery | None) -> BatteryInfo | None:
    if battery is None:
        return None
    return BatteryInfo(has_battery=battery.has_battery, percent=battery.percent, is_charging=battery.is_charging)


def normalize(
    inventory: RawInventory,
    load: RawLoad | None = None,
    temperature_c: float | None = None,
    filesystems: Iterable[RawFilesystem] = (),
) -> HardwareFacts:
    return HardwareFacts(
        cpu=normalize_cpu(inventory.cpu, load, temperature_c, arch_fallback=inventory.os_info.arch),
        memory=normalize_memory(inventory.memory, inventory.memory_modules),
        gpus=sort_gpus(normalize_gpu(g) for g in inventory.gpus),
        storage=normalize_storage(inventory.disks, filesystems),
        system=normalize_system(inventory.os_info, inventory.system),
    )


def build_realtime_sample(
    load: RawLoad,
    memory: RawMemory,
    temperature_c: float | None,
    gpus: Iterable[RawGpuController],
    now: datetime | None = None,
) -> RealtimeSample:
    total = _number(memory.total_bytes)
    used = _number(memory.used_bytes)
    return RealtimeSample(
        timestamp=now or datetime.now(timezone.utc),
        cpu=CpuLoad(
            usage_percent=_percent(load.current_load),
            temperature_c=_temperature(temperature_c),
            per_core_usage=tuple(_percent(v) for v in load.per_cpu_load),
        ),
        memory=MemoryLoad(
            usage_percent=_percent(used / total * 100 if total else 0),
            used_gb=bytes_to_gb(used),
            available_gb=bytes_to_gb(memory.available_bytes),
        ),
        gpus=tuple(
            GpuLoad(
                model=_text(g.model),
                temperature_c=_temperature(g.temperature_c),
                utilization_gpu_percent=_number(g.utilization_gpu),
                utilization_memory_percent=_number(g.utilization_memory),
            )
            for g in gpus
        ),
    )
