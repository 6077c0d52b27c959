"""Host inventory and live load sampling for Ollama Compass."""

from .models import (
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
from .provider import InventoryProvider

__all__ = [
    "InventoryProvider",
    "RawBattery",
    "RawCpu",
    "RawDisk",
    "RawFilesystem",
    "RawGpuController",
    "RawInventory",
    "RawLoad",
    "RawMemory",
    "RawMemoryModule",
    "RawNetworkInterface",
    "RawOsInfo",
    "RawSystem",
]
