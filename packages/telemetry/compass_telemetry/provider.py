"""Cross-platform inventory provider with best-effort queries and graceful fallbacks."""

from __future__ import annotations

import json
import os
import platform
import re
import socket
import subprocess
import sys
import threading
import time
from pathlib import Path
from typing import Any

import cpuinfo
import psutil

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


_SUBPROCESS_TIMEOUT_S = 5.0

# SMBIOS memory type codes reported by Win32_PhysicalMemory.
_SMBIOS_MEMORY_TYPES = {20: "DDR", 21: "DDR2", 24: "DDR3", 26: "DDR4", 34: "DDR5", 35: "LPDDR5"}

_LSPCI_VENDORS = (
    ("NVIDIA Corporation", "NVIDIA"),
    ("Advanced Micro Devices, Inc. [AMD/ATI]", "AMD"),
    ("Advanced Micro Devices, Inc.", "AMD"),
    ("Intel Corporation", "Intel"),
)


def _run(cmd: list[str], timeout: float = _SUBPROCESS_TIMEOUT_S) -> str | None:
    try:
        out = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout, check=False)
    except (OSError, subprocess.SubprocessError):
        return None
    if out.returncode != 0:
        return None
    return out.stdout


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return None


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _size_to_mb(text: str | None) -> float | None:
    if not text:
        return None
    match = re.search(r"([\d.]+)\s*(TB|GB|MB|KB)", text, re.IGNORECASE)
    if not match:
        return None
    value = float(match.group(1))
    unit = match.group(2).upper()
    return value * {"TB": 1024 * 1024, "GB": 1024, "MB": 1, "KB": 1 / 1024}[unit]


class _GpuAdapter:
    """Reports no accelerator; used when no vendor library is available."""

    def controllers(self) -> list[RawGpuController]:
        return []


class _NvmlGpuAdapter(_GpuAdapter):
    def __init__(self) -> None:
        import pynvml  # type: ignore

        self._nvml = pynvml
        pynvml.nvmlInit()
        try:
            self._driver = _text(pynvml.nvmlSystemGetDriverVersion())
        except pynvml.NVMLError:
            self._driver = None

    def controllers(self) -> list[RawGpuController]:
        nvml = self._nvml
        out: list[RawGpuController] = []
        for index in range(nvml.nvmlDeviceGetCount()):
            h = nvml.nvmlDeviceGetHandleByIndex(index)
            mem = nvml.nvmlDeviceGetMemoryInfo(h)
            try:
                util = nvml.nvmlDeviceGetUtilizationRates(h)
                util_gpu, util_mem = float(util.gpu), float(util.memory)
            except nvml.NVMLError:
                util_gpu = util_mem = None
            try:
                temp = float(nvml.nvmlDeviceGetTemperature(h, nvml.NVML_TEMPERATURE_GPU))
            except nvml.NVMLError:
                temp = None
            out.append(
                RawGpuController(
                    vendor="NVIDIA",
                    model=_text(nvml.nvmlDeviceGetName(h)),
                    vram_mb=mem.total / (1024 * 1024),
                    driver_version=self._driver,
                    temperature_c=temp,
                    utilization_gpu=util_gpu,
                    utilization_memory=util_mem,
                )
            )
        return out


def _build_gpu_adapter() -> _GpuAdapter:
    try:
        return _NvmlGpuAdapter()
    except Exception:
        return _GpuAdapter()


def _cpu_temp_c() -> float | None:
    try:
        temps = psutil.sensors_temperatures()
    except (AttributeError, OSError):
        return None
    if not temps:
        return None

    for name in ("coretemp", "cpu_thermal", "k10temp", "zenpower", "acpitz"):
        entries = temps.get(name)
        if entries:
            val = entries[0].current
            return float(val) if val is not None else None

    for _name, entries in temps.items():
        if entries and entries[0].current is not None:
            return float(entries[0].current)
    return None


def parse_lspci(output: str) -> list[RawGpuController]:
    out: list[RawGpuController] = []
    for line in output.splitlines():
        if not any(tag in line for tag in ("VGA compatible controller", "3D controller", "Display controller")):
            continue
        desc = line.split(": ", 1)[-1].strip()
        desc = re.sub(r"\s*\(rev [0-9a-fA-F]+\)$", "", desc)

        vendor = desc.split(" ", 1)[0]
        rest = desc
        for prefix, name in _LSPCI_VENDORS:
            if desc.startswith(prefix):
                vendor = name
                rest = desc[len(prefix):].strip()
                break
        bracketed = re.findall(r"\[([^\]]+)\]", rest)
        model = bracketed[-1] if bracketed else rest
        out.append(RawGpuController(vendor=vendor, model=model or None))
    return out


def parse_system_profiler_displays(payload: dict[str, Any]) -> list[RawGpuController]:
    out: list[RawGpuController] = []
    for item in payload.get("SPDisplaysDataType", []):
        vendor = item.get("spdisplays_vendor") or item.get("sppci_vendor")
        if vendor and vendor.startswith("sppci_vendor_"):
            vendor = vendor[len("sppci_vendor_"):]
        vram = item.get("spdisplays_vram") or item.get("spdisplays_vram_shared")
        out.append(
            RawGpuController(
                vendor=vendor,
                model=item.get("sppci_model") or item.get("_name"),
                vram_mb=_size_to_mb(vram),
            )
        )
    return out


def parse_dmidecode_memory(output: str) -> list[RawMemoryModule]:
    modules: list[RawMemoryModule] = []
    for block in output.split("Memory Device")[1:]:
        fields: dict[str, str] = {}
        for line in block.splitlines():
            if ":" in line:
                key, value = line.split(":", 1)
                fields[key.strip()] = value.strip()
        size_mb = _size_to_mb(fields.get("Size"))
        if not size_mb:
            continue  # empty slot
        speed = re.search(r"(\d+)", fields.get("Configured Memory Speed") or fields.get("Speed") or "")
        mem_type = fields.get("Type")
        modules.append(
            RawMemoryModule(
                type=(mem_type if mem_type and mem_type != "Unknown" else None),
                clock_speed_mhz=(int(speed.group(1)) if speed else None),
                size_bytes=int(size_mb * 1024 * 1024),
            )
        )
    return modules


class InventoryProvider:
    """Single provider for the static inventory and the live load queries."""

    def __init__(self) -> None:
        self._gpu = _build_gpu_adapter()
        self._platform = platform.system()
        self._cpuinfo: dict[str, Any] | None = None
        self._lock = threading.Lock()
        self._last_gpus: list[RawGpuController] = []
        # Prime non-blocking CPU measurement.
        psutil.cpu_percent(interval=None)
        psutil.cpu_percent(interval=None, percpu=True)

    def _cpu_details(self) -> dict[str, Any]:
        with self._lock:
            if self._cpuinfo is None:
                try:
                    self._cpuinfo = cpuinfo.get_cpu_info()
                except Exception:
                    self._cpuinfo = {}
            return self._cpuinfo

    def query_inventory(self) -> RawInventory:
        gpus = self._query_gpus()
        with self._lock:
            self._last_gpus = gpus
        return RawInventory(
            cpu=self._query_cpu(),
            memory=self._query_memory(),
            memory_modules=self._query_memory_modules(),
            gpus=gpus,
            disks=self._query_disks(),
            os_info=self._query_os(),
            system=self._query_system(),
            network_interfaces=self._query_network(),
            battery=self._query_battery(),
        )

    def query_load(self) -> RawLoad:
        return RawLoad(
            current_load=float(psutil.cpu_percent(interval=None)),
            per_cpu_load=[float(v) for v in psutil.cpu_percent(interval=None, percpu=True)],
        )

    def query_temperature(self) -> float | None:
        return _cpu_temp_c()

    def query_memory(self) -> RawMemory:
        return self._query_memory()

    def query_free_disk(self) -> list[RawFilesystem]:
        out: list[RawFilesystem] = []
        seen: set[str] = set()
        for part in psutil.disk_partitions(all=False):
            if part.device in seen:
                continue
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except OSError:
                continue
            seen.add(part.device)
            out.append(RawFilesystem(mount=part.mountpoint, available_bytes=int(usage.free)))
        return out

    def query_gpu_load(self) -> list[RawGpuController]:
        try:
            live = self._gpu.controllers()
        except Exception:
            live = []
        if live:
            return live
        with self._lock:
            return list(self._last_gpus)

    def _query_cpu(self) -> RawCpu:
        info = self._cpu_details()
        freq = None
        try:
            freq = psutil.cpu_freq()
        except (AttributeError, OSError, NotImplementedError):
            pass

        base_mhz = None
        advertised = info.get("hz_advertised")
        if advertised and advertised[0]:
            base_mhz = advertised[0] / 1_000_000
        elif freq and freq.current:
            base_mhz = float(freq.current)

        return RawCpu(
            brand=info.get("brand_raw") or platform.processor() or None,
            vendor=info.get("vendor_id_raw"),
            family=info.get("arch_string_raw") or info.get("arch"),
            physical_cores=psutil.cpu_count(logical=False),
            logical_cores=psutil.cpu_count(logical=True),
            base_frequency_mhz=base_mhz,
            max_frequency_mhz=(float(freq.max) if freq and freq.max else None),
            l1d_cache_bytes=info.get("l1_data_cache_size"),
            l1i_cache_bytes=info.get("l1_instruction_cache_size"),
            l2_cache_bytes=info.get("l2_cache_size"),
            l3_cache_bytes=info.get("l3_cache_size"),
        )

    def _query_memory(self) -> RawMemory:
        vm = psutil.virtual_memory()
        return RawMemory(total_bytes=int(vm.total), available_bytes=int(vm.available), used_bytes=int(vm.used))

    def _query_memory_modules(self) -> list[RawMemoryModule]:
        if self._platform == "Linux":
            if hasattr(os, "geteuid") and os.geteuid() == 0:
                output = _run(["dmidecode", "-t", "memory"])
                if output:
                    return parse_dmidecode_memory(output)
            return []

        if self._platform == "Darwin":
            output = _run(["system_profiler", "SPMemoryDataType", "-json"])
            if not output:
                return []
            try:
                sections = json.loads(output).get("SPMemoryDataType", [])
            except ValueError:
                return []
            modules: list[RawMemoryModule] = []
            for section in sections:
                items = section.get("_items") or [section]
                for item in items:
                    speed = re.search(r"(\d+)", item.get("dimm_speed") or "")
                    size_mb = _size_to_mb(item.get("dimm_size") or item.get("SPMemoryDataType"))
                    modules.append(
                        RawMemoryModule(
                            type=item.get("dimm_type"),
                            clock_speed_mhz=(int(speed.group(1)) if speed else None),
                            size_bytes=(int(size_mb * 1024 * 1024) if size_mb else None),
                        )
                    )
            return modules

        if self._platform == "Windows":
            output = _run(["wmic", "memorychip", "get", "Capacity,Speed,SMBIOSMemoryType", "/format:csv"])
            if not output:
                return []
            modules = []
            for line in output.splitlines()[1:]:
                parts = [p.strip() for p in line.split(",")]
                if len(parts) < 4 or not parts[1].isdigit():
                    continue
                mem_type = _SMBIOS_MEMORY_TYPES.get(int(parts[2])) if parts[2].isdigit() else None
                modules.append(
                    RawMemoryModule(
                        type=mem_type,
                        clock_speed_mhz=(int(parts[3]) if parts[3].isdigit() else None),
                        size_bytes=int(parts[1]),
                    )
                )
            return modules
        return []

    def _query_gpus(self) -> list[RawGpuController]:
        try:
            nvidia = self._gpu.controllers()
        except Exception:
            nvidia = []

        others: list[RawGpuController] = []
        if self._platform == "Linux":
            output = _run(["lspci"])
            if output:
                others = parse_lspci(output)
        elif self._platform == "Darwin":
            output = _run(["system_profiler", "SPDisplaysDataType", "-json"])
            if output:
                try:
                    others = parse_system_profiler_displays(json.loads(output))
                except ValueError:
                    others = []
        elif self._platform == "Windows":
            output = _run(
                ["wmic", "path", "win32_VideoController", "get", "AdapterCompatibility,AdapterRAM,DriverVersion,Name", "/format:csv"]
            )
            if output:
                for line in output.splitlines()[1:]:
                    parts = [p.strip() for p in line.split(",")]
                    if len(parts) < 5 or not parts[4]:
                        continue
                    others.append(
                        RawGpuController(
                            vendor=parts[1] or None,
                            model=parts[4],
                            vram_mb=(int(parts[2]) / (1024 * 1024) if parts[2].isdigit() else None),
                            driver_version=parts[3] or None,
                        )
                    )

        if nvidia:
            others = [g for g in others if "nvidia" not in (g.vendor or "").lower()]
        return nvidia + others

    def _query_disks(self) -> list[RawDisk]:
        if self._platform == "Linux":
            disks: list[RawDisk] = []
            root = Path("/sys/block")
            try:
                devices = sorted(os.listdir(root))
            except OSError:
                return []
            for device in devices:
                if device.startswith(("loop", "ram", "zram", "dm-", "sr", "md")):
                    continue
                sectors = _read(root / device / "size")
                rotational = _read(root / device / "queue" / "rotational")
                if device.startswith("nvme"):
                    interface = "NVMe"
                elif device.startswith("mmcblk"):
                    interface = "MMC"
                elif device.startswith("vd"):
                    interface = "Virtio"
                else:
                    interface = "SATA"
                disks.append(
                    RawDisk(
                        name=_read(root / device / "device" / "model") or device,
                        type=("SSD" if rotational == "0" else "HD" if rotational == "1" else None),
                        size_bytes=(int(sectors) * 512 if sectors and sectors.isdigit() else None),
                        interface_type=interface,
                    )
                )
            return disks

        if self._platform == "Darwin":
            output = _run(["system_profiler", "SPStorageDataType", "-json"])
            if not output:
                return []
            try:
                items = json.loads(output).get("SPStorageDataType", [])
            except ValueError:
                return []
            disks = []
            seen: set[str] = set()
            for item in items:
                drive = item.get("physical_drive") or {}
                name = drive.get("device_name") or item.get("_name")
                if name in seen:
                    continue
                seen.add(name)
                medium = (drive.get("medium_type") or "").lower()
                disks.append(
                    RawDisk(
                        name=name,
                        type=("SSD" if medium == "ssd" else "HD" if medium else None),
                        size_bytes=item.get("size_in_bytes"),
                        interface_type=drive.get("protocol"),
                    )
                )
            return disks

        if self._platform == "Windows":
            output = _run(["wmic", "diskdrive", "get", "InterfaceType,MediaType,Model,Size", "/format:csv"])
            if not output:
                return []
            disks = []
            for line in output.splitlines()[1:]:
                parts = [p.strip() for p in line.split(",")]
                if len(parts) < 5 or not parts[3]:
                    continue
                media = parts[2].lower()
                disks.append(
                    RawDisk(
                        name=parts[3],
                        type=("SSD" if "ssd" in media or "solid" in media else None),
                        size_bytes=(int(parts[4]) if parts[4].isdigit() else None),
                        interface_type=parts[1] or None,
                    )
                )
            return disks
        return []

    def _query_os(self) -> RawOsInfo:
        try:
            uptime = time.time() - psutil.boot_time()
        except OSError:
            uptime = None
        return RawOsInfo(
            platform=sys.platform,
            release=platform.release() or None,
            arch=platform.machine() or None,
            hostname=socket.gethostname() or None,
            uptime_seconds=uptime,
        )

    def _query_system(self) -> RawSystem:
        if self._platform == "Linux":
            dmi = Path("/sys/class/dmi/id")
            return RawSystem(manufacturer=_read(dmi / "sys_vendor"), model=_read(dmi / "product_name"))
        if self._platform == "Darwin":
            model = _run(["sysctl", "-n", "hw.model"])
            return RawSystem(manufacturer="Apple Inc.", model=(model.strip() if model else None))
        if self._platform == "Windows":
            output = _run(["wmic", "computersystem", "get", "Manufacturer,Model", "/format:csv"])
            if output:
                for line in output.splitlines()[1:]:
                    parts = [p.strip() for p in line.split(",")]
                    if len(parts) >= 3 and parts[1]:
                        return RawSystem(manufacturer=parts[1], model=parts[2] or None)
        return RawSystem()

    def _query_network(self) -> list[RawNetworkInterface]:
        try:
            stats = psutil.net_if_stats()
            addrs = psutil.net_if_addrs()
        except OSError:
            return []
        out: list[RawNetworkInterface] = []
        for name, st in stats.items():
            flags = getattr(st, "flags", "") or ""
            addresses = [a.address for a in addrs.get(name, [])]
            internal = (
                "loopback" in flags
                or name == "lo"
                or any(a.startswith("127.") or a == "::1" for a in addresses)
            )
            lowered = name.lower()
            wireless = lowered.startswith(("wl", "wlan", "wi-fi", "wifi", "airport"))
            out.append(
                RawNetworkInterface(
                    name=name,
                    type=("wireless" if wireless else "wired"),
                    speed_mbps=(int(st.speed) if st.speed else None),
                    internal=internal,
                )
            )
        return out

    def _query_battery(self) -> RawBattery | None:
        try:
            battery = psutil.sensors_battery()
        except (AttributeError, OSError, NotImplementedError):
            return None
        if battery is None:
            return RawBattery(has_battery=False)
        return RawBattery(
            has_battery=True,
            percent=float(battery.percent),
            is_charging=battery.power_plugged,
        )
