import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from compass_telemetry.provider import (
    InventoryProvider,
    parse_dmidecode_memory,
    parse_lspci,
    parse_system_profiler_displays,
)

LSPCI = """\
00:02.0 VGA compatible controller: Intel Corporation Alder Lake-S GT1 [UHD Graphics 730] (rev 0c)
00:14.0 USB controller: Intel Corporation Alder Lake-S PCH USB 3.2 Gen 2x2 XHCI Host Controller (rev 11)
01:00.0 VGA compatible controller: NVIDIA Corporation GA104 [GeForce RTX 3070] (rev a1)
03:00.0 Display controller: Advanced Micro Devices, Inc. [AMD/ATI] Navi 21 [Radeon RX 6800/6800 XT / 6900 XT] (rev c1)
"""

DMIDECODE = """\
# dmidecode 3.5
Handle 0x0040, DMI type 17, 92 bytes
Memory Device
\tSize: 16 GB
\tType: DDR4
\tSpeed: 3600 MT/s
\tConfigured Memory Speed: 3200 MT/s

Handle 0x0041, DMI type 17, 92 bytes
Memory Device
\tSize: No Module Installed
\tType: Unknown
\tSpeed: Unknown
"""


class ParserTests(unittest.TestCase):
    def test_lspci_keeps_display_devices_only(self):
        gpus = parse_lspci(LSPCI)
        self.assertEqual([g.vendor for g in gpus], ["Intel", "NVIDIA", "AMD"])
        self.assertEqual(gpus[0].model, "UHD Graphics 730")
        self.assertEqual(gpus[1].model, "GeForce RTX 3070")
        self.assertEqual(gpus[2].model, "Radeon RX 6800/6800 XT / 6900 XT")
        self.assertTrue(all(g.vram_mb is None for g in gpus))

    def test_dmidecode_skips_empty_slots(self):
        modules = parse_dmidecode_memory(DMIDECODE)
        self.assertEqual(len(modules), 1)
        self.assertEqual(modules[0].type, "DDR4")
        self.assertEqual(modules[0].clock_speed_mhz, 3200)
        self.assertEqual(modules[0].size_bytes, 16 * 1024**3)

    def test_system_profiler_displays(self):
        payload = {
            "SPDisplaysDataType": [
                {"_name": "Apple M2 Pro", "sppci_model": "Apple M2 Pro", "spdisplays_vendor": "sppci_vendor_Apple"},
                {"sppci_model": "AMD Radeon Pro 5500M", "spdisplays_vendor": "AMD", "spdisplays_vram": "8 GB"},
            ]
        }
        gpus = parse_system_profiler_displays(payload)
        self.assertEqual(gpus[0].vendor, "Apple")
        self.assertIsNone(gpus[0].vram_mb)
        self.assertEqual(gpus[1].model, "AMD Radeon Pro 5500M")
        self.assertEqual(gpus[1].vram_mb, 8192)

    def test_empty_inputs(self):
        self.assertEqual(parse_lspci(""), [])
        self.assertEqual(parse_dmidecode_memory(""), [])
        self.assertEqual(parse_system_profiler_displays({}), [])


class InventoryProviderTests(unittest.TestCase):
    def test_live_queries_return_plausible_values(self):
        provider = InventoryProvider()
        load = provider.query_load()
        self.assertGreaterEqual(load.current_load, 0.0)
        self.assertTrue(all(v >= 0.0 for v in load.per_cpu_load))
        memory = provider.query_memory()
        self.assertGreater(memory.total_bytes, 0)
        self.assertIsInstance(provider.query_free_disk(), list)
        self.assertIsInstance(provider.query_gpu_load(), list)


if __name__ == "__main__":
    unittest.main()
