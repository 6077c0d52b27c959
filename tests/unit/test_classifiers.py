import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from compass_core.classifiers import (
    GPU_TYPE_RULES,
    Rule,
    classify_gpu_type,
    estimate_vram_gb,
    extract_gpu_brand,
    first_match,
    infer_memory_type,
    lookup_vram_gb,
    sort_gpus,
)
from compass_core.models import GpuFacts, GpuType


class RuleTableTests(unittest.TestCase):
    def test_first_match_wins_in_order(self):
        rules = (
            Rule("a", lambda m, _v: "x" in m, "first"),
            Rule("b", lambda m, _v: "x" in m, "second"),
        )
        self.assertEqual(first_match(rules, "xx", "", "default"), "first")
        self.assertEqual(first_match(rules, "yy", "", "default"), "default")

    def test_gpu_type_rule_names_are_unique(self):
        names = [r.name for r in GPU_TYPE_RULES]
        self.assertEqual(len(names), len(set(names)))


class BrandTests(unittest.TestCase):
    def test_known_vendors(self):
        self.assertEqual(extract_gpu_brand("NVIDIA Corporation"), "NVIDIA")
        self.assertEqual(extract_gpu_brand("Advanced Micro Devices, Inc. [AMD/ATI]"), "AMD")
        self.assertEqual(extract_gpu_brand("ATI Technologies Inc."), "AMD")
        self.assertEqual(extract_gpu_brand("Intel Corporation"), "Intel")
        self.assertEqual(extract_gpu_brand("Apple"), "Apple")

    def test_corporation_suffix_is_not_ati(self):
        self.assertEqual(extract_gpu_brand("Matrox Corporation"), "Matrox Corporation")

    def test_empty_vendor_is_unknown(self):
        self.assertEqual(extract_gpu_brand(None), "Unknown")
        self.assertEqual(extract_gpu_brand(""), "Unknown")


class GpuTypeTests(unittest.TestCase):
    def test_apple_silicon(self):
        self.assertIs(classify_gpu_type("Apple M2 Pro", "Apple"), GpuType.APPLE_UNIFIED)
        self.assertIs(classify_gpu_type("M1", None), GpuType.APPLE_UNIFIED)

    def test_nvidia_models_are_dedicated(self):
        self.assertIs(classify_gpu_type("GeForce RTX 3060", "NVIDIA"), GpuType.DEDICATED)
        self.assertIs(classify_gpu_type("Quadro P2000", None), GpuType.DEDICATED)
        self.assertIs(classify_gpu_type("Tesla T4", "NVIDIA"), GpuType.DEDICATED)

    def test_radeon_graphics_is_integrated_when_vendor_unknown(self):
        self.assertIs(classify_gpu_type("Radeon Graphics", None), GpuType.INTEGRATED)
        self.assertIs(classify_gpu_type("Radeon RX 6600", None), GpuType.DEDICATED)

    def test_amd_vendor_integrated_marker(self):
        self.assertIs(classify_gpu_type("Integrated Graphics", "AMD"), GpuType.INTEGRATED)

    def test_intel_arc_versus_iris(self):
        self.assertIs(classify_gpu_type("Arc A770", "Intel"), GpuType.DEDICATED)
        self.assertIs(classify_gpu_type("Iris Xe Graphics", "Intel"), GpuType.INTEGRATED)
        self.assertIs(classify_gpu_type("Alder Lake-P Integrated Graphics Controller", "Intel"), GpuType.INTEGRATED)

    def test_unrecognized_falls_through_to_integrated(self):
        self.assertIs(classify_gpu_type("Mystery Adapter", "Acme"), GpuType.INTEGRATED)
        self.assertIs(classify_gpu_type(None, None), GpuType.INTEGRATED)


class VramTests(unittest.TestCase):
    def test_table_outranks_reported_value(self):
        self.assertEqual(estimate_vram_gb("GeForce RTX 3060", "NVIDIA", reported_vram_mb=16 * 1024), 6)

    def test_specific_entries_before_general(self):
        self.assertEqual(lookup_vram_gb("GeForce RTX 3050 Ti Laptop GPU"), 4)
        self.assertEqual(lookup_vram_gb("GeForce RTX 3080 Ti"), 12)
        self.assertEqual(lookup_vram_gb("GeForce RTX 3080"), 10)
        self.assertIsNone(lookup_vram_gb("GeForce GTX 1650"))

    def test_integrated_vendor_is_zero(self):
        self.assertEqual(estimate_vram_gb("UHD Graphics 770", "Intel Corporation", reported_vram_mb=2048), 0)

    def test_reported_values_above_noise_floor(self):
        self.assertEqual(estimate_vram_gb("GeForce GTX 1650", "NVIDIA", reported_vram_mb=4096), 4)
        self.assertEqual(estimate_vram_gb("Mystery", "Acme", reported_vram_mb=256, reported_memory_total_mb=8192), 8)
        self.assertEqual(estimate_vram_gb("Mystery", "Acme", reported_vram_mb=512), 0)

    def test_nothing_known_is_zero(self):
        self.assertEqual(estimate_vram_gb(None, None), 0)


class SortAndMemoryTests(unittest.TestCase):
    def test_sort_dedicated_first_then_vram(self):
        igpu = GpuFacts(model="UHD", type=GpuType.INTEGRATED, vram_gb=0)
        small = GpuFacts(model="1650", type=GpuType.DEDICATED, vram_gb=4)
        big = GpuFacts(model="3090", type=GpuType.DEDICATED, vram_gb=24)
        self.assertEqual([g.model for g in sort_gpus([igpu, small, big])], ["3090", "1650", "UHD"])

    def test_memory_type_reported_wins(self):
        self.assertEqual(infer_memory_type("ddr5", 3200), "DDR5")

    def test_memory_type_from_speed(self):
        self.assertEqual(infer_memory_type(None, 5600), "DDR5")
        self.assertEqual(infer_memory_type("", 3200), "DDR4")
        self.assertEqual(infer_memory_type(None, 1600), "DDR3")
        self.assertEqual(infer_memory_type(None, None), "DDR4")


if __name__ == "__main__":
    unittest.main()
