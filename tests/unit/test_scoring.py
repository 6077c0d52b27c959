import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from compass_core.fingerprint import canonical_string, fingerprint
from compass_core.models import (
    CpuFacts,
    DriveFacts,
    GpuFacts,
    GpuType,
    HardwareFacts,
    HardwareTier,
    MemoryFacts,
    StorageFacts,
    SystemFacts,
)
from compass_core.scoring import gpu_score, overall_score, score, storage_score, tier_for


def _reference_facts() -> HardwareFacts:
    return HardwareFacts(
        cpu=CpuFacts(logical_cores=8, physical_cores=8, base_frequency_ghz=3.0, cache_size_mb=16),
        memory=MemoryFacts(total_gb=32, speed_mhz=3200),
        gpus=(GpuFacts(brand="NVIDIA", model="GeForce RTX 4060", vram_gb=8, type=GpuType.DEDICATED),),
        storage=StorageFacts(drives=(DriveFacts(type="SSD", size_gb=1000),), total_space_gb=1000),
        system=SystemFacts(os="linux"),
    )


class ScoringTests(unittest.TestCase):
    def test_reference_machine_end_to_end(self):
        scores = score(_reference_facts())
        self.assertEqual(scores.cpu_score, 78.0)
        self.assertEqual(scores.memory_score, 100.0)
        self.assertEqual(scores.gpu_score, 92.0)
        self.assertEqual(scores.storage_score, 85.0)
        self.assertEqual(scores.overall_score, 88)
        self.assertIs(tier_for(scores.overall_score), HardwareTier.HIGH)

    def test_scores_are_deterministic(self):
        facts = _reference_facts()
        first = (score(facts), tier_for(score(facts).overall_score), fingerprint(facts))
        for _ in range(5):
            self.assertEqual((score(facts), tier_for(score(facts).overall_score), fingerprint(facts)), first)

    def test_tier_boundaries(self):
        cases = {
            100: HardwareTier.HIGH,
            80: HardwareTier.HIGH,
            79: HardwareTier.MEDIUM,
            60: HardwareTier.MEDIUM,
            59: HardwareTier.LOW,
            40: HardwareTier.LOW,
            39: HardwareTier.VERY_LOW,
            0: HardwareTier.VERY_LOW,
        }
        for overall, tier in cases.items():
            self.assertIs(tier_for(overall), tier, overall)

    def test_dedicated_gpu_score_is_monotonic_in_vram(self):
        previous = -1.0
        for vram in range(0, 20):
            current = gpu_score(GpuFacts(type=GpuType.DEDICATED, vram_gb=vram))
            self.assertGreaterEqual(current, previous)
            previous = current
        self.assertEqual(previous, 100.0)

    def test_gpu_score_by_type(self):
        self.assertEqual(gpu_score(GpuFacts()), 30.0)
        self.assertEqual(gpu_score(GpuFacts(type=GpuType.APPLE_UNIFIED, vram_gb=10)), 80.0)
        self.assertEqual(gpu_score(GpuFacts(type=GpuType.APPLE_UNIFIED, vram_gb=40)), 100.0)

    def test_storage_score_uses_primary_drive(self):
        self.assertEqual(storage_score(StorageFacts()), 60.0)
        self.assertEqual(storage_score(StorageFacts(drives=(DriveFacts(type="HDD"), DriveFacts(type="SSD")))), 60.0)

    def test_overall_rounds_half_up(self):
        # 50*0.35 + 50*0.25 + 51*0.30 + 52*0.10 = 50.5
        self.assertEqual(overall_score(50.0, 50.0, 51.0, 52.0), 51)

    def test_reported_scores_are_integers(self):
        payload = score(HardwareFacts(cpu=CpuFacts(logical_cores=3, base_frequency_ghz=2.25))).to_dict()
        # 15 + 22.5 = 37.5
        self.assertEqual(payload["cpuScore"], 38)
        self.assertIsInstance(payload["overallScore"], int)


class FingerprintTests(unittest.TestCase):
    def test_fixed_length(self):
        self.assertEqual(len(fingerprint(_reference_facts())), 16)

    def test_canonical_string(self):
        self.assertEqual(canonical_string(_reference_facts()), "8-32-GeForce RTX 4060-linux")
        self.assertEqual(canonical_string(HardwareFacts()), "1-0-integrated-Unknown")

    def test_known_value(self):
        # base64("8-32-GeForce RTX 4060-linux")[:16]
        self.assertEqual(fingerprint(_reference_facts()), "OC0zMi1HZUZvcmNl")

    def test_ignores_fields_outside_the_canonical_subset(self):
        facts = _reference_facts()
        other = HardwareFacts(
            cpu=CpuFacts(logical_cores=8, base_frequency_ghz=1.0),
            memory=MemoryFacts(total_gb=32),
            gpus=facts.gpus,
            system=SystemFacts(os="linux", hostname="other"),
        )
        self.assertEqual(fingerprint(facts), fingerprint(other))


if __name__ == "__main__":
    unittest.main()
