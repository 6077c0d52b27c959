"""Short, collision-tolerant hardware fingerprint."""

from __future__ import annotations

import base64

from .models import HardwareFacts


FINGERPRINT_LENGTH = 16


def canonical_string(facts: HardwareFacts) -> str:
    gpu_model = facts.gpus[0].model if facts.gpus and facts.gpus[0].model else "integrated"
    return f"{facts.cpu.logical_cores}-{facts.memory.total_gb}-{gpu_model}-{facts.system.os}"


def fingerprint(facts: HardwareFacts) -> str:
    encoded = base64.b64encode(canonical_string(facts).encode("utf-8")).decode("ascii")
    return encoded[:FINGERPRINT_LENGTH]
