"""Full hardware analysis pipeline and the live sampling surface."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable, Protocol

from compass_telemetry.models import RawFilesystem, RawGpuController, RawInventory, RawLoad, RawMemory

from .broadcast import DEFAULT_PERIOD_S, DEFAULT_QUEUE_SIZE, BroadcastLoop, Subscription
from .errors import CollaboratorUnavailable
from .fingerprint import fingerprint
from .logging_setup import get_logger
from .models import Analysis, BatteryInfo, HardwareFacts, NetworkInterfaceInfo, RealtimeSample
from .normalizer import build_realtime_sample, normalize, normalize_battery, normalize_network
from .scoring import score, tier_for
from .snapshot import SnapshotCache


class InventorySource(Protocol):
    def query_inventory(self) -> RawInventory: ...

    def query_load(self) -> RawLoad: ...

    def query_temperature(self) -> float | None: ...

    def query_free_disk(self) -> list[RawFilesystem]: ...

    def query_memory(self) -> RawMemory: ...

    def query_gpu_load(self) -> list[RawGpuController]: ...


def derive_analysis(
    facts: HardwareFacts,
    timestamp: datetime | None = None,
    network_interfaces: Iterable[NetworkInterfaceInfo] = (),
    battery: BatteryInfo | None = None,
) -> Analysis:
    scores = score(facts)
    return Analysis(
        fingerprint=fingerprint(facts),
        facts=facts,
        scores=scores,
        tier=tier_for(scores.overall_score),
        timestamp=timestamp or datetime.now(timezone.utc),
        network_interfaces=tuple(network_interfaces),
        battery=battery,
    )


class HardwareAnalyzer:
    def __init__(
        self,
        source: InventorySource,
        cache: SnapshotCache | None = None,
        clock: Callable[[], datetime] | None = None,
        period_s: float = DEFAULT_PERIOD_S,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self.source = source
        self.cache = cache or SnapshotCache()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._log = get_logger()
        self.broadcast: BroadcastLoop[RealtimeSample] = BroadcastLoop(
            self.get_realtime_sample, period_s=period_s, queue_size=queue_size
        )

    def run_full_analysis(self) -> Analysis:
        self._log.info("hardware analysis started", extra={"event": "analysis_started"})
        try:
            inventory = self.source.query_inventory()
            load = self.source.query_load()
        except Exception as exc:
            self._log.error(f"hardware analysis failed: {exc}", extra={"event": "analysis_failed"})
            raise CollaboratorUnavailable("inventory", exc) from exc

        temperature = self._best_effort("temperature", self.source.query_temperature, None)
        filesystems = self._best_effort("free disk", self.source.query_free_disk, [])

        facts = normalize(inventory, load=load, temperature_c=temperature, filesystems=filesystems)
        analysis = derive_analysis(
            facts,
            timestamp=self._clock(),
            network_interfaces=normalize_network(inventory.network_interfaces),
            battery=normalize_battery(inventory.battery),
        )
        self.cache.replace(analysis)
        self._log.info(
            f"hardware analysis completed tier={analysis.tier.value} score={analysis.scores.overall_score}",
            extra={"event": "analysis_completed"},
        )
        return analysis

    def get_cached_analysis(self) -> Analysis | None:
        return self.cache.get()

    def get_realtime_sample(self) -> RealtimeSample | None:
        try:
            load = self.source.query_load()
            memory = self.source.query_memory()
            temperature = self.source.query_temperature()
            gpus = self.source.query_gpu_load()
        except Exception as exc:
            self._log.warning(f"realtime poll failed: {exc}", extra={"event": "realtime_poll_failed"})
            return None
        return build_realtime_sample(load, memory, temperature, gpus, now=self._clock())

    def subscribe(self, on_deliver: Callable[[], None] | None = None) -> Subscription[RealtimeSample]:
        return self.broadcast.subscribe(on_deliver)

    def unsubscribe(self, sub: Subscription[RealtimeSample]) -> None:
        self.broadcast.unsubscribe(sub)

    def close(self) -> None:
        self.broadcast.close()

    def _best_effort(self, what: str, fn, default):
        try:
            return fn()
        except Exception as exc:
            self._log.warning(f"{what} query failed: {exc}", extra={"event": "query_failed"})
            return default
