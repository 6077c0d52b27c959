import sys
import threading
import time
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from compass_core.broadcast import BroadcastLoop, BroadcastState, Subscription


class _Counter:
    def __init__(self, fail_on: set[int] | None = None) -> None:
        self.calls = 0
        self.fail_on = fail_on or set()
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
            n = self.calls
        if n in self.fail_on:
            raise RuntimeError(f"sample {n} failed")
        return n


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class SubscriptionTests(unittest.TestCase):
    def test_full_mailbox_drops_oldest(self):
        sub: Subscription[int] = Subscription(maxsize=2)
        for n in (1, 2, 3):
            self.assertTrue(sub.deliver(n))
        self.assertEqual(sub.dropped, 1)
        self.assertEqual(sub.get(timeout=0), 2)
        self.assertEqual(sub.get(timeout=0), 3)
        self.assertIsNone(sub.get(timeout=0))

    def test_closed_subscription_refuses_delivery(self):
        sub: Subscription[int] = Subscription()
        sub.close()
        self.assertFalse(sub.deliver(1))
        self.assertIsNone(sub.get(timeout=0))


class BroadcastLoopTests(unittest.TestCase):
    def test_first_subscriber_activates_and_last_detach_idles(self):
        source = _Counter()
        loop = BroadcastLoop(source, period_s=0.02)
        self.assertIs(loop.state, BroadcastState.IDLE)

        sub = loop.subscribe()
        self.assertIs(loop.state, BroadcastState.ACTIVE)
        self.assertIsNotNone(sub.get(timeout=1.0))

        loop.unsubscribe(sub)
        self.assertIs(loop.state, BroadcastState.IDLE)
        settled = source.calls
        time.sleep(0.1)
        self.assertEqual(source.calls, settled)

    def test_start_twice_runs_one_worker(self):
        loop = BroadcastLoop(_Counter(), period_s=0.05)
        before = set(threading.enumerate())
        sub = loop.subscribe()
        loop.start()
        loop.start()
        workers = [t for t in threading.enumerate() if t not in before and t.name == "compass-broadcast"]
        self.assertEqual(len(workers), 1)
        self.assertEqual(len([e for e in loop.recent_events() if e["event"] == "start"]), 1)
        loop.stop()
        loop.stop()
        self.assertIs(loop.state, BroadcastState.IDLE)
        self.assertTrue(_wait_for(lambda: not workers[0].is_alive()))
        loop.unsubscribe(sub)

    def test_start_without_subscribers_stays_idle(self):
        source = _Counter()
        loop = BroadcastLoop(source, period_s=0.02)
        loop.start()
        self.assertIs(loop.state, BroadcastState.IDLE)
        time.sleep(0.15)
        self.assertEqual(source.calls, 0)
        self.assertEqual([e for e in loop.recent_events() if e["event"] == "start"], [])

    def test_delivery_callback_fires_per_sample(self):
        woken = []
        loop = BroadcastLoop(_Counter(), period_s=10)
        sub = loop.subscribe(on_deliver=lambda: woken.append(True))
        loop.tick()
        loop.tick()
        self.assertEqual(len(woken), 2)
        self.assertEqual(sub.get(timeout=0), 1)
        loop.unsubscribe(sub)
        loop.tick()
        self.assertEqual(len(woken), 2)

    def test_unsubscribe_is_idempotent(self):
        loop = BroadcastLoop(_Counter(), period_s=0.05)
        a = loop.subscribe()
        b = loop.subscribe()
        loop.unsubscribe(a)
        loop.unsubscribe(a)
        self.assertEqual(loop.subscriber_count, 1)
        self.assertIs(loop.state, BroadcastState.ACTIVE)
        loop.unsubscribe(b)
        self.assertIs(loop.state, BroadcastState.IDLE)

    def test_detached_subscriber_receives_nothing_more(self):
        loop = BroadcastLoop(_Counter(), period_s=0.05)
        keep = loop.subscribe()
        gone = loop.subscribe()
        loop.unsubscribe(gone)
        while gone.get(timeout=0) is not None:
            pass
        self.assertEqual(loop.tick(), 1)
        self.assertIsNone(gone.get(timeout=0))
        self.assertIsNotNone(keep.get(timeout=0))
        loop.close()

    def test_failed_sample_is_skipped_and_loop_continues(self):
        source = _Counter(fail_on={1})
        loop = BroadcastLoop(source, period_s=0.02)
        with self.assertLogs("ollama_compass", level="WARNING") as logs:
            sub = loop.subscribe()
            value = sub.get(timeout=1.0)
        self.assertEqual(value, 2)
        self.assertEqual(sum("realtime poll failed" in line for line in logs.output), 1)
        self.assertTrue(any(e["event"] == "poll_error" for e in loop.recent_events()))
        loop.close()

    def test_empty_sample_is_not_delivered(self):
        loop: BroadcastLoop[int] = BroadcastLoop(lambda: None, period_s=10)
        sub = loop.subscribe()
        self.assertEqual(loop.tick(), 0)
        self.assertIsNone(sub.get(timeout=0))
        loop.close()

    def test_slow_subscriber_does_not_block_others(self):
        loop = BroadcastLoop(_Counter(), period_s=10, queue_size=1)
        slow = loop.subscribe()
        fast = loop.subscribe()
        for _ in range(5):
            self.assertEqual(loop.tick(), 2)
            self.assertIsNotNone(fast.get(timeout=0))
        self.assertEqual(slow.dropped, 4)
        self.assertEqual(slow.get(timeout=0), 5)
        loop.close()

    def test_close_detaches_everyone(self):
        loop = BroadcastLoop(_Counter(), period_s=10)
        subs = [loop.subscribe() for _ in range(3)]
        loop.close()
        self.assertEqual(loop.subscriber_count, 0)
        self.assertIs(loop.state, BroadcastState.IDLE)
        self.assertTrue(all(s.closed for s in subs))

    def test_concurrent_attach_detach_during_ticks(self):
        loop = BroadcastLoop(_Counter(), period_s=0.001)
        errors: list[BaseException] = []

        def churn():
            try:
                for _ in range(50):
                    loop.unsubscribe(loop.subscribe())
            except BaseException as exc:  # pragma: no cover
                errors.append(exc)

        threads = [threading.Thread(target=churn) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        self.assertEqual(errors, [])
        self.assertEqual(loop.subscriber_count, 0)
        self.assertIs(loop.state, BroadcastState.IDLE)


if __name__ == "__main__":
    unittest.main()
