"""Prometheus-compatible metrics for the spell engine.

Renders the Prometheus text exposition format directly; the host application
decides whether and where to serve it.

Tracked metrics:
- spellcast_spells_total (counter, by spell name)
- spellcast_learning_total (counter, by outcome)
- spellcast_tracking_events_total (counter)
- spellcast_tip_visible_total (counter)
- spellcast_velocity_rejections_total (counter)
- spellcast_tracking_losses_total (counter)
- spellcast_tick_latency_seconds (histogram)
- spellcast_tip_visibility_rate (gauge)
"""

from __future__ import annotations

import threading
import time
from collections import Counter


class _Histogram:
    """Simple histogram with configurable buckets."""

    def __init__(self, buckets: list[float]):
        self.buckets = sorted(buckets)
        self.bucket_counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float):
        with self._lock:
            self.count += 1
            self.sum += value
            for i, b in enumerate(self.buckets):
                if value <= b:
                    self.bucket_counts[i] += 1
                    break

    def render(self, name: str, help_text: str) -> list[str]:
        lines = [
            f"# HELP {name} {help_text}",
            f"# TYPE {name} histogram",
        ]
        with self._lock:
            cumulative = 0
            for b, n in zip(self.buckets, self.bucket_counts):
                cumulative += n
                lines.append(f'{name}_bucket{{le="{b}"}} {cumulative}')
            lines.append(f'{name}_bucket{{le="+Inf"}} {self.count}')
            lines.append(f"{name}_sum {self.sum:.6f}")
            lines.append(f"{name}_count {self.count}")
        return lines


class MetricsCollector:
    """Counts recognitions, learning outcomes and tracking health."""

    PREFIX = "spellcast"

    def __init__(self):
        self._spell_counts: Counter = Counter()
        self._learning_counts: Counter = Counter()
        self._events_total = 0
        self._tip_visible_total = 0
        self._velocity_rejections = 0
        self._tracking_losses = 0
        self._tip_visibility_rate = 0.0
        self._lock = threading.Lock()

        # Per-tick engine latency: 0.1ms to 10ms, the engine does no I/O
        self._latency = _Histogram(
            [0.0001, 0.00025, 0.0005, 0.001, 0.0025, 0.005, 0.010]
        )
        self._start_time = time.time()

    def record_spell(self, name: str):
        with self._lock:
            self._spell_counts[name] += 1

    def record_learning(self, outcome: str):
        with self._lock:
            self._learning_counts[outcome] += 1

    def record_event(self, latency_seconds: float, tip_visible: bool, gated: bool = False):
        with self._lock:
            self._events_total += 1
            if tip_visible:
                self._tip_visible_total += 1
            if gated:
                self._velocity_rejections += 1
            rate = 1.0 if tip_visible else 0.0
            self._tip_visibility_rate = 0.95 * self._tip_visibility_rate + 0.05 * rate
        self._latency.observe(latency_seconds)

    def record_tracking_loss(self):
        with self._lock:
            self._tracking_losses += 1

    def _counter(self, name: str, help_text: str, value) -> list[str]:
        full = f"{self.PREFIX}_{name}"
        return [f"# HELP {full} {help_text}", f"# TYPE {full} counter", f"{full} {value}", ""]

    def _labelled(self, name: str, help_text: str, label: str, counts: Counter) -> list[str]:
        full = f"{self.PREFIX}_{name}"
        lines = [f"# HELP {full} {help_text}", f"# TYPE {full} counter"]
        for key, count in sorted(counts.items()):
            lines.append(f'{full}{{{label}="{key}"}} {count}')
        lines.append("")
        return lines

    def render(self) -> str:
        """Render all metrics in Prometheus text exposition format."""
        lines: list[str] = []

        uptime = time.time() - self._start_time
        lines += [
            f"# HELP {self.PREFIX}_uptime_seconds Time since the collector was created",
            f"# TYPE {self.PREFIX}_uptime_seconds gauge",
            f"{self.PREFIX}_uptime_seconds {uptime:.1f}",
            "",
        ]

        with self._lock:
            lines += self._labelled(
                "spells_total", "Spells recognized by name", "spell", self._spell_counts
            )
            lines += self._labelled(
                "learning_total", "Learning session results by outcome", "outcome",
                self._learning_counts,
            )
            lines += self._counter(
                "tracking_events_total", "Tracking events processed", self._events_total
            )
            lines += self._counter(
                "tip_visible_total", "Tracking events with a usable tip", self._tip_visible_total
            )
            lines += self._counter(
                "velocity_rejections_total", "Tip candidates rejected by the velocity gate",
                self._velocity_rejections,
            )
            lines += self._counter(
                "tracking_losses_total", "Times tracking history was reset after loss",
                self._tracking_losses,
            )
            rate = self._tip_visibility_rate

        lines += self._latency.render(
            f"{self.PREFIX}_tick_latency_seconds", "Engine time per tracking event in seconds"
        )
        lines.append("")

        lines += [
            f"# HELP {self.PREFIX}_tip_visibility_rate Moving average of tip visibility",
            f"# TYPE {self.PREFIX}_tip_visibility_rate gauge",
            f"{self.PREFIX}_tip_visibility_rate {rate:.4f}",
            "",
        ]
        return "\n".join(lines) + "\n"

    @property
    def spell_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._spell_counts)

    @property
    def learning_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._learning_counts)

    @property
    def events_total(self) -> int:
        return self._events_total

    @property
    def tracking_losses(self) -> int:
        return self._tracking_losses
