from __future__ import annotations

import math
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque


@dataclass(frozen=True)
class SourceFetchSample:
    ts: float
    source: str
    latency_ms: float
    success: bool


_source_samples: Deque[SourceFetchSample] = deque(maxlen=10000)
_counters: dict[str, int] = defaultdict(int)


def record_source_fetch(*, source: str, latency_ms: float, success: bool) -> None:
    # Capture per-source fetch latency and outcome for report observability.
    _source_samples.append(
        SourceFetchSample(
            ts=time.time(),
            source=source,
            latency_ms=latency_ms,
            success=success,
        )
    )


def increment_counter(name: str, value: int = 1) -> None:
    _counters[name] += value


def _percentile(latencies: list[float], fraction: float) -> float:
    idx = max(0, math.ceil(fraction * len(latencies)) - 1)
    return latencies[idx]


def source_latency_stats(window_s: int) -> dict[str, dict[str, float | int]]:
    # Aggregate p50/p95/max and failure counts per report source in the window.
    cutoff = time.time() - window_s
    grouped: dict[str, list[SourceFetchSample]] = defaultdict(list)
    for sample in _source_samples:
        if sample.ts < cutoff:
            continue
        grouped[sample.source].append(sample)
    result: dict[str, dict[str, float | int]] = {}
    for source, samples in grouped.items():
        latencies = sorted(sample.latency_ms for sample in samples)
        result[source] = {
            "p50": _percentile(latencies, 0.5),
            "p95": _percentile(latencies, 0.95),
            "max": latencies[-1],
            "failures": sum(1 for sample in samples if not sample.success),
        }
    return result


def counters_snapshot() -> dict[str, int]:
    return dict(_counters)


def reset_telemetry() -> None:
    # Tests reset in-process state between cases.
    _source_samples.clear()
    _counters.clear()
