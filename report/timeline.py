# report/timeline.py
"""Per-step elapsed time and bar weights for the step timeline.

Weights use a piecewise linear scale rather than a share of the total, so a
sub-second click still shows up next to a long wait:

    [0s, 1s)    -> [1, 10] %
    [1s, 5s)    -> [10, 30] %
    [5s, 15s)   -> [30, 60] %
    [15s, 30s)  -> [60, 85] %
    [30s, 60s]  -> [85, 100] %   (anything longer counts as 60s)

Within a bucket the weight moves linearly with the duration's position in
that bucket. The buckets join end to end, so the scale is continuous and
non-decreasing over the whole range.
"""
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence

from recorder.actions import BaseAction

FALLBACK_DURATION_SECONDS = 30
WEIGHT_CAP_MS = 60_000
UNKNOWN_DURATION = "unknown"

# (start_ms, end_ms, weight_at_start, weight_at_end)
WEIGHT_BUCKETS = (
    (0, 1_000, 1.0, 10.0),
    (1_000, 5_000, 10.0, 30.0),
    (5_000, 15_000, 30.0, 60.0),
    (15_000, 30_000, 60.0, 85.0),
    (30_000, WEIGHT_CAP_MS, 85.0, 100.0),
)
MIN_WEIGHT = WEIGHT_BUCKETS[0][2]


@dataclass(frozen=True)
class TimelineEntry:
    step_index: int  # index of the later action of the pair
    duration_ms: Optional[int]  # None when the pair is out of order
    duration_formatted: str
    weight_percent: float

    @property
    def known(self) -> bool:
        return self.duration_ms is not None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_duration(ms: int) -> str:
    if ms < 1_000:
        return f"{int(ms)}ms"
    if ms < 60_000:
        return f"{ms / 1000:.1f}s"
    minutes = int(ms // 60_000)
    seconds = int((ms % 60_000) // 1_000)
    return f"{minutes}m {seconds}s"


def duration_weight(ms: float) -> float:
    ms = min(max(ms, 0), WEIGHT_CAP_MS)
    for start, end, w_start, w_end in WEIGHT_BUCKETS:
        if ms < end:
            fraction = (ms - start) / (end - start)
            return w_start + fraction * (w_end - w_start)
    return WEIGHT_BUCKETS[-1][3]


def elapsed_ms(earlier: BaseAction, later: BaseAction) -> float:
    return (later.moment - earlier.moment) / timedelta(milliseconds=1)


def total_duration_seconds(actions: Sequence[BaseAction]) -> int:
    if len(actions) < 2:
        return FALLBACK_DURATION_SECONDS
    return max(0, _round_half_up(elapsed_ms(actions[0], actions[-1]) / 1000))


def reconstruct(actions: Sequence[BaseAction]) -> List[TimelineEntry]:
    entries = []
    for i in range(1, len(actions)):
        delta = _round_half_up(elapsed_ms(actions[i - 1], actions[i]))
        if delta < 0:
            # clock skew or replayed data: keep the slot, hide the number
            entries.append(TimelineEntry(i, None, UNKNOWN_DURATION, MIN_WEIGHT))
            continue
        entries.append(TimelineEntry(i, delta, format_duration(delta), duration_weight(delta)))
    return entries
