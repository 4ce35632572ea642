"""
Polling schedule for startup monitoring.

Steps start near max_interval and shrink logarithmically toward
min_interval as elapsed time approaches the timeout. The sum of the
steps is exactly the timeout (within EPSILON).
"""
import math
from dataclasses import dataclass
from typing import Dict, List, Sequence

EPSILON = 1e-9


class ScheduleError(ValueError):
    """Invalid schedule parameters"""
    pass


def _finite_positive(value: float) -> bool:
    return value > 0 and math.isfinite(value)


def generate_log_intervals(timeout: float, min_interval: float, max_interval: float,
                           curve_shift: float, factor: float = 1.0) -> List[float]:
    """
    Build the list of wait durations (seconds) for one monitoring session.

    For each step, with elapsed the time already covered:
        ratio = log2(1 + elapsed/curve_shift) / log2(1 + timeout/curve_shift), clamped to [0, 1]
        step  = (max - min) * (1 - ratio) * factor + min, clamped to [min, max]
    and the last step is cut down to whatever time remains.

    Raises:
        ScheduleError: timeout or min_interval not positive, max < min,
            or curve_shift not a finite positive number
    """
    if not timeout > 0:
        raise ScheduleError("timeout must be > 0")
    if not min_interval > 0:
        raise ScheduleError("min_interval must be > 0")
    if max_interval < min_interval:
        raise ScheduleError("max_interval must be >= min_interval")
    if not _finite_positive(curve_shift):
        raise ScheduleError("curve_shift must be finite and > 0")
    if not _finite_positive(factor):
        factor = 1.0

    total = float(timeout)
    den = math.log2(1 + total / curve_shift)
    if not den > 0 or not math.isfinite(den):
        return [total]

    intervals = []
    start = 0.0

    while start + EPSILON < total:
        ratio = math.log2(1 + start / curve_shift) / den
        ratio = min(max(ratio, 0.0), 1.0)

        step = (max_interval - min_interval) * (1 - ratio) * factor + min_interval
        step = min(max(step, min_interval), max_interval)

        remaining = total - start
        if step > remaining:
            step = remaining
        if step < EPSILON:
            break

        intervals.append(step)
        start += step

    return intervals


@dataclass(frozen=True)
class ScheduleConfig:
    """Call-site defaults for watching a machine boot."""
    timeout: float = 180.0
    min_interval: float = 5.0
    max_interval: float = 40.0
    curve_shift: float = 1.5
    factor: float = 1.5

    @classmethod
    def from_config(cls, monitor_cfg: Dict) -> "ScheduleConfig":
        return cls(
            timeout=float(monitor_cfg.get("timeout_seconds", cls.timeout)),
            min_interval=float(monitor_cfg.get("min_interval_seconds", cls.min_interval)),
            max_interval=float(monitor_cfg.get("max_interval_seconds", cls.max_interval)),
            curve_shift=float(monitor_cfg.get("curve_shift", cls.curve_shift)),
            factor=float(monitor_cfg.get("factor", cls.factor)),
        )

    def build(self) -> List[float]:
        return generate_log_intervals(
            self.timeout, self.min_interval, self.max_interval, self.curve_shift, self.factor
        )


def format_schedule(intervals: Sequence[float], max_interval: float, bar_width: int = 80) -> str:
    lines = [
        f"{'Step':>4} | {'Interval':>9}  | {'Cumulative':>11}  | Graphical",
        "-" * (35 + bar_width),
    ]
    cumulative = 0.0
    for step, interval in enumerate(intervals, start=1):
        cumulative += interval
        bar = "." * int(round(interval / max_interval * bar_width)) if max_interval > 0 else ""
        lines.append(f" {step:3d} | {interval:8.2f}s  | {cumulative:10.2f}s  | {bar}")
    return "\n".join(lines)
