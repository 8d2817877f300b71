from __future__ import annotations

import json
import logging
import math
import time
from collections import defaultdict, deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)


@dataclass
class SlowFrame:
    kind: str
    total_ms: float
    context: dict[str, Any]
    sections_ms: dict[str, float]

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "total_ms": self.total_ms, "context": self.context, "sections_ms": self.sections_ms}


@dataclass
class _OpenFrame:
    kind: str
    started: float
    context: dict[str, Any] = field(default_factory=dict)
    totals: defaultdict[str, float] = field(default_factory=lambda: defaultdict(float))


def percentile(samples: list[float], fraction: float) -> float:
    """Nearest-rank percentile of ``samples``; 0.0 when there are none."""
    if not samples:
        return 0.0
    ordered = sorted(samples)
    index = math.ceil(len(ordered) * fraction) - 1
    return ordered[min(max(index, 0), len(ordered) - 1)]


class RuntimeProfiler:
    """Per-frame section timings with a record of frames over budget.

    A frame is one simulation tick or one draw. Sections nest freely; their
    durations are summed into whichever frame is open.
    """

    REPORT_PREFIX = "tick_report"

    def __init__(self, enabled: bool = True, slow_frame_ms: float = 25.0, max_slow_frames: int = 400) -> None:
        self.enabled = enabled
        self.slow_frame_ms = slow_frame_ms
        self.section_samples_ms: defaultdict[str, list[float]] = defaultdict(list)
        self.frame_samples_ms: defaultdict[str, list[float]] = defaultdict(list)
        self._slow: deque[SlowFrame] = deque(maxlen=max_slow_frames)
        self._open: _OpenFrame | None = None

    @property
    def slow_frames(self) -> list[dict[str, Any]]:
        return [frame.as_dict() for frame in self._slow]

    def begin_frame(self, kind: str, context: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        if self._open is not None:
            # A frame left open by an exception is closed rather than merged.
            self.end_frame({"warning": "frame_auto_closed"})
        self._open = _OpenFrame(kind, time.perf_counter(), dict(context or {}))

    def end_frame(self, extra_context: dict[str, Any] | None = None) -> float:
        """Close the open frame and return its duration in milliseconds."""
        frame, self._open = self._open, None
        if not self.enabled or frame is None:
            return 0.0

        elapsed_ms = (time.perf_counter() - frame.started) * 1000.0
        self.frame_samples_ms["frame." + frame.kind].append(elapsed_ms)
        if elapsed_ms >= self.slow_frame_ms:
            frame.context.update(extra_context or {})
            ranked = dict(sorted(frame.totals.items(), key=lambda pair: -pair[1]))
            self._slow.append(SlowFrame(frame.kind, elapsed_ms, frame.context, ranked))
            logger.debug("slow %s frame took %.2fms", frame.kind, elapsed_ms)
        return elapsed_ms

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return
        started = time.perf_counter()
        try:
            yield
        finally:
            self.record_section_ms(name, (time.perf_counter() - started) * 1000.0)

    def record_section_ms(self, name: str, duration_ms: float) -> None:
        if not self.enabled:
            return
        self.section_samples_ms[name].append(duration_ms)
        if self._open is not None:
            self._open.totals[name] += duration_ms

    def stats(self, values: list[float]) -> dict[str, float]:
        count = len(values)
        return {
            "count": float(count),
            "avg_ms": sum(values) / count if count else 0.0,
            "p95_ms": percentile(values, 0.95),
            "max_ms": max(values, default=0.0),
        }

    def summary(self) -> dict[str, Any]:
        return {
            "slow_frame_threshold_ms": self.slow_frame_ms,
            "frame_stats_ms": {key: self.stats(samples) for key, samples in self.frame_samples_ms.items()},
            "section_stats_ms": {key: self.stats(samples) for key, samples in self.section_samples_ms.items()},
            "slow_frames": self.slow_frames,
        }

    def _text_report(self, report: dict[str, Any]) -> str:
        out = [f"voxelstream tick report ({report['generated_at']})"]
        for heading, key in (("Frames", "frame_stats_ms"), ("Sections", "section_stats_ms")):
            out += ["", heading]
            ranked = sorted(report[key].items(), key=lambda pair: -pair[1]["p95_ms"])
            out += [
                f"- {name}: count={int(s['count'])} avg={s['avg_ms']:.3f}ms p95={s['p95_ms']:.3f}ms max={s['max_ms']:.3f}ms"
                for name, s in ranked
            ]
        worst = sorted(self._slow, key=lambda frame: -frame.total_ms)[:25]
        out += ["", f"Slow frames ({len(self._slow)})"]
        out += [f"- {frame.kind} total={frame.total_ms:.2f}ms context={frame.context}" for frame in worst]
        return "\n".join(out) + "\n"

    def write_report(self, output_dir: str | Path = "profiling") -> tuple[Path, Path] | None:
        """Write text and JSON reports into ``output_dir``; ``None`` when disabled."""
        if not self.enabled:
            return None

        directory = Path(output_dir)
        directory.mkdir(parents=True, exist_ok=True)
        base = directory / f"{self.REPORT_PREFIX}_{time.strftime('%Y%m%d_%H%M%S')}"
        report = {"generated_at": time.strftime("%Y-%m-%d %H:%M:%S"), **self.summary()}

        json_path = base.with_suffix(".json")
        json_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
        txt_path = base.with_suffix(".txt")
        txt_path.write_text(self._text_report(report), encoding="utf-8")
        return txt_path, json_path
