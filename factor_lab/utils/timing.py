from __future__ import annotations

import csv
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from time import perf_counter

from factor_lab.shared.settings import TimingSettings


@dataclass
class TimingLogger:
    path: Path
    enabled: bool = True
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        if not self.enabled:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            with self.path.open("w", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(["ts_utc", "phase", "secs", "group", "split_id", "notes"])

    def write(
        self,
        phase: str,
        secs: float,
        *,
        group: str | None = None,
        split_id: str | None = None,
        notes: str = "",
    ) -> None:
        if not self.enabled:
            return
        # 並列評価時も1行ずつ書く
        with self._lock, self.path.open("a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(
                [
                    datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
                    phase,
                    f"{secs:.6f}",
                    group or "",
                    split_id or "",
                    notes,
                ]
            )


@contextmanager
def time_phase(logger: TimingLogger, phase: str, **meta):
    if not getattr(logger, "enabled", True):
        # Disabled: no perf counter, no file I/O
        yield
        return
    t0 = perf_counter()
    try:
        yield
    finally:
        logger.write(phase, perf_counter() - t0, **meta)


def build_logger(settings: TimingSettings | None = None) -> TimingLogger:
    env = settings or TimingSettings()
    return TimingLogger(env.TIMINGS_CSV, enabled=env.TIMINGS)
