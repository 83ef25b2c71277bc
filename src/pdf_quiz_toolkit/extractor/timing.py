"""
Module: extractor.timing

Purpose:
    Wall-clock instrumentation for extraction runs. Records how long the
    run spends planning, splitting, waiting on chunk extractions and
    merging, plus the time each chunk spent in the generation service.

Key Classes:
    - TimingLog: Thread-safe store of run and chunk phase durations
    - ChunkTiming: Per-chunk total with its dominant phase

Key Functions:
    - timed_phase: Context manager recording one phase into a TimingLog

Dependencies:
    - extractor.file_locking: Merged saves shared between runs

Used By:
    - extractor.pipeline: Run and chunk phases
    - cli: --timing output file
"""

from __future__ import annotations

import json
import logging
import statistics
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, NamedTuple, Optional

logger = logging.getLogger(__name__)

PhaseDurations = Dict[str, float]


class ChunkTiming(NamedTuple):
    chunk_id: str
    total: float
    slowest_phase: str
    slowest_duration: float


@dataclass
class TimingLog:
    """
    Phase durations (seconds) for one extraction run.

    Attributes:
        run_timings: phase -> duration for the run as a whole
        chunk_timings: chunk_id -> {phase -> duration}

    Example:
        >>> log = TimingLog()
        >>> with timed_phase(log, "extract", chunk_id="chunk_0"):
        ...     client.extract(chunk)
        >>> log.get_slowest_chunks(1)[0].chunk_id
        'chunk_0'
    """
    run_timings: PhaseDurations = field(default_factory=dict)
    chunk_timings: Dict[str, PhaseDurations] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def log_run(self, phase: str, duration: float) -> None:
        with self._lock:
            self.run_timings[phase] = duration

    def log_chunk(self, chunk_id: str, phase: str, duration: float) -> None:
        with self._lock:
            self.chunk_timings.setdefault(chunk_id, {})[phase] = duration

    def get_phase_averages(self) -> PhaseDurations:
        """Mean duration of each chunk phase over the chunks that ran it."""
        with self._lock:
            return _averages(self.chunk_timings)

    def get_slowest_chunks(self, n: int = 3) -> List[ChunkTiming]:
        with self._lock:
            return _rank_chunks(self.chunk_timings)[:n]

    def summary(self) -> str:
        """Multi-line report for debug logs."""
        with self._lock:
            run = dict(self.run_timings)
            averages = _averages(self.chunk_timings)
            slowest = _rank_chunks(self.chunk_timings)[:3]

        out = ["", "--- extraction timing ---"]
        out += [f"run    {phase:<12} {secs:8.3f}s" for phase, secs in sorted(run.items())]
        out += [f"avg    {phase:<12} {secs:8.3f}s" for phase, secs in sorted(averages.items())]
        out += [
            f"slow   {t.chunk_id:<12} {t.total:8.3f}s  ({t.slowest_phase} {t.slowest_duration:.3f}s)"
            for t in slowest
        ]
        return "\n".join(out)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            chunks = {cid: dict(phases) for cid, phases in self.chunk_timings.items()}
            return _as_json(dict(self.run_timings), chunks)

    def save(self, path: Path, merge: bool = True) -> None:
        """
        Write timing data as JSON.

        With merge=True the file is updated under an exclusive lock so
        several runs can share one timing file; entries from this run
        replace entries with the same key.
        """
        if not merge:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
            logger.debug(f"Wrote timing data to {path}")
            return

        from .file_locking import update_json_locked

        current = self.to_dict()

        def combine(existing: Dict[str, Any]) -> Dict[str, Any]:
            run = {**existing.get("run_timings", {}), **current["run_timings"]}
            chunks = {**existing.get("chunk_timings", {}), **current["chunk_timings"]}
            return _as_json(run, chunks)

        update_json_locked(
            path,
            combine,
            default=lambda: {"run_timings": {}, "chunk_timings": {}},
        )
        logger.debug(f"Merged timing data into {path}")


def _averages(chunk_timings: Dict[str, PhaseDurations]) -> PhaseDurations:
    samples: Dict[str, List[float]] = {}
    for phases in chunk_timings.values():
        for phase, secs in phases.items():
            samples.setdefault(phase, []).append(secs)
    return {phase: statistics.mean(values) for phase, values in samples.items()}


def _rank_chunks(chunk_timings: Dict[str, PhaseDurations]) -> List[ChunkTiming]:
    ranked = [
        ChunkTiming(cid, sum(phases.values()), *max(phases.items(), key=lambda kv: kv[1]))
        for cid, phases in chunk_timings.items()
        if phases
    ]
    return sorted(ranked, key=lambda t: t.total, reverse=True)


def _as_json(run: PhaseDurations, chunks: Dict[str, PhaseDurations]) -> Dict[str, Any]:
    return {
        "run_timings": run,
        "chunk_timings": chunks,
        "phase_averages": _averages(chunks),
        "slowest_chunks": [t._asdict() for t in _rank_chunks(chunks)[:5]],
    }


@contextmanager
def timed_phase(log: TimingLog, phase: str, chunk_id: Optional[str] = None) -> Iterator[None]:
    """
    Record the duration of the enclosed block, even if it raises.

    With a chunk_id the duration is a chunk phase, otherwise a run phase.
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - started
        if chunk_id:
            log.log_chunk(chunk_id, phase, elapsed)
        else:
            log.log_run(phase, elapsed)
