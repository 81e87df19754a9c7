"""
esdrain Sinks — Batch Consumers
===============================

A consumer receives every non-empty batch of an export together with the
reported total, then exactly one ``on_finish`` call when the session ends.
``error`` is None when the cursor was drained, otherwise the failure that
stopped the export. Batches already delivered stay valid either way.
"""

import json
import time
from datetime import datetime
from typing import IO, Any, Dict, List, Optional, Protocol

from .errors import ScrollError


class BatchConsumer(Protocol):
    """Receives export batches and the terminal signal."""

    def on_batch(self, batch: List[Dict[str, Any]], total: int) -> None:
        ...

    def on_finish(self, total: int, error: Optional[ScrollError]) -> None:
        ...


class CollectingSink:
    """Keeps every batch in memory. Useful for small exports and tests."""

    def __init__(self):
        self.batches: List[List[Dict[str, Any]]] = []
        self.totals: List[int] = []
        self.finished = False
        self.error: Optional[ScrollError] = None

    @property
    def documents(self) -> List[Dict[str, Any]]:
        return [hit for batch in self.batches for hit in batch]

    def on_batch(self, batch: List[Dict[str, Any]], total: int) -> None:
        self.batches.append(list(batch))
        self.totals.append(total)

    def on_finish(self, total: int, error: Optional[ScrollError]) -> None:
        self.finished = True
        self.error = error


class JsonlSink:
    """
    Writes each hit as one JSON line.

    By default only ``_source`` is written; ``raw=True`` writes the whole hit
    (``_index``, ``_id``, ``_score``, ``_source``). Progress is printed every
    ``progress_interval`` documents.

    Example:
        with open("corpus.jsonl", "w", encoding="utf-8") as f:
            session.run(JsonlSink(f))
    """

    def __init__(
        self,
        stream: IO[str],
        raw: bool = False,
        progress_interval: int = 100_000,
        quiet: bool = False
    ):
        if progress_interval < 0:
            raise ValueError(f"progress_interval must be >= 0, got {progress_interval}")
        self.stream = stream
        self.raw = raw
        self.progress_interval = progress_interval
        self.quiet = quiet
        self.written = 0
        self._start = time.time()
        self._next_report = progress_interval

    def on_batch(self, batch: List[Dict[str, Any]], total: int) -> None:
        for hit in batch:
            doc = hit if self.raw else hit.get("_source", {})
            self.stream.write(json.dumps(doc, ensure_ascii=False) + "\n")
        self.written += len(batch)

        if not self.quiet and self.progress_interval and self.written >= self._next_report:
            elapsed = time.time() - self._start
            rate = self.written / elapsed if elapsed > 0 else 0
            pct = f" ({100 * self.written / total:.1f}%)" if total else ""
            print(
                f"[{datetime.now().strftime('%H:%M:%S')}] "
                f"{self.written:,} documents{pct} | "
                f"{rate:,.0f} docs/sec"
            )
            while self._next_report <= self.written:
                self._next_report += self.progress_interval

    def on_finish(self, total: int, error: Optional[ScrollError]) -> None:
        self.stream.flush()
        if self.quiet:
            return
        print()
        print("=" * 60)
        print("EXPORT FAILED" if error else "EXPORT COMPLETE")
        print("=" * 60)
        print(f"Documents written: {self.written:,}")
        print(f"Reported total: {total:,}")
        print(f"Time elapsed: {time.time() - self._start:.1f} seconds")
        if error:
            print(f"Error: {error}")
        print("=" * 60)
