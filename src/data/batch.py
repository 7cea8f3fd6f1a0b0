"""
Chunked concurrent downloads.

Symbols are processed in fixed-size chunks. Inside a chunk at most
`max_workers` tasks run at once; between chunks the runner pauses to stay
under the broker's rate limit. One symbol's failure is logged and recorded,
never retried, and never aborts the batch. Setting the stop event cancels
work that has not started yet.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Sequence

logger = logging.getLogger("fillbook.batch")

EventCallback = Callable[[str, dict], None]


def chunked(items: Sequence[str], size: int) -> Iterator[list[str]]:
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    for i in range(0, len(items), size):
        yield list(items[i : i + size])


@dataclass
class BatchReport:
    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped


class BatchRunner:
    """Run a per-symbol (or per-chunk) task over many symbols with bounded concurrency."""

    def __init__(
        self,
        *,
        chunk_size: int = 100,
        max_workers: int = 8,
        pause_seconds: float = 0.1,
        stop_event: threading.Event | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        if pause_seconds < 0:
            raise ValueError(f"pause_seconds must be >= 0, got {pause_seconds}")
        self._chunk_size = chunk_size
        self._max_workers = max_workers
        self._pause = pause_seconds
        self._stop = stop_event or threading.Event()
        self._on_event = on_event

    @property
    def stop_event(self) -> threading.Event:
        return self._stop

    def _emit(self, event_type: str, **payload: Any) -> None:
        if self._on_event is not None:
            self._on_event(event_type, payload)

    def _between_chunks(self, index: int, total: int) -> bool:
        """Pause after every chunk but the last. Returns False if cancelled."""
        if index < total - 1 and self._pause > 0:
            self._stop.wait(self._pause)
        return not self._stop.is_set()

    def run(self, symbols: Sequence[str], task: Callable[[str], Any]) -> BatchReport:
        """Call task(symbol) for every symbol."""
        report = BatchReport()
        chunks = list(chunked(symbols, self._chunk_size))
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            for index, chunk in enumerate(chunks):
                if self._stop.is_set():
                    report.skipped.extend(s for c in chunks[index:] for s in c)
                    break
                self._emit("batch_start", chunk=index + 1, chunks=len(chunks), size=len(chunk))
                futures: dict[Future, str] = {pool.submit(self._guard, task, s): s for s in chunk}
                for fut in as_completed(futures):
                    symbol = futures[fut]
                    if fut.cancelled():
                        report.skipped.append(symbol)
                        continue
                    error = fut.result()
                    if error is None:
                        report.succeeded.append(symbol)
                    else:
                        self._record_failure(report, symbol, error)
                    if self._stop.is_set():
                        for other in futures:
                            other.cancel()
                self._emit(
                    "batch_complete",
                    chunk=index + 1,
                    succeeded=len(report.succeeded),
                    failed=len(report.failed),
                )
                if not self._between_chunks(index, len(chunks)):
                    report.skipped.extend(s for c in chunks[index + 1 :] for s in c)
                    break
        return report

    def run_chunks(
        self,
        symbols: Sequence[str],
        task: Callable[[list[str]], Mapping[str, str] | None],
    ) -> BatchReport:
        """
        Call task(chunk) once per chunk, sequentially.

        The task may return {symbol: reason} for symbols of the chunk it could
        not deliver; those are recorded as failed and the rest as succeeded.
        An exception fails the whole chunk.
        """
        report = BatchReport()
        chunks = list(chunked(symbols, self._chunk_size))
        for index, chunk in enumerate(chunks):
            if self._stop.is_set():
                report.skipped.extend(s for c in chunks[index:] for s in c)
                break
            self._emit("batch_start", chunk=index + 1, chunks=len(chunks), size=len(chunk))
            try:
                missing = task(chunk) or {}
            except Exception as exc:
                for symbol in chunk:
                    self._record_failure(report, symbol, exc)
            else:
                for symbol in chunk:
                    if symbol in missing:
                        self._record_failure(report, symbol, missing[symbol])
                    else:
                        report.succeeded.append(symbol)
            self._emit(
                "batch_complete",
                chunk=index + 1,
                succeeded=len(report.succeeded),
                failed=len(report.failed),
            )
            if not self._between_chunks(index, len(chunks)):
                report.skipped.extend(s for c in chunks[index + 1 :] for s in c)
                break
        return report

    @staticmethod
    def _guard(task: Callable[[Any], Any], arg: Any) -> Exception | None:
        try:
            task(arg)
        except Exception as exc:
            return exc
        return None

    def _record_failure(self, report: BatchReport, symbol: str, error: Exception | str) -> None:
        logger.error("%s: download failed: %s", symbol, error)
        report.failed[symbol] = str(error)
        self._emit("symbol_failed", symbol=symbol, error=str(error))
