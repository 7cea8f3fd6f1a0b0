"""
Structured JSON event logger for downloads and trade reconstruction.

Emits one JSON object per line to stderr. Events are designed to be
parsed by log aggregators (Grafana Loki, CloudWatch, ELK).
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from typing import Any


class StructuredEventLogger:
    """Emit structured JSON events to stderr (or any text stream)."""

    def __init__(
        self,
        command: str,
        *,
        enabled: bool = True,
        stream: Any = None,
    ) -> None:
        self._command = command
        self._enabled = enabled
        self._stream = stream or sys.stderr

    def _emit(self, event_type: str, **fields: Any) -> dict:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            "command": self._command,
            **fields,
        }
        if self._enabled:
            self._stream.write(json.dumps(record, default=str) + "\n")
            self._stream.flush()
        return record

    def batch_event(self, event_type: str, payload: dict) -> dict:
        """Callback for BatchRunner(on_event=...)."""
        return self._emit(event_type, **payload)

    def file_written(self, symbol: str, path: str, size_kb: int) -> dict:
        return self._emit("file_written", symbol=symbol, path=path, size_kb=size_kb)

    def trades_reconstructed(
        self,
        closed: int,
        orphans: int,
        open_positions: int,
        anomalies: int,
        rejected: int,
        total_pnl: str,
    ) -> dict:
        return self._emit(
            "trades_reconstructed",
            closed=closed,
            orphans=orphans,
            open_positions=open_positions,
            anomalies=anomalies,
            rejected=rejected,
            total_pnl=total_pnl,
        )

    def error(self, message: str, detail: str = "") -> dict:
        return self._emit("error", message=message, detail=detail)
