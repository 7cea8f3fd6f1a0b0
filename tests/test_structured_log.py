"""Tests for structured JSON event logger."""

import io
import json

import pytest

from cli.structured_log import StructuredEventLogger
from data.batch import BatchRunner


@pytest.fixture
def buf() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(buf: io.StringIO) -> StructuredEventLogger:
    return StructuredEventLogger("bars", enabled=True, stream=buf)


class TestEmit:
    """Basic event emission and format."""

    def test_file_written_json(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.file_written(symbol="AAPL", path="data/bars/AAPL.json", size_kb=12)
        record = json.loads(buf.getvalue().strip())
        assert record["event"] == "file_written"
        assert record["command"] == "bars"
        assert record["symbol"] == "AAPL"
        assert record["size_kb"] == 12
        assert "ts" in record

    def test_trades_reconstructed(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.trades_reconstructed(
            closed=3, orphans=1, open_positions=2, anomalies=0, rejected=1, total_pnl="320.00"
        )
        record = json.loads(buf.getvalue().strip())
        assert record["event"] == "trades_reconstructed"
        assert record["closed"] == 3
        assert record["orphans"] == 1
        assert record["open_positions"] == 2
        assert record["total_pnl"] == "320.00"

    def test_error_event(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.error(message="Fetching fills failed", detail="HTTPError")
        record = json.loads(buf.getvalue().strip())
        assert record["event"] == "error"
        assert record["message"] == "Fetching fills failed"
        assert record["detail"] == "HTTPError"

    def test_one_line_per_event(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.error(message="a")
        logger.error(message="b")
        lines = buf.getvalue().strip().split("\n")
        assert len(lines) == 2
        assert [json.loads(l)["message"] for l in lines] == ["a", "b"]


class TestDisabled:
    def test_disabled_writes_nothing(self, buf: io.StringIO) -> None:
        quiet = StructuredEventLogger("trades", enabled=False, stream=buf)
        record = quiet.error(message="x")
        assert buf.getvalue() == ""
        assert record["event"] == "error"


class TestBatchCallback:
    def test_batch_runner_events(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        def task(symbol: str) -> None:
            if symbol == "BAD":
                raise RuntimeError("boom")

        BatchRunner(chunk_size=2, max_workers=1, pause_seconds=0, on_event=logger.batch_event).run(
            ["AAPL", "BAD"], task
        )
        events = [json.loads(l) for l in buf.getvalue().strip().split("\n")]
        kinds = [e["event"] for e in events]
        assert kinds[0] == "batch_start"
        assert "symbol_failed" in kinds
        assert kinds[-1] == "batch_complete"
        failed = next(e for e in events if e["event"] == "symbol_failed")
        assert failed["symbol"] == "BAD"
        assert failed["error"] == "boom"
