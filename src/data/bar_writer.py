"""
Write bars to <output_dir>/<SYMBOL>.json:

    { "AAPL": [ {"DateTime": .., "Open": .., "High": .., "Low": .., "Close": .., "Volume": ..}, ... ] }
"""

import json
import logging
from pathlib import Path
from typing import Sequence

from data.fetcher import Bar

logger = logging.getLogger("fillbook.data")


def bar_to_record(bar: Bar) -> dict:
    return {
        "DateTime": bar.timestamp.isoformat(),
        "Open": bar.open,
        "High": bar.high,
        "Low": bar.low,
        "Close": bar.close,
        "Volume": bar.volume,
    }


def write_bars_file(output_dir: str | Path, symbol: str, bars: Sequence[Bar]) -> Path:
    """Write one symbol's bars as indented JSON. Returns the file path."""
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{symbol}.json"
    text = json.dumps({symbol: [bar_to_record(b) for b in bars]}, indent=2)
    path.write_text(text)
    logger.info("Wrote file (%dkb) '%s'", round(len(text) / 1024), path)
    return path
