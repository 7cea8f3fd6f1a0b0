"""
Symbol-list provider: comma-separated list or a one-symbol-per-line file.
"""

import logging
from pathlib import Path

logger = logging.getLogger("fillbook.data")


def _valid_symbol(line: str) -> bool:
    return not (line == "" or "/" in line or line.startswith("#"))


def load_symbols(symbols: str | None = None, symbols_file: str | Path | None = None) -> list[str]:
    """
    Return the symbols to download, upper-cased, first occurrence kept.

    A comma list wins over a file. File lines that are empty, contain '/'
    (crypto pairs) or start with '#' are skipped.
    """
    if symbols:
        raw = [s.strip() for s in symbols.split(",")]
    elif symbols_file:
        path = Path(symbols_file)
        logger.info("Reading symbols from file %s", path)
        raw = [line.strip() for line in path.read_text().splitlines()]
    else:
        raise ValueError("Provide symbols as a comma list or a symbols file.")

    out: list[str] = []
    for s in raw:
        if not _valid_symbol(s):
            continue
        s = s.upper()
        if s not in out:
            out.append(s)
    return out
