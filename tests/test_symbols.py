"""Tests for the symbol-list provider."""

import pytest

from data.symbols import load_symbols


def test_comma_list() -> None:
    assert load_symbols("aapl, msft ,TSLA") == ["AAPL", "MSFT", "TSLA"]


def test_duplicates_removed_keep_first() -> None:
    assert load_symbols("SPY,QQQ,spy") == ["SPY", "QQQ"]


def test_file_skips_blank_comments_and_pairs(tmp_path) -> None:
    path = tmp_path / "symbols.txt"
    path.write_text("AAPL\n\n# indices\nBTC/USD\n msft \nAAPL\n")
    assert load_symbols(symbols_file=path) == ["AAPL", "MSFT"]


def test_comma_list_wins_over_file(tmp_path) -> None:
    path = tmp_path / "symbols.txt"
    path.write_text("IWM\n")
    assert load_symbols("SPY", symbols_file=path) == ["SPY"]


def test_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_symbols(symbols_file=tmp_path / "nope.txt")


def test_neither_given() -> None:
    with pytest.raises(ValueError, match="comma list or a symbols file"):
        load_symbols()
