"""
Trades pipeline: fetch -> validate -> group-by-symbol -> reconstruct.

Malformed records are skipped (logged by parse_fills). A reconstruction
failure for one symbol is logged with the symbol and the other symbols
still go through.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from data.activities import ActivityFetcher, group_by_symbol, parse_fills
from ledger_core.contracts import (
    MalformedEventError,
    OversellPolicy,
    ReconstructionError,
    ReconstructionResult,
    Side,
)
from ledger_core.reconstructor import merge_results, reconstruct_symbol
from ledger_core.stats import TradeSummary, summarize

logger = logging.getLogger("fillbook.pipeline")


@dataclass
class TradesRun:
    result: ReconstructionResult
    summary: TradeSummary
    fetched: int = 0
    rejected: list[tuple[dict, MalformedEventError]] = field(default_factory=list)
    failed_symbols: dict[str, str] = field(default_factory=dict)


def run_trades_pipeline(
    fetcher: ActivityFetcher,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    day: date | None = None,
    page_size: int = 100,
    max_records: int = 500,
    oversell_policy: OversellPolicy | str = OversellPolicy.FLAG,
) -> TradesRun:
    policy = OversellPolicy(oversell_policy)
    records = fetcher.fetch_fills(
        start=start, end=end, day=day, page_size=page_size, max_records=max_records
    )
    outcome = parse_fills(records)
    for e in outcome.events:
        logger.debug(
            "[%s] %s: %s %s @ %s",
            e.transaction_time.isoformat(), e.symbol, e.side.value, e.quantity, e.price,
        )
        if e.side not in (Side.BUY, Side.SELL):
            logger.debug("%s: ignoring %s fill %s", e.symbol, e.side.value, e.id)

    grouped = group_by_symbol(outcome.events)
    results: list[ReconstructionResult] = []
    failed: dict[str, str] = {}
    for symbol in sorted(grouped):
        try:
            r = reconstruct_symbol(grouped[symbol], oversell_policy=policy)
        except ReconstructionError as exc:
            logger.error("%s: reconstruction failed (%d fills, policy=%s): %s",
                         symbol, len(grouped[symbol]), policy.value, exc)
            failed[symbol] = str(exc)
            continue
        for o in r.orphans:
            logger.debug(
                "%s: %s sell %s @ %s No buy to connect to. Skipping.",
                symbol, o.event.transaction_time.isoformat(), o.event.quantity, o.event.price,
            )
        for a in r.anomalies:
            logger.warning(
                "%s: oversell at %s: sold %s with %s open (fill %s)",
                symbol, a.event.transaction_time.isoformat(), a.event.quantity, a.open_quantity, a.event.id,
            )
        for t in r.closed_trades:
            logger.debug("%s: ClosedTrade: %s @ %s -> %s = %s",
                         symbol, t.quantity, t.entry_price, t.exit_price, t.realized_pnl)
        results.append(r)

    result = merge_results(results)
    return TradesRun(
        result=result,
        summary=summarize(result.closed_trades),
        fetched=len(records),
        rejected=outcome.rejected,
        failed_symbols=failed,
    )
