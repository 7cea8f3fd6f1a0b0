"""
CLI entry point: fillbook bars | snapshots | trades | health.

Every command loads config from --config (default config.yaml; defaults are
used when that file does not exist), logs to stderr, and prints its result
to stdout.
"""

import logging
import sys
from pathlib import Path

import click
from click.core import ParameterSource
from dotenv import load_dotenv

from config import AppConfig, load_config

load_dotenv()

logger = logging.getLogger("fillbook")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


def _load(ctx: click.Context) -> AppConfig:
    try:
        cfg = load_config(ctx.obj["config_path"], required=ctx.obj["config_required"])
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))
    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.logging.level)
    return cfg


def _events(cfg: AppConfig, command: str):
    from cli.structured_log import StructuredEventLogger

    return StructuredEventLogger(command, enabled=cfg.logging.structured_events)


def _symbols(symbols: str | None, symbols_file: str | None) -> list[str]:
    from data.symbols import load_symbols

    if not (symbols or symbols_file):
        raise click.UsageError("Provide --symbols AAPL,TSLA or --symbols-file sp500.txt")
    out = load_symbols(symbols, symbols_file)
    if not out:
        raise click.UsageError("No symbols to download.")
    return out


def _runner(cfg: AppConfig, events, chunk_size: int | None = None):
    from data.batch import BatchRunner

    return BatchRunner(
        chunk_size=chunk_size or cfg.download.chunk_size,
        max_workers=cfg.download.max_workers,
        pause_seconds=cfg.download.pause_seconds,
        on_event=events.batch_event,
    )


def _echo_batch(report, output_dir: str) -> None:
    click.echo(
        f"Downloaded {len(report.succeeded)} symbol(s) to {output_dir} "
        f"({len(report.failed)} failed, {len(report.skipped)} skipped)"
    )
    for symbol, reason in sorted(report.failed.items()):
        click.echo(f"  FAILED {symbol}: {reason}")
    if report.failed and not report.succeeded:
        raise SystemExit(1)


@click.group()
@click.option("--config", "config_path", default="config.yaml", help="Path to config file.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable verbose logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: str, verbose: bool) -> None:
    """fillbook: Alpaca bar/snapshot downloads and closed-trade PnL from account fills."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["config_required"] = ctx.get_parameter_source("config_path") is not ParameterSource.DEFAULT
    ctx.obj["verbose"] = verbose


# ---------- fillbook bars ----------


@cli.command()
@click.option("--symbols", default=None, help="Comma-separated symbols, e.g. AAPL,TSLA.")
@click.option("--symbols-file", default=None, type=click.Path(exists=True, dir_okay=False), help="File with one symbol per line.")
@click.option("--timeframe", "tf_override", default=None, help="Bar timeframe (1m, 5m, 15m, 30m, 1h, 1d). Defaults to config value.")
@click.option("--start", "start_str", default=None, help="Start date (YYYY-MM-DD or 'YYYY-MM-DD HH:MM', UTC).")
@click.option("--end", "end_str", default=None, help="End date (default: now).")
@click.option("--days", default=None, type=int, help="Number of calendar days to fetch when --start is not given.")
@click.option("--limit", default=None, type=int, help="Maximum bars per symbol.")
@click.option("--output-dir", default=None, help="Directory for <SYMBOL>.json files.")
@click.pass_context
def bars(
    ctx: click.Context,
    symbols: str | None,
    symbols_file: str | None,
    tf_override: str | None,
    start_str: str | None,
    end_str: str | None,
    days: int | None,
    limit: int | None,
    output_dir: str | None,
) -> None:
    """Download historical bars for each symbol into <output-dir>/<SYMBOL>.json."""
    cfg = _load(ctx)
    from cli.daterange import resolve_window
    from data import get_alpaca_fetcher
    from data.alpaca_fetcher import normalize_timeframe
    from data.bar_writer import write_bars_file

    symbol_list = _symbols(symbols, symbols_file)
    try:
        tf = normalize_timeframe(tf_override or cfg.download.timeframe)
        window = resolve_window(start_str, end_str, days, default_days=cfg.download.default_days)
    except ValueError as e:
        raise click.BadParameter(str(e))
    out_dir = output_dir or cfg.download.output_dir
    limit = limit if limit is not None else cfg.download.limit

    try:
        fetcher = get_alpaca_fetcher(
            cfg.data.api_key, cfg.data.api_secret,
            feed=cfg.data.feed, adjustment=cfg.download.adjustment,
        )
    except (ValueError, ImportError) as e:
        raise click.ClickException(str(e))
    events = _events(cfg, "bars")

    def download(symbol: str) -> None:
        result = fetcher.fetch(symbol, tf, start=window.start, end=window.end, limit=limit)
        if not result.bars:
            raise LookupError(f"no bars returned ({tf}, {window.start.date()} -> {window.end.date()})")
        path = write_bars_file(out_dir, symbol, result.bars)
        events.file_written(symbol, str(path), round(path.stat().st_size / 1024))

    click.echo(
        f"Fetching {tf} bars for {len(symbol_list)} symbol(s) "
        f"from {window.start.date()} to {window.end.date()} ..."
    )
    report = _runner(cfg, events).run(symbol_list, download)
    _echo_batch(report, out_dir)


# ---------- fillbook snapshots ----------


@cli.command()
@click.option("--symbols", default=None, help="Comma-separated symbols, e.g. AAPL,TSLA.")
@click.option("--symbols-file", default=None, type=click.Path(exists=True, dir_okay=False), help="File with one symbol per line.")
@click.option("--output-dir", default=None, help="Directory for <SYMBOL>.json files.")
@click.option("--chunk-size", default=None, type=click.IntRange(min=1), help="Symbols per snapshot request.")
@click.pass_context
def snapshots(
    ctx: click.Context,
    symbols: str | None,
    symbols_file: str | None,
    output_dir: str | None,
    chunk_size: int | None,
) -> None:
    """Download the current daily bar for each symbol into <output-dir>/<SYMBOL>.json."""
    cfg = _load(ctx)
    from data import get_alpaca_snapshot_fetcher
    from data.bar_writer import write_bars_file

    symbol_list = _symbols(symbols, symbols_file)
    out_dir = output_dir or cfg.download.output_dir
    try:
        fetcher = get_alpaca_snapshot_fetcher(cfg.data.api_key, cfg.data.api_secret, feed=cfg.data.feed)
    except (ValueError, ImportError) as e:
        raise click.ClickException(str(e))
    events = _events(cfg, "snapshots")

    def download_chunk(chunk: list[str]) -> dict[str, str]:
        daily = fetcher.fetch(chunk)
        for symbol, bar in daily.items():
            path = write_bars_file(out_dir, symbol, [bar])
            events.file_written(symbol, str(path), round(path.stat().st_size / 1024))
        return {s: "no daily bar in snapshot" for s in chunk if s not in daily}

    click.echo(f"Downloading snapshots for {len(symbol_list)} symbol(s) ...")
    report = _runner(cfg, events, chunk_size).run_chunks(symbol_list, download_chunk)
    _echo_batch(report, out_dir)


# ---------- fillbook trades ----------


@cli.command()
@click.option("--start", "start_str", default=None, help="Start date (YYYY-MM-DD or 'YYYY-MM-DD HH:MM', UTC).")
@click.option("--end", "end_str", default=None, help="End date (default: now).")
@click.option("--days", default=None, type=int, help="Look back this many days when --start is not given.")
@click.option("--date", "date_str", default=None, help="Single trading day (YYYY-MM-DD); excludes --start/--end/--days.")
@click.option("--csv", "csv_path", default=None, help="Also write closed trades to this CSV file.")
@click.option("--plot", "plot_path", default=None, help="Also save a cumulative PnL chart (requires matplotlib).")
@click.option("--show-open/--hide-open", "show_open", default=None, help="List positions still open at the end of the window.")
@click.pass_context
def trades(
    ctx: click.Context,
    start_str: str | None,
    end_str: str | None,
    days: int | None,
    date_str: str | None,
    csv_path: str | None,
    plot_path: str | None,
    show_open: bool | None,
) -> None:
    """Rebuild closed round-trip trades from account fills and print realized PnL."""
    cfg = _load(ctx)
    from cli.daterange import parse_day_arg, resolve_window
    from cli.output import format_trade_report
    from cli.pipeline import run_trades_pipeline
    from cli.report import plot_cumulative_pnl, write_trades_csv
    from data import get_alpaca_activity_fetcher

    if date_str and (start_str or end_str or days is not None):
        raise click.UsageError("--date cannot be combined with --start, --end or --days.")
    try:
        if date_str:
            day, start, end = parse_day_arg(date_str), None, None
        else:
            window = resolve_window(start_str, end_str, days, default_days=cfg.trades.default_days)
            day, start, end = None, window.start, window.end
    except ValueError as e:
        raise click.BadParameter(str(e))

    try:
        fetcher = get_alpaca_activity_fetcher(cfg.data.api_key, cfg.data.api_secret, paper=cfg.data.paper)
    except (ValueError, ImportError) as e:
        raise click.ClickException(str(e))
    events = _events(cfg, "trades")

    try:
        run = run_trades_pipeline(
            fetcher,
            start=start,
            end=end,
            day=day,
            page_size=cfg.trades.page_size,
            max_records=cfg.trades.max_activities,
            oversell_policy=cfg.trades.oversell_policy,
        )
    except Exception as e:
        logger.error("Fetching fills failed (start=%s end=%s date=%s): %s", start, end, day, e)
        events.error("fetch_failed", str(e))
        raise click.ClickException(f"Fetching fills failed: {e}")

    result = run.result
    events.trades_reconstructed(
        closed=len(result.closed_trades),
        orphans=len(result.orphans),
        open_positions=len(result.open_positions),
        anomalies=len(result.anomalies),
        rejected=len(run.rejected),
        total_pnl=str(run.summary.total_pnl),
    )
    click.echo(format_trade_report(
        result,
        run.summary,
        tz=cfg.report.timezone,
        show_open=cfg.report.show_open_positions if show_open is None else show_open,
        rejected=len(run.rejected),
        failed_symbols=sorted(run.failed_symbols),
    ))

    csv_path = csv_path or cfg.report.csv_path
    if csv_path:
        write_trades_csv(result.closed_trades, csv_path)
        click.echo(f"\nWrote {len(result.closed_trades)} trades to {csv_path}")
    plot_path = plot_path or cfg.report.plot_path
    if plot_path:
        try:
            plot_cumulative_pnl(result.closed_trades, plot_path)
        except ImportError as e:
            raise click.ClickException(str(e))
        click.echo(f"Wrote PnL chart to {plot_path}")


# ---------- fillbook health ----------


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check config, API credentials and output directory.

    Exit code 0 = healthy, 1 = unhealthy.
    """
    checks: list[tuple[str, bool, str]] = []

    try:
        cfg = load_config(ctx.obj["config_path"], required=ctx.obj["config_required"])
        checks.append(("config", True, f"loaded (timeframe={cfg.download.timeframe}, paper={cfg.data.paper})"))
    except Exception as e:
        checks.append(("config", False, str(e)))
        _print_health(checks)
        raise SystemExit(1)

    if cfg.data.api_key and cfg.data.api_secret:
        checks.append(("credentials", True, "APCA_API_KEY_ID and APCA_API_SECRET_KEY set"))
    else:
        checks.append(("credentials", False, "APCA_API_KEY_ID / APCA_API_SECRET_KEY missing"))

    try:
        out = Path(cfg.download.output_dir)
        out.mkdir(parents=True, exist_ok=True)
        probe = out / ".fillbook_probe"
        probe.write_text("ok")
        probe.unlink()
        checks.append(("output_dir", True, f"{out} writable"))
    except OSError as e:
        checks.append(("output_dir", False, str(e)))

    _print_health(checks)
    healthy = all(ok for _, ok, _ in checks)
    raise SystemExit(0 if healthy else 1)


def _print_health(checks: list[tuple[str, bool, str]]) -> None:
    for name, ok, detail in checks:
        status = "OK" if ok else "FAIL"
        click.echo(f"  [{status}] {name}: {detail}")
    healthy = all(ok for _, ok, _ in checks)
    click.echo(f"\nHealth: {'HEALTHY' if healthy else 'UNHEALTHY'}")


if __name__ == "__main__":
    cli()
