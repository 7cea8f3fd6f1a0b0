"""
Config loader: YAML file -> frozen dataclass tree.

API secrets resolved from environment variables (APCA_API_KEY_ID, APCA_API_SECRET_KEY).
Config file holds only non-secret values.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from ledger_core.contracts import OversellPolicy


@dataclass(frozen=True)
class DataConfig:
    api_key: str = ""
    api_secret: str = ""
    paper: bool = True
    feed: str = "iex"


@dataclass(frozen=True)
class DownloadConfig:
    output_dir: str = "data/bars"
    timeframe: str = "15m"
    limit: int | None = None
    adjustment: str = "all"
    default_days: int = 30
    chunk_size: int = 100
    max_workers: int = 8
    pause_seconds: float = 0.1


@dataclass(frozen=True)
class TradesConfig:
    default_days: int = 30
    page_size: int = 100
    max_activities: int = 500
    oversell_policy: str = "flag"


@dataclass(frozen=True)
class ReportConfig:
    timezone: str = "UTC"
    show_open_positions: bool = True
    csv_path: str = ""
    plot_path: str = ""


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    structured_events: bool = False


@dataclass(frozen=True)
class AppConfig:
    data: DataConfig = DataConfig()
    download: DownloadConfig = DownloadConfig()
    trades: TradesConfig = TradesConfig()
    report: ReportConfig = ReportConfig()
    logging: LoggingConfig = LoggingConfig()


def _positive_int(section: dict, key: str, default: int) -> int:
    value = int(section.get(key, default))
    if value <= 0:
        raise ValueError(f"{key} must be a positive integer, got {value}")
    return value


def _section(raw: dict, key: str) -> dict:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a mapping, got {type(value).__name__}")
    return value


def load_config(path: str | Path = "config.yaml", *, required: bool = True) -> AppConfig:
    """
    Load configuration from a YAML file.

    API keys are resolved from environment variables:
      - APCA_API_KEY_ID
      - APCA_API_SECRET_KEY
    These follow Alpaca's standard env var names.

    With required=False a missing file yields the defaults.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
    elif required:
        raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        raw = {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    data_raw = _section(raw, "data")
    data_cfg = DataConfig(
        api_key=os.environ.get("APCA_API_KEY_ID", ""),
        api_secret=os.environ.get("APCA_API_SECRET_KEY", ""),
        paper=bool(data_raw.get("paper", True)),
        feed=str(data_raw.get("feed", "iex")),
    )

    dl_raw = _section(raw, "download")
    limit = dl_raw.get("limit")
    pause = float(dl_raw.get("pause_seconds", 0.1))
    if pause < 0:
        raise ValueError(f"pause_seconds must be >= 0, got {pause}")
    dl_cfg = DownloadConfig(
        output_dir=str(dl_raw.get("output_dir", "data/bars")),
        timeframe=str(dl_raw.get("timeframe", "15m")),
        limit=int(limit) if limit is not None else None,
        adjustment=str(dl_raw.get("adjustment", "all")),
        default_days=_positive_int(dl_raw, "default_days", 30),
        chunk_size=_positive_int(dl_raw, "chunk_size", 100),
        max_workers=_positive_int(dl_raw, "max_workers", 8),
        pause_seconds=pause,
    )

    tr_raw = _section(raw, "trades")
    policy = str(tr_raw.get("oversell_policy", "flag")).lower()
    try:
        OversellPolicy(policy)
    except ValueError:
        raise ValueError(
            f"oversell_policy must be one of {[p.value for p in OversellPolicy]}, got {policy!r}"
        )
    tr_cfg = TradesConfig(
        default_days=_positive_int(tr_raw, "default_days", 30),
        page_size=_positive_int(tr_raw, "page_size", 100),
        max_activities=_positive_int(tr_raw, "max_activities", 500),
        oversell_policy=policy,
    )

    rp_raw = _section(raw, "report")
    tz_name = str(rp_raw.get("timezone", "UTC"))
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown report timezone {tz_name!r}")
    rp_cfg = ReportConfig(
        timezone=tz_name,
        show_open_positions=bool(rp_raw.get("show_open_positions", True)),
        csv_path=str(rp_raw.get("csv_path", "") or ""),
        plot_path=str(rp_raw.get("plot_path", "") or ""),
    )

    lg_raw = _section(raw, "logging")
    lg_cfg = LoggingConfig(
        level=str(lg_raw.get("level", "INFO")).upper(),
        structured_events=bool(lg_raw.get("structured_events", False)),
    )

    return AppConfig(
        data=data_cfg,
        download=dl_cfg,
        trades=tr_cfg,
        report=rp_cfg,
        logging=lg_cfg,
    )
