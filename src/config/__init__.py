"""
Configuration loader.

App config: reads config.yaml, resolves env vars for secrets.
"""

from config.loader import (
    AppConfig,
    DataConfig,
    DownloadConfig,
    LoggingConfig,
    ReportConfig,
    TradesConfig,
    load_config,
)

__all__ = [
    "AppConfig",
    "DataConfig",
    "DownloadConfig",
    "LoggingConfig",
    "ReportConfig",
    "TradesConfig",
    "load_config",
]
