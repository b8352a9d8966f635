"""Configuration utilities for Puppet Scraper."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass
class Config:
    """Runtime defaults; command line options override them."""

    query: str = "$"
    delay_ms: float = 500.0
    limit: Optional[int] = None
    pretty: bool = False
    headful: bool = False
    browser: str = "chromium"
    log_file: Optional[Path] = None
    log_level: str = "INFO"


def parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    return int(value)


def load_config(env_file: Optional[str] = ".env") -> Config:
    """Load configuration from environment variables and optional .env file."""

    if env_file:
        load_dotenv(env_file, override=False)

    log_file = os.getenv("PS_LOG_FILE")
    return Config(
        query=os.getenv("PS_QUERY", Config.query),
        delay_ms=float(os.getenv("PS_DELAY_MS", Config.delay_ms)),
        limit=_optional_int(os.getenv("PS_LIMIT")),
        pretty=parse_bool(os.getenv("PS_PRETTY", str(Config.pretty))),
        headful=parse_bool(os.getenv("PS_HEADFUL", str(Config.headful))),
        browser=os.getenv("PS_BROWSER", Config.browser),
        log_file=Path(log_file) if log_file else None,
        log_level=os.getenv("PS_LOG_LEVEL", Config.log_level).upper(),
    )


__all__ = ["Config", "load_config", "parse_bool"]
