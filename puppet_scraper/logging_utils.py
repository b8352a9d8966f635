"""Logging setup for scrape runs."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import Union

from .config import Config

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
HANDLER_PREFIX = "puppet_scraper."


def resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level {level!r}")
    return value


def _owned(handler: logging.Handler) -> bool:
    return (handler.get_name() or "").startswith(HANDLER_PREFIX)


def configure_logging(config: Config) -> None:
    """Send records to the console and, if ``config.log_file`` is set, a rotating file.

    Calling it again swaps out the handlers it installed before. Handlers added
    by anything else, such as pytest's ``caplog``, are left alone.
    """

    level = resolve_level(config.log_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in [h for h in root_logger.handlers if _owned(h)]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.set_name(HANDLER_PREFIX + "console")
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(config.log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
        file_handler.set_name(HANDLER_PREFIX + "file")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
