"""Loading per-item scrape scripts from disk."""

from __future__ import annotations

import importlib.util
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Union

from .errors import HandlerLoadError

logger = logging.getLogger(__name__)

ENTRY_POINT = "scrape"


def load_handler(script_path: Union[str, Path]) -> Callable[..., Any]:
    """Import ``script_path`` and return its ``scrape(page, item)`` callable."""

    path = Path(script_path).resolve()
    if not path.is_file():
        raise HandlerLoadError(f"Script not found: {path}")

    logger.info("Loading script from %s", path)
    spec = importlib.util.spec_from_file_location(f"puppet_scraper_script_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise HandlerLoadError(f"Cannot import {path}")
    module = importlib.util.module_from_spec(spec)
    # dataclasses in the script look their module up in sys.modules
    sys.modules[module.__name__] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module.__name__, None)
        raise HandlerLoadError(f"Importing {path} failed: {exc}") from exc

    scrape = getattr(module, ENTRY_POINT, None)
    if not callable(scrape):
        raise HandlerLoadError(f"{path} does not define a callable {ENTRY_POINT}(page, item)")
    return scrape


__all__ = ["ENTRY_POINT", "load_handler"]
