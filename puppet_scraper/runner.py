"""Sequential, rate-limited scrape-and-merge loop."""

from __future__ import annotations

import asyncio
import copy
import inspect
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Union

from .checkpoint import CheckpointStore
from .errors import HandlerFailure, ResultShapeError
from .merge import merge_result
from .query import CompiledQuery, Location, format_location, get_at, parse_query, set_at
from .storage import DatasetStore

logger = logging.getLogger(__name__)

ItemHandler = Callable[[Any], Union[Any, Awaitable[Any]]]


class RunState(Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    ITERATING = "iterating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunConfig:
    """Per-run policy: delay before each item, item cap, dry-run switch."""

    delay_ms: float = 500
    item_limit: Optional[int] = None
    dry_run: bool = False

    def __post_init__(self) -> None:
        if self.delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {self.delay_ms}")
        if self.item_limit is not None and self.item_limit < 0:
            raise ValueError(f"item_limit must be >= 0, got {self.item_limit}")


@dataclass
class RunSummary:
    total: int
    start: int
    end: int
    processed: int = 0
    progress: int = 0
    completed: bool = False
    dry_run: bool = False
    inspected: List[str] = field(default_factory=list)


class Runner:
    """Drive the handler over every selected location not yet processed.

    The runner owns the progress counter and is the only writer of the
    in-memory document. After each successful item it persists the whole
    document, then the incremented checkpoint, so an interrupted run resumes
    at the first item whose result was not saved.
    """

    def __init__(
        self,
        query: Union[str, CompiledQuery],
        dataset: DatasetStore,
        checkpoint: CheckpointStore,
        handler: Optional[ItemHandler],
        config: Optional[RunConfig] = None,
    ) -> None:
        self.query = query if isinstance(query, CompiledQuery) else parse_query(query)
        self.dataset = dataset
        self.checkpoint = checkpoint
        self.handler = handler
        self.config = config or RunConfig()
        if self.handler is None and not self.config.dry_run:
            raise ValueError("a handler is required unless dry_run is set")
        self.state = RunState.IDLE
        self.progress = 0
        self.selection: List[Location] = []

    async def run(self) -> RunSummary:
        try:
            summary = await self._run()
        except Exception:
            self.state = RunState.FAILED
            raise
        self.state = RunState.COMPLETED
        return summary

    async def _run(self) -> RunSummary:
        self.state = RunState.RESOLVING
        self.progress = self.checkpoint.load() or 0
        logger.info("Current task progress: %s", self.progress)

        document = self.dataset.load_initial(self.progress)
        self.selection = self.query.resolve(document)
        total = len(self.selection)
        logger.info("Data points found: %s", total)

        start = self.progress
        end = total if self.config.item_limit is None else min(total, start + self.config.item_limit)
        if start > total:
            logger.warning("Checkpoint %s is past the %s selected items", start, total)
        summary = RunSummary(total=total, start=start, end=max(start, end), dry_run=self.config.dry_run)

        self.state = RunState.ITERATING
        for index in range(start, end):
            location = self.selection[index]
            label = format_location(location)
            logger.info("Scraping item %s/%s at %s", index + 1, total, label)
            element = get_at(self.dataset.document, location)

            if self.config.dry_run:
                logger.info("Entry data: %s", json.dumps(element, ensure_ascii=False))
                logger.info("Dry run mode, skipping scrape")
                summary.inspected.append(label)
                continue

            await self._process(index, location, element)
            summary.processed += 1

        summary.progress = self.progress
        summary.completed = self.progress >= total
        if summary.completed and not self.config.dry_run:
            self.checkpoint.clear()
            logger.info("All %s items processed, checkpoint removed", total)
        return summary

    async def _process(self, index: int, location: Location, element: Any) -> None:
        if self.config.delay_ms:
            await asyncio.sleep(self.config.delay_ms / 1000)

        label = format_location(location)
        try:
            result = self.handler(copy.deepcopy(element))
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            raise HandlerFailure(
                f"Handler failed on item {index + 1} at {label}: {exc}",
                index=index,
                location=location,
            ) from exc

        try:
            replacement = merge_result(element, result)
        except ResultShapeError as exc:
            exc.index = index
            exc.location = location
            raise

        self.dataset.document = set_at(self.dataset.document, location, replacement)
        self.dataset.persist()
        self.progress += 1
        self.checkpoint.save(self.progress)
        logger.info("Update task progress: %s", self.progress)


__all__ = ["ItemHandler", "RunConfig", "RunState", "RunSummary", "Runner"]
