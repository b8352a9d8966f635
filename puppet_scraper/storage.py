"""Dataset loading and JSON snapshot storage."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Union

from .errors import MalformedDocumentError, SourceUnreadableError

logger = logging.getLogger(__name__)

_MISSING = object()


def default_output_path(dataset_path: Union[str, Path]) -> Path:
    return Path(dataset_path).resolve().parent / "output.json"


def dump_document(document: Any, pretty: bool = False) -> str:
    if pretty:
        return json.dumps(document, indent=2, ensure_ascii=False)
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False)


def read_document(path: Path) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceUnreadableError(f"Cannot read {path}: {exc}") from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedDocumentError(f"{path} is not valid JSON: {exc}") from exc


class DatasetStore:
    """Owns the in-memory document and its snapshot on disk.

    A fresh run reads ``source_path``. A resumed run reads ``output_path``,
    which holds every item merged before the interruption.
    """

    def __init__(self, source_path: Path, output_path: Path, pretty: bool = False) -> None:
        self.source_path = Path(source_path)
        self.output_path = Path(output_path)
        self.pretty = pretty
        self.document: Any = None

    def load_initial(self, progress: int) -> Any:
        path = self.source_path if progress == 0 else self.output_path
        if progress == 0:
            logger.info("Data source: %s", path)
        else:
            logger.info("Restoring data source: %s", path)
        self.document = read_document(path)
        return self.document

    def persist(self, document: Any = _MISSING) -> None:
        if document is not _MISSING:
            self.document = document
        raw = dump_document(self.document, self.pretty)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.output_path.with_suffix(self.output_path.suffix + ".tmp")
        tmp.write_text(raw, encoding="utf-8")
        tmp.replace(self.output_path)
        logger.debug("Wrote %s bytes to %s", len(raw), self.output_path)


__all__ = ["DatasetStore", "default_output_path", "dump_document", "read_document"]
