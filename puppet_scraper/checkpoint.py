"""Checkpoint management for incremental resume."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from .errors import CorruptCheckpointError

logger = logging.getLogger(__name__)


def checkpoint_path_for(dataset_path: Union[str, Path], script_path: Union[str, Path]) -> Path:
    """Place the checkpoint beside the dataset, named after the handler script."""

    dataset_dir = Path(dataset_path).resolve().parent
    return dataset_dir / f".{Path(script_path).stem}.progress.json"


class CheckpointStore:
    """JSON record holding the number of fully processed items."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[int]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CorruptCheckpointError(f"Cannot read checkpoint {self.path}: {exc}") from exc

        step = data.get("step") if isinstance(data, dict) else None
        if isinstance(step, bool) or not isinstance(step, int) or step < 0:
            raise CorruptCheckpointError(f"Checkpoint {self.path} has no valid step: {data!r}")
        return step

    def save(self, progress: int) -> None:
        if progress < 0:
            raise ValueError(f"progress must be >= 0, got {progress}")
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps({"step": progress}), encoding="utf-8")
        tmp.replace(self.path)
        logger.debug("Checkpoint %s -> %s", self.path, progress)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.debug("Checkpoint %s cleared", self.path)


__all__ = ["CheckpointStore", "checkpoint_path_for"]
