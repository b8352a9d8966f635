"""Merging handler results back into the dataset.

Elements come in three shapes. Objects are shallow-merged with the handler's
result (result keys win). Arrays and scalars are replaced by the result.
Anything that would not survive a JSON round trip is rejected.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from .errors import ResultShapeError


class Shape(Enum):
    OBJECT = "object"
    ARRAY = "array"
    SCALAR = "scalar"


def shape_of(value: Any) -> Shape:
    if isinstance(value, dict):
        return Shape.OBJECT
    if isinstance(value, list):
        return Shape.ARRAY
    return Shape.SCALAR


def check_json(value: Any, where: str = "result") -> None:
    if value is None or isinstance(value, (bool, str, int)):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ResultShapeError(f"{where} is not a finite number: {value!r}")
        return
    if isinstance(value, dict):
        for key, child in value.items():
            if not isinstance(key, str):
                raise ResultShapeError(f"{where} has a non-string key {key!r}")
            check_json(child, f"{where}.{key}")
        return
    if isinstance(value, list):
        for index, child in enumerate(value):
            check_json(child, f"{where}[{index}]")
        return
    raise ResultShapeError(f"{where} has unsupported type {type(value).__name__}")


def merge_result(element: Any, result: Any) -> Any:
    """Return the value that replaces ``element`` in the document."""

    check_json(result)
    shape = shape_of(element)
    if shape is Shape.OBJECT:
        if not isinstance(result, dict):
            raise ResultShapeError(
                f"object element needs an object result, got {shape_of(result).value}"
            )
        merged = dict(element)
        merged.update(result)
        return merged
    return result


__all__ = ["Shape", "shape_of", "check_json", "merge_result"]
