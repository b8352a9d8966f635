"""JSONPath queries resolved to addressable locations.

Parsing and matching are done by ``jsonpath_ng.ext``, which adds filter
expressions such as ``$.items[?(@.price < 10)]`` to the base grammar. Each
match is turned into a location, a tuple of dict keys and list indices from
the root, so the value can be written back after it has been replaced.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterator, List, Optional, Tuple, Union

from jsonpath_ng.jsonpath import Child, DatumInContext, Fields, Index, JSONPath, Root, This
from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as _parse

from .errors import QuerySyntaxError, StaleLocationError

PathPart = Union[str, int]
Location = Tuple[PathPart, ...]

_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_RESERVED = frozenset({"where", "wherenot"})
_COLUMN_RE = re.compile(r"(?:at \d+:|col )(\d+)")


class CompiledQuery:
    """A parsed query, reusable across documents."""

    def __init__(self, text: str, expression: JSONPath) -> None:
        self.text = text
        self.expression = expression

    def resolve(self, document: Any) -> List[Location]:
        seen = set()
        locations: List[Location] = []
        for match in self.expression.find(document):
            location = _location_of(match, document)
            if location not in seen:
                seen.add(location)
                locations.append(location)
        return locations

    def __repr__(self) -> str:
        return f"CompiledQuery({self.text!r})"


def _steps(path: JSONPath) -> Iterator[PathPart]:
    if isinstance(path, (Root, This)):
        return
    if isinstance(path, Child):
        yield from _steps(path.left)
        yield from _steps(path.right)
    elif isinstance(path, Fields) and len(path.fields) == 1:
        yield path.fields[0]
    elif isinstance(path, Index):
        indices = getattr(path, "indices", None) or [path.index]
        if len(indices) != 1:
            raise QuerySyntaxError(str(path), None, "match path selects more than one index")
        yield indices[0]
    else:
        raise QuerySyntaxError(str(path), None, f"unsupported match path {type(path).__name__}")


def _location_of(match: DatumInContext, document: Any) -> Location:
    """Rebuild the concrete location of ``match`` by walking down from its root.

    Slices applied to a non-list wrap the value in a one-element list, and
    filters applied to an object run over its values and rewrite the matched
    parent in place. Both report list indices that do not exist in the
    document, so the walk follows the document itself and maps them back.
    """

    chain = []
    datum: Optional[DatumInContext] = match
    while datum is not None:
        chain.append(datum)
        datum = datum.context
    chain.reverse()

    current = document
    location: List[PathPart] = []
    for datum in chain:
        for step in _steps(datum.path):
            if isinstance(current, list) and isinstance(step, int):
                step = step + len(current) if step < 0 else step
                current = current[step]
            elif isinstance(current, dict) and isinstance(step, str):
                current = current[step]
            elif isinstance(step, int) and datum.value is current:
                continue
            elif isinstance(current, dict) and isinstance(step, int) and 0 <= step < len(current):
                step = list(current)[step]
                current = current[step]
            else:
                raise StaleLocationError(f"cannot address step {step!r} below {format_location(tuple(location))}")
            location.append(step)
    return tuple(location)


def parse_query(query: str) -> CompiledQuery:
    """Compile ``query``, raising ``QuerySyntaxError`` if it is malformed."""

    if not isinstance(query, str):
        raise QuerySyntaxError(repr(query), None, "query must be a string")
    if not query.strip():
        raise QuerySyntaxError(query, 0, "query is empty")
    try:
        expression = _parse(query)
    except JSONPathError as exc:
        column = _COLUMN_RE.search(str(exc))
        raise QuerySyntaxError(query, int(column.group(1)) if column else None, str(exc)) from exc
    return CompiledQuery(query, expression)


def resolve(document: Any, query: Union[str, CompiledQuery]) -> List[Location]:
    """Return the locations matched by ``query`` in ``document``, in a stable order."""

    compiled = query if isinstance(query, CompiledQuery) else parse_query(query)
    return compiled.resolve(document)


def _step(current: Any, part: PathPart) -> Any:
    if isinstance(current, dict) and isinstance(part, str):
        return current[part]
    if isinstance(current, list) and isinstance(part, int) and not isinstance(part, bool):
        return current[part]
    raise TypeError(f"cannot step into {type(current).__name__} with {part!r}")


def get_at(document: Any, location: Location) -> Any:
    current = document
    for depth, part in enumerate(location):
        try:
            current = _step(current, part)
        except (KeyError, IndexError, TypeError) as exc:
            raise StaleLocationError(
                f"{format_location(location)} no longer exists (failed at {format_location(location[: depth + 1])})"
            ) from exc
    return current


def set_at(document: Any, location: Location, value: Any) -> Any:
    """Replace the value at ``location`` and return the (possibly new) root."""

    if not location:
        return value
    parent = get_at(document, location[:-1])
    key = location[-1]
    if isinstance(parent, dict) and isinstance(key, str):
        parent[key] = value
    elif isinstance(parent, list) and isinstance(key, int) and -len(parent) <= key < len(parent):
        parent[key] = value
    else:
        raise StaleLocationError(f"{format_location(location)} no longer exists")
    return document


def format_location(location: Location) -> str:
    parts = ["$"]
    for part in location:
        if isinstance(part, int):
            parts.append(f"[{part}]")
        elif _IDENTIFIER_RE.fullmatch(part) and part not in _RESERVED:
            parts.append(f".{part}")
        else:
            parts.append(f"[{json.dumps(part, ensure_ascii=False)}]")
    return "".join(parts)


__all__ = [
    "CompiledQuery",
    "Location",
    "parse_query",
    "resolve",
    "get_at",
    "set_at",
    "format_location",
]
