"""
Evaluator for parsed templates.

Truthiness follows the Handlebars ``#if`` convention: missing values,
None, False, 0, "" and empty lists are falsy. Empty mappings are truthy.

A bare name resolves against the current scope only: inside ``#each`` that
is the element, and the enclosing context is reached through ``../`` or
``@root``.

Values are looked up only through mapping keys and sequence indexes; object
attributes are never read, so a context cannot expose host code to a
template.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from promptpilot.templating.parser import (
    Conditional,
    Iteration,
    Node,
    Path,
    Text,
    Variable,
)


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


MISSING = _Missing()


@dataclass(frozen=True)
class Frame:
    value: Any
    data: Mapping[str, Any] = field(default_factory=dict)


def render_nodes(nodes: tuple[Node, ...], context: Mapping[str, Any]) -> str:
    out: list[str] = []
    root = Frame(value=context, data={"root": context})
    _render(nodes, (root,), out)
    return "".join(out)


def _render(nodes: tuple[Node, ...], scopes: tuple[Frame, ...], out: list[str]) -> None:
    for node in nodes:
        if isinstance(node, Text):
            out.append(node.value)
        elif isinstance(node, Variable):
            out.append(stringify(resolve(node.path, scopes)))
        elif isinstance(node, Conditional):
            if is_truthy(resolve(node.path, scopes)) != node.negate:
                _render(node.body, scopes, out)
            else:
                _render(node.inverse, scopes, out)
        elif isinstance(node, Iteration):
            items = _iteration_items(resolve(node.path, scopes))
            if not items:
                _render(node.inverse, scopes, out)
                continue
            parent = scopes[-1].data
            count = len(items)
            for index, (key, item) in enumerate(items):
                data = {
                    **parent,
                    "index": index,
                    "key": key,
                    "first": index == 0,
                    "last": index == count - 1,
                }
                _render(node.body, scopes + (Frame(item, data),), out)


def resolve(path: Path, scopes: tuple[Frame, ...]) -> Any:
    if path.depth:
        if path.depth >= len(scopes):
            return MISSING
        scopes = scopes[: len(scopes) - path.depth]
    frame = scopes[-1]
    parts = path.parts

    if parts and parts[0].startswith("@"):
        return _walk(frame.data.get(parts[0][1:], MISSING), parts[1:])
    # Only the current scope; outer values need ../ or @root.
    return _walk(frame.value, parts)


def _walk(value: Any, parts: tuple[str, ...]) -> Any:
    for part in parts:
        if value is MISSING:
            return MISSING
        if isinstance(value, Mapping):
            value = value.get(part, MISSING)
        elif isinstance(value, (list, tuple)) and part.isdigit():
            index = int(part)
            value = value[index] if index < len(value) else MISSING
        else:
            return MISSING
    return value


def _iteration_items(value: Any) -> list[tuple[Any, Any]]:
    if isinstance(value, Mapping):
        return list(value.items())
    if isinstance(value, (list, tuple)):
        return list(enumerate(value))
    return []


def is_truthy(value: Any) -> bool:
    if value is MISSING or value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    if isinstance(value, (str, list, tuple)):
        return len(value) > 0
    return True


def stringify(value: Any) -> str:
    if value is MISSING or value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(value, default=str)
    return str(value)
