from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from promptpilot.errors import TemplateError
from promptpilot.templating.parser import Node, parse
from promptpilot.templating.renderer import render_nodes


@dataclass(frozen=True)
class CompiledTemplate:
    """A parsed template; safe to render any number of times."""

    source: str
    nodes: tuple[Node, ...]

    def render(self, context: Mapping[str, Any] | None = None) -> str:
        try:
            return render_nodes(self.nodes, context or {})
        except RecursionError as exc:
            raise TemplateError("Template is nested too deeply to render") from exc


def compile_template(body: str) -> CompiledTemplate:
    """Parse ``body``. Raises TemplateError if the template is malformed."""
    try:
        nodes = parse(body)
    except RecursionError as exc:
        raise TemplateError("Template is nested too deeply to parse") from exc
    return CompiledTemplate(source=body, nodes=nodes)


def render(body: str, context: Mapping[str, Any] | None = None) -> str:
    """Render ``body`` against ``context``. Pure: no I/O, no mutation."""
    return compile_template(body).render(context)


__all__ = ["CompiledTemplate", "compile_template", "render"]
