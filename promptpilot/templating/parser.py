"""
Recursive-descent parser for the logic-less prompt template language.

Supported tags:

    {{path}} / {{{path}}}         variable lookup (dotted, this, ../, @data)
    {{#if x}}...{{else}}...{{/if}}
    {{#unless x}}...{{/unless}}
    {{#each xs}}...{{else}}...{{/each}}
    {{else if x}} / {{else unless x}}   chained inverse
    {{! comment }}

The parser produces an immutable tuple of nodes. Nothing in the grammar can
name a Python callable, so a stored template can only read from the
context it is rendered against.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from promptpilot.errors import TemplateError

_TAG_RE = re.compile(r"\{\{\{(.*?)\}\}\}|\{\{(.*?)\}\}", re.DOTALL)
_PATH_RE = re.compile(
    r"^(?:\.\./)*(?:this|\.|@?[A-Za-z_$][\w$-]*)(?:\.[\w$-]+)*$"
)
_PREV_LINE = re.compile(r"(?:^|\n)([ \t]*)\Z")
_NEXT_LINE = re.compile(r"^[ \t]*(?:\r?\n|\Z)")

BLOCK_HELPERS = ("if", "unless", "each")
_CHAINABLE = ("if", "unless")
_STANDALONE_KINDS = ("open", "else", "close", "comment")


@dataclass(frozen=True)
class Path:
    raw: str
    parts: tuple[str, ...]
    depth: int = 0


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Variable:
    path: Path


@dataclass(frozen=True)
class Conditional:
    path: Path
    negate: bool
    body: tuple["Node", ...]
    inverse: tuple["Node", ...] = ()


@dataclass(frozen=True)
class Iteration:
    path: Path
    body: tuple["Node", ...]
    inverse: tuple["Node", ...] = ()


Node = Union[Text, Variable, Conditional, Iteration]


@dataclass(frozen=True)
class _Tag:
    kind: str
    source: str
    helper: str = ""
    path: Path | None = None
    closes: str = ""


def parse_path(raw: str) -> Path:
    if not _PATH_RE.match(raw):
        raise TemplateError(f"Invalid expression '{raw}' in template")
    expr = raw
    depth = 0
    while expr.startswith("../"):
        depth += 1
        expr = expr[3:]
    if expr in ("this", "."):
        return Path(raw=raw, parts=(), depth=depth)
    if expr.startswith("this."):
        return Path(raw=raw, parts=tuple(expr[5:].split(".")), depth=depth)
    return Path(raw=raw, parts=tuple(expr.split(".")), depth=depth)


def _parse_tag(inner: str, triple: bool) -> _Tag:
    content = inner.strip()
    if triple:
        return _Tag("variable", content, path=parse_path(content))
    if content.startswith("!"):
        return _Tag("comment", content)
    if content.startswith("#"):
        helper, _, arg = content[1:].strip().partition(" ")
        if helper not in BLOCK_HELPERS:
            raise TemplateError(f"Unknown block helper '#{helper}'")
        arg = arg.strip()
        if not arg:
            raise TemplateError(f"Block helper '#{helper}' requires an argument")
        return _Tag("open", content, helper=helper, path=parse_path(arg), closes=helper)
    if content.startswith("/"):
        return _Tag("close", content, helper=content[1:].strip())
    if content == "else" or content.startswith("else "):
        rest = content[4:].strip()
        if not rest:
            return _Tag("else", content)
        helper, _, arg = rest.partition(" ")
        arg = arg.strip()
        if helper not in _CHAINABLE or not arg:
            raise TemplateError(f"Unsupported chained block '{{{{{content}}}}}'")
        return _Tag("else", content, helper=helper, path=parse_path(arg))
    if not content:
        raise TemplateError("Empty tag '{{}}' in template")
    if content[0] in "^>&":
        raise TemplateError(f"Unsupported tag '{{{{{content}}}}}'")
    return _Tag("variable", content, path=parse_path(content))


def tokenize(body: str) -> list[str | _Tag]:
    tokens: list[str | _Tag] = []
    pos = 0
    for match in _TAG_RE.finditer(body):
        if match.start() > pos:
            tokens.append(body[pos:match.start()])
        triple = match.group(1) is not None
        tokens.append(_parse_tag(match.group(1) if triple else match.group(2), triple))
        pos = match.end()
    if pos < len(body):
        tokens.append(body[pos:])
    for token in tokens:
        if isinstance(token, str) and "{{" in token:
            raise TemplateError("Unterminated tag: '{{' without matching '}}'")
    return _strip_standalone(tokens)


def _strip_standalone(tokens: list[str | _Tag]) -> list[str | _Tag]:
    """Drop the line of a block tag that sits alone on it, as Handlebars does."""
    result = list(tokens)
    last = len(tokens) - 1
    for i, token in enumerate(tokens):
        if not isinstance(token, _Tag) or token.kind not in _STANDALONE_KINDS:
            continue
        prev_match = None
        if i > 0:
            prev = tokens[i - 1]
            if not isinstance(prev, str):
                continue
            prev_match = _PREV_LINE.search(prev)
            if prev_match is None or ("\n" not in prev_match.group(0) and i - 1 > 0):
                continue
        next_match = None
        if i < last:
            nxt = tokens[i + 1]
            if not isinstance(nxt, str):
                continue
            next_match = _NEXT_LINE.match(nxt)
            if next_match is None or ("\n" not in next_match.group(0) and i + 1 < last):
                continue
        if prev_match is not None:
            current = result[i - 1]
            result[i - 1] = current[: len(current) - len(prev_match.group(1))]
        if next_match is not None:
            result[i + 1] = result[i + 1][next_match.end():]
    return result


class _Parser:

    def __init__(self, tokens: list[str | _Tag]) -> None:
        self._tokens = tokens
        self._pos = 0

    def parse(self) -> tuple[Node, ...]:
        nodes, _ = self._parse_until(None)
        return nodes

    def _parse_until(self, block: str | None) -> tuple[tuple[Node, ...], _Tag | None]:
        nodes: list[Node] = []
        while self._pos < len(self._tokens):
            token = self._tokens[self._pos]
            self._pos += 1
            if isinstance(token, str):
                if token:
                    nodes.append(Text(token))
                continue
            if token.kind == "comment":
                continue
            if token.kind == "variable":
                nodes.append(Variable(token.path))
                continue
            if token.kind == "open":
                nodes.append(self._parse_block(token))
                continue
            if block is None:
                raise TemplateError(f"Unexpected '{{{{{token.source}}}}}' outside of a block")
            return tuple(nodes), token
        if block is not None:
            raise TemplateError(f"Unclosed block '{{{{#{block}}}}}'")
        return tuple(nodes), None

    def _parse_block(self, tag: _Tag) -> Node:
        body, end = self._parse_until(tag.helper)
        inverse: tuple[Node, ...] = ()
        if end.kind == "else":
            if tag.helper == "each" and end.helper:
                raise TemplateError("'{{else if}}' is not supported inside '{{#each}}'")
            if end.helper:
                chained = _Tag("open", end.source, helper=end.helper, path=end.path, closes=tag.closes)
                return _build(tag, body, (self._parse_block(chained),))
            inverse, end = self._parse_until(tag.helper)
            if end.kind == "else":
                raise TemplateError(f"Duplicate '{{{{else}}}}' in '{{{{#{tag.helper}}}}}' block")
        if end.helper != tag.closes:
            raise TemplateError(
                f"Mismatched block: '{{{{#{tag.closes}}}}}' closed by '{{{{/{end.helper}}}}}'"
            )
        return _build(tag, body, inverse)


def _build(tag: _Tag, body: tuple[Node, ...], inverse: tuple[Node, ...]) -> Node:
    if tag.helper == "each":
        return Iteration(tag.path, body, inverse)
    return Conditional(tag.path, tag.helper == "unless", body, inverse)


def parse(body: str) -> tuple[Node, ...]:
    """Parse a template body. Raises TemplateError on malformed input."""
    return _Parser(tokenize(body)).parse()
