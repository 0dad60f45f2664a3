"""Position-aware JSON syntax tree.

Every node keeps the ``[start, end)`` span of its source text. Edits are
recorded against spans and applied on :meth:`JsonTree.unparse`, so all bytes
outside an edited span (whitespace, key order, comments, escapes) come back
exactly as they were read.

``//`` and ``/* */`` comments and a leading byte-order mark are accepted as
trivia between tokens.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from upd.errors import ParseError

_WS = " \t\n\r"
_NUMBER_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")
_LITERALS = {"true": True, "false": False, "null": None}
_BOM = "\ufeff"


# ── nodes ──────────────────────────────────────────────────────────────────


@dataclass(eq=False)
class Node:
    start: int
    end: int


@dataclass(eq=False)
class StringNode(Node):
    value: str
    raw: str


@dataclass(eq=False)
class ScalarNode(Node):
    """Number, ``true``, ``false`` or ``null``."""

    value: Any
    raw: str


@dataclass(eq=False)
class ArrayNode(Node):
    items: list[Node] = field(default_factory=list)


@dataclass(eq=False)
class Member:
    """One ``"key": value`` pair of an object."""

    key: StringNode
    value: Node

    @property
    def name(self) -> str:
        return self.key.value


@dataclass(eq=False)
class ObjectNode(Node):
    members: list[Member] = field(default_factory=list)

    def get(self, name: str) -> Node | None:
        """Value of the last member called *name* (JSON last-wins semantics)."""
        found = None
        for member in self.members:
            if member.name == name:
                found = member.value
        return found


def to_python(node: Node) -> Any:
    """Convert a subtree to plain Python values (duplicate keys: last wins)."""
    if isinstance(node, ObjectNode):
        return {m.name: to_python(m.value) for m in node.members}
    if isinstance(node, ArrayNode):
        return [to_python(item) for item in node.items]
    if isinstance(node, (StringNode, ScalarNode)):
        return node.value
    raise TypeError(f"unknown node type {type(node).__name__}")


# ── queries ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MemberQuery:
    """Select string values at ``root[section][name]``.

    Both predicates are plain equality on decoded key strings; the query is
    never rendered to text, so no escaping is involved.
    """

    section: str
    name: str

    def select(self, tree: JsonTree) -> list[StringNode]:
        root = tree.root
        if not isinstance(root, ObjectNode):
            return []
        hits: list[StringNode] = []
        for outer in root.members:
            if outer.name != self.section or not isinstance(outer.value, ObjectNode):
                continue
            for inner in outer.value.members:
                if inner.name == self.name and isinstance(inner.value, StringNode):
                    hits.append(inner.value)
        return hits


# ── tree ───────────────────────────────────────────────────────────────────


class JsonTree:
    """Parsed document plus pending span edits."""

    def __init__(self, text: str, root: Node) -> None:
        self.text = text
        self.root = root
        self._edits: dict[int, tuple[int, str]] = {}

    def query(self, query: MemberQuery) -> list[StringNode]:
        return query.select(self)

    def set_string(self, node: StringNode, value: str) -> None:
        """Replace the literal of *node* with the JSON encoding of *value*."""
        raw = json.dumps(value, ensure_ascii=False)
        self._edits[node.start] = (node.end, raw)
        node.value = value
        node.raw = raw

    @property
    def modified(self) -> bool:
        return bool(self._edits)

    def unparse(self) -> str:
        """Render the document, applying recorded edits to their spans only."""
        out: list[str] = []
        pos = 0
        for start in sorted(self._edits):
            end, raw = self._edits[start]
            out.append(self.text[pos:start])
            out.append(raw)
            pos = end
        out.append(self.text[pos:])
        return "".join(out)


# ── parser ─────────────────────────────────────────────────────────────────


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 1 if text.startswith(_BOM) else 0

    def error(self, message: str, pos: int | None = None) -> ParseError:
        pos = self.pos if pos is None else pos
        line = self.text.count("\n", 0, pos) + 1
        column = pos - (self.text.rfind("\n", 0, pos) + 1) + 1
        return ParseError(message, pos, line, column)

    def skip_trivia(self) -> None:
        text = self.text
        n = len(text)
        while self.pos < n:
            ch = text[self.pos]
            if ch in _WS:
                self.pos += 1
            elif text.startswith("//", self.pos):
                nl = text.find("\n", self.pos)
                self.pos = n if nl < 0 else nl + 1
            elif text.startswith("/*", self.pos):
                close = text.find("*/", self.pos + 2)
                if close < 0:
                    raise self.error("unterminated comment")
                self.pos = close + 2
            else:
                break

    def parse_document(self) -> Node:
        self.skip_trivia()
        root = self.parse_value()
        self.skip_trivia()
        if self.pos != len(self.text):
            raise self.error("unexpected content after document")
        return root

    def parse_value(self) -> Node:
        if self.pos >= len(self.text):
            raise self.error("unexpected end of input")
        ch = self.text[self.pos]
        if ch == "{":
            return self.parse_object()
        if ch == "[":
            return self.parse_array()
        if ch == '"':
            return self.parse_string()
        m = _NUMBER_RE.match(self.text, self.pos)
        if m is not None:
            start, self.pos = self.pos, m.end()
            raw = m.group(0)
            value: Any = float(raw) if any(c in raw for c in ".eE") else int(raw)
            return ScalarNode(start, self.pos, value, raw)
        for word, value in _LITERALS.items():
            if self.text.startswith(word, self.pos):
                start = self.pos
                self.pos += len(word)
                return ScalarNode(start, self.pos, value, word)
        raise self.error(f"unexpected character {ch!r}")

    def parse_string(self) -> StringNode:
        text = self.text
        start = self.pos
        i = start + 1
        n = len(text)
        while i < n:
            ch = text[i]
            if ch == '"':
                break
            if ch == "\\":
                i += 2
                continue
            if ord(ch) < 0x20:
                raise self.error("control character in string", i)
            i += 1
        else:
            raise self.error("unterminated string", start)
        raw = text[start : i + 1]
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise self.error(f"invalid string literal: {exc.msg}", start + exc.pos) from exc
        self.pos = i + 1
        return StringNode(start, self.pos, value, raw)

    def expect(self, ch: str) -> None:
        if not self.text.startswith(ch, self.pos):
            found = self.text[self.pos] if self.pos < len(self.text) else "end of input"
            raise self.error(f"expected {ch!r}, found {found!r}")
        self.pos += 1

    def parse_object(self) -> ObjectNode:
        node = ObjectNode(self.pos, self.pos)
        self.expect("{")
        self.skip_trivia()
        if self.text.startswith("}", self.pos):
            self.pos += 1
            node.end = self.pos
            return node
        while True:
            self.skip_trivia()
            if not self.text.startswith('"', self.pos):
                raise self.error("expected string key")
            key = self.parse_string()
            self.skip_trivia()
            self.expect(":")
            self.skip_trivia()
            value = self.parse_value()
            node.members.append(Member(key, value))
            self.skip_trivia()
            if self.text.startswith(",", self.pos):
                self.pos += 1
                continue
            self.expect("}")
            node.end = self.pos
            return node

    def parse_array(self) -> ArrayNode:
        node = ArrayNode(self.pos, self.pos)
        self.expect("[")
        self.skip_trivia()
        if self.text.startswith("]", self.pos):
            self.pos += 1
            node.end = self.pos
            return node
        while True:
            self.skip_trivia()
            node.items.append(self.parse_value())
            self.skip_trivia()
            if self.text.startswith(",", self.pos):
                self.pos += 1
                continue
            self.expect("]")
            node.end = self.pos
            return node


def parse(text: str) -> JsonTree:
    """Parse *text* into a :class:`JsonTree`, raising :class:`ParseError`."""
    return JsonTree(text, _Parser(text).parse_document())
