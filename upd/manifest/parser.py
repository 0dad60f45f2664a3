"""ManifestModel — turn raw ``package.json`` text into a ManifestDocument."""

from __future__ import annotations

from pathlib import Path

import structlog

from upd.errors import ManifestNotFound, ParseError
from upd.manifest import jsonast
from upd.manifest.models import SECTIONS, DependencyEntry, ManifestDocument

log = structlog.get_logger("upd")


def parse(raw_text: str) -> ManifestDocument:
    """Parse *raw_text* once into tree + inventory.

    Sections are scanned in :data:`SECTIONS` order and entries keep their
    declaration order within a section. A name declared twice in one section
    yields a single entry carrying the last value.
    """
    tree = jsonast.parse(raw_text)
    if not isinstance(tree.root, jsonast.ObjectNode):
        raise ParseError("manifest must be a JSON object", tree.root.start, 1, 1)

    entries: list[DependencyEntry] = []
    for section in SECTIONS:
        table = tree.root.get(section)
        if not isinstance(table, jsonast.ObjectNode):
            continue
        declared: dict[str, jsonast.Node] = {}
        for member in table.members:
            declared.pop(member.name, None)
            declared[member.name] = member.value
        for name, value in declared.items():
            if not isinstance(value, jsonast.StringNode):
                line = raw_text.count("\n", 0, value.start) + 1
                column = value.start - (raw_text.rfind("\n", 0, value.start) + 1) + 1
                raise ParseError(
                    f'version specifier of "{name}" in "{section}" must be a string',
                    value.start,
                    line,
                    column,
                )
            entries.append(
                DependencyEntry(name=name, section=section, original_specifier=value.value)
            )

    log.debug("manifest.parsed", entries=len(entries))
    return ManifestDocument(text=raw_text, tree=tree, entries=entries)


def read_manifest(path: Path) -> str:
    """Read the manifest as UTF-8 without newline translation."""
    if not path.is_file():
        raise ManifestNotFound(str(path))
    data = path.read_bytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        line = data.count(b"\n", 0, exc.start) + 1
        column = exc.start - (data.rfind(b"\n", 0, exc.start) + 1) + 1
        raise ParseError("manifest is not valid UTF-8", exc.start, line, column) from exc


def write_manifest(path: Path, text: str) -> None:
    path.write_bytes(text.encode("utf-8"))
