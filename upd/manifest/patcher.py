"""ManifestPatcher — rewrite only the specifier strings that changed."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from upd.errors import AmbiguousOrMissingNode
from upd.manifest.jsonast import MemberQuery, StringNode
from upd.manifest.models import DependencyEntry, EntryState, ManifestDocument

log = structlog.get_logger("upd")


def locate(document: ManifestDocument, entry: DependencyEntry) -> StringNode:
    """Return the single value node holding *entry*'s specifier."""
    nodes = document.tree.query(MemberQuery(section=entry.section, name=entry.name))
    if len(nodes) != 1:
        raise AmbiguousOrMissingNode(entry.section, entry.name, len(nodes))
    return nodes[0]


def apply_updates(document: ManifestDocument, entries: Iterable[DependencyEntry] | None = None) -> str:
    """Patch ``updated`` entries into the tree and return the rendered text.

    All nodes are located before the first edit, so a failed lookup leaves
    the tree untouched. Text outside the replaced string literals is
    returned byte for byte.
    """
    if entries is None:
        entries = document.in_state(EntryState.UPDATED)
    targets = [(entry, locate(document, entry)) for entry in entries]
    for entry, node in targets:
        document.tree.set_string(node, entry.new_specifier)
        log.debug(
            "patcher.replaced",
            package=entry.name,
            section=entry.section,
            start=node.start,
            end=node.end,
        )
    return document.tree.unparse()
