"""Data models for the manifest inventory."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from upd.manifest.jsonast import JsonTree

# Fixed scan order, so the inventory is stable across runs.
SECTIONS = (
    "optionalDependencies",
    "peerDependencies",
    "devDependencies",
    "dependencies",
)


class EntryState(str, enum.Enum):
    IGNORED = "ignored"
    TODO = "todo"
    SKIPPED = "skipped"
    CHECK = "check"
    KEPT = "kept"
    UPDATED = "updated"
    ERROR = "error"


@dataclass
class DependencyEntry:
    """One dependency as declared in one section of the manifest."""

    name: str
    section: str
    original_specifier: str
    pinned_version: str | None = None
    resolved_version: str | None = None
    new_specifier: str = ""
    state: EntryState = EntryState.TODO
    error: str | None = None

    def __post_init__(self) -> None:
        if not self.new_specifier:
            self.new_specifier = self.original_specifier


@dataclass
class ManifestDocument:
    """Flat inventory and syntax tree of the same manifest text.

    Owned by a single run; never shared across concurrent lookups.
    """

    text: str
    tree: JsonTree
    entries: list[DependencyEntry] = field(default_factory=list)

    def in_state(self, state: EntryState) -> list[DependencyEntry]:
        return [e for e in self.entries if e.state is state]

    def names_to_check(self) -> list[str]:
        """Unique names of ``check`` entries, in inventory order."""
        return list(dict.fromkeys(e.name for e in self.entries if e.state is EntryState.CHECK))
