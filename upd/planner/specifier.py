"""Specifier grammar: ``[^|~] <version>`` is the only form that gets upgraded."""

from __future__ import annotations

import re
from dataclasses import dataclass

from upd.errors import SubstitutionError
from upd.planner.versions import is_valid_version

# optional whitespace, optional ^ or ~ operator, a version starting with a digit
_PINNED_RE = re.compile(r"^\s*(?:[\^~]\s*)?(\d+[^<>=|\s]*)\s*$")


@dataclass(frozen=True)
class Pinned:
    """A simple "operator + bare version" specifier."""

    version: str


@dataclass(frozen=True)
class Unparseable:
    """Anything else: ranges, URLs, tags, wildcards."""

    reason: str


ParsedSpecifier = Pinned | Unparseable


def parse_specifier(specifier: str) -> ParsedSpecifier:
    """Classify *specifier*, capturing the bare version when it is pinned."""
    m = _PINNED_RE.match(specifier)
    if m is None:
        return Unparseable("not an operator + version form")
    version = m.group(1)
    if not is_valid_version(version):
        return Unparseable(f'"{version}" is not a semantic version')
    return Pinned(version)


def substitute(name: str, specifier: str, old: str, new: str) -> str:
    """Replace the first literal occurrence of *old* in *specifier* with *new*."""
    idx = specifier.find(old)
    if idx < 0:
        raise SubstitutionError(name, specifier, old, new)
    result = specifier[:idx] + new + specifier[idx + len(old) :]
    if result == specifier:
        raise SubstitutionError(name, specifier, old, new)
    return result
