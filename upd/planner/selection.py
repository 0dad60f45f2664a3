"""Include/exclude selection of dependencies by glob pattern.

A pattern is a shell-style glob (``*``, ``?``, ``[seq]``) matched against the
full package name, scope included. A leading ``!`` negates it. Patterns are
applied in order and the last matching one decides; names matching none keep
the default, which is "include" when the first pattern is negated and
"exclude" otherwise.
"""

from __future__ import annotations

from collections.abc import Sequence
from fnmatch import fnmatchcase

from upd.errors import PatternError

NEGATION = "!"


def validate_patterns(patterns: Sequence[str]) -> None:
    """Raise :class:`PatternError` for patterns that can never match."""
    for pattern in patterns:
        if not isinstance(pattern, str):
            raise PatternError(f"pattern must be a string, got {type(pattern).__name__}")
        body = pattern[1:] if pattern.startswith(NEGATION) else pattern
        if not body.strip():
            raise PatternError(f'empty selection pattern "{pattern}"')
        if body.count("[") != body.count("]"):
            raise PatternError(f'unbalanced character class in pattern "{pattern}"')


def is_selected(name: str, patterns: Sequence[str]) -> bool:
    """Return True when *name* passes the include/exclude *patterns*."""
    if not patterns:
        return True
    selected = patterns[0].startswith(NEGATION)
    for pattern in patterns:
        if pattern.startswith(NEGATION):
            if fnmatchcase(name, pattern[1:]):
                selected = False
        elif fnmatchcase(name, pattern):
            selected = True
    return selected
