"""UpdatePlanner — per-entry state machine.

    ignored                      (fails selection, terminal)
    todo -> skipped              (specifier not pinned, terminal)
    todo -> check -> kept        (registry not ahead of pin, terminal)
                  -> updated     (registry ahead of pin)
                  -> error       (lookup failed, fatal for the run)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import structlog

from upd.errors import ResolutionError, RunFailed, SubstitutionError
from upd.manifest.models import DependencyEntry, EntryState, ManifestDocument
from upd.planner.selection import is_selected
from upd.planner.specifier import Pinned, parse_specifier, substitute
from upd.planner.versions import compare_versions
from upd.registry.resolver import ResolutionResult

log = structlog.get_logger("upd")


def select(document: ManifestDocument, patterns: Sequence[str]) -> None:
    """Mark every entry ``todo`` or ``ignored``."""
    for entry in document.entries:
        entry.state = EntryState.TODO if is_selected(entry.name, patterns) else EntryState.IGNORED


def classify(document: ManifestDocument) -> None:
    """Move ``todo`` entries to ``check`` (pinned) or ``skipped``."""
    for entry in document.in_state(EntryState.TODO):
        parsed = parse_specifier(entry.original_specifier)
        if isinstance(parsed, Pinned):
            entry.pinned_version = parsed.version
            entry.state = EntryState.CHECK
        else:
            entry.state = EntryState.SKIPPED
            log.debug(
                "planner.skipped",
                package=entry.name,
                section=entry.section,
                specifier=entry.original_specifier,
                reason=parsed.reason,
            )


def decide(entry: DependencyEntry, resolved: str) -> None:
    """Settle a ``check`` entry against the *resolved* target version.

    Never downgrades: a pin equal to or ahead of the target is ``kept``.
    """
    assert entry.pinned_version is not None
    entry.resolved_version = resolved
    if entry.pinned_version == resolved or compare_versions(entry.pinned_version, resolved) >= 0:
        entry.state = EntryState.KEPT
        entry.new_specifier = entry.original_specifier
        return
    try:
        entry.new_specifier = substitute(
            entry.name, entry.original_specifier, entry.pinned_version, resolved
        )
    except SubstitutionError as exc:
        entry.state = EntryState.ERROR
        entry.error = str(exc)
        raise
    entry.state = EntryState.UPDATED


def merge(document: ManifestDocument, results: Mapping[str, ResolutionResult]) -> bool:
    """Apply resolution *results* to every ``check`` entry, sequentially.

    Entries sharing a name all receive the same result. Returns whether any
    entry was updated; raises :class:`RunFailed` if any lookup failed.
    """
    failures: dict[str, ResolutionError] = {}
    updates = False
    for entry in document.in_state(EntryState.CHECK):
        result = results.get(entry.name)
        if result is None:
            result = ResolutionResult(
                entry.name, error=ResolutionError(entry.name, f'no lookup result for "{entry.name}"')
            )
        if result.error is not None:
            entry.state = EntryState.ERROR
            entry.error = str(result.error)
            failures.setdefault(entry.name, result.error)
            continue
        assert result.version is not None
        decide(entry, result.version)
        if entry.state is EntryState.UPDATED:
            updates = True
            log.info(
                "planner.updated",
                package=entry.name,
                section=entry.section,
                old=entry.original_specifier,
                new=entry.new_specifier,
            )
    if failures:
        raise RunFailed(list(failures.values()))
    return updates
