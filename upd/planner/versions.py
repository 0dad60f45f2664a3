"""Semantic-version ordering and resolution-target selection."""

from __future__ import annotations

from typing import Any

import semver
import structlog

from upd.errors import MissingResolutionTarget

log = structlog.get_logger("upd")


def parse_version(version: str) -> semver.Version:
    """Parse *version*; minor and patch may be omitted (``1.2`` -> ``1.2.0``)."""
    return semver.Version.parse(version, optional_minor_and_patch=True)


def is_valid_version(version: str) -> bool:
    try:
        parse_version(version)
    except (ValueError, TypeError):
        return False
    return True


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 under semantic-version precedence."""
    return parse_version(a).compare(parse_version(b))


def select_target(name: str, packument: dict[str, Any], mode: str) -> str:
    """Pick the resolution target out of registry metadata.

    ``latest`` mode takes the ``dist-tags.latest`` tag; ``greatest`` mode
    takes the head of all published versions sorted descending.
    """
    if mode == "greatest":
        versions = packument.get("versions")
        if not isinstance(versions, dict):
            raise MissingResolutionTarget(name, f'no versions published for module "{name}"')
        valid = []
        for version in versions:
            if is_valid_version(version):
                valid.append(version)
            else:
                log.debug("versions.invalid_skipped", package=name, version=version)
        if not valid:
            raise MissingResolutionTarget(name, f'no valid versions found for module "{name}"')
        valid.sort(key=lambda v: (parse_version(v), v), reverse=True)
        return valid[0]

    dist_tags = packument.get("dist-tags")
    latest = dist_tags.get("latest") if isinstance(dist_tags, dict) else None
    if not isinstance(latest, str):
        raise MissingResolutionTarget(name, f'no "latest" version found for module "{name}"')
    if not is_valid_version(latest):
        raise MissingResolutionTarget(
            name, f'"latest" version "{latest}" of module "{name}" is not a semantic version'
        )
    return latest
