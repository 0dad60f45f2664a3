"""Error taxonomy — every fatal condition of a run derives from UpdError."""

from __future__ import annotations


class UpdError(Exception):
    """Base exception for all fatal run errors."""


class ConfigError(UpdError):
    """Invalid caller-supplied options."""


class PatternError(ConfigError):
    """Invalid selection pattern."""


class ManifestNotFound(UpdError):
    """The manifest file does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f'cannot find NPM package configuration file under path "{path}"')


class ParseError(UpdError):
    """Malformed manifest document."""

    def __init__(self, message: str, position: int, line: int, column: int) -> None:
        self.position = position
        self.line = line
        self.column = column
        super().__init__(f"{message} (line {line}, column {column})")


# ── resolution ─────────────────────────────────────────────────────────────


class ResolutionError(UpdError):
    """A registry lookup for a single package failed."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        super().__init__(message)


class PackageNotFound(ResolutionError):
    """Registry answered 404 for the package (-> distinct from network errors)."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f'package "{name}" not found')


class NetworkFailure(ResolutionError):
    """Transport error, timeout, unexpected status or undecodable body."""


class MissingResolutionTarget(ResolutionError):
    """Registry metadata has no usable resolution target."""


class RunFailed(UpdError):
    """One or more lookups failed; carries every per-package error."""

    def __init__(self, errors: list[ResolutionError]) -> None:
        self.errors = errors
        lines = "; ".join(str(e) for e in errors)
        super().__init__(f"{len(errors)} package lookup(s) failed: {lines}")


# ── patching ───────────────────────────────────────────────────────────────


class PatchError(UpdError):
    """The manifest cannot be rewritten safely."""


class AmbiguousOrMissingNode(PatchError):
    """Member query did not resolve to exactly one value node."""

    def __init__(self, section: str, name: str, matches: int) -> None:
        self.section = section
        self.name = name
        self.matches = matches
        super().__init__(
            f'failed to find module "{name}" in section "{section}" of manifest '
            f"syntax tree (expected 1 match, got {matches})"
        )


class SubstitutionError(PatchError):
    """The pinned version is not a literal substring of the specifier."""

    def __init__(self, name: str, specifier: str, old: str, new: str) -> None:
        self.name = name
        super().__init__(
            f'failed to update module "{name}" version string "{specifier}" '
            f'from "{old}" to "{new}" in manifest'
        )
