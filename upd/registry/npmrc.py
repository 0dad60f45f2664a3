"""Per-scope registry endpoints and credentials from ``.npmrc`` files."""

from __future__ import annotations

import base64
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import structlog

log = structlog.get_logger("upd")

DEFAULT_REGISTRY = "https://registry.npmjs.org/"

_ENV_REF_RE = re.compile(r"\$\{([^}]+)\}")


@dataclass(frozen=True)
class Credential:
    """Authorization for one registry endpoint."""

    type: str  # "Bearer" | "Basic"
    token: str

    def header(self) -> str:
        return f"{self.type} {self.token}"


def _expand_env(value: str) -> str:
    return _ENV_REF_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)


def parse_npmrc(content: str) -> dict[str, str]:
    """Parse ``key = value`` lines; ``#``/``;`` comments and sections are ignored."""
    values: dict[str, str] = {}
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line[0] in "#;" or line.startswith("["):
            continue
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = _expand_env(key.strip())
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key] = _expand_env(value)
    return values


def default_npmrc_paths(manifest: Path) -> list[Path]:
    """User config first, project config last (later files win)."""
    user = os.environ.get("NPM_CONFIG_USERCONFIG") or os.environ.get("npm_config_userconfig")
    user_path = Path(user) if user else Path.home() / ".npmrc"
    return [user_path, manifest.resolve().parent / ".npmrc"]


class NpmConfig:
    """Merged view of one or more npmrc files."""

    def __init__(self, values: dict[str, str] | None = None) -> None:
        self.values = dict(values or {})

    @classmethod
    def load(cls, paths: Iterable[Path]) -> NpmConfig:
        merged: dict[str, str] = {}
        for path in paths:
            if not path.is_file():
                continue
            log.debug("npmrc.loaded", path=str(path))
            merged.update(parse_npmrc(path.read_text(encoding="utf-8", errors="replace")))
        return cls(merged)

    # ── endpoints ──────────────────────────────────────────────────────────

    def registry_url(self, name: str) -> str:
        """Registry endpoint for package *name*, always ending in ``/``."""
        url = None
        if name.startswith("@") and "/" in name:
            scope = name.split("/", 1)[0]
            url = self.values.get(f"{scope}:registry")
        if not url:
            url = (
                self.values.get("registry")
                or os.environ.get("NPM_CONFIG_REGISTRY")
                or os.environ.get("npm_config_registry")
                or DEFAULT_REGISTRY
            )
        return url if url.endswith("/") else url + "/"

    # ── credentials ────────────────────────────────────────────────────────

    def credential_for(self, registry_url: str) -> Credential | None:
        """Look up credentials for *registry_url*, walking up its path."""
        parts = urlsplit(registry_url)
        host = parts.netloc.rsplit("@", 1)[-1]
        segments = [s for s in parts.path.split("/") if s]
        while True:
            path = "/".join(segments)
            prefix = f"//{host}/{path}/" if path else f"//{host}/"
            for candidate in (prefix, prefix.rstrip("/")):
                cred = self._credential_at(candidate)
                if cred is not None:
                    return cred
            if not segments:
                return None
            segments.pop()

    def _credential_at(self, prefix: str) -> Credential | None:
        token = self.values.get(f"{prefix}:_authToken")
        if token:
            return Credential("Bearer", token)
        auth = self.values.get(f"{prefix}:_auth")
        if auth:
            return Credential("Basic", auth)
        username = self.values.get(f"{prefix}:username")
        password = self.values.get(f"{prefix}:_password")
        if username and password:
            try:
                decoded = base64.b64decode(password).decode("utf-8")
            except ValueError:
                decoded = password
            token = base64.b64encode(f"{username}:{decoded}".encode()).decode("ascii")
            return Credential("Basic", token)
        return None
