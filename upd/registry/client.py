"""Async npm registry client — fetches package metadata ("packuments")."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote, urljoin

import httpx
import structlog

from upd.errors import NetworkFailure, PackageNotFound
from upd.registry.npmrc import NpmConfig

log = structlog.get_logger("upd")

ACCEPT = "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"


def package_url(registry_url: str, name: str) -> str:
    """URL of *name* under *registry_url*; ``@scope/pkg`` becomes ``@scope%2Fpkg``."""
    encoded = quote(name, safe="")
    if encoded.startswith("%40"):
        encoded = "@" + encoded[3:]
    return urljoin(registry_url, encoded)


class RegistryClient:
    """Thin async wrapper around one shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        npm_config: NpmConfig | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._npm_config = npm_config or NpmConfig()
        self._client = httpx.AsyncClient(
            headers={"Accept": ACCEPT},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RegistryClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def fetch_packument(self, name: str) -> dict[str, Any]:
        """GET registry metadata for *name* (lowercased; registries are case-insensitive).

        Raises :class:`PackageNotFound` on 404 and :class:`NetworkFailure` on
        any other transport or protocol problem.
        """
        lookup = name.lower()
        registry = self._npm_config.registry_url(lookup)
        url = package_url(registry, lookup)
        headers: dict[str, str] = {}
        credential = self._npm_config.credential_for(registry)
        if credential is not None:
            headers["Authorization"] = credential.header()

        try:
            resp = await self._client.get(url, headers=headers)
        except httpx.TimeoutException as exc:
            raise NetworkFailure(name, f'timeout fetching package "{name}" from {url}') from exc
        except httpx.HTTPError as exc:
            raise NetworkFailure(name, f'failed to fetch package "{name}": {exc}') from exc

        if resp.status_code == 404:
            raise PackageNotFound(name)
        if not resp.is_success:
            raise NetworkFailure(
                name, f'registry answered HTTP {resp.status_code} for package "{name}"'
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise NetworkFailure(name, f'invalid JSON metadata for package "{name}"') from exc
        if not isinstance(data, dict):
            raise NetworkFailure(name, f'unexpected metadata shape for package "{name}"')
        log.debug("registry.fetched", package=name, url=url, status=resp.status_code)
        return data
