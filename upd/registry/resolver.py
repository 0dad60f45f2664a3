"""VersionResolver — bounded concurrent registry lookups."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from upd.errors import ResolutionError
from upd.planner.versions import select_target
from upd.registry.client import RegistryClient

log = structlog.get_logger("upd")


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of one lookup: a target version or the error that prevented it."""

    name: str
    version: str | None = None
    error: ResolutionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class VersionResolver:
    """Resolve unique package names with at most *concurrency* lookups in flight.

    Each lookup writes only its own result; nothing shared is mutated while
    lookups run. A failing lookup never cancels the others.
    """

    def __init__(self, client: RegistryClient, concurrency: int = 8, mode: str = "latest") -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._client = client
        self._concurrency = concurrency
        self._mode = mode

    async def resolve(self, names: Iterable[str]) -> dict[str, ResolutionResult]:
        unique = list(dict.fromkeys(names))
        if not unique:
            return {}
        sem = asyncio.Semaphore(self._concurrency)

        async def _run(name: str) -> ResolutionResult:
            async with sem:
                return await self.resolve_one(name)

        results = await asyncio.gather(*(_run(name) for name in unique))
        failed = sum(1 for r in results if not r.ok)
        log.info("resolver.done", requested=len(unique), failed=failed)
        return {r.name: r for r in results}

    async def resolve_one(self, name: str) -> ResolutionResult:
        try:
            packument = await self._client.fetch_packument(name)
            version = select_target(name, packument, self._mode)
        except ResolutionError as exc:
            log.warning("resolver.lookup_failed", package=name, error=str(exc))
            return ResolutionResult(name, error=exc)
        log.debug("resolver.resolved", package=name, version=version, mode=self._mode)
        return ResolutionResult(name, version=version)
