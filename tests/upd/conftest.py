"""Shared fixtures for upd tests (no network; registry traffic is mocked)."""

from __future__ import annotations

import json

import httpx
import pytest


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


class FakeRegistry:
    """In-memory npm registry served through ``httpx.MockTransport``."""

    def __init__(self, packages: dict[str, dict] | None = None) -> None:
        self.packages = dict(packages or {})
        self.requests: list[httpx.Request] = []
        self.failures: dict[str, int] = {}

    def add(self, name: str, latest: str | None, versions: list[str] | None = None) -> None:
        doc: dict = {"name": name, "versions": {v: {} for v in (versions or [])}}
        if latest is not None:
            doc["dist-tags"] = {"latest": latest}
            doc["versions"].setdefault(latest, {})
        self.packages[name] = doc

    def fail(self, name: str, status: int = 500) -> None:
        self.failures[name] = status

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        name = request.url.path.lstrip("/").replace("%2F", "/").replace("%2f", "/")
        if name in self.failures:
            return httpx.Response(self.failures[name])
        doc = self.packages.get(name)
        if doc is None:
            return httpx.Response(404, json={"error": "Not found"})
        return httpx.Response(200, content=json.dumps(doc).encode())

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requested_names(self) -> list[str]:
        return [
            r.url.path.lstrip("/").replace("%2F", "/").replace("%2f", "/") for r in self.requests
        ]


@pytest.fixture
def registry():
    return FakeRegistry()
