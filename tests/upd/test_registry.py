"""Tests for npmrc lookup, the registry client and the bounded resolver."""

from __future__ import annotations

import asyncio
import base64
from unittest.mock import AsyncMock

import httpx
import pytest

from upd.errors import MissingResolutionTarget, NetworkFailure, PackageNotFound
from upd.registry.client import ACCEPT, RegistryClient, package_url
from upd.registry.npmrc import DEFAULT_REGISTRY, Credential, NpmConfig, parse_npmrc
from upd.registry.resolver import VersionResolver

# ── npmrc ─────────────────────────────────────────────────────────────────


class TestNpmrc:
    def test_parse(self, monkeypatch):
        monkeypatch.setenv("NPM_TOKEN", "s3cret")
        values = parse_npmrc(
            "# comment\n"
            "; other comment\n"
            "registry = https://npm.example.com/\n"
            "@corp:registry=https://corp.example.com/npm/\n"
            "//corp.example.com/npm/:_authToken=${NPM_TOKEN}\n"
            'quoted="value"\n'
            "garbage line\n"
        )
        assert values == {
            "registry": "https://npm.example.com/",
            "@corp:registry": "https://corp.example.com/npm/",
            "//corp.example.com/npm/:_authToken": "s3cret",
            "quoted": "value",
        }

    def test_default_registry(self, monkeypatch):
        monkeypatch.delenv("NPM_CONFIG_REGISTRY", raising=False)
        monkeypatch.delenv("npm_config_registry", raising=False)
        assert NpmConfig().registry_url("left-pad") == DEFAULT_REGISTRY

    def test_env_registry(self, monkeypatch):
        monkeypatch.setenv("NPM_CONFIG_REGISTRY", "https://mirror.example.com")
        assert NpmConfig().registry_url("left-pad") == "https://mirror.example.com/"

    def test_scoped_registry(self):
        config = NpmConfig(
            {"registry": "https://npm.example.com/", "@corp:registry": "https://corp.example.com/npm"}
        )
        assert config.registry_url("@corp/tool") == "https://corp.example.com/npm/"
        assert config.registry_url("@other/tool") == "https://npm.example.com/"
        assert config.registry_url("plain") == "https://npm.example.com/"

    def test_load_merges_later_files(self, tmp_path):
        user = tmp_path / "user.npmrc"
        project = tmp_path / "project.npmrc"
        user.write_text("registry=https://user.example.com/\n@a:registry=https://a.example.com/\n")
        project.write_text("registry=https://project.example.com/\n")
        config = NpmConfig.load([user, project, tmp_path / "missing.npmrc"])
        assert config.registry_url("x") == "https://project.example.com/"
        assert config.registry_url("@a/x") == "https://a.example.com/"

    def test_bearer_token_walks_up_path(self):
        config = NpmConfig({"//corp.example.com/:_authToken": "tok"})
        cred = config.credential_for("https://corp.example.com/npm/private/")
        assert cred == Credential("Bearer", "tok")
        assert cred.header() == "Bearer tok"

    def test_most_specific_path_wins(self):
        config = NpmConfig(
            {
                "//corp.example.com/:_authToken": "outer",
                "//corp.example.com/npm/:_authToken": "inner",
            }
        )
        assert config.credential_for("https://corp.example.com/npm/").token == "inner"

    def test_basic_auth(self):
        config = NpmConfig({"//r.example.com/:_auth": "dXNlcjpwdw=="})
        assert config.credential_for("https://r.example.com/") == Credential("Basic", "dXNlcjpwdw==")

    def test_username_password(self):
        password = base64.b64encode(b"pw").decode()
        config = NpmConfig(
            {"//r.example.com/:username": "user", "//r.example.com/:_password": password}
        )
        cred = config.credential_for("https://r.example.com/")
        assert cred.type == "Basic"
        assert base64.b64decode(cred.token) == b"user:pw"

    def test_no_credentials(self):
        config = NpmConfig({"//other.example.com/:_authToken": "tok"})
        assert config.credential_for("https://registry.npmjs.org/") is None


# ── client ────────────────────────────────────────────────────────────────


class TestPackageUrl:
    def test_unscoped(self):
        assert package_url("https://registry.npmjs.org/", "left-pad") == (
            "https://registry.npmjs.org/left-pad"
        )

    def test_scoped(self):
        assert package_url("https://registry.npmjs.org/", "@types/node") == (
            "https://registry.npmjs.org/@types%2Fnode"
        )

    def test_registry_with_path(self):
        assert package_url("https://corp.example.com/npm/", "x") == "https://corp.example.com/npm/x"


class TestRegistryClient:
    @pytest.mark.anyio
    async def test_fetch_sends_headers(self, registry):
        registry.add("left-pad", "1.3.0")
        config = NpmConfig(
            {"registry": "https://registry.test/", "//registry.test/:_authToken": "tok"}
        )
        async with RegistryClient(config, transport=registry.transport) as client:
            data = await client.fetch_packument("Left-Pad")
        assert data["dist-tags"]["latest"] == "1.3.0"
        (request,) = registry.requests
        assert request.url.host == "registry.test"
        assert request.headers["accept"] == ACCEPT
        assert request.headers["authorization"] == "Bearer tok"

    @pytest.mark.anyio
    async def test_scoped_name_encoded(self, registry):
        registry.add("@scope/tool", "0.5.0")
        async with RegistryClient(NpmConfig(), transport=registry.transport) as client:
            await client.fetch_packument("@scope/tool")
        assert registry.requests[0].url.raw_path == b"/@scope%2Ftool"

    @pytest.mark.anyio
    async def test_not_found(self, registry):
        async with RegistryClient(NpmConfig(), transport=registry.transport) as client:
            with pytest.raises(PackageNotFound, match='package "nope" not found'):
                await client.fetch_packument("nope")

    @pytest.mark.anyio
    async def test_server_error(self, registry):
        registry.fail("flaky", 503)
        async with RegistryClient(NpmConfig(), transport=registry.transport) as client:
            with pytest.raises(NetworkFailure, match="503"):
                await client.fetch_packument("flaky")

    @pytest.mark.anyio
    async def test_transport_error(self):
        def _boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = httpx.MockTransport(_boom)
        async with RegistryClient(NpmConfig(), transport=transport) as client:
            with pytest.raises(NetworkFailure):
                await client.fetch_packument("x")

    @pytest.mark.anyio
    async def test_timeout(self):
        def _slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with RegistryClient(NpmConfig(), transport=httpx.MockTransport(_slow)) as client:
            with pytest.raises(NetworkFailure, match="timeout"):
                await client.fetch_packument("x")

    @pytest.mark.anyio
    async def test_invalid_json(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>"))
        async with RegistryClient(NpmConfig(), transport=transport) as client:
            with pytest.raises(NetworkFailure, match="invalid JSON"):
                await client.fetch_packument("x")


# ── resolver ──────────────────────────────────────────────────────────────


class TestVersionResolver:
    @pytest.mark.anyio
    async def test_resolves_each_unique_name_once(self, registry):
        registry.add("a", "1.0.0")
        registry.add("b", "2.0.0")
        async with RegistryClient(NpmConfig(), transport=registry.transport) as client:
            results = await VersionResolver(client).resolve(["a", "b", "a", "a"])
        assert sorted(registry.requested_names()) == ["a", "b"]
        assert results["a"].version == "1.0.0"
        assert results["b"].version == "2.0.0"

    @pytest.mark.anyio
    async def test_failure_does_not_abort_others(self, registry):
        registry.add("good", "1.0.0")
        registry.fail("bad", 500)
        registry.add("tagless", None, ["1.0.0"])
        async with RegistryClient(NpmConfig(), transport=registry.transport) as client:
            results = await VersionResolver(client).resolve(["bad", "good", "missing", "tagless"])
        assert set(results) == {"bad", "good", "missing", "tagless"}
        assert results["good"].ok
        assert isinstance(results["bad"].error, NetworkFailure)
        assert isinstance(results["missing"].error, PackageNotFound)
        assert isinstance(results["tagless"].error, MissingResolutionTarget)

    @pytest.mark.anyio
    async def test_greatest_mode(self, registry):
        registry.add("a", "1.0.0", ["1.0.0", "1.5.0", "2.0.0-beta.1"])
        async with RegistryClient(NpmConfig(), transport=registry.transport) as client:
            results = await VersionResolver(client, mode="greatest").resolve(["a"])
        assert results["a"].version == "2.0.0-beta.1"

    @pytest.mark.anyio
    async def test_concurrency_bound(self):
        in_flight = 0
        peak = 0

        class _Client:
            async def fetch_packument(self, name):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return {"dist-tags": {"latest": "1.0.0"}}

        names = [f"pkg-{i}" for i in range(12)]
        results = await VersionResolver(_Client(), concurrency=3).resolve(names)
        assert len(results) == 12
        assert peak == 3

    @pytest.mark.anyio
    async def test_empty(self):
        assert await VersionResolver(AsyncMock(spec=RegistryClient)).resolve([]) == {}

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            VersionResolver(AsyncMock(spec=RegistryClient), concurrency=0)
