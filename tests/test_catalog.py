"""Tests for the server catalog."""

from __future__ import annotations

import json

import pytest
from aiohttp import test_utils, web

from mcphub_bridge.catalog import CatalogManager, ServerCatalogEntry, parse_catalog
from mcphub_bridge.errors import ConfigurationError, NetworkError, NotFoundError


def catalog_app(body: str, status: int = 200, hits: list | None = None) -> web.Application:
    hits = hits if hits is not None else []

    async def serve(request: web.Request) -> web.Response:
        hits.append(request.path)
        return web.Response(text=body, status=status, content_type="application/json")

    app = web.Application()
    app.router.add_get("/servers.json", serve)
    return app


class TestCatalogModel:
    """Tests for catalog parsing."""

    def test_parse_entry(self, sample_catalog):
        entry = ServerCatalogEntry.from_dict(sample_catalog[0])

        assert entry.id == "server-x"
        assert entry.logo_url == "https://example.com/x.png"
        assert entry.command_template.command == "npx"
        assert entry.command_template.args == ("server-x-package",)
        assert entry.to_dict()["commandInfo"]["env"] == {"API_KEY": ""}

    def test_missing_command_info(self):
        with pytest.raises(ConfigurationError):
            ServerCatalogEntry.from_dict({"id": "broken", "title": "Broken"})

    def test_catalog_must_be_list(self):
        with pytest.raises(ConfigurationError):
            parse_catalog({"servers": []})


class TestCatalogManager:
    """Tests for CatalogManager."""

    @pytest.mark.asyncio
    async def test_fetches_once_and_caches(self, state, sample_catalog):
        hits: list = []
        app = catalog_app(json.dumps(sample_catalog), hits=hits)
        async with test_utils.TestServer(app) as server:
            manager = CatalogManager(state, str(server.make_url("/servers.json")))
            entries = await manager.ensure_loaded()
            again = await CatalogManager(state, str(server.make_url("/servers.json"))).ensure_loaded()

        assert [e.id for e in entries] == ["server-x", "server-y", "server-z"]
        assert [e.id for e in again] == ["server-x", "server-y", "server-z"]
        assert hits == ["/servers.json"]
        assert isinstance(state.get("servers"), str)

    @pytest.mark.asyncio
    async def test_cached_catalog_needs_no_url(self, cached_state):
        manager = CatalogManager(cached_state, catalog_url=None)
        entry = await manager.get("server-y")
        assert entry.command_template.command == "uvx"

    @pytest.mark.asyncio
    async def test_cached_list_is_accepted(self, state, sample_catalog):
        state.set("servers", sample_catalog)
        entries = await CatalogManager(state).ensure_loaded()
        assert len(entries) == 3

    @pytest.mark.asyncio
    async def test_missing_url(self, state):
        with pytest.raises(ConfigurationError):
            await CatalogManager(state).ensure_loaded()

    @pytest.mark.asyncio
    async def test_http_error(self, state):
        async with test_utils.TestServer(catalog_app("oops", status=500)) as server:
            manager = CatalogManager(state, str(server.make_url("/servers.json")))
            with pytest.raises(NetworkError):
                await manager.ensure_loaded()
        assert "servers" not in state

    @pytest.mark.asyncio
    async def test_unknown_id(self, cached_state):
        with pytest.raises(NotFoundError):
            await CatalogManager(cached_state).get("nope")
