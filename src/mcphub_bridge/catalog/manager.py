"""
Catalog Manager - fetches the MCPHub server catalog once and reuses it.

The raw catalog JSON is cached in the state store under "servers"; it is
only downloaded again when that key is missing or on an explicit refresh().
"""

import asyncio
import json
import logging
from typing import Optional

import aiohttp

from ..errors import ConfigurationError, NetworkError, NotFoundError
from ..state_store import StateStore
from .base import ServerCatalogEntry, parse_catalog

logger = logging.getLogger(__name__)

SERVERS_KEY = "servers"


class CatalogManager:
    """Fetch-or-reuse access to the server catalog."""

    def __init__(self, state: StateStore, catalog_url: Optional[str] = None):
        self._state = state
        self._catalog_url = catalog_url
        self._entries: Optional[list[ServerCatalogEntry]] = None

    @property
    def is_cached(self) -> bool:
        return SERVERS_KEY in self._state

    async def ensure_loaded(self) -> list[ServerCatalogEntry]:
        """Return the catalog, downloading it only if nothing is cached."""
        if self._entries is not None:
            return self._entries

        if not self.is_cached:
            logger.info("[CatalogManager] No cached catalog, fetching")
            await self.refresh()
            return self._entries

        raw = self._state.get(SERVERS_KEY)
        self._entries = self._parse_cached(raw)
        logger.debug(f"[CatalogManager] Loaded {len(self._entries)} servers from cache")
        return self._entries

    async def refresh(self) -> list[ServerCatalogEntry]:
        """Download the catalog and replace the cached copy."""
        text = await self._fetch()
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Catalog is not valid JSON: {e}") from e

        entries = parse_catalog(data)
        self._state.set(SERVERS_KEY, text)
        self._entries = entries
        logger.info(f"[CatalogManager] Cached {len(entries)} servers")
        return entries

    async def get(self, server_id: str) -> ServerCatalogEntry:
        """Look up one entry by id."""
        for entry in await self.ensure_loaded():
            if entry.id == server_id:
                return entry
        raise NotFoundError(f"Server not found in catalog: {server_id}")

    async def _fetch(self) -> str:
        if not self._catalog_url:
            raise ConfigurationError("No catalog URL configured (set MCPHUB_CATALOG_URL)")

        logger.info(f"[CatalogManager] Fetching: {self._catalog_url}")
        try:
            async with aiohttp.ClientSession(trust_env=True) as session:
                async with session.get(self._catalog_url) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise NetworkError(f"HTTP {response.status}: {error_text[:200]}")
                    return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Failed to fetch catalog: {e}") from e

    @staticmethod
    def _parse_cached(raw) -> list[ServerCatalogEntry]:
        # The desktop app stores the catalog as a JSON string
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Cached catalog is not valid JSON: {e}") from e
        return parse_catalog(raw)
