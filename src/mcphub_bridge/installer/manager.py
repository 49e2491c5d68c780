"""
Server Reconciler - keeps the Claude desktop config in step with the catalog.

This is the main orchestrator that:
- Lists catalog servers with their install state
- Installs servers by writing resolved launch commands into the client config
- Updates a server's environment
- Uninstalls servers

A server is installed exactly when its id is a key of "mcpServers".
"""

import asyncio
import logging
from typing import Optional

from ..catalog.base import FrontendServer
from ..catalog.manager import CatalogManager
from ..client_config import ExternalConfigStore
from .command import CommandResolver

logger = logging.getLogger(__name__)


class ServerReconciler:
    """
    Install, update, uninstall and list catalog servers.

    Every operation loads the config file, modifies it and saves it again
    under one lock, so operations through the same reconciler never
    interleave. Writes made by Claude desktop itself are still
    last-writer-wins.
    """

    def __init__(
        self,
        catalog: CatalogManager,
        config_store: ExternalConfigStore,
        resolver: CommandResolver,
    ):
        self._catalog = catalog
        self._config_store = config_store
        self._resolver = resolver
        self._lock = asyncio.Lock()

    async def list_servers(self) -> list[FrontendServer]:
        """All catalog servers, marked installed if present in the client config."""
        entries = await self._catalog.ensure_loaded()
        async with self._lock:
            installed = self._config_store.load().env_by_server()
        return [FrontendServer.project(entry, installed.get(entry.id)) for entry in entries]

    async def list_installed_servers(self) -> list[FrontendServer]:
        return [s for s in await self.list_servers() if s.is_installed]

    async def install(self, server_id: str, env: Optional[dict[str, str]] = None) -> bool:
        """
        Install (or reinstall) a server.

        The launch command is resolved again on every call, so reinstalling
        picks up a runtime that has been installed or moved since.
        """
        entry = await self._catalog.get(server_id)
        async with self._lock:
            server_config = self._resolver.resolve(entry, env)
            doc = self._config_store.load()
            doc.servers[server_id] = server_config
            self._config_store.save(doc)
        logger.info(f"Installed server: {server_id} ({server_config.command})")
        return True

    async def update(self, server_id: str, env: dict[str, str]) -> bool:
        """
        Replace an installed server's env, installing it first if needed.

        Only env changes; command and args keep whatever was resolved at
        install time even if the runtime has changed since.
        """
        async with self._lock:
            doc = self._config_store.load()
            server_config = doc.servers.get(server_id)
            if server_config is not None:
                server_config.env = dict(env)
                self._config_store.save(doc)
                logger.info(f"Updated env for server: {server_id}")
                return True

        logger.debug(f"Server {server_id} not installed, installing")
        return await self.install(server_id, env)

    async def uninstall(self, server_id: str) -> bool:
        """Remove a server from the client config. Unknown ids are a no-op."""
        async with self._lock:
            doc = self._config_store.load()
            if doc.servers.pop(server_id, None) is not None:
                logger.info(f"Uninstalled server: {server_id}")
            else:
                logger.debug(f"Server {server_id} not installed, nothing to remove")
            self._config_store.save(doc)
        return True
