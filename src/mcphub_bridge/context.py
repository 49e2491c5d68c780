"""Wiring of the bridge's components."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .catalog.manager import CatalogManager
from .client_config import ExternalConfigStore
from .config import Settings
from .installer.command import CommandResolver
from .installer.manager import ServerReconciler
from .installer.runtime import (
    Fetcher,
    RuntimeKind,
    RuntimeProvisioner,
    RuntimeRecordStore,
    build_provisioners,
)
from .platform_ops import PlatformOps, get_platform_ops
from .state_store import StateStore

logger = logging.getLogger(__name__)


@dataclass
class BridgeContext:
    """Everything a handler needs, built once per process."""

    settings: Settings
    ops: PlatformOps
    state: StateStore
    records: RuntimeRecordStore
    provisioners: Dict[RuntimeKind, RuntimeProvisioner]
    catalog: CatalogManager
    config_store: ExternalConfigStore
    reconciler: ServerReconciler

    def provisioner(self, kind: RuntimeKind) -> RuntimeProvisioner:
        return self.provisioners[kind]


def build_context(
    settings: Settings,
    ops: Optional[PlatformOps] = None,
    fetcher: Optional[Fetcher] = None,
) -> BridgeContext:
    """Create the state store and every component that shares it."""
    ops = ops or get_platform_ops()
    state = StateStore(path=settings.state_file)
    records = RuntimeRecordStore(state)
    catalog = CatalogManager(state, settings.catalog_url)
    config_store = ExternalConfigStore(
        path=settings.client_config_path or ops.client_config_path()
    )
    reconciler = ServerReconciler(catalog, config_store, CommandResolver(records, ops))
    logger.debug(f"State file: {settings.state_file}, client config: {config_store.path}")

    return BridgeContext(
        settings=settings,
        ops=ops,
        state=state,
        records=records,
        provisioners=build_provisioners(ops, records, fetcher),
        catalog=catalog,
        config_store=config_store,
        reconciler=reconciler,
    )
