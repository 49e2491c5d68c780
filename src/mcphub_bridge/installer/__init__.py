"""
MCP Server Installer

This module provides:
- Runtime detection and provisioning (Node.js, uv)
- Archive download and extraction
- Launch command resolution for managed runtimes
- Install/update/uninstall of servers in the Claude desktop config
"""

from .archive import fetch_and_extract
from .command import CommandResolver
from .manager import ServerReconciler
from .runtime import (
    DESCRIPTORS,
    RuntimeDescriptor,
    RuntimeKind,
    RuntimeProvisioner,
    RuntimeRecord,
    RuntimeRecordStore,
    RuntimeSource,
    build_provisioners,
)

__all__ = [
    # Runtime
    "DESCRIPTORS",
    "RuntimeDescriptor",
    "RuntimeKind",
    "RuntimeProvisioner",
    "RuntimeRecord",
    "RuntimeRecordStore",
    "RuntimeSource",
    "build_provisioners",
    "fetch_and_extract",
    # Servers
    "CommandResolver",
    "ServerReconciler",
]
