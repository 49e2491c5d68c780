"""
Command resolution for installed servers.

Claude desktop launches servers without our process environment, so a
managed runtime is invisible to it by name. Servers launched through npx or
uvx are therefore wrapped in a shell that puts the managed runtime on PATH
first.
"""

import logging
import shlex
import subprocess
from typing import Optional

from ..catalog.base import ServerCatalogEntry
from ..client_config import ClientServerConfig
from ..platform_ops import PlatformOps
from .runtime import DESCRIPTORS, RuntimeKind, RuntimeRecordStore, RuntimeSource

logger = logging.getLogger(__name__)

# Launcher command -> runtime that provides it
RUNNER_KINDS: dict[str, RuntimeKind] = {
    descriptor.runner: kind for kind, descriptor in DESCRIPTORS.items()
}


class CommandResolver:
    """Turns a catalog command template into the command Claude should run."""

    def __init__(self, records: RuntimeRecordStore, ops: PlatformOps):
        self._records = records
        self._ops = ops

    def resolve(
        self,
        entry: ServerCatalogEntry,
        env: Optional[dict[str, str]] = None,
    ) -> ClientServerConfig:
        """
        Build the client config entry for a catalog server.

        Args:
            entry: Catalog entry to install
            env: Environment for the server; defaults to the catalog's
        """
        template = entry.command_template
        command, args = self.resolve_command(template.command, list(template.args))
        return ClientServerConfig(
            command=command,
            args=args,
            env=dict(env if env is not None else template.env),
        )

    def resolve_command(self, command: str, args: list[str]) -> tuple[str, list[str]]:
        kind = RUNNER_KINDS.get(command)
        if kind is None:
            return command, args

        record = self._records.get(kind)
        if record.source == RuntimeSource.SYSTEM:
            return command, args

        if record.is_stale:
            logger.warning(
                f"Writing {command} with missing {kind.value} at {record.resolved_path}; "
                f"check or install {kind.value} again"
            )
        logger.debug(f"Wrapping {command} with managed {kind.value} at {record.resolved_path!r}")
        if self._ops.is_windows:
            line = subprocess.list2cmdline([command, *args])
            return "cmd", ["/c", f"set PATH=%PATH%;{record.resolved_path} && {line}"]

        line = shlex.join([command, *args])
        return "sh", ["-c", f'PATH="{record.resolved_path}:$PATH" {line}']
