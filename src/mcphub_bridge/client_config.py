"""Claude desktop config file access.

The file belongs to the Claude desktop app. We only own the entries we put
under "mcpServers"; every other field, top-level or inside an entry, is
carried through load and save untouched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .errors import ConfigurationError, FilesystemError

logger = logging.getLogger(__name__)

SERVERS_KEY = "mcpServers"
_SERVER_FIELDS = ("command", "args", "env")


@dataclass
class ClientServerConfig:
    """One entry under mcpServers."""

    command: str = ""
    args: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)
    # Known fields missing from the file, left out again on save while empty
    absent: frozenset = field(default=frozenset(), repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "command": self.command,
            "args": list(self.args),
            "env": dict(self.env),
        }
        for name in self.absent:
            if not data[name]:
                del data[name]
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, server_id: str, data: Dict[str, Any]) -> "ClientServerConfig":
        """Create from dictionary."""
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Server '{server_id}' in client config must be an object, got {type(data).__name__}"
            )

        command = data.get("command", "")
        args = data.get("args", [])
        env = data.get("env", {})
        if not isinstance(command, str):
            raise ConfigurationError(
                f"Server '{server_id}' has a non-string 'command': {type(command).__name__}"
            )
        if not isinstance(args, list):
            raise ConfigurationError(
                f"Server '{server_id}' 'args' must be a list, got {type(args).__name__}"
            )
        if not isinstance(env, dict):
            raise ConfigurationError(
                f"Server '{server_id}' 'env' must be an object, got {type(env).__name__}"
            )

        return cls(
            command=command,
            args=list(args),
            env=dict(env),
            extra={k: v for k, v in data.items() if k not in _SERVER_FIELDS},
            absent=frozenset(name for name in _SERVER_FIELDS if name not in data),
        )


@dataclass
class ExternalConfigDocument:
    """The whole config file: our servers plus everything we don't understand."""

    servers: Dict[str, ClientServerConfig] = field(default_factory=dict)
    other_fields: Dict[str, Any] = field(default_factory=dict)
    servers_key_absent: bool = field(default=False, repr=False, compare=False)

    def is_installed(self, server_id: str) -> bool:
        return server_id in self.servers

    def env_by_server(self) -> Dict[str, Dict[str, str]]:
        """Installed server id -> its env."""
        return {sid: dict(s.env) for sid, s in self.servers.items()}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.servers or not self.servers_key_absent:
            data[SERVERS_KEY] = {sid: s.to_dict() for sid, s in self.servers.items()}
        data.update(self.other_fields)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExternalConfigDocument":
        servers_data = data.get(SERVERS_KEY, {})
        if not isinstance(servers_data, dict):
            raise ConfigurationError(
                f"'{SERVERS_KEY}' must be an object, got {type(servers_data).__name__}"
            )
        return cls(
            servers={
                sid: ClientServerConfig.from_dict(sid, server)
                for sid, server in servers_data.items()
            },
            other_fields={k: v for k, v in data.items() if k != SERVERS_KEY},
            servers_key_absent=SERVERS_KEY not in data,
        )


@dataclass
class ExternalConfigStore:
    """Reads and writes the Claude desktop config file."""

    path: Path

    def load(self) -> ExternalConfigDocument:
        """Load the config; a missing file is an empty document."""
        if not self.path.exists():
            logger.debug(f"Config file {self.path} not found, returning empty document")
            return ExternalConfigDocument()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {self.path}: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Failed to read {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"{self.path} must contain a JSON object, got {type(data).__name__}"
            )

        doc = ExternalConfigDocument.from_dict(data)
        logger.debug(f"Loaded {len(doc.servers)} servers from {self.path}")
        return doc

    def save(self, doc: ExternalConfigDocument) -> None:
        """Overwrite the config file with doc."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(doc.to_dict(), f, indent=2, ensure_ascii=False)
                f.write("\n")
        except OSError as e:
            raise FilesystemError(f"Failed to write {self.path}: {e}") from e
        logger.debug(f"Saved {len(doc.servers)} servers to {self.path}")
