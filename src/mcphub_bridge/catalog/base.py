"""
Catalog data model.

The catalog is a JSON array of server definitions published by MCPHub.
Entries are read-only here; FrontendServer adds the per-machine install
state the UI shows next to each card.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import ConfigurationError


@dataclass(frozen=True)
class CommandTemplate:
    """How a server is launched, as declared by the catalog."""
    command: str
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "args": list(self.args),
            "env": dict(self.env),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CommandTemplate":
        return cls(
            command=data.get("command", ""),
            args=tuple(str(a) for a in data.get("args", [])),
            env={str(k): str(v) for k, v in data.get("env", {}).items()},
        )


@dataclass(frozen=True)
class ServerCatalogEntry:
    """A server definition from the catalog."""
    id: str
    title: str
    command_template: CommandTemplate
    description: str = ""
    creator: str = ""
    tags: tuple[str, ...] = ()
    logo_url: str = ""
    rating: int = 0
    publish_date: str = ""
    guide: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "creator": self.creator,
            "tags": list(self.tags),
            "logoUrl": self.logo_url,
            "rating": self.rating,
            "publishDate": self.publish_date,
            "guide": self.guide,
            "commandInfo": self.command_template.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ServerCatalogEntry":
        if not isinstance(data, dict):
            raise ConfigurationError(f"Catalog entry must be an object, got {type(data).__name__}")
        if not data.get("id"):
            raise ConfigurationError("Catalog entry is missing 'id'")

        command_info = data.get("commandInfo", data.get("commandTemplate"))
        if not isinstance(command_info, dict):
            raise ConfigurationError(f"Catalog entry '{data['id']}' has no command info")

        return cls(
            id=data["id"],
            title=data.get("title", data["id"]),
            command_template=CommandTemplate.from_dict(command_info),
            description=data.get("description", ""),
            creator=data.get("creator", ""),
            tags=tuple(data.get("tags", [])),
            logo_url=data.get("logoUrl", ""),
            rating=data.get("rating", 0),
            publish_date=data.get("publishDate", ""),
            guide=data.get("guide", ""),
        )


@dataclass
class FrontendServer:
    """A catalog entry as the UI sees it."""
    entry: ServerCatalogEntry
    is_installed: bool = False
    env: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = self.entry.to_dict()
        # The UI never needs the launch command
        data.pop("commandInfo")
        data["isInstalled"] = self.is_installed
        data["env"] = dict(self.env)
        return data

    @classmethod
    def project(
        cls,
        entry: ServerCatalogEntry,
        installed_env: Optional[dict[str, str]] = None,
    ) -> "FrontendServer":
        """Build the view of entry given its env in the client config (None if not installed)."""
        if installed_env is None:
            return cls(entry=entry)
        return cls(entry=entry, is_installed=True, env=dict(installed_env))


def parse_catalog(data: Any) -> list[ServerCatalogEntry]:
    """Parse the catalog's JSON array."""
    if not isinstance(data, list):
        raise ConfigurationError(f"Catalog must be a JSON array, got {type(data).__name__}")
    return [ServerCatalogEntry.from_dict(item) for item in data]
