"""Tests for launch command resolution."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mcphub_bridge.catalog.base import CommandTemplate, ServerCatalogEntry
from mcphub_bridge.installer.command import CommandResolver
from mcphub_bridge.installer.runtime import RuntimeRecordStore
from mcphub_bridge.platform_ops import PosixPlatformOps, WindowsPlatformOps


def entry(command: str, *args: str, env=None) -> ServerCatalogEntry:
    return ServerCatalogEntry(
        id="server-x",
        title="Server X",
        command_template=CommandTemplate(command=command, args=tuple(args), env=env or {}),
    )


@pytest.fixture
def records(state) -> RuntimeRecordStore:
    return RuntimeRecordStore(state)


@pytest.fixture
def posix_resolver(records) -> CommandResolver:
    return CommandResolver(records, PosixPlatformOps(name="darwin", home=Path("/home/u"), environ={}))


@pytest.fixture
def windows_resolver(records) -> CommandResolver:
    return CommandResolver(records, WindowsPlatformOps(home=Path("/home/u"), environ={}))


class TestPosixResolution:
    """Wrapping npx/uvx with a managed runtime on macOS and Linux."""

    def test_managed_node_wraps_npx(self, posix_resolver, state):
        state.set_many({
            "node_path": "/home/u/.node/node-v22.11.0-darwin-arm64",
            "use_system_node": False,
        })

        config = posix_resolver.resolve(entry("npx", "server-x-package"))

        assert config.command == "sh"
        assert config.args == [
            "-c",
            'PATH="/home/u/.node/node-v22.11.0-darwin-arm64:$PATH" npx server-x-package',
        ]

    def test_managed_uv_wraps_uvx(self, posix_resolver, state):
        state.set_many({"uv_path": "/home/u/.uv/bin", "use_system_uv": False})

        config = posix_resolver.resolve(entry("uvx", "mcp-server-time", "--local-timezone", "Europe/Paris"))

        assert config.command == "sh"
        assert config.args[1] == 'PATH="/home/u/.uv/bin:$PATH" uvx mcp-server-time --local-timezone Europe/Paris'

    def test_arguments_are_quoted(self, posix_resolver, state):
        state.set_many({"node_path": "/n", "use_system_node": False})

        config = posix_resolver.resolve(entry("npx", "pkg", "/Users/me/My Documents"))

        assert config.args[1] == "PATH=\"/n:$PATH\" npx pkg '/Users/me/My Documents'"

    def test_missing_managed_runtime_warns(self, posix_resolver, state, tmp_path, caplog):
        """A managed runtime whose directory is gone is still written, with a warning."""
        missing = str(tmp_path / "removed-node")
        state.set_many({"node_path": missing, "use_system_node": False})

        with caplog.at_level(logging.WARNING, logger="mcphub_bridge.installer.command"):
            config = posix_resolver.resolve(entry("npx", "server-x-package"))

        assert config.args[1] == f'PATH="{missing}:$PATH" npx server-x-package'
        assert any(
            r.name == "mcphub_bridge.installer.command" and missing in r.getMessage()
            for r in caplog.records
        )

    def test_system_runtime_passthrough(self, posix_resolver, state):
        """A system runtime is launched by name."""
        state.set_many({"node_path": "/usr/local/bin/node", "use_system_node": True})

        config = posix_resolver.resolve(entry("npx", "-y", "server-x-package"))

        assert config.command == "npx"
        assert config.args == ["-y", "server-x-package"]

    def test_other_commands_untouched(self, posix_resolver, state):
        state.set_many({"node_path": "/n", "use_system_node": False})

        config = posix_resolver.resolve(entry("docker", "run", "-i", "image"))

        assert config.command == "docker"
        assert config.args == ["run", "-i", "image"]


class TestWindowsResolution:
    """Wrapping with cmd.exe on Windows."""

    def test_managed_node_wraps_npx(self, windows_resolver, state):
        state.set_many({
            "node_path": "C:\\Users\\u\\AppData\\Local\\node\\node-v22.11.0-win-x64",
            "use_system_node": False,
        })

        config = windows_resolver.resolve(entry("npx", "server-x-package"))

        assert config.command == "cmd"
        assert config.args == [
            "/c",
            "set PATH=%PATH%;C:\\Users\\u\\AppData\\Local\\node\\node-v22.11.0-win-x64 && npx server-x-package",
        ]


class TestEnv:
    """Which env ends up in the client config."""

    def test_defaults_to_catalog_env(self, posix_resolver):
        config = posix_resolver.resolve(entry("docker", env={"API_KEY": ""}))
        assert config.env == {"API_KEY": ""}

    def test_explicit_env_replaces_catalog_env(self, posix_resolver):
        config = posix_resolver.resolve(entry("docker", env={"API_KEY": ""}), {"TOKEN": "t"})
        assert config.env == {"TOKEN": "t"}
