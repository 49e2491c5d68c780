"""Pytest configuration for mcphub_bridge tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from mcphub_bridge.config import Settings
from mcphub_bridge.context import BridgeContext, build_context
from mcphub_bridge.platform_ops import PosixPlatformOps
from mcphub_bridge.state_store import StateStore


class FakeFetcher:
    """Stands in for the archive download: lays out an unpacked runtime."""

    def __init__(self, layout: List[str] | None = None):
        self.layout = layout or []
        self.calls: List[tuple] = []

    async def __call__(self, url: str, dest_dir: Path, archive_format: str) -> None:
        self.calls.append((url, dest_dir, archive_format))
        for relative in self.layout:
            (dest_dir / relative).mkdir(parents=True, exist_ok=True)


class CountingPosixOps(PosixPlatformOps):
    """PosixPlatformOps with a scripted probe."""

    def __init__(self, probe_output: str = "", **kwargs):
        super().__init__(**kwargs)
        self.probe_output = probe_output
        self.probe_calls: List[str] = []

    async def probe(self, binary: str) -> str:
        self.probe_calls.append(binary)
        return self.probe_output


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """A throwaway home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def posix_ops(home: Path) -> CountingPosixOps:
    """macOS on Apple silicon with zsh."""
    return CountingPosixOps(
        name="darwin",
        home=home,
        machine="arm64",
        environ={"SHELL": "/bin/zsh"},
    )


@pytest.fixture
def fetcher() -> FakeFetcher:
    """Fetcher that unpacks a Node.js darwin-arm64 layout."""
    return FakeFetcher(layout=[
        "node-v22.11.0-darwin-arm64/bin",
        "node-v22.11.0-darwin-arm64/lib/node_modules/npm/bin",
    ])


@pytest.fixture
def windows_fetcher() -> FakeFetcher:
    """Fetcher that unpacks a Node.js win-x64 zip layout."""
    return FakeFetcher(layout=["node-v22.11.0-win-x64/node_modules/npm/bin"])


@pytest.fixture
def state(tmp_path: Path) -> StateStore:
    return StateStore(path=tmp_path / "data" / "app_state.json")


@pytest.fixture
def sample_catalog() -> List[Dict[str, Any]]:
    """Return a small catalog in the published format."""
    return [
        {
            "id": "server-x",
            "title": "Server X",
            "description": "Runs through npx",
            "creator": "someone",
            "tags": ["files"],
            "logoUrl": "https://example.com/x.png",
            "rating": 5,
            "publishDate": "2024-11-30",
            "guide": "Set API_KEY first",
            "commandInfo": {
                "command": "npx",
                "args": ["server-x-package"],
                "env": {"API_KEY": ""},
            },
        },
        {
            "id": "server-y",
            "title": "Server Y",
            "commandInfo": {"command": "uvx", "args": ["server-y"], "env": {}},
        },
        {
            "id": "server-z",
            "title": "Server Z",
            "commandInfo": {"command": "docker", "args": ["run", "z"]},
        },
    ]


@pytest.fixture
def cached_state(state: StateStore, sample_catalog) -> StateStore:
    """State store with the catalog already cached, as the desktop app leaves it."""
    state.set("servers", json.dumps(sample_catalog))
    return state


@pytest.fixture
def ctx(
    tmp_path: Path,
    posix_ops: CountingPosixOps,
    cached_state: StateStore,
    fetcher: FakeFetcher,
) -> BridgeContext:
    """A fully wired context pointing at temporary files."""
    settings = Settings(
        data_dir=cached_state.path.parent,
        client_config_path=tmp_path / "claude" / "claude_desktop_config.json",
    )
    return build_context(settings, ops=posix_ops, fetcher=fetcher)
