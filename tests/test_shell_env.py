"""Tests for shell startup file patching."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from mcphub_bridge.errors import ConfigurationError, FilesystemError
from mcphub_bridge.platform_ops import WindowsPlatformOps
from mcphub_bridge.shell_env import (
    MARKER_COMMENT,
    ensure_path_entry,
    path_export_line,
    shell_config_file,
)


class TestShellConfigFile:
    """Tests for shell_config_file."""

    @pytest.mark.parametrize(
        "shell,relative",
        [
            ("bash", ".bash_profile"),
            ("zsh", ".zshrc"),
            ("fish", ".config/fish/config.fish"),
        ],
    )
    def test_known_shells(self, shell, relative):
        home = Path("/home/u")
        assert shell_config_file(shell, home) == home / relative

    def test_unsupported_shell(self):
        """Shells without a known startup file are rejected."""
        with pytest.raises(ConfigurationError):
            shell_config_file("tcsh", Path("/home/u"))


class TestPathExportLine:
    """Tests for path_export_line."""

    def test_posix_shell_under_home(self):
        line = path_export_line("zsh", Path("/home/u/.node/node-v22.11.0-darwin-arm64/bin"), Path("/home/u"))
        assert line == 'export PATH="$HOME/.node/node-v22.11.0-darwin-arm64/bin:$PATH"'

    def test_fish(self):
        line = path_export_line("fish", Path("/home/u/.uv/uv-bin"), Path("/home/u"))
        assert line == "set -gx PATH $HOME/.uv/uv-bin $PATH"

    def test_outside_home_is_absolute(self):
        line = path_export_line("bash", Path("/opt/node/bin"), Path("/home/u"))
        assert line == 'export PATH="/opt/node/bin:$PATH"'


class TestEnsurePathEntry:
    """Tests for ensure_path_entry."""

    def test_creates_missing_file(self, tmp_path):
        """A missing startup file (and its directory) is created."""
        config_file = tmp_path / ".config" / "fish" / "config.fish"
        changed = ensure_path_entry(config_file, "set -gx PATH $HOME/.node/bin $PATH")

        assert changed is True
        content = config_file.read_text()
        assert MARKER_COMMENT in content
        assert "set -gx PATH $HOME/.node/bin $PATH" in content

    def test_idempotent(self, tmp_path):
        """Calling twice leaves exactly one export line."""
        config_file = tmp_path / ".zshrc"
        config_file.write_text("alias ll='ls -l'\n")
        line = 'export PATH="$HOME/.node/bin:$PATH"'

        assert ensure_path_entry(config_file, line) is True
        assert ensure_path_entry(config_file, line) is False

        content = config_file.read_text()
        assert content.count(line) == 1
        assert content.startswith("alias ll='ls -l'\n")


class FakeProcess:
    def __init__(self, returncode: int = 0, stderr: bytes = b""):
        self.returncode = returncode
        self._stderr = stderr

    async def communicate(self):
        return b"", self._stderr


class TestWindowsAddToPath:
    """Tests for WindowsPlatformOps.add_to_path."""

    @pytest.mark.asyncio
    async def test_appends_to_user_path(self, monkeypatch):
        calls = []

        async def fake_exec(*args, **kwargs):
            calls.append(args)
            return FakeProcess()

        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
        ops = WindowsPlatformOps(home=Path("C:/Users/o'neil"), environ={})

        await ops.add_to_path(Path("C:/Users/o'neil/AppData/Local/node/node-v22.11.0-win-x64"))

        program, flag, script = calls[0]
        assert (program, flag) == ("powershell", "-Command")
        assert script == (
            "[Environment]::SetEnvironmentVariable('Path', "
            "[Environment]::GetEnvironmentVariable('Path', 'User') + "
            "';C:/Users/o''neil/AppData/Local/node/node-v22.11.0-win-x64', 'User')"
        )

    @pytest.mark.asyncio
    async def test_powershell_failure(self, monkeypatch):
        async def fake_exec(*args, **kwargs):
            return FakeProcess(returncode=1, stderr=b"Access denied")

        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
        ops = WindowsPlatformOps(home=Path("C:/Users/u"), environ={})

        with pytest.raises(FilesystemError, match="Access denied"):
            await ops.add_to_path(Path("C:/Users/u/AppData/Local/uv"))
