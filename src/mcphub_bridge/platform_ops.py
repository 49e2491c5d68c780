"""
Platform-specific operations.

Everything that differs between the POSIX hosts (macOS, Linux) and Windows
lives behind PlatformOps, so the provisioner, resolver and config store never
branch on sys.platform themselves. get_platform_ops() picks the variant once.
"""

import asyncio
import logging
import os
import platform
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigurationError, FilesystemError
from .shell_env import ensure_path_entry, path_export_line, shell_config_file

logger = logging.getLogger(__name__)

CLIENT_CONFIG_FILENAME = "claude_desktop_config.json"

# platform.machine() values -> architecture names used in download targets
_ARCH_ALIASES = {
    "arm64": "arm64",
    "aarch64": "arm64",
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
}


class PlatformOps(ABC):
    """Capabilities the core needs from the host operating system."""

    # "darwin", "linux" or "windows"
    name: str = ""
    # "tar.gz" or "zip"
    archive_format: str = ""

    def __init__(
        self,
        home: Optional[Path] = None,
        machine: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._home = home
        self._machine = machine
        self._environ = environ if environ is not None else os.environ

    @property
    def is_windows(self) -> bool:
        return self.name == "windows"

    @property
    def arch(self) -> str:
        """Normalized CPU architecture: arm64, x64 or x86."""
        machine = (self._machine or platform.machine()).lower()
        arch = _ARCH_ALIASES.get(machine)
        if arch is None:
            raise ConfigurationError(f"Unsupported CPU architecture: {machine}")
        return arch

    def resolve_home(self) -> Path:
        """Get the user's home directory."""
        if self._home is not None:
            return self._home
        try:
            home = Path.home()
        except (RuntimeError, KeyError) as e:
            raise ConfigurationError(f"Failed to get home directory: {e}") from e
        logger.debug(f"Home directory: {home}")
        return home

    @abstractmethod
    def detect_shell(self) -> str:
        """Name of the user's shell (e.g. "zsh")."""

    @abstractmethod
    def runtime_root(self, name: str) -> Path:
        """Directory under which a managed runtime called name is installed."""

    @abstractmethod
    def client_config_path(self) -> Path:
        """Well-known location of the Claude desktop config file."""

    @abstractmethod
    def probe_command(self, binary: str) -> list[str]:
        """Command that prints the location of binary if it is on PATH."""

    @abstractmethod
    async def add_to_path(self, bin_dir: Path) -> None:
        """Persistently add bin_dir to the user's PATH."""

    async def probe(self, binary: str) -> str:
        """
        Run the discovery probe for binary.

        Returns:
            The probe's stdout, or "" if the probe could not be run
        """
        command = self.probe_command(binary)
        logger.debug(f"Running probe: {command}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
        except OSError as e:
            logger.error(f"Failed to execute probe for {binary}: {e}")
            return ""

        if stderr:
            logger.debug(f"Probe stderr: {stderr.decode(errors='replace').strip()}")
        output = stdout.decode(errors="replace")
        logger.debug(f"{binary} probe output: {output.strip()}")
        return output


class PosixPlatformOps(PlatformOps):
    """macOS and Linux: tarballs, login shells and shell startup files."""

    archive_format = "tar.gz"

    def __init__(self, name: str = "darwin", **kwargs):
        super().__init__(**kwargs)
        self.name = name

    def _shell_path(self) -> str:
        shell = self._environ.get("SHELL")
        if not shell:
            raise ConfigurationError("Failed to get SHELL environment variable")
        return shell

    def detect_shell(self) -> str:
        shell_name = Path(self._shell_path()).name
        if not shell_name:
            raise ConfigurationError("Invalid shell path")
        logger.debug(f"Detected shell: {shell_name}")
        return shell_name

    def runtime_root(self, name: str) -> Path:
        return self.resolve_home() / f".{name}"

    def client_config_path(self) -> Path:
        home = self.resolve_home()
        if self.name == "darwin":
            return home / "Library" / "Application Support" / "Claude" / CLIENT_CONFIG_FILENAME
        return home / ".config" / "Claude" / CLIENT_CONFIG_FILENAME

    def probe_command(self, binary: str) -> list[str]:
        # Interactive so that PATH edits made in the user's rc files count
        return [self._shell_path(), "-ic", f"which {binary}"]

    async def add_to_path(self, bin_dir: Path) -> None:
        shell = self.detect_shell()
        home = self.resolve_home()
        config_file = shell_config_file(shell, home)
        logger.debug(f"Config file path: {config_file}")
        ensure_path_entry(config_file, path_export_line(shell, bin_dir, home))


class WindowsPlatformOps(PlatformOps):
    """Windows: zip archives, where.exe and the user-scope Path variable."""

    name = "windows"
    archive_format = "zip"

    def detect_shell(self) -> str:
        return "powershell"

    def _local_app_data(self) -> Path:
        local = self._environ.get("LOCALAPPDATA")
        if local:
            return Path(local)
        return self.resolve_home() / "AppData" / "Local"

    def runtime_root(self, name: str) -> Path:
        return self._local_app_data() / name

    def client_config_path(self) -> Path:
        appdata = self._environ.get("APPDATA")
        if not appdata:
            raise ConfigurationError("Failed to get APPDATA environment variable")
        return Path(appdata) / "Claude" / CLIENT_CONFIG_FILENAME

    def probe_command(self, binary: str) -> list[str]:
        return ["where.exe", binary]

    async def add_to_path(self, bin_dir: Path) -> None:
        # Appends unconditionally: repeated installs add duplicate entries
        entry = str(bin_dir).replace("'", "''")
        script = (
            "[Environment]::SetEnvironmentVariable('Path', "
            f"[Environment]::GetEnvironmentVariable('Path', 'User') + ';{entry}', 'User')"
        )
        logger.info(f"Adding {bin_dir} to user Path")
        try:
            proc = await asyncio.create_subprocess_exec(
                "powershell",
                "-Command",
                script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await proc.communicate()
        except OSError as e:
            raise FilesystemError(f"Failed to run powershell: {e}") from e
        if proc.returncode != 0:
            raise FilesystemError(
                f"Failed to update user Path: {stderr.decode(errors='replace').strip()}"
            )


def get_platform_ops() -> PlatformOps:
    """Select the PlatformOps variant for the running host."""
    if sys.platform.startswith("win"):
        return WindowsPlatformOps()
    if sys.platform == "darwin":
        return PosixPlatformOps(name="darwin")
    return PosixPlatformOps(name="linux")
