"""
Shell startup file patching.

Makes a managed runtime visible to new terminal sessions by appending a
PATH line to the user's shell config, once.
"""

import logging
from pathlib import Path

from .errors import ConfigurationError, FilesystemError

logger = logging.getLogger(__name__)

MARKER_COMMENT = "# Added by MCPHub-Desktop"

# Startup file per shell, relative to the home directory
SHELL_CONFIG_FILES = {
    "bash": ".bash_profile",
    "zsh": ".zshrc",
    "fish": ".config/fish/config.fish",
}


def shell_config_file(shell: str, home: Path) -> Path:
    """Get the startup file for a shell name (e.g. "zsh")."""
    relative = SHELL_CONFIG_FILES.get(shell)
    if relative is None:
        raise ConfigurationError(f"Unsupported shell type: {shell}")
    return home / relative


def path_export_line(shell: str, bin_dir: Path, home: Path) -> str:
    """
    Build the line that prepends bin_dir to PATH.

    Directories under the home directory are written relative to $HOME so the
    line stays valid if the home is mounted elsewhere.
    """
    try:
        entry = "$HOME/" + bin_dir.relative_to(home).as_posix()
    except ValueError:
        entry = bin_dir.as_posix()

    if shell == "fish":
        return f"set -gx PATH {entry} $PATH"
    return f'export PATH="{entry}:$PATH"'


def ensure_path_entry(config_file: Path, export_line: str) -> bool:
    """
    Append export_line to config_file unless it is already there.

    Creates the file (and parent directories) if missing.

    Returns:
        True if the file was changed, False if the line was already present
    """
    try:
        if not config_file.exists():
            config_file.parent.mkdir(parents=True, exist_ok=True)
            config_file.touch()

        with open(config_file, "r", encoding="utf-8") as f:
            already_configured = any(export_line in line for line in f)

        if already_configured:
            logger.debug(f"PATH already configured in {config_file}, skipping")
            return False

        logger.info(f"Adding PATH entry to {config_file}")
        with open(config_file, "a", encoding="utf-8") as f:
            f.write(f"\n{MARKER_COMMENT}\n{export_line}\n")
        return True
    except OSError as e:
        raise FilesystemError(f"Failed to update {config_file}: {e}") from e
