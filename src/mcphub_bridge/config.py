"""Bridge settings, read from the environment (and an optional .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_DATA_DIR = Path.home() / ".mcphub"
STATE_FILENAME = "app_state.json"


@dataclass
class Settings:
    """Runtime configuration for the bridge."""

    data_dir: Path = DEFAULT_DATA_DIR
    catalog_url: Optional[str] = None
    client_config_path: Optional[Path] = None
    log_level: str = "INFO"

    @property
    def state_file(self) -> Path:
        """Path to the persisted key-value state."""
        return self.data_dir / STATE_FILENAME

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from MCPHUB_* environment variables."""
        load_dotenv()

        data_dir = os.getenv("MCPHUB_DATA_DIR")
        client_config = os.getenv("MCPHUB_CLIENT_CONFIG")
        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
            catalog_url=os.getenv("MCPHUB_CATALOG_URL") or None,
            client_config_path=Path(client_config).expanduser() if client_config else None,
            log_level=os.getenv("MCPHUB_LOG_LEVEL", "INFO").upper(),
        )
