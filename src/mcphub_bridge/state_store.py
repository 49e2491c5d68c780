"""Persisted application state.

A flat string-keyed JSON map on disk. Runtime records and the cached catalog
live here; nothing else in the bridge touches the file directly.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigurationError, FilesystemError

logger = logging.getLogger(__name__)


@dataclass
class StateStore:
    """Key-value store persisted to a JSON file on every write."""

    path: Path
    _data: Dict[str, Any] = field(default_factory=dict, repr=False)
    _loaded: bool = field(default=False, repr=False)

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in state file {self.path}: {e}") from e
            except OSError as e:
                raise FilesystemError(f"Failed to read state file {self.path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"State file {self.path} must contain a JSON object, got {type(data).__name__}"
                )
            self._data = data
            logger.debug(f"Loaded {len(self._data)} state keys from {self.path}")
        self._loaded = True

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
        except OSError as e:
            raise FilesystemError(f"Failed to write state file {self.path}: {e}") from e

    def get(self, key: str) -> Optional[Any]:
        """Get a value, or None if the key is absent."""
        self._ensure_loaded()
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        """Set a value and persist the store."""
        self._ensure_loaded()
        self._data[key] = value
        self._save()

    def set_many(self, values: Dict[str, Any]) -> None:
        """Set several values with a single write."""
        self._ensure_loaded()
        self._data.update(values)
        self._save()

    def __contains__(self, key: str) -> bool:
        self._ensure_loaded()
        return key in self._data
