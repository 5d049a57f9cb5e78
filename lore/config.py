"""
Configuration management for lore stores.

The configuration is stored as a JSON file in the store directory. It
records the store's default agent id and when the store was created.

Store location is resolved from (highest priority first):
1. An explicit override (CLI --store)
2. LORE_STORE_PATH environment variable
3. Walking upward from the current directory to the nearest .lore/
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import DeserializationError, NotInitializedError, StorageIOError
from .types import format_timestamp, utc_now

LORE_DIR = ".lore"
CONFIG_FILENAME = "config.json"
STORE_FORMAT_VERSION = "0.1.0"
DEFAULT_AGENT_ID = "unknown"


@dataclass
class StoreConfig:
    """Store configuration, persisted as config.json."""
    path: Path
    version: str = STORE_FORMAT_VERSION
    default_agent_id: str = DEFAULT_AGENT_ID
    created_at: str = field(default_factory=lambda: format_timestamp(utc_now()))

    @property
    def config_path(self) -> Path:
        """Path to the JSON config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "default_agent_id": self.default_agent_id,
            "created_at": self.created_at,
        }


def load_config(lore_dir: Path) -> StoreConfig:
    """
    Load configuration from a .lore directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        DeserializationError: If config is not a valid JSON object
    """
    config_path = lore_dir / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DeserializationError(str(e)) from e
    except OSError as e:
        raise StorageIOError(str(e)) from e

    if not isinstance(data, dict):
        raise DeserializationError(f"config must be a JSON object: {config_path}")

    agent = data.get("default_agent_id")
    return StoreConfig(
        path=lore_dir,
        version=str(data.get("version", STORE_FORMAT_VERSION)),
        default_agent_id=agent if isinstance(agent, str) else DEFAULT_AGENT_ID,
        created_at=str(data.get("created_at", "")),
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    try:
        config.path.mkdir(parents=True, exist_ok=True)
        config.config_path.write_text(
            json.dumps(config.to_dict(), indent=2), encoding="utf-8"
        )
    except OSError as e:
        raise StorageIOError(str(e)) from e


def find_lore_root(start: Path) -> Optional[Path]:
    """Find the store root by searching upward from `start`.

    Returns the directory containing .lore/, or None if there is none.
    """
    current = Path(start).absolute()
    for candidate in (current, *current.parents):
        if (candidate / LORE_DIR).exists():
            return candidate
    return None


def resolve_store_root(override: Optional[Path] = None, cwd: Optional[Path] = None) -> Path:
    """
    Resolve the store root for a command invocation.

    Raises:
        NotInitializedError: If no store can be found
    """
    if override is not None:
        root = Path(override).expanduser()
        if not (root / LORE_DIR).exists():
            raise NotInitializedError()
        return root

    env_path = os.environ.get("LORE_STORE_PATH")
    if env_path:
        root = Path(env_path).expanduser()
        if not (root / LORE_DIR).exists():
            raise NotInitializedError()
        return root

    root = find_lore_root(cwd if cwd is not None else Path.cwd())
    if root is None:
        raise NotInitializedError()
    return root
