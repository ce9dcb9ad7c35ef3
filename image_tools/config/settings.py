"""Settings storage for application configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "IMAGE_TOOLS_SETTINGS_PATH",
        Path.home() / ".config" / "image-tools" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_PARTITION_EDITOR = "gparted"
DEFAULT_EDITOR = "vi"
DEFAULT_RTFM_MARKER = ".rtfm"
DEFAULT_COMPARE_RSYNC_OPTIONS = [
    "--dry-run",
    "--recursive",
    "--checksum",
    "--links",
    "--itemize-changes",
    "--delete",
]

DEFAULT_SETTINGS: dict[str, Any] = {
    "partition_editor": DEFAULT_PARTITION_EDITOR,
    "default_editor": DEFAULT_EDITOR,
    "rtfm_marker": DEFAULT_RTFM_MARKER,
    "confirmations_enabled": True,
    "compare_rsync_options": list(DEFAULT_COMPARE_RSYNC_OPTIONS),
    "compare_mount_options": "ro",
    "temp_mount_prefix": "image-tools-",
    "fsck_options": [],
    "file_logging_enabled": True,
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings() -> None:
    settings_store.values = json.loads(json.dumps(DEFAULT_SETTINGS))
    if not SETTINGS_PATH.exists():
        return
    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def get_bool(key: str, default: bool = False) -> bool:
    return bool(get_setting(key, default))


def get_list(key: str, default: list[str] | None = None) -> list[str]:
    """Return a list setting; a single string is split on whitespace."""
    value = get_setting(key, default)
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return [str(item) for item in value]


load_settings()
