"""Map settings save/load for JSON files."""

from __future__ import annotations

import json
from pathlib import Path

from propmap.model.options import SETTINGS_SECTIONS


def save_settings(path: str | Path, settings: dict) -> None:
    """Save a settings dictionary to a JSON file.

    The file is human-readable with two-space indentation.

    Args:
        path: Destination file path.
        settings: Settings as returned by
            :meth:`PropertiesMap.save_settings`.

    Raises:
        ValueError: If *settings* contains unknown top-level keys.
    """
    unknown = set(settings) - SETTINGS_SECTIONS
    if unknown:
        raise ValueError(
            f"unknown top-level keys in settings: {sorted(unknown)}"
        )
    Path(path).write_text(json.dumps(settings, indent=2) + "\n")


def load_settings(path: str | Path) -> dict:
    """Load a settings dictionary from a JSON file.

    All sections are optional.  Unknown top-level keys raise
    :class:`ValueError`.

    Args:
        path: Source file path.

    Returns:
        A dictionary suitable for :meth:`PropertiesMap.apply_settings`.

    Raises:
        ValueError: If the file contains unknown top-level keys or is
            not a JSON object.
    """
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError(
            f"settings file must contain a JSON object, got {type(data).__name__}"
        )

    unknown = set(data) - SETTINGS_SECTIONS
    if unknown:
        raise ValueError(
            f"unknown top-level keys in settings file: {sorted(unknown)}"
        )
    return data
