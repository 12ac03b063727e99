"""Read the ``origin.yaml`` sidecar that gazelle-origin leaves in a download."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

ORIGIN_FILE_NAME = "origin.yaml"


def _snake_key(key: str) -> str:
    # "Info hash" -> "info_hash", "Edition Year" -> "edition_year"
    return "_".join(str(key).strip().lower().split())


def read_origin(input_dir: Path) -> dict[str, Any] | None:
    """Return the parsed sidecar with snake_case keys, or None when absent.

    Null values are normalized to empty strings, which is what the tracker
    API uses for unset fields.
    """
    origin_path = input_dir / ORIGIN_FILE_NAME
    if not origin_path.is_file():
        return None
    with open(origin_path, encoding="utf-8") as f:
        parsed = yaml.safe_load(f)
    if not isinstance(parsed, dict):
        raise ValueError(f"{origin_path} does not contain a mapping")
    return {_snake_key(key): ("" if value is None else value) for key, value in parsed.items()}
