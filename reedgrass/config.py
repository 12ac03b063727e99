"""
config.py - Configuration model for reedgrass
"""

import os
import sys
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator
from rich.console import Console

try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib

console = Console()

API_KEY_ENV = "RED_API_KEY"
TOOL_PATH_ENV = {
    "ffprobe": "FFPROBE_PATH",
    "sox": "SOX_PATH",
    "flac2mp3": "FLAC2MP3_PATH",
    "mktorrent": "MKTORRENT_PATH",
}
EDITION_TEXT_FIELDS = (
    "remaster_title",
    "remaster_record_label",
    "remaster_catalogue_number",
)


class TrackerConfig(BaseModel):
    name: str = "RED"
    url: str = "https://redacted.sh"
    api_key: str = ""
    announce_url: str = Field(
        default="",
        description="Full announce URL; fetched from the tracker index (passkey) when empty",
    )


class ToolsConfig(BaseModel):
    """Executables for the external tools. Bare names are resolved via PATH."""

    ffprobe: str = "ffprobe"
    sox: str = "sox"
    flac2mp3: str = "flac2mp3"
    mktorrent: str = "mktorrent"


class PathsConfig(BaseModel):
    transcode_dir: Optional[Path] = Field(
        default=None,
        description="Where transcodes are written; defaults to the input directory's parent",
    )
    torrent_dir: Path = Field(default=Path("."), description="Where .torrent files are written")


class EditionMatchConfig(BaseModel):
    """Controls which edition fields are HTML-unescaped before comparison."""

    unescape_fields: List[str] = Field(
        default_factory=lambda: ["remaster_title", "remaster_record_label"],
        description="Edition text fields decoded from HTML entities before equality checks",
    )

    @field_validator("unescape_fields")
    @classmethod
    def _known_fields(cls, value: List[str]) -> List[str]:
        unknown = [name for name in value if name not in EDITION_TEXT_FIELDS]
        if unknown:
            allowed = ", ".join(EDITION_TEXT_FIELDS)
            raise ValueError(f"Unknown edition field(s) {', '.join(unknown)}; expected one of {allowed}")
        return value


class ReedgrassConfig(BaseModel):
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    edition_match: EditionMatchConfig = Field(default_factory=EditionMatchConfig)
    config_path: Optional[Path] = None


def load_config(config_path: Optional[Path], required: bool = False) -> ReedgrassConfig:
    """Load configuration from a TOML file.

    A missing file is only fatal when the user pointed at it explicitly.
    """
    if config_path is None or not config_path.exists():
        if required:
            console.print(f"[red][ERROR][/red] Configuration file not found: {config_path}")
            sys.exit(1)
        return ReedgrassConfig()

    try:
        with open(config_path, "rb") as f:
            config_data = tomllib.load(f)

        return ReedgrassConfig(
            tracker=TrackerConfig(**config_data.get("tracker", {})),
            tools=ToolsConfig(**config_data.get("tools", {})),
            paths=PathsConfig(**config_data.get("paths", {})),
            edition_match=EditionMatchConfig(**config_data.get("edition_match", {})),
            config_path=config_path,
        )

    except Exception as e:
        console.print(f"[red][ERROR][/red] Error loading configuration: {e}")
        sys.exit(1)


def apply_environment(config: ReedgrassConfig, environ: Optional[Mapping[str, str]] = None) -> ReedgrassConfig:
    """Fill the API key and tool paths from the environment.

    The API key only comes from the environment when the file left it
    empty; tool paths from the environment always win.
    """
    env = os.environ if environ is None else environ
    tracker = config.tracker
    if not tracker.api_key and env.get(API_KEY_ENV):
        tracker = tracker.model_copy(update={"api_key": env[API_KEY_ENV].strip()})

    tool_updates = {
        tool: env[variable]
        for tool, variable in TOOL_PATH_ENV.items()
        if env.get(variable)
    }
    tools = config.tools.model_copy(update=tool_updates) if tool_updates else config.tools
    return config.model_copy(update={"tracker": tracker, "tools": tools})
