"""Records passed between the validator, the planner and the executor."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Literal

TargetFormat = Literal["FLAC", "MP3"]


@dataclass(frozen=True)
class AnalyzedFile:
    """Stream properties and tag keys of one source FLAC."""
    path: str
    bit_depth: int
    sample_rate: int
    channels: int
    tags: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class TranscodeOptions:
    """Switches from the command line that shape the plan."""
    no_flac: bool = False
    no_v0: bool = False
    no_320: bool = False
    no_upload: bool = False
    always_transcode: bool = False


@dataclass(frozen=True)
class TranscodeTask:
    """One output encoding. Executed once, then uploaded unless skip_upload."""
    output_dir: Path
    format: TargetFormat
    bitrate: str
    preset: str
    command: str
    release_description: str
    skip_upload: bool = False

    @property
    def torrent_name(self) -> str:
        return f"{self.output_dir.name}.torrent"


@dataclass(frozen=True)
class CompletedTask:
    """A task whose audio is written and whose torrent is built."""
    task: TranscodeTask
    torrent_bytes: bytes

    @property
    def file_name(self) -> str:
        return self.task.torrent_name
