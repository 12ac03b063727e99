"""Build private .torrent metadata for a transcode directory with mktorrent."""

from __future__ import annotations

import asyncio
import math
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from reedgrass.transcode.runner import ProcessRunner, Runner

MIN_PIECE_EXPONENT = 15
MAX_PIECE_EXPONENT = 28
# Aim for roughly 1000-1500 pieces per torrent.
TARGET_PIECE_COUNT = 1280


@dataclass(frozen=True)
class TorrentOptions:
    announce_url: str
    source: str
    created_by: str
    private: bool = True


class TorrentBuilder(Protocol):
    async def build(self, directory: Path, options: TorrentOptions) -> bytes:
        ...


def directory_size(directory: Path) -> int:
    total = 0
    for root, _dirs, files in os.walk(directory):
        for name in files:
            total += os.lstat(os.path.join(root, name)).st_size
    return total


def piece_length_exponent(total_size: int) -> int:
    if total_size <= 0:
        return MIN_PIECE_EXPONENT
    exponent = round(math.log2(total_size / TARGET_PIECE_COUNT))
    return max(MIN_PIECE_EXPONENT, min(MAX_PIECE_EXPONENT, exponent))


class MktorrentBuilder:
    """Runs mktorrent into a scratch file and returns the bytes.

    mktorrent stamps its own "created by"; ``created_by`` goes into the
    torrent comment instead.
    """

    def __init__(self, mktorrent_path: str = "mktorrent", runner: Runner | None = None) -> None:
        self._mktorrent_path = mktorrent_path
        self._runner = runner or ProcessRunner()

    async def build(self, directory: Path, options: TorrentOptions) -> bytes:
        total_size = await asyncio.to_thread(directory_size, directory)
        with tempfile.TemporaryDirectory(prefix="reedgrass-") as scratch:
            output = Path(scratch) / f"{directory.name}.torrent"
            args = [
                f"--piece-length={piece_length_exponent(total_size)}",
                f"--announce={options.announce_url}",
                f"--source={options.source}",
                f"--comment={options.created_by}",
                f"--output={output}",
            ]
            if options.private:
                args.insert(1, "--private")
            await self._runner.run(self._mktorrent_path, [*args, str(directory)])
            return output.read_bytes()
