"""Probe the source FLACs and decide what they may be transcoded into."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Protocol, Sequence

from reedgrass import logger
from reedgrass.errors import TagError
from reedgrass.release.types import LOSSLESS_24, FileEntry
from reedgrass.transcode.runner import ProcessRunner, Runner
from reedgrass.transcode.types import AnalyzedFile

REQUIRED_TAGS = ("TITLE", "ARTIST", "ALBUM", "TRACK")
MAX_MP3_CHANNELS = 2


class Prober(Protocol):
    async def probe(self, path: Path) -> dict[str, Any]:
        ...


class FfprobeProber:
    """Reads stream and tag information with ``ffprobe -print_format json``."""

    def __init__(self, ffprobe_path: str = "ffprobe", runner: Runner | None = None) -> None:
        self._ffprobe_path = ffprobe_path
        self._runner = runner or ProcessRunner()

    async def probe(self, path: Path) -> dict[str, Any]:
        result = await self._runner.run(
            self._ffprobe_path,
            ["-v", "quiet", "-show_streams", "-show_format", "-print_format", "json", str(path)],
        )
        return json.loads(result.stdout)


def is_flac(path: str) -> bool:
    return path.lower().endswith(".flac")


def parse_probe(path: str, info: dict[str, Any]) -> AnalyzedFile:
    """Build an AnalyzedFile from ffprobe JSON.

    Tag keys are uppercased: ffprobe reports Vorbis comment keys in
    whatever case the tagger wrote them.
    """
    streams = info.get("streams") or []
    flac_stream = next((s for s in streams if s.get("codec_name") == "flac"), None)
    if flac_stream is None:
        raise ValueError(f"{path} has no FLAC audio stream")
    tags = (info.get("format") or {}).get("tags") or {}
    return AnalyzedFile(
        path=path,
        bit_depth=int(flac_stream.get("bits_per_raw_sample") or 0),
        sample_rate=int(flac_stream.get("sample_rate") or 0),
        channels=int(flac_stream.get("channels") or 0),
        tags=frozenset(str(key).upper() for key in tags),
    )


def missing_tags(analyzed: AnalyzedFile) -> list[str]:
    return [tag for tag in REQUIRED_TAGS if tag not in analyzed.tags]


async def analyze(input_dir: Path, file_list: Iterable[FileEntry], prober: Prober) -> list[AnalyzedFile]:
    """Probe every FLAC of the release, one at a time.

    Raises TagError for the first file that lacks a required tag, before
    anything is transcoded. A file list without any FLAC has no tagged
    audio at all and raises too.
    """
    flacs = [entry.path for entry in file_list if is_flac(entry.path)]
    if not flacs:
        logger.error(f"[!] No FLAC files in the file list of {input_dir}")
        raise TagError(str(input_dir), list(REQUIRED_TAGS))
    logger.info(f"[-] ffprobe ({len(flacs)} flacs)...")
    results: list[AnalyzedFile] = []
    # One ffprobe at a time.
    for relative in flacs:
        absolute = input_dir / relative
        analyzed = parse_probe(relative, await prober.probe(absolute))
        missing = missing_tags(analyzed)
        if missing:
            logger.error(f"[!] Required tags are not present! check {absolute}")
            raise TagError(str(absolute), missing)
        results.append(analyzed)
    return results


def is_eligible_for_flac16(source_encoding: str, analyzed_files: Sequence[AnalyzedFile]) -> bool:
    """Only a 24-bit source where every file really is 24-bit yields FLAC16."""
    if source_encoding != LOSSLESS_24:
        return False
    offending = [f for f in analyzed_files if f.bit_depth != 24]
    if offending:
        depths = ", ".join(sorted({str(f.bit_depth) for f in offending}))
        logger.warning(f"Found {depths}-bit files, won't transcode to FLAC16:")
        for analyzed in offending:
            logger.warning(f"  {analyzed.path} ({analyzed.bit_depth}-bit)")
        return False
    return bool(analyzed_files)


def is_mp3_incompatible(analyzed_files: Sequence[AnalyzedFile]) -> bool:
    """Multichannel sources are never downmixed for MP3."""
    return any(f.channels > MAX_MP3_CHANNELS for f in analyzed_files)
