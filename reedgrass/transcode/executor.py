"""Run planned transcodes one after another and package each as a torrent."""

from __future__ import annotations

import asyncio
import os
import shutil
from pathlib import Path
from typing import Sequence

from reedgrass import logger
from reedgrass.config import ToolsConfig
from reedgrass.transcode.planner import flac16_rate
from reedgrass.transcode.runner import Runner
from reedgrass.transcode.torrent import TorrentBuilder, TorrentOptions
from reedgrass.transcode.types import AnalyzedFile, CompletedTask, TranscodeTask

ARTWORK_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".pdf"})
LINER_EXTENSIONS = frozenset({".txt"})
# .txt files are not mirrored for these media.
MEDIA_WITHOUT_LINER_NOTES = frozenset({"CD", "WEB"})


class DirectoryCreator:
    """Creates each directory at most once for the lifetime of one run."""

    def __init__(self) -> None:
        self._created: set[Path] = set()

    def ensure(self, directory: Path) -> None:
        if directory in self._created:
            return
        directory.mkdir(parents=True, exist_ok=True)
        self._created.add(directory)

    def __contains__(self, directory: Path) -> bool:
        return directory in self._created


def auxiliary_extensions(media: str) -> frozenset[str]:
    if media in MEDIA_WITHOUT_LINER_NOTES:
        return ARTWORK_EXTENSIONS
    return ARTWORK_EXTENSIONS | LINER_EXTENSIONS


def find_auxiliary_files(input_dir: Path, media: str) -> list[Path]:
    """Relative paths of the artwork and document files under ``input_dir``."""
    wanted = auxiliary_extensions(media)
    found: list[Path] = []
    for root, dirs, files in os.walk(input_dir):
        dirs.sort()
        for name in sorted(files):
            if Path(name).suffix.lower() in wanted:
                found.append(Path(root, name).relative_to(input_dir))
    return found


async def mirror_auxiliary_files(
    input_dir: Path,
    output_dir: Path,
    media: str,
    directories: DirectoryCreator,
) -> list[Path]:
    """Copy artwork (and liner notes where the media has them) into the transcode.

    The copies run concurrently and all finish before this returns.
    """
    relative_paths = find_auxiliary_files(input_dir, media)
    copies = []
    for relative in relative_paths:
        directories.ensure((output_dir / relative).parent)
        copies.append(asyncio.to_thread(shutil.copyfile, input_dir / relative, output_dir / relative))
    await asyncio.gather(*copies)
    return relative_paths


class TranscodeExecutor:
    """Executes tasks strictly in sequence; the first failure aborts the run.

    Nothing is retried or rolled back: a partial output directory stays on
    disk for inspection.
    """

    def __init__(
        self,
        runner: Runner,
        torrent_builder: TorrentBuilder,
        torrent_options: TorrentOptions,
        tools: ToolsConfig | None = None,
        processes: int | None = None,
        directories: DirectoryCreator | None = None,
    ) -> None:
        self._runner = runner
        self._torrent_builder = torrent_builder
        self._torrent_options = torrent_options
        self._tools = tools or ToolsConfig()
        self._processes = processes or os.cpu_count() or 1
        self._directories = directories or DirectoryCreator()

    async def execute_all(
        self,
        tasks: Sequence[TranscodeTask],
        input_dir: Path,
        files: Sequence[AnalyzedFile],
        media: str,
    ) -> list[CompletedTask]:
        completed: list[CompletedTask] = []
        for index, task in enumerate(tasks, start=1):
            logger.info(f"[-] [{index}/{len(tasks)}] Transcoding {task.output_dir}")
            completed.append(await self.execute(task, input_dir, files, media))
        return completed

    async def execute(
        self,
        task: TranscodeTask,
        input_dir: Path,
        files: Sequence[AnalyzedFile],
        media: str,
    ) -> CompletedTask:
        self._directories.ensure(task.output_dir)
        if task.format == "FLAC":
            await self._transcode_flac16(task.output_dir, input_dir, files)
        else:
            await self._transcode_mp3(task.output_dir, input_dir, task.preset)

        copied = await mirror_auxiliary_files(input_dir, task.output_dir, media, self._directories)
        logger.verbose(f"[-] Copied {len(copied)} auxiliary file(s)")

        torrent_bytes = await self._torrent_builder.build(task.output_dir, self._torrent_options)
        logger.info(f"[+] Built {task.torrent_name}")
        return CompletedTask(task=task, torrent_bytes=torrent_bytes)

    async def _transcode_flac16(self, output_dir: Path, input_dir: Path, files: Sequence[AnalyzedFile]) -> None:
        for index, analyzed in enumerate(files, start=1):
            src = input_dir / analyzed.path
            dst = output_dir / analyzed.path
            self._directories.ensure(dst.parent)
            logger.status(f"[-] sox {index}/{len(files)}: {analyzed.path}")
            await self._runner.run(
                self._tools.sox,
                [
                    "--multi-threaded",
                    "--buffer=131072",
                    "-G",
                    str(src),
                    "-b16",
                    str(dst),
                    "rate",
                    "-v",
                    "-L",
                    str(flac16_rate(analyzed.sample_rate)),
                    "dither",
                ],
            )

    async def _transcode_mp3(self, output_dir: Path, input_dir: Path, preset: str) -> None:
        await self._runner.run(
            self._tools.flac2mp3,
            [
                "--quiet",
                f"--preset={preset}",
                f"--processes={self._processes}",
                str(input_dir),
                str(output_dir),
            ],
            echo=True,
        )
