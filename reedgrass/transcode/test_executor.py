from __future__ import annotations

from pathlib import Path

import pytest

from reedgrass import logger
from reedgrass.config import ToolsConfig
from reedgrass.errors import ToolError
from reedgrass.transcode.executor import DirectoryCreator, TranscodeExecutor, find_auxiliary_files
from reedgrass.transcode.runner import ProcessResult
from reedgrass.transcode.torrent import TorrentOptions
from reedgrass.transcode.types import AnalyzedFile, TranscodeTask

OPTIONS = TorrentOptions(announce_url="https://flacsfor.me/pk/announce", source="RED", created_by="reedgrass")


class _RecordingRunner:
    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[tuple[str, list[str], bool]] = []
        self._fail_on = fail_on

    async def run(self, command, args, *, echo=False):
        self.calls.append((command, list(args), echo))
        if command == self._fail_on:
            raise ToolError(command, list(args), 2, "boom")
        return ProcessResult(stdout="", stderr="", exit_code=0)


class _FakeTorrentBuilder:
    def __init__(self) -> None:
        self.built: list[Path] = []

    async def build(self, directory: Path, options: TorrentOptions) -> bytes:
        self.built.append(directory)
        return f"torrent:{directory.name}".encode()


def _source_tree(root: Path) -> Path:
    source = root / "source"
    (source / "Scans").mkdir(parents=True)
    for name in ("01.flac", "02.flac", "cover.jpg", "notes.txt", "Scans/back.PNG", "log.log"):
        (source / name).write_bytes(name.encode())
    return source


def _task(output_dir: Path, fmt: str = "FLAC", preset: str = "FLAC") -> TranscodeTask:
    return TranscodeTask(
        output_dir=output_dir,
        format=fmt,
        bitrate="Lossless" if fmt == "FLAC" else preset,
        preset=preset,
        command="cmd",
        release_description="desc",
    )


FILES = [
    AnalyzedFile(path="01.flac", bit_depth=24, sample_rate=96000, channels=2),
    AnalyzedFile(path="02.flac", bit_depth=24, sample_rate=88200, channels=2),
]


def test_find_auxiliary_files_depends_on_media(tmp_path: Path):
    source = _source_tree(tmp_path)

    assert find_auxiliary_files(source, "WEB") == [Path("cover.jpg"), Path("Scans/back.PNG")]
    assert Path("notes.txt") in find_auxiliary_files(source, "Vinyl")


def test_directory_creator_creates_once(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    creator = DirectoryCreator()
    made: list[Path] = []
    original_mkdir = Path.mkdir

    def _mkdir(self, *args, **kwargs):
        made.append(self)
        return original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", _mkdir)
    creator.ensure(tmp_path / "a")
    creator.ensure(tmp_path / "a")

    assert made == [tmp_path / "a"]
    assert (tmp_path / "a") in creator


@pytest.mark.asyncio
async def test_flac16_runs_sox_per_file_with_its_own_rate(tmp_path: Path):
    source = _source_tree(tmp_path)
    runner = _RecordingRunner()
    builder = _FakeTorrentBuilder()
    executor = TranscodeExecutor(runner, builder, OPTIONS, tools=ToolsConfig(sox="/bin/sox"))
    output = tmp_path / "out" / "Album - WEB FLAC"

    completed = await executor.execute(_task(output), source, FILES, "WEB")

    assert [call[0] for call in runner.calls] == ["/bin/sox", "/bin/sox"]
    first, second = runner.calls[0][1], runner.calls[1][1]
    assert first[3] == str(source / "01.flac") and first[5] == str(output / "01.flac")
    assert first[-2:] == ["48000", "dither"]
    assert second[-2:] == ["44100", "dither"]
    assert completed.torrent_bytes == b"torrent:Album - WEB FLAC"
    assert completed.file_name == "Album - WEB FLAC.torrent"
    assert (output / "cover.jpg").read_bytes() == b"cover.jpg"
    assert (output / "Scans" / "back.PNG").exists()
    assert not (output / "notes.txt").exists()
    assert not (output / "log.log").exists()


@pytest.mark.asyncio
async def test_flac16_reports_progress_on_the_status_line(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    source = _source_tree(tmp_path)
    lines: list[str] = []
    monkeypatch.setattr(logger, "status", lines.append)
    executor = TranscodeExecutor(_RecordingRunner(), _FakeTorrentBuilder(), OPTIONS)

    await executor.execute(_task(tmp_path / "out" / "Album - WEB FLAC"), source, FILES, "WEB")

    assert lines == ["[-] sox 1/2: 01.flac", "[-] sox 2/2: 02.flac"]


@pytest.mark.asyncio
async def test_mp3_runs_flac2mp3_once_with_echo(tmp_path: Path):
    source = _source_tree(tmp_path)
    runner = _RecordingRunner()
    executor = TranscodeExecutor(
        runner,
        _FakeTorrentBuilder(),
        OPTIONS,
        tools=ToolsConfig(flac2mp3="flac2mp3.pl"),
        processes=4,
    )
    output = tmp_path / "out" / "Album - Vinyl V0"

    await executor.execute(_task(output, fmt="MP3", preset="V0"), source, FILES, "Vinyl")

    assert runner.calls == [
        ("flac2mp3.pl", ["--quiet", "--preset=V0", "--processes=4", str(source), str(output)], True),
    ]
    assert (output / "notes.txt").exists()


@pytest.mark.asyncio
async def test_execute_all_is_sequential_and_stops_on_first_failure(tmp_path: Path):
    source = _source_tree(tmp_path)
    runner = _RecordingRunner(fail_on="flac2mp3")
    builder = _FakeTorrentBuilder()
    executor = TranscodeExecutor(runner, builder, OPTIONS)
    tasks = [
        _task(tmp_path / "out" / "FLAC"),
        _task(tmp_path / "out" / "V0", fmt="MP3", preset="V0"),
        _task(tmp_path / "out" / "320", fmt="MP3", preset="320"),
    ]

    with pytest.raises(ToolError):
        await executor.execute_all(tasks, source, FILES, "WEB")

    assert builder.built == [tmp_path / "out" / "FLAC"]
    assert [call[0] for call in runner.calls] == ["sox", "sox", "flac2mp3"]
