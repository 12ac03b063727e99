from __future__ import annotations

from pathlib import Path

import pytest

from reedgrass.transcode.runner import ProcessResult
from reedgrass.transcode.torrent import MktorrentBuilder, TorrentOptions, directory_size, piece_length_exponent


@pytest.mark.parametrize(
    "size, exponent",
    [
        (0, 15),
        (1024, 15),
        (50 * 2 ** 20, 15),
        (300 * 2 ** 20, 18),
        (1280 * 2 ** 24, 24),
        (2 ** 50, 28),
    ],
)
def test_piece_length_exponent_is_clamped(size, exponent):
    assert piece_length_exponent(size) == exponent


def test_directory_size_counts_nested_files(tmp_path: Path):
    (tmp_path / "CD1").mkdir()
    (tmp_path / "CD1" / "01.mp3").write_bytes(b"x" * 100)
    (tmp_path / "cover.jpg").write_bytes(b"y" * 23)

    assert directory_size(tmp_path) == 123


@pytest.mark.asyncio
async def test_mktorrent_builder_passes_private_announce_and_source(tmp_path: Path):
    target = tmp_path / "Album - WEB V0"
    target.mkdir()
    (target / "01.mp3").write_bytes(b"a" * 10)
    calls: list[tuple[str, list[str]]] = []

    class _Runner:
        async def run(self, command, args, *, echo=False):
            calls.append((command, list(args)))
            output = next(a.split("=", 1)[1] for a in args if a.startswith("--output="))
            Path(output).write_bytes(b"d8:announce...e")
            return ProcessResult(stdout="", stderr="", exit_code=0)

    builder = MktorrentBuilder("/usr/bin/mktorrent", _Runner())
    options = TorrentOptions(
        announce_url="https://flacsfor.me/abc/announce",
        source="RED",
        created_by="reedgrass@0.4.0",
    )

    data = await builder.build(target, options)

    assert data == b"d8:announce...e"
    command, args = calls[0]
    assert command == "/usr/bin/mktorrent"
    assert args[0] == "--piece-length=15"
    assert args[1] == "--private"
    assert "--announce=https://flacsfor.me/abc/announce" in args
    assert "--source=RED" in args
    assert "--comment=reedgrass@0.4.0" in args
    assert args[-1] == str(target)
