from __future__ import annotations

from pathlib import Path

import pytest

import reedgrass.cli as cli
from reedgrass.config import PathsConfig, ReedgrassConfig, ToolsConfig, TrackerConfig
from reedgrass.errors import ConfigError, FormatError, ToolError
from reedgrass.pipeline import PipelineResult


def _capture_ui(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []
    monkeypatch.setattr(cli.console, "print", lambda msg, *_args, **_kwargs: lines.append(str(msg)))
    return lines


def test_ui_info_warn_error_emit_prefixed_messages(monkeypatch: pytest.MonkeyPatch) -> None:
    lines = _capture_ui(monkeypatch)

    cli._ui_info("hello")
    cli._ui_warn("careful")
    cli._ui_error("boom")

    assert lines == [
        "[cyan][INFO][/cyan] hello",
        "[yellow][WARNING][/yellow] careful",
        "[red][ERROR][/red] boom",
    ]


def test_parser_maps_flags_to_transcode_options() -> None:
    args = cli.build_parser().parse_args(
        ["--no-flac", "--no-320", "--always-transcode", "-i", "ABCDEF", "/music/album"]
    )

    options = cli.transcode_options(args)

    assert options.no_flac and options.no_320 and options.always_transcode
    assert not options.no_v0 and not options.no_upload
    assert args.info_hash == "ABCDEF"
    assert args.input_dir == "/music/album"


def test_cli_overrides_beat_environment_and_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("RED_API_KEY", "from-env")
    monkeypatch.setenv("SOX_PATH", "/opt/sox")
    args = cli.build_parser().parse_args(
        ["--api-key", " from-flag ", "-a", "https://flacsfor.me/x/announce", "-o", str(tmp_path), "album"]
    )

    config = cli.apply_cli_overrides(ReedgrassConfig(), args)

    assert config.tracker.api_key == "from-flag"
    assert config.tracker.announce_url == "https://flacsfor.me/x/announce"
    assert config.paths.torrent_dir == tmp_path
    assert config.paths.transcode_dir is None
    assert config.tools.sox == "/opt/sox"


def test_environment_fills_missing_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RED_API_KEY", "from-env")
    args = cli.build_parser().parse_args(["album"])

    assert cli.apply_cli_overrides(ReedgrassConfig(), args).tracker.api_key == "from-env"


def test_file_api_key_beats_environment_but_tool_paths_do_not(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RED_API_KEY", "from-env")
    monkeypatch.setenv("SOX_PATH", "/opt/sox")
    file_config = ReedgrassConfig(tracker=TrackerConfig(api_key="from-file"), tools=ToolsConfig(sox="/usr/bin/sox"))
    args = cli.build_parser().parse_args(["album"])

    config = cli.apply_cli_overrides(file_config, args)

    assert config.tracker.api_key == "from-file"
    assert config.tools.sox == "/opt/sox"


def test_validate_config_requires_existing_directories(tmp_path: Path) -> None:
    config = ReedgrassConfig(
        tracker=TrackerConfig(api_key="key"),
        paths=PathsConfig(torrent_dir=tmp_path, transcode_dir=tmp_path / "missing"),
    )

    cli.validate_config(config.model_copy(update={"paths": PathsConfig(torrent_dir=tmp_path)}), tmp_path)
    with pytest.raises(ConfigError):
        cli.validate_config(config, tmp_path)
    with pytest.raises(ConfigError):
        cli.validate_config(config, tmp_path / "no-input")


def test_validate_config_requires_api_key(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        cli.validate_config(ReedgrassConfig(paths=PathsConfig(torrent_dir=tmp_path)), tmp_path)


def _prepare_main(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, outcome) -> list[str]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RED_API_KEY", "key")
    monkeypatch.setattr(cli, "set_logger", lambda _log: None)
    monkeypatch.setattr(cli, "resolve_config_path", lambda _arg: (tmp_path / "config.toml", False))

    def _fake_run(config, request):
        if isinstance(outcome, BaseException):
            raise outcome

        async def _done():
            return outcome

        return _done()

    monkeypatch.setattr(cli, "run_cli_pipeline", _fake_run)
    return _capture_ui(monkeypatch)


@pytest.mark.parametrize(
    "outcome, exit_code, marker",
    [
        (PipelineResult(), 0, "Nothing to do."),
        (FormatError("Torrent 1 is MP3 / 320, not FLAC. Not interested."), 0, "[WARNING]"),
        (ToolError("sox", ["in.flac"], 2, "sox FAIL"), 1, "ToolError"),
        (RuntimeError("kaboom"), 1, "Fatal error: kaboom"),
        (KeyboardInterrupt(), 0, "Goodbye!"),
    ],
)
def test_main_exit_codes(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, outcome, exit_code, marker) -> None:
    lines = _prepare_main(monkeypatch, tmp_path, outcome)

    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path)])

    assert excinfo.value.code == exit_code
    assert any(marker in line for line in lines)


def test_main_without_input_dir_shows_help(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == 0
    assert "REEDGRASS v" in capsys.readouterr().out
