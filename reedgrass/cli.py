#!/usr/bin/env python3
"""
cli.py - Entry point for REEDGRASS
Transcode a FLAC release to FLAC16/V0/320 and upload what the edition lacks.
"""

try:
    import asyncio
    import sys
    import argparse
    import time
    from pathlib import Path
    from rich.console import Console
    from typing import Optional, Sequence
    from .__version__ import __version__
    from .config import ReedgrassConfig, apply_environment, load_config
    from .errors import ConfigError, ReedgrassError
    from .logger import ReedgrassLogger, set_logger
    from .pipeline import PipelineRequest, PipelineResult, run_pipeline
    from .tracker.gazelle_client import GazelleServiceAdapter
    from .transcode.runner import ProcessRunner
    from .transcode.torrent import MktorrentBuilder
    from .transcode.types import TranscodeOptions
    from .transcode.validator import FfprobeProber
except ImportError as e:
    print(f"Error: Missing required dependency: {e}")
    print("Please install required dependencies: pip install -e .")
    sys.exit(1)

console = Console()
_CLI_SESSION_START_MONOTONIC = time.monotonic()
CLI_OPTIONS: tuple[tuple[tuple[str, ...], dict], ...] = (
    (("-h", "--help"), {"action": "store_true", "help": "Show help"}),
    (("-i", "--info-hash"), {"metavar": "HASH", "help": "Info hash of the source torrent"}),
    (("--torrent-id",), {"metavar": "ID", "type": int, "help": "Torrent id of the source torrent"}),
    (("--api-key",), {"metavar": "KEY", "help": "Tracker API key (default: $RED_API_KEY)"}),
    (("-a", "--announce"), {"metavar": "URL", "help": "Announce URL (default: built from your passkey)"}),
    (("-t", "--transcode-dir"), {"metavar": "DIR", "help": "Where transcodes go (default: beside the input)"}),
    (("-o", "--torrent-dir"), {"metavar": "DIR", "help": "Where .torrent files go (default: .)"}),
    (("--no-flac",), {"action": "store_true", "help": "Don't make FLAC16"}),
    (("--no-v0",), {"action": "store_true", "help": "Don't make V0"}),
    (("--no-320",), {"action": "store_true", "help": "Don't make 320"}),
    (("--no-upload",), {"action": "store_true", "help": "Transcode and build torrents, but don't upload"}),
    (("--always-transcode",), {"action": "store_true", "help": "Transcode even encodings the edition already has"}),
    (("-c", "--config"), {"metavar": "PATH", "help": "Path to config.toml (file or directory)"}),
    (("--log-file",), {"metavar": "PATH", "help": "Also write the log to this file"}),
    (("-v", "--verbose"), {"action": "store_true", "help": "Show commands and tool stderr"}),
    (("-d", "--debug"), {"action": "store_true", "help": "Debug mode with API calls, JSON responses, timestamps"}),
)


def _ui_info(message: str) -> None:
    console.print(f"[cyan][INFO][/cyan] {message}")


def _ui_warn(message: str) -> None:
    console.print(f"[yellow][WARNING][/yellow] {message}")


def _ui_error(message: str) -> None:
    console.print(f"[red][ERROR][/red] {message}")


def _reset_cli_session_timer() -> None:
    global _CLI_SESSION_START_MONOTONIC
    _CLI_SESSION_START_MONOTONIC = time.monotonic()


def _format_elapsed_runtime(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    if seconds < 3_600:
        return f"{seconds / 60:.1f}m"
    return f"{seconds / 3_600:.1f}h"


def _ui_goodbye_with_elapsed() -> None:
    elapsed = max(0.0, time.monotonic() - _CLI_SESSION_START_MONOTONIC)
    _ui_info(f"Goodbye! Elapsed {_format_elapsed_runtime(elapsed)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="reedgrass", add_help=False)
    for args, kwargs in CLI_OPTIONS:
        parser.add_argument(*args, **kwargs)
    parser.add_argument('input_dir', nargs='?', help='Directory of the downloaded FLAC torrent')
    return parser


def show_help(parser: argparse.ArgumentParser) -> None:
    print(f"REEDGRASS v{__version__} - Transcode and upload missing encodings")
    print()
    parser.print_help()


def resolve_config_path(args_config: Optional[str]) -> tuple[Path, bool]:
    """Return the config path and whether the user named it explicitly."""
    if args_config:
        p = Path(args_config).expanduser()
        if p.is_dir():
            p = p / "config.toml"
        return p, True

    cwd_candidate = Path.cwd() / "config.toml"
    if cwd_candidate.exists():
        return cwd_candidate, False

    repo_root = Path(__file__).resolve().parent.parent
    root_candidate = repo_root / "config.toml"
    if root_candidate.exists() and (repo_root / "pyproject.toml").exists():
        return root_candidate, False
    return cwd_candidate, False


def apply_cli_overrides(config: ReedgrassConfig, args: argparse.Namespace) -> ReedgrassConfig:
    """Flags win outright. RED_API_KEY only fills a key the file left empty,
    while tool path variables replace the file's tool paths.
    """
    config = apply_environment(config)
    tracker_updates = {}
    if args.api_key:
        tracker_updates["api_key"] = args.api_key.strip()
    if args.announce:
        tracker_updates["announce_url"] = args.announce.strip()
    path_updates = {}
    if args.transcode_dir:
        path_updates["transcode_dir"] = Path(args.transcode_dir).expanduser()
    if args.torrent_dir:
        path_updates["torrent_dir"] = Path(args.torrent_dir).expanduser()
    return config.model_copy(
        update={
            "tracker": config.tracker.model_copy(update=tracker_updates),
            "paths": config.paths.model_copy(update=path_updates),
        }
    )


def validate_config(config: ReedgrassConfig, input_dir: Path) -> None:
    if not input_dir.is_dir():
        raise ConfigError(f"Input directory not found: {input_dir}")
    if not config.tracker.api_key:
        raise ConfigError("No API key: pass --api-key, set RED_API_KEY or add it to config.toml")
    if not config.paths.torrent_dir.is_dir():
        raise ConfigError(f"Torrent directory not found: {config.paths.torrent_dir}")
    transcode_dir = config.paths.transcode_dir
    if transcode_dir is not None and not transcode_dir.is_dir():
        raise ConfigError(f"Transcode directory not found: {transcode_dir}")


def transcode_options(args: argparse.Namespace) -> TranscodeOptions:
    return TranscodeOptions(
        no_flac=args.no_flac,
        no_v0=args.no_v0,
        no_320=args.no_320,
        no_upload=args.no_upload,
        always_transcode=args.always_transcode,
    )


async def run_cli_pipeline(config: ReedgrassConfig, request: PipelineRequest) -> PipelineResult:
    runner = ProcessRunner()
    client = GazelleServiceAdapter(config.tracker)
    try:
        return await run_pipeline(
            config,
            request,
            client=client,
            prober=FfprobeProber(config.tools.ffprobe, runner),
            runner=runner,
            torrent_builder=MktorrentBuilder(config.tools.mktorrent, runner),
        )
    finally:
        await client.close()


def main(argv: Optional[Sequence[str]] = None):
    """Entry point"""
    _reset_cli_session_timer()
    parser = build_parser()
    log: ReedgrassLogger | None = None

    try:
        args = parser.parse_args(argv)
        if args.help or not args.input_dir:
            show_help(parser)
            sys.exit(0)

        config_path, explicit = resolve_config_path(args.config)
        config = apply_cli_overrides(load_config(config_path, required=explicit), args)
        input_dir = Path(args.input_dir).expanduser().resolve()
        validate_config(config, input_dir)

        log = ReedgrassLogger(
            log_file=Path(args.log_file).expanduser() if args.log_file else None,
            debug=args.debug,
            verbose=args.verbose,
        )
        set_logger(log)

        request = PipelineRequest(
            input_dir=input_dir,
            info_hash=args.info_hash,
            torrent_id=args.torrent_id,
            options=transcode_options(args),
        )
        result = asyncio.run(run_cli_pipeline(config, request))
        if result.nothing_to_do:
            _ui_info("Nothing to do.")
        sys.exit(0)
    except KeyboardInterrupt:
        _ui_goodbye_with_elapsed()
        sys.exit(0)
    except ReedgrassError as e:
        if e.expected:
            _ui_warn(str(e))
            sys.exit(0)
        _ui_error(f"{type(e).__name__}: {e}")
        sys.exit(1)
    except Exception as e:
        _ui_error(f"Fatal error: {e}")
        sys.exit(1)
    finally:
        if log is not None:
            log.close()


if __name__ == "__main__":
    main()
