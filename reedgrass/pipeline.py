"""The transcode-and-upload run, from identifier to uploaded torrents."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from reedgrass import logger
from reedgrass.config import ReedgrassConfig
from reedgrass.errors import TrackerError
from reedgrass.release.edition import match_edition
from reedgrass.release.resolver import fetch_siblings, resolve_query, resolve_release
from reedgrass.tracker.protocols import TrackerClient
from reedgrass.tracker_profile import resolve_tracker_profile
from reedgrass.transcode.executor import DirectoryCreator, TranscodeExecutor
from reedgrass.transcode.planner import TOOLCHAIN_SIGNATURE, PlanContext, build_plan
from reedgrass.transcode.runner import Runner
from reedgrass.transcode.torrent import TorrentBuilder, TorrentOptions
from reedgrass.transcode.types import CompletedTask, TranscodeOptions, TranscodeTask
from reedgrass.transcode.validator import Prober, analyze
from reedgrass.upload.assembler import UploadFile, assemble_upload, submit_and_persist, write_torrents


@dataclass(frozen=True)
class PipelineRequest:
    """What the user asked for on the command line."""
    input_dir: Path
    info_hash: Optional[str] = None
    torrent_id: Optional[int] = None
    options: TranscodeOptions = field(default_factory=TranscodeOptions)


@dataclass
class PipelineResult:
    tasks: list[TranscodeTask] = field(default_factory=list)
    completed: list[CompletedTask] = field(default_factory=list)
    upload_response: Optional[dict[str, Any]] = None
    written: list[Path] = field(default_factory=list)

    @property
    def nothing_to_do(self) -> bool:
        return not self.tasks


def permalink(tracker_url: str, torrent_id: int) -> str:
    return f"{tracker_url.rstrip('/')}/torrents.php?torrentid={torrent_id}"


async def resolve_announce_url(config: ReedgrassConfig, client: TrackerClient) -> str:
    """Configured announce URL, else one built from the account passkey."""
    if config.tracker.announce_url:
        return config.tracker.announce_url
    index = await client.get_index()
    passkey = str(index.get("passkey") or "").strip()
    if not passkey:
        raise TrackerError("Tracker index response has no passkey; pass --announce instead")
    return resolve_tracker_profile(config.tracker.name).announce_url(passkey)


async def run_pipeline(
    config: ReedgrassConfig,
    request: PipelineRequest,
    *,
    client: TrackerClient,
    prober: Prober,
    runner: Runner,
    torrent_builder: TorrentBuilder,
    processes: Optional[int] = None,
) -> PipelineResult:
    """Resolve, validate, plan, transcode, then upload in one request.

    Every step is awaited in order. The first error propagates; output
    already written stays on disk.
    """
    profile = resolve_tracker_profile(config.tracker.name)
    query = resolve_query(request.info_hash, request.torrent_id, request.input_dir)
    logger.info(f"[-] Resolving {query.describe()}...")
    group, source = await resolve_release(client, query)
    logger.info(f"[+] {group.name} ({source.media} / {source.format} / {source.encoding})")

    files = await analyze(request.input_dir, source.file_list, prober)

    siblings = await fetch_siblings(client, group.id)
    edition_group = match_edition(
        source.edition_key,
        siblings,
        config.edition_match.unescape_fields,
        source_id=source.id,
    )
    logger.verbose(f"[-] Edition has {len(edition_group)} torrent(s): {', '.join(s.encoding for s in edition_group)}")

    output_root = config.paths.transcode_dir or request.input_dir.parent
    tasks = build_plan(
        PlanContext(
            group=group,
            source=source,
            edition_group=edition_group,
            files=files,
            options=request.options,
            output_root=output_root,
            permalink=permalink(config.tracker.url, source.id),
        )
    )
    result = PipelineResult(tasks=tasks)
    if not tasks:
        logger.info("[*] Nothing to do: every wanted encoding already exists in this edition")
        return result

    torrent_options = TorrentOptions(
        announce_url=await resolve_announce_url(config, client),
        source=profile.source_tag,
        created_by=TOOLCHAIN_SIGNATURE,
    )
    executor = TranscodeExecutor(
        runner,
        torrent_builder,
        torrent_options,
        tools=config.tools,
        processes=processes,
        directories=DirectoryCreator(),
    )
    result.completed = await executor.execute_all(tasks, request.input_dir, files, source.media)

    torrent_dir = config.paths.torrent_dir
    upload = assemble_upload(source, result.completed)
    if upload is None:
        logger.info("[-] Nothing to upload")
    else:
        result.upload_response = await submit_and_persist(client, upload, torrent_dir)
        result.written.extend(torrent_dir / f.file_name for f in upload.files)
        logger.info(f"[*] Uploaded {len(upload.files)} torrent(s)")

    local_only = [UploadFile.from_completed(c) for c in result.completed if c.task.skip_upload]
    if local_only:
        logger.info(f"[-] Write {len(local_only)} local-only torrent(s) to {torrent_dir}/...")
        result.written.extend(write_torrents(local_only, torrent_dir))
    return result
