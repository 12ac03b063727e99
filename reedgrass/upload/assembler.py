"""Turn completed transcodes into one upload request and submit it."""

from __future__ import annotations

from dataclasses import dataclass
from html import unescape
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from reedgrass import logger
from reedgrass.release.types import SourceRelease
from reedgrass.tracker.protocols import TrackerClient
from reedgrass.transcode.planner import MAX_UPLOAD_FILES
from reedgrass.transcode.types import CompletedTask


@dataclass(frozen=True)
class UploadFile:
    file_name: str
    format: str
    bitrate: str
    release_description: str
    torrent_bytes: bytes

    @classmethod
    def from_completed(cls, completed: CompletedTask) -> "UploadFile":
        return cls(
            file_name=completed.file_name,
            format=completed.task.format,
            bitrate=completed.task.bitrate,
            release_description=completed.task.release_description,
            torrent_bytes=completed.torrent_bytes,
        )


@dataclass(frozen=True)
class UploadRequest:
    """One upload form: a primary torrent and up to two extra files.

    Extras are ``extra_file_1``/``extra_file_2`` plus the parallel lists
    ``extra_format``, ``extra_bitrate`` and ``extra_release_desc``.
    """
    group_id: int
    media: str
    remaster_year: Optional[int]
    remaster_title: str
    remaster_record_label: str
    remaster_catalogue_number: str
    files: tuple[UploadFile, ...]

    def fields(self) -> dict[str, Any]:
        primary, extras = self.files[0], self.files[1:]
        fields: dict[str, Any] = {
            "unknown": False,
            "scene": False,
            "groupid": self.group_id,
            "remaster_year": self.remaster_year,
            "remaster_title": self.remaster_title,
            "remaster_record_label": self.remaster_record_label,
            "remaster_catalogue_number": self.remaster_catalogue_number,
            "media": self.media,
            "format": primary.format,
            "bitrate": primary.bitrate,
            "release_desc": primary.release_description,
        }
        if extras:
            fields["extra_format"] = [extra.format for extra in extras]
            fields["extra_bitrate"] = [extra.bitrate for extra in extras]
            fields["extra_release_desc"] = [extra.release_description for extra in extras]
        return fields

    def attachments(self) -> dict[str, tuple[str, bytes]]:
        attachments = {"file_input": (self.files[0].file_name, self.files[0].torrent_bytes)}
        for index, extra in enumerate(self.files[1:], start=1):
            attachments[f"extra_file_{index}"] = (extra.file_name, extra.torrent_bytes)
        return attachments


def assemble_upload(source: SourceRelease, completed: Sequence[CompletedTask]) -> UploadRequest | None:
    """Build the request from the uploadable tasks, in execution order.

    Returns None when every task was marked local-only.
    """
    files = tuple(UploadFile.from_completed(c) for c in completed if not c.task.skip_upload)
    if not files:
        return None
    if len(files) > MAX_UPLOAD_FILES:
        raise ValueError(f"Upload form takes at most {MAX_UPLOAD_FILES} files, got {len(files)}")
    return UploadRequest(
        group_id=source.group_id,
        media=source.media,
        remaster_year=source.remaster_year,
        remaster_title=unescape(source.remaster_title),
        remaster_record_label=unescape(source.remaster_record_label),
        remaster_catalogue_number=unescape(source.remaster_catalogue_number),
        files=files,
    )


def write_torrents(files: Iterable[UploadFile], torrent_dir: Path) -> list[Path]:
    written: list[Path] = []
    for upload_file in files:
        path = torrent_dir / upload_file.file_name
        path.write_bytes(upload_file.torrent_bytes)
        written.append(path)
    return written


async def submit_and_persist(client: TrackerClient, request: UploadRequest, torrent_dir: Path) -> dict[str, Any]:
    """Submit once; torrent files are written only after the tracker accepts."""
    logger.info(f"[-] Uploading {len(request.files)} torrent(s) to group {request.group_id}...")
    response = await client.upload(request.fields(), request.attachments())
    logger.info(f"[-] Write torrents to {torrent_dir}/...")
    write_torrents(request.files, torrent_dir)
    return response
