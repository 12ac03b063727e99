"""Resolve the user's identifier into the source release and its group."""

from __future__ import annotations

import re
from html import unescape
from pathlib import Path
from typing import Any

from reedgrass import logger
from reedgrass.errors import FormatError, ResolutionError
from reedgrass.release.origin import ORIGIN_FILE_NAME, read_origin
from reedgrass.release.types import (
    FLAC_FORMAT,
    FileEntry,
    ReleaseGroup,
    SiblingRelease,
    SourceRelease,
)
from reedgrass.tracker.protocols import TrackerClient
from reedgrass.tracker.resilience import optional_dict, optional_list_of_dicts
from reedgrass.tracker.types import TorrentQuery

_FILE_LIST_ENTRY = re.compile(r"^(?P<path>.*)\{\{\{(?P<size>[0-9]*)\}\}\}$")


def resolve_query(
    info_hash: str | None,
    torrent_id: int | None,
    input_dir: Path,
) -> TorrentQuery:
    """Pick the identifier: explicit hash, then explicit id, then origin.yaml."""
    if info_hash:
        return TorrentQuery(hash=info_hash.strip())
    if torrent_id:
        return TorrentQuery(id=int(torrent_id))

    origin = read_origin(input_dir)
    if origin is not None:
        origin_format = str(origin.get("format", ""))
        if origin_format != FLAC_FORMAT:
            raise FormatError(f"{ORIGIN_FILE_NAME} says format is '{origin_format}', not FLAC. Not interested.")
        origin_hash = str(origin.get("info_hash", "")).strip()
        if origin_hash:
            logger.verbose(f"Using info hash from {input_dir / ORIGIN_FILE_NAME}")
            return TorrentQuery(hash=origin_hash)

    raise ResolutionError(
        f"Unable to find an info hash or torrent id for {input_dir}. "
        f"Pass --info-hash/--torrent-id or add {ORIGIN_FILE_NAME}."
    )


def parse_file_list(file_list: str) -> tuple[FileEntry, ...]:
    """Parse Gazelle's ``name{{{size}}}|||name{{{size}}}`` file list."""
    entries: list[FileEntry] = []
    if not file_list:
        return ()
    for raw in file_list.split("|||"):
        match = _FILE_LIST_ENTRY.match(raw)
        if match is None:
            raise ValueError(f"Malformed fileList entry: {raw!r}")
        size = match.group("size")
        entries.append(FileEntry(path=unescape(match.group("path")), size=int(size) if size else 0))
    return tuple(entries)


def _year(value: Any) -> int | None:
    try:
        year = int(value)
    except (TypeError, ValueError):
        return None
    return year or None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def parse_group(group: dict[str, Any]) -> ReleaseGroup:
    music_info = optional_dict(group, "musicInfo", "group")
    artists = tuple(
        unescape(_text(artist.get("name")))
        for artist in optional_list_of_dicts(music_info, "artists", "group.musicInfo")
        if artist.get("name")
    )
    return ReleaseGroup(
        id=int(group["id"]),
        name=unescape(_text(group.get("name"))),
        year=_year(group.get("year")),
        artists=artists,
    )


def parse_sibling(torrent: dict[str, Any]) -> SiblingRelease:
    return SiblingRelease(
        id=int(torrent.get("id", 0)),
        media=_text(torrent.get("media")),
        format=_text(torrent.get("format")),
        encoding=_text(torrent.get("encoding")),
        remaster_title=_text(torrent.get("remasterTitle")),
        remaster_year=_year(torrent.get("remasterYear")),
        remaster_catalogue_number=_text(torrent.get("remasterCatalogueNumber")),
        remaster_record_label=_text(torrent.get("remasterRecordLabel")),
    )


def parse_source(torrent: dict[str, Any], group_id: int) -> SourceRelease:
    sibling = parse_sibling(torrent)
    return SourceRelease(
        id=sibling.id,
        group_id=group_id,
        media=sibling.media,
        encoding=sibling.encoding,
        format=sibling.format,
        remaster_title=sibling.remaster_title,
        remaster_year=sibling.remaster_year,
        remaster_catalogue_number=sibling.remaster_catalogue_number,
        remaster_record_label=sibling.remaster_record_label,
        file_list=parse_file_list(_text(torrent.get("fileList"))),
    )


async def resolve_release(client: TrackerClient, query: TorrentQuery) -> tuple[ReleaseGroup, SourceRelease]:
    """Fetch the torrent once and reject anything that is not FLAC."""
    payload = await client.get_torrent(query)
    group = parse_group(optional_dict(payload, "group", "torrent"))
    source = parse_source(optional_dict(payload, "torrent", "torrent"), group.id)
    if source.format != FLAC_FORMAT:
        raise FormatError(f"Torrent {source.id} is {source.format or 'unknown'} / {source.encoding}, not FLAC. Not interested.")
    return group, source


async def fetch_siblings(client: TrackerClient, group_id: int) -> list[SiblingRelease]:
    payload = await client.get_torrent_group(TorrentQuery(id=group_id))
    return [parse_sibling(torrent) for torrent in optional_list_of_dicts(payload, "torrents", "torrentgroup")]
