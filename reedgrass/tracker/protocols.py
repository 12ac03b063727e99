"""Protocol for the tracker client used by the pipeline."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from reedgrass.tracker.types import TorrentQuery


class TrackerClient(Protocol):
    """The four tracker calls the transcode pipeline depends on."""

    async def get_index(self) -> dict[str, Any]:
        ...

    async def get_torrent(self, query: TorrentQuery) -> dict[str, Any]:
        ...

    async def get_torrent_group(self, query: TorrentQuery) -> dict[str, Any]:
        ...

    async def upload(self, fields: Mapping[str, Any], files: Mapping[str, tuple[str, bytes]]) -> dict[str, Any]:
        ...

    async def close(self) -> None:
        ...
