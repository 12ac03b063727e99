"""Query types shared by the tracker client and its callers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TorrentQuery:
    """Selects a torrent by id or by info hash. Exactly one is set."""

    id: int | None = None
    hash: str | None = None

    def __post_init__(self) -> None:
        if (self.id is None) == (self.hash is None):
            raise ValueError("TorrentQuery needs exactly one of id or hash")

    def params(self) -> dict[str, str | int]:
        if self.hash is not None:
            return {"hash": self.hash.upper()}
        return {"id": int(self.id)}

    def describe(self) -> str:
        return f"hash={self.hash.upper()}" if self.hash is not None else f"id={self.id}"
