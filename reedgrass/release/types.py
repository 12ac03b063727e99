"""Release, edition and file records built from tracker payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

FLAC_FORMAT = "FLAC"
LOSSLESS_24 = "24bit Lossless"
LOSSLESS_16 = "Lossless"


@dataclass(frozen=True)
class FileEntry:
    """One file of a torrent, path relative to the torrent root."""
    path: str
    size: int


@dataclass(frozen=True)
class ReleaseGroup:
    """Group-level metadata needed to name transcodes."""
    id: int
    name: str
    year: Optional[int]
    artists: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EditionKey:
    """The five fields that place a torrent in an edition."""
    media: str
    remaster_title: str = ""
    remaster_catalogue_number: str = ""
    remaster_year: Optional[int] = None
    remaster_record_label: str = ""


@dataclass(frozen=True)
class SourceRelease:
    """The torrent being transcoded. Never mutated after resolution."""
    id: int
    group_id: int
    media: str
    encoding: str
    format: str
    remaster_title: str = ""
    remaster_year: Optional[int] = None
    remaster_catalogue_number: str = ""
    remaster_record_label: str = ""
    file_list: Tuple[FileEntry, ...] = field(default_factory=tuple)

    @property
    def edition_key(self) -> EditionKey:
        return EditionKey(
            media=self.media,
            remaster_title=self.remaster_title,
            remaster_catalogue_number=self.remaster_catalogue_number,
            remaster_year=self.remaster_year,
            remaster_record_label=self.remaster_record_label,
        )


@dataclass(frozen=True)
class SiblingRelease:
    """A torrent of the same group as listed by ``torrentgroup``."""
    id: int
    media: str
    format: str
    encoding: str
    remaster_title: str = ""
    remaster_year: Optional[int] = None
    remaster_catalogue_number: str = ""
    remaster_record_label: str = ""

    @property
    def edition_key(self) -> EditionKey:
        return EditionKey(
            media=self.media,
            remaster_title=self.remaster_title,
            remaster_catalogue_number=self.remaster_catalogue_number,
            remaster_year=self.remaster_year,
            remaster_record_label=self.remaster_record_label,
        )
