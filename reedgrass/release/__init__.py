"""Source release resolution and edition membership."""

from .edition import match_edition, normalize_edition_key
from .resolver import fetch_siblings, parse_file_list, resolve_query, resolve_release
from .types import EditionKey, FileEntry, ReleaseGroup, SiblingRelease, SourceRelease

__all__ = [
    "EditionKey",
    "FileEntry",
    "ReleaseGroup",
    "SiblingRelease",
    "SourceRelease",
    "fetch_siblings",
    "match_edition",
    "normalize_edition_key",
    "parse_file_list",
    "resolve_query",
    "resolve_release",
]
