"""Output directory names for transcodes."""

from __future__ import annotations

import re
from html import unescape

from reedgrass.release.types import ReleaseGroup, SourceRelease

# U+2215 DIVISION SLASH, looks like "/" but is legal in file names.
PATH_SEPARATOR_SUBSTITUTE = "∕"
VARIOUS_ARTISTS = "Various Artists"

_UNSAFE_CHARS = re.compile(r'[\x00-\x1f\x7f<>:"?*|\\]')
_LEADING_JUNK = re.compile(r"^[~\s]+")
_TRAILING_DOTS = re.compile(r"\.+$")


def sanitize_filename(name: str) -> str:
    """Make ``name`` safe as a single path component. Idempotent."""
    value = name.replace("/", PATH_SEPARATOR_SUBSTITUTE)
    value = _UNSAFE_CHARS.sub("_", value)
    value = value.strip()
    value = _LEADING_JUNK.sub("", value)
    return _TRAILING_DOTS.sub("_", value)


def format_artist(group: ReleaseGroup) -> str:
    artists = group.artists
    if len(artists) == 1:
        return artists[0]
    if len(artists) == 2:
        return f"{artists[0]} & {artists[1]}"
    return VARIOUS_ARTISTS


def format_dirname(group: ReleaseGroup, source: SourceRelease, format_label: str) -> str:
    """``Artist - Title (Remaster Title) (Year) - MEDIA LABEL``, sanitized.

    The year is the edition's year, falling back to the group's.
    """
    dirname = f"{format_artist(group)} - {group.name}"
    remaster_title = unescape(source.remaster_title or "")
    if remaster_title:
        dirname += f" ({remaster_title})"
    year = source.remaster_year or group.year
    if year:
        dirname += f" ({year})"
    dirname += f" - {source.media} {format_label}"
    return sanitize_filename(dirname)
