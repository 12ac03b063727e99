"""Select the torrents of a group that belong to the source's edition."""

from __future__ import annotations

from dataclasses import replace
from html import unescape
from typing import Iterable, Protocol, Sequence, TypeVar

from reedgrass.errors import ConsistencyError
from reedgrass.release.types import EditionKey

DEFAULT_UNESCAPE_FIELDS = ("remaster_title", "remaster_record_label")


class HasEditionKey(Protocol):
    @property
    def id(self) -> int:
        ...

    @property
    def edition_key(self) -> EditionKey:
        ...


_R = TypeVar("_R", bound=HasEditionKey)


def normalize_edition_key(key: EditionKey, unescape_fields: Iterable[str] = DEFAULT_UNESCAPE_FIELDS) -> EditionKey:
    """Canonical form of a key; both sides of a comparison go through this.

    Empty and missing text compare equal. Fields listed in
    ``unescape_fields`` are decoded from HTML entities, since the tracker
    sometimes returns e.g. ``L&oslash;msk`` for ``Lømsk``.
    """
    decode = set(unescape_fields)

    def text(name: str) -> str:
        value = getattr(key, name) or ""
        return unescape(value) if name in decode else value

    return replace(
        key,
        media=key.media or "",
        remaster_title=text("remaster_title"),
        remaster_catalogue_number=text("remaster_catalogue_number"),
        remaster_record_label=text("remaster_record_label"),
        remaster_year=key.remaster_year or None,
    )


def match_edition(
    source: EditionKey,
    candidates: Sequence[_R],
    unescape_fields: Iterable[str] = DEFAULT_UNESCAPE_FIELDS,
    *,
    source_id: int,
) -> list[_R]:
    """Return the candidates whose five edition fields equal the source's.

    The group listing always contains the source itself, so a result
    without torrent ``source_id`` means the tracker data is inconsistent.
    """
    fields = tuple(unescape_fields)
    wanted = normalize_edition_key(source, fields)
    members = [
        candidate
        for candidate in candidates
        if normalize_edition_key(candidate.edition_key, fields) == wanted
    ]
    if not any(member.id == source_id for member in members):
        raise ConsistencyError(
            f"Torrent {source_id} is not among the group's torrents for edition {wanted}; "
            "the edition group should at least contain the source release"
        )
    return members
