"""
playlist.py

Media items and the per-row playlist snapshot.

A Playlist is never edited: fresh data from the collaborator produces a new
instance via `Playlist.replace()`, and any index held against the old one is
meaningless afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Tuple

import config


class MediaKind(str, Enum):
    STATIC = "static"   # image-like, fixed display duration
    TIMED  = "timed"    # video-like, ends when playback ends


@dataclass(frozen=True)
class MediaItem:
    id: str
    locator: str
    kind: MediaKind = MediaKind.STATIC
    display_seconds: float = config.DEFAULT_DISPLAY_SEC   # static only
    duration: float = 0.0    # probed clip length for timed items, 0 = unknown
    row: int = 1

    @property
    def is_timed(self) -> bool:
        return self.kind is MediaKind.TIMED


class Playlist:
    """Ordered, read-only view.  Insertion order is display order."""

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[MediaItem] = ()) -> None:
        self._items: Tuple[MediaItem, ...] = tuple(items)

    @classmethod
    def replace(cls, items: Iterable[MediaItem]) -> "Playlist":
        return cls(items)

    def is_empty(self) -> bool:
        return not self._items

    def length(self) -> int:
        return len(self._items)

    __len__ = length

    def item_at(self, index: int) -> MediaItem:
        """Wrap-around lookup: the rotation is circular."""
        if not self._items:
            raise IndexError("item_at() on an empty playlist")
        return self._items[index % len(self._items)]

    def ids(self) -> Tuple[str, ...]:
        return tuple(it.id for it in self._items)

    def __iter__(self) -> Iterator[MediaItem]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Playlist):
            return NotImplemented
        return self._items == other._items

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"Playlist({list(self.ids())!r})"
