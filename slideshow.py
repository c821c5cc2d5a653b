"""
slideshow.py – one rotating row.

RowEngine glues a Playlist, an Advancer and a TransitionCoordinator together
and is the only thing the app talks to:

    set_playlist(items)   inbound, any time, mid-crossfade included
    snapshot()            outbound, read by the renderer
    poll(now)             drive due timers from the main loop
    close()               cancel everything; later callbacks are no-ops

Faults inside a row are logged and leave the row on its current slide; they
never propagate to the caller, so one broken row cannot take its siblings
down.
"""
from __future__ import annotations

import functools
import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from advancer import Advancer, PlaybackSource
from playlist import MediaItem, Playlist
from timing import Scheduler
from transitions import RowSnapshot, SlideSlot, TransitionCoordinator

log = logging.getLogger(__name__)


def _row_guard(fn):
    """Log and swallow any fault so the row freezes instead of crashing."""
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except Exception:
            log.exception("row %s: %s failed; holding current slide", self.row, fn.__name__)
            return None
    return wrapper


class RowEngine:
    def __init__(self,
                 row: int,
                 items: Iterable[MediaItem] = (),
                 *,
                 scheduler: Optional[Scheduler] = None,
                 playback: Optional[PlaybackSource] = None,
                 on_render: Optional[Callable[[int, RowSnapshot], None]] = None,
                 fault_fallback: Optional[float] = None,
                 **coordinator_opts) -> None:
        self.row       = row
        self.scheduler = scheduler or Scheduler()
        self.playback  = playback
        self.playlist  = Playlist()
        self._on_render = on_render
        self._closed    = False
        self._gen       = 0
        self._faulted: Optional[str] = None    # id of a video that failed to start

        self.advancer = Advancer(self.scheduler, self._advance_from_trigger, playback,
                                 fault_fallback=fault_fallback)
        self.coordinator = TransitionCoordinator(
            self.scheduler,
            on_change=self._changed,
            on_active=self._slot_active,
            **coordinator_opts,
        )
        self.set_playlist(items)

    # ── inbound ─────────────────────────────────────────────────────────────
    @_row_guard
    def set_playlist(self, items: Iterable[MediaItem]) -> None:
        if self._closed:
            return
        # invalidate before replacing, disarm before arming
        self._gen += 1
        self._faulted = None
        self.advancer.disarm()
        self.coordinator.cancel()

        self.playlist = Playlist.replace(items)
        log.info("row %s: playlist of %d item(s)", self.row, self.playlist.length())
        self.coordinator.reset(self.playlist)
        self._rearm()

    @_row_guard
    def force_advance(self) -> None:
        """External fault signal: move on now, whatever the trigger state."""
        if self._closed:
            return
        self.advancer.disarm()
        self._advance()

    # ── outbound ────────────────────────────────────────────────────────────
    def snapshot(self) -> RowSnapshot:
        return self.coordinator.snapshot()

    @property
    def index(self) -> int:
        return self.coordinator.index

    @property
    def current(self) -> Optional[MediaItem]:
        slot = self.coordinator.state.incoming
        return slot.item if slot else None

    def is_empty(self) -> bool:
        return self.playlist.is_empty()

    # ── driving ─────────────────────────────────────────────────────────────
    @_row_guard
    def poll(self, now: Optional[float] = None) -> int:
        return self.scheduler.run_due(now)

    def pending_timers(self) -> int:
        return self.scheduler.pending()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._gen += 1
        self.advancer.disarm()
        self.coordinator.cancel()
        self.scheduler.cancel_all()
        log.info("row %s: closed", self.row)

    # ── internals ───────────────────────────────────────────────────────────
    @_row_guard
    def _advance_from_trigger(self) -> None:
        if self._closed:
            return
        self._advance()

    def _advance(self) -> None:
        gen = self._gen
        self._faulted = None
        self.coordinator.advance(self.playlist)
        if gen == self._gen:
            self._rearm()

    def _rearm(self) -> None:
        item = self.current
        if item is None:
            self.advancer.disarm()
            return
        self.advancer.arm(item)
        self._flush_fault()

    def _slot_active(self, slot: SlideSlot) -> None:
        if not slot.item.is_timed or self.playback is None:
            return
        try:
            self.playback.restart(slot.item)
        except Exception as e:
            log.warning("row %s: video %s failed to start: %s", self.row, slot.item.id, e)
            self._faulted = slot.item.id
            self._flush_fault()

    def _flush_fault(self) -> None:
        # a reset activates the first slide before the advancer is armed for it
        armed = self.advancer.item
        if self._faulted is not None and armed is not None and armed.id == self._faulted:
            self._faulted = None
            self.advancer.report_fault()

    def _changed(self, snap: RowSnapshot) -> None:
        if self._on_render is None:
            return
        try:
            self._on_render(self.row, snap)
        except Exception:
            log.exception("row %s: render listener failed", self.row)


def build_rows(playlists: Mapping[int, List[MediaItem]],
               *,
               scheduler_factory: Callable[[], Scheduler] = Scheduler,
               playback_factory: Optional[Callable[[int], PlaybackSource]] = None,
               **kwargs) -> Dict[int, RowEngine]:
    """One engine per row; rows share nothing."""
    return {
        row: RowEngine(
            row, items,
            scheduler=scheduler_factory(),
            playback=playback_factory(row) if playback_factory else None,
            **kwargs,
        )
        for row, items in sorted(playlists.items())
    }
