"""
advancer.py – decides when the current slide ends.

Images end on a timer, videos end when the playback collaborator says so.
The choice is made once, in `arm()`.  At most one trigger is pending at any
time: `arm()` always disarms first, and every trigger carries the token of
the arm call that created it so a late one is recognised and dropped.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

import config
from playlist import MediaItem
from timing import Scheduler, TimerHandle, display_seconds

log = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


class PlaybackSource(Protocol):
    """What the engine needs from whoever plays videos for a row."""

    def restart(self, item: MediaItem) -> None:
        """Seek *item* to its start and begin playing."""

    def subscribe_ended(self,
                        item: MediaItem,
                        on_ended: Callable[[], None],
                        on_fault: Optional[Callable[[], None]] = None) -> Unsubscribe:
        """Call *on_ended* once when *item* finishes; return an unsubscriber."""


class Advancer:
    def __init__(self,
                 scheduler: Scheduler,
                 on_advance: Callable[[], None],
                 playback: Optional[PlaybackSource] = None,
                 *,
                 fault_fallback: Optional[float] = None) -> None:
        self._sched      = scheduler
        self._on_advance = on_advance
        self._playback   = playback
        self._fallback   = (fault_fallback if fault_fallback is not None
                            else getattr(config, "VIDEO_FAULT_FALLBACK_SEC", None))

        self.item: Optional[MediaItem] = None
        self._token: Optional[object] = None
        self._timer: Optional[TimerHandle] = None
        self._fault_timer: Optional[TimerHandle] = None
        self._unsubscribe: Optional[Unsubscribe] = None

    # ── public API ──────────────────────────────────────────────────────────
    @property
    def armed(self) -> bool:
        return self._token is not None

    def arm(self, item: MediaItem) -> None:
        self.disarm()
        token = self._token = object()
        self.item = item

        if not item.is_timed:
            sec = display_seconds(item.display_seconds)
            self._timer = self._sched.call_later(sec, lambda: self._fire(token))
            return

        if self._playback is None:
            log.warning("no playback for timed item %s; waiting for an external trigger",
                        item.id)
            self._on_fault(token)
            return

        self._unsubscribe = self._playback.subscribe_ended(
            item,
            lambda: self._fire(token),
            lambda: self._on_fault(token),
        )

    def disarm(self) -> None:
        self._token = None
        self.item   = None
        for attr in ("_timer", "_fault_timer"):
            handle = getattr(self, attr)
            if handle is not None:
                handle.cancel()
                setattr(self, attr, None)
        if self._unsubscribe is not None:
            unsub, self._unsubscribe = self._unsubscribe, None
            unsub()

    def report_fault(self) -> None:
        """The current timed item could not play (raised by the caller side)."""
        if self._token is not None:
            self._on_fault(self._token)

    # ── internals ───────────────────────────────────────────────────────────
    def _fire(self, token: object) -> None:
        if token is not self._token:
            log.debug("stale advance trigger ignored")
            return
        self.disarm()
        self._on_advance()

    def _on_fault(self, token: object) -> None:
        if token is not self._token or self._fault_timer is not None:
            return
        item_id = self.item.id if self.item else "?"
        if self._fallback is None:
            log.warning("playback fault on %s; slide stays up", item_id)
            return
        log.warning("playback fault on %s; skipping in %.1fs", item_id, self._fallback)
        self._fault_timer = self._sched.call_later(
            max(0.0, float(self._fallback)), lambda: self._fire(token))
