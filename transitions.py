# transitions.py
"""
Crossfade between the outgoing and incoming slide of one row.

Two layers:

* pure functions (`initial_state`, `begin_advance`, `promote`, `retire`)
  that map one SlideState to the next and never touch a timer;
* `TransitionCoordinator`, which applies them and owns the two timers of an
  in-flight crossfade (entering → active promotion, outgoing retirement).

Each coordinator bumps a generation on every reset/advance/cancel; a timer
callback that carries an older generation is a no-op.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, NamedTuple, Optional

import config
from playlist import Playlist, MediaItem
from timing import Scheduler, TimerHandle

log = logging.getLogger(__name__)


class Phase(str, Enum):
    ENTERING = "entering"
    ACTIVE   = "active"
    EXITING  = "exiting"
    RETIRED  = "retired"


@dataclass(frozen=True)
class SlideSlot:
    item: MediaItem
    phase: Phase
    index: int            # position in the playlist it was taken from
    since: float = 0.0    # scheduler time the phase began
    # render hints, not identity: whether ACTIVE fades in from the entering
    # look, and for an EXITING slot, the slot as it was when the advance hit
    fades_in: bool = field(default=True, compare=False)
    prev: Optional["SlideSlot"] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class SlideState:
    incoming: Optional[SlideSlot] = None
    outgoing: Optional[SlideSlot] = None
    index: int = 0

    @property
    def empty(self) -> bool:
        return self.incoming is None


EMPTY_STATE = SlideState()


class RowSnapshot(NamedTuple):
    """What the renderer reads."""
    incoming: Optional[SlideSlot]
    outgoing: Optional[SlideSlot]


# ── pure transitions ───────────────────────────────────────────────────────
def initial_state(playlist: Playlist, now: float = 0.0) -> SlideState:
    if playlist.is_empty():
        return EMPTY_STATE
    return SlideState(SlideSlot(playlist.item_at(0), Phase.ACTIVE, 0, now, fades_in=False))


def begin_advance(state: SlideState, playlist: Playlist, now: float = 0.0) -> SlideState:
    """
    Current slide → exiting, next slide (wrapping) → entering.
    The logical index moves here, not when the crossfade finishes.
    """
    if playlist.is_empty():
        return EMPTY_STATE
    if state.empty:
        return initial_state(playlist, now)

    nxt = (state.index + 1) % playlist.length()
    return SlideState(
        incoming=SlideSlot(playlist.item_at(nxt), Phase.ENTERING, nxt, now),
        outgoing=replace(state.incoming, phase=Phase.EXITING, since=now,
                         prev=replace(state.incoming, prev=None)),
        index=nxt,
    )


def promote(state: SlideState, now: float = 0.0) -> SlideState:
    if state.incoming is None or state.incoming.phase is not Phase.ENTERING:
        return state
    return replace(state, incoming=replace(state.incoming, phase=Phase.ACTIVE, since=now))


def retire(state: SlideState) -> SlideState:
    """Outgoing slot reaches RETIRED and is dropped on the spot."""
    if state.outgoing is None:
        return state
    return replace(state, outgoing=None)


# ── effect layer ───────────────────────────────────────────────────────────
class TransitionCoordinator:
    def __init__(self,
                 scheduler: Scheduler,
                 *,
                 crossfade: float = config.CROSSFADE_SEC,
                 enter_delay: float = config.ENTER_DELAY_SEC,
                 retire_grace: float = config.RETIRE_GRACE_SEC,
                 on_change: Optional[Callable[[RowSnapshot], None]] = None,
                 on_active: Optional[Callable[[SlideSlot], None]] = None) -> None:
        self._sched       = scheduler
        self.crossfade    = crossfade
        self.enter_delay  = enter_delay
        self.retire_grace = retire_grace
        self._on_change   = on_change
        self._on_active   = on_active

        self.state = EMPTY_STATE
        self._gen = 0
        self._promote_timer: Optional[TimerHandle] = None
        self._retire_timer:  Optional[TimerHandle] = None

    # -------------------------------------------------------------- queries
    @property
    def index(self) -> int:
        return self.state.index

    def snapshot(self) -> RowSnapshot:
        return RowSnapshot(self.state.incoming, self.state.outgoing)

    def in_transition(self) -> bool:
        return self._promote_timer is not None or self._retire_timer is not None

    def phase_duration(self, phase: Phase) -> Optional[float]:
        """Nominal time a slot spends in *phase*; None = until the next advance."""
        if phase is Phase.ENTERING:
            return self.enter_delay
        if phase is Phase.EXITING:
            return self.crossfade + self.retire_grace
        if phase is Phase.RETIRED:
            return 0.0
        return None

    # ------------------------------------------------------------- commands
    def cancel(self) -> None:
        self._gen += 1
        for attr in ("_promote_timer", "_retire_timer"):
            handle = getattr(self, attr)
            if handle is not None:
                handle.cancel()
                setattr(self, attr, None)

    def reset(self, playlist: Playlist) -> RowSnapshot:
        """Drop any crossfade and show index 0 (or nothing) without fading."""
        self.cancel()
        self._set(initial_state(playlist, self._sched.now()))
        if self.state.incoming is not None:
            self._activated(self.state.incoming)
        return self.snapshot()

    def advance(self, playlist: Playlist) -> RowSnapshot:
        self.cancel()
        was_empty = self.state.empty
        self._set(begin_advance(self.state, playlist, self._sched.now()))

        slot = self.state.incoming
        if slot is None:
            return self.snapshot()
        if was_empty:
            # first content after an empty spell: no crossfade
            self._activated(slot)
            return self.snapshot()

        gen = self._gen
        self._promote_timer = self._sched.call_later(
            self.enter_delay, lambda: self._promote(gen))
        self._retire_timer = self._sched.call_later(
            self.crossfade + self.retire_grace, lambda: self._retire(gen))
        return self.snapshot()

    # ------------------------------------------------------------ callbacks
    def _promote(self, gen: int) -> None:
        if gen != self._gen:
            log.debug("stale promotion ignored")
            return
        self._promote_timer = None
        self._set(promote(self.state, self._sched.now()))
        self._activated(self.state.incoming)

    def _retire(self, gen: int) -> None:
        if gen != self._gen:
            log.debug("stale retirement ignored")
            return
        self._retire_timer = None
        self._set(retire(self.state))

    def _set(self, state: SlideState) -> None:
        self.state = state
        if self._on_change:
            self._on_change(self.snapshot())

    def _activated(self, slot: Optional[SlideSlot]) -> None:
        if slot is not None and self._on_active:
            self._on_active(slot)
