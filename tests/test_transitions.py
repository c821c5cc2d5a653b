import pytest

import config
from playlist import Playlist
from transitions import (
    EMPTY_STATE, Phase, SlideSlot, SlideState, TransitionCoordinator,
    begin_advance, initial_state, promote, retire,
)
from conftest import img

CROSSFADE = config.CROSSFADE_SEC
ENTER     = config.ENTER_DELAY_SEC
RETIRE_AT = config.CROSSFADE_SEC + config.RETIRE_GRACE_SEC

ABC = Playlist([img("a"), img("b"), img("c")])


# ── pure layer ─────────────────────────────────────────────────────────────
def test_initial_state():
    assert initial_state(Playlist()) is EMPTY_STATE
    st = initial_state(ABC, now=4.0)
    assert st.incoming == SlideSlot(ABC.item_at(0), Phase.ACTIVE, 0, 4.0)
    assert st.outgoing is None
    assert st.index == 0


def test_begin_advance_moves_current_to_outgoing():
    st = begin_advance(initial_state(ABC), ABC, now=1.0)
    assert st.index == 1
    assert (st.incoming.item.id, st.incoming.phase) == ("b", Phase.ENTERING)
    assert (st.outgoing.item.id, st.outgoing.phase) == ("a", Phase.EXITING)
    assert st.outgoing.since == 1.0


def test_begin_advance_wraps():
    st = SlideState(SlideSlot(ABC.item_at(2), Phase.ACTIVE, 2), None, 2)
    assert begin_advance(st, ABC).incoming.item.id == "a"


def test_begin_advance_from_empty_reinitialises():
    st = begin_advance(EMPTY_STATE, ABC)
    assert st.incoming.phase is Phase.ACTIVE
    assert st.outgoing is None
    assert st.index == 0


def test_begin_advance_on_empty_playlist():
    st = initial_state(ABC)
    assert begin_advance(st, Playlist()) is EMPTY_STATE


def test_promote_and_retire():
    st = begin_advance(initial_state(ABC), ABC)
    st = promote(st, now=0.05)
    assert st.incoming.phase is Phase.ACTIVE
    assert promote(st) is st
    st = retire(st)
    assert st.outgoing is None
    assert retire(st) is st


# ── coordinator ────────────────────────────────────────────────────────────
@pytest.fixture
def coord(driver):
    return TransitionCoordinator(driver.scheduler)


def test_round_robin_visits_every_index(driver, coord):
    coord.reset(ABC)
    visited = [coord.index]
    for _ in range(7):
        coord.advance(ABC)
        visited.append(coord.index)
        driver.advance(RETIRE_AT)
    assert visited == [0, 1, 2, 0, 1, 2, 0, 1]


def test_full_crossfade_cycle(driver, coord):
    coord.reset(ABC)
    coord.advance(ABC)
    snap = coord.snapshot()
    assert snap.incoming.phase is Phase.ENTERING
    assert snap.outgoing.phase is Phase.EXITING
    assert driver.scheduler.pending() == 2

    driver.run_until(ENTER)
    assert coord.snapshot().incoming.phase is Phase.ACTIVE
    assert coord.snapshot().outgoing is not None

    driver.run_until(RETIRE_AT)
    assert coord.snapshot().outgoing is None
    assert driver.scheduler.pending() == 0
    assert not coord.in_transition()


def test_single_item_still_cycles(driver):
    activated = []
    coord = TransitionCoordinator(driver.scheduler, on_active=activated.append)
    one = Playlist([img("solo")])
    coord.reset(one)
    coord.advance(one)

    snap = coord.snapshot()
    assert snap.incoming.item.id == snap.outgoing.item.id == "solo"
    assert snap.incoming.phase is Phase.ENTERING
    assert snap.outgoing.phase is Phase.EXITING

    driver.run_until(RETIRE_AT)
    assert coord.snapshot().incoming.phase is Phase.ACTIVE
    assert coord.snapshot().outgoing is None
    assert len(activated) == 2


def test_rapid_double_advance_never_repeats(driver, coord):
    coord.reset(ABC)
    coord.advance(ABC)
    coord.advance(ABC)
    snap = coord.snapshot()
    assert coord.index == 2
    assert snap.incoming.item.id == "c"
    assert snap.outgoing.item.id == "b"
    assert driver.scheduler.pending() == 2


def test_never_two_entering_or_exiting(driver):
    seen = []
    coord = TransitionCoordinator(driver.scheduler, on_change=seen.append)
    coord.reset(ABC)
    for step in (0.0, 0.01, 0.06, 1.0, 2.5):
        coord.advance(ABC)
        driver.advance(step)
    for snap in seen:
        phases = [s.phase for s in snap if s is not None]
        assert phases.count(Phase.ENTERING) <= 1
        assert phases.count(Phase.EXITING) <= 1
        assert Phase.RETIRED not in phases


def test_cancel_drops_transition_timers(driver, coord):
    coord.reset(ABC)
    coord.advance(ABC)
    coord.cancel()
    assert driver.scheduler.pending() == 0
    driver.run_until(10.0)
    assert coord.snapshot().incoming.phase is Phase.ENTERING


def test_reset_mid_crossfade(driver, coord):
    coord.reset(ABC)
    coord.advance(ABC)
    driver.advance(0.5)
    coord.reset(Playlist([img("x"), img("y")]))
    snap = coord.snapshot()
    assert snap.incoming.item.id == "x"
    assert snap.incoming.phase is Phase.ACTIVE
    assert snap.outgoing is None
    assert driver.scheduler.pending() == 0


def test_advance_from_empty_skips_crossfade(driver, coord):
    coord.reset(Playlist())
    assert coord.snapshot() == (None, None)
    coord.advance(ABC)
    assert coord.snapshot().incoming.phase is Phase.ACTIVE
    assert driver.scheduler.pending() == 0


def test_phase_durations(coord):
    assert coord.phase_duration(Phase.ENTERING) == ENTER
    assert coord.phase_duration(Phase.EXITING) == RETIRE_AT
    assert coord.phase_duration(Phase.ACTIVE) is None
    assert coord.phase_duration(Phase.RETIRED) == 0.0
