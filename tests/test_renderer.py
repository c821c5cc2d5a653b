import numpy as np
import pytest

from renderer import (
    ACTIVE_STYLE, ENTER_STYLE, EXIT_STYLE, HIDDEN_STYLE, MediaCache, ease, slot_style,
)
from transitions import Phase, SlideSlot
from conftest import img, vid


def test_ease_endpoints_and_monotonic():
    assert ease(-1) == 0.0
    assert ease(0.0) == 0.0
    assert ease(1.0) == 1.0
    assert ease(2.0) == 1.0
    samples = [ease(i / 20) for i in range(21)]
    assert samples == sorted(samples)
    assert 0.5 < ease(0.5) < 1.0     # decelerating curve


def test_entering_is_held():
    slot = SlideSlot(img("a"), Phase.ENTERING, 0, since=0.0)
    assert slot_style(slot, now=10.0) == ENTER_STYLE


def test_active_fades_in_from_entering():
    slot = SlideSlot(img("a"), Phase.ACTIVE, 0, since=1.0)
    assert slot_style(slot, now=1.0, crossfade=2.0) == ENTER_STYLE
    assert slot_style(slot, now=3.0, crossfade=2.0) == ACTIVE_STYLE
    mid = slot_style(slot, now=2.0, crossfade=2.0)
    assert 0.0 < mid.opacity < 1.0


def test_active_without_fade_is_at_rest():
    slot = SlideSlot(img("a"), Phase.ACTIVE, 0, since=1.0, fades_in=False)
    assert slot_style(slot, now=1.0) == ACTIVE_STYLE


def test_exiting_fades_out():
    slot = SlideSlot(img("a"), Phase.EXITING, 0, since=0.0)
    assert slot_style(slot, now=0.0, crossfade=2.0) == ACTIVE_STYLE
    assert slot_style(slot, now=2.0, crossfade=2.0) == EXIT_STYLE


def test_exit_starts_where_fade_in_stopped():
    shown = SlideSlot(img("b"), Phase.ACTIVE, 1, since=0.0)
    partial = slot_style(shown, now=0.5, crossfade=2.0)
    assert partial.opacity < 0.9

    leaving = SlideSlot(img("b"), Phase.EXITING, 1, since=0.5, prev=shown)
    assert slot_style(leaving, now=0.5, crossfade=2.0) == partial
    later = slot_style(leaving, now=1.5, crossfade=2.0)
    assert later.opacity < partial.opacity
    assert slot_style(leaving, now=2.5, crossfade=2.0) == EXIT_STYLE


def test_exit_of_a_slide_still_entering_stays_hidden():
    entering = SlideSlot(img("b"), Phase.ENTERING, 1, since=0.0)
    leaving = SlideSlot(img("b"), Phase.EXITING, 1, since=0.01, prev=entering)
    assert slot_style(leaving, now=0.01, crossfade=2.0).opacity == 0.0
    assert slot_style(leaving, now=1.0, crossfade=2.0).opacity == 0.0


def test_retired_is_hidden():
    slot = SlideSlot(img("a"), Phase.RETIRED, 0)
    assert slot_style(slot, now=0.0) == HIDDEN_STYLE


def test_video_never_blurs():
    slot = SlideSlot(vid("v"), Phase.EXITING, 0, since=0.0)
    style = slot_style(slot, now=2.0, crossfade=2.0)
    assert style.blur == 0.0
    assert style.opacity == pytest.approx(0.0)


def test_broken_image_is_remembered(tmp_path):
    cache = MediaCache()
    item = img("gone")
    assert cache.surface_for(item) is None
    assert cache.surface_for(item) is None
    cache.retain([])
    assert cache._images == {}


def test_video_frame_keeps_sample_aspect():
    frame = np.zeros((10, 20, 3), dtype=np.uint8)
    cache = MediaCache(lambda item: (frame, 2.0))
    item = vid("v")
    surf = cache.surface_for(item)
    assert surf.get_size() == (20, 10)
    assert cache.display_size(item, surf) == (40, 10)


def test_video_without_frame_has_no_surface():
    cache = MediaCache(lambda item: None)
    assert cache.surface_for(vid("v")) is None
