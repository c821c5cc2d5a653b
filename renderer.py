"""
renderer.py – draws a row snapshot.

The engine says which phase each slot is in and when it began; everything
visual (opacity, scale, blur, easing) is decided here.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, NamedTuple, Optional, Tuple

import pygame

import config
from playlist import MediaItem
from transitions import Phase, RowSnapshot, SlideSlot

log = logging.getLogger(__name__)

BLACK  = (0, 0, 0)
BROKEN = (40, 40, 40)


class SlideStyle(NamedTuple):
    opacity: float
    scale: float
    blur: float


ENTER_STYLE  = SlideStyle(0.0, 1.02, 4.0)
ACTIVE_STYLE = SlideStyle(1.0, 1.00, 0.0)
EXIT_STYLE   = SlideStyle(0.0, 0.98, 6.0)
HIDDEN_STYLE = SlideStyle(0.0, 1.00, 0.0)


# ── easing: cubic-bezier(0.4, 0, 0.2, 1) ──────────────────────────────────
def _bezier(t: float, p1: float, p2: float) -> float:
    u = 1.0 - t
    return 3 * u * u * t * p1 + 3 * u * t * t * p2 + t ** 3


def ease(p: float) -> float:
    if p <= 0.0:
        return 0.0
    if p >= 1.0:
        return 1.0
    lo, hi = 0.0, 1.0
    for _ in range(24):                 # solve x(t) = p by bisection
        mid = (lo + hi) / 2
        if _bezier(mid, 0.4, 0.2) < p:
            lo = mid
        else:
            hi = mid
    return _bezier((lo + hi) / 2, 0.0, 1.0)


def _lerp(a: SlideStyle, b: SlideStyle, k: float) -> SlideStyle:
    if k <= 0.0:
        return a
    if k >= 1.0:
        return b
    return SlideStyle(*(x + (y - x) * k for x, y in zip(a, b)))


def slot_style(slot: SlideSlot,
               now: float,
               crossfade: float = config.CROSSFADE_SEC) -> SlideStyle:
    """
    Style of *slot* at time *now*.  ACTIVE animates from the entering look
    (or sits at rest when the slide appeared without a crossfade).  EXITING
    animates from whatever the slide looked like when the advance hit, so a
    slide cut short mid fade-in keeps fading from where it was.
    """
    k = ease((now - slot.since) / crossfade) if crossfade > 0 else 1.0

    if slot.phase is Phase.ENTERING:
        style = ENTER_STYLE
    elif slot.phase is Phase.ACTIVE:
        style = _lerp(ENTER_STYLE, ACTIVE_STYLE, k) if slot.fades_in else ACTIVE_STYLE
    elif slot.phase is Phase.EXITING:
        start = ACTIVE_STYLE
        if slot.prev is not None:
            start = slot_style(slot.prev, slot.since, crossfade)
        style = _lerp(start, EXIT_STYLE, k)
    else:
        style = HIDDEN_STYLE

    if slot.item.is_timed:
        style = style._replace(blur=0.0)   # blurring video costs too much
    return style


# ── media surfaces ─────────────────────────────────────────────────────────
class MediaCache:
    """
    Loaded images by item id; a failed load is remembered as None.

    *video_frame(item)* returns ``(frame, sar)`` for a video the row is
    showing, or None.  The sample-aspect ratio is kept per item so
    anamorphic clips are widened when drawn.
    """

    def __init__(self, video_frame: Optional[Callable[[MediaItem], Optional[Tuple[object, float]]]] = None):
        self._images: Dict[str, Optional[pygame.Surface]] = {}
        self._frames: Dict[str, pygame.Surface] = {}
        self._sar:    Dict[str, float] = {}
        self._video_frame = video_frame

    def surface_for(self, item: MediaItem) -> Optional[pygame.Surface]:
        if item.is_timed:
            got = self._video_frame(item) if self._video_frame else None
            frame, sar = got if got is not None else (None, 1.0)
            if frame is not None:
                # keep the last frame so an exiting video stays on screen
                self._frames[item.id] = pygame.image.frombuffer(
                    frame.tobytes(), frame.shape[1::-1], "RGB")
                self._sar[item.id] = sar if sar and sar > 0 else 1.0
            return self._frames.get(item.id)

        if item.id not in self._images:
            try:
                self._images[item.id] = pygame.image.load(item.locator).convert()
            except (pygame.error, OSError, FileNotFoundError) as e:
                log.warning("could not load %s: %s", item.locator, e)
                self._images[item.id] = None
        return self._images[item.id]

    def display_size(self, item: MediaItem, surf: pygame.Surface) -> Tuple[float, float]:
        """Size *surf* should appear at, square pixels."""
        w, h = surf.get_size()
        return w * self._sar.get(item.id, 1.0), h

    def retain(self, ids: Iterable[str]) -> None:
        keep = set(ids)
        for store in (self._images, self._frames, self._sar):
            for k in [k for k in store if k not in keep]:
                del store[k]


# ── drawing ────────────────────────────────────────────────────────────────
def _fit(size, box, scale: float):
    sw, sh = size
    bw, bh = box
    f = min(bw / sw, bh / sh) * scale
    return max(1, int(sw * f)), max(1, int(sh * f))


def _blurred(surf: pygame.Surface, radius: float) -> pygame.Surface:
    if radius < 0.5:
        return surf
    w, h = surf.get_size()
    f = 1.0 + radius
    small = pygame.transform.smoothscale(surf, (max(1, int(w / f)), max(1, int(h / f))))
    return pygame.transform.smoothscale(small, (w, h))


def _draw_slot(surface: pygame.Surface, rect: pygame.Rect,
               slot: SlideSlot, style: SlideStyle, media: MediaCache) -> None:
    if style.opacity <= 0.0:
        return
    src = media.surface_for(slot.item)
    if src is None:
        # degraded: the asset is broken or has no frame yet
        w, h = _fit((16, 9), rect.size, style.scale * 0.5)
        tile = pygame.Surface((w, h))
        tile.fill(BROKEN)
    else:
        tile = pygame.transform.smoothscale(
            src, _fit(media.display_size(slot.item, src), rect.size, style.scale))
        tile = _blurred(tile, style.blur)
    tile.set_alpha(int(255 * style.opacity))
    x = rect.x + (rect.width - tile.get_width()) // 2
    y = rect.y + (rect.height - tile.get_height()) // 2
    surface.blit(tile, (x, y))


def render_row(surface: pygame.Surface,
               rect: pygame.Rect,
               snap: RowSnapshot,
               media: MediaCache,
               now: float,
               crossfade: float = config.CROSSFADE_SEC) -> None:
    """Outgoing below, incoming on top, contain-fit on black."""
    prev_clip = surface.get_clip()
    surface.set_clip(rect)
    surface.fill(BLACK, rect)
    if snap.outgoing is not None:
        _draw_slot(surface, rect, snap.outgoing,
                   slot_style(snap.outgoing, now, crossfade), media)
    if snap.incoming is not None:
        _draw_slot(surface, rect, snap.incoming,
                   slot_style(snap.incoming, now, crossfade), media)
    surface.set_clip(prev_clip)
