"""
overlays.py

Pygame overlays for the kiosk display: empty-row notice, slide dots,
kiosk badge and the optional info panel.
"""

from __future__ import annotations

import os, pygame

from slideshow import RowEngine

# ── colours ────────────────────────────────────────────────────────────────
WHITE = (255, 255, 255)
GREY  = (120, 120, 120)
GREEN = (0, 255, 0)
BG    = (0, 0, 0, 180)

pygame.font.init()

_fonts: dict[tuple[str, int], pygame.font.Font] = {}


# ── helpers ────────────────────────────────────────────────────────────────
def _compute_font_sizes(h: int) -> tuple[int, int, int]:
    return max(12, h // 60), max(16, h // 45), max(24, h // 15)


def _font(size: int) -> pygame.font.Font:
    key = ("monospace", size)
    if key not in _fonts:
        _fonts[key] = pygame.font.SysFont("monospace", size)
    return _fonts[key]


def _boxed(text: str, font: pygame.font.Font, colour, pad: int) -> pygame.Surface:
    txt = font.render(text, True, colour)
    box = pygame.Surface((txt.get_width() + pad * 2, txt.get_height() + pad),
                         pygame.SRCALPHA)
    box.fill(BG)
    box.blit(txt, (pad, pad // 2))
    return box


# ── per-row ────────────────────────────────────────────────────────────────
def draw_empty_row(surface: pygame.Surface, rect: pygame.Rect) -> None:
    _, small_pt, _ = _compute_font_sizes(surface.get_height())
    txt = _font(small_pt).render("No media in this row", True, GREY)
    surface.blit(txt, (rect.centerx - txt.get_width() // 2,
                       rect.centery - txt.get_height() // 2))


def draw_dots(surface: pygame.Surface, rect: pygame.Rect, count: int, current: int) -> None:
    """Slide indicator; nothing for rows with fewer than two items."""
    if count < 2:
        return
    r   = max(3, rect.height // 80)
    gap = r * 3
    x   = rect.centerx - (gap * (count - 1)) // 2
    y   = rect.bottom - r * 4
    for i in range(count):
        colour = WHITE if i == current else GREY
        pygame.draw.circle(surface, colour, (x + i * gap, y), r)


# ── screen-wide ────────────────────────────────────────────────────────────
def draw_kiosk_badge(surface: pygame.Surface, kiosk: str) -> None:
    _, _, large_pt = _compute_font_sizes(surface.get_height())
    badge = _boxed(kiosk.upper(), _font(large_pt // 2), GREEN, large_pt // 6)
    surface.blit(badge, (surface.get_width() - badge.get_width() - 10, 10))


def draw_info(surface: pygame.Surface, rows: dict[int, RowEngine]) -> None:
    tiny_pt, _, _ = _compute_font_sizes(surface.get_height())
    font = _font(tiny_pt)
    y = 10
    for n, eng in sorted(rows.items()):
        snap = eng.snapshot()
        if snap.incoming is None:
            line = f"ROW {n}  empty"
        else:
            cur  = snap.incoming
            line = (f"ROW {n}  {cur.index + 1}/{eng.playlist.length()}  "
                    f"{cur.phase.value:<8} {os.path.basename(cur.item.locator)}")
            if snap.outgoing is not None:
                line += f"  ← {os.path.basename(snap.outgoing.item.locator)}"
        line += f"  timers={eng.pending_timers()}"
        box = _boxed(line, font, WHITE, tiny_pt // 3)
        surface.blit(box, (10, y))
        y += box.get_height() + 2
