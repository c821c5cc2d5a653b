#!/usr/bin/env python3
"""
app.py – kiosk display

Stacks config.ROW_COUNT rows on one screen.  Each row runs its own
RowEngine, Scheduler and VideoPlayer; the main loop polls them every frame.
Input is dispatched by events.py.
"""
from __future__ import annotations

import logging, os, time
from typing import Dict, List

import pygame

import config
from events           import EventManager
from overlays         import draw_dots, draw_empty_row, draw_info, draw_kiosk_badge
from playlist         import MediaItem, Playlist
from playlist_builder import load_rows
from renderer         import MediaCache, render_row
from slideshow        import RowEngine
from timing           import Scheduler
from video_player     import VideoPlayer

log = logging.getLogger(__name__)


# ── kiosk selection ────────────────────────────────────────────────────────
def load_selected_kiosk(path: str = config.KIOSK_STATE_FILE) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = f.read().strip()
    except OSError:
        return config.DEFAULT_KIOSK
    return saved if saved in config.KIOSK_LIST else config.DEFAULT_KIOSK


def save_selected_kiosk(kiosk: str, path: str = config.KIOSK_STATE_FILE) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(kiosk)
    except OSError as e:
        log.warning("could not save kiosk selection: %s", e)


def next_kiosk(cur: str) -> str:
    keys = config.KIOSK_LIST
    if cur not in keys:
        return keys[0]
    return keys[(keys.index(cur) + 1) % len(keys)]


# ── main application ───────────────────────────────────────────────────────
class KioskDisplay:
    def __init__(self):
        # window ----------------------------------------------------------
        pygame.init()
        pygame.mouse.set_visible(False)
        self.screen = self._set_mode()
        self.clock = pygame.time.Clock()

        # core state ------------------------------------------------------
        self.kiosk   = load_selected_kiosk()
        self.players: Dict[int, VideoPlayer] = {}
        self.rows:    Dict[int, RowEngine]   = {}
        for n in range(1, config.ROW_COUNT + 1):
            self.players[n] = VideoPlayer(n)
            self.rows[n] = RowEngine(n, scheduler=Scheduler(), playback=self.players[n])
        self.media = MediaCache(self._video_frame)

        # overlay / refresh ----------------------------------------------
        self.controls_expire = time.monotonic() + config.CONTROLS_HIDE_SEC
        self.force_overlay   = config.SHOW_OVERLAYS
        self.next_refresh    = 0.0

        self.refresh()

    def _set_mode(self) -> pygame.Surface:
        screen = pygame.display.set_mode(
            (0, 0) if config.FULLSCREEN else config.WINDOWED_SIZE,
            pygame.FULLSCREEN if config.FULLSCREEN else 0,
        )
        pygame.mouse.set_visible(False)
        return screen

    def _video_frame(self, item: MediaItem):
        player = self.players.get(item.row)
        if player is None or not player.is_showing(item):
            return None
        return player.decode_frame(), player.sar

    # ── playlists ---------------------------------------------------------
    def refresh(self) -> None:
        """Reload playlists; only rows whose content changed are reset."""
        self.next_refresh = time.monotonic() + config.PLAYLIST_REFRESH_SEC
        try:
            fresh = load_rows(config.MEDIA_PATH, self.kiosk, config.ROW_COUNT)
        except Exception:
            log.exception("playlist reload failed; keeping current playlists")
            return

        ids: List[str] = []
        for n, eng in self.rows.items():
            items = fresh.get(n, [])
            ids += [it.id for it in items]
            if Playlist(items) != eng.playlist:
                eng.set_playlist(items)
        self.media.retain(ids)

    def select_kiosk(self, kiosk: str) -> None:
        if kiosk == "next":
            kiosk = next_kiosk(self.kiosk)
        if kiosk not in config.KIOSK_LIST:
            log.warning("unknown kiosk %r", kiosk)
            return
        self.kiosk = kiosk
        save_selected_kiosk(kiosk)
        log.info("showing %s", kiosk)
        self.refresh()

    def skip(self, row=None) -> None:
        """Move a stuck row (or every row) on to its next slide."""
        for n, eng in self.rows.items():
            if row is None or n == row:
                eng.force_advance()

    def status(self) -> dict:
        """Row snapshots as plain data (web remote)."""
        out = {"kiosk": self.kiosk, "rows": {}}
        for n, eng in self.rows.items():
            snap = eng.snapshot()
            out["rows"][n] = {
                "items": eng.playlist.length(),
                "index": eng.index,
                "timers": eng.pending_timers(),
                "incoming": _slot_dict(snap.incoming),
                "outgoing": _slot_dict(snap.outgoing),
            }
        return out

    # ── drawing -----------------------------------------------------------
    def _row_rects(self) -> Dict[int, pygame.Rect]:
        w, h = self.screen.get_size()
        n = len(self.rows)
        return {
            row: pygame.Rect(0, (i * h) // n, w, ((i + 1) * h) // n - (i * h) // n)
            for i, row in enumerate(sorted(self.rows))
        }

    def _draw(self) -> None:
        self.screen.fill((0, 0, 0))
        for n, rect in self._row_rects().items():
            eng = self.rows[n]
            if eng.is_empty():
                draw_empty_row(self.screen, rect)
                continue
            render_row(self.screen, rect, eng.snapshot(), self.media,
                       eng.scheduler.now(), eng.coordinator.crossfade)
            draw_dots(self.screen, rect, eng.playlist.length(), eng.index)

        if time.monotonic() < self.controls_expire:
            draw_kiosk_badge(self.screen, self.kiosk)
        if self.force_overlay:
            draw_info(self.screen, self.rows)

    # ── main loop ---------------------------------------------------------
    def run(self):
        running = True
        while running:
            for e in pygame.event.get():
                EventManager.handle(e)

            while (act := EventManager.poll()):
                t = act["type"]
                if t == "quit":
                    running = False
                elif t == "toggle_overlay":
                    self.force_overlay ^= True
                elif t == "show_controls":
                    self.controls_expire = time.monotonic() + config.CONTROLS_HIDE_SEC
                elif t == "refresh":
                    self.refresh()
                elif t == "select_kiosk":
                    self.select_kiosk(act.get("kiosk", "next"))
                elif t == "skip":
                    self.skip(act.get("row"))
                elif t == "toggle_fullscreen":
                    config.FULLSCREEN ^= True
                    self.screen = self._set_mode()

            if time.monotonic() >= self.next_refresh:
                self.refresh()

            for n, eng in self.rows.items():
                try:
                    self.players[n].dispatch()
                except Exception:
                    log.exception("row %s: video event dispatch failed", n)
                eng.poll()

            self._draw()
            pygame.display.flip()
            self.clock.tick(config.FPS)

        self.close()

    def close(self) -> None:
        for eng in self.rows.values():
            eng.close()
        for player in self.players.values():
            player.close()
        pygame.quit()


def _slot_dict(slot) -> dict | None:
    if slot is None:
        return None
    return {
        "id": slot.item.id,
        "locator": os.path.basename(slot.item.locator),
        "kind": slot.item.kind.value,
        "phase": slot.phase.value,
        "index": slot.index,
    }


if __name__ == "__main__":
    KioskDisplay().run()
