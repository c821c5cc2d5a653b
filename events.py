#!/usr/bin/env python3
"""
events.py  – central hub

• Translates raw Pygame events to high-level action dicts.
• Exposes a thread-safe queue so *any* external source can inject
  the same actions (web remote, GPIO, HID, etc.).
"""

from __future__ import annotations
import queue
from pygame.locals import *

import config

Action = dict      # alias for readability

_KIOSK_KEYS = {K_1: 0, K_2: 1, K_3: 2, K_4: 3}


class EventManager:
    _fifo: "queue.Queue[Action]" = queue.Queue()      # global, thread-safe

    # ── SDL / keyboard path ────────────────────────────────────────────
    @classmethod
    def handle(cls, event) -> None:
        """Translate one Pygame event → action and enqueue it."""
        act = cls._translate_pygame(event)
        if act:
            cls._fifo.put(act)

    # ── external / programmatic path ───────────────────────────────────
    @classmethod
    def post(cls, action: Action) -> None:
        """
        Any thread may call this to inject an already-formed action dict, e.g.:
            EventManager.post({"type":"select_kiosk","kiosk":"kiosk-2"})
        """
        cls._fifo.put(action)

    # ── main-loop consumer ─────────────────────────────────────────────
    @classmethod
    def poll(cls) -> Action | None:
        """Return next queued action or None (non-blocking)."""
        try:
            return cls._fifo.get_nowait()
        except queue.Empty:
            return None

    @classmethod
    def clear(cls) -> None:
        while cls.poll() is not None:
            pass

    # ── internal translator ───────────────────────────────────────────
    @staticmethod
    def _translate_pygame(event) -> Action | None:
        if event.type == QUIT:
            return {"type": "quit"}

        if event.type in (MOUSEMOTION, MOUSEBUTTONDOWN, FINGERDOWN):
            return {"type": "show_controls"}

        if event.type == KEYDOWN:
            if event.key in (K_ESCAPE, K_q):
                return {"type": "quit"}
            if event.key == K_i:
                return {"type": "toggle_overlay"}
            if event.key == K_f:
                return {"type": "toggle_fullscreen"}
            if event.key == K_r:
                return {"type": "refresh"}
            if event.key == K_k:
                return {"type": "select_kiosk", "kiosk": "next"}
            if event.key == K_n:
                return {"type": "skip", "row": None}
            idx = _KIOSK_KEYS.get(event.key)
            if idx is not None and idx < len(config.KIOSK_LIST):
                return {"type": "select_kiosk", "kiosk": config.KIOSK_LIST[idx]}

        return None
