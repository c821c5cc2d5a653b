# =========  video_player.py  =========
"""
GStreamer video playback for one kiosk row.

Public API (the engine's PlaybackSource)
----------------------------------------
restart(item)                           open item, seek to 0, play
subscribe_ended(item, on_ended, on_fault) → unsubscribe()
dispatch()                              deliver queued bus events (main thread)
decode_frame()                          latest frame (HxWx3 uint8) or None
close()
Properties
----------
.path  → current file path / URI
.sar   → sample-aspect ratio
"""
from __future__ import annotations

import logging
import os
import queue
import threading
from typing import Callable, Dict, Optional, Tuple

import gi, numpy as np
gi.require_version("Gst", "1.0")
from gi.repository import Gst, GLib

from playlist import MediaItem

log = logging.getLogger(__name__)

_Sub = Tuple[str, Callable[[], None], Optional[Callable[[], None]]]


def _to_uri(locator: str) -> str:
    if "://" in locator:
        return locator
    return Gst.filename_to_uri(os.path.abspath(locator))


# ────────────────────────────────────────────────────────────────────────────
class VideoPlayer:
    def __init__(self, row: int = 0):
        Gst.init(None)
        self.row = row

        self.player = Gst.ElementFactory.make("playbin", f"row{row}")
        self._vsink = self._build_sink()
        self.player.set_property("video-sink", self._vsink)
        self.player.set_property("mute", True)

        # state
        self._frames: "queue.Queue[bytes]" = queue.Queue(maxsize=1)
        self._events: "queue.Queue[Tuple[str, str]]" = queue.Queue()
        self._last = None
        self._w = self._h = 0
        self.sar  = 1.0
        self.path = ""
        self._subs: Dict[int, _Sub] = {}
        self._next_sub = 0

        # bus watch in a side loop
        self._ml = GLib.MainLoop()
        bus = self.player.get_bus()
        bus.add_signal_watch()
        bus.connect("message", self._on_bus_msg)
        self._ml_thread = threading.Thread(target=self._ml.run, daemon=True)
        self._ml_thread.start()

    # ── sink ────────────────────────────────────────────────────────────────
    def _build_sink(self):
        vs = Gst.ElementFactory.make("appsink", f"vsink{self.row}")
        vs.set_property("emit-signals", True)
        vs.set_property("max-buffers", 2)
        vs.set_property("drop", True)
        vs.set_property("sync", True)
        vs.set_property("caps", Gst.Caps.from_string("video/x-raw,format=RGB"))
        vs.connect("new-sample", self._on_sample)
        return vs

    # ── PlaybackSource ──────────────────────────────────────────────────────
    def restart(self, item: MediaItem) -> None:
        self.player.set_state(Gst.State.NULL)
        while not self._frames.empty():
            self._frames.get_nowait()
        self._last = None
        self.sar = 1.0

        self.path = _to_uri(item.locator)
        self.player.set_property("uri", self.path)
        self.player.set_state(Gst.State.PAUSED)

        # wait for preroll / caps (the bus belongs to the watch thread)
        ret, _, _ = self.player.get_state(5 * Gst.SECOND)
        if ret == Gst.StateChangeReturn.FAILURE:
            raise RuntimeError(f"could not open {item.locator}")
        if ret == Gst.StateChangeReturn.ASYNC:
            raise RuntimeError(f"preroll timed out for {item.locator}")

        caps = self._vsink.get_static_pad("sink").get_current_caps().get_structure(0)
        self._w, self._h = caps.get_int("width")[1], caps.get_int("height")[1]
        if caps.has_field("pixel-aspect-ratio"):
            num, den = caps.get_fraction("pixel-aspect-ratio")[-2:]
            self.sar = num / den if den else 1.0

        self.player.seek_simple(
            Gst.Format.TIME,
            Gst.SeekFlags.FLUSH | Gst.SeekFlags.ACCURATE,
            0,
        )
        self.player.set_state(Gst.State.PLAYING)

    def subscribe_ended(self, item, on_ended, on_fault=None):
        sid = self._next_sub
        self._next_sub += 1
        self._subs[sid] = (_to_uri(item.locator), on_ended, on_fault)

        def _unsubscribe():
            self._subs.pop(sid, None)
        return _unsubscribe

    def is_showing(self, item: MediaItem) -> bool:
        return bool(self.path) and self.path == _to_uri(item.locator)

    def dispatch(self) -> int:
        """Run subscriber callbacks for bus events; call from the main loop."""
        n = 0
        while True:
            try:
                kind, uri = self._events.get_nowait()
            except queue.Empty:
                return n
            for sid, (sub_uri, on_ended, on_fault) in list(self._subs.items()):
                if sub_uri != uri or sid not in self._subs:
                    continue
                cb = on_ended if kind == "eos" else on_fault
                if cb is not None:
                    cb()
                    n += 1

    # ── frames ──────────────────────────────────────────────────────────────
    def decode_frame(self):
        data = None
        while True:
            try:
                data = self._frames.get_nowait()
            except queue.Empty:
                break
        if data is not None:
            self._last = self._bytes_to_arr(data)
        return self._last

    def close(self):
        self._subs.clear()
        if self._ml:
            self._ml.quit()
            self._ml = None
        if self._ml_thread and threading.current_thread() is not self._ml_thread:
            self._ml_thread.join(timeout=0.5)
        self._ml_thread = None
        self.player.set_state(Gst.State.NULL)
        self.path = ""

    # ── internals ───────────────────────────────────────────────────────────
    def _bytes_to_arr(self, data: bytes):
        stride = len(data) // self._h
        rows   = np.frombuffer(data, np.uint8).reshape((self._h, stride))
        return np.ascontiguousarray(rows[:, : self._w * 3]
                                    .reshape((self._h, self._w, 3)))

    def _on_sample(self, sink):
        samp = sink.emit("pull-sample")
        if samp:
            buf = samp.get_buffer()
            ok, mi = buf.map(Gst.MapFlags.READ)
            if ok:
                try:
                    self._frames.put_nowait(bytes(mi.data))
                except queue.Full:
                    pass
                buf.unmap(mi)
        return Gst.FlowReturn.OK

    def _on_bus_msg(self, bus, msg):
        # GLib thread: only queue, never touch engine state here
        if msg.type == Gst.MessageType.EOS:
            self._events.put(("eos", self.path))
        elif msg.type == Gst.MessageType.ERROR:
            err, dbg = msg.parse_error()
            log.warning("row %s: GStreamer error on %s: %s", self.row, self.path, err.message)
            self._events.put(("error", self.path))
        return True
