#!/usr/bin/env python3
"""
web_remote.py  –  remote control and health page for the kiosk display

Routes
------
/               → control page (kiosk buttons, per-row skip, live status)
/status         → JSON: selected kiosk and every row's slots
/diag           → JSON: row timers and transitions, process and host health
/action?cmd=…   → refresh | fullscreen | toggle | quit | kiosk[&id=] | skip[&row=]
/log            → the runtime log

Handlers never touch the display directly; they post actions to
EventManager and the main loop applies them between frames.
"""

from __future__ import annotations
import http.server
import socketserver
import threading
import urllib.parse
import json
import logging
import time
import os
import traceback
import psutil
from typing import TYPE_CHECKING, Any, Optional

from events import EventManager
import config

if TYPE_CHECKING:                       # avoid circular import at runtime
    from app import KioskDisplay

log = logging.getLogger(__name__)

_started     = time.monotonic()
_proc        = psutil.Process()
_last_crash: Optional[str] = None


def _uptime(secs: float) -> str:
    h, rem = divmod(int(secs), 3600)
    m, s   = divmod(rem, 60)
    return f"{h}:{m:02}:{s:02}"


def diagnostics(kiosk: "KioskDisplay") -> dict:
    """Health of the display: what each row's scheduler holds, plus host load."""
    rows = {}
    for n, eng in kiosk.rows.items():
        rows[n] = {
            "timers":        eng.pending_timers(),
            "in_transition": eng.coordinator.in_transition(),
            "armed":         eng.advancer.armed,
            "items":         eng.playlist.length(),
        }
    with _proc.oneshot():
        rss = _proc.memory_info().rss
        cpu = _proc.cpu_percent()
        threads = _proc.num_threads()
    try:
        load = ", ".join(f"{x:.2f}" for x in os.getloadavg())
    except (AttributeError, OSError):
        load = "N/A"
    return {
        "kiosk":      kiosk.kiosk,
        "rows":       rows,
        "uptime":     _uptime(time.monotonic() - _started),
        "process":    {"cpu_percent": cpu, "rss_mb": rss // 1024**2, "threads": threads},
        "host":       {"cpu_percent": psutil.cpu_percent(),
                       "mem_percent": psutil.virtual_memory().percent,
                       "load_avg":    load},
        "http_crash": _last_crash,
    }


def parse_action(query: str) -> dict | None:
    """Map an /action query string to an EventManager action (None = bad cmd)."""
    qs  = urllib.parse.parse_qs(query)
    cmd = qs.get("cmd", [""])[0]

    if cmd == "refresh":
        return {"type": "refresh"}
    if cmd == "fullscreen":
        return {"type": "toggle_fullscreen"}
    if cmd == "toggle":
        return {"type": "toggle_overlay"}
    if cmd == "quit":
        return {"type": "quit"}
    if cmd == "kiosk":
        kiosk = qs.get("id", ["next"])[0]
        if kiosk != "next" and kiosk not in config.KIOSK_LIST:
            return None
        return {"type": "select_kiosk", "kiosk": kiosk}
    if cmd == "skip":
        raw = qs.get("row", [""])[0]
        if not raw:
            return {"type": "skip", "row": None}
        if not raw.isdigit() or not 1 <= int(raw) <= config.ROW_COUNT:
            return None
        return {"type": "skip", "row": int(raw)}
    return None


class _Server(socketserver.ThreadingMixIn, http.server.HTTPServer):
    daemon_threads      = True
    allow_reuse_address = True

    def __init__(self, addr, kiosk: "KioskDisplay"):
        super().__init__(addr, RemoteHandler)
        self.kiosk = kiosk


class RemoteHandler(http.server.BaseHTTPRequestHandler):
    def log_message(self, fmt, *args):
        log.debug("http %s - " + fmt, self.address_string(), *args)

    def do_GET(self):
        parsed = urllib.parse.urlparse(self.path)
        kiosk  = self.server.kiosk            # type: ignore[attr-defined]

        if parsed.path == "/":
            self._reply(200, "text/html; charset=utf-8", _page().encode("utf-8"))
        elif parsed.path == "/status":
            self._json(kiosk.status())
        elif parsed.path == "/diag":
            self._json(diagnostics(kiosk))
        elif parsed.path == "/log":
            try:
                with open(config.LOG_FILE, "rb") as f:
                    self._reply(200, "text/plain; charset=utf-8", f.read())
            except OSError:
                self.send_error(404, "no log yet")
        elif parsed.path == "/action":
            act = parse_action(parsed.query)
            if act is None:
                self.send_error(400, "unknown cmd")
                return
            EventManager.post(act)
            self.send_response(204)
            self.end_headers()
        else:
            self.send_error(404, "Not found")

    def _json(self, obj: Any):
        self._reply(200, "application/json", json.dumps(obj).encode("utf-8"))

    def _reply(self, code: int, ctype: str, body: bytes):
        self.send_response(code)
        self.send_header("Content-Type", ctype)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


def _page() -> str:
    kiosks = "".join(
        f'<button onclick="act(\'kiosk&id={k}\')">{k}</button>' for k in config.KIOSK_LIST)
    skips = "".join(
        f'<button onclick="act(\'skip&row={n}\')">skip row {n}</button>'
        for n in range(1, config.ROW_COUNT + 1))
    return _PAGE.replace("{KIOSKS}", kiosks).replace("{SKIPS}", skips)


_PAGE = """<!doctype html><html><head><meta charset="utf-8">
<title>Kiosk rows</title>
<style>
 body{font-family:sans-serif;background:#111;color:#eee;margin:1em;}
 button{margin:3px;padding:6px 10px;background:#222;color:#eee;border:1px solid #555;}
 table{border-collapse:collapse;margin-top:1em;}
 td,th{border:1px solid #444;padding:4px 8px;text-align:left;}
</style></head><body>
<h2>Kiosk rows</h2>
<div>{KIOSKS}</div>
<div>{SKIPS} <button onclick="act('refresh')">reload</button>
<button onclick="act('toggle')">info</button>
<button onclick="act('fullscreen')">fullscreen</button>
<a href="/log">log</a></div>
<table id="rows"></table>
<p id="host"></p>
<script>
 function act(q){ fetch('/action?cmd=' + q); }
 function name(s){ return s ? s.locator + ' (' + s.phase + ')' : '-'; }
 async function tick(){
   try {
     const st = await (await fetch('/status')).json();
     const dg = await (await fetch('/diag')).json();
     let html = '<tr><th>row</th><th>showing</th><th>leaving</th><th>timers</th></tr>';
     for (const [n, r] of Object.entries(st.rows)){
       html += '<tr><td>' + n + '</td><td>' + name(r.incoming) + '</td><td>' +
               name(r.outgoing) + '</td><td>' + dg.rows[n].timers + '</td></tr>';
     }
     document.getElementById('rows').innerHTML = html;
     document.getElementById('host').textContent =
       st.kiosk + ' | up ' + dg.uptime + ' | rss ' + dg.process.rss_mb + ' MB | load ' +
       dg.host.load_avg;
   } catch(e){ console.error(e); }
 }
 setInterval(tick, 1000);
 tick();
</script>
</body></html>
"""


def start(kiosk: "KioskDisplay", port: int = getattr(config, "WEB_PORT", 8080)):
    """Serve in a daemon thread; a crashed server is restarted after a second."""
    def _run():
        global _last_crash
        while True:
            try:
                with _Server(("", port), kiosk) as httpd:
                    httpd.serve_forever()
            except Exception:
                _last_crash = traceback.format_exc()
                log.exception("web remote crashed; restarting")
                time.sleep(1)

    threading.Thread(target=_run, name="web-remote", daemon=True).start()
    log.info("web remote on port %s", port)
