# config.py
"""
Configuration settings for the kiosk display.
"""
FPS   = 30

# ── Basic Application Settings ──────────────────────────────────────────────

# Root folder holding one sub-folder per kiosk (or a media.json manifest)
MEDIA_PATH = "media"

# Kiosks this display can impersonate; the selection survives restarts
KIOSK_LIST       = ["kiosk-1", "kiosk-2", "kiosk-3", "kiosk-4"]
DEFAULT_KIOSK    = "kiosk-1"
KIOSK_STATE_FILE = ".selected_kiosk"

# Independently rotating rows, stacked top to bottom
ROW_COUNT = 3

# Seconds between playlist reloads
PLAYLIST_REFRESH_SEC = 60.0

# Display settings
FULLSCREEN = True
WINDOWED_SIZE = (800, 600)

SHOW_OVERLAYS = False

# Controls (kiosk badge) disappear after this long without mouse/touch
CONTROLS_HIDE_SEC = 3.0

WEB_PORT = 8080
LOG_FILE = "runtime.log"

# ── Slide timing ───────────────────────────────────────────────────────────

CROSSFADE_SEC    = 2.0    # visual crossfade between outgoing and incoming
ENTER_DELAY_SEC  = 0.05   # hold "entering" this long before animating
RETIRE_GRACE_SEC = 0.1    # extra time before the outgoing slide is dropped

DEFAULT_DISPLAY_SEC = 10.0   # images without an explicit duration
MIN_DISPLAY_SEC     = 0.5    # floor for zero / negative image durations

# Seconds to wait before skipping a video that failed to play.
# None keeps the slide up until the next playlist or trigger arrives.
VIDEO_FAULT_FALLBACK_SEC = None
