"""
playlist_builder.py  – turns kiosk media into per-row playlists

Two sources, in order of preference:
  1. <media>/media.json   – list of media-table records
                            {id, url, type, duration, row_slot, kiosk_id,
                             is_active, created_at}
  2. <media>/<kiosk>/row_<n>/  – loose image / video files, natural order
"""
from __future__ import annotations
import os, re, json, logging, typing as _t

import av

import config
from playlist import MediaItem, MediaKind

log = logging.getLogger(__name__)

MANIFEST_NAME = "media.json"

_IMAGE_RE = re.compile(r"\.(?:jpe?g|png|gif|bmp|webp)$", re.IGNORECASE)
_VIDEO_RE = re.compile(r"\.(?:mkv|mp4|mov|avi|webm|m4v)$", re.IGNORECASE)
_ROW_RE   = re.compile(r"(?i)^row[_\-]?0*(\d+)$")

# ---------- natural sort --------------------------------------------------
def _nat_key(s: str) -> list[_t.Union[int, str]]:
    return [int(t) if t.isdigit() else t.lower()
            for t in re.split(r"(\d+)", s)]

# ---------- probe ---------------------------------------------------------
def _probe_seconds(fp: str) -> float:
    """Clip length in seconds, 0.0 when unknown or unreadable."""
    try:
        with av.open(fp) as c:
            vs = next((s for s in c.streams if s.type == "video"), None)
            if vs is not None and vs.duration and vs.time_base:
                return max(0.0, float(vs.duration * vs.time_base))
            if c.duration:
                return max(0.0, c.duration / av.time_base)
    except Exception as e:
        log.debug("probe failed for %s: %s", fp, e)
    return 0.0


# ---------- records -------------------------------------------------------
def normalize_records(records: _t.Iterable[dict], kiosk: str) -> list[dict]:
    """
    Fill the defaults older rows lack (row_slot 1, active, kiosk-1), keep the
    active records of *kiosk*, oldest first.
    """
    out = []
    for rec in records:
        rec = dict(rec)
        try:
            rec["row_slot"] = int(rec.get("row_slot") or 1)
        except (TypeError, ValueError):
            rec["row_slot"] = 1
        rec["is_active"] = rec.get("is_active") is not False   # only an explicit false hides
        rec["kiosk_id"]  = rec.get("kiosk_id") or config.DEFAULT_KIOSK
        if rec["is_active"] and rec["kiosk_id"] == kiosk:
            out.append(rec)
    out.sort(key=lambda r: str(r.get("created_at") or ""))
    return out


def record_to_item(rec: dict) -> MediaItem:
    is_video = str(rec.get("type", "image")).lower() == "video"
    secs = rec.get("duration")
    try:
        # zero / negative survive here; the advancer floors them
        secs = config.DEFAULT_DISPLAY_SEC if secs in (None, "") else float(secs)
    except (TypeError, ValueError):
        secs = config.DEFAULT_DISPLAY_SEC
    return MediaItem(
        id=str(rec.get("id", rec.get("url", ""))),
        locator=str(rec.get("url", "")),
        kind=MediaKind.TIMED if is_video else MediaKind.STATIC,
        display_seconds=secs,
        row=rec.get("row_slot", 1),
    )


def split_rows(items: _t.Iterable[MediaItem],
               rows: int = config.ROW_COUNT) -> dict[int, list[MediaItem]]:
    """Every row 1..rows is present; items for other rows are dropped."""
    out: dict[int, list[MediaItem]] = {n: [] for n in range(1, rows + 1)}
    for it in items:
        if it.row in out:
            out[it.row].append(it)
    return out

# ---------- directory scan ------------------------------------------------
def scan_media_dir(root: str, kiosk: str) -> list[MediaItem]:
    base = os.path.join(root, kiosk)
    if not os.path.isdir(base):
        return []

    items: list[MediaItem] = []
    for d in sorted(os.listdir(base), key=_nat_key):
        m = _ROW_RE.match(d)
        full_dir = os.path.join(base, d)
        if not m or not os.path.isdir(full_dir):
            continue
        row = int(m.group(1))
        for fn in sorted(os.listdir(full_dir), key=_nat_key):
            fp = os.path.join(full_dir, fn)
            if _VIDEO_RE.search(fn):
                items.append(MediaItem(id=fp, locator=fp, kind=MediaKind.TIMED,
                                       duration=_probe_seconds(fp), row=row))
            elif _IMAGE_RE.search(fn):
                items.append(MediaItem(id=fp, locator=fp, kind=MediaKind.STATIC,
                                       display_seconds=config.DEFAULT_DISPLAY_SEC,
                                       row=row))
    return items

# ---------- loader --------------------------------------------------------
def load_rows(root: str | None = None,
              kiosk: str = config.DEFAULT_KIOSK,
              rows: int = config.ROW_COUNT) -> dict[int, list[MediaItem]]:
    root = root or config.MEDIA_PATH
    manifest = os.path.join(root, MANIFEST_NAME)

    if os.path.isfile(manifest):
        try:
            with open(manifest, "r", encoding="utf-8") as f:
                records = json.load(f)
            if isinstance(records, dict):
                records = records.get("media_items", [])
            items = [record_to_item(r) for r in normalize_records(records, kiosk)]
            return split_rows(items, rows)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            log.error("bad manifest %s (%s); scanning folders instead", manifest, e)

    return split_rows(scan_media_dir(root, kiosk), rows)


# -------------------------------------------------------------------------
if __name__ == "__main__":
    import argparse
    ap = argparse.ArgumentParser(description="Show the playlists a kiosk would play")
    ap.add_argument("root", nargs="?", default=config.MEDIA_PATH,
                    help="media folder (default: ./media)")
    ap.add_argument("--kiosk", default=config.DEFAULT_KIOSK, choices=config.KIOSK_LIST)
    args = ap.parse_args()

    for row, row_items in load_rows(args.root, args.kiosk).items():
        print(f"ROW {row}:  items={len(row_items)}")
        for it in row_items:
            extra = (f"{it.duration:7.2f}s video" if it.is_timed
                     else f"{it.display_seconds:7.2f}s image")
            print(f"   {extra}  {os.path.basename(it.locator)}")
