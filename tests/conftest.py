import pytest

from playlist import MediaItem, MediaKind
from timing import Scheduler


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class Driver:
    """Fake clock + scheduler; firing each timer at its own deadline."""

    def __init__(self):
        self.clock = FakeClock()
        self.scheduler = Scheduler(self.clock)

    @property
    def now(self) -> float:
        return self.clock.now

    def run_until(self, t: float) -> None:
        while True:
            nd = self.scheduler.next_deadline()
            if nd is None or nd > t:
                break
            self.clock.now = max(self.clock.now, nd)
            self.scheduler.run_due()
        self.clock.now = max(self.clock.now, t)

    def advance(self, sec: float) -> None:
        self.run_until(self.clock.now + sec)


class FakePlayback:
    def __init__(self):
        self.restarted = []
        self.fail = set()
        self.subs = {}
        self._n = 0

    def restart(self, item):
        if item.id in self.fail:
            raise RuntimeError("decode error")
        self.restarted.append(item.id)

    def subscribe_ended(self, item, on_ended, on_fault=None):
        sid = self._n
        self._n += 1
        self.subs[sid] = (item.id, on_ended, on_fault)
        return lambda: self.subs.pop(sid, None)

    def _emit(self, item_id, which):
        for sid, sub in list(self.subs.items()):
            if sub[0] == item_id and sid in self.subs and sub[which] is not None:
                sub[which]()

    def end(self, item_id):
        self._emit(item_id, 1)

    def fault(self, item_id):
        self._emit(item_id, 2)


def img(item_id: str, secs: float = 5.0, row: int = 1) -> MediaItem:
    return MediaItem(id=item_id, locator=f"/media/{item_id}.jpg",
                     kind=MediaKind.STATIC, display_seconds=secs, row=row)


def vid(item_id: str, row: int = 1) -> MediaItem:
    return MediaItem(id=item_id, locator=f"/media/{item_id}.mp4",
                     kind=MediaKind.TIMED, row=row)


@pytest.fixture
def driver():
    return Driver()


@pytest.fixture
def playback():
    return FakePlayback()
