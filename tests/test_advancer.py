import config
from advancer import Advancer
from conftest import img, vid


class Counter:
    def __init__(self):
        self.n = 0

    def __call__(self):
        self.n += 1


def _advancer(driver, playback=None, **kw):
    fired = Counter()
    return Advancer(driver.scheduler, fired, playback, **kw), fired


def test_static_item_fires_once_at_its_duration(driver):
    adv, fired = _advancer(driver)
    adv.arm(img("a", secs=10))

    driver.run_until(9.99)
    assert fired.n == 0
    driver.run_until(10.0)
    assert fired.n == 1
    driver.run_until(100.0)
    assert fired.n == 1
    assert not adv.armed


def test_rearm_leaves_a_single_pending_trigger(driver):
    adv, fired = _advancer(driver)
    adv.arm(img("a", secs=3))
    adv.arm(img("b", secs=5))
    assert driver.scheduler.pending() == 1

    driver.run_until(20.0)
    assert fired.n == 1


def test_disarm_is_idempotent(driver):
    adv, fired = _advancer(driver)
    adv.disarm()
    adv.arm(img("a"))
    adv.disarm()
    adv.disarm()
    assert driver.scheduler.pending() == 0
    driver.run_until(60.0)
    assert fired.n == 0


def test_non_positive_duration_is_floored(driver):
    adv, fired = _advancer(driver)
    adv.arm(img("a", secs=0))
    driver.run_until(0.0)
    assert fired.n == 0
    driver.run_until(config.MIN_DISPLAY_SEC)
    assert fired.n == 1


def test_timed_item_ignores_wall_clock(driver, playback):
    adv, fired = _advancer(driver, playback)
    adv.arm(vid("v"))
    assert driver.scheduler.pending() == 0

    driver.run_until(3600.0)
    assert fired.n == 0

    playback.end("v")
    assert fired.n == 1
    playback.end("v")
    assert fired.n == 1
    assert playback.subs == {}


def test_stale_ended_signal_is_ignored(driver, playback):
    adv, fired = _advancer(driver, playback)
    adv.arm(vid("v"))
    (_, on_ended, _), = playback.subs.values()
    adv.arm(vid("w"))

    on_ended()
    assert fired.n == 0
    assert adv.item.id == "w"


def test_fault_without_fallback_stalls(driver, playback):
    adv, fired = _advancer(driver, playback)
    adv.arm(vid("v"))
    playback.fault("v")
    driver.run_until(1000.0)
    assert fired.n == 0
    assert adv.armed


def test_fault_with_fallback_skips_after_delay(driver, playback):
    adv, fired = _advancer(driver, playback, fault_fallback=3.0)
    adv.arm(vid("v"))
    playback.fault("v")
    playback.fault("v")
    assert driver.scheduler.pending() == 1

    driver.run_until(2.9)
    assert fired.n == 0
    driver.run_until(3.0)
    assert fired.n == 1
    assert playback.subs == {}


def test_report_fault_when_disarmed_is_a_no_op(driver):
    adv, fired = _advancer(driver, fault_fallback=1.0)
    adv.report_fault()
    assert driver.scheduler.pending() == 0


def test_timed_item_without_playback_waits(driver):
    adv, fired = _advancer(driver)
    adv.arm(vid("v"))
    driver.run_until(500.0)
    assert fired.n == 0
    assert adv.armed
