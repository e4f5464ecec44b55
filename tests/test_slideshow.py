from conftest import make_catalog
import pytest

from core.models import FolderCatalog, SlideshowState
from core.services.navigation import NavigationCursor
from core.services.slideshow import (
    DEFAULT_INTERVAL,
    INTERVAL_PRESETS,
    SlideshowController,
    clamp_interval,
)


def _controller(count: int = 3, interval: float = 2.0) -> SlideshowController:
    names = [f"{i}.jpg" for i in range(count)]
    return SlideshowController(NavigationCursor(make_catalog(*names)), interval)


def test_defaults():
    show = SlideshowController(NavigationCursor())
    assert show.state is SlideshowState.STOPPED
    assert show.interval == DEFAULT_INTERVAL
    assert show.progress == 0.0
    assert INTERVAL_PRESETS == (2, 3, 5, 10)


def test_start_requires_non_empty_catalog():
    show = SlideshowController(NavigationCursor(FolderCatalog()))
    assert not show.start()
    assert show.state is SlideshowState.STOPPED


def test_tick_only_advances_while_playing():
    show = _controller()
    assert not show.tick(5.0)
    assert show.cursor.index == 0

    show.start()
    assert not show.tick(1.0)
    assert show.progress == pytest.approx(0.5)
    assert show.tick(1.0)
    assert show.cursor.index == 1
    assert show.progress == 0.0


def test_tick_ignores_non_positive_delta():
    show = _controller()
    show.start()
    assert not show.tick(0)
    assert not show.tick(-1)
    assert show.progress == 0.0


def test_auto_advance_wraps_to_first():
    show = _controller(count=2)
    show.start()
    show.tick(2.0)
    assert show.cursor.index == 1
    show.tick(2.0)
    assert show.cursor.index == 0


def test_previous_from_first_wraps_to_last():
    show = _controller(count=4)
    show.start()
    show.tick(1.0)
    assert show.previous() == 3
    assert show.progress == 0.0
    assert show.next() == 0


def test_pause_freezes_progress():
    show = _controller()
    show.start()
    show.tick(1.0)
    show.pause()
    assert show.state is SlideshowState.PAUSED
    assert not show.tick(10.0)
    assert show.progress == pytest.approx(0.5)
    show.resume()
    assert show.state is SlideshowState.PLAYING


def test_toggle_does_nothing_when_stopped():
    show = _controller()
    show.toggle_play_pause()
    assert show.state is SlideshowState.STOPPED
    show.start()
    show.toggle_play_pause()
    assert show.state is SlideshowState.PAUSED
    show.toggle_play_pause()
    assert show.state is SlideshowState.PLAYING


def test_stop_keeps_cursor_position():
    show = _controller()
    show.start()
    show.tick(2.0)
    show.stop()
    assert show.state is SlideshowState.STOPPED
    assert show.cursor.index == 1
    assert not show.is_active


@pytest.mark.parametrize(
    "requested, expected", [(0.2, 1.0), (1, 1.0), (7.5, 7.5), (30, 30.0), (120, 30.0)]
)
def test_interval_is_clamped(requested, expected):
    assert clamp_interval(requested) == expected
    show = _controller()
    assert show.set_interval(requested) == expected


def test_interval_change_keeps_progress_fraction():
    show = _controller(interval=4.0)
    show.start()
    show.tick(2.0)
    show.set_interval(10.0)
    assert show.progress == pytest.approx(0.5)
    assert not show.tick(4.0)
    assert show.tick(2.0)


def test_increase_and_decrease_interval_stay_in_bounds():
    show = _controller(interval=29.5)
    assert show.increase_interval() == 30.0
    show.set_interval(1.5)
    assert show.decrease_interval() == 1.0
