from types import SimpleNamespace

from conftest import make_catalog
import pytest

from app.viewmodels.main_vm import (
    CATALOG_CHANGED,
    CURSOR_CHANGED,
    METADATA_CHANGED,
    MODE_CHANGED,
    SLIDESHOW_CHANGED,
    BrowserVM,
)
from core.errors import IOFailure, UnreadableFile
from core.models import (
    FolderCatalog,
    MetadataRecord,
    SlideshowState,
    ThumbnailResult,
    ThumbnailStatus,
    ViewMode,
)
from core.services.interfaces import DeleteResult
from core.services.slideshow import INTERVAL_PRESETS


class FakeThumbnails:
    def __init__(self):
        self.invalidated = []
        self.cancelled = []
        self.cleared = 0

    def request(self, path, callback=None):
        return ThumbnailResult(path=path, status=ThumbnailStatus.PENDING)

    def cancel(self, path):
        self.cancelled.append(path)
        return False

    def invalidate(self, path):
        self.invalidated.append(path)

    def clear(self):
        self.cleared += 1

    def shutdown(self, wait=True):
        pass


class FakeDeleter:
    def __init__(self, fail=False):
        self.fail = fail
        self.deleted = []

    def delete_to_recycle(self, paths):
        if self.fail:
            return DeleteResult(success_paths=[], failed=[(p, "denied") for p in paths])
        self.deleted.extend(paths)
        return DeleteResult(success_paths=list(paths), failed=[])


def _scanner(path):
    if path == "missing":
        raise IOFailure(path, "No such file or directory")
    if path == "/empty":
        return FolderCatalog(directory=path)
    return make_catalog("1.jpg", "2.jpg", "3.jpg", directory=path)


@pytest.fixture
def posted():
    return []


@pytest.fixture
def thumbnails():
    return FakeThumbnails()


@pytest.fixture
def vm(posted, thumbnails):
    extractor = SimpleNamespace(extract=lambda path: MetadataRecord(file_name=path))
    vm = BrowserVM(
        extractor=extractor,
        thumbnails=thumbnails,
        delete_service=FakeDeleter(),
        dispatch=posted.append,
        scanner=_scanner,
    )
    yield vm
    vm.close()


def _drain(posted):
    while posted:
        posted.pop(0)()


def test_scan_folder_sets_catalog_and_notifies(vm):
    events = []
    vm.add_listener(events.append)
    vm.scan_folder("/album")
    assert len(vm.catalog) == 3
    assert vm.cursor.index == 0
    assert events == [CATALOG_CHANGED, CURSOR_CHANGED]


def test_scan_error_keeps_previous_catalog(vm, posted, wait_until):
    vm.scan_folder("/album")
    errors = []
    vm.load_folder("missing", on_error=errors.append)
    wait_until(lambda: posted)
    _drain(posted)

    assert vm.catalog.directory == "/album"
    assert len(errors) == 1
    assert isinstance(errors[0], IOFailure)


def test_synchronous_scan_error_propagates(vm):
    vm.scan_folder("/album")
    with pytest.raises(IOFailure):
        vm.scan_folder("missing")
    assert vm.catalog.directory == "/album"


def test_stale_scan_result_is_discarded(vm, posted, wait_until):
    vm.load_folder("/old")
    latest = vm.load_folder("/new")
    wait_until(lambda: len(posted) == 2)
    _drain(posted)

    assert latest == 2
    assert vm.catalog.directory == "/new"


def test_open_file_selects_it(vm, posted, wait_until):
    vm.open_file("/album/2.jpg")
    wait_until(lambda: posted)
    _drain(posted)
    assert vm.current_entry().name == "2.jpg"


def test_navigation_stops_at_edges(vm):
    vm.scan_folder("/album")
    assert not vm.navigate(-1)
    assert vm.navigate(2)
    assert not vm.navigate(1)
    assert vm.cursor.index == 2


def test_navigation_during_slideshow_wraps_and_restarts_interval(vm):
    vm.scan_folder("/album")
    vm.navigate(2)
    assert vm.start_slideshow()
    vm.tick(1.5)
    assert vm.slideshow.progress > 0

    assert vm.navigate(1)
    assert vm.cursor.index == 0
    assert vm.slideshow.progress == 0.0


def test_tick_advances_cursor(vm):
    vm.scan_folder("/album")
    vm.set_slideshow_interval(1)
    vm.start_slideshow()
    events = []
    vm.add_listener(events.append)
    assert vm.tick(1.0)
    assert vm.cursor.index == 1
    assert events == [CURSOR_CHANGED]


def test_delete_current_moves_to_following_entry(vm):
    vm.scan_folder("/album")
    vm.navigate(1)
    assert vm.delete_current()
    assert [e.name for e in vm.catalog] == ["1.jpg", "3.jpg"]
    assert vm.current_entry().name == "3.jpg"
    assert vm._thumbnails.invalidated == ["/album/2.jpg"]


def test_delete_last_entry_moves_back_then_empties(vm):
    vm.scan_folder("/album")
    vm.navigate(2)
    vm.delete_current()
    assert vm.current_entry().name == "2.jpg"
    vm.delete_current()
    vm.delete_current()
    assert vm.catalog.is_empty
    assert vm.current_entry() is None
    assert not vm.delete_current()


def test_failed_delete_keeps_catalog(vm):
    vm._deleter = FakeDeleter(fail=True)
    vm.scan_folder("/album")
    assert not vm.delete_current()
    assert len(vm.catalog) == 3


def test_emptying_catalog_stops_slideshow(vm):
    vm.scan_folder("/album")
    vm.start_slideshow()
    for _ in range(3):
        vm.delete_current()
    assert vm.slideshow_state is SlideshowState.STOPPED


def test_slideshow_mode_transitions(vm):
    events = []
    vm.add_listener(events.append)
    assert not vm.set_mode(ViewMode.SLIDESHOW)
    assert vm.mode is ViewMode.SINGLE

    vm.scan_folder("/album")
    assert vm.set_mode(ViewMode.SLIDESHOW)
    assert vm.slideshow_state is SlideshowState.PLAYING
    vm.toggle_slideshow()
    assert vm.slideshow_state is SlideshowState.PAUSED

    vm.stop_slideshow()
    assert vm.mode is ViewMode.SINGLE
    assert vm.slideshow_state is SlideshowState.STOPPED
    assert MODE_CHANGED in events


def test_grid_mode_stops_slideshow(vm):
    vm.scan_folder("/album")
    vm.set_mode(ViewMode.SLIDESHOW)
    vm.set_mode(ViewMode.GRID)
    assert vm.mode is ViewMode.GRID
    assert not vm.slideshow.is_active


def test_adjust_interval(vm):
    assert vm.set_slideshow_interval(5) == 5.0
    assert vm.adjust_slideshow_interval(1) == 6.0
    assert vm.adjust_slideshow_interval(-1) == 5.0


def test_interval_presets_apply_as_given(vm):
    for seconds in INTERVAL_PRESETS:
        assert vm.set_slideshow_interval(seconds) == float(seconds)


def test_load_metadata_keeps_latest_result(vm, posted, wait_until):
    vm.scan_folder("/album")
    events = []
    vm.add_listener(events.append)
    vm.load_metadata("/album/3.jpg")
    vm.load_metadata()
    wait_until(lambda: len(posted) == 2)
    _drain(posted)

    assert vm.metadata.file_name == "/album/1.jpg"
    assert vm.metadata_error is None
    assert events == [METADATA_CHANGED]


def test_load_metadata_error_is_reported(vm, posted, wait_until):
    def extract(path):
        raise UnreadableFile(path, "cannot identify image file")

    vm._extractor = SimpleNamespace(extract=extract)
    vm.load_metadata("/album/x.jpg")
    wait_until(lambda: posted)
    _drain(posted)

    assert vm.metadata is None
    assert vm.metadata_error == "cannot identify image file"


def test_describe(vm):
    vm.scan_folder("/album")
    assert vm.describe() == {
        "directory": "/album",
        "count": 3,
        "index": 0,
        "slideshow": "stopped",
        "mode": "single",
    }


def test_deleting_last_photo_leaves_slideshow_mode(vm):
    vm.scan_folder("/album")
    vm.set_mode(ViewMode.SLIDESHOW)
    events = []
    vm.add_listener(events.append)
    for _ in range(3):
        vm.delete_current()

    assert vm.mode is ViewMode.SINGLE
    assert vm.slideshow_state is SlideshowState.STOPPED
    assert MODE_CHANGED in events
    assert SLIDESHOW_CHANGED in events

    vm.scan_folder("/album")
    assert vm.set_mode(ViewMode.SLIDESHOW)
    assert vm.slideshow_state is SlideshowState.PLAYING


def test_loading_empty_folder_ends_slideshow(vm):
    vm.scan_folder("/album")
    vm.set_mode(ViewMode.SLIDESHOW)
    events = []
    vm.add_listener(events.append)
    vm.scan_folder("/empty")

    assert vm.mode is ViewMode.SINGLE
    assert vm.slideshow_state is SlideshowState.STOPPED
    assert events.index(SLIDESHOW_CHANGED) < events.index(CATALOG_CHANGED)


def test_loading_non_empty_folder_keeps_slideshow_running(vm):
    vm.scan_folder("/album")
    vm.set_mode(ViewMode.SLIDESHOW)
    events = []
    vm.add_listener(events.append)
    vm.scan_folder("/other")

    assert vm.mode is ViewMode.SLIDESHOW
    assert vm.slideshow_state is SlideshowState.PLAYING
    assert events == [CATALOG_CHANGED, CURSOR_CHANGED]


def test_removed_entry_cancels_its_thumbnail_decode(vm, thumbnails):
    vm.scan_folder("/album")
    vm.remove_entry("/album/2.jpg")

    assert thumbnails.cancelled == ["/album/2.jpg"]
    assert thumbnails.invalidated == ["/album/2.jpg"]


def test_thumbnails_cleared_only_when_directory_changes(vm, thumbnails):
    vm.scan_folder("/album")
    assert thumbnails.cleared == 1
    vm.scan_folder("/album")
    assert thumbnails.cleared == 1
    vm.scan_folder("/other")
    assert thumbnails.cleared == 2
