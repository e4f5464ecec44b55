"""Minimal viewer window wired to `BrowserVM`.

Single view (image plus metadata panel), a thumbnail grid, and a slideshow
driven by a 50 ms `QTimer`. Everything here is presentation; state lives in
the view-model.
"""

from __future__ import annotations

import os

from PySide6.QtCore import QSize, Qt, QTimer, Signal
from PySide6.QtGui import QIcon, QImage, QKeyEvent, QPixmap
from PySide6.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QStackedWidget,
    QWidget,
)
from loguru import logger

from app.viewmodels.main_vm import (
    CATALOG_CHANGED,
    CURSOR_CHANGED,
    METADATA_CHANGED,
    MODE_CHANGED,
    SLIDESHOW_CHANGED,
    BrowserVM,
)
from app.views.image_tasks import ImageTaskRunner, QImageDecoder
from core.errors import IOFailure
from core.models import SlideshowState, ThumbnailResult, ViewMode
from core.services.metadata_format import metadata_sections
from core.services.slideshow import INTERVAL_PRESETS

TICK_MS = 50
PRESET_KEYS = (Qt.Key_1, Qt.Key_2, Qt.Key_3, Qt.Key_4)
PATH_ROLE = Qt.UserRole


class MainWindow(QMainWindow):
    """Viewer main window."""

    imageLoaded = Signal(str, str, object)  # token, path, QImage

    def __init__(
        self, vm: BrowserVM, decoder: QImageDecoder, thumb_side: int = 300, preview_side: int = 0
    ) -> None:
        super().__init__()
        self._vm = vm
        self._thumb_side = thumb_side
        self._preview_side = preview_side
        self._runner = ImageTaskRunner(decoder=decoder, receiver=self)
        self._pending_token: str | None = None
        self._pixmap: QPixmap | None = None

        self._image_label = QLabel(alignment=Qt.AlignCenter)
        self._image_label.setMinimumSize(320, 240)
        self._info_label = QLabel(alignment=Qt.AlignTop | Qt.AlignLeft)
        self._info_label.setFixedWidth(280)
        self._info_label.setTextFormat(Qt.RichText)

        single = QWidget()
        row = QHBoxLayout(single)
        row.addWidget(self._image_label, 1)
        row.addWidget(self._info_label)

        self._grid = QListWidget()
        self._grid.setViewMode(QListWidget.IconMode)
        self._grid.setIconSize(QSize(thumb_side, thumb_side))
        self._grid.setResizeMode(QListWidget.Adjust)
        self._grid.setUniformItemSizes(True)
        self._grid.itemActivated.connect(self._on_grid_activated)

        self._stack = QStackedWidget()
        self._stack.addWidget(single)
        self._stack.addWidget(self._grid)
        self.setCentralWidget(self._stack)

        self._timer = QTimer(self)
        self._timer.setInterval(TICK_MS)
        self._timer.timeout.connect(lambda: self._vm.tick(TICK_MS / 1000.0))

        self.imageLoaded.connect(self._on_image_loaded)
        self._vm.add_listener(self._on_vm_changed)

        self.setWindowTitle("LightViewer")
        self.resize(1200, 800)

    # View-model notifications
    def _on_vm_changed(self, what: str) -> None:
        if what == CATALOG_CHANGED:
            self._rebuild_grid()
        elif what == CURSOR_CHANGED:
            self._show_current()
        elif what == METADATA_CHANGED:
            self._show_metadata()
        elif what == MODE_CHANGED:
            self._stack.setCurrentIndex(1 if self._vm.mode is ViewMode.GRID else 0)
        elif what == SLIDESHOW_CHANGED:
            if self._vm.slideshow_state is SlideshowState.PLAYING:
                self._timer.start()
            else:
                self._timer.stop()
        self._update_status()

    def _show_current(self) -> None:
        entry = self._vm.current_entry()
        if entry is None:
            self._pixmap = None
            self._image_label.clear()
            self._info_label.setText("")
            return
        self._pending_token = self._runner.request_single_preview(entry.path, self._preview_side)
        self._vm.load_metadata(entry.path)
        item = self._grid.item(self._vm.cursor.index or 0)
        if item is not None:
            self._grid.setCurrentItem(item)

    def _on_image_loaded(self, token: str, path: str, image: QImage | None) -> None:
        if token != self._pending_token:
            return
        if image is None:
            logger.info("Cannot display {}", path)
            self._pixmap = None
            self._image_label.setText("Cannot decode image")
            return
        self._pixmap = QPixmap.fromImage(image)
        self._fit_pixmap()

    def _fit_pixmap(self) -> None:
        if self._pixmap is None:
            return
        self._image_label.setPixmap(
            self._pixmap.scaled(
                self._image_label.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation
            )
        )

    def _show_metadata(self) -> None:
        record = self._vm.metadata
        if record is None:
            self._info_label.setText(self._vm.metadata_error or "No EXIF data")
            return
        parts: list[str] = []
        for title, rows in metadata_sections(record):
            parts.append(f"<h4>{title}</h4>")
            parts.extend(f"<div><b>{label}</b>: {value}</div>" for label, value in rows)
        self._info_label.setText("".join(parts))

    def _rebuild_grid(self) -> None:
        self._grid.clear()
        for entry in self._vm.catalog:
            item = QListWidgetItem(entry.name)
            item.setData(PATH_ROLE, entry.path)
            item.setSizeHint(QSize(self._thumb_side + 16, self._thumb_side + 32))
            self._grid.addItem(item)
            result = self._vm.request_thumbnail(entry.path, self._on_thumbnail)
            if result.is_ready:
                self._on_thumbnail(result)

    def _on_thumbnail(self, result: ThumbnailResult) -> None:
        idx = self._vm.catalog.locate(result.path)
        item = self._grid.item(idx) if idx is not None else None
        if item is None:
            return
        if result.is_ready:
            item.setIcon(QIcon(QPixmap.fromImage(result.image)))
        else:
            item.setToolTip(result.error or "Cannot decode image")

    def _on_grid_activated(self, item: QListWidgetItem) -> None:
        self._vm.select(item.data(PATH_ROLE))
        self._vm.set_mode(ViewMode.SINGLE)

    def _update_status(self) -> None:
        state = self._vm.describe()
        if not state["count"]:
            self.statusBar().showMessage("Press Ctrl+O to open a folder")
            return
        text = f"{(state['index'] or 0) + 1} / {state['count']}  {state['directory']}"
        if self._vm.slideshow.is_active:
            text += f"  [{state['slideshow']} {self._vm.slideshow.interval:.0f}s]"
        self.statusBar().showMessage(text)

    # Commands
    def open_path(self, path: str) -> None:
        def report(error: IOFailure) -> None:
            self.statusBar().showMessage(f"Cannot read folder: {error}", 5000)

        if os.path.isdir(path):
            self._vm.load_folder(path, on_error=report)
        else:
            self._vm.open_file(path, on_error=report)

    def choose_folder(self) -> None:
        path = QFileDialog.getExistingDirectory(self, "Open Folder")
        if path:
            self.open_path(path)

    def keyPressEvent(self, event: QKeyEvent) -> None:  # noqa: N802
        key = event.key()
        vm = self._vm
        if key == Qt.Key_Right:
            vm.navigate(1)
        elif key == Qt.Key_Left:
            vm.navigate(-1)
        elif key == Qt.Key_Space and vm.slideshow.is_active:
            vm.toggle_slideshow()
        elif key == Qt.Key_F5:
            vm.set_mode(ViewMode.SLIDESHOW)
        elif key == Qt.Key_Escape:
            vm.stop_slideshow()
        elif key == Qt.Key_G:
            vm.set_mode(ViewMode.SINGLE if vm.mode is ViewMode.GRID else ViewMode.GRID)
        elif key in (Qt.Key_Plus, Qt.Key_Equal):
            vm.adjust_slideshow_interval(1)
        elif key == Qt.Key_Minus:
            vm.adjust_slideshow_interval(-1)
        elif key in PRESET_KEYS:
            vm.set_slideshow_interval(INTERVAL_PRESETS[PRESET_KEYS.index(key)])
        elif key == Qt.Key_I:
            self._info_label.setVisible(not self._info_label.isVisible())
        elif key == Qt.Key_Delete:
            if not vm.delete_current():
                self.statusBar().showMessage("Delete failed", 3000)
        elif key == Qt.Key_O and event.modifiers() & Qt.ControlModifier:
            self.choose_folder()
        else:
            super().keyPressEvent(event)

    def resizeEvent(self, event) -> None:  # noqa: N802
        super().resizeEvent(event)
        self._fit_pixmap()

    def closeEvent(self, event) -> None:  # noqa: N802
        self._timer.stop()
        self._vm.remove_listener(self._on_vm_changed)
        self._vm.close()
        super().closeEvent(event)
