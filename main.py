from __future__ import annotations

import argparse
import locale
from pathlib import Path
import sys

from PySide6.QtWidgets import QApplication
from loguru import logger

from app.viewmodels.main_vm import BrowserVM
from app.views.image_tasks import QImageDecoder, UiDispatcher
from app.views.main_window import MainWindow
from infrastructure.delete_service import DeleteService
from infrastructure.logging import find_latest_log_file, init_logging
from infrastructure.metadata_service import MetadataExtractor
from infrastructure.settings import JsonSettings
from infrastructure.thumbnail_cache import ThumbnailCache

BASE_DIR = Path(__file__).parent


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Browse a folder of photographs")
    parser.add_argument("path", nargs="?", help="Folder or image file to open")
    parser.add_argument(
        "--settings", default=str(BASE_DIR / "settings.json"), help="Settings JSON path"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    return parser.parse_args(argv)


def init_locale() -> None:
    """Collate file names with the user's locale instead of the C default."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as ex:
        logger.warning("Cannot apply system collation, using code-point order: {}", ex)


def build_vm(settings: JsonSettings, dispatcher: UiDispatcher, decoder: QImageDecoder) -> BrowserVM:
    thumbnails = ThumbnailCache(
        decoder,
        max_dimension=settings.get_int("thumbnail.max_dimension", 300),
        max_workers=settings.get_int("thumbnail.workers", 4),
        capacity=settings.get_int("thumbnail.mem_cache", 512),
        dispatch=dispatcher,
    )
    return BrowserVM(
        extractor=MetadataExtractor(),
        thumbnails=thumbnails,
        delete_service=DeleteService(),
        dispatch=dispatcher,
        slideshow_interval=settings.get_float("slideshow.interval", 3.0),
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = JsonSettings(args.settings)
    level = "DEBUG" if args.verbose else settings.get("logging.level", "INFO")
    log_dir = init_logging(settings.get("logging.dir"), level, console=args.verbose)
    log_file = find_latest_log_file(str(log_dir))
    logger.info("LightViewer starting, logging to {}", log_file or log_dir)
    init_locale()

    app = QApplication(sys.argv[:1])
    dispatcher = UiDispatcher()
    decoder = QImageDecoder()
    vm = build_vm(settings, dispatcher, decoder)

    win = MainWindow(
        vm=vm,
        decoder=decoder,
        thumb_side=settings.get_int("thumbnail.max_dimension", 300),
        preview_side=settings.get_int("preview.max_dimension", 0),
    )
    win.statusBar().showMessage("Ready", 2000)
    win.show()
    if args.path:
        win.open_path(args.path)

    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
