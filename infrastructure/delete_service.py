"""Moves image files to the platform trash via Send2Trash.

The viewer never deletes outright: files go to the recycle bin so a mistaken
delete can be undone from the desktop.
"""

from __future__ import annotations

import os

from loguru import logger
from send2trash import send2trash

from core.services.interfaces import DeleteResult


class DeleteService:
    """Sends files to the recycle bin and reports per-path results."""

    def delete_to_recycle(self, paths: list[str]) -> DeleteResult:
        success: list[str] = []
        failed: list[tuple[str, str]] = []
        for p in paths:
            normalized_path = os.path.normpath(p)
            if not os.path.exists(normalized_path):
                logger.error("File does not exist: {}", normalized_path)
                failed.append((p, "File does not exist"))
                continue
            try:
                send2trash(normalized_path)
                success.append(p)
            except (UnicodeEncodeError, OSError) as ex:
                logger.error("Move to trash failed for {}: {}", normalized_path, ex)
                failed.append((p, str(ex)))
        logger.info("Trash: {} moved, {} failed", len(success), len(failed))
        return DeleteResult(success_paths=success, failed=failed)
