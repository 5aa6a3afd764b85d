"""Temporary file management for uploads and conversion outputs.

Every file the service creates lives in one working directory. Removal is
best effort and idempotent: a file that is already gone is not an error.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Iterable, Optional

from app.utils.helpers import safe_stem

logger = logging.getLogger(__name__)


class TemporaryStorage:
    """Allocates and removes request-scoped paths in the working directory."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self._scheduled: dict[Path, asyncio.TimerHandle] = {}

    def ensure_directory(self) -> None:
        """Create the working directory if missing."""
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def allocate_upload_path(self, filename: str) -> Path:
        """Unique path for a staged upload."""
        suffix = Path(filename).suffix.lower()
        return self.base_dir / f"{uuid.uuid4().hex}_{safe_stem(filename)}{suffix}"

    def allocate_output_path(self, filename: str, target_format: str) -> Path:
        """Unique path for a conversion output derived from the upload name."""
        return self.base_dir / f"{safe_stem(filename)}-{uuid.uuid4().hex}.{target_format}"

    def remove(self, path: Optional[Path]) -> bool:
        """
        Delete a file, swallowing errors.

        Args:
            path: File to delete; ``None`` is a no-op

        Returns:
            True if a file was actually removed
        """
        if path is None:
            return False

        handle = self._scheduled.pop(Path(path), None)
        if handle is not None:
            handle.cancel()

        try:
            Path(path).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to delete temp file {path}: {e}")
            return False

        logger.info(f"Deleted temp file: {path}")
        return True

    def remove_later(self, path: Path, delay: float) -> None:
        """Schedule removal on the running event loop after ``delay`` seconds."""
        path = Path(path)
        if path in self._scheduled:
            return
        loop = asyncio.get_running_loop()
        self._scheduled[path] = loop.call_later(delay, self.remove, path)
        logger.debug(f"Scheduled removal of {path} in {delay:.1f}s")

    @property
    def pending(self) -> list[Path]:
        """Paths with a scheduled, not yet executed removal."""
        return list(self._scheduled)

    def flush_pending(self) -> int:
        """Remove every file with a scheduled removal right now (used at shutdown)."""
        paths = list(self._scheduled)
        for path in paths:
            self.remove(path)
        return len(paths)


class CleanupScope:
    """
    Cleanup obligations for one request.

    Paths are registered when they come into existence; each obligation is
    executed at most once, whichever exit path reaches it first.
    """

    def __init__(self, storage: TemporaryStorage, paths: Iterable[Path] = ()):
        self.storage = storage
        self._obligations: set[Path] = set()
        for path in paths:
            self.register(path)

    def register(self, path: Path) -> Path:
        self._obligations.add(Path(path))
        return path

    def release(self, path: Path) -> None:
        """Delete ``path`` now if it is still an open obligation."""
        path = Path(path)
        if path not in self._obligations:
            return
        self._obligations.discard(path)
        self.storage.remove(path)

    def release_later(self, path: Path, delay: float) -> None:
        """Delete ``path`` after ``delay`` seconds if it is still an open obligation."""
        path = Path(path)
        if path not in self._obligations:
            return
        self._obligations.discard(path)
        if delay <= 0:
            self.storage.remove(path)
        else:
            self.storage.remove_later(path, delay)

    def release_all(self) -> None:
        """Delete every remaining obligation immediately."""
        for path in list(self._obligations):
            self.release(path)

    @property
    def outstanding(self) -> list[Path]:
        return sorted(self._obligations)
