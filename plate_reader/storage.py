"""
Disk storage for uploaded images.
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "/uploads"


class UploadStorage:
    """
    Saves uploads under a single directory with unique, timestamped names.

    The directory is created on the first save if it does not exist yet.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Create the upload directory if it does not exist yet."""
        if not self.root.exists():
            logger.info("Upload directory %s not found. Creating it.", self.root)
            self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _unique_name(original_filename: str | None) -> str:
        suffix = Path(original_filename or "").suffix.lower()
        millis = time.time_ns() // 1_000_000
        return f"{millis}-{uuid.uuid4().hex[:8]}{suffix}"

    def save(self, data: bytes, original_filename: str | None = None) -> Path:
        """Write ``data`` to a new file and return its path."""
        self.ensure_root()
        path = self.root / self._unique_name(original_filename)
        path.write_bytes(data)
        logger.info("Stored upload %r as %s", original_filename, path)
        return path

    @staticmethod
    def url_for(path: Path) -> str:
        """Public URL under which a stored upload is served."""
        return f"{UPLOADS_URL_PREFIX}/{path.name}"
