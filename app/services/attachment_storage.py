"""
Attachment byte storage on the local filesystem.

The report engine only tracks attachment metadata; bytes are kept under
``UPLOAD_FOLDER`` with a random storage key so that client file names
never become paths.
"""

import logging
import os
import uuid

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "image/jpeg",
    "image/png",
})

DEFAULT_MAX_SIZE = 10 * 1024 * 1024


class AttachmentStorage:
    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def _path(self, key: str) -> str:
        return os.path.join(self.root, secure_filename(key))

    def save(self, file_name: str, content: bytes) -> str:
        """Write ``content`` and return its storage key."""
        ext = os.path.splitext(secure_filename(file_name) or "")[1].lower()
        key = f"{uuid.uuid4().hex}{ext}"
        os.makedirs(self.root, exist_ok=True)
        with open(self._path(key), "wb") as fh:
            fh.write(content)
        logger.info("Stored attachment %s (%d bytes)", key, len(content))
        return key

    def path_for(self, key: str) -> str | None:
        path = self._path(key)
        return path if os.path.isfile(path) else None

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning("Attachment file %s already missing", key)
