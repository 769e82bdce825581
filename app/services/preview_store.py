"""Filesystem storage for generated previews.

Each preview is two files in the preview directory: ``<id>.html`` (the
artifact, written once) and ``<id>.json`` (a :class:`PreviewRecord` with the
expiry and engagement counters).
"""

import logging
import os
import re
import tempfile
import threading
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from app.config import get_settings
from app.models.preview_record import PreviewRecord

logger = logging.getLogger(__name__)

TRACKED_EVENTS = ("view", "cta_click")

_PREVIEW_ID_RE = re.compile(r"^[A-Za-z0-9\-]{1,64}$")


class PreviewNotFound(LookupError):
    def __init__(self, preview_id: str) -> None:
        super().__init__(f"Preview not found: {preview_id}")
        self.preview_id = preview_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PreviewStore:
    def __init__(self, directory: Optional[str] = None) -> None:
        self.directory = directory or get_settings().preview_dir
        # Serialises read-modify-write of the metadata files
        self._lock = threading.Lock()

    def _path(self, preview_id: str, suffix: str) -> str:
        if not _PREVIEW_ID_RE.match(preview_id):
            raise PreviewNotFound(preview_id)
        return os.path.join(self.directory, f"{preview_id}{suffix}")

    def save(self, record: PreviewRecord, html: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        self._write_atomic(self._path(record.preview_id, ".html"), html)
        self._write_record(record)
        logger.info("Preview stored", extra={"preview_id": record.preview_id})

    def _write_atomic(self, path: str, content: str) -> None:
        """Write *content* to *path* so readers only ever see a complete file."""
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp_path, path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    def _write_record(self, record: PreviewRecord) -> None:
        self._write_atomic(self._path(record.preview_id, ".json"), record.model_dump_json(indent=2))

    def load_record(self, preview_id: str) -> PreviewRecord:
        path = self._path(preview_id, ".json")
        if not os.path.isfile(path):
            raise PreviewNotFound(preview_id)
        with open(path, encoding="utf-8") as fh:
            return PreviewRecord.model_validate_json(fh.read())

    def load_html(self, preview_id: str) -> str:
        path = self._path(preview_id, ".html")
        if not os.path.isfile(path):
            raise PreviewNotFound(preview_id)
        with open(path, encoding="utf-8") as fh:
            return fh.read()

    @staticmethod
    def is_expired(record: PreviewRecord, now: Optional[datetime] = None) -> bool:
        expires_at = record.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at < (now or _utcnow())

    def record_event(self, preview_id: str, event: str) -> PreviewRecord:
        """Apply an engagement *event* (``view`` or ``cta_click``) to a preview."""
        if event not in TRACKED_EVENTS:
            logger.debug("Ignoring unknown event %r for %s", event, preview_id)
            return self.load_record(preview_id)

        with self._lock:
            record = self.load_record(preview_id)
            if event == "view":
                record.view_count += 1
                record.last_viewed_at = _utcnow()
            else:
                record.cta_clicked = True
            self._write_record(record)

        if event == "view" and record.view_count == 1:
            logger.info("Preview viewed for the first time", extra={"preview_id": preview_id})
        elif event == "cta_click":
            logger.info("Preview CTA clicked", extra={"preview_id": preview_id})
        return record


@lru_cache()
def get_preview_store() -> PreviewStore:
    return PreviewStore()
