"""Upload history tracking."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from modules.services.lutim_client import LutimInfo

logger = logging.getLogger(__name__)


class UploadHistory:
    """Ordered short-id keyed history of uploads.

    Keeps the serialized records together with the live LutimInfo objects so
    thumbnails can be shown without re-parsing. Both mappings always hold the
    same keys.
    """

    def __init__(self) -> None:
        self._records: Dict[str, str] = {}
        self._runtime: Dict[str, LutimInfo] = {}
        self._lock = threading.Lock()

    def add(self, short_id: str, serialized: str, info: LutimInfo) -> bool:
        """Insert a record; returns False and leaves the store unchanged on conflict."""
        if not short_id:
            logger.error("Refusing to store upload history entry without short id")
            return False
        with self._lock:
            if short_id in self._records or short_id in self._runtime:
                logger.error("Upload history already contains short id %s", short_id)
                return False
            self._records[short_id] = serialized
            self._runtime[short_id] = info
        return True

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    __len__ = count

    def has_entries(self) -> bool:
        """Return True when there is something to show in the history view."""
        return self.count() > 0

    def __contains__(self, short_id: object) -> bool:
        with self._lock:
            return short_id in self._records

    def get(self, short_id: str) -> Optional[LutimInfo]:
        with self._lock:
            return self._runtime.get(short_id)

    def entries(self) -> List[Tuple[str, str]]:
        """Return (short id, serialized record) pairs, oldest first."""
        with self._lock:
            return list(self._records.items())

    def list(self, limit: Optional[int] = None) -> List[LutimInfo]:
        """Return the most recent records, newest first."""
        with self._lock:
            records = list(reversed(self._runtime.values()))
        if limit is not None:
            records = records[:limit]
        return records

    def trim(self, max_entries: int) -> List[str]:
        """Evict the oldest entries beyond max_entries and return their short ids."""
        with self._lock:
            overflow = len(self._records) - max_entries
            if overflow <= 0:
                return []
            evicted = list(self._records.keys())[:overflow]
            for short_id in evicted:
                del self._records[short_id]
                self._runtime.pop(short_id, None)
        return evicted


class UploadHistoryService:
    """JSON-backed persistence for :class:`UploadHistory`."""

    def __init__(self, history_path: Path, max_entries: int = 100) -> None:
        self.history_path = Path(history_path)
        self.max_entries = max_entries
        self._save_lock = threading.Lock()

    def load(self) -> UploadHistory:
        """Read the history file; a missing file yields an empty history."""
        history = UploadHistory()
        if not self.history_path.exists():
            return history

        with self.history_path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        if not isinstance(data, dict):
            raise ValueError(f"History file {self.history_path} does not hold an object")

        for short_id, serialized in data.items():
            try:
                info = LutimInfo.from_json(serialized)
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable history entry %s: %s", short_id, exc)
                continue
            history.add(short_id, serialized, info)

        evicted = history.trim(self.max_entries)
        if evicted:
            logger.info("Dropped %d old history entries", len(evicted))
        return history

    def save(self, history: UploadHistory) -> None:
        """Trim to capacity and write the history file atomically.

        Saves are serialized so an older snapshot never replaces a newer file.
        """
        with self._save_lock:
            self._write(history)

    def _write(self, history: UploadHistory) -> None:
        evicted = history.trim(self.max_entries)
        if evicted:
            logger.info("Dropped %d old history entries", len(evicted))

        self.history_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.history_path.parent, prefix=".history-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(dict(history.entries()), fp, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.history_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
