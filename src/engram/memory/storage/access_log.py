"""
Access Log

Append-only record of memory file accesses since the last rotation. Each
append reads the current log and replaces it with one more line while holding
the log's path lock. Rotation renames the live log into the archive directory;
the next append starts a fresh log.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from engram.memory.models.access_log import AccessAction, AccessLogEntry
from engram.memory.models.timestamps import format_timestamp, parse_timestamp, utc_now
from engram.memory.storage.files import atomic_write_text, read_text
from engram.memory.storage.formats import encode_log_line, parse_log_line
from engram.memory.storage.locks import FileLockHandle, FileLockManager, get_lock_manager

logger = logging.getLogger(__name__)

ARCHIVE_NAME_RE = re.compile(r"^access-(?P<stamp>.+?Z?)(?:-\d+)?\.log$")


def archive_filename(moment: datetime) -> str:
    """``access-<timestamp>.log`` with ':' replaced so the name is portable."""
    return f"access-{format_timestamp(moment).replace(':', '-')}.log"


def _archive_timestamp(name: str) -> Optional[datetime]:
    match = ARCHIVE_NAME_RE.match(name)
    if not match:
        return None
    stamp = match.group("stamp")
    date_part, sep, time_part = stamp.partition("T")
    if not sep:
        return None
    try:
        return parse_timestamp(f"{date_part}T{time_part.replace('-', ':')}")
    except ValueError:
        return None


@dataclass
class LogSnapshot:
    """Entries read from the live log and the length of text they came from."""

    entries: List[AccessLogEntry] = field(default_factory=list)
    size: int = 0


class AccessLog:
    """File-backed access log with atomic rotation."""

    def __init__(
        self,
        path: Union[str, Path],
        archive_dir: Optional[Union[str, Path]] = None,
        lock_manager: Optional[FileLockManager] = None,
    ):
        self.path = Path(path)
        self.archive_dir = Path(archive_dir) if archive_dir else self.path.parent / "archive"
        self._locks = lock_manager or get_lock_manager()

    def lock(self) -> FileLockHandle:
        """Acquire the log's path lock. Raises ``LockHeldError`` if held."""
        return self._locks.acquire(self.path)

    def append(self, action: AccessAction, file_path: str, timestamp: Optional[datetime] = None) -> AccessLogEntry:
        """Record one access."""
        entry = AccessLogEntry(timestamp=timestamp or utc_now(), action=AccessAction(action), file_path=str(file_path))
        with self._locks.hold(self.path):
            self._append_locked(entry)
        return entry

    def _append_locked(self, entry: AccessLogEntry) -> None:
        existing = read_text(self.path) or ""
        if existing and not existing.endswith("\n"):
            existing += "\n"
        atomic_write_text(self.path, f"{existing}{encode_log_line(entry)}\n")
        logger.debug(f"Logged {entry.action.value} for {entry.file_path}")

    def read_all(self) -> List[AccessLogEntry]:
        """Parse every well-formed line, skipping malformed ones."""
        return self._parse(read_text(self.path) or "")

    def _parse(self, text: str) -> List[AccessLogEntry]:
        entries: List[AccessLogEntry] = []
        skipped = 0
        for line in text.splitlines():
            if not line.strip():
                continue
            entry = parse_log_line(line)
            if entry is None:
                skipped += 1
                continue
            entries.append(entry)
        if skipped:
            logger.warning(f"Skipped {skipped} malformed access log line(s) in {self.path}")
        return entries

    def is_empty(self) -> bool:
        try:
            return self.path.stat().st_size == 0
        except FileNotFoundError:
            return True

    async def snapshot(self, timeout: Optional[float] = None) -> LogSnapshot:
        """Read the log under its lock, remembering how much of it was read.

        Waits for a foreground writer to release the log, up to ``timeout``.
        """
        async with self._locks.hold_async(self.path, timeout=timeout):
            text = read_text(self.path) or ""
        return LogSnapshot(entries=self._parse(text), size=len(text))

    def archive_and_clear(self, now: Optional[datetime] = None, processed_size: Optional[int] = None) -> Optional[Path]:
        """Rotate the live log into the archive directory.

        With ``processed_size`` (from ``snapshot``) only that prefix is
        archived; lines appended after the snapshot stay in the live log.
        Returns the archive path, or ``None`` when there was nothing to rotate.
        """
        with self._locks.hold(self.path):
            return self._archive_locked(now, processed_size)

    async def archive_and_clear_async(
        self,
        now: Optional[datetime] = None,
        processed_size: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Path]:
        async with self._locks.hold_async(self.path, timeout=timeout):
            return self._archive_locked(now, processed_size)

    def _next_archive_path(self, now: Optional[datetime]) -> Path:
        name = archive_filename(now or utc_now())
        destination = self.archive_dir / name
        suffix = 1
        while destination.exists():
            destination = self.archive_dir / f"{name[:-len('.log')]}-{suffix}.log"
            suffix += 1
        return destination

    def _archive_locked(self, now: Optional[datetime], processed_size: Optional[int]) -> Optional[Path]:
        if self.is_empty():
            if self.path.exists():
                self.path.unlink()
            return None

        self.archive_dir.mkdir(parents=True, exist_ok=True)
        destination = self._next_archive_path(now)

        text = read_text(self.path) if processed_size is not None else None
        if text is not None and len(text) > processed_size:
            if processed_size == 0:
                return None
            atomic_write_text(destination, text[:processed_size])
            atomic_write_text(self.path, text[processed_size:])
            logger.info(
                f"Archived {processed_size} characters of the access log to {destination}; newer entries kept"
            )
            return destination

        os.replace(self.path, destination)
        logger.info(f"Archived access log to {destination}")
        return destination

    def archives(self) -> List[Path]:
        if not self.archive_dir.is_dir():
            return []
        return sorted(p for p in self.archive_dir.iterdir() if ARCHIVE_NAME_RE.match(p.name))

    def last_archived_at(self) -> Optional[datetime]:
        """Time of the most recent rotation, derived from archive filenames."""
        stamps = [stamp for stamp in (_archive_timestamp(p.name) for p in self.archives()) if stamp]
        return max(stamps) if stamps else None
