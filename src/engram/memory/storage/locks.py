"""
Per-path file locks.

Locks are process-local: they serialize in-process writers such as a
background Organization pass and a foreground Promotion touching the same
file. They do not provide exclusion across processes. Paths are keyed by their
resolved absolute form so ``a/../b.md`` and ``b.md`` share one lock.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Dict, Iterator, Optional, Union

from engram.core.exceptions import LockHeldError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def lock_key(path: PathLike) -> str:
    return str(Path(path).expanduser().resolve())


@dataclass
class FileLockHandle:
    """Releasable handle returned by ``FileLockManager.acquire``."""

    path: str
    manager: "FileLockManager" = field(repr=False)
    acquired_at: float = field(default_factory=time.monotonic)

    def release(self) -> None:
        self.manager.release(self.path)

    def __enter__(self) -> "FileLockHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


class FileLockManager:
    """Registry of held path locks."""

    def __init__(self) -> None:
        self._held: Dict[str, FileLockHandle] = {}
        self._guard = threading.Lock()

    def acquire(self, path: PathLike) -> FileLockHandle:
        """Acquire the lock for ``path``.

        Raises:
            LockHeldError: If the lock for this exact path is already held.
        """
        key = lock_key(path)
        with self._guard:
            if key in self._held:
                raise LockHeldError(key)
            handle = FileLockHandle(path=key, manager=self)
            self._held[key] = handle
        logger.debug(f"Acquired lock for {key}")
        return handle

    def release(self, path: PathLike) -> None:
        """Release the lock for ``path``. Releasing an unheld lock is a no-op."""
        key = lock_key(path)
        with self._guard:
            released = self._held.pop(key, None)
        if released is not None:
            logger.debug(f"Released lock for {key}")

    def is_locked(self, path: PathLike) -> bool:
        with self._guard:
            return lock_key(path) in self._held

    @property
    def held_paths(self) -> list:
        with self._guard:
            return sorted(self._held)

    @contextmanager
    def hold(self, path: PathLike) -> Iterator[FileLockHandle]:
        """Hold the lock for the duration of a ``with`` block."""
        handle = self.acquire(path)
        try:
            yield handle
        finally:
            handle.release()

    async def wait_for(
        self,
        path: PathLike,
        timeout: Optional[float] = None,
        poll_interval: float = 0.05,
    ) -> FileLockHandle:
        """Acquire the lock, yielding to the event loop while another holder has it.

        Raises:
            LockHeldError: If ``timeout`` elapses before the lock frees up.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            try:
                return self.acquire(path)
            except LockHeldError:
                if deadline is not None and time.monotonic() >= deadline:
                    raise
                await asyncio.sleep(poll_interval)

    @asynccontextmanager
    async def hold_async(self, path: PathLike, timeout: Optional[float] = None) -> AsyncIterator[FileLockHandle]:
        handle = await self.wait_for(path, timeout=timeout)
        try:
            yield handle
        finally:
            handle.release()


_default_manager = FileLockManager()


def get_lock_manager() -> FileLockManager:
    """Return the process-wide lock registry."""
    return _default_manager


__all__ = ["FileLockHandle", "FileLockManager", "get_lock_manager", "lock_key"]
