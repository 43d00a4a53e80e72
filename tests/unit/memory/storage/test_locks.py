"""Unit tests for the per-path lock registry."""

from __future__ import annotations

import asyncio

import pytest

from engram.core.exceptions import LockHeldError
from engram.memory.storage.locks import FileLockManager


def test_second_acquire_raises_until_released(tmp_path) -> None:
    locks = FileLockManager()
    path = tmp_path / "notes" / "a.md"

    handle = locks.acquire(path)
    with pytest.raises(LockHeldError) as excinfo:
        locks.acquire(path)
    assert "Lock already acquired for path" in str(excinfo.value)

    handle.release()
    second = locks.acquire(path)
    assert second.path == handle.path


def test_release_is_idempotent(tmp_path) -> None:
    locks = FileLockManager()
    path = tmp_path / "a.md"

    locks.release(path)
    locks.acquire(path)
    locks.release(path)
    locks.release(path)

    assert not locks.is_locked(path)


def test_equivalent_paths_share_a_lock(tmp_path) -> None:
    locks = FileLockManager()
    (tmp_path / "sub").mkdir()

    with locks.hold(tmp_path / "a.md"):
        with pytest.raises(LockHeldError):
            locks.acquire(tmp_path / "sub" / ".." / "a.md")

    assert locks.held_paths == []


def test_distinct_paths_do_not_conflict(tmp_path) -> None:
    locks = FileLockManager()

    with locks.hold(tmp_path / "a.md"), locks.hold(tmp_path / "b.md"):
        assert len(locks.held_paths) == 2


@pytest.mark.asyncio
async def test_wait_for_acquires_once_released(tmp_path) -> None:
    locks = FileLockManager()
    path = tmp_path / "log"
    handle = locks.acquire(path)

    async def release_soon() -> None:
        await asyncio.sleep(0.02)
        handle.release()

    releaser = asyncio.create_task(release_soon())
    acquired = await locks.wait_for(path, timeout=1.0, poll_interval=0.005)
    await releaser

    assert locks.is_locked(path)
    acquired.release()


@pytest.mark.asyncio
async def test_wait_for_times_out(tmp_path) -> None:
    locks = FileLockManager()
    path = tmp_path / "log"
    locks.acquire(path)

    with pytest.raises(LockHeldError):
        await locks.wait_for(path, timeout=0.02, poll_interval=0.005)
