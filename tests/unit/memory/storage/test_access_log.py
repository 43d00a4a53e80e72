"""Unit tests for the access log and its rotation."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from engram.core.exceptions import LockHeldError
from engram.memory.models.access_log import AccessAction
from engram.memory.storage.access_log import AccessLog, archive_filename
from engram.memory.storage.locks import FileLockManager

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def log(tmp_path) -> AccessLog:
    return AccessLog(tmp_path / "logs" / "access.log", tmp_path / "logs" / "archive", FileLockManager())


def test_append_then_read_in_order(log) -> None:
    log.append(AccessAction.WRITE, "a.md", timestamp=NOW)
    log.append(AccessAction.READ, "b.md", timestamp=NOW)
    log.append("MODIFY", "a.md", timestamp=NOW)

    entries = log.read_all()

    assert [(e.action, e.file_path) for e in entries] == [
        (AccessAction.WRITE, "a.md"),
        (AccessAction.READ, "b.md"),
        (AccessAction.MODIFY, "a.md"),
    ]
    assert log.path.read_text(encoding="utf-8").splitlines()[0] == "[2024-05-01T12:00:00Z] | WRITE | a.md"


def test_malformed_lines_are_skipped(log) -> None:
    log.path.parent.mkdir(parents=True)
    log.path.write_text(
        "[2024-05-01T12:00:00Z] | READ | notes/a.md\n[2024-05-01T12:00:00Z] | READ\n",
        encoding="utf-8",
    )

    entries = log.read_all()

    assert len(entries) == 1
    assert entries[0].file_path == "notes/a.md"


@pytest.mark.asyncio
async def test_missing_log_is_empty(log) -> None:
    assert log.is_empty()
    assert log.read_all() == []
    assert (await log.snapshot()).entries == []


def test_archive_moves_log_and_second_call_is_noop(log) -> None:
    log.append(AccessAction.READ, "a.md", timestamp=NOW)

    archived = log.archive_and_clear(now=NOW)

    assert archived == log.archive_dir / archive_filename(NOW)
    assert archived.name == "access-2024-05-01T12-00-00Z.log"
    assert "| READ | a.md" in archived.read_text(encoding="utf-8")
    assert log.is_empty()
    assert log.read_all() == []

    assert log.archive_and_clear(now=NOW) is None
    assert log.archives() == [archived]


def test_archive_name_collisions_get_suffix(log) -> None:
    log.append(AccessAction.READ, "a.md")
    first = log.archive_and_clear(now=NOW)
    log.append(AccessAction.READ, "b.md")
    second = log.archive_and_clear(now=NOW)

    assert first != second
    assert second.name == "access-2024-05-01T12-00-00Z-1.log"
    assert len(log.archives()) == 2


@pytest.mark.asyncio
async def test_archive_keeps_entries_appended_after_snapshot(log) -> None:
    log.append(AccessAction.READ, "a.md", timestamp=NOW)
    snapshot = await log.snapshot()
    log.append(AccessAction.READ, "late.md", timestamp=NOW)

    archived = log.archive_and_clear(now=NOW, processed_size=snapshot.size)

    assert "a.md" in archived.read_text(encoding="utf-8")
    assert "late.md" not in archived.read_text(encoding="utf-8")
    assert [e.file_path for e in log.read_all()] == ["late.md"]


def test_last_archived_at_comes_from_archive_names(log) -> None:
    assert log.last_archived_at() is None

    log.append(AccessAction.READ, "a.md")
    log.archive_and_clear(now=NOW)

    assert log.last_archived_at() == NOW


def test_append_while_rotation_lock_held_fails(log) -> None:
    handle = log.lock()
    try:
        with pytest.raises(LockHeldError):
            log.append(AccessAction.READ, "a.md")
    finally:
        handle.release()

    log.append(AccessAction.READ, "a.md")
    assert len(log.read_all()) == 1


@pytest.mark.asyncio
async def test_async_rotation_waits_for_foreground_writer(log) -> None:
    log.append(AccessAction.READ, "a.md", timestamp=NOW)
    handle = log.lock()

    async def release_soon() -> None:
        await asyncio.sleep(0.02)
        handle.release()

    releaser = asyncio.create_task(release_soon())
    snapshot = await log.snapshot(timeout=1.0)
    archived = await log.archive_and_clear_async(now=NOW, processed_size=snapshot.size, timeout=1.0)
    await releaser

    assert [e.file_path for e in snapshot.entries] == ["a.md"]
    assert archived.name == "access-2024-05-01T12-00-00Z.log"
    assert log.is_empty()


@pytest.mark.asyncio
async def test_snapshot_times_out_while_log_stays_locked(log) -> None:
    with log.lock():
        with pytest.raises(LockHeldError):
            await log.snapshot(timeout=0.02)
