"""Unit tests for the short-term memory store."""

from __future__ import annotations

from engram.memory.models.short_term import Goal, ShortTermMemory
from engram.memory.storage.short_term import ShortTermStore


def test_read_missing_file_returns_empty_memory(tmp_path) -> None:
    store = ShortTermStore(tmp_path / "short-term-memory.txt")

    memory = store.read()

    assert memory.is_empty
    assert store.read_text() == ""


def test_write_creates_parent_directories(tmp_path) -> None:
    store = ShortTermStore(tmp_path / "nested" / "root" / "short-term-memory.txt")

    store.write(ShortTermMemory(summary="hello", goals=[Goal(description="g")]))

    assert store.path.exists()
    assert store.read().summary == "hello"
    assert [p.name for p in store.path.parent.iterdir()] == ["short-term-memory.txt"]


def test_malformed_content_is_read_without_error(tmp_path) -> None:
    path = tmp_path / "short-term-memory.txt"
    path.write_text("\x00 garbage ### not markdown", encoding="utf-8")

    memory = ShortTermStore(path).read()

    assert memory.raw == "\x00 garbage ### not markdown"


def test_append_event_puts_newest_on_top(tmp_path) -> None:
    store = ShortTermStore(tmp_path / "stm.txt")

    store.append_event("first question", "first answer")
    memory = store.append_event("second question", "second answer", thoughts="follow-up")

    assert [event.user for event in memory.events] == ["second question", "first question"]
    assert store.read().events[0].thoughts == "follow-up"


def test_append_insight_deduplicates(tmp_path) -> None:
    store = ShortTermStore(tmp_path / "stm.txt")

    store.append_insight("User lives in Oslo")
    store.append_insight("User lives in Oslo")

    assert store.read().thoughts == ["User lives in Oslo"]


def test_rewrite_keeps_unstructured_text_as_summary(tmp_path) -> None:
    path = tmp_path / "stm.txt"
    path.write_text("legacy notes", encoding="utf-8")
    store = ShortTermStore(path)

    store.append_insight("new fact")

    memory = store.read()
    assert memory.summary == "legacy notes"
    assert memory.thoughts == ["new fact"]


def test_clear_resets_memory(tmp_path) -> None:
    store = ShortTermStore(tmp_path / "stm.txt")
    store.append_insight("something")

    store.clear()

    assert store.read().is_empty
