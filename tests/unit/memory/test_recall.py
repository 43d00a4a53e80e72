"""Unit tests for mind-map driven recall."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from engram.core.exceptions import ModelFailureError
from engram.memory.models.access_log import AccessAction
from engram.memory.models.long_term import Frontmatter, LongTermMemory
from engram.memory.models.responses import MemoryPaths
from engram.memory.recall import RecallEngine, format_recalled
from engram.memory.storage.access_log import AccessLog
from engram.memory.storage.locks import FileLockManager
from engram.memory.storage.long_term import LongTermStore

CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def write_document(store: LongTermStore, path: str, uuid: str, tags=None, content: str = "body\n") -> None:
    store.write(
        LongTermMemory(
            path=path,
            frontmatter=Frontmatter(uuid=uuid, created_at=CREATED, updated_at=CREATED, tags=tags or []),
            content=content,
        )
    )


@pytest.fixture
def stores(memory_config):
    locks = FileLockManager()
    store = LongTermStore(memory_config.long_term_dir, locks)
    log = AccessLog(memory_config.access_log_path, memory_config.archive_dir, locks)
    return store, log


@pytest.mark.asyncio
async def test_empty_store_returns_nothing_without_model_call(stores, model) -> None:
    store, log = stores
    engine = RecallEngine(store, log, model)

    assert await engine.recall("anything") == []
    assert model.calls == []
    assert log.read_all() == []


@pytest.mark.asyncio
async def test_recall_loads_selected_document_and_logs_read(stores, model) -> None:
    store, log = stores
    write_document(store, "notes/a.md", "u1", tags=["x"])
    write_document(store, "notes/b.md", "u2")
    model.queue("MemoryPaths", MemoryPaths(file_paths=["notes/a.md"]))

    documents = await RecallEngine(store, log, model).recall("what about a?")

    assert [doc.uuid for doc in documents] == ["u1"]
    assert documents[0].frontmatter.tags == ["x"]
    entries = log.read_all()
    assert [(e.action, e.file_path) for e in entries] == [(AccessAction.READ, "notes/a.md")]

    _, _, context = model.calls_for("MemoryPaths")[0]
    assert "<request>\nwhat about a?\n</request>" in context
    assert '<file name="a.md" />' in context
    assert "body" not in context


@pytest.mark.asyncio
async def test_recall_preserves_model_order(stores, model) -> None:
    store, log = stores
    write_document(store, "a.md", "u1")
    write_document(store, "b.md", "u2")
    model.queue("MemoryPaths", {"file_paths": ["b.md", "a.md", "b.md"]})

    documents = await RecallEngine(store, log, model).recall("q")

    assert [doc.path for doc in documents] == ["b.md", "a.md"]


@pytest.mark.asyncio
async def test_missing_and_invalid_selections_are_skipped(stores, model) -> None:
    store, log = stores
    write_document(store, "a.md", "u1")
    model.queue("MemoryPaths", MemoryPaths(file_paths=["gone.md", "../escape.md", "a.md"]))

    documents = await RecallEngine(store, log, model).recall("q")

    assert [doc.path for doc in documents] == ["a.md"]
    assert [e.file_path for e in log.read_all()] == ["a.md"]


@pytest.mark.asyncio
async def test_recall_reinforces_monotonically(stores, model) -> None:
    store, log = stores
    write_document(store, "a.md", "u1")
    model.queue("MemoryPaths", MemoryPaths(file_paths=["a.md"]), MemoryPaths(file_paths=["a.md"]))
    engine = RecallEngine(store, log, model)

    await engine.recall("q")
    first = store.read("a.md").frontmatter.reinforcement_count
    await engine.recall("q")
    second = store.read("a.md").frontmatter.reinforcement_count

    assert (first, second) == (1, 2)
    assert store.read("a.md").frontmatter.updated_at == CREATED


@pytest.mark.asyncio
async def test_recall_without_reinforcement_leaves_documents(stores, model) -> None:
    store, log = stores
    write_document(store, "a.md", "u1")
    model.queue("MemoryPaths", MemoryPaths(file_paths=["a.md"]))

    await RecallEngine(store, log, model, reinforce=False).recall("q")

    assert store.read("a.md").frontmatter.reinforcement_count == 0


@pytest.mark.asyncio
async def test_model_failure_is_wrapped(stores, model) -> None:
    store, log = stores
    write_document(store, "a.md", "u1")
    model.queue("MemoryPaths", RuntimeError("backend down"))

    with pytest.raises(ModelFailureError) as excinfo:
        await RecallEngine(store, log, model).recall("q")

    assert excinfo.value.operation == "recall"
    assert log.read_all() == []


@pytest.mark.asyncio
async def test_recall_requires_a_model(stores) -> None:
    store, log = stores
    write_document(store, "a.md", "u1")

    with pytest.raises(ValueError):
        await RecallEngine(store, log).recall("q")


def test_format_recalled_renders_memory_blocks() -> None:
    document = LongTermMemory(
        path="notes/a.md",
        frontmatter=Frontmatter(uuid="u1", created_at=CREATED, updated_at=CREATED, tags=["x", "y"]),
        content="\nFact one.\n",
    )

    assert format_recalled([document]) == '<memory path="notes/a.md" tags="x, y">\nFact one.\n</memory>'
