"""Unit tests for the long-term memory store, mind map and relation index."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from engram.core.exceptions import (
    DocumentExistsError,
    MemoryFormatError,
    MemoryNotFoundError,
    MemoryPathError,
)
from engram.memory.models.long_term import Frontmatter, LongTermMemory
from engram.memory.storage.locks import FileLockManager
from engram.memory.storage.long_term import LongTermStore, normalize_relative_path

EARLY = datetime(2024, 1, 1, tzinfo=timezone.utc)
LATE = datetime(2024, 6, 1, tzinfo=timezone.utc)


def make_document(path: str, uuid: str, content: str = "body\n", tags=None, count: int = 0, created=EARLY):
    return LongTermMemory(
        path=path,
        frontmatter=Frontmatter(
            uuid=uuid,
            created_at=created,
            updated_at=created,
            tags=tags or [],
            reinforcement_count=count,
        ),
        content=content,
    )


@pytest.fixture
def store(tmp_path) -> LongTermStore:
    return LongTermStore(tmp_path / "long-term-memory", FileLockManager())


def test_list_of_missing_root_is_empty(store) -> None:
    assert store.list() == []
    mind_map = store.generate_mind_map()
    assert not mind_map.exists
    assert mind_map.is_empty


def test_write_then_read(store) -> None:
    document = make_document("notes/a.md", "u1", tags=["x"])

    assert store.write(document) is True
    assert store.write(document) is False
    assert store.read("notes/a.md") == document
    assert store.exists("./notes/a.md")


def test_read_missing_document_raises(store) -> None:
    with pytest.raises(MemoryNotFoundError) as excinfo:
        store.read("notes/nope.md")
    assert excinfo.value.error_code == "MEMORY_NOT_FOUND"


def test_read_corrupt_document_raises_format_error(store) -> None:
    path = store.root / "broken.md"
    path.parent.mkdir(parents=True)
    path.write_text("no frontmatter here", encoding="utf-8")

    with pytest.raises(MemoryFormatError):
        store.read("broken.md")


@pytest.mark.parametrize("path", ["", "/etc/passwd", "../outside.md", "notes/../../x.md", "_index.yaml", ".hidden.md"])
def test_invalid_paths_are_rejected(path) -> None:
    with pytest.raises(MemoryPathError):
        normalize_relative_path(path)


def test_normalize_strips_current_dir_segments() -> None:
    assert normalize_relative_path("./notes//a.md") == "notes/a.md"


def test_mind_map_reflects_nested_folders(store) -> None:
    store.write(make_document("projects/apollo.md", "u1"))
    store.write(make_document("projects/archive/old.md", "u2"))
    store.write(make_document("people.md", "u3"))
    store.relations.strengthen("u1", "u3")

    mind_map = store.generate_mind_map()

    assert store.list() == ["people.md", "projects/apollo.md", "projects/archive/old.md"]
    assert mind_map.to_xml() == (
        "<mind-map>\n"
        '  <file name="people.md" />\n'
        '  <folder name="projects">\n'
        '    <file name="apollo.md" />\n'
        '    <folder name="archive">\n'
        '      <file name="old.md" />\n'
        "    </folder>\n"
        "  </folder>\n"
        "</mind-map>"
    )


def test_delete_removes_file_and_empty_folders(store) -> None:
    store.write(make_document("deep/nested/a.md", "u1"))

    store.delete("deep/nested/a.md")

    assert store.list() == []
    assert not (store.root / "deep").exists()
    assert store.root.exists()
    with pytest.raises(MemoryNotFoundError):
        store.delete("deep/nested/a.md")


def test_reinforce_increments_count_only(store) -> None:
    store.write(make_document("a.md", "u1", count=2))

    document = store.reinforce("a.md")

    assert document.frontmatter.reinforcement_count == 3
    assert store.read("a.md").frontmatter.updated_at == EARLY


def test_move_keeps_uuid_and_removes_source(store) -> None:
    store.write(make_document("inbox/a.md", "u1"))

    moved = store.move("inbox/a.md", "topics/a.md")

    assert moved.uuid == "u1"
    assert store.list() == ["topics/a.md"]
    assert store.find_by_uuid("u1").path == "topics/a.md"


def test_move_refuses_to_overwrite_other_document(store) -> None:
    store.write(make_document("a.md", "u1"))
    store.write(make_document("b.md", "u2"))

    with pytest.raises(DocumentExistsError):
        store.move("a.md", "b.md")

    assert store.list() == ["a.md", "b.md"]


def test_archive_moves_under_archive_prefix(store) -> None:
    store.write(make_document("notes/a.md", "u1"))

    archived = store.archive("notes/a.md")
    again = store.archive("archive/notes/a.md")

    assert archived.path == "archive/notes/a.md"
    assert again.path == "archive/notes/a.md"
    assert store.list() == ["archive/notes/a.md"]


def test_consolidate_merges_into_new_target(store) -> None:
    store.write(make_document("a.md", "u1", tags=["x"], count=1, created=LATE))
    store.write(make_document("b.md", "u2", tags=["y", "x"], count=5, created=EARLY))

    merged = store.consolidate(["a.md", "b.md"], "topics/ab.md", "merged body\n", tags=["z"], now=LATE)

    assert store.list() == ["topics/ab.md"]
    assert merged.uuid == "u1"
    assert merged.frontmatter.tags == ["x", "y", "z"]
    assert merged.frontmatter.reinforcement_count == 5
    assert merged.frontmatter.created_at == EARLY
    assert store.read("topics/ab.md").content == "merged body\n"


def test_consolidate_into_existing_target_keeps_its_uuid(store) -> None:
    store.write(make_document("a.md", "u1"))
    store.write(make_document("b.md", "u2"))
    store.relations.strengthen("u1", "u3", "shared topic")

    merged = store.consolidate(["a.md", "b.md"], "b.md", "combined\n")

    assert merged.uuid == "u2"
    assert store.list() == ["b.md"]
    relations = store.relations.related("u2")
    assert [(r.other("u2"), r.strength) for r in relations] == [("u3", 1)]


def test_consolidate_without_sources_fails(store) -> None:
    with pytest.raises(ValueError):
        store.consolidate([], "a.md", "x")


def test_relations_accumulate_strength(store) -> None:
    store.relations.strengthen("u1", "u2", "same project")
    relation = store.relations.strengthen("u2", "u1", "same project")
    store.relations.strengthen("u1", "u3")

    assert relation.strength == 2
    assert relation.descriptions == ["same project"]
    assert [r.other("u1") for r in store.relations.related("u1")] == ["u2", "u3"]
    assert (store.root / "_index.yaml").exists()


def test_relation_to_self_is_rejected(store) -> None:
    with pytest.raises(ValueError):
        store.relations.strengthen("u1", "u1")
