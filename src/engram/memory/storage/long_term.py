"""
Long-Term Memory Store

File-backed store for long-term memory documents under a root directory.
Documents are addressed by POSIX paths relative to the root; the frontmatter
uuid is their durable identity. Every write goes through the per-path
``FileLockManager`` and replaces files atomically. Move, archive and
consolidate remove their sources so the store never holds duplicates of a
relocated document.
"""

import logging
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Sequence, Union

from engram.core.exceptions import (
    DocumentExistsError,
    MemoryFormatError,
    MemoryNotFoundError,
    MemoryPathError,
)
from engram.memory.models.long_term import LongTermMemory, merge_tags
from engram.memory.models.timestamps import utc_now
from engram.memory.storage.files import atomic_write_text, prune_empty_dirs, read_text
from engram.memory.storage.formats import decode_long_term, encode_long_term
from engram.memory.storage.locks import FileLockManager, get_lock_manager
from engram.memory.storage.mind_map import MindMap, build_mind_map, is_hidden_entry
from engram.memory.storage.relations import INDEX_FILENAME, RelationIndex

logger = logging.getLogger(__name__)

ARCHIVE_PREFIX = "archive"


def normalize_relative_path(path: str) -> str:
    """Normalise a document path to a clean relative POSIX path.

    Raises:
        MemoryPathError: If the path is empty, absolute, escapes the root or
            names an index/hidden file.
    """
    if not isinstance(path, str) or not path.strip():
        raise MemoryPathError(str(path), "Memory path must be a non-empty string")

    candidate = PurePosixPath(path.strip().replace("\\", "/"))
    if candidate.is_absolute():
        raise MemoryPathError(path, f"Memory path '{path}' must be relative")

    parts = [part for part in candidate.parts if part not in ("", ".")]
    if not parts or ".." in parts:
        raise MemoryPathError(path, f"Memory path '{path}' escapes the memory root")
    if any(is_hidden_entry(part) for part in parts):
        raise MemoryPathError(path, f"Memory path '{path}' refers to a reserved file")

    return "/".join(parts)


class LongTermStore:
    """Read, write, list and reorganize LTM documents."""

    def __init__(self, root: Union[str, Path], lock_manager: Optional[FileLockManager] = None):
        self.root = Path(root)
        self._locks = lock_manager or get_lock_manager()
        self.relations = RelationIndex(self.root / INDEX_FILENAME, self._locks)

    def _full_path(self, relative: str) -> Path:
        return self.root.joinpath(*relative.split("/"))

    def list(self) -> List[str]:
        """Every document path under the root in lexicographic walk order."""
        return build_mind_map(self.root).files()

    def exists(self, path: str) -> bool:
        return self._full_path(normalize_relative_path(path)).is_file()

    def read(self, path: str) -> LongTermMemory:
        """Load a document.

        Raises:
            MemoryNotFoundError: If no document exists at ``path``.
            MemoryFormatError: If the frontmatter is corrupt.
        """
        relative = normalize_relative_path(path)
        text = read_text(self._full_path(relative))
        if text is None:
            raise MemoryNotFoundError(relative)
        return decode_long_term(relative, text)

    def write(self, document: LongTermMemory) -> bool:
        """Persist ``document`` at its path. Returns True when the file was new."""
        relative = normalize_relative_path(document.path)
        if relative != document.path:
            document = document.moved_to(relative)
        full_path = self._full_path(relative)
        with self._locks.hold(full_path):
            created = not full_path.exists()
            atomic_write_text(full_path, encode_long_term(document))
        logger.debug(f"{'Created' if created else 'Updated'} long-term memory {relative}")
        return created

    def delete(self, path: str) -> None:
        relative = normalize_relative_path(path)
        full_path = self._full_path(relative)
        with self._locks.hold(full_path):
            try:
                full_path.unlink()
            except FileNotFoundError:
                raise MemoryNotFoundError(relative)
        prune_empty_dirs(full_path.parent, self.root)
        logger.debug(f"Deleted long-term memory {relative}")

    def reinforce(self, path: str, amount: int = 1) -> LongTermMemory:
        """Raise a document's reinforcement count without touching ``updated_at``."""
        document = self.read(path).reinforced(amount)
        self.write(document)
        return document

    def find_by_uuid(self, uuid: str) -> Optional[LongTermMemory]:
        for relative in self.list():
            try:
                document = self.read(relative)
            except MemoryFormatError as e:
                logger.warning(f"Skipping unreadable memory {relative}: {e.reason}")
                continue
            if document.uuid == uuid:
                return document
        return None

    def _existing_uuid(self, relative: str) -> Optional[str]:
        if not self._full_path(relative).is_file():
            return None
        return self.read(relative).uuid

    def move(self, source: str, destination: str) -> LongTermMemory:
        """Relocate a document, keeping its uuid, and remove the source.

        Raises:
            MemoryNotFoundError: If ``source`` does not exist.
            DocumentExistsError: If ``destination`` holds a different document.
        """
        source = normalize_relative_path(source)
        destination = normalize_relative_path(destination)
        document = self.read(source)
        if source == destination:
            return document

        existing_uuid = self._existing_uuid(destination)
        if existing_uuid is not None and existing_uuid != document.uuid:
            raise DocumentExistsError(destination, existing_uuid)

        moved = document.moved_to(destination)
        self.write(moved)
        self.delete(source)
        logger.info(f"Moved long-term memory {source} -> {destination}")
        return moved

    def archive(self, path: str) -> LongTermMemory:
        """Move a document under the ``archive/`` prefix."""
        relative = normalize_relative_path(path)
        if relative.split("/", 1)[0] == ARCHIVE_PREFIX:
            return self.read(relative)
        return self.move(relative, f"{ARCHIVE_PREFIX}/{relative}")

    def consolidate(
        self,
        sources: Sequence[str],
        target: str,
        content: str,
        tags: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> LongTermMemory:
        """Merge ``sources`` into ``target`` with ``content`` as the new body.

        The target keeps its own uuid when it already exists, otherwise the
        first source's uuid. Tags are unioned, the reinforcement count is the
        maximum of the merged documents and the earliest creation time is kept.
        Sources other than the target are removed and their relations are
        remapped onto the surviving uuid.
        """
        target = normalize_relative_path(target)
        source_paths: List[str] = []
        for source in sources:
            relative = normalize_relative_path(source)
            if relative not in source_paths:
                source_paths.append(relative)
        if not source_paths:
            raise ValueError("Consolidation needs at least one source document")

        documents = [self.read(relative) for relative in source_paths]
        existing_target = None
        if target not in source_paths and self._full_path(target).is_file():
            existing_target = self.read(target)
        elif target in source_paths:
            existing_target = documents[source_paths.index(target)]

        merged_docs = documents + ([existing_target] if existing_target and target not in source_paths else [])
        base = existing_target or documents[0]

        frontmatter = base.frontmatter.model_copy(
            update={
                "created_at": min(doc.frontmatter.created_at for doc in merged_docs),
                "updated_at": now or utc_now(),
                "tags": merge_tags(*(doc.frontmatter.tags for doc in merged_docs), tags or []),
                "reinforcement_count": max(doc.frontmatter.reinforcement_count for doc in merged_docs),
            }
        )
        consolidated = LongTermMemory(path=target, frontmatter=frontmatter, content=content)
        self.write(consolidated)

        for document in documents:
            if document.path == target:
                continue
            self.delete(document.path)
            if document.uuid != consolidated.uuid:
                self.relations.remap(document.uuid, consolidated.uuid)

        logger.info(f"Consolidated {len(source_paths)} memories into {target}")
        return consolidated

    def generate_mind_map(self) -> MindMap:
        return build_mind_map(self.root)
