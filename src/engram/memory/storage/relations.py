"""
LTM Relation Index

Undirected, weighted relations between long-term documents, persisted as
``_index.yaml`` at the LTM root. Relations are keyed by document uuid so they
survive moves and archiving. Organization's StrengthenRelation operation is
the writer; every call increments the relation strength.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from engram.core.exceptions import MemoryFormatError
from engram.memory.models.timestamps import format_timestamp, parse_timestamp, utc_now
from engram.memory.storage.files import atomic_write_text, read_text
from engram.memory.storage.locks import FileLockManager, get_lock_manager

logger = logging.getLogger(__name__)

INDEX_FILENAME = "_index.yaml"


@dataclass
class Relation:
    source: str
    target: str
    strength: int = 0
    descriptions: List[str] = field(default_factory=list)
    updated_at: Optional[datetime] = None

    @property
    def key(self) -> Tuple[str, str]:
        return _pair(self.source, self.target)

    def other(self, uuid: str) -> str:
        return self.target if uuid == self.source else self.source

    def as_dict(self) -> Dict:
        data = {
            "source": self.source,
            "target": self.target,
            "strength": self.strength,
            "descriptions": list(self.descriptions),
        }
        if self.updated_at is not None:
            data["updatedAt"] = format_timestamp(self.updated_at)
        return data


def _pair(a: str, b: str) -> Tuple[str, str]:
    return (a, b) if a <= b else (b, a)


class RelationIndex:
    """Reads and rewrites the relation index file under its path lock."""

    def __init__(self, path: Path, lock_manager: Optional[FileLockManager] = None):
        self.path = Path(path)
        self._locks = lock_manager or get_lock_manager()

    def load(self) -> Dict[Tuple[str, str], Relation]:
        text = read_text(self.path)
        if not text:
            return {}
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise MemoryFormatError(str(self.path), f"invalid relation index: {e}")

        relations: Dict[Tuple[str, str], Relation] = {}
        for item in data.get("relations", []) or []:
            try:
                relation = Relation(
                    source=str(item["source"]),
                    target=str(item["target"]),
                    strength=int(item.get("strength", 0)),
                    descriptions=[str(d) for d in item.get("descriptions", []) or []],
                    updated_at=parse_timestamp(item["updatedAt"]) if item.get("updatedAt") else None,
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed relation entry in {self.path}: {e}")
                continue
            relations[relation.key] = relation
        return relations

    def _save(self, relations: Dict[Tuple[str, str], Relation]) -> None:
        ordered = [relations[key].as_dict() for key in sorted(relations)]
        atomic_write_text(self.path, yaml.safe_dump({"relations": ordered}, sort_keys=False, allow_unicode=True))

    def strengthen(self, uuid_a: str, uuid_b: str, description: str = "") -> Relation:
        """Create or reinforce the relation between two documents."""
        if uuid_a == uuid_b:
            raise ValueError("A document cannot be related to itself")

        with self._locks.hold(self.path):
            relations = self.load()
            key = _pair(uuid_a, uuid_b)
            relation = relations.get(key) or Relation(source=key[0], target=key[1])
            relation.strength += 1
            description = description.strip()
            if description and description not in relation.descriptions:
                relation.descriptions.append(description)
            relation.updated_at = utc_now()
            relations[key] = relation
            self._save(relations)

        logger.debug(f"Strengthened relation {key[0]} <-> {key[1]} to {relation.strength}")
        return relation

    def related(self, uuid: str) -> List[Relation]:
        """Relations touching ``uuid``, strongest first."""
        matches = [r for r in self.load().values() if uuid in (r.source, r.target)]
        return sorted(matches, key=lambda r: (-r.strength, r.other(uuid)))

    def remap(self, old_uuid: str, new_uuid: str) -> None:
        """Point relations of a consolidated document at its replacement."""
        if old_uuid == new_uuid:
            return
        with self._locks.hold(self.path):
            relations = self.load()
            if not any(old_uuid in key for key in relations):
                return
            remapped: Dict[Tuple[str, str], Relation] = {}
            for relation in relations.values():
                source = new_uuid if relation.source == old_uuid else relation.source
                target = new_uuid if relation.target == old_uuid else relation.target
                if source == target:
                    continue
                key = _pair(source, target)
                existing = remapped.get(key)
                if existing is None:
                    remapped[key] = Relation(key[0], key[1], relation.strength, list(relation.descriptions), relation.updated_at)
                else:
                    existing.strength += relation.strength
                    for description in relation.descriptions:
                        if description not in existing.descriptions:
                            existing.descriptions.append(description)
            self._save(remapped)
