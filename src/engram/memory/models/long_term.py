"""
Long-Term Memory Models

Long-term memory (LTM) documents are markdown files with YAML frontmatter.
The ``uuid`` in the frontmatter is the only durable identity of a document;
its path is a lookup convenience and changes when the store is reorganized.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engram.memory.models.timestamps import format_timestamp, parse_timestamp, utc_now


def merge_tags(*groups: Iterable[str]) -> List[str]:
    """Union tag groups preserving first-seen order."""
    merged: List[str] = []
    for group in groups:
        for tag in group or ():
            tag = str(tag).strip()
            if tag and tag not in merged:
                merged.append(tag)
    return merged


class Frontmatter(BaseModel):
    """Metadata block stored at the top of every LTM document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uuid: str = Field(min_length=1)
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    tags: List[str] = Field(default_factory=list)
    reinforcement_count: int = Field(default=0, ge=0, alias="reinforcementCount")

    @field_validator("uuid", mode="before")
    def coerce_uuid(cls, v):
        """YAML may load bare numeric ids as ints."""
        return str(v) if v is not None else v

    @field_validator("created_at", "updated_at", mode="before")
    def coerce_timestamp(cls, v):
        """Accept ISO strings and YAML-native timestamps, normalised to UTC."""
        return parse_timestamp(v)

    @field_validator("tags", mode="before")
    def normalise_tags(cls, v):
        """Tags behave as an ordered set."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return merge_tags(v)

    def to_yaml_dict(self) -> Dict[str, Any]:
        """Return the frontmatter with its persisted key names and order."""
        return {
            "uuid": self.uuid,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "tags": list(self.tags),
            "reinforcementCount": self.reinforcement_count,
        }


class LongTermMemory(BaseModel):
    """A long-term memory document addressed by its path relative to the LTM root."""

    path: str
    frontmatter: Frontmatter
    content: str = ""

    @property
    def uuid(self) -> str:
        return self.frontmatter.uuid

    @classmethod
    def create(
        cls,
        path: str,
        content: str,
        tags: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> "LongTermMemory":
        """Build a brand-new document with a fresh uuid and zero reinforcement."""
        timestamp = now or utc_now()
        return cls(
            path=path,
            frontmatter=Frontmatter(
                uuid=str(uuid.uuid4()),
                created_at=timestamp,
                updated_at=timestamp,
                tags=list(tags or []),
                reinforcement_count=0,
            ),
            content=content,
        )

    def appended(
        self,
        content: str,
        tags: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> "LongTermMemory":
        """Return a copy with ``content`` appended and the document reinforced."""
        body = self.content.rstrip("\n")
        addition = content.strip("\n")
        new_content = f"{body}\n\n{addition}\n" if body else f"{addition}\n"
        frontmatter = self.frontmatter.model_copy(
            update={
                "updated_at": now or utc_now(),
                "tags": merge_tags(self.frontmatter.tags, tags or []),
                "reinforcement_count": self.frontmatter.reinforcement_count + 1,
            }
        )
        return self.model_copy(update={"content": new_content, "frontmatter": frontmatter})

    def reinforced(self, amount: int = 1) -> "LongTermMemory":
        """Return a copy with the reinforcement count raised by ``amount``."""
        amount = max(0, int(amount))
        frontmatter = self.frontmatter.model_copy(
            update={"reinforcement_count": self.frontmatter.reinforcement_count + amount}
        )
        return self.model_copy(update={"frontmatter": frontmatter})

    def moved_to(self, path: str) -> "LongTermMemory":
        return self.model_copy(update={"path": path})


class LongTermMemoryCandidate(BaseModel):
    """A piece of STM content proposed for promotion. Never persisted by itself."""

    title: str = ""
    content: str
    tags: List[str] = Field(default_factory=list)
    suggested_path: Optional[str] = Field(
        default=None,
        description="Relative .md path for a new document, e.g. 'projects/apollo.md'",
    )
