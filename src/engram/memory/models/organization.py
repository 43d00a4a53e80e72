"""
Organization Models

Access-pattern analysis results and the refactoring operations Organization
executes against the long-term store. ``RefactoringOperation`` is a tagged
union keyed by ``kind`` so a structured model response validates directly
into the concrete operation types.
"""

from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class FileAccessStats(BaseModel):
    """Per-file access counters since the last log rotation."""

    reads: int = 0
    writes: int = 0
    modifies: int = 0
    last_access: Optional[datetime] = None

    @property
    def total(self) -> int:
        return self.reads + self.writes + self.modifies


class CoAccessedPair(BaseModel):
    """Two files accessed within the same session window."""

    first: str
    second: str
    count: int = 1


class MemoryAnalysis(BaseModel):
    """Summary of how the long-term store was used since the last rotation."""

    file_stats: Dict[str, FileAccessStats] = Field(default_factory=dict)
    frequently_accessed: List[str] = Field(default_factory=list)
    frequently_modified: List[str] = Field(default_factory=list)
    co_accessed_pairs: List[CoAccessedPair] = Field(default_factory=list)
    unused_files: List[str] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)


class StrengthenRelation(BaseModel):
    """Record that two documents are related."""

    kind: Literal["strengthen_relation"] = "strengthen_relation"
    from_file: str
    to_file: str
    relation_description: str = ""


class MoveMemory(BaseModel):
    """Relocate a document to a better-fitting path."""

    kind: Literal["move_memory"] = "move_memory"
    from_path: str
    to_path: str
    reason: str = ""


class ArchiveMemory(BaseModel):
    """Move a document under the ``archive/`` prefix."""

    kind: Literal["archive_memory"] = "archive_memory"
    file_path: str
    reason: str = ""


class ConsolidateMemories(BaseModel):
    """Merge several documents into a single target document."""

    kind: Literal["consolidate_memories"] = "consolidate_memories"
    source_paths: List[str] = Field(min_length=1)
    target_path: str
    consolidated_content: str


RefactoringOperation = Annotated[
    Union[StrengthenRelation, MoveMemory, ArchiveMemory, ConsolidateMemories],
    Field(discriminator="kind"),
]


class RefactoringPlan(BaseModel):
    """Operations proposed for one Organization pass."""

    operations: List[RefactoringOperation] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)
