"""Schemas for structured model responses used by recall and the lifecycle stages."""

from typing import List, Optional

from pydantic import BaseModel, Field

from engram.memory.models.long_term import LongTermMemoryCandidate
from engram.memory.models.short_term import Goal


class MemoryPaths(BaseModel):
    """Relative LTM paths selected from the mind map."""

    file_paths: List[str] = Field(default_factory=list)


class ReflectedEvent(BaseModel):
    user: str = ""
    ai: str = ""
    thoughts: Optional[str] = None


class ReflectionDigest(BaseModel):
    """Durable information extracted from an oversized working context."""

    key_facts: List[str] = Field(default_factory=list)
    events: List[ReflectedEvent] = Field(default_factory=list)
    goals: List[Goal] = Field(default_factory=list)
    tasks: List[Goal] = Field(default_factory=list)


class PromotionCandidates(BaseModel):
    candidates: List[LongTermMemoryCandidate] = Field(default_factory=list)


class MergeDecision(BaseModel):
    """Existing document a candidate should be appended to, if any."""

    target_path: Optional[str] = None
    reason: str = ""


class AnalysisInsights(BaseModel):
    """Free-text observations about access patterns."""

    insights: List[str] = Field(default_factory=list)
