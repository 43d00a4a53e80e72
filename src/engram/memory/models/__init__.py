"""
Memory Models

Pydantic models for short-term memory, long-term memory documents, access
log entries, organization results and structured model responses.
"""

from engram.memory.models.access_log import AccessAction, AccessLogEntry
from engram.memory.models.long_term import (
    Frontmatter,
    LongTermMemory,
    LongTermMemoryCandidate,
    merge_tags,
)
from engram.memory.models.organization import (
    ArchiveMemory,
    CoAccessedPair,
    ConsolidateMemories,
    FileAccessStats,
    MemoryAnalysis,
    MoveMemory,
    RefactoringOperation,
    RefactoringPlan,
    StrengthenRelation,
)
from engram.memory.models.responses import (
    AnalysisInsights,
    MemoryPaths,
    MergeDecision,
    PromotionCandidates,
    ReflectedEvent,
    ReflectionDigest,
)
from engram.memory.models.short_term import Goal, ShortTermMemory, StmEvent

__all__ = [
    "AccessAction",
    "AccessLogEntry",
    "AnalysisInsights",
    "ArchiveMemory",
    "CoAccessedPair",
    "ConsolidateMemories",
    "FileAccessStats",
    "Frontmatter",
    "Goal",
    "LongTermMemory",
    "LongTermMemoryCandidate",
    "MemoryAnalysis",
    "MemoryPaths",
    "MergeDecision",
    "MoveMemory",
    "PromotionCandidates",
    "RefactoringOperation",
    "RefactoringPlan",
    "ReflectedEvent",
    "ReflectionDigest",
    "ShortTermMemory",
    "StmEvent",
    "StrengthenRelation",
    "merge_tags",
]
