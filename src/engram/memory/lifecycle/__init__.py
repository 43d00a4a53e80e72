"""
Memory Lifecycle

Reflection, Promotion and Organization stages, the engine that sequences
them and the background scheduler for Organization.
"""

from engram.memory.lifecycle.analysis import analyze_access_log
from engram.memory.lifecycle.engine import LifecycleEngine, LifecycleState
from engram.memory.lifecycle.organization import OperationOutcome, OrganizationReport, OrganizationStage
from engram.memory.lifecycle.promotion import PromotionResult, PromotionStage
from engram.memory.lifecycle.reflection import ReflectionResult, ReflectionStage
from engram.memory.lifecycle.scheduler import OrganizationScheduler, OrganizationTelemetry

__all__ = [
    "LifecycleEngine",
    "LifecycleState",
    "OperationOutcome",
    "OrganizationReport",
    "OrganizationScheduler",
    "OrganizationStage",
    "OrganizationTelemetry",
    "PromotionResult",
    "PromotionStage",
    "ReflectionResult",
    "ReflectionStage",
    "analyze_access_log",
]
