"""
Organization

Periodic, access-pattern driven restructuring of long-term memory. A pass
snapshots the access log, analyzes it, asks the model for refactoring
operations, executes them against the long-term store and finally rotates the
analyzed portion of the log into the archive. An empty log makes the pass a
successful no-op.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from engram.core.exceptions import EngramError
from engram.memory.capabilities import Model, invoke_structured
from engram.memory.lifecycle.analysis import analyze_access_log, render_analysis
from engram.memory.models.organization import (
    ArchiveMemory,
    ConsolidateMemories,
    MemoryAnalysis,
    MoveMemory,
    RefactoringOperation,
    RefactoringPlan,
    StrengthenRelation,
)
from engram.memory.models.responses import AnalysisInsights
from engram.memory.models.timestamps import ensure_utc, utc_now
from engram.memory.prompts import ANALYZE_PATTERNS_PROMPT, PROPOSE_REFACTORING_PROMPT
from engram.memory.storage.access_log import AccessLog
from engram.memory.storage.long_term import LongTermStore

logger = logging.getLogger(__name__)


@dataclass
class OperationOutcome:
    """Result of executing one refactoring operation."""

    operation: RefactoringOperation
    success: bool
    detail: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.operation.kind,
            "success": self.success,
            "detail": self.detail,
        }


@dataclass
class OrganizationReport:
    """Structured report of one Organization pass."""

    ran: bool = False
    reason: str = ""
    analysis: Optional[MemoryAnalysis] = None
    outcomes: List[OperationOutcome] = field(default_factory=list)
    archived_to: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def failed(self) -> List[OperationOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ran": self.ran,
            "reason": self.reason,
            "operations": [outcome.as_dict() for outcome in self.outcomes],
            "failed_operations": len(self.failed),
            "archived_to": self.archived_to,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "warnings": list(self.warnings),
        }


class OrganizationStage:
    """Analyze the access log and restructure the long-term store."""

    def __init__(
        self,
        long_term: LongTermStore,
        access_log: AccessLog,
        *,
        interval: timedelta = timedelta(days=1),
        session_window: timedelta = timedelta(minutes=30),
        frequent_threshold: int = 3,
        lock_timeout: Optional[float] = 30.0,
        analyze_prompt: str = ANALYZE_PATTERNS_PROMPT,
        refactor_prompt: str = PROPOSE_REFACTORING_PROMPT,
    ):
        self.long_term = long_term
        self.access_log = access_log
        self.interval = interval
        self.session_window = session_window
        self.frequent_threshold = frequent_threshold
        self.lock_timeout = lock_timeout
        self.analyze_prompt = analyze_prompt
        self.refactor_prompt = refactor_prompt
        self._last_run: Optional[datetime] = None

    def last_run_at(self) -> Optional[datetime]:
        """Most recent completed pass, from this process or the archive directory."""
        candidates = [stamp for stamp in (self._last_run, self.access_log.last_archived_at()) if stamp]
        return max(candidates) if candidates else None

    def is_due(self, now: Optional[datetime] = None) -> bool:
        if self.access_log.is_empty():
            return False
        last_run = self.last_run_at()
        if last_run is None:
            return True
        return ensure_utc(now or utc_now()) - last_run >= self.interval

    async def run(self, model: Model, now: Optional[datetime] = None) -> OrganizationReport:
        """
        Execute one pass regardless of schedule.

        Raises:
            ModelFailureError: If analysis or planning fails. Nothing is
                executed and the log is left in place.
            LockHeldError: If the access log stays locked past ``lock_timeout``.
        """
        report = OrganizationReport()
        snapshot = await self.access_log.snapshot(timeout=self.lock_timeout)
        if not snapshot.entries:
            if snapshot.size:
                # Nothing parseable; rotate it anyway so the pass does not repeat forever.
                archived = await self.access_log.archive_and_clear_async(
                    now=now, processed_size=snapshot.size, timeout=self.lock_timeout
                )
                report.archived_to = str(archived) if archived else None
                report.reason = "access log has no readable entries"
                logger.warning(f"Organization archived an access log with no readable entries to {archived}")
            else:
                report.reason = "access log is empty"
                logger.info("Organization skipped: access log is empty")
            report.completed_at = time.time()
            return report

        mind_map = self.long_term.generate_mind_map()
        analysis = analyze_access_log(
            snapshot.entries,
            mind_map.files(),
            session_window=self.session_window,
            frequent_threshold=self.frequent_threshold,
        )

        context = f"{render_analysis(analysis)}\n\n{mind_map.to_xml()}"
        insights = await invoke_structured(model, "organization", self.analyze_prompt, context, AnalysisInsights)
        analysis.insights = [i for i in insights.insights if i.strip()]

        context = f"{render_analysis(analysis)}\n\n{mind_map.to_xml()}"
        plan = await invoke_structured(model, "organization", self.refactor_prompt, context, RefactoringPlan)

        report.ran = True
        report.analysis = analysis
        for operation in plan.operations:
            report.outcomes.append(self.execute(operation))

        archived = await self.access_log.archive_and_clear_async(
            now=now, processed_size=snapshot.size, timeout=self.lock_timeout
        )
        report.archived_to = str(archived) if archived else None
        self._last_run = ensure_utc(now or utc_now())
        report.completed_at = time.time()
        report.reason = "completed"

        logger.info(
            f"Organization executed {len(report.outcomes)} operation(s), {len(report.failed)} failed"
        )
        return report

    def execute(self, operation: RefactoringOperation) -> OperationOutcome:
        """Apply one operation; failures are reported, not raised."""
        try:
            detail = self._apply(operation)
        except (EngramError, ValueError, OSError) as e:
            logger.warning(f"Refactoring operation {operation.kind} failed: {e}")
            return OperationOutcome(operation, success=False, detail=str(e))
        logger.info(f"Applied {operation.kind}: {detail}")
        return OperationOutcome(operation, success=True, detail=detail)

    def _apply(self, operation: RefactoringOperation) -> str:
        if isinstance(operation, StrengthenRelation):
            first = self.long_term.read(operation.from_file)
            second = self.long_term.read(operation.to_file)
            relation = self.long_term.relations.strengthen(first.uuid, second.uuid, operation.relation_description)
            self.long_term.reinforce(first.path)
            self.long_term.reinforce(second.path)
            return f"{first.path} <-> {second.path} strength {relation.strength}"

        if isinstance(operation, MoveMemory):
            moved = self.long_term.move(operation.from_path, operation.to_path)
            return f"moved {operation.from_path} to {moved.path}"

        if isinstance(operation, ArchiveMemory):
            archived = self.long_term.archive(operation.file_path)
            return f"archived {operation.file_path} to {archived.path}"

        if isinstance(operation, ConsolidateMemories):
            merged = self.long_term.consolidate(
                operation.source_paths, operation.target_path, operation.consolidated_content
            )
            return f"consolidated {len(operation.source_paths)} memories into {merged.path}"

        raise ValueError(f"Unsupported refactoring operation: {operation!r}")
