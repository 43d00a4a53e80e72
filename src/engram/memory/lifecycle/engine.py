"""
Lifecycle Engine

Coordinates Recall, Reflection, Promotion and Organization over the shared
stores. The foreground cycle moves through ``IDLE -> RECALLING -> WORKING ->
REFLECTING | PROMOTING -> IDLE``; Organization runs on its own schedule and is
tracked separately. Promotion and Organization mutate long-term memory under
one ``asyncio.Lock`` so they never interleave. Each operation takes an
explicit model handle, falling back to the engine's default model.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from enum import Enum
from typing import AsyncIterator, List, Optional

from engram.config.settings import MemoryConfig
from engram.memory.capabilities import Model, TiktokenTokenizer, Tokenizer
from engram.memory.lifecycle.organization import OrganizationReport, OrganizationStage
from engram.memory.lifecycle.promotion import PromotionResult, PromotionStage
from engram.memory.lifecycle.reflection import ReflectionResult, ReflectionStage
from engram.memory.models.long_term import LongTermMemory
from engram.memory.recall import RecallEngine
from engram.memory.storage.access_log import AccessLog
from engram.memory.storage.locks import FileLockManager, get_lock_manager
from engram.memory.storage.long_term import LongTermStore
from engram.memory.storage.short_term import ShortTermStore

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    """Conceptual state of the foreground memory cycle."""

    IDLE = "idle"
    RECALLING = "recalling"
    WORKING = "working"
    REFLECTING = "reflecting"
    PROMOTING = "promoting"
    ORGANIZING = "organizing"


class LifecycleEngine:
    """Threshold and schedule driven transitions over STM, LTM and the access log."""

    def __init__(
        self,
        config: MemoryConfig,
        *,
        model: Optional[Model] = None,
        tokenizer: Optional[Tokenizer] = None,
        lock_manager: Optional[FileLockManager] = None,
    ):
        self.config = config
        self.model = model
        self.tokenizer = tokenizer or TiktokenTokenizer(config.tokenizer_encoding)
        self.locks = lock_manager or get_lock_manager()

        self.short_term = ShortTermStore(config.short_term_path)
        self.long_term = LongTermStore(config.long_term_dir, self.locks)
        self.access_log = AccessLog(config.access_log_path, config.archive_dir, self.locks)

        self.recall_engine = RecallEngine(
            self.long_term,
            self.access_log,
            reinforce=config.reinforce_on_recall,
        )
        self.reflection = ReflectionStage(
            self.short_term,
            self.tokenizer,
            config.context_token_threshold,
        )
        self.promotion = PromotionStage(
            self.short_term,
            self.long_term,
            self.access_log,
            self.tokenizer,
            config.stm_token_threshold,
        )
        self.organization = OrganizationStage(
            self.long_term,
            self.access_log,
            interval=timedelta(seconds=config.organization_interval_seconds),
            session_window=timedelta(seconds=config.session_window_seconds),
            frequent_threshold=config.frequent_access_threshold,
        )

        self._state = LifecycleState.IDLE
        self._organizing = False
        self._ltm_lock = asyncio.Lock()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def organizing(self) -> bool:
        return self._organizing

    @property
    def organization_state(self) -> LifecycleState:
        return LifecycleState.ORGANIZING if self._organizing else LifecycleState.IDLE

    def _resolve_model(self, model: Optional[Model]) -> Model:
        resolved = model or self.model
        if resolved is None:
            raise ValueError("No model available: pass one to the call or to the engine")
        return resolved

    def _transition(self, state: LifecycleState) -> None:
        if state is not self._state:
            logger.debug(f"Memory cycle {self._state.value} -> {state.value}")
            self._state = state

    @asynccontextmanager
    async def _phase(self, state: LifecycleState, then: LifecycleState) -> AsyncIterator[None]:
        self._transition(state)
        try:
            yield
        finally:
            self._transition(then)

    async def recall(self, query: str, model: Optional[Model] = None) -> List[LongTermMemory]:
        """Load relevant long-term memories before a turn."""
        async with self._phase(LifecycleState.RECALLING, LifecycleState.WORKING):
            return await self.recall_engine.recall(query, model=model or self.model)

    async def check_and_run_reflection(self, context: str, model: Optional[Model] = None) -> ReflectionResult:
        """Compress ``context`` into STM when it exceeds the context token budget."""
        if not self.reflection.should_run(context):
            tokens = self.tokenizer.count(context)
            return ReflectionResult(context=context, tokens_before=tokens, tokens_after=tokens)

        async with self._phase(LifecycleState.REFLECTING, LifecycleState.IDLE):
            logger.info("Working context exceeded its token budget; reflecting")
            return await self.reflection.run(context, self._resolve_model(model))

    async def check_and_run_promotion(self, model: Optional[Model] = None, now: Optional[datetime] = None) -> PromotionResult:
        """Promote STM content to LTM when STM exceeds its token budget."""
        tokens = self.promotion.short_term_tokens()
        if tokens <= self.promotion.threshold:
            return PromotionResult(tokens_before=tokens, tokens_after=tokens)

        resolved = self._resolve_model(model)
        async with self._ltm_lock:
            async with self._phase(LifecycleState.PROMOTING, LifecycleState.IDLE):
                logger.info("Short-term memory exceeded its token budget; promoting")
                return await self.promotion.run(resolved, now=now)

    async def run_organization(self, model: Optional[Model] = None, now: Optional[datetime] = None) -> OrganizationReport:
        """Run an Organization pass now, regardless of schedule."""
        resolved = self._resolve_model(model)
        async with self._ltm_lock:
            self._organizing = True
            try:
                return await self.organization.run(resolved, now=now)
            finally:
                self._organizing = False

    async def run_organization_if_due(self, model: Optional[Model] = None, now: Optional[datetime] = None) -> OrganizationReport:
        """Run Organization when the interval has elapsed and the log has entries."""
        if self.access_log.is_empty():
            logger.debug("Organization skipped: access log is empty")
            return OrganizationReport(reason="access log is empty", completed_at=time.time())
        if not self.organization.is_due(now):
            return OrganizationReport(reason="not due", completed_at=time.time())
        return await self.run_organization(model, now=now)
