"""
Memory Service Layer

Facade exposed to the conversation orchestrator. It wires the stores and the
lifecycle engine from configuration and turns failures during Reflection,
Promotion and Organization into warnings, so a failed consolidation never
ends a turn or loses the working context.
"""

import logging
from datetime import datetime
from typing import List, Optional

from engram.config.loader import ConfigurationLoader
from engram.config.settings import MemoryConfig
from engram.core.exceptions import EngramError
from engram.core.utils.logging import configure_logger
from engram.memory.capabilities import Model, Tokenizer
from engram.memory.lifecycle.engine import LifecycleEngine
from engram.memory.lifecycle.organization import OrganizationReport
from engram.memory.lifecycle.promotion import PromotionResult
from engram.memory.lifecycle.reflection import ReflectionResult
from engram.memory.lifecycle.scheduler import OrganizationScheduler
from engram.memory.models.long_term import LongTermMemory
from engram.memory.models.short_term import ShortTermMemory
from engram.memory.recall import format_recalled
from engram.memory.storage.locks import FileLockManager

logger = logging.getLogger(__name__)


class MemoryService:
    """
    Service layer for the memory engine.

    All operations act on one memory root. ``model`` is the default handle;
    every call also accepts an explicit model for that call only.
    """

    def __init__(
        self,
        config: MemoryConfig,
        model: Optional[Model] = None,
        tokenizer: Optional[Tokenizer] = None,
        lock_manager: Optional[FileLockManager] = None,
    ):
        self.config = config
        self.engine = LifecycleEngine(config, model=model, tokenizer=tokenizer, lock_manager=lock_manager)
        self._scheduler: Optional[OrganizationScheduler] = None

    @classmethod
    def from_config(
        cls,
        config_path: Optional[str] = None,
        model: Optional[Model] = None,
        tokenizer: Optional[Tokenizer] = None,
        log_level: Optional[str] = None,
        **overrides,
    ) -> "MemoryService":
        """
        Build a service from a YAML file, environment and explicit overrides.

        ``log_level`` attaches a stream handler to the ``engram`` logger for
        embedders that have not configured logging themselves.
        """
        if log_level is not None:
            configure_logger("engram", log_level)
        config = ConfigurationLoader(config_path).load(overrides)
        return cls(config, model=model, tokenizer=tokenizer)

    @property
    def short_term(self):
        return self.engine.short_term

    @property
    def long_term(self):
        return self.engine.long_term

    @property
    def access_log(self):
        return self.engine.access_log

    async def recall(self, query: str, model: Optional[Model] = None) -> List[LongTermMemory]:
        """Load long-term memories relevant to ``query``. Model failures propagate."""
        return await self.engine.recall(query, model=model)

    async def recall_context(self, query: str, model: Optional[Model] = None) -> str:
        """Recall and render the documents as one context block."""
        return format_recalled(await self.recall(query, model=model))

    def append_event(self, user: str, ai: str, thoughts: Optional[str] = None) -> ShortTermMemory:
        return self.engine.short_term.append_event(user, ai, thoughts)

    def append_insight(self, insight: str) -> ShortTermMemory:
        return self.engine.short_term.append_insight(insight)

    async def check_and_run_reflection(self, context: str, model: Optional[Model] = None) -> ReflectionResult:
        """
        Reflect when ``context`` exceeds the context token budget.

        On failure the original context is returned unchanged together
        with a warning.
        """
        try:
            return await self.engine.check_and_run_reflection(context, model=model)
        except EngramError as e:
            logger.warning(f"Reflection failed; keeping the working context as is: {e.message}")
            tokens = self.engine.tokenizer.count(context)
            return ReflectionResult(
                context=context,
                triggered=True,
                completed=False,
                tokens_before=tokens,
                tokens_after=tokens,
                warnings=[e.message],
            )

    async def check_and_run_promotion(self, model: Optional[Model] = None, now: Optional[datetime] = None) -> PromotionResult:
        """Promote when STM exceeds its token budget; failures become warnings."""
        try:
            return await self.engine.check_and_run_promotion(model=model, now=now)
        except EngramError as e:
            logger.warning(f"Promotion failed; short-term memory left unchanged: {e.message}")
            tokens = self.engine.promotion.short_term_tokens()
            return PromotionResult(
                triggered=True,
                completed=False,
                tokens_before=tokens,
                tokens_after=tokens,
                warnings=[e.message],
            )

    async def run_organization_if_due(self, model: Optional[Model] = None, now: Optional[datetime] = None) -> OrganizationReport:
        """Run Organization when due; failures leave the log in place and become warnings."""
        try:
            return await self.engine.run_organization_if_due(model=model, now=now)
        except EngramError as e:
            logger.warning(f"Organization failed; access log kept for the next attempt: {e.message}")
            return OrganizationReport(reason="failed", warnings=[e.message])

    def start_background_organization(self, check_interval: Optional[float] = None) -> OrganizationScheduler:
        """Start checking the Organization schedule from a background task."""
        if self._scheduler is None:
            interval = check_interval
            if interval is None:
                interval = min(3600.0, self.config.organization_interval_seconds or 3600.0)
            self._scheduler = OrganizationScheduler(self.engine, check_interval=interval)
        self._scheduler.start()
        return self._scheduler

    async def shutdown(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()
            self._scheduler = None
        logger.debug("Memory service shut down")
