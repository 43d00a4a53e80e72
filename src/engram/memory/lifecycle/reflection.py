"""
Reflection

Compresses an oversized working context. Durable facts, events, goals and
tasks are extracted into short-term memory, then the context is replaced by an
ultra-concise restatement. Both model calls complete before short-term memory
is written, so a model failure leaves persisted state untouched.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from engram.memory.capabilities import Model, Tokenizer, invoke_structured, invoke_text
from engram.memory.models.access_log import AccessAction
from engram.memory.models.responses import ReflectionDigest
from engram.memory.models.short_term import ShortTermMemory, StmEvent
from engram.memory.prompts import REFLECTION_DIGEST_PROMPT, REFLECTION_SUMMARY_PROMPT
from engram.memory.storage.access_log import AccessLog
from engram.memory.storage.formats import encode_short_term
from engram.memory.storage.short_term import ShortTermStore

logger = logging.getLogger(__name__)


@dataclass
class ReflectionResult:
    """Outcome of a Reflection check."""

    context: str
    triggered: bool = False
    completed: bool = False
    short_term: Optional[ShortTermMemory] = None
    tokens_before: int = 0
    tokens_after: int = 0
    warnings: List[str] = field(default_factory=list)


def merge_digest(memory: ShortTermMemory, digest: ReflectionDigest, summary: str) -> ShortTermMemory:
    """Fold a reflection digest into short-term memory."""

    thoughts = list(memory.thoughts)
    for fact in digest.key_facts:
        fact = fact.strip()
        if fact and fact not in thoughts:
            thoughts.append(fact)

    # Digest events are chronological; the log keeps the newest on top.
    new_events = [StmEvent(user=e.user, ai=e.ai, thoughts=e.thoughts) for e in reversed(digest.events)]

    summary = summary.strip() or memory.summary
    passed_through = memory.summary.strip() if memory.raw is not None else ""
    if passed_through and passed_through not in summary:
        # Unparsed STM text has no structured home, so it stays ahead of the recap.
        summary = f"{passed_through}\n\n{summary}"

    return memory.model_copy(
        update={
            "summary": summary,
            "thoughts": thoughts,
            "goals": digest.goals or memory.goals,
            "tasks": digest.tasks or memory.tasks,
            "events": new_events + list(memory.events),
            "raw": None,
        }
    )


class ReflectionStage:
    """Working-context compression triggered by the context token budget."""

    def __init__(
        self,
        short_term: ShortTermStore,
        tokenizer: Tokenizer,
        threshold: int,
        access_log: Optional[AccessLog] = None,
        *,
        digest_prompt: str = REFLECTION_DIGEST_PROMPT,
        summary_prompt: str = REFLECTION_SUMMARY_PROMPT,
    ):
        self.short_term = short_term
        self.tokenizer = tokenizer
        self.threshold = threshold
        self.access_log = access_log
        self.digest_prompt = digest_prompt
        self.summary_prompt = summary_prompt

    def should_run(self, context: str) -> bool:
        return self.tokenizer.count(context) > self.threshold

    async def run(self, context: str, model: Model) -> ReflectionResult:
        """Reflect unconditionally. Raises ``ModelFailureError`` without writing on failure."""
        tokens_before = self.tokenizer.count(context)
        memory = self.short_term.read()

        digest_context = (
            f"<short-term-memory>\n{encode_short_term(memory)}</short-term-memory>\n\n"
            f"<working-context>\n{context}\n</working-context>"
        )
        digest = await invoke_structured(model, "reflection", self.digest_prompt, digest_context, ReflectionDigest)
        summary = (await invoke_text(model, "reflection", self.summary_prompt, context)).strip()

        updated = merge_digest(memory, digest, summary)
        self.short_term.write(updated)
        if self.access_log is not None:
            self.access_log.append(AccessAction.WRITE, str(self.short_term.path.resolve()))

        tokens_after = self.tokenizer.count(summary)
        logger.info(f"Reflection compressed working context from {tokens_before} to {tokens_after} tokens")
        return ReflectionResult(
            context=summary,
            triggered=True,
            completed=True,
            short_term=updated,
            tokens_before=tokens_before,
            tokens_after=tokens_after,
        )

    async def check_and_run(self, context: str, model: Model) -> ReflectionResult:
        if not self.should_run(context):
            tokens = self.tokenizer.count(context)
            return ReflectionResult(context=context, tokens_before=tokens, tokens_after=tokens)
        return await self.run(context, model)
