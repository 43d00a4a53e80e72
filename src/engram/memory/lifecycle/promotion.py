"""
Promotion

Moves durable information from short-term memory into long-term memory when
the STM outgrows its token budget, then rewrites STM without the promoted
content. All model calls happen before the first write, so a model failure
leaves both stores untouched. STM never grows as a result of a promotion.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from engram.core.exceptions import MemoryFormatError, MemoryPathError
from engram.memory.capabilities import Model, Tokenizer, invoke_structured
from engram.memory.models.access_log import AccessAction
from engram.memory.models.long_term import LongTermMemory, LongTermMemoryCandidate
from engram.memory.models.responses import MergeDecision, PromotionCandidates
from engram.memory.models.short_term import ShortTermMemory
from engram.memory.models.timestamps import utc_now
from engram.memory.prompts import CLEAN_SHORT_TERM_PROMPT, IDENTIFY_PROMOTIONS_PROMPT, MERGE_TARGET_PROMPT
from engram.memory.storage.access_log import AccessLog
from engram.memory.storage.formats import encode_short_term
from engram.memory.storage.long_term import LongTermStore, normalize_relative_path
from engram.memory.storage.mind_map import MindMap
from engram.memory.storage.short_term import ShortTermStore

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class PromotionResult:
    """Outcome of a Promotion check."""

    triggered: bool = False
    completed: bool = False
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    tokens_before: int = 0
    tokens_after: int = 0
    short_term_replaced: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def touched(self) -> List[str]:
        return self.created + self.updated


def slugify(text: str) -> str:
    return _SLUG_RE.sub("-", text.lower()).strip("-")[:60].strip("-")


def candidate_body(candidate: LongTermMemoryCandidate, heading: str = "#") -> str:
    content = candidate.content.strip()
    title = candidate.title.strip()
    if title and not content.lstrip().startswith("#"):
        return f"{heading} {title}\n\n{content}\n"
    return f"{content}\n"


class PromotionStage:
    """STM to LTM promotion triggered by the STM token budget."""

    def __init__(
        self,
        short_term: ShortTermStore,
        long_term: LongTermStore,
        access_log: AccessLog,
        tokenizer: Tokenizer,
        threshold: int,
        *,
        identify_prompt: str = IDENTIFY_PROMOTIONS_PROMPT,
        merge_prompt: str = MERGE_TARGET_PROMPT,
        clean_prompt: str = CLEAN_SHORT_TERM_PROMPT,
    ):
        self.short_term = short_term
        self.long_term = long_term
        self.access_log = access_log
        self.tokenizer = tokenizer
        self.threshold = threshold
        self.identify_prompt = identify_prompt
        self.merge_prompt = merge_prompt
        self.clean_prompt = clean_prompt

    def short_term_tokens(self) -> int:
        return self.tokenizer.count(self.short_term.read_text())

    def should_run(self) -> bool:
        return self.short_term_tokens() > self.threshold

    async def _merge_target(self, candidate: LongTermMemoryCandidate, mind_map: MindMap, model: Model) -> Optional[str]:
        if mind_map.is_empty:
            return None
        context = (
            f"<candidate title=\"{candidate.title}\" tags=\"{', '.join(candidate.tags)}\">\n"
            f"{candidate.content.strip()}\n</candidate>\n\n{mind_map.to_xml()}"
        )
        decision = await invoke_structured(model, "promotion", self.merge_prompt, context, MergeDecision)
        if not decision.target_path:
            return None
        try:
            target = normalize_relative_path(decision.target_path)
        except MemoryPathError:
            logger.warning(f"Ignoring invalid merge target {decision.target_path!r}")
            return None
        if target not in mind_map.files():
            logger.warning(f"Merge target {target} is not in long-term memory; creating a new document")
            return None
        return target

    def _new_path(self, candidate: LongTermMemoryCandidate, reserved: Dict[str, LongTermMemory]) -> str:
        path = None
        if candidate.suggested_path:
            try:
                path = normalize_relative_path(candidate.suggested_path)
            except MemoryPathError:
                logger.warning(f"Ignoring invalid suggested path {candidate.suggested_path!r}")
        if path is None:
            path = f"{slugify(candidate.title or candidate.content[:40]) or 'memory'}.md"
        if not path.endswith(".md"):
            path = f"{path}.md"

        base, counter = path[: -len(".md")], 2
        while path not in reserved and self.long_term.exists(path):
            path = f"{base}-{counter}.md"
            counter += 1
        return path

    async def _plan(
        self, candidates: List[LongTermMemoryCandidate], model: Model, now: datetime
    ) -> Tuple[Dict[str, LongTermMemory], List[str]]:
        """Resolve every candidate to the document it will produce, without writing."""
        mind_map = self.long_term.generate_mind_map()
        planned: Dict[str, LongTermMemory] = {}
        created: List[str] = []

        for candidate in candidates:
            if not candidate.content.strip():
                continue
            target = await self._merge_target(candidate, mind_map, model)
            existing = planned.get(target) if target else None
            if target is not None and existing is None:
                try:
                    existing = self.long_term.read(target)
                except MemoryFormatError as e:
                    logger.warning(f"Merge target {target} is unreadable; creating a new document instead: {e.message}")
                    target = None

            if target is None:
                path = self._new_path(candidate, planned)
                if path not in planned:
                    planned[path] = LongTermMemory.create(path, candidate_body(candidate), candidate.tags, now=now)
                    created.append(path)
                    continue
                target, existing = path, planned[path]

            planned[target] = existing.appended(candidate_body(candidate, heading="##"), candidate.tags, now=now)

        return planned, created

    async def run(self, model: Model, now: Optional[datetime] = None) -> PromotionResult:
        """Promote unconditionally. Raises ``ModelFailureError`` before any write on failure."""
        now = now or utc_now()
        stm_text = self.short_term.read_text()
        tokens_before = self.tokenizer.count(stm_text)

        response = await invoke_structured(
            model, "promotion", self.identify_prompt, stm_text, PromotionCandidates
        )
        candidates = [c for c in response.candidates if c.content.strip()]
        planned, created = await self._plan(candidates, model, now)

        promoted = "\n".join(f"- {c.title or c.content.strip()[:80]}" for c in candidates) or "- (nothing)"
        clean_context = f"<short-term-memory>\n{stm_text}</short-term-memory>\n\n<promoted>\n{promoted}\n</promoted>"
        cleaned = await invoke_structured(model, "promotion", self.clean_prompt, clean_context, ShortTermMemory)
        cleaned = cleaned.model_copy(update={"raw": None})

        result = PromotionResult(triggered=True, tokens_before=tokens_before)
        for path, document in planned.items():
            self.long_term.write(document)
            if path in created:
                self.access_log.append(AccessAction.WRITE, path)
                result.created.append(path)
            else:
                self.access_log.append(AccessAction.MODIFY, path)
                result.updated.append(path)

        cleaned_tokens = self.tokenizer.count(encode_short_term(cleaned))
        if cleaned_tokens <= tokens_before:
            self.short_term.write(cleaned)
            self.access_log.append(AccessAction.WRITE, str(self.short_term.path.resolve()))
            result.short_term_replaced = True
            result.tokens_after = cleaned_tokens
        else:
            logger.warning(
                f"Cleaned short-term memory is larger ({cleaned_tokens} > {tokens_before} tokens); keeping the previous version"
            )
            result.warnings.append("cleaned short-term memory was larger than the original and was discarded")
            result.tokens_after = tokens_before

        result.completed = True
        logger.info(
            f"Promotion created {len(result.created)} and updated {len(result.updated)} long-term memories; "
            f"STM {tokens_before} -> {result.tokens_after} tokens"
        )
        return result

    async def check_and_run(self, model: Model, now: Optional[datetime] = None) -> PromotionResult:
        tokens = self.short_term_tokens()
        if tokens <= self.threshold:
            return PromotionResult(tokens_before=tokens, tokens_after=tokens)
        return await self.run(model, now=now)
