"""
Recall Engine

Selects and loads long-term memory documents relevant to a query. The model
sees only the mind map (names, no content) and picks paths; the engine then
reads those documents, records a READ access for each and reinforces them.
"""

import logging
from typing import Iterable, List, Optional

from engram.core.exceptions import MemoryFormatError, MemoryNotFoundError, MemoryPathError
from engram.memory.capabilities import Model, invoke_structured
from engram.memory.models.access_log import AccessAction
from engram.memory.models.long_term import LongTermMemory
from engram.memory.models.responses import MemoryPaths
from engram.memory.prompts import RECALL_PROMPT
from engram.memory.storage.access_log import AccessLog
from engram.memory.storage.long_term import LongTermStore, normalize_relative_path
from engram.memory.storage.mind_map import MindMap

logger = logging.getLogger(__name__)


def build_recall_context(query: str, mind_map: MindMap) -> str:
    return f"<request>\n{query}\n</request>\n\n{mind_map.to_xml()}"


def format_recalled(documents: Iterable[LongTermMemory]) -> str:
    """Render recalled documents as one context block for the next turn."""
    blocks = [
        f'<memory path="{doc.path}" tags="{", ".join(doc.frontmatter.tags)}">\n{doc.content.strip()}\n</memory>'
        for doc in documents
    ]
    return "\n\n".join(blocks)


class RecallEngine:
    """Mind-map driven retrieval over the long-term store."""

    def __init__(
        self,
        store: LongTermStore,
        access_log: AccessLog,
        model: Optional[Model] = None,
        *,
        reinforce: bool = True,
        prompt: str = RECALL_PROMPT,
    ):
        self.store = store
        self.access_log = access_log
        self.model = model
        self.reinforce = reinforce
        self.prompt = prompt

    async def select_paths(self, query: str, mind_map: MindMap, model: Model) -> List[str]:
        """Ask the model which files in ``mind_map`` are relevant to ``query``."""
        response = await invoke_structured(
            model, "recall", self.prompt, build_recall_context(query, mind_map), MemoryPaths
        )

        selected: List[str] = []
        for raw_path in response.file_paths:
            try:
                path = normalize_relative_path(raw_path)
            except MemoryPathError:
                logger.warning(f"Ignoring invalid recall selection: {raw_path!r}")
                continue
            if path not in selected:
                selected.append(path)
        return selected

    async def recall(self, query: str, model: Optional[Model] = None) -> List[LongTermMemory]:
        """
        Retrieve the documents relevant to ``query``.

        Args:
            query: The user's request or the current topic
            model: Model handle for this call; defaults to the engine's model

        Returns:
            Documents in the order the model selected them. Empty when the
            store has no documents or nothing is relevant.

        Raises:
            ModelFailureError: If the selection call fails.
        """
        mind_map = self.store.generate_mind_map()
        if mind_map.is_empty:
            logger.debug("Long-term memory is empty; skipping recall")
            return []

        model = model or self.model
        if model is None:
            raise ValueError("RecallEngine needs a model to select memories")

        documents: List[LongTermMemory] = []
        for path in await self.select_paths(query, mind_map, model):
            try:
                document = self.store.read(path)
            except MemoryNotFoundError:
                logger.info(f"Recall selected missing memory {path}; skipping")
                continue
            except MemoryFormatError as e:
                logger.error(f"Recall selected unreadable memory {path}: {e.reason}")
                continue

            self.access_log.append(AccessAction.READ, path)
            if self.reinforce:
                document = document.reinforced()
                self.store.write(document)
            documents.append(document)

        logger.info(f"Recalled {len(documents)} memories for query")
        return documents
