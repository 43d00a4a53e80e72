"""
Short-Term Memory Store

Reads and writes the single short-term memory document. Reads never fail:
a missing file yields an empty memory and malformed content is passed through.
Writes replace the file atomically.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from engram.memory.models.short_term import ShortTermMemory, StmEvent
from engram.memory.storage.files import atomic_write_text, read_text
from engram.memory.storage.formats import decode_short_term, encode_short_term

logger = logging.getLogger(__name__)


class ShortTermStore:
    """File-backed store for the short-term memory document."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read_text(self) -> str:
        """Return the persisted STM text, or an empty string if absent."""
        try:
            return read_text(self.path) or ""
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read short-term memory at {self.path}: {e}")
            return ""

    def read(self) -> ShortTermMemory:
        return decode_short_term(self.read_text())

    def write(self, memory: ShortTermMemory) -> None:
        atomic_write_text(self.path, encode_short_term(memory))
        logger.debug(f"Wrote short-term memory to {self.path}")

    def append_event(self, user: str, ai: str, thoughts: Optional[str] = None) -> ShortTermMemory:
        """Record an interaction at the top of the event log."""
        memory = self.read().with_event(StmEvent(user=user, ai=ai, thoughts=thoughts))
        self.write(memory)
        return memory

    def append_insight(self, insight: str) -> ShortTermMemory:
        """Add a key fact or decision."""
        memory = self.read().with_insight(insight)
        self.write(memory)
        return memory

    def clear(self) -> None:
        self.write(ShortTermMemory())
