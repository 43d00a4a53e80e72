"""
Short-Term Memory Models

The short-term memory (STM) is the assistant's scratchpad: a summary, key
facts, goals, tasks and a reverse-chronological event log. There is a single
instance per memory root and it is always rewritten as a whole.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from engram.memory.models.timestamps import format_timestamp, utc_now


def _now_text() -> str:
    return format_timestamp(utc_now())


class Goal(BaseModel):
    """A goal or task checklist item."""

    description: str
    completed: bool = False

    @field_validator("description")
    def single_line(cls, v: str) -> str:
        """Checklist items are rendered on one line."""
        return " ".join(v.split())


class StmEvent(BaseModel):
    """One interaction recorded in the event log."""

    timestamp: str = Field(default_factory=_now_text)
    user: str = ""
    ai: str = ""
    thoughts: Optional[str] = None


class ShortTermMemory(BaseModel):
    """
    Structured short-term memory.

    ``thoughts`` holds the key facts and decisions. ``raw`` carries the file
    text verbatim when it did not match the expected layout; that text is
    also used as the summary so rewriting the memory keeps it.
    """

    summary: str = ""
    thoughts: List[str] = Field(default_factory=list)
    goals: List[Goal] = Field(default_factory=list)
    tasks: List[Goal] = Field(default_factory=list)
    events: List[StmEvent] = Field(default_factory=list)
    raw: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (
            self.summary.strip()
            or self.thoughts
            or self.goals
            or self.tasks
            or self.events
            or (self.raw and self.raw.strip())
        )

    def with_event(self, event: StmEvent) -> "ShortTermMemory":
        """Return a copy with ``event`` placed at the top of the event log."""
        return self.model_copy(update={"events": [event, *self.events]})

    def with_insight(self, insight: str) -> "ShortTermMemory":
        """Return a copy with ``insight`` appended to the key facts."""
        insight = insight.strip()
        if not insight or insight in self.thoughts:
            return self
        return self.model_copy(update={"thoughts": [*self.thoughts, insight]})
