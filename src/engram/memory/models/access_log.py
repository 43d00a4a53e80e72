"""Access log models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engram.memory.models.timestamps import parse_timestamp, utc_now


class AccessAction(str, Enum):
    """Kind of access recorded for a memory file."""

    READ = "READ"
    WRITE = "WRITE"
    MODIFY = "MODIFY"


class AccessLogEntry(BaseModel):
    """One immutable access log record."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utc_now)
    action: AccessAction
    file_path: str

    @field_validator("timestamp", mode="before")
    def coerce_timestamp(cls, v):
        return parse_timestamp(v)
