"""
Memory Engine Settings

Validated configuration for the Engram memory engine. Thresholds, schedule
and directory layout are a configuration surface rather than constants; the
defaults below mirror the layout ``<root>/short-term-memory.txt``,
``<root>/long-term-memory/**`` and ``<root>/logs/access.log``.
"""

from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MemoryConfig(BaseModel):
    """Settings consumed by the stores, recall and lifecycle stages."""

    model_config = ConfigDict(extra="forbid")

    # Directory layout
    root_dir: Path = Field(default=Path("memory"))
    short_term_filename: str = "short-term-memory.txt"
    long_term_dirname: str = "long-term-memory"
    logs_dirname: str = "logs"
    access_log_filename: str = "access.log"
    archive_dirname: str = "archive"

    # Token budgets
    context_token_threshold: int = Field(default=50_000, gt=0)
    stm_token_threshold: int = Field(default=10_000, gt=0)
    tokenizer_encoding: str = "cl100k_base"

    # Organization schedule and analysis
    organization_interval_seconds: float = Field(default=86_400.0, ge=0.0)
    session_window_seconds: float = Field(default=1_800.0, gt=0.0)
    frequent_access_threshold: int = Field(default=3, ge=1)

    # Recall
    reinforce_on_recall: bool = True

    @field_validator("root_dir", mode="before")
    def expand_root(cls, v):
        """Expand ``~`` in configured roots."""
        if isinstance(v, str):
            v = Path(v)
        if isinstance(v, Path):
            return v.expanduser()
        return v

    @field_validator("short_term_filename", "long_term_dirname", "logs_dirname", "access_log_filename", "archive_dirname")
    def validate_segment(cls, v: str) -> str:
        """Layout names must be single path segments."""
        if not v or "/" in v or "\\" in v or v in {".", ".."}:
            raise ValueError(f"'{v}' is not a valid file or directory name")
        return v

    @property
    def short_term_path(self) -> Path:
        return self.root_dir / self.short_term_filename

    @property
    def long_term_dir(self) -> Path:
        return self.root_dir / self.long_term_dirname

    @property
    def logs_dir(self) -> Path:
        return self.root_dir / self.logs_dirname

    @property
    def access_log_path(self) -> Path:
        return self.logs_dir / self.access_log_filename

    @property
    def archive_dir(self) -> Path:
        return self.logs_dir / self.archive_dirname

    def as_dict(self) -> Dict[str, Any]:
        """Serialise settings with paths rendered as strings."""
        data = self.model_dump()
        data["root_dir"] = str(self.root_dir)
        return data
