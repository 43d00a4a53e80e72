"""Shared state populated by the CLI callback before a command runs."""

from typing import Any, Dict

state: Dict[str, Any] = {"config": None}
