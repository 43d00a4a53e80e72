"""
Storage Formats

Text encoders and decoders for the three persisted shapes:

- the short-term memory markdown document,
- long-term memory documents (YAML frontmatter followed by a markdown body),
- access log lines (``[<timestamp>] | <ACTION> | <path>``).

These layouts are the cross-run contract of the memory root. Decoding STM
content and log lines is tolerant: malformed STM text is passed through as the
summary and malformed log lines decode to ``None``. Malformed LTM frontmatter
is treated as corruption and raises ``MemoryFormatError``.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from engram.core.exceptions import MemoryFormatError
from engram.memory.models.access_log import AccessAction, AccessLogEntry
from engram.memory.models.long_term import Frontmatter, LongTermMemory
from engram.memory.models.short_term import Goal, ShortTermMemory, StmEvent
from engram.memory.models.timestamps import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

STM_TITLE = "# Short-Term Memory"
STM_SUMMARY = "## Summary"
STM_STRUCTURED = "## Structured Data"
STM_GOALS = "### Goals"
STM_FACTS = "### Key Facts & Decisions"
STM_TASKS = "### Tasks"
STM_EVENT_LOG = "## Event Log"
STM_EVENT_LOG_NOTE = (
    "A reverse-chronological log of recent interactions. New events are appended to the top."
)
SECTION_RULE = "---"

USER_PREFIX = "**User:** "
AI_PREFIX = "**AI:** "
THOUGHTS_PREFIX = "**Thoughts:** "

LOG_FIELD_SEPARATOR = " | "

_FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)^---\r?\n(.*)\Z", re.MULTILINE | re.DOTALL)
_CHECKBOX_RE = re.compile(r"^- \[( |x|X)\] ?(.*)$")
_SUMMARY_START_RE = re.compile(r"^## Summary[ \t]*\r?$", re.MULTILINE)
_SUMMARY_END_RE = re.compile(r"^---[ \t]*\r?\n## Structured Data[ \t]*\r?$", re.MULTILINE)
_EVENTS_START_RE = re.compile(r"^---[ \t]*\r?\n## Event Log[ \t]*\r?$", re.MULTILINE)


# ---------------------------------------------------------------------------
# Short-term memory
# ---------------------------------------------------------------------------

def _checkbox(item: Goal) -> str:
    mark = "x" if item.completed else " "
    return f"- [{mark}] {item.description}"


def encode_short_term(memory: ShortTermMemory) -> str:
    """Render short-term memory in its markdown layout."""

    lines: List[str] = [STM_TITLE, "", STM_SUMMARY, memory.summary.strip(), "", SECTION_RULE, STM_STRUCTURED, ""]

    lines.append(STM_GOALS)
    lines.extend(_checkbox(goal) for goal in memory.goals)
    lines.append("")

    lines.append(STM_FACTS)
    lines.extend(f"- {fact}" for fact in memory.thoughts)
    lines.append("")

    lines.append(STM_TASKS)
    lines.extend(_checkbox(task) for task in memory.tasks)
    lines.append("")

    lines.extend([SECTION_RULE, STM_EVENT_LOG, STM_EVENT_LOG_NOTE, ""])
    for event in memory.events:
        lines.append(f"### {event.timestamp}")
        lines.append(f'{USER_PREFIX}"{event.user}"')
        lines.append(f'{AI_PREFIX}"{event.ai}"')
        if event.thoughts:
            lines.append(f"{THOUGHTS_PREFIX}{event.thoughts}")
        lines.append("")

    return "".join(f"{line}\n" for line in lines)


def _unquote(value: str) -> str:
    value = value.rstrip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def _parse_checkbox(line: str) -> Optional[Goal]:
    match = _CHECKBOX_RE.match(line)
    if match:
        return Goal(description=match.group(2), completed=match.group(1) in ("x", "X"))
    if line.startswith("- "):
        return Goal(description=line[2:])
    return None


def _finish_event(current: Optional[Dict[str, str]], events: List[StmEvent]) -> None:
    if current is None:
        return
    thoughts = current.get("thoughts", "").strip()
    events.append(
        StmEvent(
            timestamp=current["timestamp"],
            user=_unquote(current.get("user", "").strip("\n")),
            ai=_unquote(current.get("ai", "").strip("\n")),
            thoughts=thoughts or None,
        )
    )


def _parse_structured(text: str, goals: List[Goal], thoughts: List[str], tasks: List[Goal]) -> None:
    section = None
    for line in text.splitlines():
        stripped = line.strip()
        if stripped == STM_GOALS:
            section = "goals"
        elif stripped == STM_FACTS:
            section = "facts"
        elif stripped == STM_TASKS:
            section = "tasks"
        elif section in ("goals", "tasks") and stripped:
            item = _parse_checkbox(stripped)
            if item is not None:
                (goals if section == "goals" else tasks).append(item)
        elif section == "facts" and stripped.startswith("- "):
            thoughts.append(stripped[2:])


def _parse_events(text: str) -> List[StmEvent]:
    events: List[StmEvent] = []
    current: Optional[Dict[str, str]] = None
    field = None

    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith("### "):
            _finish_event(current, events)
            current = {"timestamp": stripped[4:].strip()}
            field = None
        elif current is None:
            continue
        elif line.startswith(USER_PREFIX.rstrip()):
            field = "user"
            current[field] = line[len(USER_PREFIX.rstrip()):].lstrip()
        elif line.startswith(AI_PREFIX.rstrip()):
            field = "ai"
            current[field] = line[len(AI_PREFIX.rstrip()):].lstrip()
        elif line.startswith(THOUGHTS_PREFIX.rstrip()):
            field = "thoughts"
            current[field] = line[len(THOUGHTS_PREFIX.rstrip()):].lstrip()
        elif field is not None:
            current[field] = f"{current[field]}\n{line}"

    _finish_event(current, events)
    return events


def _split_sections(body: str) -> Tuple[str, str, str]:
    """Split the text after the title into summary, structured and event parts.

    The summary is free-form markdown, so it only ends at the rule that opens
    the structured block. Headings or rules inside it stay part of it.
    """

    start = _SUMMARY_START_RE.search(body)
    rest = body[start.end():] if start else body

    end = _SUMMARY_END_RE.search(rest)
    if end is None:
        events_start = _EVENTS_START_RE.search(rest)
        if events_start is None:
            return rest, "", ""
        return rest[:events_start.start()], "", rest[events_start.end():]

    summary, rest = rest[:end.start()], rest[end.end():]
    events_start = _EVENTS_START_RE.search(rest)
    if events_start is None:
        return summary, rest, ""
    return summary, rest[:events_start.start()], rest[events_start.end():]


def decode_short_term(text: str) -> ShortTermMemory:
    """Parse short-term memory markdown. Never raises.

    Text that does not start with the STM title is returned as the summary,
    with ``raw`` set to the original text.
    """

    if not text or not text.strip():
        return ShortTermMemory()

    body = text.lstrip()
    if not body.startswith(STM_TITLE):
        logger.warning("Short-term memory does not match the expected layout; passing it through as raw text")
        return ShortTermMemory(summary=text.strip(), raw=text)

    summary, structured, event_log = _split_sections(body[len(STM_TITLE):])

    thoughts: List[str] = []
    goals: List[Goal] = []
    tasks: List[Goal] = []
    _parse_structured(structured, goals, thoughts, tasks)

    return ShortTermMemory(
        summary=summary.strip(),
        thoughts=thoughts,
        goals=goals,
        tasks=tasks,
        events=_parse_events(event_log),
    )


# ---------------------------------------------------------------------------
# Long-term memory
# ---------------------------------------------------------------------------

def encode_long_term(document: LongTermMemory) -> str:
    """Render an LTM document as ``---\\n<yaml>---\\n<body>``."""

    frontmatter = yaml.safe_dump(
        document.frontmatter.to_yaml_dict(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"---\n{frontmatter}---\n{document.content}"


def decode_long_term(path: str, text: str) -> LongTermMemory:
    """Parse an LTM document.

    Raises:
        MemoryFormatError: If the frontmatter delimiters are missing, the YAML
            is invalid, or required frontmatter fields are absent.
    """

    match = _FRONTMATTER_RE.match(text)
    if match is None:
        raise MemoryFormatError(path, "expected '---' delimited YAML frontmatter")

    raw_frontmatter, body = match.group(1), match.group(2)
    try:
        data = yaml.safe_load(raw_frontmatter)
    except yaml.YAMLError as e:
        raise MemoryFormatError(path, f"invalid YAML frontmatter: {e}")

    if not isinstance(data, dict):
        raise MemoryFormatError(path, "frontmatter is not a mapping")

    try:
        frontmatter = Frontmatter.model_validate(data)
    except ValidationError as e:
        raise MemoryFormatError(path, f"invalid frontmatter: {e.errors()[0].get('msg', e)}")

    return LongTermMemory(path=path, frontmatter=frontmatter, content=body)


# ---------------------------------------------------------------------------
# Access log
# ---------------------------------------------------------------------------

def encode_log_line(entry: AccessLogEntry) -> str:
    return LOG_FIELD_SEPARATOR.join(
        [f"[{format_timestamp(entry.timestamp)}]", entry.action.value, entry.file_path]
    )


def parse_log_line(line: str) -> Optional[AccessLogEntry]:
    """Parse one access log line, returning ``None`` when it is malformed."""

    parts = line.strip().split(LOG_FIELD_SEPARATOR, 2)
    if len(parts) != 3:
        return None

    raw_timestamp, raw_action, file_path = (part.strip() for part in parts)
    if not file_path:
        return None

    try:
        timestamp = parse_timestamp(raw_timestamp.strip("[]"))
        action = AccessAction(raw_action)
    except ValueError:
        return None

    return AccessLogEntry(timestamp=timestamp, action=action, file_path=file_path)


__all__ = [
    "decode_long_term",
    "decode_short_term",
    "encode_log_line",
    "encode_long_term",
    "encode_short_term",
    "parse_log_line",
]
