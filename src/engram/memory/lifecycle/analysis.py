"""Deterministic access-pattern analysis over the access log."""

from __future__ import annotations

from collections import Counter
from datetime import timedelta
from itertools import combinations
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from engram.memory.models.access_log import AccessAction, AccessLogEntry
from engram.memory.models.organization import CoAccessedPair, FileAccessStats, MemoryAnalysis


def _is_store_path(path: str) -> bool:
    # STM accesses are logged with an absolute path; only relative paths address LTM documents.
    return bool(path) and not path.startswith("/") and ":" not in path.split("/", 1)[0]


def split_sessions(entries: Sequence[AccessLogEntry], window: timedelta) -> List[List[AccessLogEntry]]:
    """Group time-ordered entries into sessions separated by gaps longer than ``window``."""

    sessions: List[List[AccessLogEntry]] = []
    for entry in sorted(entries, key=lambda e: e.timestamp):
        if sessions and entry.timestamp - sessions[-1][-1].timestamp <= window:
            sessions[-1].append(entry)
        else:
            sessions.append([entry])
    return sessions


def analyze_access_log(
    entries: Iterable[AccessLogEntry],
    known_files: Iterable[str],
    *,
    session_window: timedelta = timedelta(minutes=30),
    frequent_threshold: int = 3,
) -> MemoryAnalysis:
    """
    Summarise how the long-term store was used.

    Args:
        entries: Access log entries since the last rotation
        known_files: Document paths currently in the store
        session_window: Maximum gap between accesses of one session
        frequent_threshold: Minimum count for the frequently accessed/modified lists

    Returns:
        MemoryAnalysis with per-file counters, co-accessed pairs and unused files.
    """
    store_entries = [entry for entry in entries if _is_store_path(entry.file_path)]
    stats: Dict[str, FileAccessStats] = {}

    for entry in store_entries:
        file_stats = stats.setdefault(entry.file_path, FileAccessStats())
        if entry.action is AccessAction.READ:
            file_stats.reads += 1
        elif entry.action is AccessAction.WRITE:
            file_stats.writes += 1
        else:
            file_stats.modifies += 1
        if file_stats.last_access is None or entry.timestamp > file_stats.last_access:
            file_stats.last_access = entry.timestamp

    frequently_accessed = sorted(
        (path for path, s in stats.items() if s.reads >= frequent_threshold),
        key=lambda path: (-stats[path].reads, path),
    )
    frequently_modified = sorted(
        (path for path, s in stats.items() if s.writes + s.modifies >= frequent_threshold),
        key=lambda path: (-(stats[path].writes + stats[path].modifies), path),
    )

    pair_counts: Counter = Counter()
    for session in split_sessions(store_entries, session_window):
        files: Set[str] = {entry.file_path for entry in session}
        for pair in combinations(sorted(files), 2):
            pair_counts[pair] += 1
    co_accessed: List[Tuple[Tuple[str, str], int]] = sorted(pair_counts.items(), key=lambda item: (-item[1], item[0]))

    accessed = set(stats)
    unused = sorted(path for path in set(known_files) if path not in accessed)

    return MemoryAnalysis(
        file_stats=stats,
        frequently_accessed=frequently_accessed,
        frequently_modified=frequently_modified,
        co_accessed_pairs=[CoAccessedPair(first=a, second=b, count=n) for (a, b), n in co_accessed],
        unused_files=unused,
    )


def render_analysis(analysis: MemoryAnalysis) -> str:
    """Plain-text rendering of an analysis for model prompts."""

    lines = ["## Access counts (reads/writes/modifies)"]
    for path in sorted(analysis.file_stats):
        s = analysis.file_stats[path]
        lines.append(f"- {path}: {s.reads}/{s.writes}/{s.modifies}")
    lines.append("")
    lines.append("## Frequently accessed")
    lines.extend(f"- {path}" for path in analysis.frequently_accessed)
    lines.append("")
    lines.append("## Frequently modified")
    lines.extend(f"- {path}" for path in analysis.frequently_modified)
    lines.append("")
    lines.append("## Accessed together")
    lines.extend(f"- {p.first} + {p.second} ({p.count} sessions)" for p in analysis.co_accessed_pairs)
    lines.append("")
    lines.append("## Unused since last review")
    lines.extend(f"- {path}" for path in analysis.unused_files)
    if analysis.insights:
        lines.append("")
        lines.append("## Observations")
        lines.extend(f"- {insight}" for insight in analysis.insights)
    return "\n".join(lines)
