"""Unit tests for access-pattern analysis."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from engram.memory.lifecycle.analysis import analyze_access_log, render_analysis, split_sessions
from engram.memory.models.access_log import AccessAction, AccessLogEntry

START = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def entry(minutes: int, action: AccessAction, path: str) -> AccessLogEntry:
    return AccessLogEntry(timestamp=START + timedelta(minutes=minutes), action=action, file_path=path)


ENTRIES = [
    entry(0, AccessAction.READ, "a.md"),
    entry(5, AccessAction.READ, "b.md"),
    entry(10, AccessAction.READ, "a.md"),
    entry(120, AccessAction.READ, "a.md"),
    entry(125, AccessAction.READ, "b.md"),
    entry(130, AccessAction.MODIFY, "c.md"),
    entry(131, AccessAction.WRITE, "c.md"),
    entry(132, AccessAction.MODIFY, "c.md"),
    entry(133, AccessAction.WRITE, "/tmp/memory/short-term-memory.txt"),
]


def test_split_sessions_on_gaps() -> None:
    sessions = split_sessions(ENTRIES, timedelta(minutes=30))

    assert [len(session) for session in sessions] == [3, 6]


def test_counts_and_frequent_lists() -> None:
    analysis = analyze_access_log(ENTRIES, ["a.md", "b.md", "c.md", "d.md"], frequent_threshold=3)

    assert analysis.file_stats["a.md"].reads == 3
    assert analysis.file_stats["c.md"].writes == 1
    assert analysis.file_stats["c.md"].modifies == 2
    assert analysis.file_stats["a.md"].last_access == START + timedelta(minutes=120)
    assert analysis.frequently_accessed == ["a.md"]
    assert analysis.frequently_modified == ["c.md"]
    assert analysis.unused_files == ["d.md"]


def test_short_term_accesses_are_ignored() -> None:
    analysis = analyze_access_log(ENTRIES, [])

    assert all(not path.startswith("/") for path in analysis.file_stats)


def test_co_accessed_pairs_count_sessions() -> None:
    analysis = analyze_access_log(ENTRIES, [])

    pairs = {(p.first, p.second): p.count for p in analysis.co_accessed_pairs}
    assert pairs == {("a.md", "b.md"): 2, ("a.md", "c.md"): 1, ("b.md", "c.md"): 1}
    assert analysis.co_accessed_pairs[0].first == "a.md"


def test_render_analysis_mentions_sections() -> None:
    analysis = analyze_access_log(ENTRIES, ["d.md"])
    analysis.insights = ["a and b are read together"]

    text = render_analysis(analysis)

    assert "- a.md: 3/0/0" in text
    assert "- a.md + b.md (2 sessions)" in text
    assert "## Unused since last review\n- d.md" in text
    assert text.endswith("- a and b are read together")
