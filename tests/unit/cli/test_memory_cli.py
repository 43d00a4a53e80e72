"""Tests for the engram CLI inspection commands."""

from datetime import datetime, timezone

import pytest
from typer.testing import CliRunner

from engram.cli.main import app
from engram.memory.models.access_log import AccessAction
from engram.memory.models.long_term import Frontmatter, LongTermMemory
from engram.memory.models.short_term import Goal, ShortTermMemory
from engram.memory.storage.access_log import AccessLog
from engram.memory.storage.long_term import LongTermStore
from engram.memory.storage.short_term import ShortTermStore

NOW = datetime(2024, 5, 2, 9, 0, tzinfo=timezone.utc)

runner = CliRunner()


@pytest.fixture
def root(tmp_path, monkeypatch):
    monkeypatch.delenv("ENGRAM_CONFIG_PATH", raising=False)
    return tmp_path / "memory"


def invoke(root, *args):
    return runner.invoke(app, ["--root", str(root), *args])


def seed(root) -> None:
    LongTermStore(root / "long-term-memory").write(
        LongTermMemory(
            path="notes/a.md",
            frontmatter=Frontmatter(uuid="u1", created_at=NOW, updated_at=NOW, tags=["x"]),
            content="# A\n\nAlpha.\n",
        )
    )
    AccessLog(root / "logs" / "access.log").append(AccessAction.READ, "notes/a.md", timestamp=NOW)


def test_mind_map_of_missing_root(root) -> None:
    result = invoke(root, "mind-map")

    assert result.exit_code == 0
    assert "does not exist yet" in result.output
    assert "<mind-map />" in result.output


def test_mind_map_lists_documents(root) -> None:
    seed(root)

    result = invoke(root, "mind-map")

    assert result.exit_code == 0
    assert '<folder name="notes">' in result.output
    assert '<file name="a.md" />' in result.output


def test_short_term_display(root) -> None:
    assert "Short-term memory is empty" in invoke(root, "stm").output

    ShortTermStore(root / "short-term-memory.txt").write(
        ShortTermMemory(summary="Planning.", goals=[Goal(description="Ship")])
    )
    result = invoke(root, "stm")

    assert result.exit_code == 0
    assert "Planning." in result.output
    assert "Ship" in result.output


def test_ltm_list_and_show(root) -> None:
    assert "No long-term memories stored" in invoke(root, "ltm", "list").output
    seed(root)

    listing = invoke(root, "ltm", "list")
    shown = invoke(root, "ltm", "show", "notes/a.md")

    assert listing.exit_code == 0
    assert "notes/a.md" in listing.output
    assert shown.exit_code == 0
    assert "uuid: u1" in shown.output
    assert "Alpha." in shown.output


def test_ltm_show_missing_document_fails(root) -> None:
    result = invoke(root, "ltm", "show", "nope.md")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_log_show_and_archive(root) -> None:
    seed(root)

    shown = invoke(root, "log", "show")
    archived = invoke(root, "log", "archive")
    again = invoke(root, "log", "archive")

    assert "READ" in shown.output
    assert archived.exit_code == 0
    assert "Archived access log" in archived.output
    assert "nothing to archive" in again.output
    assert len(list((root / "logs" / "archive").iterdir())) == 1


def test_config_show_and_invalid_config(root, tmp_path) -> None:
    shown = invoke(root, "config", "show")
    assert shown.exit_code == 0
    assert "stm_token_threshold" in shown.output

    bad = tmp_path / "bad.yaml"
    bad.write_text("unknown_setting: 1\n", encoding="utf-8")
    result = runner.invoke(app, ["--config", str(bad), "config", "show"])

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "engram 0.1.0" in result.output
