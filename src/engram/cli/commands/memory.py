"""Operational CLI commands for inspecting the memory root."""


from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from engram.cli.state import state
from engram.config.settings import MemoryConfig
from engram.core.exceptions import MemoryFormatError, MemoryNotFoundError, MemoryPathError
from engram.memory.models.timestamps import format_timestamp
from engram.memory.storage.access_log import AccessLog
from engram.memory.storage.long_term import LongTermStore
from engram.memory.storage.short_term import ShortTermStore

console = Console()

ltm_app = typer.Typer(name="ltm", help="Inspect long-term memory documents.")
log_app = typer.Typer(name="log", help="Inspect and rotate the access log.")


def truncate(text: str, width: int = 60) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else f"{text[: width - 3]}..."


def _config() -> MemoryConfig:
    config = state.get("config")
    return config if config is not None else MemoryConfig()


def _long_term() -> LongTermStore:
    return LongTermStore(_config().long_term_dir)


def _access_log() -> AccessLog:
    config = _config()
    return AccessLog(config.access_log_path, config.archive_dir)


def show_mind_map() -> None:
    """Print the long-term memory mind map."""
    mind_map = _long_term().generate_mind_map()
    if not mind_map.exists:
        console.print("[yellow]Long-term memory directory does not exist yet.[/]")
    console.print(mind_map.to_xml(), markup=False, highlight=False)


def show_short_term() -> None:
    """Display the short-term memory document."""
    memory = ShortTermStore(_config().short_term_path).read()
    if memory.is_empty:
        console.print("[yellow]Short-term memory is empty.[/]")
        return

    console.print("[bold]Summary[/]")
    console.print(memory.summary or "-", markup=False)

    table = Table(title="Structured Data", show_lines=False)
    table.add_column("Section", style="cyan", no_wrap=True)
    table.add_column("Entry")
    for goal in memory.goals:
        table.add_row("goal", escape(f"[{'x' if goal.completed else ' '}] {goal.description}"))
    for fact in memory.thoughts:
        table.add_row("fact", escape(fact))
    for task in memory.tasks:
        table.add_row("task", escape(f"[{'x' if task.completed else ' '}] {task.description}"))
    console.print(table)
    console.print(f"{len(memory.events)} event(s) in the event log")


def register_memory_commands(app: typer.Typer) -> None:
    app.command("mind-map")(show_mind_map)
    app.command("stm")(show_short_term)


@ltm_app.command("list")
def list_documents() -> None:
    """List long-term memory documents with their frontmatter."""
    store = _long_term()
    paths = store.list()
    if not paths:
        console.print("[yellow]No long-term memories stored.[/]")
        return

    table = Table(title="Long-Term Memory", show_lines=False)
    table.add_column("Path", style="cyan", no_wrap=True)
    table.add_column("UUID", style="dim")
    table.add_column("Tags", style="magenta")
    table.add_column("Reinforced", justify="right")
    table.add_column("Updated")

    for path in paths:
        try:
            document = store.read(path)
        except MemoryFormatError as e:
            table.add_row(escape(path), "[red]unreadable[/]", "-", "-", escape(truncate(e.reason, 40)))
            continue
        frontmatter = document.frontmatter
        table.add_row(
            escape(path),
            frontmatter.uuid,
            escape(", ".join(frontmatter.tags)) or "-",
            str(frontmatter.reinforcement_count),
            format_timestamp(frontmatter.updated_at),
        )
    console.print(table)


@ltm_app.command("show")
def show_document(path: Annotated[str, typer.Argument(help="Path relative to the long-term memory root.")]) -> None:
    """Print one long-term memory document."""
    try:
        document = _long_term().read(path)
    except (MemoryNotFoundError, MemoryFormatError, MemoryPathError) as e:
        console.print(f"[bold red]Error:[/] {e.message}")
        raise typer.Exit(code=1)

    frontmatter = document.frontmatter
    console.print(f"[bold cyan]{escape(document.path)}[/]")
    console.print(f"uuid: {frontmatter.uuid}")
    console.print(f"created: {format_timestamp(frontmatter.created_at)}")
    console.print(f"updated: {format_timestamp(frontmatter.updated_at)}")
    console.print(f"tags: {', '.join(frontmatter.tags) or '-'}", markup=False)
    console.print(f"reinforcement: {frontmatter.reinforcement_count}")
    console.print()
    console.print(document.content, markup=False, highlight=False)


@log_app.command("show")
def show_log(
    limit: Annotated[int, typer.Option("--limit", "-n", min=1, help="Show only the most recent entries.")] = 50,
) -> None:
    """Display recent access log entries."""
    entries = _access_log().read_all()
    if not entries:
        console.print("[yellow]Access log is empty.[/]")
        return

    table = Table(title=f"Access Log ({len(entries)} entries)")
    table.add_column("Timestamp", no_wrap=True)
    table.add_column("Action", style="magenta")
    table.add_column("Path", style="cyan")
    for entry in entries[-limit:]:
        table.add_row(format_timestamp(entry.timestamp), entry.action.value, escape(entry.file_path))
    console.print(table)


@log_app.command("archive")
def archive_log() -> None:
    """Rotate the access log into the archive directory."""
    archived = _access_log().archive_and_clear()
    if archived is None:
        console.print("[yellow]Access log is empty; nothing to archive.[/]")
        return
    console.print(f"[green]Archived access log to {archived}[/]")
