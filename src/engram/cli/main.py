#!/usr/bin/env python3
"""
Engram Command Line Interface

Inspection and maintenance commands for a memory root: the mind map, the
short-term memory document, long-term documents and the access log.

Usage:
    engram --help
    engram [command] [options]

Examples:
    engram mind-map
    engram ltm show projects/apollo.md
    engram log show --limit 20
    engram --config engram.yaml config show

Environment Variables:
    ENGRAM_CONFIG_PATH: Path to configuration file
    ENGRAM_ROOT: Memory root directory
    ENGRAM_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

import logging
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from engram import __version__
from engram.cli.commands.memory import ltm_app, log_app, register_memory_commands
from engram.cli.state import state
from engram.config.loader import ConfigurationLoader
from engram.core.exceptions import ConfigurationError
from engram.core.utils.logging import resolve_level

# Initialize rich console for pretty output
console = Console()

# Configure logging with rich handler
logging.basicConfig(
    level=resolve_level(),
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="engram",
    help="Inspect and maintain an Engram memory root",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]}
)
config_app = typer.Typer(name="config", help="Show the effective configuration.")
app.add_typer(config_app, name="config")
app.add_typer(ltm_app, name="ltm")
app.add_typer(log_app, name="log")
register_memory_commands(app)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"engram {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose output.")] = False,
    config_path: Annotated[Optional[str], typer.Option("--config", "-c", help="Path to configuration file.")] = None,
    root: Annotated[Optional[str], typer.Option("--root", "-r", help="Memory root directory.")] = None,
    version: Annotated[
        bool, typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit.")
    ] = False,
):
    """
    Engram memory engine CLI.
    """
    logging.getLogger("engram").setLevel(logging.DEBUG if verbose else logging.INFO)
    if verbose:
        logger.debug("Verbose logging enabled")

    overrides = {"root_dir": root} if root else {}
    try:
        state["config"] = ConfigurationLoader(config_path).load(overrides)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/] {e.message}")
        raise typer.Exit(code=1)


@config_app.command("show")
def show_config() -> None:
    """Print the effective configuration."""
    config = state["config"]
    for key, value in config.as_dict().items():
        console.print(f"[cyan]{key}[/]: {value}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
