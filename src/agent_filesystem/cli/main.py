"""
CLI for agent-filesystem.

Runs the filesystem service against a local workspace so the safety gate,
ignore rules and relevance search can be tried from a terminal.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from agent_filesystem import __version__
from agent_filesystem.config import FileSystemConfig, ProviderSettings
from agent_filesystem.exceptions import (
    CommandNotApprovedError,
    FileSystemError,
)
from agent_filesystem.providers.base import ContextLines, DirectoryTreeOptions, GrepOptions
from agent_filesystem.search import SearchRanker, extract_keywords, format_results
from agent_filesystem.security import CommandSafetyClassifier, CommandSafetyLevel
from agent_filesystem.service import FileSystemService
from agent_filesystem.tools import AgentFileSystemTools

# Load environment variables
load_dotenv()

console = Console()

LEVEL_STYLES = {
    CommandSafetyLevel.SAFE: "green",
    CommandSafetyLevel.UNKNOWN: "yellow",
    CommandSafetyLevel.DANGEROUS: "bold red",
}


def setup_logging(verbose: bool = False) -> None:
    """Setup rich logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_config(config_path: Optional[str], root: Optional[str]) -> FileSystemConfig:
    """
    Resolve configuration for a CLI invocation.

    A config file wins over ``AGENT_FS_*`` environment variables. ``--root``
    always installs a "local" provider and makes it the default. Without any
    provider the current directory is used.
    """
    if config_path:
        config = FileSystemConfig.from_file(config_path)
    else:
        config = FileSystemConfig.from_env()

    if root is None and config.providers:
        return config

    providers = dict(config.providers)
    providers["local"] = ProviderSettings(base_directory=root or Path.cwd())
    return config.model_copy(update={"providers": providers, "default_provider": "local"})


class CliContext:
    """Service and session shared by the commands of one invocation."""

    def __init__(self, config: FileSystemConfig):
        self.config = config
        self.service = FileSystemService(config)
        self.state = self.service.attach()


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML or JSON configuration file",
)
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Workspace root for the local provider (default: current directory)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], root: Optional[str], verbose: bool):
    """Agent filesystem CLI - safe workspace access for coding agents."""
    setup_logging(verbose)
    try:
        ctx.obj = CliContext(load_config(config_path, root))
    except (FileSystemError, ValueError) as e:
        _fail(f"Configuration error: {e}")


@cli.command()
@click.argument("command")
@click.pass_obj
def classify(obj: CliContext, command: str):
    """
    Classify a shell command as safe, unknown or dangerous.

    Examples:

        agent-fs classify "cd src && npm install"

        agent-fs classify "rm -rf build"
    """
    classifier: CommandSafetyClassifier = obj.service.classifier
    result = classifier.explain(command)
    style = LEVEL_STYLES[result.level]

    console.print(
        Panel(
            f"[{style}]{result.level.value.upper()}[/{style}]\n"
            f"Commands: {escape(', '.join(result.commands)) or '-'}\n"
            f"Reason: {escape(result.reason)}",
            title=escape(command),
        )
    )


@cli.command()
@click.argument("command")
@click.pass_obj
def parse(obj: CliContext, command: str):
    """Print the command names found in a compound command line."""
    for name in obj.service.parse_compound_command(command):
        print(name)


@cli.command()
@click.argument("path", default="")
@click.option("--recursive/--no-recursive", default=True, help="Walk subdirectories")
@click.pass_obj
def tree(obj: CliContext, path: str, recursive: bool):
    """List a directory, honoring ignore rules."""

    async def _tree():
        options = DirectoryTreeOptions(recursive=recursive)
        async for entry in obj.service.get_directory_tree(path, obj.state, options):
            print(entry)

    try:
        asyncio.run(_tree())
    except (FileSystemError, OSError) as e:
        _fail(str(e))


@cli.command(name="glob")
@click.argument("pattern")
@click.pass_obj
def glob_files(obj: CliContext, pattern: str):
    """Find files by glob pattern, honoring ignore rules."""
    try:
        matches = asyncio.run(obj.service.glob(pattern, obj.state))
    except (FileSystemError, OSError) as e:
        _fail(str(e))
        return

    for match in matches:
        print(match)


@cli.command()
@click.argument("patterns", nargs=-1, required=True)
@click.option("--context", "-C", "context_lines", type=int, default=0, help="Context lines")
@click.pass_obj
def grep(obj: CliContext, patterns: tuple[str, ...], context_lines: int):
    """Search file contents for literal strings."""
    options = GrepOptions()
    if context_lines:
        options.include_content = ContextLines(context_lines, context_lines)

    try:
        results = asyncio.run(obj.service.grep(list(patterns), obj.state, options))
    except (FileSystemError, OSError) as e:
        _fail(str(e))
        return

    for result in results:
        if result.content is not None:
            print(f"{result.file}:{result.line}:\n{result.content}\n")
        else:
            print(f"{result.file}:{result.line}: {result.match}")


@cli.command()
@click.argument("query")
@click.option("--max-results", "-n", type=int, default=None, help="Maximum files to show")
@click.option("--text", is_flag=True, help="Print the LLM context block instead of a table")
@click.pass_obj
def search(obj: CliContext, query: str, max_results: Optional[int], text: bool):
    """
    Rank files by relevance to a natural-language query.

    Examples:

        agent-fs search "where is the config.json parser"

        agent-fs search "typescript routes" --text
    """
    ranker = SearchRanker(obj.config.file_search)
    try:
        results = asyncio.run(
            ranker.search(query, obj.service.bind(obj.state), max_results)
        )
    except (FileSystemError, OSError) as e:
        _fail(str(e))
        return

    if text:
        print(format_results(results, extract_keywords(query)))
        return

    if not results:
        console.print("[yellow]No matching files.[/yellow]")
        return

    table = Table(title=f"Results for {escape(query)!r}")
    table.add_column("Score", justify="right")
    table.add_column("Match")
    table.add_column("Path")
    for result in results:
        table.add_row(f"{result.score:.2f}", result.match_type.value, escape(result.file_path))
    console.print(table)


@cli.command()
@click.argument("command")
@click.option("--timeout", "-t", type=int, default=60, help="Timeout in seconds")
@click.option("--cwd", default=None, help="Working directory relative to the root")
@click.option("--yes", "-y", is_flag=True, help="Approve gated commands without asking")
@click.pass_obj
def run(obj: CliContext, command: str, timeout: int, cwd: Optional[str], yes: bool):
    """
    Run a shell command through the safety gate.

    Unknown and dangerous commands ask for confirmation first.
    """

    def confirm(message: str, level: CommandSafetyLevel) -> bool:
        if yes:
            return True
        style = LEVEL_STYLES[level]
        return Confirm.ask(f"[{style}]{escape(message)}[/{style}]", console=console)

    tools = AgentFileSystemTools(obj.service, obj.state, confirm=confirm)

    try:
        result = asyncio.run(tools.run_shell_command(command, timeout, cwd))
    except CommandNotApprovedError as e:
        console.print(f"[yellow]{escape(str(e))}[/yellow]")
        sys.exit(1)
    except (FileSystemError, ValueError) as e:
        _fail(str(e))
        return

    if result.stdout:
        print(result.stdout, end="")
    if result.stderr:
        print(result.stderr, end="", file=sys.stderr)
    if not result.ok:
        console.print(f"[bold red]{escape(result.error or 'Command failed')}[/bold red]")
        sys.exit(result.exit_code if result.exit_code > 0 else 1)


if __name__ == "__main__":
    cli()
