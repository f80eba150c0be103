"""Command line interface for gitsweep."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from gitsweep.branches import (
    Branch,
    classify,
    current_branch,
    delete_branches,
    list_branches,
    recent_branches,
    resolve_default_branch,
    switch_branch,
)
from gitsweep.config import DEFAULT_REMOTE, Settings
from gitsweep.exceptions import CurrentBranchError, GitError
from gitsweep.git import GitRepo
from gitsweep.logging_config import get_logger, setup_logging

app = typer.Typer(help="Prune merged and squashed branches, and switch to recent ones")
console = Console()
logger = get_logger(__name__)

PathOption = Annotated[Path, typer.Option(help="Path to git repository")]
TimeoutOption = Annotated[
    Optional[float],
    typer.Option(help="Seconds before a single git call is killed", envvar="GITSWEEP_TIMEOUT"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show progress messages")]
DebugOption = Annotated[bool, typer.Option("--debug", help="Show git calls and detection details")]


def fail(message: str, err: Optional[Exception] = None) -> typer.Exit:
    """Print an error and build the exit to raise."""
    console.print(f"[red]Error:[/red] {escape(message)}")
    if err is not None:
        logger.debug("Failure details", exc_info=err)
    return typer.Exit(code=1)


def get_repo(path: Path, timeout: Optional[float]) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path, timeout=timeout)
    except GitError as err:
        raise fail(str(err), err) from err


def get_settings(**options) -> Settings:
    """Build settings from CLI options."""
    try:
        return Settings.from_options(**options)
    except ValueError as err:
        raise fail(str(err), err) from err


def parse_selection(text: str, count: int) -> list[int]:
    """Parse a selection such as "1,3-5" or "all" into zero-based indexes.

    Raises:
        ValueError: If the selection is malformed or out of range
    """
    text = text.strip().lower()
    if not text:
        return []
    if text in ("a", "all", "*"):
        return list(range(count))

    indexes: list[int] = []
    for part in text.replace(",", " ").split():
        start, sep, end = part.partition("-")
        if not start.isdigit() or (sep and not end.isdigit()):
            raise ValueError(f"Not a number or range: {part}")
        first, last = int(start), int(end) if sep else int(start)
        if first > last:
            first, last = last, first
        if first < 1 or last > count:
            raise ValueError(f"Choose numbers between 1 and {count}")
        for number in range(first, last + 1):
            if number - 1 not in indexes:
                indexes.append(number - 1)
    return indexes


def create_branch_table(title: str, branches: list[Branch], show_dates: bool = False) -> Table:
    """Create a numbered table of branches."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold",
        title_style="bold blue",
        show_edge=True,
    )
    table.add_column("#", style="dim", justify="right", no_wrap=True)
    if show_dates:
        table.add_column("Last Commit", style="yellow", no_wrap=True)
    table.add_column("Branch", style="cyan", no_wrap=True)

    for number, branch in enumerate(branches, start=1):
        if show_dates:
            table.add_row(str(number), branch.last_commit_date or "", escape(branch.name))
        else:
            table.add_row(str(number), escape(branch.name))
    return table


def prompt_selection(message: str, count: int) -> list[int]:
    """Ask until the user enters a valid selection; empty input selects nothing."""
    while True:
        answer = typer.prompt(message, default="", show_default=False)
        try:
            return parse_selection(answer, count)
        except ValueError as err:
            console.print(f"[yellow]{escape(str(err))}[/yellow]")


@app.command()
def purge(
    path: PathOption = Path("."),
    remote: Annotated[
        str,
        typer.Option(help="Remote whose HEAD names the default branch", envvar="GITSWEEP_REMOTE"),
    ] = DEFAULT_REMOTE,
    protect: Annotated[
        str,
        typer.Option("--protect", "-p", help="Comma-separated list of branch patterns to protect", envvar="GITSWEEP_PROTECT"),
    ] = "",
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Delete every candidate without prompting")] = False,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Show what would be deleted and stop")] = False,
    workers: Annotated[int, typer.Option(help="Number of parallel squash checks", envvar="GITSWEEP_WORKERS")] = 1,
    timeout: TimeoutOption = None,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """Delete local branches merged or squashed into the default branch."""
    setup_logging(verbose=verbose, debug=debug)
    settings = get_settings(remote=remote, protect=protect, workers=workers, timeout=timeout)
    repo = get_repo(path, settings.timeout)

    try:
        default_branch = resolve_default_branch(repo, settings)
        branches = list_branches(repo)
    except GitError as err:
        raise fail(str(err), err) from err

    result = classify(repo, default_branch, branches, settings)
    for warning in result.warnings:
        console.print(f"[yellow]⚠ {escape(warning)}[/yellow]")

    if not result.purgeable:
        console.print(
            Panel(
                "[green]No purgeable branches found. All clean ✨[/green]",
                style="green",
                padding=(0, 2),
                expand=False,
            )
        )
        return

    console.print(f"Found {len(result.purgeable)} branch(es) merged/squashed into [bold]{escape(default_branch)}[/bold]")
    console.print(create_branch_table("Purgeable Branches", list(result.purgeable)))

    if yes:
        selected = result.names
    else:
        indexes = prompt_selection(
            "Select branches to delete (e.g. 1,3-4 or 'all'; empty to cancel)",
            len(result.purgeable),
        )
        selected = [result.purgeable[index].name for index in indexes]

    if not selected:
        console.print("\n[yellow]No branches selected.[/yellow]")
        return

    if dry_run:
        msg = "The following branches would be deleted:\n" + "\n".join(f"  [blue]{escape(name)}[/blue]" for name in selected)
        console.print(Panel(msg, title="Dry Run", title_align="left", padding=(0, 2), expand=False))
        return

    try:
        delete_branches(repo, selected)
    except GitError as err:
        raise fail(str(err), err) from err

    result_table = Table(show_header=True, header_style="bold", show_edge=True)
    result_table.add_column("Branch", style="cyan", no_wrap=True)
    for name in selected:
        result_table.add_row(escape(name))
    console.print(f"\n[bold green]Deleted {len(selected)} branch(es)[/bold green] 🧹")
    console.print(result_table)


@app.command()
def recent(
    path: PathOption = Path("."),
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", min=1, help="Show at most this many branches")] = None,
    timeout: TimeoutOption = None,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """Switch to a branch, most recently committed first."""
    setup_logging(verbose=verbose, debug=debug)
    settings = get_settings(timeout=timeout)
    repo = get_repo(path, settings.timeout)

    try:
        branches = recent_branches(repo)
    except GitError as err:
        raise fail(str(err), err) from err

    try:
        current = current_branch(repo)
    except CurrentBranchError as err:
        logger.warning("%s", err)
        current = None
    branches = [branch for branch in branches if branch.name != current]
    if limit is not None:
        branches = branches[:limit]

    if not branches:
        console.print("[yellow]No other branches found.[/yellow]")
        return

    console.print(f"Found {len(branches)} branch(es)")
    console.print(create_branch_table("Recent Branches", branches, show_dates=True))
    while True:
        indexes = prompt_selection("Switch to branch number (empty to cancel)", len(branches))
        if not indexes:
            console.print("\n[yellow]No branch selected.[/yellow]")
            return
        if len(indexes) == 1:
            break
        console.print("[yellow]Choose a single branch[/yellow]")

    selected = branches[indexes[0]].name
    try:
        switch_branch(repo, selected)
    except GitError as err:
        raise fail(str(err), err) from err
    console.print(f"Switched to branch [cyan]{escape(selected)}[/cyan]")


def purge_main() -> None:
    """Entry point for the git-purge command."""
    typer.run(purge)


def recent_main() -> None:
    """Entry point for the git-recent command."""
    typer.run(recent)


if __name__ == "__main__":
    app()
