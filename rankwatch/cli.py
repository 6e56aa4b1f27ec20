"""Typer CLI application for rankwatch.

Manage tracked keywords and domains, run rank checks in the foreground or on
a schedule, and print the latest ranking movements.
"""

import logging
import time
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

console = Console()
app = typer.Typer(
    name="rankwatch",
    help="rankwatch -- keyword rank tracking for a domain and its competitors.",
    add_completion=False,
    no_args_is_help=True,
)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level and format."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _get_app(config_path: str):
    """Lazy-import, initialise, and return the application object."""
    from rankwatch.app import RankWatchApp
    rank_app = RankWatchApp(config_path=config_path)
    rank_app.initialize()
    return rank_app


def _change_style(label: str) -> str:
    if label.startswith("+"):
        return "[green]" + label + "[/green]"
    if label.startswith("-") or label == "Gone":
        return "[red]" + label + "[/red]"
    if label == "New":
        return "[cyan]" + label + "[/cyan]"
    return label or "[dim]-[/dim]"


_CONFIG_OPTION = typer.Option("config/settings.yaml", "--config", help="Path to settings.yaml.")
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")


# ------------------------------------------------------------------
# keywords
# ------------------------------------------------------------------
@app.command("add-keyword")
def add_keyword(
    keyword: str = typer.Argument(..., help="Search term to track."),
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Start tracking a keyword."""
    _setup_logging(verbose)
    from rankwatch.errors import DuplicateKeywordError

    rank_app = _get_app(config)
    try:
        kw = rank_app.store.add_keyword(keyword)
    except DuplicateKeywordError:
        console.print("[yellow]Keyword already exists:[/yellow] " + keyword.strip())
        raise typer.Exit(code=1)
    except ValueError as exc:
        console.print("[red]✘[/red] " + str(exc))
        raise typer.Exit(code=1)
    console.print("[green]✔[/green] Tracking [bold]" + kw.text + "[/bold] (id " + str(kw.id) + ")")


@app.command("keywords")
def list_keywords(
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """List tracked keywords."""
    _setup_logging(verbose)
    rank_app = _get_app(config)
    keywords = rank_app.store.list_keywords()

    table = Table(title="Tracked Keywords", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Keyword", min_width=30)
    table.add_column("Added", min_width=20)
    for kw in keywords:
        added = kw.created_at.strftime("%Y-%m-%d %H:%M") if kw.created_at else ""
        table.add_row(str(kw.id), kw.text, added)
    console.print(table)
    console.print("\n[bold]" + str(len(keywords)) + "[/bold] keywords.")


@app.command("remove-keyword")
def remove_keyword(
    keyword_id: int = typer.Argument(..., help="ID of the keyword to delete."),
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Delete a keyword and its ranking history."""
    _setup_logging(verbose)
    rank_app = _get_app(config)
    if not rank_app.store.delete_keyword(keyword_id):
        console.print("[yellow]Keyword not found:[/yellow] " + str(keyword_id))
        raise typer.Exit(code=1)
    console.print("[green]✔[/green] Keyword and associated rankings deleted.")


# ------------------------------------------------------------------
# tracking config
# ------------------------------------------------------------------
@app.command("set-config")
def set_config(
    target: str = typer.Argument(..., help="Target domain (e.g. example.com)."),
    competitors: str = typer.Option("", "--competitors", "-c", help="Comma-separated competitor domains."),
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Save the target domain and competitor list."""
    _setup_logging(verbose)
    comp_list = [c.strip() for c in competitors.split(",") if c.strip()]
    rank_app = _get_app(config)
    try:
        saved = rank_app.store.save_tracking_config(target, comp_list)
    except ValueError as exc:
        console.print("[red]✘[/red] " + str(exc))
        raise typer.Exit(code=1)
    console.print("[green]✔[/green] Target: [bold]" + saved.target_url + "[/bold]")
    if saved.competitor_urls:
        console.print("  Competitors: " + ", ".join(saved.competitor_urls))


@app.command("show-config")
def show_config(
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Show the target domain and competitors."""
    _setup_logging(verbose)
    rank_app = _get_app(config)
    tracking = rank_app.store.get_tracking_config()
    console.print(Panel("[bold cyan]Tracking Configuration[/bold cyan]"))
    console.print("Target: " + (tracking.target_url or "[yellow]not set[/yellow]"))
    console.print("Competitors: " + (", ".join(tracking.competitor_urls) or "[dim]none[/dim]"))


# ------------------------------------------------------------------
# check
# ------------------------------------------------------------------
@app.command()
def check(
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Run a rank check for every keyword now and wait for it to finish."""
    _setup_logging(verbose)
    from rankwatch.errors import ConfigError, PersistenceError

    rank_app = _get_app(config)
    console.print(Panel("[bold cyan]Rank Check[/bold cyan]"))
    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task(description="Checking rankings...", total=None)
        try:
            result = rank_app.run_rank_check()
        except ConfigError as exc:
            console.print("[red]✘[/red] Rank check aborted: " + str(exc))
            raise typer.Exit(code=1)
        except PersistenceError as exc:
            console.print("[red]✘[/red] Could not save results: " + str(exc))
            raise typer.Exit(code=2)

    console.print("[green]✔[/green] " + result.message)
    if result.skipped_keywords:
        console.print("[yellow]Skipped:[/yellow] " + ", ".join(result.skipped_keywords))


# ------------------------------------------------------------------
# rankings
# ------------------------------------------------------------------
@app.command()
def rankings(
    keyword_id: Optional[int] = typer.Option(None, "--keyword-id", "-k", help="Only this keyword."),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", help="Observations to read per URL (default: tracker.history_window).",
    ),
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Show current rank and change for every keyword and tracked URL."""
    _setup_logging(verbose)
    from rankwatch.errors import KeywordNotFoundError

    rank_app = _get_app(config)
    try:
        report = rank_app.get_rankings(keyword_id=keyword_id, limit=limit)
    except KeywordNotFoundError as exc:
        console.print("[yellow]" + str(exc) + "[/yellow]")
        raise typer.Exit(code=1)

    if not report:
        console.print("[yellow]No keywords tracked yet.[/yellow]")
        return

    table = Table(title="Rankings", show_header=True, header_style="bold magenta")
    table.add_column("Keyword", style="cyan", min_width=20)
    table.add_column("URL", min_width=25)
    table.add_column("Rank", justify="right", width=6)
    table.add_column("Change", justify="right", width=8)
    table.add_column("Checked", min_width=16)
    for entry in report:
        for row in entry["urls"]:
            url = "[bold]" + row["url"] + "[/bold]" if row["is_target"] else row["url"]
            rank = str(row["current_rank"]) if row["current_rank"] is not None else "-"
            checked = row["last_check_date"].strftime("%Y-%m-%d %H:%M") if row["last_check_date"] else ""
            table.add_row(entry["keyword"], url, rank, _change_style(row["change_label"]), checked)
    console.print(table)


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------
@app.command()
def serve(
    cron: Optional[str] = typer.Option(None, "--cron", help="Cron expression (default from settings)."),
    run_now: bool = typer.Option(False, "--run-now", help="Also trigger a check immediately."),
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Run the scheduler and check rankings on a recurring schedule."""
    _setup_logging(verbose)
    rank_app = _get_app(config)
    rank_app.schedule_recurring(cron)
    rank_app.scheduler.start()
    if run_now:
        ack = rank_app.trigger_rank_check()
        console.print("[cyan]" + ack["message"] + "[/cyan] (" + ack["job_id"] + ")")

    schedule = cron or rank_app.settings.scheduler_cron
    console.print("[bold cyan]Scheduler running[/bold cyan] [" + schedule + "]. Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\nStopping scheduler...")
    finally:
        rank_app.shutdown(wait=True)


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------
@app.command()
def status(
    config: str = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Show database, provider key, and scheduler status."""
    _setup_logging(verbose)
    rank_app = _get_app(config)
    console.print(Panel("[bold cyan]System Status[/bold cyan]"))

    table = Table(title="Component Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", min_width=15)
    table.add_column("Status", min_width=10)
    table.add_column("Details", max_width=60)
    for name, info in rank_app.get_status().items():
        if info["status"] == "ok":
            status_display = "[green]✔ OK[/green]"
        elif info["status"] == "warning":
            status_display = "[yellow]⚠ Warning[/yellow]"
        else:
            status_display = "[red]✘ Error[/red]"
        table.add_row(name.title(), status_display, info["details"])
    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
