"""CLI entry point for the Church Hymn presenter.

Provides the `church-hymn` command for launching the Textual console
and inspecting the saved worship session.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from church_hymn.presenter import __version__
from church_hymn.presenter.config import AppConfig, ensure_app_config_exists, get_app_config_path
from church_hymn.presenter.logging_config import LOG_FILENAME, setup_logging
from church_hymn.presenter.services.snapshot import SnapshotStore

app = typer.Typer(
    name="church-hymn",
    help="Church Hymn - present hymns on a projector during worship",
    no_args_is_help=False,
)
snapshot_app = typer.Typer(help="Inspect the saved worship session")
app.add_typer(snapshot_app, name="snapshot")
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"church-hymn version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Church Hymn presenter - mirror hymns verse by verse on a second display."""


def _load_config(config_path: Optional[Path]) -> AppConfig:
    """Load the given config, or the default one (created if missing)."""
    try:
        if config_path:
            return AppConfig.load(config_path)
        return ensure_app_config_exists()
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found: {e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise typer.Exit(1)


def _check_database(config: AppConfig) -> bool:
    """Check that the hymn library database exists.

    Args:
        config: App configuration

    Returns:
        True if database is ready
    """
    if not config.db_path.exists():
        console.print(
            Panel.fit(
                "[bold red]Hymn library not found![/bold red]\n\n"
                f"Expected at: [cyan]{config.db_path}[/cyan]\n\n"
                "Set [bold]library.db_path[/bold] in the config file.",
                title="Error",
                border_style="red",
            )
        )
        return False
    return True


@app.command()
def run(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
    static_display: bool = typer.Option(
        False,
        "--static-display",
        help="Use a simulated secondary display (toggle with 'd')",
    ),
) -> None:
    """Launch the presenter console."""
    if config_path is None and not get_app_config_path().exists():
        console.print(
            Panel.fit(
                "[bold green]Welcome to Church Hymn![/bold green]\n\n"
                "Configuration will be created at: "
                f"[cyan]{get_app_config_path()}[/cyan]",
                title="church-hymn",
                border_style="green",
            )
        )

    config = _load_config(config_path)

    if not _check_database(config):
        raise typer.Exit(1)

    logger = setup_logging(config.log_dir)
    logger.info(f"Database: {config.db_path}")
    logger.info(f"Display probe: {'static' if static_display else config.display_probe}")
    console.print(f"[dim]Session log: {config.log_dir / LOG_FILENAME}[/dim]")

    from church_hymn.presenter.app import PresenterApp

    try:
        app_instance = PresenterApp(config, static_display=static_display)
        logger.info("Launching TUI application")
        app_instance.run()
        logger.info("Application exited normally")
    except KeyboardInterrupt:
        logger.info("Application interrupted by user (Ctrl+C)")
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(0)
    except Exception as e:
        logger.exception(f"Application error: {e}")
        console.print(f"[red]Error running app: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def config(
    show: bool = typer.Option(
        False,
        "--show",
        help="Show current configuration",
    ),
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """Show application configuration."""
    path = config_path or get_app_config_path()

    if not path.exists():
        console.print(f"[yellow]No config file at {path}[/yellow]")
        console.print("Run [bold]church-hymn run[/bold] to create default config.")
        return

    cfg = _load_config(path)
    console.print(f"[bold]Config file:[/bold] {path}")
    console.print(f"[bold]Database:[/bold] {cfg.db_path}")
    console.print(f"[bold]Display probe:[/bold] {cfg.display_probe} (every {cfg.poll_interval_seconds}s)")
    console.print(f"[bold]Background:[/bold] {cfg.background_image}")
    console.print(f"[bold]Snapshot:[/bold] {cfg.snapshot_path} (max age {cfg.snapshot_max_age_minutes} min)")
    if show:
        console.print(
            f"[bold]Auto-present:[/bold] {'on' if cfg.auto_present_enabled else 'off'} "
            f"({cfg.auto_present_delay_seconds}s)"
        )
        console.print(
            f"[bold]Auto-advance:[/bold] {'on' if cfg.auto_advance_enabled else 'off'} "
            f"({cfg.auto_advance_delay_seconds}s)"
        )
        console.print(f"[bold]Log dir:[/bold] {cfg.log_dir}")


@snapshot_app.command("show")
def snapshot_show(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """Show the saved worship session, if any."""
    cfg = _load_config(config_path)
    store = SnapshotStore(cfg.snapshot_path, max_age_minutes=cfg.snapshot_max_age_minutes)
    snapshot = store.load()

    if snapshot is None:
        console.print("[yellow]No saved worship session[/yellow]")
        return

    table = Table(title="Saved worship session", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Display state", snapshot.display_state.display_name)
    table.add_row("Session active", "yes" if snapshot.is_worship_session_active else "no")
    table.add_row("Hymn", snapshot.current_hymn_title or snapshot.current_hymn_id or "-")
    table.add_row("Slide", str(snapshot.current_verse_index + 1) if snapshot.current_hymn_id else "-")
    table.add_row("Presented", ", ".join(snapshot.presented_hymns) or "-")
    table.add_row("Saved at", snapshot.saved_at.isoformat(timespec="seconds") if snapshot.saved_at else "unknown")
    console.print(table)


@snapshot_app.command("clear")
def snapshot_clear(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """Erase the saved worship session."""
    cfg = _load_config(config_path)
    store = SnapshotStore(cfg.snapshot_path, max_age_minutes=cfg.snapshot_max_age_minutes)
    if not store.has_snapshot():
        console.print("[yellow]No saved worship session[/yellow]")
        return
    store.clear()
    console.print("[green]Saved worship session cleared[/green]")


def cli_entry() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli_entry()
