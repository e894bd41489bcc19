import argparse
import logging
import subprocess
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import config, daemon
from .constants import (
    APP_NAME,
    CONFIG_KEYS,
    DATA_DIR,
    DEFAULT_BRANCH,
    DEFAULT_HOST,
    DEFAULT_PORT,
    LOG_FILE,
    STARTUP_SYNC_DELAY,
)
from .engine import SyncEngine
from .errors import CommandError
from .git_wrapper import GitRepo

logger = logging.getLogger(APP_NAME)
console = Console()


def _display_path(path: Path) -> str:
    return str(path).replace(str(Path.home()), "~")


def show_status(data_dir: Path = DATA_DIR) -> None:
    """Displays the data directory state and the persisted configuration."""
    content = Text()
    content.append("Directory: ", style="bold")
    content.append(_display_path(data_dir) + "\n", style="cyan")

    content.append("Repository: ", style="bold")
    repo = GitRepo(data_dir)
    if not data_dir.exists():
        content.append("Missing (created on first sync)", style="yellow")
    elif not repo.is_initialized():
        content.append("Not initialized (created on first sync)", style="yellow")
    else:
        try:
            pending = len(repo.status_porcelain())
            if pending:
                content.append(f"{pending} pending change(s)", style="bold yellow")
            else:
                content.append("Clean", style="green")
        except CommandError as e:
            logger.debug(f"Failed to read status of {data_dir}: {e}")
            content.append("Error reading status", style="bold red")

    console.print(Panel(content, title="Backup Status", expand=False))
    show_config()


def show_config() -> None:
    """Prints the persisted configuration with the token masked."""
    settings = config.load_local_config()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    for key in CONFIG_KEYS:
        value = settings.get(key)
        if key == "token":
            value = config.mask_token(value)
        if value:
            table.add_row(key, value)
        elif key == "branch":
            table.add_row(key, f"[dim]{DEFAULT_BRANCH} (default)[/dim]")
        else:
            table.add_row(key, "[dim]-[/dim]")

    console.print(f"Config file: [cyan]{_display_path(config.CONFIG_FILE)}[/cyan]")
    console.print(table)


def set_config(assignments: list[str]) -> None:
    """Updates the persisted configuration from `KEY=VALUE` pairs.

    An empty value (`KEY=`) removes the key.
    """
    updates = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        if not sep:
            console.print(
                f"[bold red]ERROR:[/bold red] Expected KEY=VALUE, got '{item}'."
            )
            sys.exit(1)
        updates[key.strip()] = value

    try:
        config.save_local_config(updates)
    except ValueError as e:
        console.print(f"[bold red]ERROR:[/bold red] {e}")
        sys.exit(1)

    console.print("[bold green]✔ Config saved.[/bold green]")


def run_now(options: dict[str, str]) -> None:
    """Runs one sync in the foreground and reports the outcome."""
    daemon.setup_logging(interactive=True)
    engine = SyncEngine()

    try:
        with console.status(
            "[bold blue]Syncing chat history...[/bold blue]", spinner="dots"
        ):
            result = engine.sync(options)
    except Exception as e:
        message = getattr(e, "status_message", None) or str(e)
        console.print(f"[bold red]SYNC FAILED:[/bold red] {message}")
        sys.exit(1)

    if result.published:
        console.print(
            f"[bold green]SUCCESS:[/bold green] Pushed changes ({result.timestamp})."
        )
    else:
        console.print("[green]Up to date.[/green] Nothing to sync.")


def tail_log() -> None:
    """Follows the service log file in real-time."""
    if not LOG_FILE.exists():
        console.print(f"[red]No log file found yet at {LOG_FILE}.[/red]")
        return

    console.print(f"Tailing [bold cyan]{LOG_FILE}[/bold cyan] (Ctrl+C to stop)...")
    try:
        subprocess.run(["tail", "-n", "1000", "-f", str(LOG_FILE)])
    except KeyboardInterrupt:
        console.print("\nStopped.", style="dim")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME, description="Back up chat history to a git remote."
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("status", help="Show data directory and config status")

    now_parser = subparsers.add_parser("now", help="Run a sync immediately (one-off)")
    now_parser.add_argument("--repo-url", dest="repoUrl", help="Repository address")
    now_parser.add_argument("--token", help="Access token for https remotes")
    now_parser.add_argument("--user-name", dest="userName", help="Committer name")
    now_parser.add_argument("--user-email", dest="userEmail", help="Committer email")
    now_parser.add_argument(
        "--branch", help=f"Branch to push (default: {DEFAULT_BRANCH})"
    )

    serve_parser = subparsers.add_parser(
        "serve", help="Run the HTTP control interface and the startup sync"
    )
    serve_parser.add_argument("--host", default=DEFAULT_HOST)
    serve_parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    serve_parser.add_argument(
        "--delay",
        type=float,
        default=STARTUP_SYNC_DELAY,
        help=f"Seconds before the startup sync (default: {STARTUP_SYNC_DELAY:g})",
    )

    config_parser = subparsers.add_parser("config", help="Show or edit the config file")
    config_sub = config_parser.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Show the persisted config")
    set_parser = config_sub.add_parser("set", help="Set KEY=VALUE pairs")
    set_parser.add_argument(
        "assignments", nargs="+", help=f"Keys: {', '.join(CONFIG_KEYS)}"
    )

    subparsers.add_parser("log", help="Tail the service log file")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "status":
        show_status()
    elif args.command == "now":
        options = {
            key: value
            for key in CONFIG_KEYS
            if (value := getattr(args, key, None))
        }
        run_now(options)
    elif args.command == "serve":
        daemon.setup_logging(interactive=False)
        daemon.serve(host=args.host, port=args.port, delay=args.delay)
    elif args.command == "config":
        if args.config_command == "set":
            set_config(args.assignments)
        else:
            show_config()
    elif args.command == "log":
        tail_log()
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
