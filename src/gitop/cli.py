import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console

from . import constants
from .config import Config, RepositoryConfig, get_config_path, write_default_config
from .constants import APP_NAME, MAX_LOG_SIZE
from .dashboard import Dashboard, DashboardApp
from .engine import RepositoryMonitor
from .exceptions import ConfigError

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Configures the logging subsystem.

    The dashboard owns the terminal, so logs only go to a rotating file.

    Args:
        verbose (bool): Log at DEBUG instead of INFO.
        log_file (Path | None): Override for the log file location.
    """
    log_file = log_file or constants.LOG_FILE
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_SIZE, backupCount=5
        )
    except OSError as e:
        err_console.print(f"[yellow]Logging disabled: {e}[/yellow]")
        logger.addHandler(logging.NullHandler())
        return

    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def startup_warnings(repositories: list[RepositoryConfig]) -> list[str]:
    """Checks configured paths once before monitoring starts.

    Args:
        repositories (list[RepositoryConfig]): The configured repositories.

    Returns:
        list[str]: One message per missing path or non-repository.
    """
    warnings = []
    for repo in repositories:
        if not repo.path.exists():
            warnings.append(f"{repo.name}: Path does not exist: {repo.path}")
        elif not (repo.path / ".git").exists():
            warnings.append(f"{repo.name}: Not a git repository: {repo.path}")

    for message in warnings:
        logger.warning(message)
    return warnings


def init_config(config_path: Path | None, force: bool) -> None:
    """Creates the default config file."""
    path = get_config_path(config_path)
    try:
        write_default_config(path, force=force)
    except FileExistsError:
        err_console.print(
            f"[bold red]ERROR:[/bold red] Config file already exists at: {path}\n"
            "Use --force to overwrite"
        )
        sys.exit(1)

    console.print(f"[bold green]SUCCESS:[/bold green] Created default config at: {path}")
    console.print("\nTo start monitoring, run: [cyan]gitop[/cyan]")
    console.print(f"To edit config: [cyan]{path}[/cyan]")


def show_config(config_path: Path | None) -> None:
    """Prints the resolved config path and the configured repositories."""
    path = get_config_path(config_path)
    console.print(f"Config file location: [cyan]{path}[/cyan]")
    console.print(f"Exists: {path.exists()}")

    if not path.exists():
        console.print(
            "[yellow]No config file found. Run 'gitop init' to create one.[/yellow]"
        )
        return

    conf = _load_or_exit(path)
    console.print(f"Repositories configured: {len(conf.repositories)}")
    for repo in conf.repositories:
        console.print(f"  - {repo.name} ({repo.path})")


def _load_or_exit(path: Path | None) -> Config:
    try:
        return Config.load(path)
    except ConfigError as e:
        err_console.print(f"[bold red]FATAL:[/bold red] {e}")
        sys.exit(1)


def run_monitor(config_path: Path | None) -> None:
    """Starts polling and runs the dashboard until the user quits."""
    conf = _load_or_exit(config_path)

    if not sys.stdin.isatty():
        err_console.print("[bold red]ERROR:[/bold red] gitop needs an interactive terminal.")
        sys.exit(1)

    warnings = startup_warnings(conf.repositories)
    monitor = RepositoryMonitor(
        conf.repositories,
        refresh_interval=conf.refresh_interval,
        max_commits=conf.max_commits,
    )
    app = DashboardApp(Dashboard(monitor, conf.colors, warnings))

    try:
        with monitor:
            app.run()
    except KeyboardInterrupt:
        pass
    finally:
        monitor.shutdown()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the GitOp CLI."""
    parser = argparse.ArgumentParser(
        prog="gitop", description="A terminal-based git repository monitor"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to config file (default: ~/.config/gitop/gitop.toml)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Write debug output to the log"
    )

    subparsers = parser.add_subparsers(dest="command")

    init_parser = subparsers.add_parser("init", help="Initialize a new gitop config file")
    init_parser.add_argument(
        "-f", "--force", action="store_true", help="Force overwrite existing config"
    )
    subparsers.add_parser("config", help="Show the current config file path")

    args = parser.parse_args(argv)

    if args.command == "init":
        init_config(args.config, args.force)
        return
    elif args.command == "config":
        show_config(args.config)
        return

    setup_logging(args.verbose)
    run_monitor(args.config)


if __name__ == "__main__":
    main()
