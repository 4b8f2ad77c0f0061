"""Main CLI application for the Roundcube plugin installer."""

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from rcube_installer import __version__
from rcube_installer.config.parser import ConfigError
from rcube_installer.core.installer import (
    ActivationError,
    ConfirmCallback,
    InstallError,
    InstallResult,
    PluginInstaller,
)
from rcube_installer.core.package import resolve_plugin_name
from rcube_installer.core.project import RoundcubeProject

# Create the main Typer app
app = typer.Typer(
    name="rcube-installer",
    help="Install and activate Roundcube webmail plugins",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger("rcube_installer")

PathOption = Annotated[
    Path | None,
    typer.Option(
        "--path",
        "-p",
        help="Roundcube root directory (defaults to current directory)",
    ),
]


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]\u2713[/green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]\u26a0[/yellow] {message}")


def get_project(path: Path | None = None) -> RoundcubeProject:
    """Get the Roundcube project, raising an error if it cannot be loaded."""
    try:
        return RoundcubeProject.load(path)
    except FileNotFoundError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def get_confirm_callback(yes: bool, no_activate: bool) -> ConfirmCallback | None:
    """Choose how the user is asked about plugin activation."""
    if no_activate:
        return None
    if yes:
        return lambda _prompt: True
    if not sys.stdin.isatty():
        logger.info("Not running interactively, skipping plugin activation")
        return None
    return lambda prompt: typer.confirm(prompt, default=True)


def report(result: InstallResult) -> None:
    """Print the outcome of a lifecycle operation."""
    print_success(result.message)
    if result.activated:
        print_success(f"Activated {result.plugin_name}")
    for warning in result.warnings:
        print_warning(warning)


@app.callback()
def callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug)",
        ),
    ] = 0,
) -> None:
    """Roundcube plugin installer."""
    setup_logging(verbose)


@app.command()
def version() -> None:
    """Show the installer version."""
    console.print(f"rcube-installer {__version__}")


@app.command()
def install(
    source: Annotated[
        Path,
        typer.Argument(help="Plugin package directory (containing composer.json)"),
    ],
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Activate the plugin without asking",
        ),
    ] = False,
    no_activate: Annotated[
        bool,
        typer.Option(
            "--no-activate",
            help="Do not activate the plugin",
        ),
    ] = False,
    path: PathOption = None,
) -> None:
    """Install a plugin into the Roundcube plugins directory.

    Checks the plugin's Roundcube version requirements, offers to activate
    it, creates its config.inc.php from the shipped .dist file, initializes
    its database schema and runs its post-install script.
    """
    project = get_project(path)
    installer = PluginInstaller(project, confirm=get_confirm_callback(yes, no_activate))

    try:
        result = installer.install(source)
    except InstallError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    report(result)


@app.command()
def update(
    source: Annotated[
        Path,
        typer.Argument(help="New plugin package directory (containing composer.json)"),
    ],
    path: PathOption = None,
) -> None:
    """Update an installed plugin, keeping its local config.inc.php."""
    project = get_project(path)
    installer = PluginInstaller(project)

    try:
        result = installer.update(source)
    except InstallError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    report(result)


@app.command()
def uninstall(
    plugins: Annotated[
        list[str],
        typer.Argument(help="Plugins to uninstall (plugin name or vendor/package)"),
    ],
    path: PathOption = None,
) -> None:
    """Uninstall plugins and deactivate them in the Roundcube config."""
    project = get_project(path)
    installer = PluginInstaller(project)
    failed = False

    for plugin in plugins:
        try:
            result = installer.uninstall(plugin)
        except InstallError as e:
            print_error(str(e))
            failed = True
            continue
        report(result)

    if failed:
        raise typer.Exit(1)


def _set_active(plugin: str, activate: bool, path: Path | None) -> None:
    project = get_project(path)
    installer = PluginInstaller(project)

    try:
        plugin_name = resolve_plugin_name(plugin)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if activate and not project.plugin_dir(plugin_name).is_dir():
        print_warning(f"Plugin {plugin_name} is not installed in {project.vendor_dir}")

    try:
        changed = installer.alter_config(plugin_name, activate)
    except ActivationError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    state = "active" if activate else "inactive"
    if changed:
        print_success(f"{plugin_name} is now {state}")
    else:
        console.print(f"{plugin_name} is already {state}")


@app.command()
def activate(
    plugin: Annotated[str, typer.Argument(help="Plugin name or vendor/package")],
    path: PathOption = None,
) -> None:
    """Add a plugin to the active plugin list."""
    _set_active(plugin, True, path)


@app.command()
def deactivate(
    plugin: Annotated[str, typer.Argument(help="Plugin name or vendor/package")],
    path: PathOption = None,
) -> None:
    """Remove a plugin from the active plugin list."""
    _set_active(plugin, False, path)


@app.command("list")
def list_plugins(path: PathOption = None) -> None:
    """List installed and activated plugins."""
    project = get_project(path)
    installer = PluginInstaller(project)

    try:
        active = installer.active_plugins()
    except ActivationError as e:
        print_warning(str(e))
        active = []

    installed = project.installed_plugins()
    names = list(dict.fromkeys([*active, *installed]))

    if not names:
        console.print("No plugins installed")
        return

    table = Table(title="Roundcube Plugins")
    table.add_column("Plugin", style="cyan")
    table.add_column("Installed", style="green")
    table.add_column("Active", style="green")

    for name in names:
        table.add_row(
            name,
            "yes" if name in installed else "[dim]no[/dim]",
            "yes" if name in active else "[dim]no[/dim]",
        )

    console.print(table)


if __name__ == "__main__":
    app()
