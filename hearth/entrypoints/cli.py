"""Hearth CLI entrypoint.

Command-line interface for managing the local service lifecycle.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import click

if TYPE_CHECKING:
    from hearth.core.mailbox import SerializedController
    from hearth.domain.config import HearthConfig

from hearth.core.errors import (
    HearthCliError,
    start_failed_error,
    stop_failed_error,
    wait_failed_error,
)
from hearth.domain.entities import LifecycleState
from hearth.domain.exceptions import HearthDomainError
from hearth.version import __version__

T = TypeVar("T")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def handle_cli_errors(command_name: str):
    """Decorator to handle common CLI errors.

    HearthCliError exceptions are re-raised to use their built-in formatting;
    domain errors keep their hint; anything else becomes a generic error,
    with a traceback in verbose mode.

    Args:
        command_name: Name of the command for error messages.

    Returns:
        Decorated function with error handling.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except HearthCliError:
                raise
            except HearthDomainError as e:
                raise HearthCliError(e.message, hint=e.hint) from e
            except ValueError as e:
                raise HearthCliError(
                    str(e),
                    hint="Check your configuration with 'hearth config show'",
                ) from e
            except Exception as e:
                ctx = click.get_current_context()
                if ctx.obj.get("verbose", False):
                    import traceback

                    traceback.print_exc()
                raise HearthCliError(
                    f"Unexpected error in {command_name}: {e}",
                    hint="Run with --verbose for more details",
                ) from e

        return wrapper

    return decorator


def _local_hearth_dir() -> Path:
    return Path.cwd() / ".hearth"


def _load_config(hearth_dir: Path) -> HearthConfig:
    """Load merged global and local configuration."""
    from hearth.adapters.factory import ConfigFactory

    return ConfigFactory().create_config_provider().load(hearth_dir)


def _configure_logging(verbose: bool, state_dir: Path) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    try:
        state_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(state_dir / "hearth.log"))
    except OSError:
        pass  # Console logging still works without the log file
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        handlers=handlers,
    )


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def _launch_confirmed(ctx: click.Context, yes: bool) -> bool:
    """Ask before launching when the config sets confirm_launch.

    Called before any spinner is shown.
    """
    if yes or not ctx.obj["config"].service.confirm_launch:
        return True
    return click.confirm("Start the local service?", default=True)


def _create_controller(ctx: click.Context, yes: bool = False) -> SerializedController:
    """Build a serialized controller from the loaded config.

    With confirm_launch set, a launch is declined unless `yes` is True.
    """
    from hearth.adapters.factory import ControllerFactory

    quiet = ctx.obj.get("quiet", False)

    factory = ControllerFactory(ctx.obj["config"])
    return factory.create_serialized_controller(confirm=lambda: yes, quiet=quiet)


def _echo_connection(controller: SerializedController) -> None:
    connection = controller.bound_connection()
    if connection is not None:
        click.echo(f"  Address: {connection.address}")
        click.echo(f"  Connection: {connection.identity}")


@click.group()
@click.version_option(version=__version__, prog_name="hearth")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress non-essential output.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool) -> None:
    """Hearth - Local service lifecycle manager.

    Starts the local backend service, waits for it to become reachable,
    and keeps a connection bound to it across restarts.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    config = _load_config(_local_hearth_dir())
    ctx.obj["config"] = config
    _configure_logging(verbose, Path(config.service.state_dir).expanduser())


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask before launching.")
@click.pass_context
@handle_cli_errors("start")
def start(ctx: click.Context, yes: bool) -> None:
    """Start the local service and connect to it."""
    from hearth.core.progress import lifecycle_progress

    if not _launch_confirmed(ctx, yes):
        click.echo("Start cancelled")
        return
    controller = _create_controller(ctx, yes=True)
    quiet = ctx.obj.get("quiet", False)

    async def run() -> bool:
        try:
            with lifecycle_progress(
                controller, quiet=quiet, description="Launching local service..."
            ):
                return await controller.start()
        finally:
            await controller.close()

    if not _run(run()):
        if controller.current() is LifecycleState.STOPPED:
            # Launch was declined
            click.echo("Start cancelled")
            return
        start_failed_error()

    if not quiet:
        click.echo("✓ Local service started")
        _echo_connection(controller)


@cli.command()
@click.pass_context
@handle_cli_errors("stop")
def stop(ctx: click.Context) -> None:
    """Stop the local service."""
    controller = _create_controller(ctx)

    async def run() -> bool:
        try:
            return await controller.stop()
        finally:
            await controller.close()

    if not ctx.obj.get("quiet", False):
        click.echo("Stopping local service...")
    if not _run(run()):
        stop_failed_error()
    if not ctx.obj.get("quiet", False):
        click.echo("✓ Local service stopped")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask before launching.")
@click.pass_context
@handle_cli_errors("restart")
def restart(ctx: click.Context, yes: bool) -> None:
    """Restart the local service."""
    if not _launch_confirmed(ctx, yes):
        click.echo("Restart cancelled")
        return
    controller = _create_controller(ctx, yes=True)

    async def run() -> bool:
        try:
            return await controller.restart()
        finally:
            await controller.close()

    click.echo("Restarting local service...")
    if not _run(run()):
        raise HearthCliError(
            "Failed to restart the local service",
            hint="Try 'hearth stop' then 'hearth start'",
        )
    click.echo("✓ Local service restarted")
    _echo_connection(controller)


@cli.command()
@click.option("--timeout", type=float, default=None, help="Seconds to wait.")
@click.option("--interval", type=float, default=None, help="Seconds between probes.")
@click.pass_context
@handle_cli_errors("wait")
def wait(ctx: click.Context, timeout: float | None, interval: float | None) -> None:
    """Wait for an externally managed service, then connect to it."""
    config = ctx.obj["config"]
    controller = _create_controller(ctx)
    timeout = timeout if timeout is not None else config.readiness.timeout
    interval = interval if interval is not None else config.readiness.interval

    async def run() -> bool:
        try:
            return await controller.wait_for_externally_managed_start(
                timeout_seconds=timeout, interval_seconds=interval
            )
        finally:
            await controller.close()

    if not _run(run()):
        wait_failed_error(config.readiness.external_address)
    if not ctx.obj.get("quiet", False):
        click.echo("✓ Local service is up")
        _echo_connection(controller)


@cli.command()
@click.option(
    "--interval",
    type=float,
    default=5.0,
    show_default=True,
    help="Seconds between address drift checks.",
)
@click.option("--external", is_flag=True, help="Wait for an externally managed service.")
@click.option("--stop-on-exit", is_flag=True, help="Stop the service when watching ends.")
@click.option("--yes", "-y", is_flag=True, help="Do not ask before launching.")
@click.pass_context
@handle_cli_errors("watch")
def watch(
    ctx: click.Context,
    interval: float,
    external: bool,
    stop_on_exit: bool,
    yes: bool,
) -> None:
    """Start the service and keep the connection bound until interrupted.

    Re-checks the service address every INTERVAL seconds and reconnects
    when the service moved (for example after a restart from another shell).
    """
    if not external and not _launch_confirmed(ctx, yes):
        click.echo("Start cancelled")
        return
    controller = _create_controller(ctx, yes=True)

    async def run() -> bool:
        try:
            if external:
                ok = await controller.wait_for_externally_managed_start()
            else:
                ok = await controller.start()
            if not ok:
                return False
            click.echo("✓ Watching local service (Ctrl+C to exit)")
            _echo_connection(controller)
            while True:
                await asyncio.sleep(interval)
                if await controller.refresh():
                    click.echo("↻ Local service address changed, reconnected")
                    _echo_connection(controller)
        finally:
            if stop_on_exit:
                await controller.stop()
            await controller.close()

    try:
        if not _run(run()):
            start_failed_error()
    except KeyboardInterrupt:
        click.echo("\nStopped watching")


@cli.command()
@click.pass_context
@handle_cli_errors("status")
def status(ctx: click.Context) -> None:
    """Show local service status."""
    from hearth.adapters.factory import ControllerFactory

    config = ctx.obj["config"]
    factory = ControllerFactory(config)
    process = factory.create_process_lifecycle()
    probe = factory.create_probe()

    pid = process.get_pid()
    running = process.is_running()
    address = process.read_address()
    reachable = bool(address) and _run(probe.ping(address))

    if running:
        click.echo(f"✓ Local service is running (PID {pid})")
    elif reachable:
        click.echo("✓ Local service is reachable (not launched by hearth)")
    else:
        click.echo("✗ Local service is not running")

    click.echo("\nDetails:")
    click.echo(f"  Address: {address or 'unknown'}")
    reach = click.style("yes", fg="green") if reachable else click.style("no", fg="red")
    click.echo(f"  Reachable: {reach}")
    click.echo(f"  PID file: {process.pid_file}")
    click.echo(f"  Address file: {process.address_file}")
    click.echo(f"  External address: {config.readiness.external_address}")


# Config management commands
@cli.group()
def config() -> None:
    """Manage hearth configuration.

    Configuration is loaded from two locations (local overrides global):
    - Global: ~/.config/hearth/config.toml
    - Local: .hearth/config.toml in the current directory
    """
    pass


@config.command(name="show")
@click.pass_context
@handle_cli_errors("config show")
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration."""
    import tomli_w

    from hearth.shared.config_io import config_to_data

    click.echo(tomli_w.dumps(config_to_data(ctx.obj["config"])).rstrip())


@config.command(name="path")
@click.option("--global", "show_global", is_flag=True, help="Show only the global path.")
@handle_cli_errors("config path")
def config_path(show_global: bool) -> None:
    """Show config file locations."""
    from hearth.shared.config_io import get_global_config_path

    global_path = get_global_config_path()
    if show_global:
        click.echo(global_path)
        return

    local_path = _local_hearth_dir() / "config.toml"
    for label, path in (("Global", global_path), ("Local", local_path)):
        state = "exists" if path.exists() else "not found"
        click.echo(f"{label}: {path} ({state})")


@config.command(name="init")
@click.option("--global", "init_global", is_flag=True, help="Create the global config.")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing config.")
@handle_cli_errors("config init")
def config_init(init_global: bool, force: bool) -> None:
    """Create a config file with defaults and comments."""
    from hearth.shared.config_io import create_default_config_file, get_global_config_path

    path = get_global_config_path() if init_global else _local_hearth_dir() / "config.toml"
    if path.exists() and not force:
        raise HearthCliError(
            f"Config already exists: {path}",
            hint="Use --force to overwrite it",
        )
    create_default_config_file(path)
    click.echo(f"✓ Created {path}")


def main() -> int:
    """Main entrypoint for the CLI."""
    try:
        cli(obj={})
        return 0
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
