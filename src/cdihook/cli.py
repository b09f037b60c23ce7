"""cdi-hook CLI for applying CDI hook plans - Tyro implementation."""

import contextlib
import fcntl
import logging
import os
import sys
from builtins import print as builtin_print
from collections.abc import Iterator
from pathlib import Path
from typing import Annotated

import attrs
import tyro
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cdihook.apply import apply_hooks_to_container
from cdihook.config import HookSettings, get_settings, set_settings_instance
from cdihook.errors import HookError, HookIOError, HookNotFoundError
from cdihook.plan import load_plan
from cdihook.resolver import resolve_target_relative_to_link

logger = logging.getLogger(__name__)

# Set by LXC for container hooks
ROOTFS_ENV_VAR = "LXC_ROOTFS_MOUNT"


# Subcommand definitions using attrs
@attrs.define
class Apply:
    """Apply a CDI hook plan to a container root filesystem."""

    hooks_file: Annotated[Path, tyro.conf.Positional]
    """Path to the JSON hook plan."""

    rootfs: Annotated[Path | None, tyro.conf.Positional] = None
    """Container rootfs mount (default: $LXC_ROOTFS_MOUNT)."""

    lock: bool = True
    """Hold an exclusive lock on the rootfs while applying (--no-lock if the caller already serializes)."""


@attrs.define
class Show:
    """Show the contents of a CDI hook plan without applying it."""

    hooks_file: Annotated[Path, tyro.conf.Positional]
    """Path to the JSON hook plan."""

    json: Annotated[bool, tyro.conf.arg(aliases=["-j"])] = False
    """Output the decoded plan as JSON."""


Command = Annotated[Apply, tyro.conf.subcommand(name="apply")] | Annotated[Show, tyro.conf.subcommand(name="show")]


def setup_logging(debug: bool = False) -> None:
    """Configure logging with 100-character text width."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)-20s - %(levelname)-8s - %(message).100s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@contextlib.contextmanager
def rootfs_lock(rootfs: Path) -> Iterator[None]:
    """Hold an exclusive advisory lock on the rootfs directory.

    Serializes container start and hot-plug applying hooks to the same
    container. The lock is released when the descriptor is closed.

    Raises:
        HookNotFoundError: If ``rootfs`` does not exist
        HookIOError: If it cannot be opened or locked
    """
    try:
        fd = os.open(rootfs, os.O_RDONLY | os.O_DIRECTORY)
    except FileNotFoundError as e:
        raise HookNotFoundError("The container rootfs does not exist", path=str(rootfs), cause=e) from e
    except OSError as e:
        raise HookIOError("Failed opening the container rootfs", path=str(rootfs), cause=e) from e

    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
        except OSError as e:
            raise HookIOError("Failed locking the container rootfs", path=str(rootfs), cause=e) from e
        logger.debug(f"Acquired lock on {rootfs}")
        yield
    finally:
        os.close(fd)


def run_apply(cmd: Apply, settings: HookSettings) -> None:
    """Apply a hook plan, exiting with status 1 on failure."""
    err_console = Console(stderr=True)

    rootfs = cmd.rootfs
    if rootfs is None:
        env_rootfs = os.environ.get(ROOTFS_ENV_VAR)
        if not env_rootfs:
            err_console.print(f"[red]Error:[/red] No rootfs given and {ROOTFS_ENV_VAR} is not set")
            sys.exit(1)
        rootfs = Path(env_rootfs)

    try:
        if cmd.lock:
            with rootfs_lock(rootfs):
                apply_hooks_to_container(cmd.hooks_file, rootfs, settings)
        else:
            apply_hooks_to_container(cmd.hooks_file, rootfs, settings)
    except HookError as e:
        logger.error(f"Failed applying CDI hooks ({e.kind.value}): {e}")
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)


def show_plan(cmd: Show) -> None:
    """Print a hook plan as tables, or as JSON."""
    try:
        hooks = load_plan(cmd.hooks_file)
    except HookError as e:
        Console(stderr=True).print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    if cmd.json:
        builtin_print(hooks.model_dump_json(indent=2))
        return

    console = Console()
    console.print(f"[bold]Container rootfs:[/bold] {escape(hooks.container_rootfs or '-')}")

    table = Table(title="Symlinks", show_header=True, header_style="bold")
    table.add_column("Link", style="cyan")
    table.add_column("Target", style="green")
    table.add_column("Link-relative target", style="yellow")
    for entry in hooks.symlinks:
        try:
            resolved = resolve_target_relative_to_link(entry.link, entry.target)
        except HookError as e:
            resolved = f"[red]{escape(str(e))}[/red]"
        else:
            resolved = escape(resolved)
        table.add_row(escape(entry.link), escape(entry.target), resolved)
    console.print(table)

    console.print("\n[bold]Linker search paths:[/bold]")
    if not hooks.ld_cache_updates:
        console.print("  [dim](none)[/dim]")
    for update in hooks.ld_cache_updates:
        console.print(f"  • {escape(update)}")


def main(
    cmd: Annotated[Command, tyro.conf.arg(name="")],
    *,
    config: Annotated[Path | None, tyro.conf.arg(help="Settings file (cdihook.yaml)")] = None,
    debug: bool = False,
) -> None:
    """cdi-hook - apply CDI hook plans to container root filesystems.

    Creates the plan's symlinks inside the container rootfs, merges its
    library directories into the linker configuration and rebuilds the
    linker cache with the host's ldconfig.
    """
    setup_logging(debug)

    if config is not None:
        try:
            settings = HookSettings.from_yaml(config)
        except HookError as e:
            Console(stderr=True).print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(1)
        set_settings_instance(settings)
    else:
        settings = get_settings()

    if isinstance(cmd, Apply):
        run_apply(cmd, settings)

    elif isinstance(cmd, Show):
        show_plan(cmd)


def entry_point() -> None:
    """Entry point for the cdi-hook command."""
    tyro.cli(main)


if __name__ == "__main__":
    entry_point()
