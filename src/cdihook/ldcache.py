"""Linker cache regeneration.

``ldconfig`` is run on the HOST with ``-r <rootfs>`` instead of inside the
container, so that no code from the container is executed to rebuild its
own cache.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from cdihook.config import HookSettings, get_settings
from cdihook.errors import HookIOError, LdconfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished command."""

    returncode: int
    output: str
    """Combined stdout and stderr"""


class CommandRunner(Protocol):
    """Runs a command to completion and captures its combined output."""

    def run(self, command: list[str]) -> CommandResult: ...


class SubprocessRunner:
    """CommandRunner backed by ``subprocess.run``.

    Blocks until the command exits; callers needing a deadline must
    enforce it themselves.
    """

    def run(self, command: list[str]) -> CommandResult:
        result = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
        return CommandResult(returncode=result.returncode, output=result.stdout or "")


def remove_linker_cache(rootfs: str | Path, settings: HookSettings | None = None) -> bool:
    """Remove the stale linker cache under ``rootfs``.

    Returns:
        True if a cache file was removed, False if there was none

    Raises:
        HookIOError: If the file exists but cannot be removed
    """
    settings = settings or get_settings()
    cache_path = settings.linker_cache_path(rootfs)
    try:
        cache_path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise HookIOError("Failed removing the ld.so.cache file", path=str(cache_path), cause=e) from e
    logger.debug(f"Removed stale linker cache {cache_path}")
    return True


def regenerate_cache(
    rootfs: str | Path,
    runner: CommandRunner | None = None,
    settings: HookSettings | None = None,
) -> None:
    """Drop the container's linker cache and rebuild it with the host's ldconfig.

    Args:
        rootfs: Host path of the container's root filesystem
        runner: Command runner; defaults to ``SubprocessRunner``
        settings: Settings to use; defaults to the global instance

    Raises:
        HookIOError: If the old cache cannot be removed
        LdconfigError: If ldconfig cannot be started or exits non-zero
    """
    settings = settings or get_settings()
    runner = runner or SubprocessRunner()

    remove_linker_cache(rootfs, settings)

    command = [settings.ldconfig_path, "-r", str(rootfs)]
    logger.debug(f"Running {' '.join(command)}")
    try:
        result = runner.run(command)
    except OSError as e:
        raise LdconfigError(
            "Failed running ldconfig in the container rootfs",
            command=command,
            returncode=None,
            path=str(rootfs),
            cause=e,
        ) from e

    if result.returncode != 0:
        raise LdconfigError(
            "Failed running ldconfig in the container rootfs",
            command=command,
            returncode=result.returncode,
            output=result.output,
            path=str(rootfs),
        )
