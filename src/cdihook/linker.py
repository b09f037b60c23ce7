"""Merging of library search directories into the container's linker config."""

import logging
import os
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from cdihook.config import HookSettings, get_settings
from cdihook.errors import HookIOError
from cdihook.fsutil import make_dirs

logger = logging.getLogger(__name__)


def _append_missing(
    f: TextIO,
    existing: set[str],
    updates: Sequence[str],
    terminate_last_line: bool = False,
) -> list[str]:
    """Write each update not in ``existing`` as a new line, growing the set as we go."""
    added: list[str] = []
    for update in updates:
        if update in existing:
            continue
        if terminate_last_line and not added:
            f.write("\n")
        f.write(f"{update}\n")
        existing.add(update)
        added.append(update)
    return added


def merge_linker_config(
    rootfs: str | Path,
    updates: Sequence[str],
    settings: HookSettings | None = None,
) -> bool:
    """Add library directories to the CDI linker configuration fragment.

    Existing lines are kept in place; updates not already present (compared
    after stripping whitespace) are appended in the given order, each at
    most once.

    Args:
        rootfs: Host path of the container's root filesystem
        updates: Library directories to add
        settings: Settings to use; defaults to the global instance

    Returns:
        False if ``updates`` was empty and nothing was touched, True otherwise

    Raises:
        HookIOError: If the directory or file cannot be created, read or written
    """
    if not updates:
        return False

    settings = settings or get_settings()
    conf_path = settings.linker_conf_path(rootfs)

    try:
        make_dirs(conf_path.parent, settings.dir_mode)
    except OSError as e:
        raise HookIOError("Failed creating the linker conf directory", path=str(conf_path.parent), cause=e) from e

    try:
        conf_path.stat()
        exists = True
    except FileNotFoundError:
        exists = False
    except OSError as e:
        raise HookIOError(
            "Could not stat the linker conf file to add CDI linker entries", path=str(conf_path), cause=e
        ) from e

    try:
        if exists:
            # The file already exists. Read it first and only add missing entries.
            with conf_path.open("a+", errors="surrogateescape") as f:
                f.seek(0)
                content = f.read()
                existing = {line.strip() for line in content.splitlines()}
                unterminated = bool(content) and not content.endswith("\n")
                added = _append_missing(f, existing, updates, terminate_last_line=unterminated)
        else:
            fd = os.open(conf_path, os.O_CREAT | os.O_WRONLY, settings.file_mode)
            try:
                f = os.fdopen(fd, "w")
            except BaseException:
                os.close(fd)
                raise
            with f:
                added = _append_missing(f, set(), updates)
    except OSError as e:
        raise HookIOError("Failed writing to the linker conf file", path=str(conf_path), cause=e) from e

    logger.debug(f"Linker conf {conf_path}: added {len(added)} of {len(updates)} entries")
    return True
