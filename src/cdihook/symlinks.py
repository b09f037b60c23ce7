"""Creation of the plan's symlinks under a container rootfs."""

import logging
import os
import posixpath
from collections.abc import Iterable
from pathlib import Path

from cdihook.config import HookSettings, get_settings
from cdihook.errors import HookError, HookIOError, InvalidLinkError
from cdihook.fsutil import make_dirs
from cdihook.models import SymlinkEntry
from cdihook.resolver import clean_path, resolve_target_relative_to_link

logger = logging.getLogger(__name__)


def link_path_in_rootfs(rootfs: str | Path, link: str) -> Path:
    """Host-side path of ``link`` inside ``rootfs``.

    ``link`` is absolute from the container's point of view, so it is
    appended under ``rootfs`` instead of replacing it.
    """
    return Path(rootfs) / clean_path(link).lstrip("/")


def _warn_if_target_differs(link_path: Path, target: str) -> None:
    """Log when an existing symlink does not point where the plan says."""
    try:
        existing = os.readlink(link_path)
    except OSError:
        # Not a symlink (regular file or directory), left as is
        logger.debug(f"{link_path} already exists and is not a symlink")
        return

    if existing != target:
        logger.warning(f"Keeping existing symlink {link_path} -> {existing!r} (plan wants {target!r})")


def apply_symlink(rootfs: str | Path, entry: SymlinkEntry, settings: HookSettings | None = None) -> Path:
    """Create a single symlink under ``rootfs``.

    An existing entry at the link path counts as success so that a plan
    can be re-applied on hot-plug.

    Returns:
        The host-side path of the link

    Raises:
        InvalidLinkError: If the entry's link is not absolute
        PathResolutionError: If the relative target cannot be computed
        HookIOError: If the parent directory or the symlink cannot be created
    """
    settings = settings or get_settings()
    target = resolve_target_relative_to_link(entry.link, entry.target)
    link_path = link_path_in_rootfs(rootfs, entry.link)

    try:
        make_dirs(link_path.parent, settings.dir_mode)
    except OSError as e:
        raise HookIOError(
            "Failed creating the directory for the CDI symlink", path=str(link_path.parent), cause=e
        ) from e

    try:
        os.symlink(target, link_path)
    except FileExistsError:
        _warn_if_target_differs(link_path, target)
        return link_path
    except OSError as e:
        raise HookIOError("Failed creating the CDI symlink", path=str(link_path), cause=e) from e

    logger.debug(f"Created symlink {link_path} -> {target}")
    return link_path


def check_links(entries: list[SymlinkEntry]) -> None:
    """Reject the plan if any link is not absolute, before anything is created.

    Raises:
        InvalidLinkError: For the first offending entry, with its index attached
    """
    for index, entry in enumerate(entries):
        if not posixpath.isabs(entry.link):
            raise InvalidLinkError(entry.link, entry.target).with_entry(index, entry)


def apply_symlinks(
    rootfs: str | Path,
    entries: Iterable[SymlinkEntry],
    settings: HookSettings | None = None,
) -> list[Path]:
    """Create every symlink of a plan, in order, stopping at the first failure.

    Every link is checked for being absolute before the first one is
    created. Links created before a later I/O failure are left in place.

    Args:
        rootfs: Host path of the container's root filesystem
        entries: Symlink entries from the hook plan
        settings: Settings to use; defaults to the global instance

    Returns:
        Host-side paths of the links, in plan order

    Raises:
        HookError: The first failure, with the offending entry's index attached
    """
    settings = settings or get_settings()
    entries = list(entries)
    check_links(entries)

    created: list[Path] = []
    for index, entry in enumerate(entries):
        try:
            created.append(apply_symlink(rootfs, entry, settings))
        except HookError as e:
            e.with_entry(index, entry)
            raise
    return created
