"""Applying a CDI hook plan to a container."""

import logging
from pathlib import Path

from cdihook.config import HookSettings, get_settings
from cdihook.ldcache import CommandRunner, regenerate_cache
from cdihook.linker import merge_linker_config
from cdihook.plan import load_plan
from cdihook.symlinks import apply_symlinks

logger = logging.getLogger(__name__)


def apply_hooks_to_container(
    hooks_file_path: str | Path,
    container_rootfs_mount: str | Path,
    settings: HookSettings | None = None,
    runner: CommandRunner | None = None,
) -> None:
    """Apply CDI hooks to a container by creating symlinks and updating the linker cache.

    Called both at container start (from the LXC hook) and on hot-plug, so
    every step tolerates state left by a previous application. The caller
    must serialize invocations against the same rootfs.

    Args:
        hooks_file_path: Path to the JSON file containing the CDI hooks
        container_rootfs_mount: Host path of the container's root filesystem mount
        settings: Settings to use; defaults to the global instance
        runner: Command runner for ldconfig; defaults to a subprocess runner

    Raises:
        HookError: On the first failure; changes made before it are kept
    """
    settings = settings or get_settings()
    hooks = load_plan(hooks_file_path)

    apply_symlinks(container_rootfs_mount, hooks.symlinks, settings)

    if merge_linker_config(container_rootfs_mount, hooks.ld_cache_updates, settings):
        regenerate_cache(container_rootfs_mount, runner, settings)

    logger.info(
        f"Applied CDI hooks from {hooks_file_path} to {container_rootfs_mount}: "
        f"{len(hooks.symlinks)} symlink(s), {len(hooks.ld_cache_updates)} ld cache update(s)"
    )
