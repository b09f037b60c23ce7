"""cdihook - apply CDI hook plans to container root filesystems.

Creates the symlinks and linker search-path entries described by a hook
plan under a container's mounted rootfs, then regenerates its linker cache
with the host's ldconfig.
"""

from cdihook.apply import apply_hooks_to_container
from cdihook.errors import (
    ErrorKind,
    HookError,
    HookIOError,
    HookNotFoundError,
    InvalidLinkError,
    LdconfigError,
    PathResolutionError,
    PlanDecodeError,
)
from cdihook.models import ConfigDevices, Hooks, SymlinkEntry

__all__ = [
    "apply_hooks_to_container",
    "ConfigDevices",
    "Hooks",
    "SymlinkEntry",
    "ErrorKind",
    "HookError",
    "HookIOError",
    "HookNotFoundError",
    "InvalidLinkError",
    "LdconfigError",
    "PathResolutionError",
    "PlanDecodeError",
]
