"""Data models for CDI hook plans.

The plan files are produced by the device configuration layer and are
read-only from this package's point of view, so all models are frozen.
"""

from pydantic import BaseModel, ConfigDict, Field


class SymlinkEntry(BaseModel):
    """A symlink to create inside the container rootfs."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    target: str
    """Where the link points. Absolute targets are made link-relative."""

    link: str
    """Absolute path of the link, interpreted relative to the container rootfs."""


class Hooks(BaseModel):
    """All the hook instructions for one container start or hot-plug event."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    container_rootfs: str = ""
    """Path to the container's root filesystem (informational)"""

    ld_cache_updates: list[str] = Field(default_factory=list)
    """Library directories to add to the linker configuration, in preference order"""

    symlinks: list[SymlinkEntry] = Field(default_factory=list)
    """Symlinks to create, in order"""


class ConfigDevices(BaseModel):
    """Devices and mounts to configure from a CDI specification.

    Consumed by the device layer, not by the hook applier.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    unix_char_devs: list[dict[str, str]] = Field(default_factory=list)
    """Unix character device configurations"""

    bind_mounts: list[dict[str, str]] = Field(default_factory=list)
    """Bind mount configurations"""
