"""Link-relative symlink targets.

Hook plans describe symlink targets as host-style absolute paths. Inside a
container those must point relative to the link itself so the link stays
valid wherever the rootfs is mounted.
"""

import posixpath

from cdihook.errors import InvalidLinkError, PathResolutionError


def clean_path(path: str) -> str:
    """Lexically normalize ``path`` without touching the filesystem.

    Collapses duplicate separators, ``.`` and ``..`` elements. Unlike
    ``posixpath.normpath`` a leading ``//`` is reduced to ``/``.
    """
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def resolve_target_relative_to_link(link: str, target: str) -> str:
    """Convert a link's target into a path relative to the link's directory.

    Args:
        link: Absolute path where the symlink will live
        target: Absolute path the link should reach, or an already relative target

    Returns:
        The target relative to ``dirname(link)``; relative targets are returned unchanged

    Raises:
        InvalidLinkError: If ``link`` is not absolute
        PathResolutionError: If no relative path can be computed
    """
    if not posixpath.isabs(link):
        raise InvalidLinkError(link, target)

    if not posixpath.isabs(target):
        return target

    link_dir = posixpath.dirname(clean_path(link))
    try:
        return posixpath.relpath(clean_path(target), link_dir)
    except ValueError as e:
        raise PathResolutionError(
            f"Failed computing the path from {link_dir!r} to {target!r}", path=link, cause=e
        ) from e
