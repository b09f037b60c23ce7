"""Filesystem helpers."""

from pathlib import Path


def make_dirs(path: Path, mode: int) -> None:
    """Create ``path`` and any missing parents, all with ``mode``.

    ``Path.mkdir(parents=True)`` only applies ``mode`` to the last
    component; here every newly created level gets it (minus the umask).
    """
    missing: list[Path] = []
    current = path
    while not current.is_dir():
        missing.append(current)
        if current.parent == current:
            break
        current = current.parent

    for directory in reversed(missing):
        try:
            directory.mkdir(mode=mode)
        except FileExistsError:
            # Created concurrently, or a non-directory is in the way
            if not directory.is_dir():
                raise
