"""Loading of hook plan and config devices files."""

import logging
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from cdihook.config import HookSettings, get_settings
from cdihook.errors import HookIOError, HookNotFoundError, PlanDecodeError
from cdihook.models import ConfigDevices, Hooks

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _load_json_model(path: str | Path, model: type[ModelT], what: str) -> ModelT:
    """Read ``path`` and validate it into ``model``, all or nothing."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError as e:
        raise HookNotFoundError(f"Failed opening the {what} file", path=str(path), cause=e) from e
    except OSError as e:
        raise HookIOError(f"Failed reading the {what} file", path=str(path), cause=e) from e

    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise PlanDecodeError(f"Failed decoding the {what} file at {str(path)!r}", path=str(path), cause=e) from e


def load_plan(path: str | Path) -> Hooks:
    """Load a hook plan from a JSON file.

    Args:
        path: Path to the hook plan file

    Returns:
        The decoded plan

    Raises:
        HookNotFoundError: If the file does not exist
        HookIOError: If the file cannot be read
        PlanDecodeError: If the content is not a valid hook plan
    """
    hooks = _load_json_model(path, Hooks, "CDI hooks")
    logger.debug(
        f"Loaded hook plan {path}: {len(hooks.symlinks)} symlink(s), "
        f"{len(hooks.ld_cache_updates)} linker update(s)"
    )
    return hooks


def load_config_devices(path: str | Path) -> ConfigDevices:
    """Load a config devices file. Same error policy as ``load_plan``."""
    return _load_json_model(path, ConfigDevices, "CDI config devices")


def hooks_file_path(directory: str | Path, device_name: str, settings: HookSettings | None = None) -> Path:
    """Path of the hook plan file for ``device_name`` inside ``directory``."""
    settings = settings or get_settings()
    return Path(directory) / f"{device_name}{settings.hooks_file_suffix}"


def config_devices_file_path(directory: str | Path, device_name: str, settings: HookSettings | None = None) -> Path:
    """Path of the config devices file for ``device_name`` inside ``directory``."""
    settings = settings or get_settings()
    return Path(directory) / f"{device_name}{settings.config_devices_file_suffix}"
