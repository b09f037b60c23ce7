"""Settings for cdihook.

Configuration Discovery Precedence (Highest to Lowest Priority):
===============================================================

1. **Explicit path** passed to ``HookSettings.from_yaml`` (e.g. ``cdi-hook --config``)

2. **CDIHOOK_CONFIG_DIR Environment Variable**
   - Looks for: `${CDIHOOK_CONFIG_DIR}/cdihook.yaml`

3. **Defaults**
   - The LXD naming conventions (``00-lxdcdi.conf``, ``_cdi_hooks.json``, ...)
     and ``/sbin/ldconfig``

Individual fields can also be overridden with ``CDIHOOK_<FIELD>`` environment
variables, e.g. ``CDIHOOK_LDCONFIG_PATH=/usr/sbin/ldconfig``.

Example cdihook.yaml:
--------
cdihook:
  linker_conf_file: 00-custom.conf
  ldconfig_path: /usr/sbin/ldconfig
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from cdihook.errors import HookIOError, PlanDecodeError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "cdihook.yaml"


class HookSettings(BaseSettings):
    """Naming conventions and host tool locations used when applying hooks."""

    model_config = SettingsConfigDict(
        env_prefix="CDIHOOK_",
        case_sensitive=False,
        extra="ignore",
    )

    # Plan file naming (<device_name><suffix>)
    hooks_file_suffix: str = "_cdi_hooks.json"
    config_devices_file_suffix: str = "_cdi_config_devices.json"

    # Linker configuration, relative to the container rootfs.
    # The 00- prefix makes our fragment sort before the distribution's.
    linker_conf_dir: str = "etc/ld.so.conf.d"
    linker_conf_file: str = "00-lxdcdi.conf"
    linker_cache_file: str = "etc/ld.so.cache"

    # Host-side cache builder, run with -r <rootfs>
    ldconfig_path: str = "/sbin/ldconfig"

    dir_mode: int = 0o755
    file_mode: int = 0o644

    def linker_conf_path(self, rootfs: str | Path) -> Path:
        """Path of the linker configuration fragment under ``rootfs``."""
        return Path(rootfs) / self.linker_conf_dir / self.linker_conf_file

    def linker_cache_path(self, rootfs: str | Path) -> Path:
        """Path of the linker cache under ``rootfs``."""
        return Path(rootfs) / self.linker_cache_file

    @classmethod
    def from_yaml(cls, yaml_path: Path, **kwargs: Any) -> "HookSettings":
        """Load settings from the ``cdihook`` section of a YAML file.

        Args:
            yaml_path: Path to the YAML file; a missing file yields defaults
            **kwargs: Overrides applied on top of the file's values

        Raises:
            HookIOError: If the file exists but cannot be read
            PlanDecodeError: If the file is not valid YAML or has invalid values
        """
        if not yaml_path.exists():
            logger.debug(f"No settings file at {yaml_path}, using defaults")
            return cls(**kwargs)

        try:
            with yaml_path.open() as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise HookIOError("Failed reading the settings file", path=str(yaml_path), cause=e) from e
        except yaml.YAMLError as e:
            raise PlanDecodeError("Failed parsing the settings file", path=str(yaml_path), cause=e) from e

        section = data.get("cdihook", {}) if isinstance(data, dict) else {}
        if not isinstance(section, dict):
            raise PlanDecodeError("The 'cdihook' section must be a mapping", path=str(yaml_path))

        try:
            return cls(**{**section, **kwargs})
        except ValidationError as e:
            raise PlanDecodeError("Invalid settings", path=str(yaml_path), cause=e) from e


# Global settings instance
_settings_instance: HookSettings | None = None
_settings_lock = threading.Lock()


def get_settings() -> HookSettings:
    """Get the settings instance."""
    global _settings_instance

    if _settings_instance is None:
        with _settings_lock:
            # Double-check locking pattern
            if _settings_instance is None:
                env_config_dir = os.environ.get("CDIHOOK_CONFIG_DIR")
                if env_config_dir:
                    yaml_path = Path(env_config_dir) / CONFIG_FILE_NAME
                    logger.debug(f"Using settings from environment: {yaml_path}")
                    _settings_instance = HookSettings.from_yaml(yaml_path)
                else:
                    _settings_instance = HookSettings()

    return _settings_instance


def set_settings_instance(settings: HookSettings) -> None:
    """Set the global settings instance."""
    global _settings_instance
    _settings_instance = settings


def clear_settings_instance() -> None:
    """Clear the global settings instance (for testing)."""
    global _settings_instance
    _settings_instance = None
