"""
ConfigService - reads and writes the dialog defaults file (qtprompt.json).

load() upgrades old unversioned files in place and moves unreadable files
aside. read() is the side-effect-free variant used when showing dialogs.
"""

import dataclasses
import json
import logging
import os
import tempfile
import time
from typing import Any, Dict, Optional

from ..models.config import CONFIG_VERSION, DefaultsConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "QTPROMPT_CONFIG"
DEFAULT_CONFIG_FILE = "qtprompt.json"
BACKUP_PATTERN = "qtprompt-{stamp}-.broken.json"


class ConfigService:
    """
    Loads DefaultsConfig from a JSON file.

    The path is, in order: the constructor argument, $QTPROMPT_CONFIG,
    then ``qtprompt.json`` in the working directory. A missing file is
    not an error; it simply yields the built-in defaults.
    """

    def __init__(self, config_path: Optional[str] = None):
        self._config_path = (
            config_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE
        )
        self._config: Optional[DefaultsConfig] = None

    def get_config_path(self) -> str:
        return self._config_path

    def load(self) -> DefaultsConfig:
        """
        Read the defaults file, upgrading it first when it predates
        CONFIG_VERSION.

        Returns:
            DefaultsConfig (built-in defaults when the file is absent or broken)
        """
        if not os.path.exists(self._config_path):
            self._config = DefaultsConfig()
            return self._config

        try:
            data = self._read()
            version = data.get("_version", 0)
            if version < CONFIG_VERSION:
                data = self._migrate(data, version)
                self._write(data)
                logger.info(f"Upgraded {self._config_path} from v{version} to v{CONFIG_VERSION}")
            self._config = DefaultsConfig.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            # json.JSONDecodeError is a ValueError
            backup = self._move_aside()
            logger.warning(
                f"Ignoring unreadable config {self._config_path} ({e}); "
                f"moved to {backup or 'nowhere'}"
            )
            self._config = DefaultsConfig()
        return self._config

    def read(self) -> DefaultsConfig:
        """
        Like load(), but never touches the file: old versions are upgraded
        in memory only and a broken file is left where it is.
        """
        if not os.path.exists(self._config_path):
            self._config = DefaultsConfig()
            return self._config

        try:
            data = self._read()
            version = data.get("_version", 0)
            if version < CONFIG_VERSION:
                data = self._migrate(data, version)
            self._config = DefaultsConfig.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring unreadable config {self._config_path}: {e}")
            self._config = DefaultsConfig()
        return self._config

    def get(self) -> DefaultsConfig:
        """Cached config, loading on first use."""
        if self._config is None:
            return self.load()
        return self._config

    def save(self, config: Optional[DefaultsConfig] = None) -> None:
        """Write ``config`` (or the cached config) to disk."""
        if config is not None:
            self._config = config
        self._write(self.get().to_dict())

    def update(self, **changes: Any) -> DefaultsConfig:
        """
        Change individual defaults and save them.

        Raises:
            TypeError: If a keyword is not a DefaultsConfig field
        """
        self._config = dataclasses.replace(self.get(), **changes)
        self.save()
        return self._config

    def _read(self) -> Dict[str, Any]:
        with open(self._config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("Config root must be an object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        """Replace the file atomically."""
        directory = os.path.dirname(os.path.abspath(self._config_path))
        fd, temp_path = tempfile.mkstemp(prefix=".qtprompt-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=4)
            os.replace(temp_path, self._config_path)
        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

    def _move_aside(self) -> Optional[str]:
        """Rename a broken config file; returns the new path."""
        directory = os.path.dirname(self._config_path)
        backup_path = os.path.join(directory, BACKUP_PATTERN.format(stamp=int(time.time())))
        try:
            os.rename(self._config_path, backup_path)
        except OSError as e:
            logger.error(f"Could not move {self._config_path} aside: {e}")
            return None
        return backup_path

    def _migrate(self, data: Dict[str, Any], from_version: int) -> Dict[str, Any]:
        steps = {
            0: self._migrate_v0_to_v1,
        }
        current = dict(data)
        for version in range(from_version, CONFIG_VERSION):
            if version in steps:
                current = steps[version](current)
        current["_version"] = CONFIG_VERSION
        return current

    def _migrate_v0_to_v1(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        v0 kept font and colour keys flat at the top level; v1 nests them
        under "font" and "colors". The flat keys stay in place.
        """
        result = dict(data)
        nested = {
            "font": (("font_family", "family"), ("font_size", "size"), ("font_color", "color")),
            "colors": (("background_color", "background"), ("accent_color", "accent")),
        }
        for section, keys in nested.items():
            values = dict(result.get(section) or {})
            for flat_key, key in keys:
                if flat_key in result:
                    values.setdefault(key, result[flat_key])
            result[section] = values
        result.setdefault("min_width", DefaultsConfig.min_width)
        return result


class MockConfigService(ConfigService):
    """In-memory ConfigService that records every save."""

    def __init__(self, config: Optional[DefaultsConfig] = None):
        super().__init__(os.devnull)
        self._config = config or DefaultsConfig()
        self._saved_configs: list = []

    def load(self) -> DefaultsConfig:
        return self._config

    def read(self) -> DefaultsConfig:
        return self._config

    def save(self, config: Optional[DefaultsConfig] = None) -> None:
        if config is not None:
            self._config = config
        self._saved_configs.append(self._config.to_dict())

    def get_saved_configs(self) -> list:
        return self._saved_configs
