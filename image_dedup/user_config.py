"""
Layered user settings for Image Dedup.

A setting is resolved from the first source that defines it:

    CLI flag  >  IMAGE_DEDUP_* environment variable  >  config.json  >  built-in default

The config file lives in ``~/.image_dedup/`` (or ``$IMAGE_DEDUP_CONFIG_DIR``);
``scan --config FILE`` points at a different one. Sample file:

{
    "algorithm": "dct",
    "hash_size": 8,
    "quality_factor": 1.0,
    "max_concurrent_tasks": 8,
    "channel_buffer_size": 100,
    "batch_size": 50,
    "max_dimension": null,
    "default_threshold": 5
}
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .config import (
    DEFAULT_ALGORITHM,
    DEFAULT_BATCH_SIZE,
    DEFAULT_CHANNEL_BUFFER_SIZE,
    DEFAULT_HASH_SIZE,
    DEFAULT_MAX_CONCURRENT_TASKS,
    DEFAULT_QUALITY_FACTOR,
    DEFAULT_THRESHOLD,
)
from .errors import ConfigurationError
from .hashing import HashSettings
from .pipeline import ProcessingConfig

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = 'IMAGE_DEDUP_CONFIG_DIR'
CONFIG_FILE_NAME = 'config.json'

# key -> (environment variable, default)
SETTINGS: dict[str, tuple[str, Any]] = {
    'algorithm': ('IMAGE_DEDUP_ALGORITHM', DEFAULT_ALGORITHM),
    'hash_size': ('IMAGE_DEDUP_HASH_SIZE', DEFAULT_HASH_SIZE),
    'quality_factor': ('IMAGE_DEDUP_QUALITY_FACTOR', DEFAULT_QUALITY_FACTOR),
    'max_concurrent_tasks': ('IMAGE_DEDUP_THREADS', DEFAULT_MAX_CONCURRENT_TASKS),
    'channel_buffer_size': ('IMAGE_DEDUP_BUFFER_SIZE', DEFAULT_CHANNEL_BUFFER_SIZE),
    'batch_size': ('IMAGE_DEDUP_BATCH_SIZE', DEFAULT_BATCH_SIZE),
    'max_dimension': ('IMAGE_DEDUP_MAX_DIMENSION', None),
    'default_threshold': ('IMAGE_DEDUP_THRESHOLD', DEFAULT_THRESHOLD),
    'enable_progress_reporting': ('IMAGE_DEDUP_PROGRESS', True),
}


def _parse_env(raw: str) -> Any:
    # Numbers, booleans and null arrive as JSON; anything else is a plain string
    try:
        return json.loads(raw)
    except ValueError:
        return raw


class UserConfig:
    """
    Process-wide settings resolver.

    There is one instance per process; the file is read on first use and
    cached until ``reload()`` or ``use_config_file()``.
    """

    _instance: Optional['UserConfig'] = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._file_values = None
            instance._override_path = None
            cls._instance = instance
        return cls._instance

    @property
    def config_dir(self) -> Path:
        custom = os.getenv(CONFIG_DIR_ENV)
        return Path(custom) if custom else Path.home() / '.image_dedup'

    @property
    def config_file_path(self) -> Path:
        """The explicit ``--config`` file if one was given, else config_dir/config.json."""
        return self._override_path or self.config_dir / CONFIG_FILE_NAME

    def use_config_file(self, path: Optional[str | Path]) -> None:
        """
        Switch to an explicit config file, or back to the default with None.

        The default file is optional and a broken one is only logged; an
        explicit file has to exist and hold a JSON object.

        Raises:
            ConfigurationError: If ``path`` cannot be read or parsed
        """
        if path is None:
            self._override_path = None
            self.reload()
            return

        path = Path(path)
        values = self._read_json_object(path)
        if values is None:
            raise ConfigurationError(f"Config file {path} must contain a JSON object")
        self._override_path = path
        self._file_values = values

    @staticmethod
    def _read_json_object(path: Path) -> Optional[dict]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                values = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
        logger.debug(f"Read settings from {path}")
        return values if isinstance(values, dict) else None

    def _file_settings(self) -> dict:
        if self._file_values is None:
            path = self.config_file_path
            values: Optional[dict] = {}
            if path.exists():
                try:
                    values = self._read_json_object(path)
                except ConfigurationError as e:
                    logger.warning(f"Ignoring {e}")
            self._file_values = values or {}
        return self._file_values

    def reload(self) -> None:
        """Forget cached file contents; the next lookup re-reads the file."""
        self._file_values = None

    def get(self, key: str, default: Any = None, env_var: Optional[str] = None) -> Any:
        """Resolve ``key`` from the environment, then the file, then ``default``."""
        if env_var:
            raw = os.getenv(env_var)
            if raw is not None:
                return _parse_env(raw)
        return self._file_settings().get(key, default)

    def _setting(self, key: str) -> Any:
        env_var, default = SETTINGS[key]
        return self.get(key, default=default, env_var=env_var)

    @property
    def algorithm(self) -> str:
        return self._setting('algorithm')

    @property
    def hash_size(self) -> int:
        return self._setting('hash_size')

    @property
    def quality_factor(self) -> float:
        return self._setting('quality_factor')

    @property
    def max_concurrent_tasks(self) -> int:
        return self._setting('max_concurrent_tasks')

    @property
    def channel_buffer_size(self) -> int:
        return self._setting('channel_buffer_size')

    @property
    def batch_size(self) -> int:
        return self._setting('batch_size')

    @property
    def max_dimension(self) -> Optional[int]:
        """Longest side allowed before downscaling; None keeps full size."""
        return self._setting('max_dimension')

    @property
    def default_threshold(self) -> int:
        return self._setting('default_threshold')

    @property
    def enable_progress_reporting(self) -> bool:
        return bool(self._setting('enable_progress_reporting'))

    def hash_settings(self, **overrides: Any) -> HashSettings:
        """HashSettings from the resolved values; overrides that are not None win."""
        values = {
            'algorithm': self.algorithm,
            'size': self.hash_size,
            'quality_factor': self.quality_factor,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return HashSettings(**values)

    def processing_config(self, **overrides: Any) -> ProcessingConfig:
        """ProcessingConfig from the resolved values; overrides that are not None win."""
        values = {
            'max_concurrent_tasks': self.max_concurrent_tasks,
            'channel_buffer_size': self.channel_buffer_size,
            'batch_size': self.batch_size,
            'enable_progress_reporting': self.enable_progress_reporting,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ProcessingConfig(**values)

    def create_example_config(self) -> bool:
        """
        Write a config.json holding every setting at its default.

        Returns:
            True if the file was written
        """
        path = self.config_dir / CONFIG_FILE_NAME
        sample = {"_comment": "Image Dedup settings"}
        sample.update({key: default for key, (_, default) in SETTINGS.items()})

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(sample, indent=2), encoding='utf-8')
        except OSError as e:
            logger.error(f"Could not write {path}: {e}")
            return False
        logger.info(f"Wrote example settings to {path}")
        return True


_user_config = UserConfig()


def get_user_config() -> UserConfig:
    return _user_config


__all__ = ['UserConfig', 'get_user_config', 'SETTINGS']
