"""Configuration management for photo import."""

import copy
import sys
import yaml
from pathlib import Path
from typing import Dict, List, Any, Optional
import logging

logger = logging.getLogger(__name__)

DATE_SOURCES = ('filesystem', 'exif')
MEDIA_TYPES = ('removable', 'fixed', 'cdrom', 'network', 'unknown')


def _default_mount_prefixes() -> List[str]:
    if sys.platform == 'darwin':
        return ['/Volumes']
    return ['/media', '/run/media', '/mnt']


DEFAULTS: Dict[str, Any] = {
    'photo_import': {
        'library_root': '~/Pictures',
        'source_subdir': 'DCIM',
        'extensions': ['jpg', 'jpeg', 'png'],
        'folder_prefix': 'SD Card Import',
        'date_source': 'filesystem',
        'dry_run': False,
        'volumes': {
            'mount_prefixes': _default_mount_prefixes(),
            'boundary_names': ['Volumes', 'media', 'mnt'],
            'media_types': ['removable', 'fixed'],
            'label': None,
        },
        'process': {
            'exit_delay_seconds': 6,
        },
        'safety': {
            'min_free_space_mb': 0,
        },
    },
    'logging': {
        'level': 'INFO',
        'log_dir': None,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Manages configuration for photo import from YAML files."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config file. If None, searches for config files
                and falls back to built-in defaults when none is found.
        """
        if config_path is not None and not Path(config_path).exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        self.config_path = config_path or self._find_config_file()
        self.config: Dict[str, Any] = {}
        self._load_config()

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in standard locations."""
        # Look for config files in order of preference
        possible_paths = [
            Path.cwd() / "config.yml",
            Path.cwd() / "config.local.yml",
            Path.home() / ".config" / "photo-importer" / "config.yml",
            Path(__file__).parent / "config.yml",
        ]

        for config_file in possible_paths:
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return str(config_file.resolve())

        logger.info("No configuration file found, using built-in defaults")
        return None

    def _load_config(self) -> None:
        """Load configuration from YAML file over the defaults."""
        if self.config_path is None:
            self.config = copy.deepcopy(DEFAULTS)
            return
        try:
            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {self.config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            raise
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")
        self.config = _deep_merge(DEFAULTS, loaded)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path like 'photo_import.volumes.label'
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key_path: str, value: Any) -> None:
        """Override a value using dot notation (used for CLI overrides)."""
        keys = key_path.split('.')
        target = self.config
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value

    def get_library_root(self) -> Path:
        """Get the destination photo library root."""
        return Path(str(self.get('photo_import.library_root'))).expanduser()

    def get_source_subdir(self) -> str:
        return self.get('photo_import.source_subdir', 'DCIM')

    def get_supported_extensions(self) -> List[str]:
        """Get supported image extensions, lower-case with a leading dot."""
        extensions = self.get('photo_import.extensions') or []
        return ['.' + str(ext).lower().lstrip('.') for ext in extensions]

    def get_folder_prefix(self) -> str:
        return self.get('photo_import.folder_prefix', 'SD Card Import')

    def get_date_source(self) -> str:
        return self.get('photo_import.date_source', 'filesystem')

    def get_mount_prefixes(self) -> List[str]:
        return list(self.get('photo_import.volumes.mount_prefixes') or [])

    def get_boundary_names(self) -> List[str]:
        return list(self.get('photo_import.volumes.boundary_names') or [])

    def get_media_types(self) -> List[str]:
        return [str(t).lower() for t in self.get('photo_import.volumes.media_types') or []]

    def get_volume_label(self) -> Optional[str]:
        return self.get('photo_import.volumes.label')

    def get_exit_delay(self) -> float:
        """Get pause in seconds before exiting after a fatal error."""
        return self.get('photo_import.process.exit_delay_seconds', 6)

    def get_min_free_space_mb(self) -> int:
        """Get minimum free space reserve on the library volume in MB."""
        return self.get('photo_import.safety.min_free_space_mb', 0)

    def is_dry_run(self) -> bool:
        """Check if this is a dry run."""
        return bool(self.get('photo_import.dry_run', False))

    def get_log_level(self) -> str:
        """Get logging level."""
        return self.get('logging.level', 'INFO')

    def get_log_dir(self) -> Optional[Path]:
        log_dir = self.get('logging.log_dir')
        return Path(log_dir).expanduser() if log_dir else None

    def validate_config(self) -> List[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of validation error messages
        """
        errors = []

        if not self.get('photo_import.library_root'):
            errors.append("Library root directory not configured")

        if not self.get_source_subdir():
            errors.append("Source subdirectory not configured")

        if not self.get_supported_extensions():
            errors.append("No supported file extensions configured")

        date_source = self.get_date_source()
        if date_source not in DATE_SOURCES:
            errors.append(f"Invalid date_source: {date_source} (must be one of {', '.join(DATE_SOURCES)})")

        if not self.get_mount_prefixes():
            errors.append("No volume mount prefixes configured")

        media_types = self.get_media_types()
        if not media_types:
            errors.append("No volume media types configured")
        for media_type in media_types:
            if media_type not in MEDIA_TYPES:
                errors.append(f"Unknown volume media type: {media_type}")

        exit_delay = self.get_exit_delay()
        if not isinstance(exit_delay, (int, float)) or exit_delay < 0:
            errors.append(f"Invalid exit_delay_seconds value: {exit_delay} (must be >= 0)")

        min_free = self.get_min_free_space_mb()
        if not isinstance(min_free, int) or min_free < 0:
            errors.append(f"Invalid min_free_space_mb value: {min_free} (must be >= 0)")

        return errors

    def __str__(self) -> str:
        """String representation of configuration."""
        return f"Config(path={self.config_path}, library={self.get_library_root()})"
