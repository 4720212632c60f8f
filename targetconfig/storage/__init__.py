"""Persistence backends for generator configurations."""

from targetconfig.storage.config_store import (
    FILE_EXTENSION,
    ConfigStore,
    PersistedConfig,
    config_path_for_name,
    is_generator_config_filename,
    sanitize_filename,
)

__all__ = [
    "FILE_EXTENSION",
    "ConfigStore",
    "PersistedConfig",
    "config_path_for_name",
    "is_generator_config_filename",
    "sanitize_filename",
]
