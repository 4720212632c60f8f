"""JSON persistence for generator configurations.

A configuration is stored as ``<name>.tulsigen`` holding the project name,
ordered build-target labels, path filters, additional file paths, the
shared option values and the build-tool URL. Per-user option values go to
a sibling ``<name>.tulsigen.user`` file, which is omitted when empty.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from targetconfig.errors import ConfigNotLoadable, ConfigNotSaveable
from targetconfig.rules.schema import ConfigurationSnapshot, OptionSet

logger = logging.getLogger("targetconfig.storage.config_store")

FILE_EXTENSION = "tulsigen"
PER_USER_SUFFIX = ".user"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._\- ]")


class PersistedConfig(BaseModel):
    """On-disk shape of a configuration (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    project_name: str = Field(alias="projectName")
    build_target_labels: List[str] = Field(default_factory=list, alias="buildTargets")
    path_filters: List[str] = Field(default_factory=list, alias="pathFilters")
    additional_file_paths: Optional[List[str]] = Field(default=None, alias="additionalFilePaths")
    options: Dict[str, Optional[str]] = Field(default_factory=dict)
    user_options: Dict[str, Optional[str]] = Field(default_factory=dict, exclude=True)
    bazel_url: Optional[str] = Field(default=None, alias="bazelURL")

    @classmethod
    def from_snapshot(cls, snapshot: ConfigurationSnapshot) -> "PersistedConfig":
        return cls(
            project_name=snapshot.project_name,
            build_target_labels=[str(label) for label in snapshot.build_target_labels],
            path_filters=snapshot.sorted_path_filters(),
            additional_file_paths=(
                list(snapshot.additional_file_paths)
                if snapshot.additional_file_paths is not None
                else None
            ),
            options=dict(snapshot.options.values),
            user_options=dict(snapshot.options.user_values),
            bazel_url=snapshot.bazel_url,
        )

    def option_set(self) -> OptionSet:
        return OptionSet(values=dict(self.options), user_values=dict(self.user_options))

    def to_bytes(self) -> bytes:
        payload = self.model_dump(by_alias=True)
        return (json.dumps(payload, indent=2, sort_keys=True) + "\n").encode("utf-8")

    def per_user_bytes(self) -> bytes:
        """Per-user artifact; empty when there are no per-user options."""
        if not self.user_options:
            return b""
        payload = {"options": self.user_options}
        return (json.dumps(payload, indent=2, sort_keys=True) + "\n").encode("utf-8")


def sanitize_filename(filename: str) -> str:
    """Replace characters that are unsafe in file names with ``_``."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename).strip()


def config_path_for_name(name: str, folder: Optional[Path]) -> Optional[Path]:
    """Location of the configuration called ``name`` inside ``folder``."""
    if folder is None:
        return None
    return Path(folder) / sanitize_filename(f"{name}.{FILE_EXTENSION}")


def is_generator_config_filename(filename: str) -> bool:
    return Path(filename).suffix == f".{FILE_EXTENSION}"


def per_user_path(config_path: Path) -> Path:
    return config_path.with_name(config_path.name + PER_USER_SUFFIX)


class ConfigStore:
    """Reads and writes persisted configurations."""

    def save(self, snapshot: ConfigurationSnapshot, folder: Path, name: str) -> Path:
        """Write ``snapshot`` as ``name`` inside ``folder``.

        The folder is created if needed.

        Raises:
            ConfigNotSaveable: If the location is invalid or writing fails.
        """
        path = config_path_for_name(name, folder)
        if path is None or not name:
            raise ConfigNotSaveable("No location to save the generator config")

        persisted = PersistedConfig.from_snapshot(snapshot)
        user_path = per_user_path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(persisted.to_bytes())
            user_data = persisted.per_user_bytes()
            if user_data:
                user_path.write_bytes(user_data)
            elif user_path.exists():
                user_path.unlink()
        except OSError as e:
            raise ConfigNotSaveable(f"Failed to write {path}: {e}") from e

        logger.info("Saved generator config %s", path)
        return path

    def load(self, path: Path) -> PersistedConfig:
        """Read a configuration and merge its per-user options.

        Raises:
            ConfigNotLoadable: If the file is missing or malformed.
        """
        path = Path(path)
        try:
            data: Dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
            persisted = PersistedConfig.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ConfigNotLoadable(f"Cannot load generator config {path}: {e}") from e

        user_path = per_user_path(path)
        if user_path.exists():
            try:
                user_data = json.loads(user_path.read_text(encoding="utf-8") or "{}")
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigNotLoadable(f"Cannot load per-user settings {user_path}: {e}") from e
            if not isinstance(user_data, dict) or not isinstance(user_data.get("options", {}), dict):
                raise ConfigNotLoadable(f"Per-user settings {user_path} must be a JSON object")
            persisted = persisted.model_copy(
                update={"user_options": dict(user_data.get("options", {}))}
            )

        logger.info(
            "Loaded generator config %s (%d targets, %d path filters)",
            path,
            len(persisted.build_target_labels),
            len(persisted.path_filters),
        )
        return persisted


__all__ = [
    "FILE_EXTENSION",
    "ConfigStore",
    "PersistedConfig",
    "config_path_for_name",
    "is_generator_config_filename",
    "per_user_path",
    "sanitize_filename",
]
