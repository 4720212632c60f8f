"""Rule and configuration models.

Immutable data (rule descriptors, option sets carried into a snapshot, the
configuration snapshot itself) is modelled with Pydantic so malformed
input is rejected when it enters the engine. The two engine-owned mutable
records, ``SelectableRule`` and ``SourcePathFilter``, are plain dataclasses
whose selection flag is only changed by the engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from targetconfig.rules.labels import BuildLabel, as_label

logger = logging.getLogger("targetconfig.rules.schema")


class OptionKey:
    """Well-known option names consulted by the engine."""

    STARTUP_OPTIONS_DEBUG = "BazelBuildStartupOptionsDebug"
    BUILD_OPTIONS_DEBUG = "BazelBuildOptionsDebug"


class RuleDescriptor(BaseModel):
    """Resolved metadata for one build rule.

    Owned by the workspace model and shared by reference; the engine never
    mutates a descriptor.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    label: Annotated[BuildLabel, Field(..., description="Rule label")]
    rule_type: Annotated[str, Field(..., description="Rule kind, e.g. cc_library")]
    dependency_labels: Annotated[
        Tuple[BuildLabel, ...],
        Field(default=(), description="Transitive dependency labels, in declared order"),
    ]
    source_files: Annotated[
        Tuple[str, ...],
        Field(default=(), description="Workspace-relative source file paths"),
    ]

    @field_validator("label", mode="before")
    @classmethod
    def _coerce_label(cls, value: Any) -> BuildLabel:
        return as_label(value)

    @field_validator("dependency_labels", mode="before")
    @classmethod
    def _coerce_dependencies(cls, value: Any) -> Tuple[BuildLabel, ...]:
        return tuple(as_label(item) for item in value or ())

    @field_validator("rule_type")
    @classmethod
    def _check_rule_type_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("Rule type must be a non-empty string")
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-compatible mapping."""
        return {
            "label": str(self.label),
            "rule_type": self.rule_type,
            "dependency_labels": [str(dep) for dep in self.dependency_labels],
            "source_files": list(self.source_files),
        }


@dataclass(eq=False)
class SelectableRule:
    """A rule descriptor plus the user's selection state."""

    descriptor: RuleDescriptor
    selected: bool = False

    @property
    def label(self) -> BuildLabel:
        return self.descriptor.label

    @property
    def full_label(self) -> str:
        return str(self.descriptor.label)

    @property
    def display_label(self) -> str:
        """Label shown to the user, e.g. ``//app:main (cc_binary)``."""
        return f"{self.descriptor.label} ({self.descriptor.rule_type})"


@dataclass(eq=False)
class SourcePathFilter:
    """A source directory the user may include in the generated project.

    Filters are unique by ``key`` (the directory path).
    """

    path: str
    selected: bool = True

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("Source path filter requires a non-empty path")

    @property
    def key(self) -> str:
        return self.path


class OptionSet(BaseModel):
    """Opaque option values owned by the options editor.

    ``values`` are shared project settings; ``user_values`` only go to the
    per-user artifact.
    """

    model_config = ConfigDict(extra="forbid")

    values: Dict[str, Optional[str]] = Field(default_factory=dict)
    user_values: Dict[str, Optional[str]] = Field(default_factory=dict)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the effective value for ``key``; per-user values win."""
        if key in self.user_values:
            return self.user_values[key]
        return self.values.get(key, default)

    def __getitem__(self, key: str) -> Optional[str]:
        return self.get(key)


class ConfigurationSnapshot(BaseModel):
    """Immutable description of what to generate or persist."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_name: str
    build_targets: Tuple[RuleDescriptor, ...] = ()
    path_filters: FrozenSet[str] = frozenset()
    additional_file_paths: Optional[Tuple[str, ...]] = None
    options: OptionSet
    bazel_url: Optional[str] = None

    @field_validator("project_name")
    @classmethod
    def _check_project_name(cls, value: str) -> str:
        if not value:
            raise ValueError("Project name must be a non-empty string")
        return value

    @property
    def build_target_labels(self) -> List[BuildLabel]:
        return [target.label for target in self.build_targets]

    def sorted_path_filters(self) -> List[str]:
        return sorted(self.path_filters)


__all__ = [
    "OptionKey",
    "RuleDescriptor",
    "SelectableRule",
    "SourcePathFilter",
    "OptionSet",
    "ConfigurationSnapshot",
]
