"""Configuration schema definitions using Pydantic for validation.

``EngineConfig`` controls how the engine queries the workspace index and
walks dependency graphs. Using Pydantic ensures configuration errors are
caught early with clear error messages.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from targetconfig.rules.schema import OptionKey

MissingDependencyPolicy = Literal["skip", "fail"]


class EngineConfig(BaseModel):
    """Engine-wide settings.

    Attributes:
        max_workers: Background worker threads for label resolution.
        missing_dependency_policy: What to do when a dependency is absent from
            an already-resolved mapping during the source path walk. ``skip``
            drops the subtree and warns; ``fail`` aborts the extraction.
        startup_options_key: OptionSet entry passed as startup options to the
            workspace index.
        build_options_key: OptionSet entry passed as build options.
        sort_source_paths: Whether derived source path filters are sorted
            by path (otherwise discovery order).
    """

    max_workers: int = Field(default=4, ge=1, le=64)
    missing_dependency_policy: MissingDependencyPolicy = "skip"
    startup_options_key: str = OptionKey.STARTUP_OPTIONS_DEBUG
    build_options_key: str = OptionKey.BUILD_OPTIONS_DEBUG
    sort_source_paths: bool = True

    model_config = {"extra": "forbid"}

    @field_validator("startup_options_key", "build_options_key")
    @classmethod
    def validate_option_key(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Option keys must be non-empty")
        return v

    @classmethod
    def default(cls) -> "EngineConfig":
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EngineConfig":
        """Build from a parsed mapping; an ``[engine]`` table is unwrapped."""
        if not data:
            return cls()
        if "engine" in data and isinstance(data["engine"], dict):
            data = data["engine"]
        return cls.model_validate(data)


__all__ = ["EngineConfig", "MissingDependencyPolicy"]
