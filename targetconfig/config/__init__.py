"""Configuration schema and validation for targetconfig."""

from .schema import EngineConfig, MissingDependencyPolicy

__all__ = [
    "EngineConfig",
    "MissingDependencyPolicy",
]
