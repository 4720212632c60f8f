"""Project generator boundary.

The generator itself lives outside this package; the engine hands it a
``ConfigurationSnapshot`` and reports its outcome as a ``GenerationResult``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from targetconfig.errors import SerializationFailed, UnsupportedTargetType
from targetconfig.rules.schema import ConfigurationSnapshot

logger = logging.getLogger("targetconfig.runtime.generator")


class ProjectGenerator(Protocol):
    """Emits a project description for a configuration snapshot."""

    def generate(
        self,
        snapshot: ConfigurationSnapshot,
        output_folder: Path,
        workspace_root: Path,
    ) -> Path:
        """Write the project and return its location.

        Raises:
            UnsupportedTargetType: For a rule type the generator cannot emit.
            SerializationFailed: When writing the project fails.
        """
        ...


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a generation attempt: a project path or an error string."""

    project_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.project_path is not None

    @classmethod
    def succeeded(cls, project_path: Path) -> "GenerationResult":
        return cls(project_path=project_path)

    @classmethod
    def failed(cls, error: str) -> "GenerationResult":
        return cls(error=error)


def generate_project_in_folder(
    generator: ProjectGenerator,
    output_folder: Path,
    snapshot: ConfigurationSnapshot,
    workspace_root: Path,
) -> GenerationResult:
    """Run ``generator`` and fold its failures into a ``GenerationResult``."""
    try:
        project_path = generator.generate(snapshot, Path(output_folder), Path(workspace_root))
        logger.info("Generated project %s at %s", snapshot.project_name, project_path)
        return GenerationResult.succeeded(Path(project_path))
    except UnsupportedTargetType as e:
        error_info = f"Unsupported target type: {e.target_type}"
    except SerializationFailed as e:
        error_info = f"General failure: {e.details}"
    except Exception:  # pylint: disable=broad-exception-caught
        logger.error("Project generator raised unexpectedly", exc_info=True)
        error_info = "Unexpected failure"
    return GenerationResult.failed(error_info)


__all__ = ["ProjectGenerator", "GenerationResult", "generate_project_in_folder"]
