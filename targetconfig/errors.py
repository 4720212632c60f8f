"""Error taxonomy for the configuration engine.

Recoverable conditions (a label that does not resolve) are folded into a
best-effort result plus a warning. Everything else aborts only the
operation that raised it.
"""

from __future__ import annotations

from typing import Iterable, Tuple


class ConfigEngineError(Exception):
    """Base class for all engine errors."""

    pass


# =============================================================================
# Recoverable errors
# =============================================================================


class RecoverableError(ConfigEngineError):
    """Base class for conditions that degrade a result instead of failing it."""

    pass


class PartialResolutionFailure(RecoverableError):
    """One or more labels did not resolve against the workspace index.

    Never raised out of the engine; instances are built to format the
    warning text and to carry the unresolved labels to callers.
    """

    def __init__(self, unresolved: Iterable[object]) -> None:
        self.unresolved: Tuple[str, ...] = tuple(sorted(str(label) for label in unresolved))
        super().__init__(f"Missing labels: {', '.join(self.unresolved)}")


# =============================================================================
# Fatal errors
# =============================================================================


class MissingRequiredField(ConfigEngineError):
    """Configuration assembly attempted without a required field."""

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"Generator config is missing required field '{field_name}'")


class GraphInvariantViolation(ConfigEngineError):
    """A dependency label was absent from an already-resolved mapping."""

    def __init__(self, rule_label: object, missing_labels: Iterable[object]) -> None:
        self.rule_label = str(rule_label)
        self.missing_labels: Tuple[str, ...] = tuple(sorted(str(label) for label in missing_labels))
        super().__init__(
            f"Rule dependencies must already be loaded: {self.rule_label} -> "
            f"{', '.join(self.missing_labels)}"
        )


class ExternalQueryUnavailable(ConfigEngineError):
    """The workspace rule index could not be queried."""

    pass


class GenerationFailure(ConfigEngineError):
    """The downstream project generator reported a failure."""

    pass


class UnsupportedTargetType(GenerationFailure):
    """The generator cannot emit a rule of the given type."""

    def __init__(self, target_type: str) -> None:
        self.target_type = target_type
        super().__init__(f"Unsupported target type: {target_type}")


class SerializationFailed(GenerationFailure):
    """The generator failed to serialize the project description."""

    def __init__(self, details: str) -> None:
        self.details = details
        super().__init__(details)


class ConfigNotSaveable(ConfigEngineError):
    """The configuration could not be assembled or written."""

    pass


class ConfigNotLoadable(ConfigEngineError):
    """A persisted configuration is missing or malformed."""

    pass


# =============================================================================
# Programming errors
# =============================================================================


class TaskAccountingError(RuntimeError):
    """Processing task count would become negative."""

    pass


class WrongThreadError(RuntimeError):
    """A call was made from a thread that is not allowed to make it."""

    pass


__all__ = [
    "ConfigEngineError",
    "RecoverableError",
    "PartialResolutionFailure",
    "MissingRequiredField",
    "GraphInvariantViolation",
    "ExternalQueryUnavailable",
    "GenerationFailure",
    "UnsupportedTargetType",
    "SerializationFailed",
    "ConfigNotSaveable",
    "ConfigNotLoadable",
    "TaskAccountingError",
    "WrongThreadError",
]
