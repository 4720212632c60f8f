"""Engine events.

One frozen dataclass per event kind; ``targetconfig.runtime.eventbus``
routes them to subscribers by class.
"""

from dataclasses import dataclass
from typing import Tuple

from targetconfig.rules.labels import BuildLabel


@dataclass(frozen=True)
class EngineEvent:
    """Base class for all engine events."""


@dataclass(frozen=True)
class SelectionChanged(EngineEvent):
    """A rule's selection flag was set by the user."""

    label: BuildLabel
    selected: bool


@dataclass(frozen=True)
class RulesReplaced(EngineEvent):
    """The selectable rule sequence was rebuilt from a new rule set."""

    rule_count: int
    selected_count: int


@dataclass(frozen=True)
class SourcePathsUpdated(EngineEvent):
    """A source path extraction result was applied."""

    generation: int
    paths: Tuple[str, ...]
    unresolved: Tuple[BuildLabel, ...] = ()


@dataclass(frozen=True)
class BusyChanged(EngineEvent):
    """The engine's busy signal flipped."""

    busy: bool


__all__ = [
    "EngineEvent",
    "SelectionChanged",
    "RulesReplaced",
    "SourcePathsUpdated",
    "BusyChanged",
]
