"""Public rule model surface."""

from targetconfig.rules.events import (
    BusyChanged,
    EngineEvent,
    RulesReplaced,
    SelectionChanged,
    SourcePathsUpdated,
)
from targetconfig.rules.labels import BuildLabel, as_label, as_labels
from targetconfig.rules.schema import (
    ConfigurationSnapshot,
    OptionKey,
    OptionSet,
    RuleDescriptor,
    SelectableRule,
    SourcePathFilter,
)
from targetconfig.rules.selection import RuleSelection, reconcile_selection

__all__ = [
    "BuildLabel",
    "BusyChanged",
    "EngineEvent",
    "RulesReplaced",
    "SelectionChanged",
    "SourcePathsUpdated",
    "ConfigurationSnapshot",
    "OptionKey",
    "OptionSet",
    "RuleDescriptor",
    "RuleSelection",
    "SelectableRule",
    "SourcePathFilter",
    "as_label",
    "as_labels",
    "reconcile_selection",
]
