"""Selectable rule sequence and selected-count accounting.

``RuleSelection`` owns the current sequence of ``SelectableRule`` objects.
Selection only changes through ``apply`` (one ``SelectionChanged`` event at
a time) or through ``replace`` when a new rule set arrives, so the running
selected count can never drift from the flags.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence

from targetconfig.rules.events import SelectionChanged
from targetconfig.rules.labels import BuildLabel, as_label
from targetconfig.rules.schema import RuleDescriptor, SelectableRule

logger = logging.getLogger("targetconfig.rules.selection")


def _detached(rule: SelectableRule) -> SelectableRule:
    return SelectableRule(descriptor=rule.descriptor, selected=rule.selected)


def reconcile_selection(
    descriptors: Sequence[RuleDescriptor],
    selected_labels: AbstractSet[BuildLabel],
) -> List[SelectableRule]:
    """Wrap descriptors into selectable rules, keeping prior selections.

    A rule is selected iff its label is in ``selected_labels``. Incoming
    order is preserved; a label appearing twice keeps its first descriptor.
    """
    seen = set()
    rules: List[SelectableRule] = []
    for descriptor in descriptors:
        if descriptor.label in seen:
            logger.debug("Dropping duplicate rule descriptor for %s", descriptor.label)
            continue
        seen.add(descriptor.label)
        rules.append(
            SelectableRule(descriptor=descriptor, selected=descriptor.label in selected_labels)
        )
    return rules


class RuleSelection:
    """The engine-owned sequence of selectable rules."""

    def __init__(self) -> None:
        self._rules: List[SelectableRule] = []
        self._by_label: Dict[BuildLabel, SelectableRule] = {}
        self._selected_count = 0

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self.rules)

    def __contains__(self, label: object) -> bool:
        if isinstance(label, str):
            label = BuildLabel(label)
        return label in self._by_label

    @property
    def rules(self) -> List[SelectableRule]:
        """Copies of the rules; flags only change through ``apply``."""
        return [_detached(rule) for rule in self._rules]

    @property
    def selected_count(self) -> int:
        return self._selected_count

    @property
    def selected_rules(self) -> List[SelectableRule]:
        """Selected rules in sequence order."""
        return [_detached(rule) for rule in self._rules if rule.selected]

    @property
    def selected_labels(self) -> List[BuildLabel]:
        return [rule.label for rule in self._rules if rule.selected]

    @property
    def selected_descriptors(self) -> List[RuleDescriptor]:
        return [rule.descriptor for rule in self._rules if rule.selected]

    def get(self, label: "BuildLabel | str") -> Optional[SelectableRule]:
        rule = self._by_label.get(as_label(label))
        return _detached(rule) if rule is not None else None

    def replace(
        self,
        descriptors: Sequence[RuleDescriptor],
        also_selected: Iterable[BuildLabel] = (),
    ) -> List[SelectableRule]:
        """Replace the rule sequence, carrying selection over by label.

        Args:
            descriptors: Incoming rule set.
            also_selected: Extra labels to mark selected, e.g. labels restored
                from a persisted configuration.

        Returns:
            List[SelectableRule]: The new sequence.
        """
        selected = set(self.selected_labels)
        selected.update(also_selected)
        self._install(reconcile_selection(descriptors, selected))
        logger.debug(
            "Rule set replaced: %d rules, %d selected",
            len(self._rules),
            self._selected_count,
        )
        return self.rules

    def apply(self, event: SelectionChanged) -> bool:
        """Apply a selection change.

        Returns:
            bool: True if the flag actually changed.

        Raises:
            KeyError: If no rule carries ``event.label``.
        """
        rule = self._by_label.get(event.label)
        if rule is None:
            raise KeyError(f"No selectable rule for label {event.label}")
        if rule.selected == event.selected:
            return False
        rule.selected = event.selected
        self._selected_count += 1 if event.selected else -1
        return True

    def is_consistent(self) -> bool:
        """Whether the running count matches the selection flags."""
        return self._selected_count == sum(1 for rule in self._rules if rule.selected)

    def _install(self, rules: List[SelectableRule]) -> None:
        # The previous sequence is dropped outright; nothing else references it.
        self._rules = rules
        self._by_label = {rule.label: rule for rule in rules}
        self._selected_count = sum(1 for rule in rules if rule.selected)


__all__ = ["reconcile_selection", "RuleSelection"]
