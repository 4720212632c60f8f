"""Tests for selectable rule reconciliation and selected-count accounting."""

import pytest

from targetconfig.rules.labels import BuildLabel
from targetconfig.rules.selection import RuleSelection, reconcile_selection
from targetconfig.runtime.eventbus import SelectionChanged


def _labels(rules):
    return [str(r.label) for r in rules]


def test_reconcile_marks_only_known_labels(make_rule) -> None:
    """A rule is selected iff its label was selected before."""
    descriptors = [make_rule("//a:a"), make_rule("//b:b"), make_rule("//c:c")]
    rules = reconcile_selection(descriptors, {BuildLabel("//b:b"), BuildLabel("//zzz:gone")})

    assert _labels(rules) == ["//a:a", "//b:b", "//c:c"]
    assert [r.selected for r in rules] == [False, True, False]


def test_reconcile_keeps_first_duplicate(make_rule) -> None:
    first = make_rule("//a:a", rule_type="cc_library")
    second = make_rule("//a:a", rule_type="cc_binary")
    rules = reconcile_selection([first, second], set())

    assert len(rules) == 1
    assert rules[0].descriptor is first


def test_replace_carries_selection_over(make_rule) -> None:
    """Selections survive a rule set refresh; new rules start unselected."""
    selection = RuleSelection()
    selection.replace([make_rule("//a:a"), make_rule("//b:b"), make_rule("//c:c")])
    selection.apply(SelectionChanged(BuildLabel("//a:a"), True))
    selection.apply(SelectionChanged(BuildLabel("//c:c"), True))

    selection.replace([make_rule("//c:c"), make_rule("//d:d"), make_rule("//a:a")])

    assert _labels(selection) == ["//c:c", "//d:d", "//a:a"]
    assert [str(label) for label in selection.selected_labels] == ["//c:c", "//a:a"]
    assert selection.selected_count == 2
    assert selection.is_consistent()


def test_replace_with_extra_selected_labels(make_rule) -> None:
    selection = RuleSelection()
    selection.replace([make_rule("//a:a"), make_rule("//b:b")], also_selected=[BuildLabel("//b:b")])

    assert [str(r.label) for r in selection.selected_rules] == ["//b:b"]
    assert selection.selected_count == 1


def test_dropped_rules_lose_their_selection(make_rule) -> None:
    selection = RuleSelection()
    selection.replace([make_rule("//a:a"), make_rule("//b:b")], also_selected=[BuildLabel("//a:a")])
    selection.replace([make_rule("//b:b")])
    selection.replace([make_rule("//a:a"), make_rule("//b:b")])

    assert selection.selected_count == 0


def test_apply_updates_count_incrementally(make_rule) -> None:
    """Count tracks the flags over any toggle sequence."""
    selection = RuleSelection()
    selection.replace([make_rule("//a:a"), make_rule("//b:b")])
    toggles = [("//a:a", True), ("//a:a", True), ("//b:b", True), ("//a:a", False), ("//b:b", False), ("//b:b", True)]

    changes = []
    for label, selected in toggles:
        changes.append(selection.apply(SelectionChanged(BuildLabel(label), selected)))
        assert selection.is_consistent()

    assert changes == [True, False, True, True, True, True]
    assert selection.selected_count == 1


def test_apply_unknown_label_raises(make_rule) -> None:
    selection = RuleSelection()
    selection.replace([make_rule("//a:a")])

    with pytest.raises(KeyError):
        selection.apply(SelectionChanged(BuildLabel("//nope:nope"), True))


def test_contains_and_get_accept_strings(make_rule) -> None:
    selection = RuleSelection()
    selection.replace([make_rule("//a:a")])

    assert "//a:a" in selection
    assert BuildLabel("//b:b") not in selection
    assert selection.get("//a:a").display_label == "//a:a (cc_library)"
    assert selection.get("//b:b") is None


def test_returned_rules_cannot_change_selection(make_rule) -> None:
    """Flags only change through apply, so the count never drifts."""
    selection = RuleSelection()
    selection.replace([make_rule("//a:a"), make_rule("//b:b")], also_selected=[BuildLabel("//b:b")])

    selection.rules[0].selected = True
    selection.get("//b:b").selected = False
    for rule in selection:
        rule.selected = True

    assert [str(label) for label in selection.selected_labels] == ["//b:b"]
    assert selection.selected_count == 1
    assert selection.is_consistent()
