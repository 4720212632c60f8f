"""Tests for rule and configuration models."""

import pytest
from pydantic import ValidationError

from targetconfig.rules.labels import BuildLabel
from targetconfig.rules.schema import (
    ConfigurationSnapshot,
    OptionSet,
    RuleDescriptor,
    SelectableRule,
    SourcePathFilter,
)


def test_descriptor_coerces_labels() -> None:
    descriptor = RuleDescriptor(
        label="//a:a",
        rule_type="cc_library",
        dependency_labels=["//b:b"],
        source_files=["a/a.cc"],
    )
    assert descriptor.label == BuildLabel("//a:a")
    assert descriptor.dependency_labels == (BuildLabel("//b:b"),)
    assert descriptor.to_dict()["dependency_labels"] == ["//b:b"]


def test_descriptor_requires_rule_type() -> None:
    with pytest.raises(ValidationError):
        RuleDescriptor(label="//a:a", rule_type="")


def test_descriptor_is_immutable(make_rule) -> None:
    descriptor = make_rule("//a:a")
    with pytest.raises(ValidationError):
        descriptor.rule_type = "cc_binary"


def test_selectable_rule_display(make_rule) -> None:
    selectable = SelectableRule(make_rule("//app:main", rule_type="cc_binary"))
    assert not selectable.selected
    assert selectable.full_label == "//app:main"
    assert selectable.display_label == "//app:main (cc_binary)"


def test_source_path_filter_requires_path() -> None:
    with pytest.raises(ValueError):
        SourcePathFilter(path="")
    assert SourcePathFilter(path="lib/a").selected


def test_option_set_user_values_win() -> None:
    options = OptionSet(values={"k": "shared", "only": "x"}, user_values={"k": "mine"})
    assert options.get("k") == "mine"
    assert options["only"] == "x"
    assert options.get("missing", "dflt") == "dflt"


def test_snapshot_requires_project_name() -> None:
    with pytest.raises(ValidationError):
        ConfigurationSnapshot(project_name="", options=OptionSet())


def test_snapshot_sorted_filters(make_rule) -> None:
    snapshot = ConfigurationSnapshot(
        project_name="App",
        build_targets=(make_rule("//a:a"),),
        path_filters=frozenset({"z", "a/b", "a"}),
        options=OptionSet(),
    )
    assert snapshot.sorted_path_filters() == ["a", "a/b", "z"]
    assert snapshot.build_target_labels == [BuildLabel("//a:a")]
