"""Shared fakes for the engine test suite."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import pytest

from targetconfig.rules.labels import BuildLabel
from targetconfig.rules.schema import ConfigurationSnapshot, OptionSet, RuleDescriptor
from targetconfig.runtime.rule_index import StaticRuleIndex


class RecordingSink:
    """Message sink that keeps every message."""

    def __init__(self) -> None:
        self.warnings: List[str] = []
        self.errors: List[str] = []
        self.infos: List[str] = []

    def warning(self, message: str) -> None:
        self.warnings.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def info(self, message: str) -> None:
        self.infos.append(message)


class FakeRuleIndex:
    """Static index that records queries and can fail or block on demand."""

    def __init__(self, descriptors: Iterable[RuleDescriptor]) -> None:
        self._index = StaticRuleIndex(descriptors)
        self.calls: List[Dict[str, object]] = []
        self.error: Optional[BaseException] = None
        self.gate: Optional[threading.Event] = None
        self.override: Optional[Mapping[BuildLabel, RuleDescriptor]] = None

    def rule_entries_for_labels(
        self,
        labels: Sequence[BuildLabel],
        startup_options: Optional[str] = None,
        build_options: Optional[str] = None,
    ) -> Mapping[BuildLabel, RuleDescriptor]:
        self.calls.append(
            {
                "labels": list(labels),
                "startup_options": startup_options,
                "build_options": build_options,
            }
        )
        gate = self.gate
        if gate is not None:
            assert gate.wait(timeout=5), "index gate never opened"
        if self.error is not None:
            raise self.error
        if self.override is not None:
            return dict(self.override)
        return self._index.rule_entries_for_labels(labels, startup_options, build_options)


class FakeGenerator:
    """Project generator returning a fixed path or raising a preset error."""

    def __init__(self, error: Optional[BaseException] = None) -> None:
        self.error = error
        self.snapshots: List[ConfigurationSnapshot] = []

    def generate(
        self,
        snapshot: ConfigurationSnapshot,
        output_folder: Path,
        workspace_root: Path,
    ) -> Path:
        self.snapshots.append(snapshot)
        if self.error is not None:
            raise self.error
        return Path(output_folder) / f"{snapshot.project_name}.xcodeproj"


def rule(
    label: str,
    deps: Sequence[str] = (),
    sources: Sequence[str] = (),
    rule_type: str = "cc_library",
) -> RuleDescriptor:
    """Build a rule descriptor from plain strings."""
    return RuleDescriptor(
        label=label,
        rule_type=rule_type,
        dependency_labels=tuple(deps),
        source_files=tuple(sources),
    )


@pytest.fixture
def make_rule() -> Callable[..., RuleDescriptor]:
    return rule


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def options() -> OptionSet:
    return OptionSet(
        values={
            "BazelBuildStartupOptionsDebug": "--batch",
            "BazelBuildOptionsDebug": "-c dbg",
        }
    )


@pytest.fixture
def workspace_rules() -> List[RuleDescriptor]:
    """Small workspace: an app depending on two libraries sharing a base."""
    return [
        rule("//app:main", deps=["//lib/a:a", "//lib/b:b"], sources=["app/main.cc"], rule_type="cc_binary"),
        rule("//lib/a:a", deps=["//base:base"], sources=["lib/a/a.cc", "lib/a/a.h"]),
        rule("//lib/b:b", deps=["//base:base"], sources=["lib/b/b.cc"]),
        rule("//base:base", sources=["base/base.cc", "base/util/strings.cc"]),
        rule("//tools:gen", sources=["tools/gen.py"], rule_type="py_binary"),
    ]


@pytest.fixture
def fake_index(workspace_rules) -> FakeRuleIndex:
    return FakeRuleIndex(workspace_rules)


@pytest.fixture
def fake_index_factory() -> Callable[[Iterable[RuleDescriptor]], FakeRuleIndex]:
    return FakeRuleIndex


@pytest.fixture
def fake_generator_factory() -> Callable[..., FakeGenerator]:
    return FakeGenerator
