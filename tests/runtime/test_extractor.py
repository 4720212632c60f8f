"""Tests for source path extraction over the dependency graph."""

import logging

import pytest

from targetconfig.config import EngineConfig
from targetconfig.errors import GraphInvariantViolation
from targetconfig.rules.labels import BuildLabel
from targetconfig.runtime.extractor import (
    SourcePathExtractor,
    build_dependency_graph,
    source_directory,
)
from targetconfig.runtime.resolver import LabelResolver


def _extractor(index, config=None, sink=None):
    config = config or EngineConfig()
    return SourcePathExtractor(LabelResolver(index, config, sink), config, sink)


@pytest.mark.parametrize(
    "source, expected",
    [
        ("lib/a/a.cc", "lib/a"),
        ("main.cc", ""),
        ("", ""),
        ("deep/er/path/x.h", "deep/er/path"),
    ],
)
def test_source_directory(source: str, expected: str) -> None:
    assert source_directory(source) == expected


def test_extract_covers_transitive_closure(fake_index, options) -> None:
    """Every directory of every reachable source file appears exactly once."""
    result = _extractor(fake_index).extract(["//app:main"], {}, options)

    assert list(result.paths) == ["app", "base", "base/util", "lib/a", "lib/b"]
    assert all(f.selected for f in result.filters)
    assert result.visited_rules == 4
    assert result.unresolved == ()


def test_unsorted_order_is_dependencies_first(fake_index, options) -> None:
    config = EngineConfig(sort_source_paths=False)
    result = _extractor(fake_index, config).extract(["//app:main"], {}, options)

    assert list(result.paths) == ["base", "base/util", "lib/a", "lib/b", "app"]


def test_prior_selection_is_preserved(fake_index, options) -> None:
    """Known paths keep their flag; new paths start selected; stale ones vanish."""
    prior = {"lib/a": False, "base": True, "no/longer/there": False}
    result = _extractor(fake_index).extract(["//app:main"], prior, options)

    assert result.selection_map() == {
        "app": True,
        "base": True,
        "base/util": True,
        "lib/a": False,
        "lib/b": True,
    }


def test_unresolved_selection_is_reported(fake_index, options, sink) -> None:
    result = _extractor(fake_index, sink=sink).extract(["//nope:x", "//lib/b:b"], {}, options)

    assert [str(label) for label in result.unresolved] == ["//nope:x"]
    assert list(result.paths) == ["base", "base/util", "lib/b"]
    assert len(sink.warnings) == 1


def test_nothing_selected_yields_no_filters(fake_index, options) -> None:
    result = _extractor(fake_index).extract([], {"app": True}, options)
    assert result.filters == ()


def test_missing_dependency_is_skipped_with_one_warning(
    fake_index_factory, make_rule, options, sink
) -> None:
    index = fake_index_factory(
        [
            make_rule("//app:main", deps=["//ghost:g", "//lib:lib"], sources=["app/m.cc"]),
            make_rule("//lib:lib", deps=["//ghost:h"], sources=["lib/l.cc"]),
        ]
    )
    result = _extractor(index, sink=sink).extract(["//app:main"], {}, options)

    assert list(result.paths) == ["app", "lib"]
    assert [str(label) for label in result.missing_dependencies] == ["//ghost:g", "//ghost:h"]
    assert sink.warnings == [
        "Skipped unresolved rule dependencies: //app:main -> //ghost:g; //lib:lib -> //ghost:h"
    ]


def test_missing_dependency_fails_under_fail_policy(fake_index_factory, make_rule, options) -> None:
    index = fake_index_factory([make_rule("//app:main", deps=["//ghost:g"], sources=["app/m.cc"])])
    config = EngineConfig(missing_dependency_policy="fail")

    with pytest.raises(GraphInvariantViolation) as excinfo:
        _extractor(index, config).extract(["//app:main"], {}, options)

    assert excinfo.value.rule_label == "//app:main"
    assert excinfo.value.missing_labels == ("//ghost:g",)


def test_cycle_is_walked_once(fake_index_factory, make_rule, options, caplog) -> None:
    index = fake_index_factory(
        [
            make_rule("//a:a", deps=["//b:b"], sources=["a/a.cc"]),
            make_rule("//b:b", deps=["//a:a"], sources=["b/b.cc"]),
        ]
    )
    with caplog.at_level(logging.WARNING, logger="targetconfig.runtime.extractor"):
        result = _extractor(index).extract(["//a:a"], {}, options)

    assert list(result.paths) == ["a", "b"]
    assert result.visited_rules == 2
    assert "Dependency cycle" in caplog.text


def test_build_dependency_graph_visits_shared_dependency_once(workspace_rules) -> None:
    mapping = {d.label: d for d in workspace_rules}
    graph, missing = build_dependency_graph([mapping[BuildLabel("//app:main")]], mapping)

    assert missing == {}
    assert set(graph.nodes) == {
        BuildLabel("//app:main"),
        BuildLabel("//lib/a:a"),
        BuildLabel("//lib/b:b"),
        BuildLabel("//base:base"),
    }
    assert graph.in_degree(BuildLabel("//base:base")) == 2


def test_extraction_is_idempotent(fake_index, options) -> None:
    """Same selection and same prior filters give the same filters and flags."""
    extractor = _extractor(fake_index)
    first = extractor.extract(["//app:main"], {"lib/a": False}, options)
    second = extractor.extract(["//app:main"], first.selection_map(), options)

    assert [(f.path, f.selected) for f in first.filters] == [
        (f.path, f.selected) for f in second.filters
    ]


def test_new_path_flag_can_default_to_unselected(fake_index, options) -> None:
    result = _extractor(fake_index).extract(
        ["//lib/b:b"], {"lib/b": True}, options, new_path_selected=False
    )

    assert result.selection_map() == {"base": False, "base/util": False, "lib/b": True}
