"""Tests for generator config persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from targetconfig.errors import ConfigNotLoadable, ConfigNotSaveable
from targetconfig.rules.schema import OptionSet
from targetconfig.runtime.assembler import assemble
from targetconfig.storage import (
    ConfigStore,
    config_path_for_name,
    is_generator_config_filename,
    sanitize_filename,
)
from targetconfig.storage.config_store import per_user_path


@pytest.fixture
def snapshot(make_rule):
    return assemble(
        "App",
        [make_rule("//b:b"), make_rule("//a:a")],
        ["z/dir", "a/dir"],
        ["notes.txt"],
        OptionSet(values={"BazelBuildOptionsDebug": "-c dbg"}, user_values={"Scheme": "mine"}),
        bazel_url="/opt/bazel",
    )


def test_save_writes_camel_case_json(snapshot, tmp_path: Path) -> None:
    path = ConfigStore().save(snapshot, tmp_path / "new", "App")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert path.name == "App.tulsigen"
    assert data["projectName"] == "App"
    assert data["buildTargets"] == ["//b:b", "//a:a"]
    assert data["pathFilters"] == ["a/dir", "z/dir"]
    assert data["additionalFilePaths"] == ["notes.txt"]
    assert data["options"] == {"BazelBuildOptionsDebug": "-c dbg"}
    assert data["bazelURL"] == "/opt/bazel"
    assert "user_options" not in data


def test_per_user_options_go_to_sibling_file(snapshot, tmp_path: Path) -> None:
    path = ConfigStore().save(snapshot, tmp_path, "App")
    user_file = per_user_path(path)

    assert user_file.name == "App.tulsigen.user"
    assert json.loads(user_file.read_text(encoding="utf-8")) == {"options": {"Scheme": "mine"}}


def test_empty_per_user_options_remove_stale_file(snapshot, tmp_path: Path) -> None:
    store = ConfigStore()
    path = store.save(snapshot, tmp_path, "App")
    shared_only = snapshot.model_copy(update={"options": OptionSet(values={"k": "v"})})

    store.save(shared_only, tmp_path, "App")

    assert path.exists()
    assert not per_user_path(path).exists()


def test_load_merges_user_options(snapshot, tmp_path: Path) -> None:
    store = ConfigStore()
    path = store.save(snapshot, tmp_path, "App")

    persisted = store.load(path)

    assert persisted.project_name == "App"
    assert persisted.build_target_labels == ["//b:b", "//a:a"]
    assert persisted.option_set() == snapshot.options


def test_load_missing_or_malformed(tmp_path: Path) -> None:
    store = ConfigStore()
    with pytest.raises(ConfigNotLoadable):
        store.load(tmp_path / "missing.tulsigen")

    bad = tmp_path / "bad.tulsigen"
    bad.write_text('{"buildTargets": []}', encoding="utf-8")
    with pytest.raises(ConfigNotLoadable):
        store.load(bad)


def test_save_without_name(snapshot, tmp_path: Path) -> None:
    with pytest.raises(ConfigNotSaveable):
        ConfigStore().save(snapshot, tmp_path, "")


def test_save_into_unwritable_location(snapshot, tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(ConfigNotSaveable):
        ConfigStore().save(snapshot, blocker / "sub", "App")


def test_filename_helpers(tmp_path: Path) -> None:
    assert sanitize_filename("My/App:Debug") == "My_App_Debug"
    assert config_path_for_name("My App", tmp_path) == tmp_path / "My App.tulsigen"
    assert config_path_for_name("App", None) is None
    assert is_generator_config_filename("App.tulsigen")
    assert not is_generator_config_filename("App.json")


def test_per_user_file_must_be_an_object(snapshot, tmp_path: Path) -> None:
    store = ConfigStore()
    path = store.save(snapshot, tmp_path, "App")

    per_user_path(path).write_text("[]", encoding="utf-8")
    with pytest.raises(ConfigNotLoadable):
        store.load(path)

    per_user_path(path).write_text('{"options": ["x"]}', encoding="utf-8")
    with pytest.raises(ConfigNotLoadable):
        store.load(path)
