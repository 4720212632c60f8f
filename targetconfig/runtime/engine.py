"""Generator configuration engine.

``GeneratorConfigEngine`` holds one generator configuration: the selectable
rules, the derived source path filters, labels restored from disk that are
still waiting for a live rule, and the processing state that tells a UI
whether the configuration is ready to use.

Every state change happens on the engine's ``ControllingContext``. Public
methods may be called from any thread; they marshal onto the context and
either wait (cheap operations) or return a ``Future`` (operations that query
the workspace index, which run on the ``BackgroundWorker``). The dispatch
pattern for background work is always:

    controlling context: task_started, capture inputs
    background worker:   resolve / walk / write
    controlling context: apply result, publish event, task_finished
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Set, Tuple

from targetconfig.config import EngineConfig
from targetconfig.errors import (
    ConfigNotSaveable,
    MissingRequiredField,
    WrongThreadError,
)
from targetconfig.rules.labels import BuildLabel, as_label, as_labels
from targetconfig.rules.schema import (
    ConfigurationSnapshot,
    OptionSet,
    RuleDescriptor,
    SelectableRule,
    SourcePathFilter,
)
from targetconfig.rules.selection import RuleSelection
from targetconfig.runtime.assembler import assemble
from targetconfig.runtime.context import ControllingContext
from targetconfig.runtime.eventbus import (
    BusyChanged,
    EventBus,
    RulesReplaced,
    SelectionChanged,
    SourcePathsUpdated,
)
from targetconfig.runtime.extractor import ExtractionResult, SourcePathExtractor
from targetconfig.runtime.generator import ProjectGenerator, generate_project_in_folder
from targetconfig.runtime.messages import LoggingMessageSink, MessageSink
from targetconfig.runtime.resolver import LabelResolver, ResolutionResult
from targetconfig.runtime.rule_index import RuleIndex
from targetconfig.runtime.tracker import ProcessingStateTracker
from targetconfig.runtime.worker import BackgroundWorker, Task, TaskResult
from targetconfig.storage.config_store import ConfigStore, PersistedConfig

logger = logging.getLogger("targetconfig.engine")

GENERATION_FAILED = "General project generation failure: {details}"
SAVE_FAILED = "Config save failed: {details}"
SOURCE_PATHS_FAILED = "Source path update failed: {details}"
LABEL_RESTORE_FAILED = "Label restoration failed: {details}"


@dataclass(frozen=True)
class SourcePathUpdate:
    """Result of ``update_source_paths``.

    ``applied`` is False when a newer request superseded this one; its
    filters were then discarded and the engine state is unchanged.
    """

    generation: int
    filters: Tuple[SourcePathFilter, ...]
    unresolved: Tuple[BuildLabel, ...]
    missing_dependencies: Tuple[BuildLabel, ...]
    applied: bool


class GeneratorConfigEngine:
    """One generator configuration and its in-flight resolution work."""

    def __init__(
        self,
        rule_index: RuleIndex,
        *,
        project_name: Optional[str] = None,
        options: Optional[OptionSet] = None,
        config: Optional[EngineConfig] = None,
        messages: Optional[MessageSink] = None,
        store: Optional[ConfigStore] = None,
        events: Optional[EventBus] = None,
        save_folder: Optional[Path] = None,
        additional_file_paths: Optional[Sequence[str]] = None,
        bazel_url: Optional[str] = None,
        config_name: Optional[str] = None,
    ) -> None:
        self.config = config or EngineConfig.default()
        self.messages: MessageSink = messages or LoggingMessageSink()
        self.store = store or ConfigStore()
        self.events = events or EventBus()

        self.project_name = project_name
        self.options = options
        self.save_folder = Path(save_folder) if save_folder is not None else None
        self.additional_file_paths = (
            list(additional_file_paths) if additional_file_paths is not None else None
        )
        self.bazel_url = bazel_url
        self._config_name = config_name
        self._edited = False

        self._context = ControllingContext()
        self._worker = BackgroundWorker(self.config.max_workers)
        self._tracker = ProcessingStateTracker(on_busy_changed=self._publish_busy)
        self._selection = RuleSelection()
        self._source_paths: List[SourcePathFilter] = []
        self._pending_labels: Optional[List[BuildLabel]] = None
        self._generation = 0
        # Persisted filters list only included paths until the first recompute.
        self._persisted_baseline = False

        self.resolver = LabelResolver(
            rule_index, self.config, self.messages, context=self._context
        )
        self.extractor = SourcePathExtractor(self.resolver, self.config, self.messages)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_project_rules(
        cls,
        rule_infos: Sequence[RuleDescriptor],
        option_set: OptionSet,
        project_name: str,
        save_folder: Path,
        rule_index: RuleIndex,
        messages: Optional[MessageSink] = None,
        additional_file_paths: Optional[Sequence[str]] = None,
        bazel_url: Optional[str] = None,
        name: Optional[str] = None,
        **kwargs: Any,
    ) -> "GeneratorConfigEngine":
        """Create a new configuration over a live rule set."""
        engine = cls(
            rule_index,
            project_name=project_name,
            options=option_set,
            messages=messages,
            save_folder=save_folder,
            additional_file_paths=additional_file_paths,
            bazel_url=bazel_url,
            config_name=name,
            **kwargs,
        )
        engine.set_project_rules(rule_infos)
        return engine

    @classmethod
    def from_persisted(
        cls,
        path: Path,
        rule_index: RuleIndex,
        messages: Optional[MessageSink] = None,
        bazel_url: Optional[str] = None,
        store: Optional[ConfigStore] = None,
        wait: bool = True,
        **kwargs: Any,
    ) -> "GeneratorConfigEngine":
        """Load a persisted configuration and resolve its build-target labels.

        Labels that do not resolve stay pending and produce one warning.

        Args:
            path: Configuration file.
            rule_index: Workspace rule index used for resolution.
            messages: Message sink.
            bazel_url: Overrides the persisted build-tool URL when given.
            store: Store used to read the file.
            wait: Block until label resolution finished.

        Raises:
            ConfigNotLoadable: If the file cannot be read.
            ExternalQueryUnavailable: If ``wait`` and the index is unreachable.
        """
        path = Path(path)
        store = store or ConfigStore()
        persisted = store.load(path)

        engine = cls(rule_index, messages=messages, store=store, save_folder=path.parent, **kwargs)
        engine.load_persisted(persisted, name=path.stem)
        if bazel_url is not None:
            engine.bazel_url = bazel_url

        resolution = engine.resolve_label_references()
        if wait:
            try:
                resolution.result()
            except Exception:
                engine.close()
                raise
        return engine

    def load_persisted(self, persisted: PersistedConfig, name: Optional[str] = None) -> None:
        """Seed state from a persisted configuration.

        Build-target labels become pending; path filters are all selected. The
        persisted filters are the complete set of included paths, so the first
        recompute afterwards adds any other path unselected.
        """

        def _apply() -> None:
            self.project_name = persisted.project_name
            self.options = persisted.option_set()
            self.additional_file_paths = (
                list(persisted.additional_file_paths)
                if persisted.additional_file_paths is not None
                else None
            )
            self.bazel_url = persisted.bazel_url
            self._pending_labels = as_labels(persisted.build_target_labels) or None
            self._source_paths = [
                SourcePathFilter(path=path, selected=True)
                for path in dict.fromkeys(persisted.path_filters)
                if path
            ]
            self._persisted_baseline = bool(self._source_paths)
            if name is not None:
                self._config_name = name
            self._edited = False

        self._context.run(_apply)

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._tracker.busy

    @property
    def rules_loaded(self) -> bool:
        return self._tracker.rules_loaded

    @property
    def edited(self) -> bool:
        return self._edited

    @property
    def config_name(self) -> Optional[str]:
        return self._config_name

    @config_name.setter
    def config_name(self, value: Optional[str]) -> None:
        self._config_name = value
        self._edited = True

    @property
    def rules(self) -> List[SelectableRule]:
        return self._context.run(lambda: self._selection.rules)

    @property
    def selected_rules(self) -> List[SelectableRule]:
        return self._context.run(lambda: self._selection.selected_rules)

    @property
    def selected_rule_count(self) -> int:
        return self._context.run(lambda: self._selection.selected_count)

    @property
    def source_paths(self) -> List[SourcePathFilter]:
        return self._context.run(self._copy_source_paths)

    def _copy_source_paths(self) -> List[SourcePathFilter]:
        return [SourcePathFilter(f.path, f.selected) for f in self._source_paths]

    @property
    def selected_source_filters(self) -> Set[str]:
        return self._context.run(
            lambda: {f.path for f in self._source_paths if f.selected}
        )

    @property
    def pending_labels(self) -> Optional[List[BuildLabel]]:
        def _read() -> Optional[List[BuildLabel]]:
            return list(self._pending_labels) if self._pending_labels is not None else None

        return self._context.run(_read)

    def is_consistent(self) -> bool:
        """Whether the selected-rule count agrees with the selection flags."""
        return self._context.run(self._selection.is_consistent)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def set_project_rules(self, descriptors: Sequence[RuleDescriptor]) -> List[SelectableRule]:
        """Replace the available rules, preserving selection by label.

        Pending labels restored from disk that match an incoming rule are
        selected and leave the pending set.
        """
        return self._context.run(self._apply_project_rules, list(descriptors))

    def _apply_project_rules(self, descriptors: List[RuleDescriptor]) -> List[SelectableRule]:
        pending = list(self._pending_labels or ())
        rules = self._selection.replace(descriptors, also_selected=pending)

        if pending:
            incoming = {descriptor.label for descriptor in descriptors}
            remaining = [label for label in pending if label not in incoming]
            if len(remaining) != len(pending):
                logger.info(
                    "Matched %d pending labels against the project rule set",
                    len(pending) - len(remaining),
                )
            self._pending_labels = remaining or None

        if descriptors:
            self._tracker.mark_rules_loaded()
        self.events.publish(
            RulesReplaced(rule_count=len(rules), selected_count=self._selection.selected_count)
        )
        return rules

    def set_rule_selected(self, label: "BuildLabel | str", selected: bool) -> bool:
        """Select or deselect one rule.

        Returns:
            bool: True if the selection changed.

        Raises:
            KeyError: If no rule carries ``label``.
        """
        event = SelectionChanged(label=as_label(label), selected=bool(selected))
        return self._context.run(self._apply_selection_change, event)

    def toggle_rule(self, label: "BuildLabel | str") -> bool:
        """Flip one rule's selection and return the new state."""

        def _toggle() -> bool:
            rule = self._selection.get(label)
            if rule is None:
                raise KeyError(f"No selectable rule for label {label}")
            selected = not rule.selected
            self._apply_selection_change(SelectionChanged(label=rule.label, selected=selected))
            return selected

        return self._context.run(_toggle)

    def set_source_path_selected(self, path: str, selected: bool) -> bool:
        """Include or exclude one source path filter.

        Returns:
            bool: True if the flag changed.

        Raises:
            KeyError: If no filter has ``path``.
        """

        def _set() -> bool:
            for path_filter in self._source_paths:
                if path_filter.path == path:
                    if path_filter.selected == selected:
                        return False
                    path_filter.selected = selected
                    self._edited = True
                    return True
            raise KeyError(f"No source path filter for {path}")

        return self._context.run(_set)

    def _apply_selection_change(self, event: SelectionChanged) -> bool:
        changed = self._selection.apply(event)
        if changed:
            self._edited = True
            self.events.publish(event)
        return changed

    # ------------------------------------------------------------------
    # Background operations
    # ------------------------------------------------------------------

    def update_source_paths(
        self, callback: Optional[Callable[[List[SourcePathFilter]], None]] = None
    ) -> "Future[SourcePathUpdate]":
        """Recompute source path filters for the current selection.

        Existing filters stay in place until the new result is applied.
        Only the most recent request is applied; older results come back
        with ``applied=False`` and do not invoke ``callback``.

        Args:
            callback: Invoked on the controlling context with the applied
                filters.
        """

        def _begin(result: Future) -> None:
            if self.options is None:
                raise MissingRequiredField("options")
            self._generation += 1
            generation = self._generation
            prior = {f.path: f.selected for f in self._source_paths}
            new_path_selected = not self._persisted_baseline
            labels = self._selection.selected_labels
            options = self.options.model_copy(deep=True)

            def _apply(extraction: ExtractionResult) -> SourcePathUpdate:
                return self._apply_source_paths(generation, extraction, callback)

            self._run_background(
                f"source-paths-{generation}",
                lambda: self.extractor.extract(labels, prior, options, new_path_selected),
                _apply,
                result,
                failure_message=SOURCE_PATHS_FAILED,
            )

        return self._start(_begin, failure_message=SOURCE_PATHS_FAILED)

    def _apply_source_paths(
        self,
        generation: int,
        extraction: ExtractionResult,
        callback: Optional[Callable[[List[SourcePathFilter]], None]],
    ) -> SourcePathUpdate:
        applied = generation == self._generation
        if applied:
            self._source_paths = [SourcePathFilter(f.path, f.selected) for f in extraction.filters]
            self._persisted_baseline = False
            self.events.publish(
                SourcePathsUpdated(
                    generation=generation,
                    paths=extraction.paths,
                    unresolved=extraction.unresolved,
                )
            )
            if callback is not None:
                callback(self._copy_source_paths())
        else:
            logger.info(
                "Discarding stale source path result (generation %d, latest %d)",
                generation,
                self._generation,
            )
        return SourcePathUpdate(
            generation=generation,
            filters=extraction.filters,
            unresolved=extraction.unresolved,
            missing_dependencies=extraction.missing_dependencies,
            applied=applied,
        )

    def resolve_label_references(self) -> "Future[ResolutionResult]":
        """Resolve pending labels restored from a persisted configuration.

        Resolved rules join the selectable rules, selected. Labels that do
        not resolve stay pending; the pending set is cleared once empty.
        """

        def _begin(result: Future) -> None:
            labels = list(self._pending_labels or ())
            if not labels:
                self._pending_labels = None
                result.set_result(ResolutionResult())
                return
            if self.options is None:
                raise MissingRequiredField("options")
            options = self.options.model_copy(deep=True)

            self._run_background(
                "resolve-labels",
                lambda: self.resolver.resolve(labels, options),
                self._apply_label_resolution,
                result,
                failure_message=LABEL_RESTORE_FAILED,
            )

        return self._start(_begin, failure_message=LABEL_RESTORE_FAILED)

    def _apply_label_resolution(self, resolution: ResolutionResult) -> ResolutionResult:
        resolved = list(resolution.resolved)
        if resolved:
            known = {rule.label for rule in self._selection}
            merged = [rule.descriptor for rule in self._selection]
            merged.extend(d for d in resolved if d.label not in known)
            self._selection.replace(merged, also_selected=[d.label for d in resolved])
            self._tracker.mark_rules_loaded()
            self.events.publish(
                RulesReplaced(
                    rule_count=len(self._selection),
                    selected_count=self._selection.selected_count,
                )
            )

        still_pending = set(resolution.unresolved)
        remaining = [label for label in self._pending_labels or () if label in still_pending]
        self._pending_labels = remaining or None
        return resolution

    def save(self, folder: Optional[Path] = None, name: Optional[str] = None) -> "Future[Path]":
        """Persist the current configuration.

        Args:
            folder: Destination folder; defaults to the engine's save folder.
            name: Configuration name; defaults to the current config name.

        Returns:
            Future[Path]: Resolves to the written file, or fails with
            ``ConfigNotSaveable``.
        """

        def _begin(result: Future) -> None:
            target_folder = Path(folder) if folder is not None else self.save_folder
            target_name = name or self._config_name
            if target_folder is None or not target_name:
                raise ConfigNotSaveable("Generator config has no name or save folder")
            try:
                snapshot = self._assemble()
            except MissingRequiredField as e:
                raise ConfigNotSaveable(str(e)) from e

            def _apply(path: Path) -> Path:
                self._config_name = target_name
                self._edited = False
                return path

            self._run_background(
                f"save-{target_name}",
                lambda: self.store.save(snapshot, target_folder, target_name),
                _apply,
                result,
                failure_message=SAVE_FAILED,
                failure_level="warning",
            )

        return self._start(_begin, failure_message=SAVE_FAILED, failure_level="warning")

    # ------------------------------------------------------------------
    # Assembly and generation
    # ------------------------------------------------------------------

    def make_config(self) -> ConfigurationSnapshot:
        """Assemble a snapshot of the current configuration.

        Raises:
            MissingRequiredField: If the project name or options are absent.
        """
        return self._context.run(self._assemble)

    def _assemble(self) -> ConfigurationSnapshot:
        return assemble(
            self.project_name,
            self._selection.selected_descriptors,
            [f.path for f in self._source_paths if f.selected],
            self.additional_file_paths,
            self.options,
            self.bazel_url,
        )

    def generate_project(
        self,
        output_folder: Path,
        workspace_root: Path,
        generator: ProjectGenerator,
    ) -> Optional[Path]:
        """Generate a project for the current configuration.

        Blocks while the generator runs, so it must not be called on the
        controlling context. Failures are reported through the message sink.

        Returns:
            Optional[Path]: The generated project, or None on failure.
        """
        if self._context.is_current():
            raise WrongThreadError("Project generation must not run on the controlling context")

        try:
            snapshot = self.make_config()
        except MissingRequiredField:
            self.messages.error(
                GENERATION_FAILED.format(details="Generator config is not fully populated.")
            )
            return None

        result = generate_project_in_folder(generator, output_folder, snapshot, workspace_root)
        if result.success:
            return result.project_path
        self.messages.error(GENERATION_FAILED.format(details=result.error))
        return None

    # ------------------------------------------------------------------
    # Dispatch helpers
    # ------------------------------------------------------------------

    def _start(
        self,
        begin: Callable[[Future], None],
        failure_message: str,
        failure_level: str = "error",
    ) -> Future:
        """Run ``begin`` on the controlling context with a fresh result future."""
        result: Future = Future()
        result.set_running_or_notify_cancel()

        def _guarded() -> None:
            try:
                begin(result)
            except Exception as e:  # pylint: disable=broad-exception-caught
                self._report(failure_message, failure_level, e)
                result.set_exception(e)

        self._context.submit(_guarded)
        return result

    def _run_background(
        self,
        task_id: str,
        func: Callable[[], Any],
        apply: Callable[[Any], Any],
        result: Future,
        failure_message: str,
        failure_level: str = "error",
    ) -> None:
        """Run ``func`` on the worker and ``apply`` its value on the context.

        Must be called on the controlling context. The task count taken here
        is released on every path.
        """
        self._context.assert_current()
        self._tracker.task_started()

        def _finish(task_result: TaskResult) -> None:
            value: Any = None
            error: Optional[BaseException] = None
            try:
                if task_result.success:
                    value = apply(task_result.result)
                else:
                    error = task_result.error
                    self._report(failure_message, failure_level, error)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.error("Applying result of %s failed: %s", task_id, e, exc_info=True)
                error = e
            finally:
                # Released before the caller's future resolves.
                self._tracker.task_finished()

            if error is not None:
                result.set_exception(error)
            else:
                result.set_result(value)

        try:
            background = self._worker.submit(Task(task_id=task_id, func=func))
        except RuntimeError:
            self._tracker.task_finished()
            raise
        background.add_done_callback(
            lambda done: self._context.submit(_finish, done.result())
        )

    def _report(self, template: str, level: str, error: Optional[BaseException]) -> None:
        message = template.format(details=error)
        if level == "warning":
            self.messages.warning(message)
        else:
            self.messages.error(message)

    def _publish_busy(self, busy: bool) -> None:
        self.events.publish(BusyChanged(busy=busy))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Finish in-flight work and stop the executors."""
        self._worker.shutdown(wait=True)
        self._context.shutdown(wait=True)

    def __enter__(self) -> "GeneratorConfigEngine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["GeneratorConfigEngine", "SourcePathUpdate"]
