"""Source path extraction over the resolved dependency graph.

Given the selected rules, the extractor resolves their labels, builds the
reachable dependency graph as a ``networkx.DiGraph`` and walks it
depth-first (dependencies before dependents), turning every source file's
directory into one ``SourcePathFilter``. Each rule is visited once no matter
how many parents reference it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import networkx as nx
from networkx.exception import NetworkXNoCycle

from targetconfig.config import EngineConfig
from targetconfig.errors import GraphInvariantViolation
from targetconfig.rules.labels import BuildLabel
from targetconfig.rules.schema import OptionSet, RuleDescriptor, SourcePathFilter
from targetconfig.runtime.messages import MessageSink
from targetconfig.runtime.resolver import LabelResolver

logger = logging.getLogger("targetconfig.runtime.extractor")

# Synthetic node linking every root so one DFS covers the whole selection.
_ROOT = ("__selection_root__",)


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one source path extraction.

    Attributes:
        filters: Distinct source directories with their selection flags.
        unresolved: Selected labels the index did not know.
        missing_dependencies: Dependency labels absent from the resolved
            mapping (only populated under the ``skip`` policy).
        visited_rules: Number of distinct rules walked.
    """

    filters: Tuple[SourcePathFilter, ...] = ()
    unresolved: Tuple[BuildLabel, ...] = ()
    missing_dependencies: Tuple[BuildLabel, ...] = ()
    visited_rules: int = 0

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(f.path for f in self.filters)

    def selection_map(self) -> Dict[str, bool]:
        return {f.path: f.selected for f in self.filters}


def source_directory(source_file: str) -> str:
    """Directory part of ``source_file``; empty when it has none."""
    if not source_file:
        return ""
    parent = str(PurePosixPath(source_file).parent)
    return "" if parent == "." else parent


def build_dependency_graph(
    roots: Sequence[RuleDescriptor],
    mapping: Mapping[BuildLabel, RuleDescriptor],
    policy: str = "skip",
) -> Tuple[nx.DiGraph, Dict[BuildLabel, List[BuildLabel]]]:
    """Collect the rules reachable from ``roots`` into a graph.

    Edges point from a rule to its dependencies.

    Returns:
        The graph, and for each rule the dependency labels that were missing
        from ``mapping``.

    Raises:
        GraphInvariantViolation: Under the ``fail`` policy, on the first
            dependency missing from ``mapping``.
    """
    graph = nx.DiGraph()
    missing: Dict[BuildLabel, List[BuildLabel]] = defaultdict(list)
    visited = set()
    stack = [root.label for root in reversed(roots)]

    while stack:
        label = stack.pop()
        if label in visited:
            continue
        visited.add(label)
        descriptor = mapping[label]
        graph.add_node(label, descriptor=descriptor)

        for dep in descriptor.dependency_labels:
            if dep not in mapping:
                if policy == "fail":
                    raise GraphInvariantViolation(label, [dep])
                missing[label].append(dep)
                continue
            graph.add_edge(label, dep)
            if dep not in visited:
                stack.append(dep)

    return graph, dict(missing)


class SourcePathExtractor:
    """Derives source path filters for a rule selection."""

    def __init__(
        self,
        resolver: LabelResolver,
        config: Optional[EngineConfig] = None,
        messages: Optional[MessageSink] = None,
    ) -> None:
        self.resolver = resolver
        self.config = config or resolver.config
        self.messages = messages

    def extract(
        self,
        selected_labels: Iterable["BuildLabel | str"],
        prior_selection: Mapping[str, bool],
        options: OptionSet,
        new_path_selected: bool = True,
    ) -> ExtractionResult:
        """Resolve ``selected_labels`` and compute their source directories.

        Args:
            selected_labels: Labels of the selected rules.
            prior_selection: Selection flag per previously known path. Paths
                seen before keep their flag.
            options: Option set supplying the index query options.
            new_path_selected: Flag for paths absent from ``prior_selection``.

        Returns:
            ExtractionResult: Filters plus any unresolved/missing labels.

        Raises:
            ExternalQueryUnavailable: If the workspace index is unreachable.
            GraphInvariantViolation: Under the ``fail`` policy.
        """
        resolution = self.resolver.resolve(selected_labels, options)
        roots = resolution.resolved
        if not roots:
            return ExtractionResult(unresolved=resolution.unresolved)

        graph, missing = build_dependency_graph(
            roots, resolution.mapping, self.config.missing_dependency_policy
        )
        if missing:
            self._report_missing(missing)
        self._check_acyclic(graph)

        graph.add_node(_ROOT)
        graph.add_edges_from((_ROOT, root.label) for root in roots)

        filters: Dict[str, SourcePathFilter] = {}
        for label in nx.dfs_postorder_nodes(graph, source=_ROOT):
            if label is _ROOT:
                continue
            descriptor: RuleDescriptor = graph.nodes[label]["descriptor"]
            for source_file in descriptor.source_files:
                path = source_directory(source_file)
                if not path or path in filters:
                    continue
                filters[path] = SourcePathFilter(
                    path=path, selected=prior_selection.get(path, new_path_selected)
                )

        ordered = list(filters.values())
        if self.config.sort_source_paths:
            ordered.sort(key=lambda f: f.path)

        missing_labels = sorted({dep for deps in missing.values() for dep in deps})
        logger.info(
            "Extracted %d source paths from %d rules (%d roots)",
            len(ordered),
            graph.number_of_nodes() - 1,
            len(roots),
        )
        return ExtractionResult(
            filters=tuple(ordered),
            unresolved=resolution.unresolved,
            missing_dependencies=tuple(missing_labels),
            visited_rules=graph.number_of_nodes() - 1,
        )

    def _report_missing(self, missing: Dict[BuildLabel, List[BuildLabel]]) -> None:
        details = "; ".join(
            f"{rule} -> {', '.join(str(dep) for dep in deps)}"
            for rule, deps in sorted(missing.items())
        )
        message = f"Skipped unresolved rule dependencies: {details}"
        if self.messages is not None:
            self.messages.warning(message)
        else:
            logger.warning("%s", message)

    @staticmethod
    def _check_acyclic(graph: nx.DiGraph) -> None:
        if nx.is_directed_acyclic_graph(graph):
            return
        try:
            cycle = nx.find_cycle(graph)
        except NetworkXNoCycle:
            return
        logger.warning(
            "Dependency cycle in resolved rules: %s",
            " -> ".join(str(edge[0]) for edge in cycle),
        )


__all__ = [
    "ExtractionResult",
    "SourcePathExtractor",
    "build_dependency_graph",
    "source_directory",
]
