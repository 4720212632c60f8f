"""Workspace rule index boundary.

The engine consumes rule metadata through the narrow ``RuleIndex`` protocol.
``StaticRuleIndex`` is an in-memory implementation backed by a
``networkx.DiGraph`` (one node per rule, one edge per dependency) that
answers a query with the requested rules plus everything they transitively
depend on, which is what the source path walk expects.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

import networkx as nx

from targetconfig.errors import ExternalQueryUnavailable
from targetconfig.rules.labels import BuildLabel, as_label
from targetconfig.rules.schema import RuleDescriptor

logger = logging.getLogger("targetconfig.runtime.rule_index")


class RuleIndex(Protocol):
    """Blocking query interface to the workspace's rule metadata.

    Implementations must be safe to call from a background thread.
    """

    def rule_entries_for_labels(
        self,
        labels: Sequence[BuildLabel],
        startup_options: Optional[str],
        build_options: Optional[str],
    ) -> Mapping[BuildLabel, RuleDescriptor]:
        """Return descriptors for ``labels`` and their dependencies.

        Labels that do not exist are simply absent from the result. Raises
        ``ExternalQueryUnavailable`` (or an ``OSError``) when the index
        cannot be reached.
        """
        ...


class StaticRuleIndex:
    """Read-only rule index over a fixed set of descriptors."""

    def __init__(self, descriptors: Iterable[RuleDescriptor]) -> None:
        self._graph = nx.DiGraph()
        for descriptor in descriptors:
            if self._graph.has_node(descriptor.label) and "descriptor" in self._graph.nodes[descriptor.label]:
                logger.warning("Duplicate rule %s in index; keeping first", descriptor.label)
                continue
            self._graph.add_node(descriptor.label, descriptor=descriptor)
            for dep in descriptor.dependency_labels:
                self._graph.add_edge(descriptor.label, dep)
        logger.info(
            "Rule index built with %d rules (%d dependency edges)",
            len(self),
            self._graph.number_of_edges(),
        )

    def __len__(self) -> int:
        return sum(1 for _, attrs in self._graph.nodes(data=True) if "descriptor" in attrs)

    def __contains__(self, label: object) -> bool:
        if isinstance(label, str):
            label = BuildLabel(label)
        return self._descriptor(label) is not None

    def descriptors(self) -> List[RuleDescriptor]:
        """All indexed rules in load order."""
        return [attrs["descriptor"] for _, attrs in self._graph.nodes(data=True) if "descriptor" in attrs]

    def _descriptor(self, label: BuildLabel) -> Optional[RuleDescriptor]:
        if not self._graph.has_node(label):
            return None
        return self._graph.nodes[label].get("descriptor")

    def rule_entries_for_labels(
        self,
        labels: Sequence[BuildLabel],
        startup_options: Optional[str] = None,
        build_options: Optional[str] = None,
    ) -> Dict[BuildLabel, RuleDescriptor]:
        """Return requested rules plus their transitive dependencies.

        Options are accepted for interface parity and only logged; a static
        index has a single configuration.
        """
        logger.debug(
            "Querying %d labels (startup=%r, build=%r)",
            len(labels),
            startup_options,
            build_options,
        )
        result: Dict[BuildLabel, RuleDescriptor] = {}
        for label in labels:
            label = as_label(label)
            if self._descriptor(label) is None:
                continue
            for reachable in {label} | nx.descendants(self._graph, label):
                descriptor = self._descriptor(reachable)
                if descriptor is not None:
                    result[reachable] = descriptor
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StaticRuleIndex":
        """Build from ``{"rules": [{label, rule_type, ...}, ...]}``."""
        rules = data.get("rules")
        if not isinstance(rules, list):
            raise ValueError("Rule index must contain a 'rules' list")
        return cls(RuleDescriptor.model_validate(item) for item in rules)

    @classmethod
    def from_file(cls, path: Path) -> "StaticRuleIndex":
        """Load a JSON rule dump.

        Raises:
            ExternalQueryUnavailable: If the file cannot be read or parsed.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ExternalQueryUnavailable(f"Cannot read rule index {path}: {e}") from e
        logger.info("Loading rule index from %s", path)
        return cls.from_dict(data)


__all__ = ["RuleIndex", "StaticRuleIndex"]
