"""Configuration snapshot assembly."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Union

from targetconfig.errors import MissingRequiredField
from targetconfig.rules.schema import (
    ConfigurationSnapshot,
    OptionSet,
    RuleDescriptor,
    SelectableRule,
)

logger = logging.getLogger("targetconfig.runtime.assembler")


def assemble(
    project_name: Optional[str],
    selected_rules: Iterable[Union[RuleDescriptor, SelectableRule]],
    path_filters: Iterable[str],
    additional_file_paths: Optional[Sequence[str]],
    options: Optional[OptionSet],
    bazel_url: Optional[str] = None,
) -> ConfigurationSnapshot:
    """Build an immutable configuration snapshot.

    Only ``project_name`` and ``options`` are required; every other field
    defaults to empty or absent. Rules are de-duplicated by label keeping
    the first occurrence. The option set is copied so later edits do not
    leak into the snapshot.

    Raises:
        MissingRequiredField: If ``project_name`` or ``options`` is absent.
    """
    if not project_name:
        raise MissingRequiredField("project_name")
    if options is None:
        raise MissingRequiredField("options")

    targets: List[RuleDescriptor] = []
    seen = set()
    for rule in selected_rules:
        descriptor = rule.descriptor if isinstance(rule, SelectableRule) else rule
        if descriptor.label in seen:
            continue
        seen.add(descriptor.label)
        targets.append(descriptor)

    snapshot = ConfigurationSnapshot(
        project_name=project_name,
        build_targets=tuple(targets),
        path_filters=frozenset(path for path in path_filters if path),
        additional_file_paths=(
            tuple(additional_file_paths) if additional_file_paths is not None else None
        ),
        options=options.model_copy(deep=True),
        bazel_url=bazel_url,
    )
    logger.debug(
        "Assembled config %s: %d targets, %d path filters",
        project_name,
        len(snapshot.build_targets),
        len(snapshot.path_filters),
    )
    return snapshot


__all__ = ["assemble"]
