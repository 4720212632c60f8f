"""Build label identifiers.

A label is the opaque key used for a rule throughout the engine, typically
of the form ``//package/path:target``. Equality is exact on the label
text; the package/target split is only used for display.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass(frozen=True, order=True)
class BuildLabel:
    """Hashable, comparable identifier for one build rule."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError(f"Label value must be a string, got {type(self.value)!r}")

    def __str__(self) -> str:
        return self.value

    @property
    def package_name(self) -> str:
        """Package portion of the label (``foo/bar`` for ``//foo/bar:baz``)."""
        # External repository prefixes (@repo//) are dropped as well.
        text = self.value.split("//", 1)[-1]
        return text.partition(":")[0]

    @property
    def target_name(self) -> Optional[str]:
        """Target portion of the label.

        Labels without an explicit target use the last package component,
        so ``//foo/bar`` yields ``bar``.
        """
        _, sep, target = self.value.partition(":")
        if sep:
            return target or None
        package = self.package_name
        if not package:
            return None
        return package.rsplit("/", 1)[-1]


def as_label(value: "BuildLabel | str") -> BuildLabel:
    """Coerce a string or label into a ``BuildLabel``."""
    if isinstance(value, BuildLabel):
        return value
    return BuildLabel(value)


def as_labels(values: Iterable["BuildLabel | str"]) -> List[BuildLabel]:
    """Coerce labels preserving order and dropping duplicates."""
    seen = set()
    result: List[BuildLabel] = []
    for value in values:
        label = as_label(value)
        if label in seen:
            continue
        seen.add(label)
        result.append(label)
    return result


__all__ = ["BuildLabel", "as_label", "as_labels"]
