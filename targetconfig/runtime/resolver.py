"""Label resolution against the workspace rule index.

Resolution is a blocking query that must run on a background worker. A
label with no matching rule is a normal partial result; only an
unreachable index aborts the call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Tuple

from targetconfig.config import EngineConfig
from targetconfig.errors import ExternalQueryUnavailable, PartialResolutionFailure, WrongThreadError
from targetconfig.rules.labels import BuildLabel, as_labels
from targetconfig.rules.schema import OptionSet, RuleDescriptor
from targetconfig.runtime.messages import MessageSink
from targetconfig.runtime.rule_index import RuleIndex

if TYPE_CHECKING:  # pragma: no cover
    from targetconfig.runtime.context import ControllingContext

logger = logging.getLogger("targetconfig.runtime.resolver")

# Transport-level failures raised by index implementations.
_QUERY_ERRORS = (OSError, ConnectionError, TimeoutError)

LABEL_RESOLUTION_FAILED = "Label resolution failed: {details}"


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of one resolution call.

    Attributes:
        mapping: Every descriptor returned by the index, keyed by label. This
            includes dependencies of the requested rules.
        requested: Requested labels in request order, de-duplicated.
        unresolved: Requested labels with no descriptor, in request order.
    """

    mapping: Dict[BuildLabel, RuleDescriptor] = field(default_factory=dict)
    requested: Tuple[BuildLabel, ...] = ()
    unresolved: Tuple[BuildLabel, ...] = ()

    @property
    def resolved(self) -> Tuple[RuleDescriptor, ...]:
        """Descriptors of the requested labels that resolved, in request order."""
        return tuple(self.mapping[label] for label in self.requested if label in self.mapping)

    @property
    def complete(self) -> bool:
        return not self.unresolved


class LabelResolver:
    """Maps labels to rule descriptors through a ``RuleIndex``."""

    def __init__(
        self,
        index: RuleIndex,
        config: Optional[EngineConfig] = None,
        messages: Optional[MessageSink] = None,
        context: Optional["ControllingContext"] = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            index: Workspace rule index to query.
            config: Engine configuration (selects the option keys).
            messages: Sink for the partial-resolution warning.
            context: Controlling context the resolver must never run on.
        """
        self.index = index
        self.config = config or EngineConfig.default()
        self.messages = messages
        self.context = context

    def resolve(self, labels: Iterable["BuildLabel | str"], options: OptionSet) -> ResolutionResult:
        """Resolve ``labels`` using the startup/build options in ``options``.

        Returns:
            ResolutionResult: Mapping plus the labels that did not resolve.

        Raises:
            ExternalQueryUnavailable: If the index cannot be queried.
            WrongThreadError: If called on the controlling context.
        """
        if self.context is not None and self.context.is_current():
            raise WrongThreadError("Label resolution must not run on the controlling context")

        requested = tuple(as_labels(labels))
        if not requested:
            return ResolutionResult()

        startup_options = options.get(self.config.startup_options_key)
        build_options = options.get(self.config.build_options_key)

        logger.debug("Resolving %d labels", len(requested))
        try:
            raw = self.index.rule_entries_for_labels(
                list(requested),
                startup_options,
                build_options,
            )
        except ExternalQueryUnavailable:
            logger.error("Workspace rule index unavailable")
            raise
        except _QUERY_ERRORS as e:
            logger.error("Workspace rule index query failed: %s", e)
            raise ExternalQueryUnavailable(str(e)) from e

        mapping = dict(raw)
        unresolved = tuple(label for label in requested if label not in mapping)
        if unresolved:
            self._report_unresolved(unresolved)

        logger.info(
            "Resolved %d/%d labels (%d descriptors returned)",
            len(requested) - len(unresolved),
            len(requested),
            len(mapping),
        )
        return ResolutionResult(mapping=mapping, requested=requested, unresolved=unresolved)

    def _report_unresolved(self, unresolved: Tuple[BuildLabel, ...]) -> None:
        failure = PartialResolutionFailure(unresolved)
        message = LABEL_RESOLUTION_FAILED.format(details=failure)
        if self.messages is not None:
            self.messages.warning(message)
        else:
            logger.warning("%s", message)


__all__ = ["ResolutionResult", "LabelResolver", "LABEL_RESOLUTION_FAILED"]
