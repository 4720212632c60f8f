"""CLI command to resolve build labels against a rule index.

Prints every requested label that resolved, with its rule type and
dependency count, followed by the labels the index did not know. Exits
with status 2 when any label is unresolved so scripts can detect stale
target lists.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.table import Table

from targetconfig.errors import ConfigEngineError
from targetconfig.rules.schema import OptionSet
from targetconfig.runtime.config_loader import load_engine_config
from targetconfig.runtime.resolver import LabelResolver
from targetconfig.runtime.rule_index import StaticRuleIndex

logger = logging.getLogger("targetconfig.cli.resolve")

EXIT_UNRESOLVED = 2


def resolve_command(args, console: Optional[Console] = None) -> int:
    """Execute label resolution command.

    Args:
        args: Parsed command-line arguments.
        console: Output console (defaults to stdout).

    Returns:
        int: Exit code (0 all resolved, 2 some unresolved, 1 on failure).
    """
    console = console or Console()
    try:
        config = load_engine_config(getattr(args, "engine_config", None))
        index = StaticRuleIndex.from_file(args.index)
        resolver = LabelResolver(index, config)
        result = resolver.resolve(args.labels, OptionSet())
    except (ConfigEngineError, ValueError) as e:
        logger.error("Resolve command failed: %s", e)
        return 1

    table = Table(title="Resolved rules")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Deps", justify="right")
    table.add_column("Sources", justify="right")
    for descriptor in result.resolved:
        table.add_row(
            str(descriptor.label),
            descriptor.rule_type,
            str(len(descriptor.dependency_labels)),
            str(len(descriptor.source_files)),
        )
    console.print(table)

    if result.unresolved:
        console.print(f"Unresolved: {', '.join(str(label) for label in result.unresolved)}")
        return EXIT_UNRESOLVED
    return 0
