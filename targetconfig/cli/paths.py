"""CLI command to derive source path filters for a persisted config."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from targetconfig.errors import ConfigEngineError
from targetconfig.runtime.config_loader import load_engine_config
from targetconfig.runtime.engine import GeneratorConfigEngine
from targetconfig.runtime.rule_index import StaticRuleIndex

logger = logging.getLogger("targetconfig.cli.paths")


def paths_command(args, console: Optional[Console] = None) -> int:
    """Load a generator config, resolve its targets and print source paths.

    Args:
        args: Parsed command-line arguments.
        console: Output console (defaults to stdout).

    Returns:
        int: Exit code (0 for success, 1 on failure).
    """
    console = console or Console()
    try:
        config = load_engine_config(getattr(args, "engine_config", None))
        index = StaticRuleIndex.from_file(args.index)
        with GeneratorConfigEngine.from_persisted(
            Path(args.generator_config), index, config=config
        ) as engine:
            update = engine.update_source_paths().result()
            pending = engine.pending_labels
            selected_count = engine.selected_rule_count
    except (ConfigEngineError, ValueError) as e:
        logger.error("Paths command failed: %s", e)
        return 1

    table = Table(title=f"Source paths ({selected_count} selected rules)")
    table.add_column("Path")
    table.add_column("Selected")
    for path_filter in update.filters:
        table.add_row(path_filter.path, "yes" if path_filter.selected else "no")
    console.print(table)

    if pending:
        console.print(f"Pending labels: {', '.join(str(label) for label in pending)}")
    return 0
