"""CLI command to summarize a persisted generator config."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from targetconfig.errors import ConfigNotLoadable
from targetconfig.storage.config_store import ConfigStore

logger = logging.getLogger("targetconfig.cli.show")


def show_command(args, console: Optional[Console] = None) -> int:
    """Print a persisted configuration's contents.

    Returns:
        int: Exit code (0 for success, 1 if the config cannot be loaded).
    """
    console = console or Console()
    path = Path(args.generator_config)
    try:
        persisted = ConfigStore().load(path)
    except ConfigNotLoadable as e:
        logger.error("%s", e)
        return 1

    summary = Table(title=f"Generator config {path.stem}", show_header=False)
    summary.add_column("Field")
    summary.add_column("Value")
    summary.add_row("Project", persisted.project_name)
    summary.add_row("Build targets", "\n".join(persisted.build_target_labels) or "-")
    summary.add_row("Path filters", "\n".join(sorted(persisted.path_filters)) or "-")
    if persisted.additional_file_paths is not None:
        summary.add_row("Additional files", "\n".join(persisted.additional_file_paths) or "-")
    summary.add_row("Build tool URL", persisted.bazel_url or "-")
    console.print(summary)

    options = persisted.option_set()
    keys = sorted(set(options.values) | set(options.user_values))
    if keys:
        table = Table(title="Options")
        table.add_column("Key")
        table.add_column("Value")
        table.add_column("Scope")
        for key in keys:
            scope = "user" if key in options.user_values else "project"
            table.add_row(key, options.get(key) or "", scope)
        console.print(table)
    return 0
