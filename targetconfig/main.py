"""Main CLI entry point for targetconfig.

Provides commands: resolve, paths, show
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

from targetconfig.cli.paths import paths_command
from targetconfig.cli.resolve import resolve_command
from targetconfig.cli.show import show_command

logger = logging.getLogger("targetconfig.cli")


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """Setup logging configuration with Rich integration.

    Args:
        verbose: Enable verbose logging.
        log_file: Also write ``targetconfig`` logs to this file.
        console: Rich Console instance for coordinated output (optional).
    """
    if verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        log_time_format="[%H:%M:%S]",
    )

    logging.basicConfig(
        level=level,
        format="[%(name)s] [%(levelname)s] %(message)s",
        handlers=[handler],
    )

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to set up file logging: %s", e)
            return
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        file_handler.setLevel(logging.DEBUG)
        logging.getLogger("targetconfig").addHandler(file_handler)
        logger.info("File logging enabled: %s", log_file)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="targetconfig",
        description="targetconfig - Generator configuration engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-file",
        help="Output log to file (optional), in addition to the console.",
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="engine_config",
        help=(
            "Optional engine configuration. Can be a path to a TOML/JSON "
            "file (e.g. engine.toml) or an inline TOML/JSON string. When "
            "omitted, built-in defaults are used."
        ),
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Resolve command
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve build labels against a rule index",
    )
    resolve_parser.add_argument(
        "--index",
        required=True,
        help="JSON rule index dump ({\"rules\": [...]})",
    )
    resolve_parser.add_argument(
        "labels",
        nargs="+",
        help="Build labels to resolve, e.g. //app:main",
    )

    # Paths command
    paths_parser = subparsers.add_parser(
        "paths",
        help="Derive source path filters for a persisted generator config",
    )
    paths_parser.add_argument(
        "--index",
        required=True,
        help="JSON rule index dump",
    )
    paths_parser.add_argument(
        "--config",
        dest="generator_config",
        required=True,
        help="Persisted generator config (.tulsigen)",
    )

    # Show command
    show_parser = subparsers.add_parser(
        "show",
        help="Summarize a persisted generator config",
    )
    show_parser.add_argument(
        "--config",
        dest="generator_config",
        required=True,
        help="Persisted generator config (.tulsigen)",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        int: Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_file)

    if args.command == "resolve":
        return resolve_command(args)
    elif args.command == "paths":
        return paths_command(args)
    elif args.command == "show":
        return show_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
