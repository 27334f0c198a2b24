# File: apigen_ts/cli.py
"""
APIGen-TS - Command-Line Interface
====================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Generate into the directory configured in the metadata file
    apigen-ts --metadata metadata.yaml

    # Override the output directory and path prefix, verbose
    apigen-ts --metadata metadata.yaml -o ./assets/api --api-prefix /api -v

    # Report what would change without touching the disk
    apigen-ts --metadata metadata.yaml --dry-run

Exit codes:
    0: success (including "no files changed")
    1: metadata validation error
    2: fatal generation error
    3: one or more files could not be written or removed
    4: input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_WRITE_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``apigen_ts`` logger.

    Args:
        verbosity: -1 = silent, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.CRITICAL + 1

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    ))

    root_logger: logging.Logger = logging.getLogger("apigen_ts")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


class _ArgumentParser(argparse.ArgumentParser):
    """Argument errors exit with EXIT_INPUT_ERROR instead of argparse's 2."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_INPUT_ERROR, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    from apigen_ts import __version__

    parser: argparse.ArgumentParser = _ArgumentParser(
        prog="apigen-ts",
        description=(
            "APIGen-TS: TypeScript client generator.\n\n"
            "Turns a description of API resources, operations, filters and "
            "routes (YAML/JSON) into TypeScript interfaces, endpoint bindings, "
            "an enum catalog and a route registry."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s --metadata metadata.yaml\n"
            "  %(prog)s --metadata metadata.yaml -o ./assets/api --dry-run\n"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"APIGen-TS v{__version__}",
    )
    parser.add_argument(
        "-m", "--metadata",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the metadata document (YAML or JSON).",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Output directory (overrides config.output_dir).",
    )
    parser.add_argument(
        "--api-prefix",
        type=str,
        default=None,
        metavar="PREFIX",
        help="Prefix prepended to every endpoint path (overrides config.api_prefix).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Do not write files, just report what would be done.",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log output (-v INFO, -vv DEBUG).",
    )
    verbosity.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress logs and the summary report.",
    )
    return parser


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.api_prefix is not None:
        overrides["api_prefix"] = args.api_prefix
    return overrides


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def _run_generation(metadata_path: Path, args: argparse.Namespace) -> int:
    from apigen_ts.errors import MetadataLoadError
    from apigen_ts.generator import GenerationReport, TypeScriptGenerator

    generator = TypeScriptGenerator(dry_run=args.dry_run)
    try:
        report: GenerationReport = generator.generate_from_file(
            metadata_path,
            output_dir=Path(args.output).resolve() if args.output else None,
            config_overrides=_build_config_overrides(args),
        )
    except MetadataLoadError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR

    if not args.quiet:
        print(report.summary())

    if report.validation_errors:
        return EXIT_VALIDATION_ERROR
    if report.generation_error is not None:
        return EXIT_GENERATION_ERROR
    if report.write_errors:
        return EXIT_WRITE_ERROR
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    _setup_logging(-1 if args.quiet else args.verbose)

    metadata_path: Path = Path(args.metadata).resolve()
    if not metadata_path.is_file():
        logger.error("Metadata file not found: %s", metadata_path)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Metadata: %s", metadata_path)
    logger.info("Dry run:  %s", args.dry_run)

    exit_code: int = _run_generation(metadata_path, args)
    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)
    sys.exit(exit_code)


def main() -> None:
    """Console-script entry point."""
    cli_main()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_WRITE_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("apigen_ts.cli loaded.")
