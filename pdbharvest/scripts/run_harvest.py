#!/usr/bin/env python3
"""
pdbharvest Run CLI - Entry Point for a Harvest Run.

Loads and validates the configuration, applies command line overrides,
configures logging, reads the target export and runs the orchestrator.
The run summary is written to <save_path>/run_summary.json.

Usage:
    python -m pdbharvest.scripts.run_harvest --config config/config.yaml
        [--save-path DIR] [--read-path FILE] [--processor-limit N]
        [--downloader-limit N] [--log-dir DIR] [--log-level LEVEL]
        [--strict] [--no-color]

Example:
    pdbharvest --config config/config.yaml --processor-limit 2 --strict

Exit codes:
    0  run completed (item failures only change this with --strict)
    2  configuration error
    3  target file missing (an unreadable file is reported in the summary)
    7  --strict and at least one target, accession or download failed
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from pdbharvest.lib.config import build_config, load_config, merge_cli_config
from pdbharvest.lib.errors import HarvestError, exit_with_error
from pdbharvest.lib.logging import configure_logging
from pdbharvest.lib.orchestrator import Orchestrator
from pdbharvest.lib.records import load_targets
from pdbharvest.lib.summary import generate_run_id, write_run_summary

_logger = logging.getLogger("pdbharvest.scripts.run_harvest")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Harvest PDB structures for the targets of a ChEMBL export.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration YAML file (default: config/config.yaml)"
    )

    parser.add_argument(
        "--save-path",
        help="Override save_path"
    )

    parser.add_argument(
        "--read-path",
        help="Override read_path"
    )

    parser.add_argument(
        "--processor-limit",
        type=int,
        help="Override processor_limit (targets processed at once)"
    )

    parser.add_argument(
        "--downloader-limit",
        type=int,
        help="Override downloader_limit (downloads at once per pool)"
    )

    parser.add_argument(
        "--log-dir",
        help="Override logging.dir"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override logging.level"
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Exit with code 7 when any target, accession or download failed"
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI color output"
    )

    return parser.parse_args(argv)


def cli_overrides(args: argparse.Namespace) -> dict:
    """Map command line options to dotted config keys."""
    return {
        "save_path": args.save_path,
        "read_path": args.read_path,
        "processor_limit": args.processor_limit,
        "downloader_limit": args.downloader_limit,
        "logging.dir": args.log_dir,
        "logging.level": args.log_level,
        "strict": args.strict,
    }


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the harvest CLI.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = parse_args(argv)
    use_color = not args.no_color

    try:
        raw = load_config(args.config)
        config = build_config(merge_cli_config(raw, cli_overrides(args)))

        run_id = generate_run_id()
        log_path, jsonl_path = configure_logging(
            run_name="harvest",
            wildcards={"run": run_id},
            log_dir=config.log_dir,
            level=config.log_level,
            use_color=use_color,
        )
        _logger.debug(f"Config: {config}")
        _logger.info(f"Logging to {log_path} and {jsonl_path}")

        records = load_targets(
            config.read_path,
            delimiter=config.delimiter,
            accession_separator=config.accession_separator,
        )
        summary = Orchestrator(config).run(records, run_id=run_id)

        summary_path = write_run_summary(summary, config.save_path)
        _logger.info(f"Summary written to {summary_path}")

        return summary.exit_code(strict=config.strict)

    except HarvestError as e:
        exit_with_error(e, use_color=use_color)
        return e.to_exit_code()  # Never reached, but for type checker


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
