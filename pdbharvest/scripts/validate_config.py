#!/usr/bin/env python3
"""
Configuration validation script for pdbharvest.

This script validates a configuration file against the JSON Schema and
the mirror template rules, and reports any errors in a user-friendly
format.

Usage:
    python -m pdbharvest.scripts.validate_config config/config.yaml
    python -m pdbharvest.scripts.validate_config --schema custom.schema.yaml config.yaml
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

import yaml

from pdbharvest.lib.config import DEFAULT_SCHEMA_PATH, load_config, load_schema, validate_config
from pdbharvest.lib.errors import ConfigurationError


def validate_config_file(config_path: Path, schema_path: Path) -> list[str]:
    """
    Validate a configuration file against a JSON Schema and business rules.

    Args:
        config_path: Path to the configuration YAML file
        schema_path: Path to the JSON Schema YAML file

    Returns:
        List of error messages (empty if valid)
    """
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        return [e.message if not e.details else f"{e.message}: {e.details}"]

    try:
        schema = load_schema(schema_path)
    except yaml.YAMLError as e:
        return [f"Schema parsing error: {e}"]
    except FileNotFoundError:
        return [f"Schema file not found: {schema_path}"]

    return validate_config(config, schema)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the validation script."""
    parser = argparse.ArgumentParser(
        description="Validate pdbharvest configuration file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m pdbharvest.scripts.validate_config config/config.yaml
  python -m pdbharvest.scripts.validate_config --schema custom.schema.yaml config.yaml
        """,
    )
    parser.add_argument(
        "config",
        type=Path,
        help="Path to configuration YAML file",
    )
    parser.add_argument(
        "--schema",
        type=Path,
        default=DEFAULT_SCHEMA_PATH,
        help="Path to JSON Schema file (default: bundled config.schema.yaml)",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only output errors, no success message",
    )

    args = parser.parse_args(argv)

    errors = validate_config_file(args.config, args.schema)

    if errors:
        print("=" * 60)
        print("CONFIGURATION VALIDATION FAILED")
        print("=" * 60)
        print(f"\nConfig file: {args.config}")
        print(f"Schema file: {args.schema}\n")
        print("Errors found:\n")
        for error in errors:
            print(error)
            print()
        print("-" * 60)
        print("Suggestions:")
        print("  - Check config file for typos")
        print("  - Ensure save_path, read_path and download_url are present")
        print("  - Give every download_url exactly one '%' marker")
        print("=" * 60)
        sys.exit(1)
    else:
        if not args.quiet:
            print(f"Configuration valid: {args.config}")
        sys.exit(0)


if __name__ == "__main__":
    main()
