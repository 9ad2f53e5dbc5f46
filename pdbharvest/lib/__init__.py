"""
pdbharvest Shared Library

This package provides the harvest pipeline and its shared utilities.

Modules:
    errors: Error codes and exception classes
    io: Directory creation, marker files and atomic writes
    net: Request helper and retry logic
    logging: Dual-format logging (text + JSON Lines)
    config: Configuration loading and validation
    records: Target record loading
    uniprot: Lookup record fetching and PDB cross-reference parsing
    mirrors: Prioritized mirror downloads
    resolver: Per-accession resolution and download fan-out
    processor: Per-target processing
    orchestrator: Bounded run over all targets
    summary: Run summary and exit code
"""

from pdbharvest.lib.errors import (
    ErrorCode,
    ERROR_RECOVERY,
    EXIT_CODES,
    EXIT_SUCCESS,
    EXIT_GENERAL_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_PARTIAL_FAILURE,
    HarvestError,
    ConfigurationError,
    get_recovery,
    format_error_message,
    exit_with_error,
)

__all__ = [
    "ErrorCode",
    "ERROR_RECOVERY",
    "EXIT_CODES",
    "EXIT_SUCCESS",
    "EXIT_GENERAL_ERROR",
    "EXIT_CONFIG_ERROR",
    "EXIT_PARTIAL_FAILURE",
    "HarvestError",
    "ConfigurationError",
    "get_recovery",
    "format_error_message",
    "exit_with_error",
]
