"""
pdbharvest Error Code System.

This module provides standardized error codes, recovery suggestions,
and the exception classes used throughout the harvest pipeline.

Errors are contained at the smallest enclosing fan-out boundary
(identifier -> accession -> target -> batch). The error code tells the
owner of that boundary what happened; the exit code is only used for
failures that abort the run before any target is scheduled.
"""

from enum import Enum
import sys
from typing import NoReturn, Optional


class ErrorCode(str, Enum):
    """
    Standardized error codes for the harvest pipeline.

    Inherits from str and Enum for JSON serialization compatibility.

    Error Code Categories:
    - E_CONFIG: Configuration errors (bad YAML, bad URL template)
    - E_INPUT_*: Record source errors (missing file, bad header, empty accession)
    - E_IO / E_DISK_FULL: Local filesystem errors
    - E_FETCH / E_PARSE: Lookup service errors for one accession
    - E_DOWNLOAD: Mirror errors for one structure identifier
    """

    E_CONFIG = "E_CONFIG"
    """Configuration is invalid. Fix the config file."""

    E_INPUT_MISSING = "E_INPUT_MISSING"
    """Target record file not found. Check read_path."""

    E_INPUT_FORMAT = "E_INPUT_FORMAT"
    """Target record or accession is malformed."""

    E_IO = "E_IO"
    """Directory or file could not be created."""

    E_DISK_FULL = "E_DISK_FULL"
    """Disk space exhausted. Free up disk space before retrying."""

    E_FETCH = "E_FETCH"
    """Lookup service request failed (network error or non-2xx status)."""

    E_PARSE = "E_PARSE"
    """Lookup payload contains a malformed cross-reference line."""

    E_DOWNLOAD = "E_DOWNLOAD"
    """Every mirror failed at the network level for an identifier."""


# =============================================================================
# Error Recovery Mapping
# =============================================================================

ERROR_RECOVERY: dict[ErrorCode, tuple[bool, str]] = {
    ErrorCode.E_CONFIG: (False, "Fix the configuration file and rerun"),
    ErrorCode.E_INPUT_MISSING: (False, "Check that read_path points to the target export"),
    ErrorCode.E_INPUT_FORMAT: (False, "Check the delimiter and column order of the target export"),
    ErrorCode.E_IO: (False, "Check permissions on save_path"),
    ErrorCode.E_DISK_FULL: (False, "Free up disk space and rerun; finished files are skipped"),
    ErrorCode.E_FETCH: (True, "Rerun later; the lookup service may be unavailable"),
    ErrorCode.E_PARSE: (False, "Inspect the lookup record for this accession"),
    ErrorCode.E_DOWNLOAD: (True, "Rerun later; finished files are skipped"),
}


def get_recovery(code: ErrorCode) -> tuple[bool, str]:
    """
    Get recovery information for an error code.

    Args:
        code: The ErrorCode to look up.

    Returns:
        Tuple of (is_retryable, recovery_suggestion).
    """
    return ERROR_RECOVERY.get(code, (False, "Unknown error, check the logs"))


# =============================================================================
# Exit Code Mapping
# =============================================================================

EXIT_CODES: dict[ErrorCode, int] = {
    ErrorCode.E_CONFIG: 2,           # Configuration error
    ErrorCode.E_INPUT_MISSING: 3,    # Input error
    ErrorCode.E_INPUT_FORMAT: 3,     # Input error
    ErrorCode.E_PARSE: 3,            # Input error
    ErrorCode.E_IO: 5,               # Resource error
    ErrorCode.E_DISK_FULL: 5,        # Resource error
    ErrorCode.E_FETCH: 6,            # Network error
    ErrorCode.E_DOWNLOAD: 6,         # Network error
}

# Special exit codes not tied to ErrorCode
EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_PARTIAL_FAILURE = 7


# =============================================================================
# HarvestError Exception Class
# =============================================================================

class HarvestError(Exception):
    """
    Base exception class for harvest pipeline errors.

    Attributes:
        error_code: The ErrorCode enum value identifying the error type.
        message: Human-readable error description.
        details: Optional additional error details (URL, path, payload line).
        is_retryable: Whether rerunning later may succeed.
        recovery_suggestion: Human-readable suggestion for resolving the error.

    Example:
        >>> raise HarvestError(
        ...     ErrorCode.E_FETCH,
        ...     "Lookup failed for P12345",
        ...     details="HTTP 503"
        ... )
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        details: Optional[str] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details

        self.is_retryable, self.recovery_suggestion = get_recovery(error_code)

        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message."""
        return f"[{self.error_code.value}] {self.message}"

    def __str__(self) -> str:
        return self._format_message()

    def to_exit_code(self) -> int:
        """
        Get the process exit code for this error.

        Returns:
            Integer exit code:
            - 1: General error
            - 2: Configuration error
            - 3: Input error
            - 5: Resource error
            - 6: Network error
        """
        return EXIT_CODES.get(self.error_code, EXIT_GENERAL_ERROR)

    def __reduce__(self):
        """Support pickle serialization."""
        return (
            self.__class__,
            (self.error_code, self.message, self.details)
        )


# =============================================================================
# Error Formatting and Output
# =============================================================================

def format_error_message(error: HarvestError, use_color: bool = True) -> str:
    """
    Format a HarvestError for terminal output.

    Args:
        error: The HarvestError to format.
        use_color: Whether to use ANSI color codes (default: True).

    Returns:
        Formatted error message string with error code, message,
        recovery suggestion, and optional details.
    """
    RED = "\033[91m" if use_color else ""
    YELLOW = "\033[93m" if use_color else ""
    CYAN = "\033[96m" if use_color else ""
    RESET = "\033[0m" if use_color else ""
    BOLD = "\033[1m" if use_color else ""

    lines = []

    lines.append(f"{RED}{BOLD}ERROR [{error.error_code.value}]{RESET}")
    lines.append(f"  {error.message}")

    if error.details:
        lines.append(f"  {CYAN}Details:{RESET} {error.details}")

    retry_indicator = "[retryable]" if error.is_retryable else "[not retryable]"
    lines.append(f"  {YELLOW}Recovery:{RESET} {error.recovery_suggestion} {retry_indicator}")

    return "\n".join(lines)


def exit_with_error(error: HarvestError, use_color: bool = True) -> NoReturn:
    """
    Print formatted error message and exit with appropriate exit code.

    Args:
        error: The HarvestError to report.
        use_color: Whether to use ANSI color codes (default: True).

    Raises:
        SystemExit: Always raised with the error's exit code.
    """
    print(format_error_message(error, use_color=use_color), file=sys.stderr)
    sys.exit(error.to_exit_code())


# =============================================================================
# Configuration Error (Special Case for Exit Code 2)
# =============================================================================

class ConfigurationError(HarvestError):
    """
    Exception for configuration validation errors.

    Raised for invalid YAML, schema violations and malformed mirror URL
    templates. Always maps to exit code 2.
    """

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(ErrorCode.E_CONFIG, message, details)

    def to_exit_code(self) -> int:
        """Configuration errors always return exit code 2."""
        return EXIT_CONFIG_ERROR

    def __reduce__(self):
        """Support pickle serialization."""
        return (
            self.__class__,
            (self.message, self.details)
        )
