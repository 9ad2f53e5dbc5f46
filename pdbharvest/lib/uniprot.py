"""
pdbharvest UniProt Lookup Module.

Fetches UniProtKB flat-text records and extracts the PDB cross-references
they carry.

A flat-text record lists one cross-reference per line, e.g.::

    DR   PDB; 1A52; X-ray; 2.80 A; A/B=297-554.

The PDB identifier sits in the fixed window at byte offsets 10..14.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.parse
from typing import Iterator

from pdbharvest.lib.errors import ErrorCode, HarvestError
from pdbharvest.lib.net import (
    NETWORK_ERRORS,
    RETRYABLE_STATUS,
    RetryableError,
    open_url,
    with_retry,
)

# Module logger
_logger = logging.getLogger(__name__)

# Default lookup service base URL
UNIPROT_BASE_URL = "https://rest.uniprot.org/uniprotkb"

# Prefix of PDB cross-reference lines
PDB_LINE_PREFIX = b"DR   PDB;"

# Identifier window inside a PDB cross-reference line
PDB_ID_START = 10
PDB_ID_LENGTH = 4


# =============================================================================
# Record Parsing
# =============================================================================


def _extract_pdb_id(line: bytes) -> str:
    """Extract the identifier window from one matching line."""
    # Canonical lines have a single blank after the prefix; tolerate padding.
    start = len(PDB_LINE_PREFIX)
    while start < len(line) and line[start:start + 1] in (b" ", b"\t"):
        start += 1
    window = line[start:start + PDB_ID_LENGTH]

    if len(window) < PDB_ID_LENGTH or not window.isalnum():
        raise HarvestError(
            ErrorCode.E_PARSE,
            "Malformed PDB cross-reference line",
            details=line.decode("utf-8", errors="replace")
        )
    return window.decode("ascii").lower()


def iter_pdb_ids(payload: bytes) -> Iterator[str]:
    """
    Lazily yield PDB identifiers from a flat-text record.

    Identifiers are lowercased and yielded in order of appearance;
    duplicates are not removed.

    Args:
        payload: Raw flat-text record.

    Yields:
        4-character lowercase PDB identifiers.

    Raises:
        HarvestError: E_PARSE when a matching line is malformed.
    """
    for line in payload.split(b"\n"):
        if line.startswith(PDB_LINE_PREFIX):
            yield _extract_pdb_id(line.rstrip(b"\r"))


def parse_pdb_ids(payload: bytes) -> list[str]:
    """
    Parse every PDB identifier from a flat-text record.

    An empty list means the accession has no PDB cross-references; it is
    not an error.

    Example:
        >>> parse_pdb_ids(b"ID   TEST\\nDR   PDB; 1ABC; X-ray;\\nDR   PDB; 2XYZ; NMR;\\n")
        ['1abc', '2xyz']

    Raises:
        HarvestError: E_PARSE when a matching line is malformed.
    """
    return list(iter_pdb_ids(payload))


# =============================================================================
# Lookup
# =============================================================================


def build_lookup_url(base_url: str, accession: str) -> str:
    """
    Build the flat-text lookup URL for an accession.

    The accession is percent-encoded as a single path segment.

    Raises:
        HarvestError: E_INPUT_FORMAT for an empty accession.

    Example:
        >>> build_lookup_url("https://rest.uniprot.org/uniprotkb/", "P12345")
        'https://rest.uniprot.org/uniprotkb/P12345.txt'
    """
    accession = accession.strip()
    if not accession:
        raise HarvestError(
            ErrorCode.E_INPUT_FORMAT,
            "Empty accession",
            details="Accession cannot be empty when building a lookup URL"
        )
    return f"{base_url.rstrip('/')}/{urllib.parse.quote(accession, safe='')}.txt"


def fetch_record(
    accession: str,
    base_url: str = UNIPROT_BASE_URL,
    timeout: float = 60,
    max_retries: int = 3,
    retry_delay: float = 1.0
) -> bytes:
    """
    Fetch the flat-text record for an accession.

    Network failures and 429/5xx responses are retried with exponential
    backoff; any other non-2xx status fails immediately.

    Args:
        accession: UniProt accession.
        base_url: Lookup service base URL.
        timeout: Request timeout in seconds.
        max_retries: Maximum retry attempts.
        retry_delay: Initial backoff delay in seconds.

    Returns:
        Raw record bytes.

    Raises:
        HarvestError: E_FETCH when the record cannot be retrieved.
    """
    url = build_lookup_url(base_url, accession)

    def _fetch() -> bytes:
        try:
            with open_url(url, timeout=timeout) as response:
                status = getattr(response, "status", 200)
                if not 200 <= status < 300:
                    raise HarvestError(
                        ErrorCode.E_FETCH,
                        f"Lookup failed for {accession}: HTTP {status}",
                        details=url
                    )
                return response.read()
        except urllib.error.HTTPError as e:
            e.close()
            if e.code in RETRYABLE_STATUS:
                raise RetryableError(f"HTTP {e.code} from {url}") from e
            raise HarvestError(
                ErrorCode.E_FETCH,
                f"Lookup failed for {accession}: HTTP {e.code}",
                details=url
            ) from e
        except ValueError as e:
            # Raised by http.client for URLs it cannot put on the wire
            raise HarvestError(
                ErrorCode.E_FETCH,
                f"Lookup failed for {accession}: invalid request",
                details=f"{url}: {e}"
            ) from e

    _logger.debug(f"Fetching {url}")
    try:
        return with_retry(_fetch, max_retries=max_retries, base_delay=retry_delay)
    except (RetryableError,) + NETWORK_ERRORS as e:
        raise HarvestError(
            ErrorCode.E_FETCH,
            f"Lookup failed for {accession}",
            details=f"{url}: {e}"
        ) from e
