"""
pdbharvest Mirror Download Module.

Downloads one structure file per identifier from an ordered list of
mirror URL templates.

Features:
- Strict left-to-right mirror priority, first success wins
- Non-2xx responses are soft misses; the next mirror is tried
- Transient network failures are retried with exponential backoff
- Files already on disk are skipped without a request
- Atomic writes (unique temp file + rename)
"""

from __future__ import annotations

import logging
import posixpath
import urllib.error
import urllib.parse
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from pdbharvest.lib.errors import ConfigurationError, ErrorCode, HarvestError
from pdbharvest.lib.io import atomic_write_stream
from pdbharvest.lib.net import NETWORK_ERRORS, iter_response, open_url, with_retry

# Module logger
_logger = logging.getLogger(__name__)

# Substitution marker in mirror URL templates
URL_MARKER = "%"

# Identifier used to check that a template resolves to a file name
_PROBE_IDENTIFIER = "1abc"


# =============================================================================
# Templates
# =============================================================================


def resolve_template(template: str, identifier: str) -> str:
    """
    Substitute an identifier into a mirror URL template.

    Args:
        template: URL containing exactly one ``%`` marker.
        identifier: Structure identifier.

    Returns:
        The concrete URL.

    Raises:
        ConfigurationError: If the template has no marker or more than one.

    Example:
        >>> resolve_template("https://files.rcsb.org/download/%.cif.gz", "1abc")
        'https://files.rcsb.org/download/1abc.cif.gz'
    """
    count = template.count(URL_MARKER)
    if count != 1:
        raise ConfigurationError(
            f"Mirror template must contain exactly one '{URL_MARKER}' marker",
            details=f"{template!r} contains {count}"
        )
    head, tail = template.split(URL_MARKER, 1)
    return f"{head}{identifier}{tail}"


def filename_from_url(url: str) -> str:
    """
    Return the final segment of a URL's path.

    Raises:
        ConfigurationError: If the path has no final segment.

    Example:
        >>> filename_from_url("https://www.ebi.ac.uk/pdbe/entry-files/download/1abc.cif")
        '1abc.cif'
    """
    path = urllib.parse.urlsplit(url).path
    name = posixpath.basename(path)
    if not name or name in (".", ".."):
        raise ConfigurationError(
            "Mirror URL has no file name in its path",
            details=url
        )
    return name


def validate_templates(templates: Iterable[str]) -> None:
    """
    Check that every template resolves to a URL with a file name.

    Raises:
        ConfigurationError: On the first invalid template, or when the
            list is empty.
    """
    templates = list(templates)
    if not templates:
        raise ConfigurationError("At least one mirror template is required")
    for template in templates:
        filename_from_url(resolve_template(template, _PROBE_IDENTIFIER))


# =============================================================================
# Results
# =============================================================================


class DownloadOutcome(str, Enum):
    """Outcome of one identifier download."""

    DOWNLOADED = "downloaded"
    ALREADY_PRESENT = "already_present"
    NOT_FOUND = "not_found"


@dataclass
class MirrorAttempt:
    """
    One request made against a mirror.

    Attributes:
        url: Resolved URL.
        status: HTTP status code, None when no response was received.
        error: Network error message, if any.
    """

    url: str
    status: Optional[int] = None
    error: Optional[str] = None


@dataclass
class DownloadResult:
    """
    Result of downloading one identifier.

    Attributes:
        identifier: Structure identifier.
        outcome: Downloaded, already present or not found.
        path: Local file path (downloaded or already present).
        url: URL that produced the file.
        size_bytes: Bytes written (0 unless downloaded).
        attempts: Requests made, in order.
    """

    identifier: str
    outcome: DownloadOutcome
    path: Optional[Path] = None
    url: Optional[str] = None
    size_bytes: int = 0
    attempts: list[MirrorAttempt] = field(default_factory=list)


# =============================================================================
# Downloader
# =============================================================================


class MirrorDownloader:
    """
    Fetches structure files from prioritized mirrors.

    Attributes:
        templates: Mirror URL templates in priority order.
        timeout: Network timeout in seconds.
        chunk_size: Streaming read size.
        max_retries: Retries per mirror for network-level failures.
        retry_delay: Initial backoff delay in seconds.

    Example:
        >>> downloader = MirrorDownloader(["https://files.rcsb.org/download/%.cif.gz"])
        >>> result = downloader.download("1abc", Path("structures/P12345"))
        >>> result.outcome
        <DownloadOutcome.DOWNLOADED: 'downloaded'>
    """

    def __init__(
        self,
        templates: Iterable[str],
        timeout: float = 60,
        chunk_size: int = 65536,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        self.templates = tuple(templates)
        validate_templates(self.templates)
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def download(self, identifier: str, dest_dir: Path) -> DownloadResult:
        """
        Download one identifier into ``dest_dir``.

        Mirrors are tried in order. A mirror whose file name already exists
        in ``dest_dir`` short-circuits with ALREADY_PRESENT.

        Args:
            identifier: Structure identifier.
            dest_dir: Existing destination directory.

        Returns:
            DownloadResult describing the outcome.

        Raises:
            HarvestError: E_DOWNLOAD if no mirror returned any HTTP response;
                E_IO / E_DISK_FULL if the file cannot be written.
        """
        attempts: list[MirrorAttempt] = []

        for template in self.templates:
            url = resolve_template(template, identifier)
            dest_path = dest_dir / filename_from_url(url)

            if dest_path.exists():
                _logger.debug(f"Already downloaded {identifier}: {dest_path}")
                return DownloadResult(
                    identifier=identifier,
                    outcome=DownloadOutcome.ALREADY_PRESENT,
                    path=dest_path,
                    url=url,
                    attempts=attempts,
                )

            _logger.debug(f"Requesting {url}")
            attempt = MirrorAttempt(url=url)
            attempts.append(attempt)

            try:
                status, size = with_retry(
                    lambda: self._fetch_to(url, dest_path),
                    max_retries=self.max_retries,
                    base_delay=self.retry_delay,
                    retryable_exceptions=NETWORK_ERRORS,
                )
            except NETWORK_ERRORS as e:
                attempt.error = str(e)
                _logger.warning(f"Network error for {identifier} at {url}: {e}")
                continue

            attempt.status = status
            if not 200 <= status < 300:
                _logger.debug(f"Mirror miss for {identifier}: HTTP {status} at {url}")
                continue

            _logger.info(f"{dest_path} downloaded ({size} bytes)")
            return DownloadResult(
                identifier=identifier,
                outcome=DownloadOutcome.DOWNLOADED,
                path=dest_path,
                url=url,
                size_bytes=size,
                attempts=attempts,
            )

        if attempts and all(a.status is None for a in attempts):
            raise HarvestError(
                ErrorCode.E_DOWNLOAD,
                f"All mirrors failed for {identifier}",
                details="; ".join(f"{a.url}: {a.error}" for a in attempts)
            )

        _logger.info(f"No mirror has {identifier}")
        return DownloadResult(
            identifier=identifier,
            outcome=DownloadOutcome.NOT_FOUND,
            attempts=attempts,
        )

    def _fetch_to(self, url: str, dest_path: Path) -> tuple[int, int]:
        """
        Request one URL and stream a successful body into ``dest_path``.

        Returns:
            Tuple of (http_status, bytes_written). Nothing is written for a
            non-2xx status.
        """
        try:
            with open_url(url, timeout=self.timeout) as response:
                status = getattr(response, "status", 200)
                if not 200 <= status < 300:
                    return status, 0
                size = atomic_write_stream(
                    dest_path, iter_response(response, self.chunk_size)
                )
                return status, size
        except urllib.error.HTTPError as e:
            e.close()
            return e.code, 0
