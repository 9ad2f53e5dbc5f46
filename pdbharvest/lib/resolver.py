"""
pdbharvest Accession Resolver.

Resolves one accession: fetch its lookup record, extract the structure
identifiers, then download each identifier through a bounded pool that
belongs to this accession alone.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from pdbharvest.lib.config import HarvestConfig
from pdbharvest.lib.errors import ErrorCode, HarvestError
from pdbharvest.lib.io import ensure_dir
from pdbharvest.lib.mirrors import DownloadOutcome, DownloadResult, MirrorDownloader
from pdbharvest.lib.uniprot import fetch_record, parse_pdb_ids

# Module logger
_logger = logging.getLogger(__name__)


@dataclass
class AccessionResult:
    """
    Result of resolving one accession.

    Attributes:
        accession: The accession.
        identifiers: Distinct identifiers extracted, in order of appearance.
        downloaded: Identifiers downloaded in this run.
        already_present: Identifiers skipped because the file existed.
        not_found: Identifiers no mirror had.
        failed: Identifier -> error message for failed downloads.
        error: Error message when the accession itself failed.
    """

    accession: str
    identifiers: list[str] = field(default_factory=list)
    downloaded: list[str] = field(default_factory=list)
    already_present: list[str] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True when neither the accession nor any download failed."""
        return self.error is None and not self.failed

    @property
    def no_structures(self) -> bool:
        """True when the record was fetched but lists no structures."""
        return self.error is None and not self.identifiers

    def record(self, result: DownloadResult) -> None:
        """Add one download result."""
        if result.outcome == DownloadOutcome.DOWNLOADED:
            self.downloaded.append(result.identifier)
        elif result.outcome == DownloadOutcome.ALREADY_PRESENT:
            self.already_present.append(result.identifier)
        else:
            self.not_found.append(result.identifier)


class AccessionResolver:
    """
    Resolves accessions into downloaded structure files.

    Attributes:
        config: Run configuration.
        downloader: MirrorDownloader used for every identifier.
        download_slots: Shared semaphore when downloads are capped run-wide,
            None when each accession gets its own pool.

    Example:
        >>> resolver = AccessionResolver(config)
        >>> result = resolver.resolve("P00533", Path("out/group_0000/EGFR/P00533"))
    """

    def __init__(
        self,
        config: HarvestConfig,
        downloader: Optional[MirrorDownloader] = None,
        fetcher: Optional[Callable[[str], bytes]] = None
    ):
        self.config = config
        self.downloader = downloader or MirrorDownloader(
            config.download_url,
            timeout=config.timeout,
            chunk_size=config.chunk_size,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
        )
        self._fetcher = fetcher or self._fetch
        self.download_slots: Optional[threading.BoundedSemaphore] = None
        if config.downloader_scope == "global":
            self.download_slots = threading.BoundedSemaphore(config.downloader_limit)

    def _fetch(self, accession: str) -> bytes:
        return fetch_record(
            accession,
            base_url=self.config.lookup_url,
            timeout=self.config.timeout,
            max_retries=self.config.max_retries,
            retry_delay=self.config.retry_delay,
        )

    def resolve(self, accession: str, group_dir: Path) -> AccessionResult:
        """
        Fetch, parse and download everything for one accession.

        Download failures are logged and recorded in the result; they never
        cancel sibling downloads or fail the accession.

        Args:
            accession: UniProt accession.
            group_dir: Directory receiving this accession's files. Created
                only when there is something to download.

        Returns:
            AccessionResult.

        Raises:
            HarvestError: E_INPUT_FORMAT (empty accession), E_FETCH, E_PARSE,
                or E_IO when ``group_dir`` cannot be created.
        """
        if not accession.strip():
            raise HarvestError(ErrorCode.E_INPUT_FORMAT, "Empty accession")

        payload = self._fetcher(accession)
        identifiers = list(dict.fromkeys(parse_pdb_ids(payload)))
        result = AccessionResult(accession=accession, identifiers=identifiers)

        if not identifiers:
            _logger.warning(f"No PDB data found for {accession}")
            return result

        ensure_dir(group_dir)
        _logger.info(f"Downloading {len(identifiers)} structures for {accession}")

        with ThreadPoolExecutor(
            max_workers=self.config.downloader_limit,
            thread_name_prefix=f"download-{accession}",
        ) as pool:
            futures = {
                pool.submit(self._download_one, identifier, group_dir): identifier
                for identifier in identifiers
            }
            for future in as_completed(futures):
                identifier = futures[future]
                try:
                    result.record(future.result())
                except HarvestError as e:
                    _logger.error(
                        f"Failed to download {identifier} for {accession}: {e}",
                        extra={"fields": {
                            "accession": accession,
                            "identifier": identifier,
                            "error_code": e.error_code.value,
                        }},
                    )
                    result.failed[identifier] = str(e)

        _logger.info(
            f"{accession}: {len(result.downloaded)} downloaded, "
            f"{len(result.already_present)} present, "
            f"{len(result.not_found)} not found, {len(result.failed)} failed",
            extra={"fields": {
                "accession": accession,
                "downloaded": len(result.downloaded),
                "already_present": len(result.already_present),
                "not_found": len(result.not_found),
                "failed": len(result.failed),
            }},
        )
        return result

    def _download_one(self, identifier: str, group_dir: Path) -> DownloadResult:
        _logger.debug(f"PDB ID: {identifier}")
        if self.download_slots is None:
            return self.downloader.download(identifier, group_dir)
        with self.download_slots:
            return self.downloader.download(identifier, group_dir)
