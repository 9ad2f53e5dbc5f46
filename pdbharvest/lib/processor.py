"""
pdbharvest Target Processor.

Processes one target: create its directory and marker file, then resolve
its accessions one at a time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from pdbharvest.lib.config import HarvestConfig
from pdbharvest.lib.errors import HarvestError
from pdbharvest.lib.io import ensure_dir, touch_exclusive
from pdbharvest.lib.records import TargetRecord, sanitize_name
from pdbharvest.lib.resolver import AccessionResolver, AccessionResult

# Module logger
_logger = logging.getLogger(__name__)


class TargetStatus(str, Enum):
    """Final status of one target."""

    COMPLETED = "completed"
    NO_ACCESSIONS = "no_accessions"
    FAILED = "failed"


@dataclass
class TargetResult:
    """
    Result of processing one target.

    Attributes:
        index: Position of the target in the input.
        target_id: Target primary identifier.
        name: Target name.
        status: Completed, no accessions, or failed.
        directory: Target output directory.
        accessions: Per-accession results in input order.
        error: Error message when the target itself failed.
    """

    index: int
    target_id: str
    name: str
    status: TargetStatus = TargetStatus.COMPLETED
    directory: Optional[Path] = None
    accessions: list[AccessionResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True when the target and all its accessions succeeded."""
        return self.status != TargetStatus.FAILED and all(a.ok for a in self.accessions)

    @classmethod
    def failed(cls, index: int, target: TargetRecord, error: str) -> "TargetResult":
        """Build the result of a target that could not be processed."""
        return cls(
            index=index,
            target_id=target.id,
            name=target.name,
            status=TargetStatus.FAILED,
            error=error,
        )


class TargetProcessor:
    """
    Processes targets within a group directory.

    Accessions of one target are resolved sequentially; concurrency comes
    from the download pool of each accession and from the orchestrator
    running several targets at once.

    Example:
        >>> processor = TargetProcessor(config)
        >>> result = processor.process(target, Path("out/group_0000"))
    """

    def __init__(
        self,
        config: HarvestConfig,
        resolver: Optional[AccessionResolver] = None
    ):
        self.config = config
        self.resolver = resolver or AccessionResolver(config)

    @staticmethod
    def target_dir(target: TargetRecord, group_dir: Path) -> Path:
        """Return the output directory of a target."""
        return group_dir / sanitize_name(target.name)

    def process(self, target: TargetRecord, group_dir: Path, index: int = 0) -> TargetResult:
        """
        Process one target.

        Args:
            target: The target record.
            group_dir: Existing group directory for this target.
            index: Position of the target in the input.

        Returns:
            TargetResult. Accession failures are recorded, not raised.

        Raises:
            HarvestError: E_IO / E_DISK_FULL when the target directory or
                marker file cannot be created.
        """
        _logger.info(f"Processing data for {target.name}")
        path = self.target_dir(target, group_dir)
        _logger.debug(f"Creating folder: {path}")
        ensure_dir(path)

        if touch_exclusive(path / sanitize_name(target.id)):
            _logger.debug(f"Created marker {target.id} in {path}")

        result = TargetResult(
            index=index,
            target_id=target.id,
            name=target.name,
            directory=path,
        )

        if not target.accessions:
            _logger.warning(f"No UniProt data for {target.name}")
            result.status = TargetStatus.NO_ACCESSIONS
            return result

        for accession in target.accessions:
            try:
                accession_result = self.resolver.resolve(
                    accession, path / sanitize_name(accession)
                )
            except HarvestError as e:
                _logger.error(
                    f"Failed to resolve {target.name}:{accession}: {e}",
                    extra={"fields": {
                        "target": target.id,
                        "accession": accession,
                        "error_code": e.error_code.value,
                    }},
                )
                accession_result = AccessionResult(accession=accession, error=str(e))
            except Exception as e:
                _logger.exception(f"Unexpected error resolving {target.name}:{accession}")
                accession_result = AccessionResult(
                    accession=accession, error=f"{type(e).__name__}: {e}"
                )
            result.accessions.append(accession_result)

        _logger.info(f"Target {target.name} processed")
        return result
