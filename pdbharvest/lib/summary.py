"""
pdbharvest Run Summary.

This module aggregates per-target results into the terminal summary of a
run, decides the exit code, and writes the summary as JSON.
"""

import json
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from pdbharvest.lib.errors import EXIT_PARTIAL_FAILURE, EXIT_SUCCESS
from pdbharvest.lib.io import atomic_write_json
from pdbharvest.lib.processor import TargetResult, TargetStatus

# Summary file written under save_path
SUMMARY_FILENAME = "run_summary.json"


# =============================================================================
# RunSummary Data Class
# =============================================================================

@dataclass
class RunSummary:
    """
    Aggregated outcome of a harvest run.

    Attributes:
        run_id: Identifier of the run (UTC timestamp).
        started_at: ISO 8601 start time.
        finished_at: ISO 8601 end time.
        runtime_seconds: Wall clock duration.
        targets_total: Targets read from the input.
        targets_failed: Targets whose directory could not be prepared.
        targets_without_accessions: Targets with an empty accession field.
        accessions_total: Accessions attempted.
        accessions_failed: Accessions whose lookup or parse failed.
        accessions_without_structures: Accessions listing no structures.
        structures_downloaded: Files downloaded in this run.
        structures_present: Files skipped because they existed.
        structures_not_found: Identifiers no mirror had.
        structures_failed: Identifiers whose download failed.
        failures: One entry per failure with its location and message.
        input_error: Why reading the target file stopped early, if it did.
    """
    run_id: str
    started_at: str
    finished_at: str
    runtime_seconds: float
    targets_total: int = 0
    targets_failed: int = 0
    targets_without_accessions: int = 0
    accessions_total: int = 0
    accessions_failed: int = 0
    accessions_without_structures: int = 0
    structures_downloaded: int = 0
    structures_present: int = 0
    structures_not_found: int = 0
    structures_failed: int = 0
    failures: list[dict[str, str]] = field(default_factory=list)
    input_error: Optional[str] = None

    @property
    def failure_count(self) -> int:
        """Failed targets, accessions and downloads; an unreadable input counts as one."""
        return (
            self.targets_failed + self.accessions_failed + self.structures_failed
            + (1 if self.input_error else 0)
        )

    def exit_code(self, strict: bool = False) -> int:
        """
        Process exit code for this run.

        Failures of individual items only change the exit code in strict
        mode.
        """
        if strict and self.failure_count:
            return EXIT_PARTIAL_FAILURE
        return EXIT_SUCCESS

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data = asdict(self)
        data["failure_count"] = self.failure_count
        return data

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)

    def describe(self) -> str:
        """One-line human-readable summary."""
        text = (
            f"{self.targets_total} targets ({self.targets_failed} failed, "
            f"{self.targets_without_accessions} without accessions), "
            f"{self.accessions_total} accessions ({self.accessions_failed} failed, "
            f"{self.accessions_without_structures} without structures), "
            f"structures: {self.structures_downloaded} downloaded, "
            f"{self.structures_present} present, {self.structures_not_found} not found, "
            f"{self.structures_failed} failed"
        )
        if self.input_error:
            text += "; target input incomplete"
        return text


# =============================================================================
# Summary Collection Functions
# =============================================================================

def generate_run_id(now: Optional[datetime] = None) -> str:
    """Return a UTC timestamp usable as a run identifier."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%dT%H%M%SZ")


def collect_run_summary(
    results: Iterable[TargetResult],
    run_id: str,
    started_at: datetime,
    finished_at: datetime,
    input_error: Optional[str] = None
) -> RunSummary:
    """
    Aggregate target results into a RunSummary.

    Args:
        results: Per-target results (any order).
        run_id: Run identifier.
        started_at: Run start time (timezone aware).
        finished_at: Run end time (timezone aware).
        input_error: Error that stopped reading the input early, if any.

    Returns:
        Populated RunSummary.
    """
    summary = RunSummary(
        run_id=run_id,
        started_at=started_at.isoformat(),
        finished_at=finished_at.isoformat(),
        runtime_seconds=round((finished_at - started_at).total_seconds(), 3),
        input_error=input_error,
    )

    for result in sorted(results, key=lambda r: r.index):
        summary.targets_total += 1
        if result.status == TargetStatus.FAILED:
            summary.targets_failed += 1
            summary.failures.append({
                "target": result.target_id,
                "error": result.error or "",
            })
            continue
        if result.status == TargetStatus.NO_ACCESSIONS:
            summary.targets_without_accessions += 1

        for acc in result.accessions:
            summary.accessions_total += 1
            if acc.error is not None:
                summary.accessions_failed += 1
                summary.failures.append({
                    "target": result.target_id,
                    "accession": acc.accession,
                    "error": acc.error,
                })
                continue
            if acc.no_structures:
                summary.accessions_without_structures += 1

            summary.structures_downloaded += len(acc.downloaded)
            summary.structures_present += len(acc.already_present)
            summary.structures_not_found += len(acc.not_found)
            summary.structures_failed += len(acc.failed)
            for identifier, message in acc.failed.items():
                summary.failures.append({
                    "target": result.target_id,
                    "accession": acc.accession,
                    "identifier": identifier,
                    "error": message,
                })

    return summary


def get_summary_path(save_path: Path) -> Path:
    """
    Return the summary file path for a save root.

    Example:
        >>> get_summary_path(Path("structures"))
        PosixPath('structures/run_summary.json')
    """
    return save_path / SUMMARY_FILENAME


def write_run_summary(summary: RunSummary, save_path: Path) -> Path:
    """
    Write the run summary as JSON under ``save_path``.

    Returns:
        Path to the written file.
    """
    summary_path = get_summary_path(save_path)
    atomic_write_json(summary_path, summary.to_dict())
    return summary_path
