"""
pdbharvest Orchestrator.

Runs every target of the input through a TargetProcessor, with at most
``processor_limit`` targets in flight. Targets are bucketed into group
directories of ``batch_size`` entries by input position. One target's
failure never cancels the others; every outcome ends up in the run
summary.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from pdbharvest.lib.config import HarvestConfig
from pdbharvest.lib.errors import HarvestError
from pdbharvest.lib.io import ensure_dir
from pdbharvest.lib.processor import TargetProcessor, TargetResult
from pdbharvest.lib.records import TargetRecord
from pdbharvest.lib.summary import RunSummary, collect_run_summary, generate_run_id

# Module logger
_logger = logging.getLogger(__name__)


def group_name(index: int, batch_size: int) -> str:
    """
    Return the group directory name for an input position.

    Example:
        >>> group_name(2500, 1000)
        'group_0002'
    """
    return f"group_{index // batch_size:04d}"


class Orchestrator:
    """
    Schedules targets under the global processor cap.

    Attributes:
        config: Run configuration.
        processor: TargetProcessor shared by all workers.

    Example:
        >>> orchestrator = Orchestrator(config)
        >>> summary = orchestrator.run(load_targets(config.read_path))
        >>> print(summary.describe())
    """

    def __init__(
        self,
        config: HarvestConfig,
        processor: Optional[TargetProcessor] = None
    ):
        self.config = config
        self.processor = processor or TargetProcessor(config)

    def group_dir(self, index: int) -> Path:
        """Return the group directory for an input position."""
        return self.config.save_path / group_name(index, self.config.batch_size)

    def run(self, records: Iterable[TargetRecord], run_id: Optional[str] = None) -> RunSummary:
        """
        Process every record and return the run summary.

        Records are consumed lazily: the submission loop blocks while
        ``processor_limit`` targets are in flight.

        Args:
            records: Target records in input order.
            run_id: Run identifier (default: start timestamp).

        Returns:
            RunSummary of the whole run.
        """
        started_at = datetime.now(timezone.utc)
        run_id = run_id or generate_run_id(started_at)
        limit = self.config.processor_limit
        _logger.info(
            f"Run {run_id} started: processor_limit={limit}, "
            f"downloader_limit={self.config.downloader_limit} "
            f"({self.config.downloader_scope}), save_path={self.config.save_path}"
        )

        results: list[TargetResult] = []
        futures: list[Future] = []
        slots = threading.BoundedSemaphore(limit)
        input_error: Optional[str] = None

        with ThreadPoolExecutor(max_workers=limit, thread_name_prefix="target") as executor:
            try:
                for index, record in enumerate(records):
                    try:
                        group_dir = ensure_dir(self.group_dir(index))
                    except HarvestError as e:
                        _logger.error(f"Failed to prepare group for {record.name}: {e}")
                        results.append(TargetResult.failed(index, record, str(e)))
                        continue

                    slots.acquire()
                    try:
                        future = executor.submit(self._process_one, record, group_dir, index)
                    except BaseException:
                        slots.release()
                        raise
                    future.add_done_callback(lambda _: slots.release())
                    futures.append(future)
            except HarvestError as e:
                # Targets already submitted still complete and are reported
                _logger.error(
                    f"Stopped reading targets: {e}",
                    extra={"fields": {"error_code": e.error_code.value}},
                )
                input_error = str(e)

            for future in futures:
                results.append(future.result())

        summary = collect_run_summary(
            results, run_id, started_at, datetime.now(timezone.utc),
            input_error=input_error,
        )
        log = _logger.warning if summary.failure_count else _logger.info
        log(
            f"Procedure completed: {summary.describe()}",
            extra={"fields": {"summary": summary.to_dict()}},
        )
        return summary

    def _process_one(self, record: TargetRecord, group_dir: Path, index: int) -> TargetResult:
        """Run one target, converting any failure into a failed result."""
        try:
            return self.processor.process(record, group_dir, index)
        except HarvestError as e:
            _logger.error(
                f"Failed to process data for {record.name}: {e}",
                extra={"fields": {"target": record.id, "error_code": e.error_code.value}},
            )
            return TargetResult.failed(index, record, str(e))
        except Exception as e:
            _logger.exception(f"Unexpected error processing {record.name}")
            return TargetResult.failed(index, record, f"{type(e).__name__}: {e}")
