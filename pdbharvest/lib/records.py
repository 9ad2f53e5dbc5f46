"""
Target record loading for pdbharvest.

Reads a delimited target export (ChEMBL column order: target id, target
name, accession field) into immutable TargetRecord values.
"""

import csv
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from pdbharvest.lib.errors import ErrorCode, HarvestError

# Module logger
_logger = logging.getLogger(__name__)

# Characters never allowed in a single path component
_UNSAFE_PATH_CHARS = re.compile(r"[/\\\x00]")


@dataclass(frozen=True)
class TargetRecord:
    """
    One biological target.

    Attributes:
        id: Primary identifier (e.g. CHEMBL203).
        name: Display name, used as the output directory name.
        accessions: Accessions in input order; may be empty.
    """

    id: str
    name: str
    accessions: tuple[str, ...] = ()


def split_accessions(field: str, separator: str = "|") -> tuple[str, ...]:
    """
    Split an accession field into its accessions.

    Blank fragments are dropped.

    Example:
        >>> split_accessions("P00533| Q9Y6K9|")
        ('P00533', 'Q9Y6K9')
    """
    if not field:
        return ()
    return tuple(part.strip() for part in field.split(separator) if part.strip())


def sanitize_name(name: str) -> str:
    """
    Make a string safe to use as one path component.

    Path separators and NUL are replaced by ``_``; names that would refer
    to the current or parent directory become ``_``.

    Example:
        >>> sanitize_name("Tyrosine/threonine kinase")
        'Tyrosine_threonine kinase'
    """
    cleaned = _UNSAFE_PATH_CHARS.sub("_", name.strip())
    if cleaned in ("", ".", ".."):
        return "_"
    return cleaned


def load_targets(
    path: Path,
    delimiter: str = ";",
    accession_separator: str = "|"
) -> Iterator[TargetRecord]:
    """
    Load target records from a delimited file.

    The first row is a header. Only the first three columns are read.
    Rows that are too short or have an empty id or name are skipped with a
    warning. Records are produced lazily.

    Args:
        path: Delimited target export.
        delimiter: Column delimiter (default: ";").
        accession_separator: Separator inside the accession column.

    Returns:
        Iterator of TargetRecord in file order.

    Raises:
        HarvestError: E_INPUT_MISSING if the file does not exist;
            E_INPUT_FORMAT from the iterator when the file cannot be
            decoded or tokenized.
    """
    path = Path(path)
    if not path.is_file():
        raise HarvestError(
            ErrorCode.E_INPUT_MISSING,
            f"Target file not found: {path}"
        )
    return _iter_targets(path, delimiter, accession_separator)


def _iter_targets(path: Path, delimiter: str, accession_separator: str) -> Iterator[TargetRecord]:
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f, delimiter=delimiter)
        try:
            yield from _iter_rows(reader, path, accession_separator)
        except (UnicodeDecodeError, csv.Error) as e:
            raise HarvestError(
                ErrorCode.E_INPUT_FORMAT,
                f"Cannot read {path} after line {reader.line_num}",
                details=str(e)
            ) from e


def _iter_rows(reader, path: Path, accession_separator: str) -> Iterator[TargetRecord]:
    header = next(reader, None)
    if header is None:
        _logger.warning(f"Target file is empty: {path}")
        return

    for row in reader:
        line_no = reader.line_num
        if not any(cell.strip() for cell in row):
            continue
        if len(row) < 3:
            _logger.warning(
                f"Skipping line {line_no} of {path}: expected 3 columns, got {len(row)}"
            )
            continue

        target_id, name, accession_field = (cell.strip() for cell in row[:3])
        if not target_id or not name:
            _logger.warning(f"Skipping line {line_no} of {path}: empty id or name")
            continue

        yield TargetRecord(
            id=target_id,
            name=name,
            accessions=split_accessions(accession_field, accession_separator),
        )
