"""
Unit tests for pdbharvest/lib/records.py

Tests target export parsing and path-safe names.
"""

from pathlib import Path

import pytest

from pdbharvest.lib.errors import ErrorCode, HarvestError
from pdbharvest.lib.records import (
    TargetRecord,
    load_targets,
    sanitize_name,
    split_accessions,
)


HEADER = "ChEMBL ID;Name;UniProt Accessions;Type;Organism\n"


def _write_targets(tmp_path: Path, body: str, header: str = HEADER) -> Path:
    path = tmp_path / "targets.csv"
    path.write_text(header + body, encoding="utf-8")
    return path


# =============================================================================
# Test split_accessions
# =============================================================================

class TestSplitAccessions:
    """Tests for split_accessions."""

    def test_splits_on_separator(self):
        """[P1] Should split and strip accessions in order."""
        assert split_accessions("P00533|Q9Y6K9") == ("P00533", "Q9Y6K9")

    def test_drops_blank_fragments(self):
        """[P1] Should drop empty fragments and whitespace."""
        assert split_accessions(" P00533 || ") == ("P00533",)

    def test_empty_field(self):
        """[P1] An empty field means no accessions."""
        assert split_accessions("") == ()

    def test_custom_separator(self):
        """[P2] Should honor a custom separator."""
        assert split_accessions("A1,B2", separator=",") == ("A1", "B2")


# =============================================================================
# Test sanitize_name
# =============================================================================

class TestSanitizeName:
    """Tests for sanitize_name."""

    @pytest.mark.parametrize("name,expected", [
        ("Epidermal growth factor receptor erbB1", "Epidermal growth factor receptor erbB1"),
        ("Tyrosine/threonine kinase", "Tyrosine_threonine kinase"),
        ("back\\slash", "back_slash"),
        ("..", "_"),
        (".", "_"),
        ("   ", "_"),
    ])
    def test_sanitize(self, name, expected):
        """[P1] Should keep names usable as a single path component."""
        assert sanitize_name(name) == expected


# =============================================================================
# Test load_targets
# =============================================================================

class TestLoadTargets:
    """Tests for load_targets."""

    def test_reads_records_in_order(self, tmp_path: Path):
        """[P1] Should yield one record per row after the header."""
        # Given
        path = _write_targets(tmp_path, (
            "CHEMBL203;Epidermal growth factor receptor erbB1;P00533;SINGLE PROTEIN;Homo sapiens\n"
            "CHEMBL2095;Kinase complex;P11362|P21802;PROTEIN COMPLEX;Homo sapiens\n"
        ))

        # When
        records = list(load_targets(path))

        # Then
        assert records == [
            TargetRecord("CHEMBL203", "Epidermal growth factor receptor erbB1", ("P00533",)),
            TargetRecord("CHEMBL2095", "Kinase complex", ("P11362", "P21802")),
        ]

    def test_empty_accession_field(self, tmp_path: Path):
        """[P1] A blank accession column should produce an empty tuple."""
        path = _write_targets(tmp_path, "CHEMBL612;Unchecked;;UNCHECKED;\n")

        (record,) = load_targets(path)

        assert record.accessions == ()

    def test_quoted_fields(self, tmp_path: Path):
        """[P2] Quoted fields may contain the delimiter."""
        path = _write_targets(tmp_path, '"CHEMBL1";"Name; with semicolon";"P1"\n')

        (record,) = load_targets(path)

        assert record.name == "Name; with semicolon"

    def test_short_and_blank_rows_skipped(self, tmp_path: Path):
        """[P1] Rows too short or without id/name should be skipped."""
        path = _write_targets(tmp_path, (
            "CHEMBL1;only two\n"
            "\n"
            ";No id;P1\n"
            "CHEMBL2;Valid;P2\n"
        ))

        records = list(load_targets(path))

        assert [r.id for r in records] == ["CHEMBL2"]

    def test_header_only(self, tmp_path: Path):
        """[P2] A header-only file yields nothing."""
        path = _write_targets(tmp_path, "")

        assert list(load_targets(path)) == []

    def test_empty_file(self, tmp_path: Path):
        """[P2] An empty file yields nothing."""
        path = _write_targets(tmp_path, "", header="")

        assert list(load_targets(path)) == []

    def test_custom_delimiters(self, tmp_path: Path):
        """[P2] Should honor custom column and accession separators."""
        path = _write_targets(tmp_path, "CHEMBL1,Name,P1;P2\n", header="id,name,acc\n")

        (record,) = load_targets(path, delimiter=",", accession_separator=";")

        assert record.accessions == ("P1", "P2")

    def test_invalid_utf8_raises_format_error(self, tmp_path: Path):
        """[P1] An undecodable byte should raise E_INPUT_FORMAT while iterating."""
        path = tmp_path / "targets.csv"
        path.write_bytes(
            HEADER.encode("utf-8")
            + b'"CHEMBL1";"Valid";"P1"\n'
            + b'"CHEMBL2";"B\xff";""\n'
        )
        records = load_targets(path)

        with pytest.raises(HarvestError) as exc_info:
            list(records)

        assert exc_info.value.error_code == ErrorCode.E_INPUT_FORMAT
        assert "utf-8" in exc_info.value.details

    def test_missing_file_raises_eagerly(self, tmp_path: Path):
        """[P1] A missing file should raise E_INPUT_MISSING before iteration."""
        with pytest.raises(HarvestError) as exc_info:
            load_targets(tmp_path / "missing.csv")

        assert exc_info.value.error_code == ErrorCode.E_INPUT_MISSING
