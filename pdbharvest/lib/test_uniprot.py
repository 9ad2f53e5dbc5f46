"""
Unit tests for pdbharvest/lib/uniprot.py

Tests PDB cross-reference extraction and record lookup.
"""

import urllib.error

import pytest

from pdbharvest.conftest import FakeWeb, LOOKUP_URL, lookup_url, uniprot_payload
from pdbharvest.lib.errors import ErrorCode, HarvestError
from pdbharvest.lib.uniprot import (
    build_lookup_url,
    fetch_record,
    iter_pdb_ids,
    parse_pdb_ids,
)


# =============================================================================
# Test parse_pdb_ids
# =============================================================================

class TestParsePdbIds:
    """Tests for PDB identifier extraction."""

    def test_extracts_in_order_lowercased(self):
        """[P1] Should return lowercase identifiers in order of appearance."""
        payload = (
            b"ID   TEST\n"
            b"DR   PDB;    1ABC; X-ray;\n"
            b"DR   EMBL; X00588; CAA25240.1; -; mRNA.\n"
            b"DR   PDB;    2xyz; NMR;\n"
            b"//\n"
        )

        assert parse_pdb_ids(payload) == ["1abc", "2xyz"]

    def test_ignores_other_cross_references(self):
        """[P1] Should ignore PDBsum and other database lines."""
        payload = uniprot_payload("1IVO", "1M14")

        assert parse_pdb_ids(payload) == ["1ivo", "1m14"]

    def test_no_structures(self):
        """[P1] A record without PDB lines yields an empty list."""
        assert parse_pdb_ids(uniprot_payload()) == []
        assert parse_pdb_ids(b"") == []

    def test_keeps_duplicates(self):
        """[P2] Duplicate lines are not deduplicated by the parser."""
        payload = b"DR   PDB; 1ABC; X-ray;\nDR   PDB; 1ABC; NMR;\n"

        assert parse_pdb_ids(payload) == ["1abc", "1abc"]

    def test_crlf_line_endings(self):
        """[P2] Windows line endings should not affect extraction."""
        payload = b"DR   PDB; 3PP0; X-ray;\r\nDR   PDB; 4ZAU;\r\n"

        assert parse_pdb_ids(payload) == ["3pp0", "4zau"]

    def test_padded_identifier(self):
        """[P2] Extra blanks after the prefix should be tolerated."""
        assert parse_pdb_ids(b"DR   PDB;    1ABC; X-ray;\n") == ["1abc"]

    @pytest.mark.parametrize("line", [
        b"DR   PDB; 1A",
        b"DR   PDB;",
        b"DR   PDB; 1A-C; X-ray;",
    ])
    def test_malformed_line_raises_parse_error(self, line):
        """[P1] A truncated or non-alphanumeric window should raise E_PARSE."""
        with pytest.raises(HarvestError) as exc_info:
            parse_pdb_ids(b"ID   TEST\n" + line + b"\n")

        assert exc_info.value.error_code == ErrorCode.E_PARSE

    def test_iter_is_lazy(self):
        """[P3] iter_pdb_ids should yield valid ids before a later malformed line."""
        ids = iter_pdb_ids(b"DR   PDB; 1ABC;\nDR   PDB; ??\n")

        assert next(ids) == "1abc"
        with pytest.raises(HarvestError):
            next(ids)


# =============================================================================
# Test build_lookup_url
# =============================================================================

class TestBuildLookupUrl:
    """Tests for build_lookup_url."""

    def test_appends_txt(self):
        """[P1] Should build <base>/<accession>.txt."""
        assert build_lookup_url("https://rest.uniprot.org/uniprotkb/", "P00533") == (
            "https://rest.uniprot.org/uniprotkb/P00533.txt"
        )

    def test_accession_is_percent_encoded(self):
        """[P2] Non-ASCII or reserved characters should be encoded as one segment."""
        assert build_lookup_url(LOOKUP_URL, "P0é533") == f"{LOOKUP_URL}/P0%C3%A9533.txt"
        assert build_lookup_url(LOOKUP_URL, "P0/0533") == f"{LOOKUP_URL}/P0%2F0533.txt"

    def test_empty_accession(self):
        """[P1] An empty accession should raise E_INPUT_FORMAT."""
        with pytest.raises(HarvestError) as exc_info:
            build_lookup_url(LOOKUP_URL, "  ")

        assert exc_info.value.error_code == ErrorCode.E_INPUT_FORMAT


# =============================================================================
# Test fetch_record
# =============================================================================

class TestFetchRecord:
    """Tests for fetch_record with a fake web."""

    def test_returns_body(self, fake_web: FakeWeb):
        """[P1] Should return the record bytes on success."""
        fake_web.routes[lookup_url("P00533")] = uniprot_payload("1IVO")

        body = fetch_record("P00533", base_url=LOOKUP_URL, max_retries=0)

        assert parse_pdb_ids(body) == ["1ivo"]
        assert fake_web.requests == [lookup_url("P00533")]

    def test_not_found_is_fetch_error_without_retry(self, fake_web: FakeWeb):
        """[P1] A 404 should fail immediately with E_FETCH."""
        with pytest.raises(HarvestError) as exc_info:
            fetch_record("P99999", base_url=LOOKUP_URL, max_retries=3, retry_delay=0)

        assert exc_info.value.error_code == ErrorCode.E_FETCH
        assert "404" in exc_info.value.message
        assert fake_web.count(lookup_url("P99999")) == 1

    def test_server_error_is_retried(self, fake_web: FakeWeb, monkeypatch):
        """[P1] 5xx responses should be retried then reported as E_FETCH."""
        monkeypatch.setattr("pdbharvest.lib.net.time.sleep", lambda _: None)
        fake_web.routes[lookup_url("P00533")] = 503

        with pytest.raises(HarvestError) as exc_info:
            fetch_record("P00533", base_url=LOOKUP_URL, max_retries=2, retry_delay=0)

        assert exc_info.value.error_code == ErrorCode.E_FETCH
        assert fake_web.count(lookup_url("P00533")) == 3

    def test_network_error_is_fetch_error(self, fake_web: FakeWeb):
        """[P1] Connection failures should surface as E_FETCH."""
        fake_web.routes[lookup_url("P00533")] = urllib.error.URLError("Connection refused")

        with pytest.raises(HarvestError) as exc_info:
            fetch_record("P00533", base_url=LOOKUP_URL, max_retries=0)

        assert exc_info.value.error_code == ErrorCode.E_FETCH
        assert "Connection refused" in exc_info.value.details

    def test_invalid_request_is_fetch_error(self, fake_web: FakeWeb):
        """[P1] A request the HTTP client rejects should surface as E_FETCH."""
        fake_web.routes[lookup_url("P00533")] = UnicodeEncodeError(
            "ascii", "P0é533", 2, 3, "ordinal not in range(128)"
        )

        with pytest.raises(HarvestError) as exc_info:
            fetch_record("P00533", base_url=LOOKUP_URL, max_retries=2, retry_delay=0)

        assert exc_info.value.error_code == ErrorCode.E_FETCH
        assert fake_web.count(lookup_url("P00533")) == 1

    def test_recovers_after_transient_error(self, fake_web: FakeWeb, monkeypatch):
        """[P2] A transient failure followed by success should return the body."""
        monkeypatch.setattr("pdbharvest.lib.net.time.sleep", lambda _: None)
        url = lookup_url("P00533")
        responses = iter([TimeoutError("timed out"), uniprot_payload("1IVO")])

        def _flaky(request_url, timeout=60):
            route = next(responses)
            fake_web.routes[url] = route
            return fake_web(request_url, timeout)

        monkeypatch.setattr("pdbharvest.lib.uniprot.open_url", _flaky)

        body = fetch_record("P00533", base_url=LOOKUP_URL, max_retries=1, retry_delay=0)

        assert parse_pdb_ids(body) == ["1ivo"]
