"""
Pytest configuration and shared fixtures for pdbharvest unit tests.

Provides a fake web (URL -> body/status/exception) that replaces the
module-level ``open_url`` of the lookup and mirror modules, and factory
functions for configurations and lookup payloads.
"""

import io
import threading
import urllib.error
from pathlib import Path

import pytest

from pdbharvest.lib.config import HarvestConfig


LOOKUP_URL = "https://lookup.test/uniprotkb"
MIRROR_A = "https://mirror-a.test/download/%.cif.gz"
MIRROR_B = "https://mirror-b.test/files/%.cif"
MIRROR_C = "https://mirror-c.test/pdb/%.pdb"


# =============================================================================
# Factory Functions
# =============================================================================

def create_config(tmp_path: Path, **overrides) -> HarvestConfig:
    """
    Factory function to create a HarvestConfig rooted in tmp_path.

    Retries and backoff are disabled so failures are immediate.
    """
    values = {
        "save_path": tmp_path / "structures",
        "read_path": tmp_path / "targets.csv",
        "download_url": (MIRROR_A, MIRROR_B, MIRROR_C),
        "processor_limit": 2,
        "downloader_limit": 2,
        "lookup_url": LOOKUP_URL,
        "timeout": 5.0,
        "max_retries": 0,
        "retry_delay": 0.0,
    }
    values.update(overrides)
    return HarvestConfig(**values)


def uniprot_payload(*pdb_ids: str, entry: str = "TEST_HUMAN") -> bytes:
    """Factory function to create a flat-text lookup record."""
    lines = [
        f"ID   {entry}              Reviewed;        1210 AA.",
        "AC   P00533; O00688;",
        "DR   EMBL; X00588; CAA25240.1; -; mRNA.",
    ]
    for pdb_id in pdb_ids:
        lines.append(f"DR   PDB; {pdb_id}; X-ray; 2.60 A; A=695-1022.")
    for pdb_id in pdb_ids:
        lines.append(f"DR   PDBsum; {pdb_id}; -.")
    lines.append("//")
    return ("\n".join(lines) + "\n").encode("ascii")


def lookup_url(accession: str) -> str:
    """Lookup URL the fake web answers for an accession."""
    return f"{LOOKUP_URL}/{accession}.txt"


def mirror_url(template: str, pdb_id: str) -> str:
    """Resolved mirror URL for an identifier."""
    return template.replace("%", pdb_id)


# =============================================================================
# Fake Web
# =============================================================================

class FakeResponse:
    """Minimal stand-in for an urllib response."""

    def __init__(self, body: bytes, status: int = 200):
        self.status = status
        self._stream = io.BytesIO(body)

    def read(self, size: int = -1) -> bytes:
        return self._stream.read(size)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


class FakeWeb:
    """
    URL router replacing ``open_url``.

    Routes map a URL to bytes (200 response), an int (HTTPError with that
    status) or an exception instance (raised). Unknown URLs return 404.
    Every requested URL is recorded in ``requests``.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, url: str, timeout: float = 60):
        with self._lock:
            self.requests.append(url)
        route = self.routes.get(url, 404)
        if isinstance(route, BaseException):
            raise route
        if isinstance(route, int):
            raise urllib.error.HTTPError(url, route, "Fake error", {}, io.BytesIO(b""))
        return FakeResponse(route)

    def count(self, url: str) -> int:
        """Number of requests made for a URL."""
        with self._lock:
            return self.requests.count(url)


# =============================================================================
# Pytest Fixtures
# =============================================================================

@pytest.fixture
def fake_web(monkeypatch) -> FakeWeb:
    """Install a FakeWeb for the lookup and mirror modules."""
    web = FakeWeb()
    monkeypatch.setattr("pdbharvest.lib.uniprot.open_url", web)
    monkeypatch.setattr("pdbharvest.lib.mirrors.open_url", web)
    return web


@pytest.fixture
def config(tmp_path) -> HarvestConfig:
    """Default test configuration."""
    return create_config(tmp_path)


@pytest.fixture
def config_factory(tmp_path):
    """Provide the config factory bound to tmp_path."""
    def _factory(**overrides) -> HarvestConfig:
        return create_config(tmp_path, **overrides)
    return _factory
