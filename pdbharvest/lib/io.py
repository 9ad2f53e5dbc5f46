"""
pdbharvest I/O Utilities.

This module provides the filesystem primitives the harvest pipeline uses
as its only cache:

- Directory creation that maps OS failures to HarvestError
- Exclusive creation of empty marker files
- Atomic writes: content lands in a unique temporary file in the target
  directory and is renamed onto the final path, so a file that exists is
  always complete
"""

import errno
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable

from pdbharvest.lib.errors import ErrorCode, HarvestError

# Module logger
_logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


def _io_error(action: str, path: Path, exc: OSError) -> HarvestError:
    """Map an OSError to the matching HarvestError."""
    code = ErrorCode.E_DISK_FULL if exc.errno == errno.ENOSPC else ErrorCode.E_IO
    return HarvestError(code, f"Cannot {action} {path}", details=str(exc))


def ensure_dir(path: Path) -> Path:
    """
    Create a directory (and parents) if it does not exist.

    Args:
        path: Directory to create.

    Returns:
        The same path, for chaining.

    Raises:
        HarvestError: E_IO or E_DISK_FULL if the directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise _io_error("create directory", path, e) from e
    return path


def touch_exclusive(path: Path) -> bool:
    """
    Create an empty file only if nothing exists at ``path``.

    Uses exclusive-create mode, so two concurrent callers can never both
    believe they created the file.

    Args:
        path: File to create.

    Returns:
        True if the file was created, False if it already existed.

    Raises:
        HarvestError: E_IO or E_DISK_FULL on any other failure.
    """
    try:
        with open(path, "x"):
            pass
    except FileExistsError:
        return False
    except OSError as e:
        raise _io_error("create file", path, e) from e
    return True


def get_temp_path(path: Path) -> Path:
    """
    Get a unique temporary file path next to ``path``.

    The name is hidden (leading dot) and unique per call, so concurrent
    writers of the same destination never share a temporary file.

    Example:
        >>> get_temp_path(Path("out/1abc.cif.gz")).name.startswith(".1abc.cif.gz.")
        True
    """
    fd, name = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=TEMP_SUFFIX,
    )
    os.close(fd)
    return Path(name)


def atomic_write_stream(path: Path, chunks: Iterable[bytes]) -> int:
    """
    Atomically write a stream of byte chunks to a file.

    Chunks are written to a unique temporary file which is then renamed
    onto ``path`` with ``os.replace``. If two writers race on the same
    path the last rename wins and readers never see a torn file.

    On failure the temporary file is removed and the exception re-raised.
    Exceptions raised by the chunk iterable (e.g. network errors while
    reading a response) propagate unchanged; local write failures are
    raised as HarvestError.

    Args:
        path: Target file path. Its parent directory must exist.
        chunks: Iterable of byte chunks.

    Returns:
        Number of bytes written.
    """
    try:
        temp_path = get_temp_path(path)
    except OSError as e:
        raise _io_error("write", path, e) from e

    total = 0
    try:
        with open(temp_path, "wb") as f:
            for chunk in chunks:
                try:
                    f.write(chunk)
                except OSError as e:
                    raise _io_error("write", path, e) from e
                total += len(chunk)
        try:
            os.replace(temp_path, path)
        except OSError as e:
            raise _io_error("rename onto", path, e) from e
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    return total


def atomic_write(path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Atomically write text content to a file, creating parent directories.

    Args:
        path: Target file path.
        content: Text content to write.
        encoding: Text encoding (default: utf-8).

    Example:
        >>> atomic_write(Path("output.txt"), "Hello, World!")
    """
    ensure_dir(path.parent)
    atomic_write_stream(path, [content.encode(encoding)])


def atomic_write_json(path: Path, data: Any, indent: int = 2) -> None:
    """
    Atomically write JSON data to a file.

    Example:
        >>> atomic_write_json(Path("data.json"), {"key": "value"})
    """
    content = json.dumps(data, ensure_ascii=False, indent=indent)
    atomic_write(path, content + "\n")
