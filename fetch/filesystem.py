"""Filesystem accessor used by probes.

Probes never touch ``os`` directly; they receive a FileSystem so tests can
hand them canned contents.
"""
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

# Errors that mean "the marker is not there" rather than "the read failed".
ABSENT_ERRORS = (FileNotFoundError, NotADirectoryError)


class FileSystem(Protocol):
    def stat(self, path: str) -> os.stat_result: ...

    def read(self, path: str) -> bytes: ...


class DefaultFileSystem:
    """FileSystem backed by the real operating system."""

    def stat(self, path: str) -> os.stat_result:
        return os.stat(path)

    def read(self, path: str) -> bytes:
        return Path(path).read_bytes()


def path_exists(fs: FileSystem, path: str) -> bool:
    """True if ``path`` exists. Unexpected I/O errors propagate."""
    try:
        fs.stat(path)
    except ABSENT_ERRORS:
        return False
    logger.debug(f"Marker present: {path}")
    return True


def read_text(fs: FileSystem, path: str) -> Optional[str]:
    """Contents of ``path`` as text, or None if it does not exist."""
    try:
        data = fs.read(path)
    except ABSENT_ERRORS:
        return None
    return data.decode("utf-8", errors="replace")
