"""Process identity: hostname and container ID gathered for each classification."""
import logging
import re
import socket
from typing import Callable, Optional

from fetch.filesystem import FileSystem, path_exists, read_text
from models.classification import UNDETERMINED, UNKNOWN_HOSTNAME

logger = logging.getLogger(__name__)

SELF_CGROUP = "/proc/self/cgroup"

# Most specific first: cgroup v1 docker, CoreOS systemd slices, then the
# v2 unified hierarchy where only the path carries the ID.
CONTAINER_ID_PATTERNS = [
    re.compile(r"cpu:/docker/([0-9a-z]+)"),
    re.compile(r"cpuset:/system\.slice/docker-([0-9a-z]+)"),
    re.compile(r"/docker/([0-9a-f]{64})"),
    re.compile(r"docker-([0-9a-f]{64})\.scope"),
]


def parse_container_id(cgroup: str) -> Optional[str]:
    """Extract a container ID from /proc/self/cgroup contents."""
    for pattern in CONTAINER_ID_PATTERNS:
        match = pattern.search(cgroup)
        if match:
            return match.group(1)
    return None


def get_container_id(fs: FileSystem) -> str:
    """Container ID of this process, or ``undetermined``."""
    try:
        cgroup = read_text(fs, SELF_CGROUP)
    except OSError as e:
        logger.debug(f"Cannot read {SELF_CGROUP}: {e}")
        return UNDETERMINED
    if not cgroup:
        return UNDETERMINED
    return parse_container_id(cgroup) or UNDETERMINED


def get_hostname(resolver: Callable[[], str] = socket.gethostname) -> str:
    """Hostname of this machine, or ``unknown`` if it cannot be resolved."""
    try:
        hostname = resolver()
    except OSError as e:
        logger.warning(f"Failed to get hostname: {e}")
        return UNKNOWN_HOSTNAME
    return hostname or UNKNOWN_HOSTNAME


def is_container(fs: FileSystem) -> bool:
    """Whether this process appears to run inside a container.

    Checks the Docker marker files, then falls back to looking for a
    container ID in the cgroup hierarchy. Advisory only.
    """
    try:
        if path_exists(fs, "/.dockerinit") or path_exists(fs, "/.dockerenv"):
            return True
    except OSError as e:
        logger.debug(f"Marker check failed: {e}")
    return get_container_id(fs) != UNDETERMINED
