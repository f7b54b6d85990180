import asyncio
import httpx
import logging
from typing import Optional, Protocol, Tuple

# Default timeout configuration (in seconds)
DEFAULT_TIMEOUT = 2.0
DEFAULT_CONNECT_TIMEOUT = 2.0

logger = logging.getLogger(__name__)


class Network(Protocol):
    async def dial_with_timeout(self, address: str, timeout: float) -> asyncio.StreamWriter: ...

    async def http_get(self, url: str, timeout: Optional[float] = None) -> httpx.Response: ...


def split_address(address: str) -> Tuple[str, int]:
    """Split ``host:port`` into its parts."""
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"address must be host:port, got {address!r}")
    return host, int(port)


class DefaultNetwork:
    """Network accessor using asyncio streams for TCP and httpx for HTTP."""

    async def dial_with_timeout(self, address: str, timeout: float) -> asyncio.StreamWriter:
        """
        Open a TCP connection to ``address`` within ``timeout`` seconds.

        Returns:
            The stream writer of the open connection; the caller closes it.
        """
        host, port = split_address(address)
        logger.debug(f"TCP dial {host}:{port} (timeout: {timeout}s)")
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
        return writer

    async def http_get(self, url: str, timeout: Optional[float] = None) -> httpx.Response:
        """
        GET ``url`` with a total timeout.

        Args:
            url: The URL to fetch
            timeout: Total request timeout in seconds (default: 2s)

        Returns:
            httpx.Response object
        """
        if timeout is None:
            timeout = DEFAULT_TIMEOUT
        logger.debug(f"HTTP GET {url} (timeout: {timeout}s)")

        timeout_config = httpx.Timeout(
            timeout=timeout,
            connect=min(timeout, DEFAULT_CONNECT_TIMEOUT)
        )

        try:
            async with httpx.AsyncClient(timeout=timeout_config, follow_redirects=False) as client:
                response = await client.get(url)
                logger.debug(f"HTTP {response.status_code} {url}")
                # Any answer counts as reachability; status is left to the caller
                return response
        except httpx.TimeoutException as e:
            logger.debug(f"HTTP timeout for {url}: {e}")
            raise
        except httpx.RequestError as e:
            logger.debug(f"HTTP request error for {url}: {e}")
            raise
