import asyncio
import logging
import os
import socket
import time
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterator, Mapping, Optional

from core.errors import DetectionCancelled, DeadlineExceeded
from fetch.filesystem import DefaultFileSystem, FileSystem
from fetch.network import DefaultNetwork, Network

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 2.0  # seconds, per network probe


class EnvironmentSnapshot(Mapping[str, str]):
    """Read-only copy of environment variables taken at a single point in time."""

    def __init__(self, variables: Optional[Mapping[str, str]] = None):
        self._vars = MappingProxyType(dict(variables or {}))

    @classmethod
    def capture(cls, environ: Optional[Mapping[str, str]] = None) -> "EnvironmentSnapshot":
        return cls(os.environ if environ is None else environ)

    def __getitem__(self, key: str) -> str:
        return self._vars[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._vars)

    def __len__(self) -> int:
        return len(self._vars)

    def __repr__(self) -> str:
        return f"EnvironmentSnapshot({len(self._vars)} variables)"


@lru_cache(maxsize=1)
def process_environment() -> EnvironmentSnapshot:
    """Environment of this process, captured on first use and never refreshed."""
    return EnvironmentSnapshot.capture()


@dataclass(frozen=True)
class ProbeAccessors:
    """Collaborators handed to every probe at construction time."""
    fs: FileSystem = field(default_factory=DefaultFileSystem)
    network: Network = field(default_factory=DefaultNetwork)
    env: Mapping[str, str] = field(default_factory=process_environment)
    timeout: float = DEFAULT_PROBE_TIMEOUT
    hostname: Callable[[], str] = socket.gethostname


class DetectionContext:
    """Cancellation and deadline signal shared by one detection run.

    ``cancel()`` must be called from the thread running the event loop.
    """

    def __init__(self, timeout: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.deadline: Optional[float] = clock() + timeout if timeout is not None else None
        self._cancelled = False
        self._cancel_event: Optional[asyncio.Event] = None

    @classmethod
    def background(cls) -> "DetectionContext":
        """A context that never expires and is never cancelled by itself."""
        return cls()

    def cancel(self) -> None:
        self._cancelled = True
        if self._cancel_event is not None:
            self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    def done(self) -> bool:
        return self._cancelled or self.expired()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def timeout_for(self, timeout: float) -> float:
        """The tighter of ``timeout`` and the time left on this context."""
        remaining = self.remaining()
        if remaining is None:
            return timeout
        return min(timeout, remaining)

    def raise_if_done(self) -> None:
        if self._cancelled:
            raise DetectionCancelled()
        if self.expired():
            raise DeadlineExceeded()

    async def run(self, awaitable: Awaitable[Any]) -> Any:
        """Await ``awaitable`` unless this context is cancelled or expires first.

        The pending operation is cancelled and awaited before the
        cancellation error is raised, so nothing is left running.
        """
        if self.done():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_done()
        if self._cancel_event is None:
            self._cancel_event = asyncio.Event()
            if self._cancelled:
                self._cancel_event.set()

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        except BaseException:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        if self._cancelled:
            raise DetectionCancelled()
        raise DeadlineExceeded()
