import asyncio
import os
import sys
from typing import Dict, List, Optional

import pytest

# Ensure project root is on sys.path for imports like `core.*`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

from core.context import ProbeAccessors, EnvironmentSnapshot  # noqa: E402
from core.probe_registry import ProbeRegistry  # noqa: E402
from models.evidence import Category, Evidence  # noqa: E402


class FakeFileSystem:
    """In-memory filesystem: present paths map to their bytes (or None for stat-only)."""

    def __init__(self, files: Optional[Dict[str, Optional[bytes]]] = None,
                 errors: Optional[Dict[str, OSError]] = None):
        self.files = dict(files or {})
        self.errors = dict(errors or {})
        self.reads: List[str] = []

    def stat(self, path: str) -> os.stat_result:
        if path in self.errors:
            raise self.errors[path]
        if path not in self.files:
            raise FileNotFoundError(path)
        return os.stat_result((0o100644, 0, 0, 1, 0, 0, 0, 0, 0, 0))

    def read(self, path: str) -> bytes:
        self.reads.append(path)
        if path in self.errors:
            raise self.errors[path]
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path] or b""


class FakeConnection:
    def __init__(self):
        self.closed = False
        self.waited = False

    def close(self):
        self.closed = True

    async def wait_closed(self):
        self.waited = self.closed


class FakeNetwork:
    """Canned network: listed addresses/URLs answer after ``delay`` seconds."""

    def __init__(self, addresses=(), urls=(), delay: float = 0.0):
        self.addresses = set(addresses)
        self.urls = set(urls)
        self.delay = delay
        self.dials: List[tuple] = []
        self.gets: List[tuple] = []
        self.connections: List[FakeConnection] = []

    async def _wait(self, timeout: Optional[float]):
        if self.delay:
            if timeout is not None and self.delay > timeout:
                await asyncio.sleep(timeout)
                raise asyncio.TimeoutError()
            await asyncio.sleep(self.delay)

    async def dial_with_timeout(self, address: str, timeout: float):
        self.dials.append((address, timeout))
        await self._wait(timeout)
        if address not in self.addresses:
            raise ConnectionRefusedError(address)
        conn = FakeConnection()
        self.connections.append(conn)
        return conn

    async def http_get(self, url: str, timeout: Optional[float] = None):
        import httpx
        self.gets.append((url, timeout))
        await self._wait(timeout)
        if url not in self.urls:
            raise httpx.ConnectError("connection refused")
        return httpx.Response(200)


class StaticProbe:
    """Synthetic probe returning fixed evidence and counting its calls."""

    def __init__(self, name: str, priority: int = 50, category: Category = Category.RUNTIME,
                 value: Optional[str] = "x", confidence: float = 0.5, log: Optional[list] = None):
        self.name = name
        self.priority = priority
        self.category = category
        self.value = value
        self.confidence = confidence
        self.calls = 0
        self.log = log

    async def detect(self, ctx):
        self.calls += 1
        if self.log is not None:
            self.log.append(self.name)
        if self.value is None:
            return None
        return Evidence(category=self.category, value=self.value, confidence=self.confidence, source=self.name)


class FailingProbe(StaticProbe):
    def __init__(self, name: str, priority: int = 50, error: Optional[Exception] = None, log=None):
        super().__init__(name, priority, log=log)
        self.error = error or PermissionError("permission denied")

    async def detect(self, ctx):
        self.calls += 1
        if self.log is not None:
            self.log.append(self.name)
        raise self.error


class SlowProbe(StaticProbe):
    """Blocks for ``delay`` seconds before answering; records whether it was cancelled."""

    def __init__(self, name: str, delay: float, priority: int = 10, **kwargs):
        super().__init__(name, priority, **kwargs)
        self.delay = delay
        self.cancelled = False

    async def detect(self, ctx):
        self.calls += 1
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return await super().detect(ctx)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_fs():
    return FakeFileSystem()


@pytest.fixture
def make_accessors():
    def _make(files=None, env=None, errors=None, network=None, hostname="testhost", timeout=2.0):
        return ProbeAccessors(
            fs=FakeFileSystem(files, errors),
            network=network or FakeNetwork(),
            env=EnvironmentSnapshot(env or {}),
            timeout=timeout,
            hostname=lambda: hostname,
        )
    return _make


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def isolated_registry():
    """Snapshot the probe registry and restore it after the test."""
    probes = dict(ProbeRegistry._probes)
    order = list(ProbeRegistry._order)
    types = dict(ProbeRegistry._probe_types)
    yield ProbeRegistry
    ProbeRegistry.clear()
    ProbeRegistry._probes.update(probes)
    ProbeRegistry._order.extend(order)
    ProbeRegistry._probe_types.update(types)
