import asyncio
import logging
import os
import socket
import time
from typing import Callable, Dict, Iterable, List, Optional, Set

from core.cache import ResultCache
from core.context import DetectionContext, ProbeAccessors
from core.errors import DetectionCancelled
from core.identity import get_container_id, get_hostname
from core.probe_registry import ProbeRegistry
from core.reconciler import EvidenceReconciler, ProbeOutcome
from fetch.filesystem import DefaultFileSystem, FileSystem
from models.classification import ClassificationRecord, UNDETERMINED
from models.evidence import Category, Evidence

# Import all probes to trigger @ProbeRegistry.register decorators
import probes.runtime
import probes.scheduler
import probes.image
# Network probes (skipped by fast_probes)
import probes.network

DEFAULT_CACHE_TTL = 300  # seconds


def default_probes(accessors: Optional[ProbeAccessors] = None, exclude: Optional[Set[str]] = None) -> List[object]:
    """Every registered probe, network probes included."""
    return ProbeRegistry.instantiate_all(accessors or ProbeAccessors(), exclude=exclude)


def fast_probes(accessors: Optional[ProbeAccessors] = None, exclude: Optional[Set[str]] = None) -> List[object]:
    """Every registered probe except those that touch the network."""
    return ProbeRegistry.instantiate_all(accessors or ProbeAccessors(), exclude=exclude, include_network=False)


class Engine:
    def __init__(
        self,
        probes: Iterable[object],
        caching_enabled: bool = True,
        ttl_seconds: float = DEFAULT_CACHE_TTL,
        parallel: bool = False,
        fs: Optional[FileSystem] = None,
        hostname: Callable[[], str] = socket.gethostname,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the engine with a probe roster.

        Args:
            probes: Probes to run; the order given does not matter
            caching_enabled: Keep the last classification for ``ttl_seconds``
            ttl_seconds: How long a cached classification stays valid
            parallel: Run probes concurrently instead of one after another
            fs: Filesystem used to read the container ID
            hostname: Hostname resolver
            clock: Monotonic time source for the cache
        """
        self.logger = logging.getLogger(__name__)
        roster = list(probes)
        seen: Set[str] = set()
        for probe in roster:
            if not probe.name:
                raise ValueError(f"probe {probe!r} has no name")
            if probe.name in seen:
                raise ValueError(f"duplicate probe name: {probe.name}")
            seen.add(probe.name)

        # sorted() is stable, so equal priorities keep registration order
        self.probes = tuple(sorted(roster, key=lambda p: -p.priority))
        self.cache = ResultCache(ttl_seconds, clock=clock) if caching_enabled else None
        self.parallel = parallel
        self._fs = fs or DefaultFileSystem()
        self._hostname = hostname
        self.logger.info(f"Initialized engine with {len(self.probes)} probes "
                         f"(caching: {caching_enabled}, parallel: {parallel})")

    @classmethod
    def configure(cls, probes: Iterable[object], caching_enabled: bool = True,
                  ttl_seconds: float = DEFAULT_CACHE_TTL) -> "Engine":
        return cls(probes, caching_enabled=caching_enabled, ttl_seconds=ttl_seconds)

    async def detect_all(self, ctx: Optional[DetectionContext] = None) -> ClassificationRecord:
        """Run the probe roster and return the classification.

        Raises:
            DetectionCancelled: ``ctx`` was cancelled or its deadline passed
                (DeadlineExceeded). No partial record is returned.
        """
        if self.cache is not None:
            cached = self.cache.get()
            if cached is not None:
                self.logger.debug("Returning cached classification")
                return cached
            self.logger.debug("Classification cache miss")

        ctx = ctx or DetectionContext.background()
        try:
            if self.parallel:
                best = await self._run_parallel(ctx)
            else:
                best = await self._run_sequential(ctx)
        except DetectionCancelled as e:
            self.logger.info(f"Detection aborted: {e}")
            raise

        record = self._build_record(best)
        if self.cache is not None:
            self.cache.set(record)
        return record

    def invalidate_cache(self) -> None:
        if self.cache is not None:
            self.cache.invalidate()
            self.logger.debug("Classification cache invalidated")

    async def _run_sequential(self, ctx: DetectionContext) -> Dict[Category, Evidence]:
        outcomes: List[ProbeOutcome] = []
        for probe in self.probes:
            ctx.raise_if_done()
            outcomes.append(await self._run_probe(probe, ctx))
        return EvidenceReconciler.reconcile(outcomes)

    async def _run_parallel(self, ctx: DetectionContext) -> Dict[Category, Evidence]:
        ctx.raise_if_done()
        tasks = [asyncio.ensure_future(self._run_probe(probe, ctx)) for probe in self.probes]
        try:
            outcomes = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return EvidenceReconciler.reconcile_unordered(outcomes)

    async def _run_probe(self, probe, ctx: DetectionContext) -> ProbeOutcome:
        self.logger.debug(f"Running {probe.name} probe (priority {probe.priority})")
        try:
            evidence = await ctx.run(probe.detect(ctx))
        except DetectionCancelled:
            raise
        except Exception as e:
            # A probe timing out on its own is only a cancellation if the run is over
            ctx.raise_if_done()
            self.logger.warning(f"Error in {probe.name} probe: {e}")
            return ProbeOutcome(source=probe.name, priority=probe.priority, error=e)

        if evidence is not None:
            self.logger.debug(f"{probe.name} found {evidence.category.value}={evidence.value} "
                              f"(confidence {evidence.confidence:.2f})")
        return ProbeOutcome(source=probe.name, priority=probe.priority, evidence=evidence)

    def _build_record(self, best: Dict[Category, Evidence]) -> ClassificationRecord:
        def value_for(category: Category) -> str:
            evidence = best.get(category)
            return evidence.value if evidence else UNDETERMINED

        return ClassificationRecord(
            hostname=get_hostname(self._hostname),
            id=get_container_id(self._fs),
            image_format=value_for(Category.IMAGE_FORMAT),
            pid=os.getpid(),
            runtime=value_for(Category.RUNTIME),
            scheduler=value_for(Category.SCHEDULER),
        )
