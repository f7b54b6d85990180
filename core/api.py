"""Library entry points built around a process-wide default engine.

    from core.api import profile
    record = profile(timeout=5)
    print(record.runtime, record.scheduler)
"""
import asyncio
import logging
import threading
from typing import List, Optional

from core.config import CriprofConfig
from core.context import DetectionContext, ProbeAccessors, process_environment
from core.engine import Engine, default_probes, fast_probes
from core.errors import DetectionCancelled
from models.classification import ClassificationRecord
from models.marker import MarkerRule
from probes.markers import build_marker_probes
from rules.rules_loader import load_rules, parse_rules

logger = logging.getLogger(__name__)

DEFAULT_ENGINE_TTL = 300  # seconds

_default_engine: Optional[Engine] = None
_default_engine_lock = threading.Lock()


def load_marker_rules(config: CriprofConfig) -> List[MarkerRule]:
    """Marker rules from the config file plus any rules directory."""
    rules = parse_rules(config.markers, origin=config.source or "config")
    if config.rules_dir:
        rules.extend(load_rules(config.rules_dir))
    return rules


def build_engine(
    config: CriprofConfig,
    accessors: Optional[ProbeAccessors] = None,
    rules: Optional[List[MarkerRule]] = None,
) -> Engine:
    """Assemble an Engine from configuration: coded probes plus marker rules."""
    accessors = accessors or ProbeAccessors(env=process_environment(), timeout=config.network_timeout_seconds)
    exclude = set(config.exclude)

    if config.fast:
        roster: List[object] = fast_probes(accessors, exclude=exclude)
    else:
        roster = default_probes(accessors, exclude=exclude)

    if rules is None:
        rules = load_marker_rules(config)
    taken = {probe.name for probe in roster}
    for probe in build_marker_probes(rules, accessors):
        if probe.name in exclude:
            continue
        if probe.name in taken:
            logger.warning(f"Marker rule '{probe.name}' clashes with an existing probe name, skipping")
            continue
        roster.append(probe)
        taken.add(probe.name)

    return Engine(
        roster,
        caching_enabled=config.cache_enabled,
        ttl_seconds=config.cache_ttl_seconds,
        parallel=config.parallel,
        fs=accessors.fs,
        hostname=accessors.hostname,
    )


def get_default_engine() -> Engine:
    """The shared engine: full roster, caching on, five minute TTL."""
    global _default_engine
    with _default_engine_lock:
        if _default_engine is None:
            _default_engine = Engine(default_probes(), caching_enabled=True, ttl_seconds=DEFAULT_ENGINE_TTL)
        return _default_engine


async def detect_with_engine(engine: Engine, ctx: Optional[DetectionContext] = None) -> ClassificationRecord:
    """Run ``engine``; cancellation propagates to the caller."""
    return await engine.detect_all(ctx)


async def profile_async(ctx: Optional[DetectionContext] = None) -> ClassificationRecord:
    """Classify with the default engine. Never raises for detection problems."""
    try:
        return await get_default_engine().detect_all(ctx)
    except DetectionCancelled as e:
        logger.warning(f"Detection did not complete ({e}), returning fallback classification")
        return ClassificationRecord.fallback()


def profile(timeout: Optional[float] = None) -> ClassificationRecord:
    """Synchronous classification with the default engine.

    Must not be called from a running event loop; use ``profile_async`` there.
    """
    async def run() -> ClassificationRecord:
        return await profile_async(DetectionContext(timeout=timeout))

    return asyncio.run(run())


def invalidate_cache() -> None:
    """Forget the default engine's cached classification, if any."""
    if _default_engine is not None:
        _default_engine.invalidate_cache()
